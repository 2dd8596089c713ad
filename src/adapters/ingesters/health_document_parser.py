"""In-Memory Health Export Parser.

Parses a whole (small) Apple Health export in one pass using defusedxml.
This is the path used to validate and preview an export before committing to
a streaming ingestion: every ``Record`` child of the root is extracted as-is,
without the metric-kind filter, and every ``Workout`` is decomposed.

Security Impact:
    - defusedxml rejects entity declarations, DTD retrieval and external references
    - Not suitable for multi-gigabyte exports; use IngestionSession for those
"""

import logging
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError

from src.adapters.ingesters.health_export_extractor import RECORD_TAG, WORKOUT_TAG, decompose_workout
from src.domain.health_record import DateWindow, HealthRecord
from src.domain.markup_events import AttributeMap
from src.domain.ports import MarkupError, SourceIOError
from src.domain.services.date_range_filter import in_range

logger = logging.getLogger(__name__)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1].lower()


def parse_health_document(
    source: Union[str, Path, BinaryIO],
    window: Optional[DateWindow] = None
) -> List[HealthRecord]:
    """Parse a complete export into health records.

    Parameters:
        source: Path to the export, or a readable binary stream
        window: Optional inclusive window applied to start timestamps

    Returns:
        List[HealthRecord]: Records first, then decomposed workouts, each in document order

    Raises:
        SourceIOError: If the file does not exist or cannot be read
        MarkupError: If the document is not well-formed or uses forbidden constructs
    """
    if isinstance(source, (str, Path)):
        source_path = Path(source)
        if not source_path.is_file():
            raise SourceIOError(f"Export not found: {source}", source=str(source))
        label = str(source_path)
        parse_target = label
    else:
        label = getattr(source, "name", "<stream>")
        parse_target = source

    try:
        root = SafeET.parse(parse_target).getroot()
    except SafeParseError as e:
        line, column = getattr(e, "position", (None, None))
        raise MarkupError(f"Invalid XML format in {label}: {e}", line=line, column=column) from e
    except DefusedXmlException as e:
        raise MarkupError(f"Forbidden XML construct in {label}: {e}") from e
    except OSError as e:
        raise SourceIOError(f"Cannot read export {label}: {e}", source=str(label)) from e

    records: List[HealthRecord] = []
    workouts: List[HealthRecord] = []

    for element in root:
        name = _local_name(element.tag)
        if name not in (RECORD_TAG, WORKOUT_TAG):
            continue
        attrs = AttributeMap({_local_name(key): value for key, value in element.attrib.items()})
        if not in_range(attrs.optional("startdate"), window):
            continue

        if name == RECORD_TAG:
            records.append(
                HealthRecord(
                    type=attrs.text("type"),
                    value=attrs.text("value"),
                    unit=attrs.optional("unit"),
                    start_date=attrs.text("startdate"),
                    end_date=attrs.text("enddate"),
                    source_name=attrs.optional("sourcename"),
                    source_version=attrs.optional("sourceversion"),
                )
            )
        else:
            workouts.extend(decompose_workout(attrs))

    logger.info(f"Parsed {label}: {len(records):,} records, {len(workouts):,} workout records")
    return records + workouts
