"""Date-Range Filtering Service.

Decides whether a record's start timestamp falls inside an optional,
inclusive date window. The filter runs while the file is being parsed,
so records outside the window never reach a batch.

Policy:
    - No window, or a window with no bounds: every record is in range and
      the timestamp is not parsed at all (so an unparsable timestamp passes)
    - Active window: an unparsable timestamp is out of range (fail-closed)
"""

from typing import Optional

from src.domain.health_record import DateWindow, parse_timestamp


def in_range(start_timestamp: Optional[str], window: Optional[DateWindow]) -> bool:
    """Check whether a start timestamp lies within the window.

    Parameters:
        start_timestamp: Raw start timestamp from the export
        window: Optional inclusive date window

    Returns:
        bool: True if the record should be kept
    """
    if window is None or window.is_unbounded:
        return True

    record_time = parse_timestamp(start_timestamp)
    if record_time is None:
        return False

    if window.start is not None and record_time < window.start:
        return False
    if window.end is not None and record_time > window.end:
        return False
    return True
