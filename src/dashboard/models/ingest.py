"""Request models for the live ingestion endpoint."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DateRangeRequest(BaseModel):
    """Optional inclusive window sent by the client; either bound may be omitted."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    start_date: Optional[str] = Field(None, description="Inclusive lower bound")
    end_date: Optional[str] = Field(None, description="Inclusive upper bound")


class ParseRequest(BaseModel):
    """Body of ``POST /api/parse-xml``.

    ``file_id`` is optional at the schema level so a missing handle can be
    answered with a 400 rather than a validation error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    file_id: Optional[str] = Field(None, description="Handle returned by /api/upload")
    date_range: Optional[DateRangeRequest] = Field(None, description="Optional date window")
