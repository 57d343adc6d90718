"""
Input validation schemas using Pydantic for better data integrity.
"""
from datetime import date, datetime
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from trip.utilities.constants import (
    MAX_DESCRIPTION_LENGTH, MAX_TITLE_LENGTH, MSG_PRINT_RANGE_MISSING, MSG_PRINT_RANGE_ORDER
)
from trip.utilities.dates import local_date
from trip.utilities.errors import ValidationFailure


class PlanDraftInput(BaseModel):
    """Schema for the title/description draft committed from the edit modal."""
    title: str = Field("", max_length=MAX_TITLE_LENGTH)
    description: str = Field("", max_length=MAX_DESCRIPTION_LENGTH)

    @field_validator('title', mode='before')
    @classmethod
    def strip_title(cls, v):
        """Remove leading/trailing whitespace; None becomes empty."""
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator('description', mode='before')
    @classmethod
    def none_to_empty(cls, v):
        return "" if v is None else v


class ReportRangeInput(BaseModel):
    """Schema for the print range picker (both bounds required, inclusive)."""
    start: Optional[date] = None
    end: Optional[date] = None

    @field_validator('start', 'end', mode='before')
    @classmethod
    def datetime_to_date(cls, v):
        """Accept datetimes from the picker as their local calendar day."""
        if isinstance(v, datetime):
            return local_date(v)
        if v == "":
            return None
        return v

    @model_validator(mode='after')
    def check_order(self):
        if self.start is None or self.end is None:
            raise ValueError(MSG_PRINT_RANGE_MISSING)
        if self.end < self.start:
            raise ValueError(MSG_PRINT_RANGE_ORDER)
        return self


class PlanDocument(BaseModel):
    """Schema of a stored plan document as delivered by the remote store."""
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    title: Optional[str] = None
    description: Optional[str] = None
    last_updated_by: str = Field("", alias="lastUpdatedBy")
    timestamp: Optional[datetime] = None


def first_error_message(exc: ValidationError) -> str:
    """Human readable message of the first pydantic error (without the 'Value error, ' prefix)."""
    errors = exc.errors()
    if not errors:
        return str(exc)
    msg = errors[0].get('msg', '')
    prefix = 'Value error, '
    return msg[len(prefix):] if msg.startswith(prefix) else msg


def parse_report_range(start, end) -> Tuple[date, date]:
    """Validate a print range, raising ValidationFailure with a user facing message."""
    try:
        rng = ReportRangeInput(start=start, end=end)
    except ValidationError as e:
        raise ValidationFailure(first_error_message(e), cause=e) from e
    return rng.start, rng.end


def parse_draft(title, description) -> PlanDraftInput:
    try:
        return PlanDraftInput(title=title, description=description)
    except ValidationError as e:
        raise ValidationFailure(first_error_message(e), cause=e) from e
