"""Plan domain entity: title/description attached to one calendar day, with write attribution."""
from datetime import date, datetime
from typing import Optional

from pydantic import ValidationError

from trip.utilities.constants import (
    FIELD_DESCRIPTION, FIELD_LAST_UPDATED_BY, FIELD_TIMESTAMP, FIELD_TITLE, PLAN_EXISTS_LABEL
)
from trip.utilities.dates import date_from_key
from trip.utilities.errors import ValidationFailure
from trip.utilities.validators import PlanDocument


class Plan:
    def __init__(self, date_key: str, title: Optional[str] = None, description: Optional[str] = None,
                 last_updated_by: str = "", timestamp: Optional[datetime] = None):
        if not date_key:
            raise ValidationFailure("Plan date key must not be empty")
        self.date_key = date_key
        self.title = title
        self.description = description
        self.last_updated_by = last_updated_by
        self.timestamp = timestamp

    @property
    def date(self) -> date:
        return date_from_key(self.date_key)

    @property
    def has_content(self) -> bool:
        """False when both title and description are empty ("no plan" for the grid and report)."""
        return bool(self.title) or bool(self.description)

    @property
    def label(self) -> str:
        """Short grid label: the title, or a placeholder when only a description exists."""
        return self.title or PLAN_EXISTS_LABEL

    def __eq__(self, other) -> bool:
        if not isinstance(other, Plan):
            return NotImplemented
        return self.to_dict() == other.to_dict() and self.date_key == other.date_key

    def __str__(self) -> str:
        return f"{self.date_key}: {self.title or '-'} (by {self.last_updated_by or '?'})"

    __repr__ = __str__

    @staticmethod
    def from_dict(date_key: str, data) -> "Plan":
        '''Creates a Plan from a stored document. Ignores unknown keys.'''
        if not date_key:
            raise ValidationFailure("Document has an empty key")
        try:
            doc = PlanDocument.model_validate(dict(data) if isinstance(data, dict) else {})
        except ValidationError as e:
            raise ValidationFailure(f"Malformed plan document {date_key!r}: {e.error_count()} invalid field(s)", cause=e) from e
        return Plan(date_key, title=doc.title, description=doc.description,
                    last_updated_by=doc.last_updated_by, timestamp=doc.timestamp)

    def to_dict(self):
        '''Converts the Plan to its document shape (missing optional fields are omitted).'''
        d = {FIELD_LAST_UPDATED_BY: self.last_updated_by, FIELD_TIMESTAMP: self.timestamp}
        if self.title is not None:
            d[FIELD_TITLE] = self.title
        if self.description is not None:
            d[FIELD_DESCRIPTION] = self.description
        return d
