from typing import Final

DATE_KEY_PATTERN: Final[str] = r"^(\d{4})-(\d{2})-(\d{2})$"
DEFAULT_APP_ID: Final[str] = "default-app-id"
PLANS_COLLECTION_TEMPLATE: Final[str] = "artifacts/{app_id}/public/data/tripPlans"

# Persisted document field names
FIELD_TITLE: Final[str] = "title"
FIELD_DESCRIPTION: Final[str] = "description"
FIELD_LAST_UPDATED_BY: Final[str] = "lastUpdatedBy"
FIELD_TIMESTAMP: Final[str] = "timestamp"

# Grid label for a day whose plan has a description but no title
PLAN_EXISTS_LABEL: Final[str] = "Plan exists"
WEEKDAY_HEADERS: Final[tuple] = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")

MAX_TITLE_LENGTH: Final[int] = 200
MAX_DESCRIPTION_LENGTH: Final[int] = 5000

# User visible messages
MSG_NOT_READY_SAVE: Final[str] = "Cannot save plan: Date not selected or planner not ready."
MSG_NOT_READY_DELETE: Final[str] = "Cannot delete plan: Date not selected or planner not ready."
MSG_NO_PLAN_TO_DELETE: Final[str] = "Cannot delete plan: there is no plan for the selected date."
MSG_PRINT_RANGE_MISSING: Final[str] = "Please select a start and end date for printing."
MSG_PRINT_RANGE_ORDER: Final[str] = "The end date must not be before the start date."
MSG_NO_REPORT: Final[str] = "No plans found for the selected date range."
