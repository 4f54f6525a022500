"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_SESSION_DAYS = 7
DEFAULT_PAGE = 1
DEFAULT_PAGE_LIMIT = 10
DEFAULT_EMPLOYEE_PAGE_LIMIT = 50
DEFAULT_SORT_BY = "createdAt"
MIN_PASSWORD_LENGTH = 6
FILTER_ALL = "all"

# Column widths in database/schema.sql
MAX_TITLE_LENGTH = 200
MAX_TAG_LENGTH = 50
MAX_RECURRING_PATTERN_LENGTH = 100
MAX_NAME_LENGTH = 100
MAX_EMAIL_LENGTH = 190
