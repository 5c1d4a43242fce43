"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_STUDENT_HISTORY_MONTHS = 3
DEFAULT_STUDENT_HISTORY_LIMIT = 50
DEFAULT_SEARCH_LIMIT = 20
RECENT_SESSIONS_LIMIT = 10
DEFAULT_SESSION_LIFETIME_DAYS = 7

# attendances.note is VARCHAR(255)
MAX_NOTE_LENGTH = 255

# mysql error code for a duplicate unique key
MYSQL_DUPLICATE_KEY = 1062
