"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_TOKEN_DAYS = 7
DEFAULT_LIST_LIMIT = 200
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
RECENT_LIMIT = 10
DASHBOARD_RECENT_LIMIT = 5
REPORT_ROW_LIMIT = 1000
USER_SEARCH_LIMIT = 10

DEFAULT_EMAIL_DOMAIN = "nitgoa.ac.in"
PHONE_DIGITS = 10

REASON_MIN = 10
REASON_MAX = 500
REMARKS_MAX = 200
REJECT_REMARKS_MIN = 5
URGENT_REASON_MAX = 200

ADDRESS_MIN = 10
ADDRESS_MAX = 300
EMERGENCY_NAME_MIN = 2
EMERGENCY_NAME_MAX = 100
RELATIONSHIP_MIN = 2
RELATIONSHIP_MAX = 50

NAME_MIN = 2
NAME_MAX = 100
DEPARTMENT_MAX = 100
HOSTEL_MAX = 100
ROOM_MAX = 20
STUDENT_ID_MAX = 30
YEAR_MIN = 1
YEAR_MAX = 4
