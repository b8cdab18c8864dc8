# helpdesk_mini/backend/app/constants.py

# Canonical values used everywhere in the project
ROLES = ("user", "agent", "admin")
STAFF_ROLES = ("agent", "admin")

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")
TICKET_PRIORITIES = ("low", "medium", "high", "urgent")

DEFAULT_ROLE = "user"
DEFAULT_STATUS = "open"
DEFAULT_PRIORITY = "medium"

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
COMMENT_MAX_LENGTH = 1000

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 50
PASSWORD_MIN_LENGTH = 6

IDEMPOTENCY_KEY_MAX_LENGTH = 255

# Signed 64-bit, the widest INTEGER the supported databases store
MAX_INTEGER = 2**63 - 1
