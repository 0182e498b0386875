"""Global constants for the shuttlecourt application."""

# Firestore collections
SETTINGS_COLLECTION = "settings"
REGISTRATIONS_COLLECTION = "registrations"
METADATA_COLLECTION = "metadata"
ADMIN_LOGS_COLLECTION = "admin_logs"
SECURITY_LOGS_COLLECTION = "security_logs"
ADMIN_CONFIG_COLLECTION = "passwordAdmin"

# Document IDs
APP_SETTINGS_DOC = "app_settings"
APP_METADATA_DOC = "app_metadata"
ADMIN_CONFIG_DOC = "passwordAdmin"

FIRESTORE_BATCH_LIMIT = 400
DATA_FORMAT_VERSION = "1.0.0"

# Default settings
DEFAULT_COURTS_COUNT = 2
DEFAULT_PLAYERS_PER_COURT = 4
DEFAULT_EXTRA_COURT_FEE = 100000
DEFAULT_TIMEZONE = "Asia/Ho_Chi_Minh"

# Player names
MAX_PLAYER_NAME_LENGTH = 50

# Admin session
ADMIN_SESSION_HOURS = 24
SESSION_TOKEN_KEY = "admin_token"  # nosec B105
LEGACY_ADMIN_KEYS = ("is_admin", "admin_auth_time")
REDACTED_PREFIX_LENGTH = 3

# Audit log kinds
LOG_KIND_ADMIN = "admin"
LOG_KIND_SECURITY = "security"
AUDIT_LOG_LIMIT = 100
