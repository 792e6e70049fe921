"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_QR_TOKEN_TTL_SECONDS = 60
DEFAULT_HISTORY_LIMIT = 60
DEFAULT_TIMEZONE = "UTC"

MAX_PAYLOAD_BYTES = 4096
MAX_NONCE_LENGTH = 128
NONCE_BYTES = 16

# A session may span at most one local midnight.
OPEN_SESSION_LOOKBACK_DAYS = 1
