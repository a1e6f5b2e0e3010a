"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_HISTORY_LIMIT = 30
DEFAULT_LATE_GRACE_MINUTES = 15
DEFAULT_LOCATION_RADIUS_METERS = 50

EARTH_RADIUS_METERS = 6_371_000

ANNUAL_LEAVE_QUOTA = 60
DEFAULT_LEAVE_QUOTA = 15
MIN_LEAVE_REASON_LENGTH = 50
CUSTOM_LEAVE_TYPE = "custom"
CUSTOM_LEAVE_TYPE_DESCRIPTION = "Custom leave type created by employee"

LEDGER_MAX_ATTEMPTS = 3
