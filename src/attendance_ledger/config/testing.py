import os

SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger_test"),
}

DEBUG = False
TESTING = True

AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "0")))

LOG_LEVEL = "WARNING"
LOG_FILE = None

LATE_GRACE_MINUTES = 15
ANNUAL_LEAVE_QUOTA = 60
DEFAULT_LEAVE_QUOTA = 15
MIN_LEAVE_REASON_LENGTH = 50
LEDGER_MAX_ATTEMPTS = 3

NOTIFICATION_BACKEND = "log"
