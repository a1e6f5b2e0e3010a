import os

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "attendance_ledger"),
}

DEBUG = True

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = bool(int(os.getenv("AUTO_INIT_DB", "1")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
LOG_FILE = os.getenv("LOG_FILE", "logs/attendance_ledger.log")

LATE_GRACE_MINUTES = int(os.getenv("LATE_GRACE_MINUTES", "15"))
ANNUAL_LEAVE_QUOTA = int(os.getenv("ANNUAL_LEAVE_QUOTA", "60"))
DEFAULT_LEAVE_QUOTA = int(os.getenv("DEFAULT_LEAVE_QUOTA", "15"))
MIN_LEAVE_REASON_LENGTH = int(os.getenv("MIN_LEAVE_REASON_LENGTH", "50"))
LEDGER_MAX_ATTEMPTS = int(os.getenv("LEDGER_MAX_ATTEMPTS", "3"))

# "mysql" stores in-app notifications, "log" only writes them to the log
NOTIFICATION_BACKEND = os.getenv("NOTIFICATION_BACKEND", "mysql")
