"""Settings shared by every environment; the env modules import and override these."""

import os


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "volunteer_roster"),
}

# Event dates/times are stored as wall-clock values in this zone
STORAGE_TIMEZONE = os.getenv("STORAGE_TIMEZONE", "America/Sao_Paulo")
LOCAL_TIMEZONE = os.getenv("LOCAL_TIMEZONE", STORAGE_TIMEZONE)

# Bearer credentials issued at login
ACCESS_TOKEN_MAX_AGE = int(os.getenv("ACCESS_TOKEN_MAX_AGE", str(12 * 3600)))

# Attendance QR tokens. Without a secret, tokens are plain JSON
ATTENDANCE_TOKEN_SECRET = os.getenv("ATTENDANCE_TOKEN_SECRET", "")
ATTENDANCE_TOKEN_MAX_AGE = int(os.getenv("ATTENDANCE_TOKEN_MAX_AGE", "300"))
REQUIRE_SIGNED_TOKENS = _flag("REQUIRE_SIGNED_TOKENS")

SCAN_SUCCESS_DISPLAY_SECONDS = float(os.getenv("SCAN_SUCCESS_DISPLAY_SECONDS", "2.5"))
SCAN_ERROR_DISPLAY_SECONDS = float(os.getenv("SCAN_ERROR_DISPLAY_SECONDS", "4.0"))
SCAN_SESSION_IDLE_SECONDS = float(os.getenv("SCAN_SESSION_IDLE_SECONDS", "900"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

AUTO_INIT_DB = _flag("AUTO_INIT_DB")
AUTO_SEED_DB = _flag("AUTO_SEED_DB")
