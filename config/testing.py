from config.config import *  # noqa: F401,F403

SECRET_KEY = "test-secret"

DEBUG = False
TESTING = True

ATTENDANCE_TOKEN_SECRET = "test-attendance-secret"

AUTO_INIT_DB = False
AUTO_SEED_DB = False
