import os

from config.config import *  # noqa: F401,F403
from config.config import _flag

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DEBUG = False

REQUIRE_SIGNED_TOKENS = _flag("REQUIRE_SIGNED_TOKENS", "1")
