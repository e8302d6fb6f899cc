"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DEFAULT_STORAGE_TIMEZONE = "America/Sao_Paulo"

UPCOMING_WINDOW_DAYS = 7
CHART_WINDOW_DAYS = 30
UPCOMING_LIST_LIMIT = 10
RANKING_LIMIT = 5

SCAN_SUCCESS_DISPLAY_SECONDS = 2.5
SCAN_ERROR_DISPLAY_SECONDS = 4.0
SCAN_SESSION_IDLE_SECONDS = 900.0
SCAN_SESSION_LIMIT = 1000

DEFAULT_TOKEN_MAX_AGE_SECONDS = 300
TOKEN_SALT = "attendance-token"

FALLBACK_VOLUNTEER_NAME = "Voluntário"
GENERIC_CONFIRM_ERROR = "Erro ao confirmar."
GENERIC_BACKEND_ERROR = "Falha na operação. Tente novamente."
