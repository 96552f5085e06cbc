"""
Request handlers.

    UserHandler         CRUD actions for /api/v1/users
    StatusHandler       GET /status
    StaticFileHandler   the frontend under static/
"""

from .static import StaticFileHandler
from .status import HealthStatus, StatusHandler, storage_check
from .users import RESOURCE_PREFIX, UserHandler, parse_user_id

__all__ = [
    "StaticFileHandler",
    "HealthStatus",
    "StatusHandler",
    "storage_check",
    "RESOURCE_PREFIX",
    "UserHandler",
    "parse_user_id",
]
