"""
=============================================================================
userapi
=============================================================================

A small HTTP service for one resource, User, stored in PostgreSQL.

    ┌──────────────────────────────────────────────────────────────────┐
    │ server.py / core/    sockets, worker threads, keep-alive         │
    │ http/                parser, router, responses                   │
    │ app.py               route table                                 │
    │ handlers/            users CRUD, /status, static frontend        │
    │ storage/             UserStorage: PostgreSQL, in-memory          │
    └──────────────────────────────────────────────────────────────────┘

    from userapi import create_app, ServerConfig
    from userapi.storage import InMemoryUserStorage

    create_app(InMemoryUserStorage(), ServerConfig(port=8080)).run()

=============================================================================
"""

from .app import build_router, create_app
from .config import DatabaseConfig, ServerConfig
from .errors import (
    ConfigError,
    MethodNotAllowedError,
    NotFoundError,
    ServiceError,
    StorageError,
    ValidationError,
)
from .models import User
from .server import HTTPServer

__version__ = "1.0.0"

__all__ = [
    "build_router",
    "create_app",
    "DatabaseConfig",
    "ServerConfig",
    "ConfigError",
    "MethodNotAllowedError",
    "NotFoundError",
    "ServiceError",
    "StorageError",
    "ValidationError",
    "User",
    "HTTPServer",
]
