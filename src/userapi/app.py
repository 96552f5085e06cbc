"""
=============================================================================
APPLICATION ASSEMBLY
=============================================================================

The whole HTTP surface as one ordered route table. First match wins, so
the specific rows come before the catch-alls:

    GET     /api/v1/users          read (list)
    GET     /api/v1/users/*id      read (single)
    POST    /api/v1/users          create
    POST    /api/v1/users/*id      405
    PUT     /api/v1/users/*id      update
    PUT     /api/v1/users          400 id required
    DELETE  /api/v1/users/*id      delete
    DELETE  /api/v1/users          400 id required
    ANY     /api/v1/users          405 Allow: GET, POST
    ANY     /api/v1/users/*id      405 Allow: DELETE, GET, PUT
    ANY     /api/*rest             404
    GET     /status                storage ping
    GET     /*path                 static frontend

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional

from .config import ServerConfig
from .handlers.static import StaticFileHandler
from .handlers.status import StatusHandler, storage_check
from .handlers.users import (
    ID_REQUIRED_MESSAGE,
    RESOURCE_PREFIX,
    UserHandler,
    allowed_methods,
)
from .http.request import HTTPRequest
from .http.response import HTTPResponse, bad_request, method_not_allowed, not_found
from .http.router import Router
from .middleware import LoggingMiddleware
from .server import HTTPServer
from .storage.base import UserStorage


logger = logging.getLogger(__name__)

ITEM_PATTERN = f"{RESOURCE_PREFIX}/*id"


def _id_required(request: HTTPRequest) -> HTTPResponse:
    return bad_request(ID_REQUIRED_MESSAGE)


def _post_on_item(request: HTTPRequest) -> HTTPResponse:
    return method_not_allowed(
        allowed_methods(has_id=True),
        f"POST is only allowed on {RESOURCE_PREFIX}",
    )


def _collection_method_not_allowed(request: HTTPRequest) -> HTTPResponse:
    return method_not_allowed(allowed_methods(has_id=False))


def _item_method_not_allowed(request: HTTPRequest) -> HTTPResponse:
    return method_not_allowed(allowed_methods(has_id=True))


def _api_not_found(request: HTTPRequest) -> HTTPResponse:
    return not_found(f"No route matches {request.path}")


def build_router(
    storage: UserStorage,
    static_dir: Optional[str] = None,
    static_cache_max_age: int = 3600,
) -> Router:
    """
    Every route the service answers, wired to `storage`.

    Static serving is skipped when `static_dir` is None or missing.
    """
    router = Router()
    users = UserHandler(storage)

    router.add_route(RESOURCE_PREFIX, users.read, "GET", name="users")
    router.add_route(ITEM_PATTERN, users.read, "GET", name="user")
    router.add_route(RESOURCE_PREFIX, users.create, "POST")
    router.add_route(ITEM_PATTERN, _post_on_item, "POST")
    router.add_route(ITEM_PATTERN, users.update, "PUT")
    router.add_route(RESOURCE_PREFIX, _id_required, "PUT")
    router.add_route(ITEM_PATTERN, users.delete, "DELETE")
    router.add_route(RESOURCE_PREFIX, _id_required, "DELETE")
    router.add_route(RESOURCE_PREFIX, _collection_method_not_allowed)
    router.add_route(ITEM_PATTERN, _item_method_not_allowed)
    router.add_route("/api/*rest", _api_not_found)

    status = StatusHandler().add_check("storage", storage_check(storage))
    router.add_route("/status", status.handle, "GET", name="status")

    if static_dir and Path(static_dir).is_dir():
        static = StaticFileHandler(static_dir, cache_max_age=static_cache_max_age)
        router.add_route("/*path", static.handle, "GET", name="static")
    elif static_dir:
        logger.warning(f"Static directory {static_dir!r} not found, frontend disabled")

    return router


def create_app(storage: UserStorage, config: Optional[ServerConfig] = None) -> HTTPServer:
    """
    A ready-to-run server for `storage`.

        app = create_app(InMemoryUserStorage(), ServerConfig(port=0))
        app.run()
    """
    config = config or ServerConfig()
    router = build_router(storage, config.static_dir, config.static_cache_max_age)

    server = HTTPServer(config, router)
    server.use(LoggingMiddleware(log_format=config.log_format))
    return server
