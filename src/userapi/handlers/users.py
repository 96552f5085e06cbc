"""
=============================================================================
USER HANDLERS
=============================================================================

Translate HTTP requests into storage calls and storage results into
HTTP responses.

    ┌─────────┬────────────────────────┬─────────┬───────────────────────┐
    │ Action  │ Request                │ Success │ Failures              │
    ├─────────┼────────────────────────┼─────────┼───────────────────────┤
    │ create  │ POST   /api/v1/users   │ 201     │ 400, 405, 500         │
    │ read    │ GET    /api/v1/users   │ 200 [ ] │ 405, 500              │
    │ read    │ GET    /api/v1/users/7 │ 200 { } │ 400, 404, 405, 500    │
    │ update  │ PUT    /api/v1/users/7 │ 200 { } │ 400, 404, 405, 500    │
    │ delete  │ DELETE /api/v1/users/7 │ 204     │ 400, 404, 405, 500    │
    └─────────┴────────────────────────┴─────────┴───────────────────────┘

Each action checks its own method even though the router already did,
and reads the id segment itself, so an action can be mounted or called
without the route table in front of it.

=============================================================================
ERROR MAPPING
=============================================================================

    ValidationError        → 400  message returned as-is
    NotFoundError          → 404  "user not found"
    MethodNotAllowedError  → 405  with Allow header
    StorageError           → 500  "internal error while <operation>"

Error bodies are plain text. The underlying error is logged with the
operation and id, never sent to the client; the one exception is JSON
decode detail, which is the client's own input.

=============================================================================
"""

import logging
import re
from typing import List, Optional

from ..errors import (
    MethodNotAllowedError,
    NotFoundError,
    ServiceError,
    ValidationError,
)
from ..http.request import HTTPParseError, HTTPRequest
from ..http.response import (
    HTTPResponse,
    created,
    error_response,
    internal_error,
    method_not_allowed,
    no_content,
    not_found,
    ok,
)
from ..models import User
from ..storage.base import UserStorage


logger = logging.getLogger(__name__)


RESOURCE_PREFIX = "/api/v1/users"

ID_REQUIRED_MESSAGE = "user id is required in the path"

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1


def id_segment(request: HTTPRequest) -> str:
    """
    The optional id segment of a user path, without surrounding slashes.

    Comes from the router's `id` wildcard when there is one, otherwise
    from whatever follows RESOURCE_PREFIX in the path.

        /api/v1/users      → ""
        /api/v1/users/     → ""
        /api/v1/users/42/  → "42"
    """
    if "id" in request.path_params:
        return request.path_params["id"].strip("/")

    if request.path.startswith(RESOURCE_PREFIX):
        return request.path[len(RESOURCE_PREFIX):].strip("/")
    return ""


def parse_user_id(segment: str) -> int:
    """
    Parse an id segment as a signed 64-bit integer.

    Raises:
        ValidationError: Not a base-10 integer, or out of int64 range.
    """
    if not _ID_PATTERN.fullmatch(segment):
        raise ValidationError(f"invalid user id: {segment!r}")

    user_id = int(segment)
    if not _INT64_MIN <= user_id <= _INT64_MAX:
        raise ValidationError(f"invalid user id: {segment!r} is out of range")
    return user_id


def decode_user(request: HTTPRequest) -> User:
    """
    Raises:
        ValidationError: Body is empty, not valid JSON or not a user object.
    """
    if not request.body.strip():
        raise ValidationError("invalid JSON: empty body")
    try:
        payload = request.json
    except HTTPParseError as e:
        raise ValidationError(str(e)) from e
    return User.from_payload(payload)


class UserHandler:
    """
    CRUD actions for the User resource.

        handler = UserHandler(InMemoryUserStorage())
        router.add_route("/api/v1/users", handler.create, method="POST")
    """

    def __init__(self, storage: UserStorage):
        self.storage = storage

    # ─── helpers ───

    def _require_method(self, request: HTTPRequest, method: str) -> None:
        if request.method != method:
            raise MethodNotAllowedError(
                f"method {request.method} not allowed, use {method}",
                allowed=[method],
            )

    def _error_response(
        self,
        error: ServiceError,
        operation: str,
        user_id: Optional[int] = None,
    ) -> HTTPResponse:
        """Map a typed error onto its response, logging it on the way."""
        context = f"{operation}" if user_id is None else f"{operation} (id={user_id})"

        if isinstance(error, MethodNotAllowedError):
            logger.info(f"{context}: {error}")
            return method_not_allowed(error.allowed, str(error))

        if isinstance(error, ValidationError):
            logger.info(f"{context}: rejected: {error}")
            return error_response(error.status, str(error))

        if isinstance(error, NotFoundError):
            logger.info(f"{context}: {error}")
            return not_found("user not found")

        logger.error(f"{context}: {type(error).__name__}: {error}")
        return internal_error(f"internal error while {operation}")

    # ─── actions ───

    def create(self, request: HTTPRequest) -> HTTPResponse:
        """POST /api/v1/users → 201 with the stored user."""
        try:
            self._require_method(request, "POST")

            user = decode_user(request)
            user.validate()

            user.id = self.storage.create_user(user)
        except ServiceError as e:
            return self._error_response(e, "creating user")

        logger.info(f"Created user {user.id}")
        return created(user.to_dict(), location=f"{RESOURCE_PREFIX}/{user.id}")

    def read(self, request: HTTPRequest) -> HTTPResponse:
        """
        GET /api/v1/users     → 200 with every user (possibly [])
        GET /api/v1/users/:id → 200 with one user
        """
        segment = id_segment(request)
        operation = "reading user" if segment else "listing users"
        user_id = None
        try:
            self._require_method(request, "GET")

            if not segment:
                users = self.storage.get_all_users()
                return ok([user.to_dict() for user in users])

            user_id = parse_user_id(segment)
            user = self.storage.get_user_by_id(user_id)
        except ServiceError as e:
            return self._error_response(e, operation, user_id)

        return ok(user.to_dict())

    def update(self, request: HTTPRequest) -> HTTPResponse:
        """
        PUT /api/v1/users/:id → 200 with the updated user.

        The id always comes from the path; an id in the body is ignored.
        """
        user_id = None
        try:
            self._require_method(request, "PUT")

            segment = id_segment(request)
            if not segment:
                raise ValidationError(ID_REQUIRED_MESSAGE)
            user_id = parse_user_id(segment)

            user = decode_user(request)
            user.id = user_id
            user.validate()

            self.storage.update_user(user)
        except ServiceError as e:
            return self._error_response(e, "updating user", user_id)

        logger.info(f"Updated user {user_id}")
        return ok(user.to_dict())

    def delete(self, request: HTTPRequest) -> HTTPResponse:
        """DELETE /api/v1/users/:id → 204, empty body."""
        user_id = None
        try:
            self._require_method(request, "DELETE")

            segment = id_segment(request)
            if not segment:
                raise ValidationError(ID_REQUIRED_MESSAGE)
            user_id = parse_user_id(segment)

            self.storage.delete_user(user_id)
        except ServiceError as e:
            return self._error_response(e, "deleting user", user_id)

        logger.info(f"Deleted user {user_id}")
        return no_content()


def allowed_methods(has_id: bool) -> List[str]:
    """Methods with an action on the collection path or an item path."""
    return ["DELETE", "GET", "PUT"] if has_id else ["GET", "POST"]
