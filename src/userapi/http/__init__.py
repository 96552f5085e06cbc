"""
=============================================================================
HTTP PROTOCOL LAYER
=============================================================================

Bytes in, bytes out:

    raw request bytes
          │
          ▼
    ┌──────────────┐    ┌────────────┐    ┌──────────────────────────┐
    │ RequestParser│ ─► │   Router   │ ─► │ handler(request)         │
    │ request.py   │    │ router.py  │    │   → HTTPResponse         │
    └──────────────┘    └────────────┘    └────────────┬─────────────┘
                                                       │ to_bytes()
                                                       ▼
                                               raw response bytes

    status_codes.py   HTTPStatus enum with reason phrases
    mime_types.py     file extension → Content-Type (static files)

=============================================================================
"""

from .request import HTTPRequest, RequestParser, HTTPParseError
from .response import (
    HTTPResponse,
    ResponseBuilder,
    ok,
    created,
    no_content,
    error_response,
    bad_request,
    forbidden,
    not_found,
    method_not_allowed,
    internal_error,
)
from .router import Router, Route
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, get_content_type

__all__ = [
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",

    "HTTPResponse",
    "ResponseBuilder",
    "ok",
    "created",
    "no_content",
    "error_response",
    "bad_request",
    "forbidden",
    "not_found",
    "method_not_allowed",
    "internal_error",

    "Router",
    "Route",

    "HTTPStatus",

    "get_mime_type",
    "get_content_type",
]
