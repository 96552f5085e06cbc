"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds the bytes written back to the client.

    HTTP/1.1 201 Created\r\n                  ◄── status line
    Content-Type: application/json\r\n
    Location: /api/v1/users/3\r\n
    Content-Length: 52\r\n                    ◄── added by to_bytes()
    Date: Sun, 18 Oct 2026 09:00:00 GMT\r\n   ◄── added by to_bytes()
    Server: userapi/1.0\r\n                   ◄── added by to_bytes()
    \r\n
    {"id": 3, "name": "Ada", "email": "ada@example.com"}

Conventions used by the API:

    success bodies  JSON, "Content-Type: application/json"
    error bodies    plain text, "Content-Type: text/plain; charset=utf-8"

The module-level helpers (ok, created, no_content, bad_request, ...) are
shortcuts over ResponseBuilder for those two shapes.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
import json

from .mime_types import get_content_type
from .status_codes import HTTPStatus


DEFAULT_SERVER_NAME = "userapi/1.0"

JSON_CONTENT_TYPE = "application/json"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
BODYLESS_STATUSES = frozenset({HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED})


@dataclass
class HTTPResponse:
    """An HTTP response. Build it with ResponseBuilder or the helpers below."""

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {self.status.value} {self.status.phrase}"

    @property
    def text(self) -> str:
        """Body decoded as UTF-8. Handy in tests and logs."""
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date and Server are filled in unless the handler
        already set them. 204 and 304 go out with neither a body nor a
        Content-Length header.
        """
        response_headers = dict(self.headers)
        bodyless = self.status in BODYLESS_STATUSES

        if bodyless:
            response_headers.pop("Content-Length", None)
        elif "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + (b"" if bodyless else self.body)


class ResponseBuilder:
    """
    Fluent builder for HTTPResponse.

        response = (ResponseBuilder()
            .status(HTTPStatus.CREATED)
            .json(user.to_dict())
            .header("Location", f"/api/v1/users/{user.id}")
            .build())

    Every method except build() and to_bytes() returns self.
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""
        self._server_name = server_name

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = HTTPStatus(status)
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def headers(self, headers: Dict[str, str]) -> "ResponseBuilder":
        self._headers.update(headers)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        return self.header("Content-Type", content_type)

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def text(self, text: str, content_type: str = TEXT_CONTENT_TYPE) -> "ResponseBuilder":
        self._body = text.encode("utf-8")
        self._headers["Content-Type"] = content_type
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        """
        JSON body with "Content-Type: application/json".

        ensure_ascii=False keeps non-ASCII names readable on the wire
        (the body is still UTF-8 encoded).
        """
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = JSON_CONTENT_TYPE
        return self

    def file(self, content: bytes, filename: str) -> "ResponseBuilder":
        """Raw file content; Content-Type comes from the extension."""
        self._body = content
        self._headers["Content-Type"] = get_content_type(filename)
        return self

    def no_cache(self) -> "ResponseBuilder":
        self._headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
        self._headers["Pragma"] = "no-cache"
        self._headers["Expires"] = "0"
        return self

    def cache(self, max_age: int = 3600) -> "ResponseBuilder":
        self._headers["Cache-Control"] = f"public, max-age={max_age}"
        return self

    def close_connection(self) -> "ResponseBuilder":
        self._headers["Connection"] = "close"
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        return self.build().to_bytes(self._server_name)


def format_http_date(dt: datetime) -> str:
    """
    RFC 7231 HTTP-date, always GMT.

        >>> format_http_date(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))
        'Thu, 01 Jan 2026 12:00:00 GMT'
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


# =============================================================================
# SUCCESS SHORTCUTS
# =============================================================================

def ok(body: Union[str, bytes, dict, list] = "", content_type: Optional[str] = None) -> HTTPResponse:
    """
    200 OK. dict/list bodies become JSON, str becomes plain text,
    bytes are sent as-is.
    """
    builder = ResponseBuilder().status(HTTPStatus.OK)
    if isinstance(body, (dict, list)):
        builder.json(body)
    elif isinstance(body, str):
        builder.text(body, content_type or TEXT_CONTENT_TYPE)
    else:
        builder.body(body)
        if content_type:
            builder.content_type(content_type)
    return builder.build()


def created(body: Union[dict, list], location: Optional[str] = None) -> HTTPResponse:
    """201 Created with a JSON body and an optional Location header."""
    builder = ResponseBuilder().status(HTTPStatus.CREATED).json(body)
    if location:
        builder.header("Location", location)
    return builder.build()


def no_content() -> HTTPResponse:
    """204 No Content. The body is always empty."""
    return ResponseBuilder().status(HTTPStatus.NO_CONTENT).build()


# =============================================================================
# ERROR SHORTCUTS (plain-text bodies)
# =============================================================================

def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Plain-text error; the message defaults to the reason phrase."""
    status = HTTPStatus(status)
    return (ResponseBuilder()
        .status(status)
        .text(message or status.phrase)
        .build())


def bad_request(message: str = "Bad Request") -> HTTPResponse:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def forbidden(message: str = "Forbidden") -> HTTPResponse:
    return error_response(HTTPStatus.FORBIDDEN, message)


def not_found(message: str = "Not Found") -> HTTPResponse:
    return error_response(HTTPStatus.NOT_FOUND, message)


def method_not_allowed(
    allowed_methods: List[str],
    message: str = "Method Not Allowed"
) -> HTTPResponse:
    """
    405 with the Allow header RFC 7231 requires.

    An empty list still sends "Allow: " (nothing is allowed).
    """
    response = error_response(HTTPStatus.METHOD_NOT_ALLOWED, message)
    response.set_header("Allow", ", ".join(allowed_methods))
    return response


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    """500. Keep the message generic; details belong in the log."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
