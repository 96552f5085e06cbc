"""
=============================================================================
ACCESS LOG MIDDLEWARE
=============================================================================

One line per request on the "userapi.access" logger.

    text (combined-style):
        127.0.0.1 - - [18/Oct/2026:09:00:00 +0000] "POST /api/v1/users" 201 52 1.84ms

    json:
        {"request_id": "3f2a9c1e", "method": "POST", "path": "/api/v1/users",
         "status_code": 201, "content_length": 52, "duration_ms": 1.84, ...}

Successful and 4xx responses log at `log_level` (INFO by default), 5xx
responses at WARNING. Every response carries an X-Request-ID header; an
id sent by the client is reused so a proxy's id can be followed through.

=============================================================================
"""

import json
import logging
import re
import time
import uuid
from dataclasses import asdict, dataclass
from typing import List, Optional
from urllib.parse import urlencode

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .base import Middleware, NextHandler


logger = logging.getLogger("userapi.access")

# Client supplied ids are echoed into a header, so keep them tame.
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


@dataclass
class RequestLog:
    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging with request ids and timing.

        pipeline.add(LoggingMiddleware())                        # text
        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(LoggingMiddleware(skip_paths=["/status"]))  # quiet health checks

    Put it first in the pipeline so the timing covers everything after it.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[List[str]] = None,
    ):
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def _request_id(self, request: HTTPRequest) -> str:
        incoming = request.get_header("x-request-id")
        if incoming and _REQUEST_ID_PATTERN.match(incoming):
            return incoming
        return str(uuid.uuid4())[:8]

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = self._request_id(request)
        started = time.monotonic()

        try:
            response = next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {request.method} {request.path} raised "
                f"{type(e).__name__}: {e} after {_elapsed_ms(started):.2f}ms"
            )
            raise

        if self.include_request_id:
            response.headers["X-Request-ID"] = request_id

        if request.path not in self.skip_paths:
            self._write(self._entry(request, response, request_id, _elapsed_ms(started)))

        return response

    def _entry(
        self,
        request: HTTPRequest,
        response: HTTPResponse,
        request_id: str,
        duration_ms: float,
    ) -> RequestLog:
        return RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=urlencode(request.query_params, doseq=True),
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def _write(self, entry: RequestLog) -> None:
        level = logging.WARNING if entry.status_code >= 500 else self.log_level
        line = json.dumps(entry.to_dict()) if self.log_format == "json" else entry.to_text()
        logger.log(level, line)


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000
