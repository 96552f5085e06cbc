"""
=============================================================================
STATUS ENDPOINT
=============================================================================

GET /status runs every registered check and reports the result:

    200 OK                                  503 Service Unavailable
    {                                       {
      "status": "healthy",                    "status": "unhealthy",
      "uptime_seconds": 3600,                 "uptime_seconds": 3600,
      "checks": {                             "checks": {
        "storage": {"status": "healthy",        "storage": {"status": "unhealthy",
                    "message": "OK"}                        "message": "storage unreachable"}
      }                                       }
    }                                       }

Load balancers read only the status code. The body is for humans.
Responses are never cached.

=============================================================================
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, HTTPStatus, ResponseBuilder
from ..storage.base import UserStorage


logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    healthy: bool
    message: str = "OK"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "message": self.message,
            **self.details,
        }


HealthCheck = Callable[[], HealthStatus]


def storage_check(storage: UserStorage) -> HealthCheck:
    """A check that pings the storage backend."""

    def check() -> HealthStatus:
        start = time.time()
        storage.ping()
        return HealthStatus(
            healthy=True,
            details={"latency_ms": round((time.time() - start) * 1000, 2)},
        )

    return check


class StatusHandler:
    """
    Aggregates named checks behind one endpoint.

        status = StatusHandler()
        status.add_check("storage", storage_check(storage))
        router.get("/status", status.handle)

    A check fails by returning an unhealthy HealthStatus or by raising.
    Raised errors are logged; the response only says the check failed.
    """

    def __init__(self):
        self._checks: Dict[str, HealthCheck] = {}
        self._start_time = time.time()

    def add_check(self, name: str, check: HealthCheck) -> "StatusHandler":
        self._checks[name] = check
        return self

    @property
    def uptime(self) -> float:
        return time.time() - self._start_time

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        results = {}
        all_healthy = True

        for name, check in self._checks.items():
            try:
                status = check()
            except Exception as e:
                logger.warning(f"Status check {name!r} failed: {type(e).__name__}: {e}")
                status = HealthStatus(healthy=False, message=f"{name} unreachable")

            results[name] = status.to_dict()
            all_healthy = all_healthy and status.healthy

        response_data: Dict[str, Any] = {
            "status": "healthy" if all_healthy else "unhealthy",
            "uptime_seconds": int(self.uptime),
            "checks": results,
        }

        http_status = HTTPStatus.OK if all_healthy else HTTPStatus.SERVICE_UNAVAILABLE

        return (ResponseBuilder()
            .status(http_status)
            .json(response_data)
            .header("Cache-Control", "no-store")
            .build())
