"""
Request/response middleware.

    Middleware            base class: __call__(request, next) -> response
    MiddlewarePipeline    composes middleware around the router
    LoggingMiddleware     access log + X-Request-ID
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
]
