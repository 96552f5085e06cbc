"""
=============================================================================
NETWORKING CORE
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │ SocketServer    listening socket, accept loop, signal handling   │
    └───────────────────────────────┬──────────────────────────────────┘
                                    │ one Connection per client
                                    ▼
    ┌──────────────────────────────────────────────────────────────────┐
    │ ThreadPool      bounded queue + worker threads                   │
    └───────────────────────────────┬──────────────────────────────────┘
                                    │ worker runs the keep-alive loop
                                    ▼
    ┌──────────────────────────────────────────────────────────────────┐
    │ Connection      buffered reads, timeouts, graceful close         │
    └──────────────────────────────────────────────────────────────────┘

One connection is handled start to finish by one worker thread. Nothing
in the request path suspends cooperatively: a storage call simply blocks
its worker until the database answers.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLargeError
from .thread_pool import ThreadPool


__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLargeError",
    "ThreadPool",
]
