"""
pytest configuration and fixtures.
"""

import threading
from typing import Generator, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from userapi import HTTPServer, ServerConfig, build_router, create_app
from userapi.http.router import Router
from userapi.storage import InMemoryUserStorage


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/v1/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "Test User", "email": "test@example.com"}'
    return (
        b"POST /api/v1/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def storage() -> InMemoryUserStorage:
    """Empty in-memory user storage."""
    return InMemoryUserStorage()


@pytest.fixture
def static_dir(tmp_path: Path) -> Path:
    """A small frontend directory."""
    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_text("<!DOCTYPE html><title>Users</title>")
    (root / "style.css").write_text("body { margin: 0; }")
    (root / "script.js").write_text("console.log('users');")
    return root


@pytest.fixture
def router(storage: InMemoryUserStorage, static_dir: Path) -> Router:
    """The full route table over in-memory storage."""
    return build_router(storage, str(static_dir))


@pytest.fixture
def config(static_dir: Path) -> ServerConfig:
    """Default test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        static_dir=str(static_dir),
        log_level="WARNING",
    )


class LiveServer:
    """Server running in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def live_server(
    storage: InMemoryUserStorage,
    config: ServerConfig,
) -> Generator[LiveServer, None, None]:
    """The application on a free port, backed by in-memory storage."""
    server = LiveServer(create_app(storage, config))
    server.start()

    yield server

    server.stop()


@pytest.fixture(autouse=True)
def _restore_userapi_log_level() -> Generator[None, None, None]:
    """Undo setup_logging() level changes so tests stay order-independent."""
    import logging

    log = logging.getLogger("userapi")
    saved = log.level
    yield
    log.setLevel(saved)
