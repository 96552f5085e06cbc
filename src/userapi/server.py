"""
=============================================================================
HTTP SERVER
=============================================================================

Ties the networking core to the application:

    ┌──────────────┐  Connection   ┌──────────────┐  task   ┌───────────────┐
    │ SocketServer │ ────────────► │  ThreadPool  │ ──────► │ keep-alive    │
    │ accept loop  │               │  (bounded)   │         │ loop (worker) │
    └──────────────┘               └──────┬───────┘         └───────┬───────┘
                                          │ queue full              │
                                          ▼                         ▼
                                    503 + close          parse → middleware
                                                         → router → handler
                                                         → response bytes

Failures outside a handler's own error mapping:

    malformed request      → 400 / 405 / 505 (from the parser), close
    request too large      → 413, close
    no request in time     → 408, close
    handler raised         → 500, logged with traceback

All of these are plain-text bodies.

=============================================================================
"""

import logging
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, RequestTooLargeError, SocketServer, ThreadPool
from .http.request import HTTPParseError, HTTPRequest, RequestParser
from .http.response import HTTPResponse, HTTPStatus, ResponseBuilder
from .http.router import Router
from .middleware import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure the root logger once; later calls only change the level.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    logging.getLogger("userapi").setLevel(level)


class HTTPServer:
    """
    Threaded HTTP/1.1 server around a Router.

        server = HTTPServer(ServerConfig(port=8080), router)
        server.use(LoggingMiddleware())
        server.run()          # blocks until SIGTERM / SIGINT / shutdown()

    From another thread (tests):

        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5)
        host, port = server.address
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

        self._router = router or Router()
        self._middleware = MiddlewarePipeline()

        # middleware.wrap(router.handle), built in run()
        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    # ─── configuration ───

    def use(self, middleware: Middleware) -> "HTTPServer":
        """Add middleware. The first one added runs outermost."""
        self._middleware.add(middleware)
        return self

    @property
    def router(self) -> Router:
        return self._router

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    # ─── lifecycle ───

    def run(self) -> None:
        """
        Serve until shutdown.

        Raises:
            OSError: If the listening address cannot be bound.
        """
        self._setup_logging()

        self._handler = self._middleware.wrap(self._router.handle)
        self._running = True
        self._thread_pool.start()

        logger.info(f"Starting {self.config.server_name} on {self.config.host}:{self.config.port}")
        self._log_routes()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self) -> None:
        """Ask run() to return. Safe from any thread."""
        self._socket_server.shutdown()

    def _setup_logging(self) -> None:
        setup_logging(self.config.log_level)

    def _log_routes(self) -> None:
        for route in self._router.routes():
            logger.debug(f"Route: {route.method or 'ANY':8} {route.path}")

    def _shutdown(self) -> None:
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info("Server stopped")

    # ─── request handling ───

    def _handle_connection(self, conn: Connection) -> None:
        """Called by the accept loop for each client."""
        submitted = self._thread_pool.submit(
            self._process_connection,
            args=(conn,),
            block=False,
        )

        if not submitted:
            logger.warning(
                f"[{conn.id}] Thread pool full, rejecting {conn.client_ip}: "
                f"{self._thread_pool.stats}"
            )
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection) -> None:
        """
        Keep-alive loop for one client, run on a worker thread.

            read → parse → handle → send → (keep-alive? read again : close)
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    try:
                        request = self._parser.parse(raw_request, conn.address)
                    except HTTPParseError as e:
                        logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                        self._send_error(conn, HTTPStatus(e.status_code), str(e))
                        break

                    response = self._dispatch(conn, request)
                    keep_alive = request.is_keep_alive and self.config.keep_alive

                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}",
                        )
                    else:
                        response.headers["Connection"] = "close"

                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break

                    if not keep_alive:
                        break

                    conn.set_keep_alive()

                except RequestTooLargeError as e:
                    logger.warning(f"[{conn.id}] {e}")
                    self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, "Request too large")
                    break

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except OSError as e:
                    logger.debug(f"[{conn.id}] Connection error: {e}")
                    break

    def _dispatch(self, conn: Connection, request: HTTPRequest) -> HTTPResponse:
        try:
            return self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Unhandled error in {request.method} {request.path}: {e}")
            return (ResponseBuilder(self.config.server_name)
                .status(HTTPStatus.INTERNAL_SERVER_ERROR)
                .text("Internal Server Error")
                .build())

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str) -> None:
        """Errors raised before a request reaches the router."""
        response = (ResponseBuilder(self.config.server_name)
            .status(status)
            .text(message)
            .close_connection()
            .build())

        conn.send_response(response.to_bytes(self.config.server_name))
