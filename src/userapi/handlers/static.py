"""
=============================================================================
STATIC FRONTEND
=============================================================================

Serves the single-page frontend (index.html, style.css, script.js) for
every GET that the API routes did not claim.

    GET /                 → static/index.html
    GET /style.css        → static/style.css
    GET /../etc/passwd    → 403 (resolved path leaves the root)
    GET /nope.js          → 404

Conditional requests:

    first request         200 + ETag: "1760778000-2048"
    If-None-Match: same   304, no body

=============================================================================
"""

import logging
from datetime import datetime, timezone
from pathlib import Path

from ..http.mime_types import get_content_type
from ..http.request import HTTPRequest
from ..http.response import (
    HTTPResponse,
    HTTPStatus,
    ResponseBuilder,
    forbidden,
    format_http_date,
    internal_error,
    not_found,
)


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Files under `root_dir`, addressed by the route's *path wildcard.

        static = StaticFileHandler("./static")
        router.get("/*path", static.handle)
    """

    def __init__(
        self,
        root_dir: str,
        index_file: str = "index.html",
        cache_max_age: int = 3600,
    ):
        """
        Raises:
            ValueError: If root_dir is not an existing directory.
        """
        self.root_dir = Path(root_dir).resolve()
        self.index_file = index_file
        self.cache_max_age = cache_max_age

        if not self.root_dir.is_dir():
            raise ValueError(f"Static root directory does not exist: {root_dir}")

    def handle(self, request: HTTPRequest) -> HTTPResponse:
        file_path = request.path_params.get("path", "").lstrip("/")
        full_path = (self.root_dir / file_path).resolve()

        # Symlinks and ".." are resolved above; what is left must stay in root.
        try:
            full_path.relative_to(self.root_dir)
        except ValueError:
            logger.warning(f"Path traversal attempt: {file_path}")
            return forbidden("Access denied")

        if full_path.is_dir():
            index_path = full_path / self.index_file
            if not index_path.is_file():
                return forbidden("Directory listing not allowed")
            full_path = index_path

        if not full_path.is_file():
            return not_found(f"File not found: {file_path or '/'}")

        return self._serve_file(full_path, request)

    def _serve_file(self, path: Path, request: HTTPRequest) -> HTTPResponse:
        try:
            stat = path.stat()
            etag = f'"{int(stat.st_mtime)}-{stat.st_size}"'

            if request.get_header("if-none-match") == etag:
                return (ResponseBuilder()
                    .status(HTTPStatus.NOT_MODIFIED)
                    .header("ETag", etag)
                    .build())

            content = path.read_bytes()
        except PermissionError:
            return forbidden("Permission denied")
        except OSError as e:
            logger.error(f"Error serving file {path}: {e}")
            return internal_error("Failed to read file")

        mtime = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
        return (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("Content-Type", get_content_type(path))
            .header("ETag", etag)
            .header("Last-Modified", format_http_date(mtime))
            .cache(self.cache_max_age)
            .body(content)
            .build())
