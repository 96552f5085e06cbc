"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps static file extensions to the Content-Type the browser needs to
render them. The frontend is plain HTML/CSS/JS, so the table only covers
what a small single-page app ships with.

    ┌─────────────────────────┬──────────────────────────────────────────┐
    │ .html / .htm            │ text/html                                │
    │ .css                    │ text/css                                 │
    │ .js / .mjs              │ text/javascript                          │
    │ .json / .map            │ application/json                         │
    │ .png .jpg .gif .svg ... │ image/*                                  │
    │ anything else           │ application/octet-stream                 │
    └─────────────────────────┴──────────────────────────────────────────┘

Text types get a charset parameter, binary types do not.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "text/javascript",
    ".mjs": "text/javascript",
    ".json": "application/json",
    ".map": "application/json",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".xml": "application/xml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",
}

DEFAULT_MIME_TYPE = "application/octet-stream"

_TEXT_APPLICATION_TYPES = {
    "application/json",
    "application/xml",
    "application/javascript",
    "image/svg+xml",
}


def get_mime_type(path: Union[str, Path], default: Optional[str] = None) -> str:
    """
    Look up the MIME type for a file by extension (case-insensitive).

        >>> get_mime_type("static/Style.CSS")
        'text/css'
        >>> get_mime_type("blob.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return MIME_TYPES.get(extension, default or DEFAULT_MIME_TYPE)


def is_text_type(mime_type: str) -> bool:
    """True for text/* and the application types that are really text."""
    return mime_type.startswith("text/") or mime_type in _TEXT_APPLICATION_TYPES


def get_content_type(path: Union[str, Path], charset: str = "utf-8") -> str:
    """
    Full Content-Type header value for a file.

        >>> get_content_type("index.html")
        'text/html; charset=utf-8'
        >>> get_content_type("logo.png")
        'image/png'
    """
    mime_type = get_mime_type(path)
    if is_text_type(mime_type):
        return f"{mime_type}; charset={charset}"
    return mime_type
