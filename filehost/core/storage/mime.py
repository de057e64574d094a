"""Extension based MIME type table shared by listing and content access."""
from pathlib import PurePath
from typing import Optional

DEFAULT_TEXT_TYPE = "text/plain"
DEFAULT_BINARY_TYPE = "application/octet-stream"

MIME_TYPES = {
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "md": "text/markdown",
    "txt": "text/plain",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
}


def get_extension(path) -> str:
    suffix = PurePath(str(path)).suffix
    return suffix[1:].lower() if suffix else ""


def guess_mime_type(path, default: Optional[str] = DEFAULT_BINARY_TYPE) -> Optional[str]:
    return MIME_TYPES.get(get_extension(path), default)


def is_binary_mime(mime_type: str) -> bool:
    # Images are never served through the text path, svg included
    return mime_type.startswith("image/")
