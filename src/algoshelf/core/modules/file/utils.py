"""Helpers for file names and HTTP headers."""

import re
from pathlib import PurePosixPath
from typing import Literal
from urllib.parse import quote

MAX_FILENAME_LENGTH = 120
DEFAULT_FILENAME = "unnamed_file"


def sanitize_filename(filename: str) -> str:
    """Sanitize an uploaded file name for display and Content-Disposition.

    Drops any directory part, leading dots and control or shell-special
    characters, and limits the length while keeping the extension.
    """
    filename = PurePosixPath(filename.replace("\\", "/")).name
    filename = filename.lstrip(".")

    sanitized = re.sub(r"[^\w\s.()+-]", "_", filename)
    sanitized = re.sub(r"_+", "_", sanitized)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()

    if len(sanitized) > MAX_FILENAME_LENGTH:
        name, dot, ext = sanitized.rpartition(".")
        if dot and 0 < len(ext) < MAX_FILENAME_LENGTH - 4:
            sanitized = f"{name[: MAX_FILENAME_LENGTH - len(ext) - 1]}.{ext}"
        else:
            sanitized = sanitized[:MAX_FILENAME_LENGTH]

    # Nothing meaningful left (only separators or punctuation)
    if not re.sub(r"[\s._()+-]", "", sanitized):
        return DEFAULT_FILENAME
    return sanitized


def content_disposition(disposition: Literal["inline", "attachment"], filename: str) -> str:
    """Build a Content-Disposition value with an RFC 5987 fallback for non-ASCII names."""
    quoted = quote(filename)
    if quoted == filename:
        return f'{disposition}; filename="{filename}"'
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").strip() or DEFAULT_FILENAME
    return f"{disposition}; filename=\"{ascii_name}\"; filename*=utf-8''{quoted}"
