"""Cross-platform safe file names for export artifacts."""

from __future__ import annotations

import re

# Invalid on Windows, plus whitespace so names stay usable in Markdown links.
_INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f\x80-\x9f\s]')
_EDGE_RE = re.compile(r"^[\s.]+|[\s.]+$")
_TRAILING_RE = re.compile(r"[\s.]+$")

RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

MAX_LENGTH = 255


def sanitize_filename(name: str | None, replacement: str = "_") -> str:
    """Return *name* made safe for use as a file or directory name.

    Empty input, or input that sanitises down to nothing, yields
    ``"untitled"``.
    """
    if not name or not isinstance(name, str):
        return "untitled"

    sanitized = _INVALID_CHARS_RE.sub(replacement, name)
    sanitized = _EDGE_RE.sub("", sanitized)
    if replacement:
        sanitized = re.sub(f"(?:{re.escape(replacement)})+", replacement, sanitized)

    if sanitized.upper().split(".")[0] in RESERVED_NAMES:
        sanitized = f"_{sanitized}"

    if len(sanitized) > MAX_LENGTH:
        sanitized = _TRAILING_RE.sub("", sanitized[:MAX_LENGTH])

    return sanitized or "untitled"


def artifact_name(title: str | None, extension: str) -> str:
    """Build ``<sanitized title>.<extension>``."""
    return f"{sanitize_filename(title)}.{extension.lstrip('.')}"
