"""Path helpers for stable comparison and storage keys.

All functions are pure string transforms: no filesystem access and no
exceptions. Anything that cannot be normalized maps to ``None``.
"""
from __future__ import annotations

import re

_TRAILING_SLASHES = re.compile(r"/+$")


def normalize_path(value: object, home_directory: str | None = None) -> str | None:
    """Canonicalize *value* for comparison.

    - Expands a leading ``~`` or ``~/`` when *home_directory* is given
    - Converts backslashes to forward slashes
    - Removes trailing slashes (a bare ``/`` is kept)
    """
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None

    if home_directory:
        if trimmed.startswith("~/"):
            trimmed = home_directory + trimmed[1:]
        elif trimmed == "~":
            trimmed = home_directory

    replaced = trimmed.replace("\\", "/")
    if replaced == "/":
        return "/"

    stripped = _TRAILING_SLASHES.sub("", replaced)
    # A run of slashes collapses to root rather than to nothing.
    return stripped or "/"


def directory_name(path: object) -> str:
    """Return the last segment of *path*, or ``"Unknown"``."""
    normalized = normalize_path(path)
    if not normalized:
        return "Unknown"
    parts = [part for part in normalized.split("/") if part]
    return parts[-1] if parts else normalized


def join_path(base: str, *segments: str) -> str:
    """Join *segments* onto *base* using forward slashes."""
    current = normalize_path(base) or ""
    for segment in segments:
        sanitized = segment.replace("\\", "/").strip("/")
        if not current or current == "/":
            current = f"/{sanitized}"
        else:
            current = f"{current}/{sanitized}"
    return current
