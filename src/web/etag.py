"""
Validation tokens for conditional GET on /faces.

Pure functions of (version, frame); no state.
"""

from __future__ import annotations

from typing import Optional

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    sign = "-" if value < 0 else ""
    value = abs(value)
    out = []
    while value:
        value, rem = divmod(value, 36)
        out.append(_DIGITS[rem])
    return sign + "".join(reversed(out))


def make_etag(version: int, frame: int) -> str:
    """Weak ETag, e.g. version=37, frame=1000 -> W/"11-rs"."""
    return f'W/"{to_base36(version)}-{to_base36(frame)}"'


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """
    True if an If-None-Match header value covers etag.

    Accepts the exact token, a comma-separated list containing it, or "*".
    Comparison is weak, so a strong form of the same opaque tag also matches.
    """
    if not if_none_match:
        return False
    wanted = _opaque(etag)
    for candidate in if_none_match.split(","):
        candidate = candidate.strip()
        if candidate == "*":
            return True
        if candidate and _opaque(candidate) == wanted:
            return True
    return False


def _opaque(tag: str) -> str:
    return tag[2:] if tag.startswith("W/") else tag
