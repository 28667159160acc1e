"""
Helpers for interpreting source identifiers and logging them safely.
"""

from __future__ import annotations

from typing import Union
from urllib.parse import urlparse, urlunparse

STREAM_SCHEMES = ("rtsp://", "rtsps://", "http://", "https://")


def parse_device(device: Union[int, str]) -> Union[int, str]:
    """
    Turn a configured source identifier into what cv2.VideoCapture expects.

    A string of digits is a camera index ("0" -> 0); anything else (file
    path, RTSP/HTTP URL) is passed through unchanged.
    """
    if isinstance(device, int):
        return device
    text = str(device).strip()
    if text.isdigit():
        return int(text)
    return text


def is_rtsp(device: Union[int, str]) -> bool:
    return isinstance(device, str) and device.startswith(("rtsp://", "rtsps://"))


def is_stream(device: Union[int, str]) -> bool:
    return isinstance(device, str) and device.startswith(STREAM_SCHEMES)


def sanitize_url(device: Union[int, str]) -> str:
    """Mask the password of a URL-style source so it can be logged."""
    if not is_stream(device):
        return str(device)

    parsed = urlparse(device)
    if not parsed.password:
        return device

    netloc = f"{parsed.username}:***@{parsed.hostname}"
    if parsed.port:
        netloc += f":{parsed.port}"
    return urlunparse((
        parsed.scheme, netloc, parsed.path,
        parsed.params, parsed.query, parsed.fragment
    ))
