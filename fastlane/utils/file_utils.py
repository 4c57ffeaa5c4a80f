"""Utility functions for stored files"""

import re
from pathlib import PurePath
from typing import Optional

# uuid4 prefix followed by a dash, then the original name
STORAGE_NAME_PATTERN = re.compile(
    r"^(?P<prefix>[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})-(?P<name>.+)$"
)

_INVALID_NAME_RE = re.compile(r'[<>:"|?*\x00-\x1f]')


def format_bytes(num: int, decimals: int = 2) -> str:
    """Format bytes to human readable format, e.g. ``1.5 MB``"""
    if num <= 0:
        return "0 Bytes"

    value = float(num)
    for unit in ["Bytes", "KB", "MB", "GB", "TB"]:
        if value < 1024.0:
            break
        value /= 1024.0
    else:
        unit = "PB"

    text = f"{value:.{max(decimals, 0)}f}"
    # 1.50 -> 1.5, 2.00 -> 2
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {unit}"


def get_safe_filename(filename: Optional[str]) -> str:
    """
    Get a safe display name for an uploaded file

    Args:
        filename: Name sent by the client (may contain a path)

    Returns:
        Base name without path separators or control characters
    """
    if not filename:
        return "unnamed"

    # Browsers on Windows may send the full client path
    name = PurePath(filename.replace("\\", "/")).name
    name = _INVALID_NAME_RE.sub("_", name)
    name = name.replace("..", "_").strip(". ")

    return name or "unnamed"


def parse_storage_name(storage_name: str) -> Optional[str]:
    """
    Recover the display name from an on-disk storage name

    Args:
        storage_name: File name in the upload directory

    Returns:
        The original display name, or None if the name does not follow
        the ``<prefix>-<originalName>`` convention
    """
    match = STORAGE_NAME_PATTERN.match(storage_name)
    if match:
        return match.group("name")

    # Older prefixes that are not uuids: everything after the first dash
    prefix, sep, name = storage_name.partition("-")
    if not sep or not prefix or not name:
        return None
    return name
