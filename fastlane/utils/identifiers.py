"""Opaque identifiers for files, requests and the session token"""

import uuid


def generate_id() -> str:
    """Unique id for files and access requests"""
    return str(uuid.uuid4())


def generate_token() -> str:
    """Short per-run session token"""
    return uuid.uuid4().hex[:8]


def make_storage_name(display_name: str) -> str:
    """On-disk name ``<uuid>-<display name>``; the bootstrap scan relies on this layout"""
    return f"{uuid.uuid4()}-{display_name}"
