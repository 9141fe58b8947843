"""Identifier and clock helpers."""

import uuid
from datetime import datetime, timezone


def make_id(prefix: str) -> str:
    """Generate a globally unique, prefixed identifier (e.g. ``trace_<uuid>``)."""
    return f"{prefix}_{uuid.uuid4()}"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
