"""Shared helpers for hashing, identifiers and time."""

from .hashing import canonical_json, params_hash
from .ids import make_id, utc_now

__all__ = ["canonical_json", "params_hash", "make_id", "utc_now"]
