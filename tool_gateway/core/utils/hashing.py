"""Deterministic hashing of tool parameters.

The params hash identifies a call in the audit log and is the idempotency
key of an executed proposal, so the canonical form must stay stable:
object keys are sorted at every level, array order is preserved, and the
output is compact ASCII JSON.
"""

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def _canonicalize(value: Any) -> Any:
    """Reduce a value to plain JSON types with string keys.

    Non-string keys take their ``str`` form so mixed-key mappings still
    sort. Sets have no order, so their members are sorted by canonical
    form.
    """
    if isinstance(value, Mapping):
        return {str(key): _canonicalize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonicalize(item) for item in value]
    if isinstance(value, (set, frozenset)):
        members = [_canonicalize(item) for item in value]
        return sorted(members, key=_dump)
    return value


def _dump(value: Any) -> str:
    return json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def canonical_json(value: Any) -> str:
    """Serialize a JSON-like value canonically.

    Args:
        value: Params or any nested dict/list structure

    Returns:
        Canonical JSON string
    """
    return _dump(_canonicalize(value))


def params_hash(params: Any) -> str:
    """Compute the content hash of a params object.

    ``None`` hashes the same as an empty object.

    Returns:
        Hex-encoded SHA-256 digest with a ``sha256:`` prefix
    """
    canonical = canonical_json(params if params is not None else {})
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"sha256:{digest}"
