"""Parameter validation against a tool's declared schema.

The schema vocabulary is deliberately small: ``required`` names, and per
property a primitive ``type`` and an optional ``enum``. Validation is pure
and runs before any policy evaluation.
"""

from collections.abc import Mapping
from typing import Any

from ...core.errors import InvalidEnumValue, InvalidParamType, MissingRequiredParam


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


_TYPE_CHECKS = {
    "string": lambda value: isinstance(value, str),
    "number": _is_number,
    "boolean": lambda value: isinstance(value, bool),
    "object": lambda value: isinstance(value, Mapping),
    "array": lambda value: isinstance(value, (list, tuple)),
    "null": lambda value: value is None,
}


def matches_type(value: Any, declared_type: str) -> bool:
    """Check a runtime value against a declared schema type.

    Unknown type names never match.
    """
    check = _TYPE_CHECKS.get(declared_type)
    return check is not None and check(value)


def _enum_contains(members: list[Any], value: Any) -> bool:
    # True == 1 in Python; booleans only match booleans
    return any(
        member == value and isinstance(member, bool) == isinstance(value, bool)
        for member in members
    )


def validate_params(schema: Mapping[str, Any] | None, params: Mapping[str, Any] | None) -> None:
    """Validate params against a schema.

    Args:
        schema: Tool params schema; ``None`` disables validation
        params: Call params; ``None`` is treated as an empty object

    Raises:
        MissingRequiredParam: A required name is absent
        InvalidParamType: A present value has the wrong type
        InvalidEnumValue: A present value is not an enum member
    """
    if not schema:
        return

    values = params or {}

    for name in schema.get("required") or []:
        if name not in values:
            raise MissingRequiredParam(name)

    for key, rules in (schema.get("properties") or {}).items():
        if key not in values:
            continue

        value = values[key]
        declared_type = rules.get("type")
        if declared_type and not matches_type(value, declared_type):
            raise InvalidParamType(key)

        members = rules.get("enum")
        if isinstance(members, list) and not _enum_contains(members, value):
            raise InvalidEnumValue(key)
