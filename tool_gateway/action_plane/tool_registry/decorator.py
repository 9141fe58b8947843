"""Gateway tool decorator for declaring tools next to their handlers.

The decorator only attaches a ``ToolDefinition`` to the handler; tools are
registered when a registry scans the module with
``ToolRegistry.discover_tools_from_module``.
"""

from typing import Any, Callable, Type, TypeVar

from pydantic import BaseModel

from ...core.domain.tools import PolicyOverride, RiskLevel, ToolDefinition

F = TypeVar('F', bound=Callable[..., Any])

_JSON_TYPE_MAPPING = {
    "string": "string",
    "integer": "number",
    "number": "number",
    "boolean": "boolean",
    "object": "object",
    "array": "array",
    "null": "null",
}


def gateway_tool(
    name: str,
    description: str = "",
    risk_level: RiskLevel = RiskLevel.LOW,
    params_schema: dict[str, Any] | None = None,
    params_model: Type[BaseModel] | None = None,
    capabilities: list[str] | None = None,
    timeout_seconds: float | None = None,
    policy: PolicyOverride | None = None,
    summary: Callable[[dict[str, Any]], str] | None = None
) -> Callable[[F], F]:
    """Decorator declaring a function as a gateway tool handler.

    Args:
        name: Unique tool name
        description: Human-readable description
        risk_level: Risk classification (LOW, MEDIUM, HIGH, CRITICAL)
        params_schema: Parameter schema (``required`` + ``properties``)
        params_model: Pydantic model to derive the schema from when
            ``params_schema`` is not given
        capabilities: Capability tags
        timeout_seconds: Handler timeout; registry default when None
        policy: Optional per-tool policy override
        summary: Optional formatter ``params -> str``

    Returns:
        The handler, unchanged apart from the attached definition

    Example:
        @gateway_tool(
            name="records.delete",
            description="Delete one record",
            risk_level=RiskLevel.HIGH,
            params_schema={"required": ["id"], "properties": {"id": {"type": "string"}}},
            capabilities=["records.write"],
        )
        async def delete_record(params, context):
            ...
    """
    def decorator(func: F) -> F:
        schema = params_schema
        if schema is None and params_model is not None:
            schema = schema_from_model(params_model)

        tool_def = ToolDefinition(
            name=name,
            description=description or (func.__doc__ or "").strip(),
            risk_level=risk_level,
            params_schema=schema,
            capabilities=capabilities or [],
            timeout_seconds=timeout_seconds,
            handler=func,
            policy=policy,
            summary=summary,
        )

        func._gateway_tool_definition = tool_def  # type: ignore
        return func

    return decorator


def schema_from_model(model: Type[BaseModel]) -> dict[str, Any]:
    """Reduce a pydantic model's JSON schema to the gateway's vocabulary.

    Only required names, primitive types and enums are kept; anything the
    gateway cannot check (unions, nested refs) is left unconstrained.

    Args:
        model: Pydantic model describing the params

    Returns:
        Schema dictionary with ``required`` and ``properties``
    """
    json_schema = model.model_json_schema()
    properties = {}

    for field_name, field_schema in json_schema.get("properties", {}).items():
        rules: dict[str, Any] = {}

        json_type = field_schema.get("type")
        if json_type in _JSON_TYPE_MAPPING:
            rules["type"] = _JSON_TYPE_MAPPING[json_type]

        if isinstance(field_schema.get("enum"), list):
            rules["enum"] = list(field_schema["enum"])

        properties[field_name] = rules

    return {
        "required": list(json_schema.get("required", [])),
        "properties": properties,
    }


def get_tool_metadata(func: Callable[..., Any]) -> ToolDefinition | None:
    """Get the tool definition attached to a decorated handler."""
    return getattr(func, '_gateway_tool_definition', None)


def is_gateway_tool(func: Callable[..., Any]) -> bool:
    """Check if a function was declared with ``@gateway_tool``."""
    return hasattr(func, '_gateway_tool_definition')
