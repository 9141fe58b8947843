"""Tool Registry implementation for managing gateway tools.

This module provides the registry holding every tool the gateway can
invoke, with discovery, filtering and registration-time validation.
"""

import logging
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ...core.domain.tools import RiskLevel, ToolDefinition, ToolSummary
from ...core.errors import InvalidToolDefinition

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 8.0


class ToolRegistry:
    """Registry of tool definitions keyed by name.

    Each gateway owns its own registry. Reads and writes are guarded by
    a lock so the registry can be shared across threads as well as
    coroutines on one event loop.
    """

    def __init__(self, default_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        """Initialize an empty registry.

        Args:
            default_timeout_seconds: Timeout given to tools that declare none
        """
        self.default_timeout_seconds = default_timeout_seconds
        self._tools: dict[str, ToolDefinition] = {}
        self._lock = threading.RLock()

    def register_tool(
        self,
        definition: ToolDefinition | Mapping[str, Any] | None = None,
        **fields: Any
    ) -> ToolDefinition:
        """Register (or replace) a tool.

        Accepts a ``ToolDefinition``, a mapping of its fields, or the fields
        as keyword arguments. Missing optional fields get their defaults.

        Args:
            definition: Tool definition or mapping of definition fields
            **fields: Definition fields when no definition is passed

        Returns:
            The normalized, stored definition

        Raises:
            InvalidToolDefinition: If the name or handler is missing or
                malformed, or any declared constraint is invalid
        """
        normalized = self._normalize(definition if definition is not None else fields)

        with self._lock:
            if normalized.name in self._tools:
                logger.warning(f"Tool '{normalized.name}' is being re-registered")
            self._tools[normalized.name] = normalized

        logger.info(
            f"Registered tool '{normalized.name}' with risk level "
            f"{normalized.risk_level.value}"
        )
        return normalized

    def _normalize(self, definition: ToolDefinition | Mapping[str, Any]) -> ToolDefinition:
        """Turn registration input into a complete ToolDefinition."""
        if isinstance(definition, ToolDefinition):
            tool_def = definition
        elif isinstance(definition, Mapping):
            name = definition.get("name")
            if not isinstance(name, str) or not name.strip():
                raise InvalidToolDefinition("Tool name must be a non-empty string")
            if not callable(definition.get("handler")):
                raise InvalidToolDefinition(f"Tool '{name}' handler must be callable")
            try:
                tool_def = ToolDefinition.model_validate(
                    {key: value for key, value in definition.items() if value is not None}
                )
            except ValidationError as e:
                raise InvalidToolDefinition(f"Invalid tool definition '{name}': {e}") from e
        else:
            raise InvalidToolDefinition("Tool definition must be a ToolDefinition or a mapping")

        if tool_def.timeout_seconds is None:
            tool_def = tool_def.model_copy(
                update={"timeout_seconds": self.default_timeout_seconds}
            )
        return tool_def

    def unregister_tool(self, name: str) -> bool:
        """Remove a tool. Unknown names are ignored.

        Returns:
            True if a tool was removed
        """
        with self._lock:
            removed = self._tools.pop(name, None) is not None

        if removed:
            logger.info(f"Unregistered tool '{name}'")
        return removed

    def get_tool(self, name: str) -> ToolDefinition | None:
        """Get a tool definition by name."""
        with self._lock:
            return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def list_tools(
        self,
        capability: str | None = None,
        risk_level: RiskLevel | None = None
    ) -> list[ToolSummary]:
        """List tools as redacted summaries, in registration order.

        Args:
            capability: Only tools carrying this capability tag
            risk_level: Only tools with this risk level

        Returns:
            Tool summaries without handlers or policy hooks
        """
        with self._lock:
            tools = list(self._tools.values())

        if capability:
            tools = [tool for tool in tools if capability in tool.capabilities]

        if risk_level:
            tools = [tool for tool in tools if tool.risk_level == risk_level]

        return [tool.to_summary() for tool in tools]

    def get_tools_by_risk_level(self, risk_level: RiskLevel) -> list[ToolDefinition]:
        """Get all tools with specified risk level."""
        with self._lock:
            return [
                tool_def for tool_def in self._tools.values()
                if tool_def.risk_level == risk_level
            ]

    def get_registry_stats(self) -> dict[str, Any]:
        """Get registry statistics."""
        risk_counts = {
            risk_level.value: len(self.get_tools_by_risk_level(risk_level))
            for risk_level in RiskLevel
        }

        with self._lock:
            capabilities = {
                capability
                for tool_def in self._tools.values()
                for capability in tool_def.capabilities
            }
            total = len(self._tools)

        return {
            "total_tools": total,
            "capabilities": sorted(capabilities),
            "risk_level_distribution": risk_counts,
        }

    def clear_registry(self) -> None:
        """Remove all registered tools."""
        with self._lock:
            self._tools.clear()
        logger.info("Tool registry cleared")

    def discover_tools_from_module(self, module: Any) -> list[str]:
        """Register every ``@gateway_tool`` handler found in a module.

        Args:
            module: Python module to scan for tools

        Returns:
            List of registered tool names
        """
        from .decorator import get_tool_metadata

        discovered = []

        for attr_name in dir(module):
            attr = getattr(module, attr_name)
            if not callable(attr):
                continue
            tool_def = get_tool_metadata(attr)
            if tool_def:
                self.register_tool(tool_def)
                discovered.append(tool_def.name)

        logger.info(f"Discovered {len(discovered)} tools from module {module.__name__}")
        return discovered
