"""Audit tools - read-only access to the gateway's own audit log.

These tools are bound to one ``AuditLog`` at construction time, so each
gateway exposes its own history and nothing else.
"""

import math
from typing import Any

from ...core.domain.tools import RiskLevel, ToolContext, ToolDefinition, ToolStatus
from ..audit import AuditLog
from ..tool_registry.decorator import gateway_tool, get_tool_metadata

RECENT_ACTIONS_TOOL = "audit.get_recent_actions"


def _resolve_limit(value: Any, default: int) -> int:
    """Integer part of a finite numeric limit, else the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value):
        return default
    return int(value)


def build_audit_tools(audit_log: AuditLog) -> list[ToolDefinition]:
    """Create the audit tool definitions for one audit log.

    Args:
        audit_log: Log the tools read from

    Returns:
        Tool definitions ready to register
    """

    @gateway_tool(
        name=RECENT_ACTIONS_TOOL,
        description="Return the most recent audit log entries",
        risk_level=RiskLevel.LOW,
        params_schema={"properties": {"limit": {"type": "number"}}},
        capabilities=["audit.read"],
        summary=lambda params: "Read recent audit actions",
    )
    def get_recent_actions(params: dict[str, Any], context: ToolContext) -> dict[str, Any]:
        limit = _resolve_limit(params.get("limit"), audit_log.default_limit)
        entries = audit_log.list(limit)
        return {
            "status": ToolStatus.OK.value,
            "result": [entry.model_dump(mode="json") for entry in entries],
        }

    return [get_tool_metadata(get_recent_actions)]
