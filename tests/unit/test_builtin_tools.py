"""Unit tests for the built-in audit tools."""

import pytest

from tool_gateway.action_plane.gateway import build_gateway
from tool_gateway.action_plane.tools import RECENT_ACTIONS_TOOL
from tool_gateway.action_plane.tools.audit_tools import _resolve_limit
from tool_gateway.core.config import Settings
from tool_gateway.core.domain.tools import RiskLevel, ToolStatus


class TestRecentActionsTool:
    """Test cases for audit.get_recent_actions."""

    def setup_method(self):
        """Build a gateway with the built-in tools registered."""
        self.gateway = build_gateway(Settings())
        self.gateway.register_tool(name="echo", handler=lambda params, context: params)

    def test_registered_by_build_gateway(self):
        tool = self.gateway.registry.get_tool(RECENT_ACTIONS_TOOL)

        assert tool is not None
        assert tool.risk_level == RiskLevel.LOW
        assert tool.capabilities == ["audit.read"]
        assert tool.params_schema == {"properties": {"limit": {"type": "number"}}}

    @pytest.mark.asyncio
    async def test_returns_recent_entries(self):
        """Test the tool returns the last entries as plain dicts."""
        for i in range(3):
            await self.gateway.call_tool(tool_name="echo", params={"i": i})

        result = await self.gateway.call_tool(
            tool_name=RECENT_ACTIONS_TOOL, params={"limit": 2}
        )

        assert result.status == ToolStatus.OK
        assert result.human_summary == "Read recent audit actions"
        assert len(result.result) == 2
        assert all(entry["tool_name"] == "echo" for entry in result.result)
        assert all(isinstance(entry["timestamp"], str) for entry in result.result)

    @pytest.mark.asyncio
    async def test_default_limit(self):
        for i in range(25):
            await self.gateway.call_tool(tool_name="echo", params={"i": i})

        result = await self.gateway.call_tool(tool_name=RECENT_ACTIONS_TOOL)

        assert len(result.result) == 20

    @pytest.mark.asyncio
    async def test_limit_must_be_number(self):
        result = await self.gateway.call_tool(
            tool_name=RECENT_ACTIONS_TOOL, params={"limit": "5"}
        )

        assert result.status == ToolStatus.ERROR
        assert result.error == "Invalid type for limit"

    @pytest.mark.parametrize("value,expected", [
        (5, 5),
        (2.9, 2),
        (None, 20),
        (True, 20),
        (float("inf"), 20),
        (float("nan"), 20),
    ])
    def test_resolve_limit(self, value, expected):
        assert _resolve_limit(value, 20) == expected
