"""Built-in tools shipped with the gateway."""

from .audit_tools import RECENT_ACTIONS_TOOL, build_audit_tools

__all__ = ["RECENT_ACTIONS_TOOL", "build_audit_tools"]
