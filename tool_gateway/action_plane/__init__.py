"""Action Plane - the gateway between callers and tool handlers.

The action plane registers tools, validates parameters, applies policy,
parks risky calls as proposals and records every outcome in the audit log.
"""

from .gateway import ToolGateway, build_gateway
from .policy_engine import DefaultPolicyEngine, PolicyEngine
from .tool_registry import ToolRegistry, gateway_tool

__all__ = [
    "ToolGateway",
    "build_gateway",
    "DefaultPolicyEngine",
    "PolicyEngine",
    "ToolRegistry",
    "gateway_tool",
]
