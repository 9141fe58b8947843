"""Policy Engine - decides whether a tool call runs, waits or is refused.

This module provides the replaceable policy engine interface, the default
risk-based engine and the rules it applies.
"""

from .engine import DefaultPolicyEngine, PolicyEngine
from .rules import (
    LowConfidenceRule,
    PolicyEvaluationContext,
    PolicyRule,
    RiskLevelRule,
)

__all__ = [
    "DefaultPolicyEngine",
    "PolicyEngine",
    "PolicyEvaluationContext",
    "PolicyRule",
    "RiskLevelRule",
    "LowConfidenceRule",
]
