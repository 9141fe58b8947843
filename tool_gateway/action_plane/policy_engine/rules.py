"""Policy rules used by the default policy engine.

Rules are escalation-only: a rule that applies moves a call from ALLOW to
REQUIRE_CONFIRM and records its name as a reason. Refusing a call (DENY)
is reserved for per-tool overrides.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ...core.domain.tools import RiskLevel, ToolDefinition

CONFIRMATION_RISK_LEVELS = frozenset({RiskLevel.HIGH, RiskLevel.CRITICAL})


class PolicyEvaluationContext(BaseModel):
    """Everything a policy engine may consider for one call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tool: ToolDefinition
    params: dict[str, Any] = Field(default_factory=dict)
    signals: dict[str, Any] = Field(default_factory=dict)
    actor: Any = None


class PolicyRule(ABC):
    """Abstract base class for policy rules."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Reason recorded when the rule applies."""
        pass

    @abstractmethod
    def applies(self, context: PolicyEvaluationContext) -> bool:
        """Return True if the call needs human confirmation under this rule."""
        pass


class RiskLevelRule(PolicyRule):
    """HIGH and CRITICAL tools always need confirmation."""

    @property
    def name(self) -> str:
        return "risk_level"

    def applies(self, context: PolicyEvaluationContext) -> bool:
        return context.tool.risk_level in CONFIRMATION_RISK_LEVELS


class LowConfidenceRule(PolicyRule):
    """Calls the caller itself is unsure about need confirmation."""

    def __init__(self, threshold: float = 0.7):
        self.threshold = threshold

    @property
    def name(self) -> str:
        return "low_confidence"

    def applies(self, context: PolicyEvaluationContext) -> bool:
        confidence = context.signals.get("overall_confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            return False
        return confidence < self.threshold
