"""Policy engine implementation.

This module provides the ``PolicyEngine`` interface the gateway depends on
and the default risk-based engine. Deployments can replace the engine
wholesale with any object exposing ``evaluate(context)``.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any

from ...core.domain.tools import DecisionType, OverrideContext, PolicyDecision
from .rules import LowConfidenceRule, PolicyEvaluationContext, PolicyRule, RiskLevelRule

logger = logging.getLogger(__name__)


class PolicyEngine(ABC):
    """Maps a call to ALLOW, REQUIRE_CONFIRM or DENY."""

    @abstractmethod
    def evaluate(self, context: PolicyEvaluationContext) -> PolicyDecision:
        """Decide whether a call may run now.

        Args:
            context: Tool, params, trust signals and actor of the call

        Returns:
            PolicyDecision with the ordered reasons that produced it
        """
        pass


class DefaultPolicyEngine(PolicyEngine):
    """Risk-based policy with per-tool overrides.

    Evaluation starts at ALLOW. Each applicable rule escalates to
    REQUIRE_CONFIRM and records its name. Finally, a tool's own
    ``PolicyOverride`` may replace the decision outright; it is the only
    way a call can be denied or de-escalated.
    """

    def __init__(
        self,
        confidence_threshold: float = 0.7,
        custom_rules: list[PolicyRule] | None = None
    ):
        """Initialize the policy engine.

        Args:
            confidence_threshold: overall_confidence below this needs confirmation
            custom_rules: Rules to use instead of the defaults
        """
        self.confidence_threshold = confidence_threshold
        self.rules: list[PolicyRule] = (
            list(custom_rules) if custom_rules is not None else self._get_default_rules()
        )

    def _get_default_rules(self) -> list[PolicyRule]:
        """Get the default set of policy rules."""
        return [
            RiskLevelRule(),
            LowConfidenceRule(self.confidence_threshold),
        ]

    def evaluate(self, context: PolicyEvaluationContext) -> PolicyDecision:
        decision = DecisionType.ALLOW
        reasons: list[str] = []

        for rule in self.rules:
            if rule.applies(context):
                decision = DecisionType.REQUIRE_CONFIRM
                reasons.append(rule.name)

        override = context.tool.policy
        if override is not None:
            result = override.decide(
                OverrideContext(
                    params=context.params,
                    signals=context.signals,
                    actor=context.actor,
                    decision=decision,
                )
            )
            if result is not None:
                decision = result.decision
                if result.reason:
                    reasons.append(result.reason)

        logger.info(
            f"Policy evaluation for {context.tool.name}: "
            f"decision={decision.value}, reasons={reasons}"
        )

        return PolicyDecision(decision=decision, reasons=reasons)

    def get_policy_stats(self) -> dict[str, Any]:
        """Get policy engine statistics."""
        return {
            "confidence_threshold": self.confidence_threshold,
            "active_rules": len(self.rules),
            "rule_names": [rule.name for rule in self.rules],
        }

    def add_custom_rule(self, rule: PolicyRule) -> None:
        """Append an escalation rule to the engine."""
        self.rules.append(rule)
        logger.info(f"Added custom policy rule: {rule.name}")

    def remove_rule(self, rule_name: str) -> bool:
        """Remove a policy rule by name.

        Returns:
            True if rule was removed, False if not found
        """
        initial_count = len(self.rules)
        self.rules = [rule for rule in self.rules if rule.name != rule_name]
        removed = len(self.rules) < initial_count

        if removed:
            logger.info(f"Removed policy rule: {rule_name}")

        return removed
