"""Tool Gateway - the single path from a caller to a tool handler.

Every call flows registry lookup -> parameter validation -> policy
evaluation -> (executor | proposal) -> audit log. The gateway owns all of
its state; create one instance per process (or per test) and pass it to
whoever needs it.
"""

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Callable

from pydantic import ValidationError

from ..core.config import Settings
from ..core.domain.audit import AuditEventType
from ..core.domain.tools import (
    CallRequest,
    DecisionType,
    ExecutionResult,
    PolicyDecision,
    ToolDefinition,
    ToolStatus,
    ToolSummary,
)
from ..core.errors import (
    INVALID_REQUEST,
    POLICY_DENIED,
    TOOL_ERROR,
    UNKNOWN_TOOL,
    InvalidPolicyEngine,
    ParamValidationError,
)
from ..core.utils.ids import make_id, utc_now
from .audit import AuditLog
from .executor import IdempotencyCache, ToolExecutor
from .policy_engine import DefaultPolicyEngine, PolicyEngine, PolicyEvaluationContext
from .proposals import ProposalManager, ProposalStore
from .tool_registry import ToolRegistry, validate_params
from .tools import build_audit_tools

logger = logging.getLogger(__name__)


class ToolGateway:
    """Mediates every tool invocation.

    Attributes:
        registry: Registered tool definitions
        audit: Append-only audit log
        proposals: Proposal lifecycle operations
        executor: Runs allowed and approved calls
    """

    def __init__(
        self,
        settings: Settings | None = None,
        policy_engine: PolicyEngine | None = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[str], str] = make_id
    ):
        """Initialize a gateway with empty state.

        Args:
            settings: Configuration; loaded from the environment when None
            policy_engine: Engine to start with; the default risk-based one when None
            clock: Source of timestamps (inject a fixed clock in tests)
            id_factory: Generates prefixed unique ids (inject for determinism)
        """
        self.settings = settings or Settings()

        self.registry = ToolRegistry(
            default_timeout_seconds=self.settings.default_tool_timeout_seconds
        )
        self.audit = AuditLog(
            clock=clock,
            id_factory=id_factory,
            default_limit=self.settings.audit_default_limit,
        )
        self.idempotency_cache = IdempotencyCache()
        self.executor = ToolExecutor(self.audit, self.idempotency_cache, id_factory)
        self.proposals = ProposalManager(
            ProposalStore(
                clock=clock,
                id_factory=id_factory,
                ttl_seconds=self.settings.proposal_ttl_seconds,
            ),
            self.registry,
            self.executor,
            self.audit,
        )

        self._policy_engine: Any = policy_engine or DefaultPolicyEngine(
            confidence_threshold=self.settings.confidence_threshold
        )

    # Registry

    def register_tool(
        self,
        definition: ToolDefinition | Mapping[str, Any] | None = None,
        **fields: Any
    ) -> ToolDefinition:
        """Register or replace a tool. See ``ToolRegistry.register_tool``."""
        return self.registry.register_tool(definition, **fields)

    def unregister_tool(self, name: str) -> None:
        """Remove a tool; unknown names are ignored."""
        self.registry.unregister_tool(name)

    def list_tools(self) -> list[ToolSummary]:
        """Redacted listing of every registered tool."""
        return self.registry.list_tools()

    # Policy

    @property
    def policy_engine(self) -> Any:
        return self._policy_engine

    def set_policy_engine(self, engine: Any) -> None:
        """Replace the policy engine.

        Args:
            engine: Any object with an ``evaluate(context)`` method returning a
                PolicyDecision (or a mapping with ``decision`` and ``reasons``)

        Raises:
            InvalidPolicyEngine: The engine has no callable evaluate
        """
        if engine is None or not callable(getattr(engine, "evaluate", None)):
            raise InvalidPolicyEngine("Policy engine must provide evaluate()")
        self._policy_engine = engine
        logger.info(f"Policy engine set to {type(engine).__name__}")

    def _evaluate_policy(self, tool: ToolDefinition, request: CallRequest) -> PolicyDecision:
        context = PolicyEvaluationContext(
            tool=tool,
            params=request.params,
            signals=request.signals,
            actor=request.actor,
        )
        decision = self._policy_engine.evaluate(context)
        if not isinstance(decision, PolicyDecision):
            decision = PolicyDecision.model_validate(decision)
        return decision

    # Calls

    async def call_tool(
        self,
        request: CallRequest | Mapping[str, Any] | None = None,
        **fields: Any
    ) -> ExecutionResult:
        """Invoke a tool through validation, policy and execution.

        Never raises for call-path failures: unknown tools, invalid params,
        denials, confirmations, handler errors and timeouts all come back as
        an ExecutionResult, and each outcome is audited.

        Args:
            request: CallRequest, or a mapping of its fields
            **fields: CallRequest fields when no request is passed

        Returns:
            Normalized result with a display-ready ``human_summary``
        """
        try:
            call = self._coerce_request(request, fields)
        except ValidationError as e:
            raw_name = self._raw_field(request, fields, "tool_name")
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=str(raw_name or ""),
                status=ToolStatus.ERROR.value,
                error=INVALID_REQUEST,
            )
            logger.warning(f"Rejected malformed call request: {e.error_count()} errors")
            return ExecutionResult.failure(INVALID_REQUEST, "The call request is malformed")

        tool = self.registry.get_tool(call.tool_name)
        if tool is None:
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=call.tool_name,
                status=ToolStatus.ERROR.value,
                actor=call.actor,
                params=call.params,
                error=UNKNOWN_TOOL,
            )
            return ExecutionResult.failure(UNKNOWN_TOOL, f"Unknown tool '{call.tool_name}'")

        try:
            validate_params(tool.params_schema, call.params)
        except ParamValidationError as e:
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=tool.name,
                status=ToolStatus.ERROR.value,
                actor=call.actor,
                params=call.params,
                error=str(e),
            )
            return ExecutionResult.failure(str(e), f"{tool.name} rejected: {e}")

        try:
            return await self._decide_and_run(tool, call)
        except Exception as e:
            message = str(e) or TOOL_ERROR
            logger.exception(f"Unexpected error while calling {tool.name}")
            self._record_failure(tool.name, call, message)
            return ExecutionResult.failure(message, f"{tool.name} failed: {message}")

    def _record_failure(self, tool_name: str, call: CallRequest, message: str) -> None:
        """Audit an unexpected failure; the entry itself must not raise."""
        try:
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=tool_name,
                status=ToolStatus.ERROR.value,
                actor=call.actor,
                params=call.params,
                error=message,
            )
        except Exception:
            logger.exception(f"Could not audit failed call to {tool_name} in full")
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=tool_name,
                status=ToolStatus.ERROR.value,
                params_digest="unavailable",
                error=message,
            )

    async def _decide_and_run(self, tool: ToolDefinition, call: CallRequest) -> ExecutionResult:
        policy = self._evaluate_policy(tool, call)

        if policy.decision == DecisionType.DENY:
            self.audit.record(
                AuditEventType.TOOL_CALL,
                tool_name=tool.name,
                status=ToolStatus.DENIED.value,
                actor=call.actor,
                params=call.params,
                decision=policy.decision,
                reasons=policy.reasons,
            )
            return ExecutionResult(
                status=ToolStatus.DENIED,
                human_summary=tool.build_human_summary(call.params),
                error=POLICY_DENIED,
                reason=policy.reasons,
            )

        if policy.decision == DecisionType.REQUIRE_CONFIRM:
            proposal = self.proposals.open(
                tool, call.params, call.actor, policy.reasons, policy.decision
            )
            return ExecutionResult(
                status=ToolStatus.CONFIRMATION_REQUIRED,
                proposal_id=proposal.proposal_id,
                human_summary=proposal.summary_human,
                reason=policy.reasons,
            )

        return await self.executor.execute(
            tool,
            call.params,
            actor=call.actor,
            signals=call.signals,
            idempotency_key=call.idempotency_key,
            dry_run=call.dry_run,
        )

    @staticmethod
    def _coerce_request(
        request: CallRequest | Mapping[str, Any] | None,
        fields: dict[str, Any]
    ) -> CallRequest:
        if isinstance(request, CallRequest):
            return request.model_copy(update=fields) if fields else request
        data = dict(request or {})
        data.update(fields)
        return CallRequest.model_validate(data)

    @staticmethod
    def _raw_field(
        request: CallRequest | Mapping[str, Any] | None,
        fields: dict[str, Any],
        name: str
    ) -> Any:
        if name in fields:
            return fields[name]
        if isinstance(request, Mapping):
            return request.get(name) or request.get("name") or request.get("tool")
        return None


def build_gateway(settings: Settings | None = None, **kwargs: Any) -> ToolGateway:
    """Create a gateway with the built-in tools registered.

    Args:
        settings: Configuration; loaded from the environment when None
        **kwargs: Forwarded to ``ToolGateway``

    Returns:
        Ready-to-use gateway
    """
    gateway = ToolGateway(settings=settings, **kwargs)
    for tool_def in build_audit_tools(gateway.audit):
        gateway.register_tool(tool_def)
    return gateway
