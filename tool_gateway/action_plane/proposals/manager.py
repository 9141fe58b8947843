"""Proposal lifecycle operations exposed by the gateway.

``ProposalManager`` ties the proposal store to the registry, executor and
audit log: it is what ``gateway.proposals`` refers to.
"""

import logging
from typing import Any

from ...core.domain.audit import AuditEventType
from ...core.domain.proposals import Proposal, ProposalStatus
from ...core.domain.tools import DecisionType, ExecutionResult, ToolDefinition, ToolStatus
from ...core.errors import (
    PROPOSAL_EXPIRED,
    PROPOSAL_NOT_APPROVED,
    PROPOSAL_NOT_FOUND,
    UNKNOWN_TOOL,
    InvalidProposalState,
    ProposalExpired,
    ProposalNotFound,
)
from ..audit import AuditLog
from ..executor import ToolExecutor
from ..tool_registry import ToolRegistry, validate_params
from .store import ProposalStore

logger = logging.getLogger(__name__)

MANUAL_REASON = "manual"


class ProposalManager:
    """Create, review and execute proposals."""

    def __init__(
        self,
        store: ProposalStore,
        registry: ToolRegistry,
        executor: ToolExecutor,
        audit_log: AuditLog
    ):
        self.store = store
        self.registry = registry
        self.executor = executor
        self.audit_log = audit_log

    def open(
        self,
        tool: ToolDefinition,
        params: dict[str, Any],
        actor: Any,
        reasons: list[str],
        decision: DecisionType | None = None
    ) -> Proposal:
        """Store a new proposal and audit its creation."""
        proposal = self.store.create(tool, params, actor=actor, risk_report=reasons)
        self.audit_log.record(
            AuditEventType.PROPOSAL_CREATED,
            tool_name=tool.name,
            status=ToolStatus.CONFIRMATION_REQUIRED.value,
            actor=actor,
            params_digest=proposal.params_hash,
            decision=decision,
            reasons=reasons,
            proposal_id=proposal.proposal_id,
        )
        return proposal

    def create(
        self,
        tool_name: str,
        params: dict[str, Any] | None = None,
        actor: Any = None,
        signals: dict[str, Any] | None = None
    ) -> Proposal | None:
        """Manually request confirmation for a call, bypassing the policy engine.

        Args:
            tool_name: Tool to invoke once approved
            params: Call params, validated against the tool schema
            actor: Who is asking
            signals: Trust signals (accepted for symmetry with calls; unused)

        Returns:
            The new proposal, or None if the tool is unknown

        Raises:
            ParamValidationError: The params violate the tool schema
        """
        tool = self.registry.get_tool(tool_name)
        if tool is None:
            return None

        params = params or {}
        validate_params(tool.params_schema, params)
        return self.open(tool, params, actor, [MANUAL_REASON])

    def get(self, proposal_id: str) -> Proposal | None:
        return self.store.get(proposal_id)

    def list_pending(self) -> list[Proposal]:
        """Proposals still waiting for a human."""
        return self.store.list(status=ProposalStatus.NEEDS_CONFIRMATION)

    def approve(self, proposal_id: str, confirmation_token: str | None = None) -> Proposal | None:
        """Approve a pending proposal.

        Returns:
            The approved proposal, or None if unknown

        Raises:
            InvalidProposalState: The proposal is not awaiting confirmation
        """
        proposal = self.store.approve(proposal_id, confirmation_token)
        if proposal is not None:
            self._audit_transition(proposal, AuditEventType.PROPOSAL_APPROVED)
        return proposal

    def reject(self, proposal_id: str) -> Proposal | None:
        """Reject a pending proposal.

        Returns:
            The rejected proposal, or None if unknown

        Raises:
            InvalidProposalState: The proposal is not awaiting confirmation
        """
        proposal = self.store.reject(proposal_id)
        if proposal is not None:
            self._audit_transition(proposal, AuditEventType.PROPOSAL_REJECTED)
        return proposal

    async def execute(self, proposal_id: str) -> ExecutionResult:
        """Run an approved proposal.

        The proposal's params hash is the idempotency key, so executing the
        same proposal twice never runs the handler twice. Failures to start
        (unknown proposal, wrong state, unknown tool) leave the proposal
        untouched and are returned as ERROR results.
        """
        try:
            proposal = self.store.get_for_execution(proposal_id)
        except ProposalNotFound:
            return ExecutionResult.failure(
                PROPOSAL_NOT_FOUND, f"Proposal {proposal_id} does not exist"
            )
        except ProposalExpired:
            return ExecutionResult.failure(
                PROPOSAL_EXPIRED, f"Proposal {proposal_id} has expired"
            )
        except InvalidProposalState as e:
            return ExecutionResult.failure(
                PROPOSAL_NOT_APPROVED,
                f"Proposal {proposal_id} is {e.status}, not APPROVED"
            )

        tool = self.registry.get_tool(proposal.tool_name)
        if tool is None:
            logger.warning(
                f"Proposal {proposal_id} refers to unregistered tool {proposal.tool_name}"
            )
            return ExecutionResult.failure(
                UNKNOWN_TOOL, f"Unknown tool '{proposal.tool_name}'"
            )

        result = await self.executor.execute(
            tool,
            proposal.params,
            actor=proposal.requested_by,
            signals={},
            idempotency_key=proposal.params_hash,
            dry_run=False,
        )

        self.store.finish_execution(proposal_id, succeeded=result.is_ok)
        return result

    def _audit_transition(self, proposal: Proposal, event: AuditEventType) -> None:
        self.audit_log.record(
            event,
            tool_name=proposal.tool_name,
            status=proposal.status.value,
            actor=proposal.requested_by,
            params_digest=proposal.params_hash,
            proposal_id=proposal.proposal_id,
        )
