"""Proposal models for the human-confirmation workflow.

A proposal is a call the policy engine parked until a human decides.
Its lifecycle is:

    NEEDS_CONFIRMATION -> APPROVED -> EXECUTED | FAILED
    NEEDS_CONFIRMATION -> REJECTED
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .tools import RiskLevel


class ProposalStatus(str, Enum):
    """Lifecycle states of a proposal."""

    NEEDS_CONFIRMATION = "NEEDS_CONFIRMATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXECUTED = "EXECUTED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_PROPOSAL_STATES


TERMINAL_PROPOSAL_STATES = frozenset(
    {ProposalStatus.REJECTED, ProposalStatus.EXECUTED, ProposalStatus.FAILED}
)

# Allowed lifecycle edges
PROPOSAL_TRANSITIONS: dict[ProposalStatus, frozenset[ProposalStatus]] = {
    ProposalStatus.NEEDS_CONFIRMATION: frozenset(
        {ProposalStatus.APPROVED, ProposalStatus.REJECTED}
    ),
    ProposalStatus.APPROVED: frozenset(
        {ProposalStatus.EXECUTED, ProposalStatus.FAILED}
    ),
    ProposalStatus.REJECTED: frozenset(),
    ProposalStatus.EXECUTED: frozenset(),
    ProposalStatus.FAILED: frozenset(),
}


class RequiredConfirmation(BaseModel):
    """How a proposal must be confirmed."""

    method: str = "user_confirm"
    level: RiskLevel = RiskLevel.LOW


class Proposal(BaseModel):
    """A call awaiting human confirmation.

    Proposals are self-describing: the params hash and human summary are
    computed at creation so reviewing one never re-invokes a handler.
    """

    proposal_id: str = Field(..., description="Unique proposal identifier")
    created_at: datetime = Field(..., description="When the proposal was created")
    expires_at: datetime | None = Field(
        None,
        description="After this instant the proposal can no longer be approved or executed"
    )

    tool_name: str = Field(..., description="Tool the proposal would invoke")
    params: dict[str, Any] = Field(default_factory=dict)
    params_hash: str = Field(..., description="Canonical hash of params")
    summary_human: str = Field(..., description="What the call would do")
    risk_report: list[str] = Field(
        default_factory=list,
        description="Policy reasons that triggered confirmation"
    )
    required_confirmation: RequiredConfirmation = Field(
        default_factory=RequiredConfirmation
    )
    requested_by: Any = None

    status: ProposalStatus = Field(default=ProposalStatus.NEEDS_CONFIRMATION)
    confirmation_token: str | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    executed_at: datetime | None = None

    def can_transition_to(self, new_status: ProposalStatus) -> bool:
        """Check the lifecycle allows moving to ``new_status``."""
        return new_status in PROPOSAL_TRANSITIONS[self.status]

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at
