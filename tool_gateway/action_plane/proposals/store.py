"""In-memory proposal store.

The store owns every proposal record and is the only place their status
changes. Callers receive copies, so a proposal can only move through its
lifecycle via ``approve``, ``reject`` and the execution hooks.
"""

import copy
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable

from ...core.domain.proposals import Proposal, ProposalStatus, RequiredConfirmation
from ...core.domain.tools import ToolDefinition
from ...core.errors import InvalidProposalState, ProposalExpired, ProposalNotFound
from ...core.utils.hashing import params_hash
from ...core.utils.ids import make_id, utc_now

logger = logging.getLogger(__name__)


class ProposalStore:
    """Holds proposals awaiting (or past) human confirmation.

    Proposals are never deleted; terminal ones stay for review.
    """

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[str], str] = make_id,
        ttl_seconds: float | None = None
    ):
        """Initialize an empty store.

        Args:
            clock: Source of the current time
            id_factory: Generates prefixed unique ids
            ttl_seconds: Lifetime of a proposal; None means no expiry
        """
        self._clock = clock
        self._id_factory = id_factory
        self.ttl_seconds = ttl_seconds
        self._proposals: dict[str, Proposal] = {}
        self._lock = threading.RLock()

    def create(
        self,
        tool: ToolDefinition,
        params: dict[str, Any] | None,
        actor: Any = None,
        risk_report: list[str] | None = None
    ) -> Proposal:
        """Create a proposal in NEEDS_CONFIRMATION.

        The params hash and human summary are computed here, once.

        Args:
            tool: Tool the proposal would invoke
            params: Validated params of the call
            actor: Who asked for the call
            risk_report: Policy reasons that triggered confirmation

        Returns:
            Copy of the stored proposal
        """
        params = copy.deepcopy(dict(params or {}))
        created_at = self._clock()
        expires_at = (
            created_at + timedelta(seconds=self.ttl_seconds)
            if self.ttl_seconds is not None
            else None
        )

        proposal = Proposal(
            proposal_id=self._id_factory("proposal"),
            created_at=created_at,
            expires_at=expires_at,
            tool_name=tool.name,
            params=params,
            params_hash=params_hash(params),
            summary_human=tool.build_human_summary(params),
            risk_report=list(risk_report or []),
            required_confirmation=RequiredConfirmation(level=tool.risk_level),
            requested_by=copy.deepcopy(actor),
        )

        with self._lock:
            self._proposals[proposal.proposal_id] = proposal

        logger.info(
            f"Created proposal {proposal.proposal_id} for {tool.name} "
            f"(reasons: {proposal.risk_report})"
        )
        return proposal.model_copy(deep=True)

    def get(self, proposal_id: str) -> Proposal | None:
        """Copy of a proposal, or None if unknown."""
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            return proposal.model_copy(deep=True) if proposal else None

    def list(self, status: ProposalStatus | None = None) -> list[Proposal]:
        """Copies of all proposals, oldest first, optionally by status."""
        with self._lock:
            proposals = list(self._proposals.values())
        if status is not None:
            proposals = [p for p in proposals if p.status == status]
        return [p.model_copy(deep=True) for p in proposals]

    def approve(self, proposal_id: str, confirmation_token: str | None = None) -> Proposal | None:
        """Move a proposal from NEEDS_CONFIRMATION to APPROVED.

        Returns:
            Copy of the approved proposal, or None if unknown

        Raises:
            InvalidProposalState: The proposal is not awaiting confirmation
            ProposalExpired: The proposal outlived its TTL
        """
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                return None

            self._check_transition(proposal, ProposalStatus.APPROVED, "approve")
            if proposal.is_expired(self._clock()):
                raise ProposalExpired(proposal_id, "approve")

            proposal.status = ProposalStatus.APPROVED
            proposal.confirmation_token = confirmation_token
            proposal.approved_at = self._clock()
            approved = proposal.model_copy(deep=True)

        logger.info(f"Proposal {proposal_id} approved")
        return approved

    def reject(self, proposal_id: str) -> Proposal | None:
        """Move a proposal from NEEDS_CONFIRMATION to REJECTED.

        Returns:
            Copy of the rejected proposal, or None if unknown

        Raises:
            InvalidProposalState: The proposal is not awaiting confirmation
        """
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                return None

            self._check_transition(proposal, ProposalStatus.REJECTED, "reject")

            proposal.status = ProposalStatus.REJECTED
            proposal.rejected_at = self._clock()
            rejected = proposal.model_copy(deep=True)

        logger.info(f"Proposal {proposal_id} rejected")
        return rejected

    def get_for_execution(self, proposal_id: str) -> Proposal:
        """Fetch a proposal that is ready to execute.

        Raises:
            ProposalNotFound: Unknown id
            InvalidProposalState: The proposal is not APPROVED
            ProposalExpired: The proposal outlived its TTL
        """
        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                raise ProposalNotFound(proposal_id)
            if proposal.status != ProposalStatus.APPROVED:
                raise InvalidProposalState(proposal_id, proposal.status.value, "execute")
            if proposal.is_expired(self._clock()):
                raise ProposalExpired(proposal_id, "execute")
            return proposal.model_copy(deep=True)

    def finish_execution(self, proposal_id: str, succeeded: bool) -> Proposal | None:
        """Record the outcome of executing an approved proposal.

        A proposal that already reached a terminal state (a concurrent
        execution finished first) is left unchanged.
        """
        new_status = ProposalStatus.EXECUTED if succeeded else ProposalStatus.FAILED

        with self._lock:
            proposal = self._proposals.get(proposal_id)
            if proposal is None:
                return None
            if proposal.can_transition_to(new_status):
                proposal.status = new_status
                proposal.executed_at = self._clock()
                logger.info(f"Proposal {proposal_id} {new_status.value.lower()}")
            return proposal.model_copy(deep=True)

    @staticmethod
    def _check_transition(proposal: Proposal, new_status: ProposalStatus, operation: str) -> None:
        if not proposal.can_transition_to(new_status):
            raise InvalidProposalState(proposal.proposal_id, proposal.status.value, operation)

    def __len__(self) -> int:
        with self._lock:
            return len(self._proposals)
