"""Unit tests for the proposal store and lifecycle manager."""

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from tool_gateway.action_plane.audit import AuditLog
from tool_gateway.action_plane.executor import ToolExecutor
from tool_gateway.action_plane.proposals import ProposalManager, ProposalStore
from tool_gateway.action_plane.tool_registry import ToolRegistry
from tool_gateway.core.domain.audit import AuditEventType
from tool_gateway.core.domain.proposals import ProposalStatus
from tool_gateway.core.domain.tools import RiskLevel, ToolDefinition, ToolStatus
from tool_gateway.core.errors import (
    InvalidParamType,
    InvalidProposalState,
    ProposalExpired,
    ProposalNotFound,
)
from tool_gateway.core.utils import params_hash

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def sequential_ids():
    counter = itertools.count(1)
    return lambda prefix: f"{prefix}_{next(counter)}"


def wipe_handler(params, context):
    return "wiped"


WIPE = ToolDefinition(
    name="wipe",
    handler=wipe_handler,
    risk_level=RiskLevel.CRITICAL,
    summary=lambda params: f"Wipe {params.get('table', 'everything')}",
)


class TestProposalStore:
    """Test cases for ProposalStore."""

    def setup_method(self):
        """Set up test fixtures."""
        self.clock = FakeClock()
        self.store = ProposalStore(clock=self.clock, id_factory=sequential_ids())

    def test_create_is_self_describing(self):
        """Test hash and summary are computed at creation."""
        proposal = self.store.create(
            WIPE, {"table": "users"}, actor={"id": "u1"}, risk_report=["risk_level"]
        )

        assert proposal.proposal_id == "proposal_1"
        assert proposal.created_at == START
        assert proposal.status == ProposalStatus.NEEDS_CONFIRMATION
        assert proposal.params_hash == params_hash({"table": "users"})
        assert proposal.summary_human == "Wipe users"
        assert proposal.risk_report == ["risk_level"]
        assert proposal.requested_by == {"id": "u1"}
        assert proposal.required_confirmation.method == "user_confirm"
        assert proposal.required_confirmation.level == RiskLevel.CRITICAL
        assert proposal.expires_at is None

    def test_returned_copies_are_detached(self):
        """Test editing a returned proposal does not change the store."""
        proposal = self.store.create(WIPE, {})
        proposal.status = ProposalStatus.EXECUTED

        assert self.store.get(proposal.proposal_id).status == ProposalStatus.NEEDS_CONFIRMATION

    def test_create_detached_from_caller_inputs(self):
        """Test later edits to the caller's params and actor do not reach the proposal."""
        params = {"table": "users", "filters": {"age": 30}}
        actor = {"id": "u1"}
        proposal = self.store.create(WIPE, params, actor=actor)

        params["filters"]["age"] = 99
        actor["id"] = "u2"

        stored = self.store.get(proposal.proposal_id)
        assert stored.params == {"table": "users", "filters": {"age": 30}}
        assert stored.requested_by == {"id": "u1"}

    def test_approve(self):
        """Test approval records the token and time."""
        proposal = self.store.create(WIPE, {})
        self.clock.advance(5)

        approved = self.store.approve(proposal.proposal_id, "token-1")

        assert approved.status == ProposalStatus.APPROVED
        assert approved.confirmation_token == "token-1"
        assert approved.approved_at == START + timedelta(seconds=5)

    def test_approve_unknown_returns_none(self):
        assert self.store.approve("proposal_404") is None
        assert self.store.reject("proposal_404") is None
        assert self.store.get("proposal_404") is None

    def test_reject(self):
        """Test rejection is terminal."""
        proposal = self.store.create(WIPE, {})

        rejected = self.store.reject(proposal.proposal_id)

        assert rejected.status == ProposalStatus.REJECTED
        assert rejected.rejected_at == START
        with pytest.raises(InvalidProposalState):
            self.store.approve(proposal.proposal_id)

    def test_double_approve_rejected(self):
        """Test approving twice is an invalid transition."""
        proposal = self.store.create(WIPE, {})
        self.store.approve(proposal.proposal_id)

        with pytest.raises(InvalidProposalState) as exc_info:
            self.store.approve(proposal.proposal_id)

        assert exc_info.value.status == "APPROVED"
        assert exc_info.value.operation == "approve"

    def test_get_for_execution_requires_approval(self):
        proposal = self.store.create(WIPE, {})

        with pytest.raises(InvalidProposalState):
            self.store.get_for_execution(proposal.proposal_id)
        with pytest.raises(ProposalNotFound):
            self.store.get_for_execution("proposal_404")

    def test_finish_execution(self):
        """Test execution outcome moves APPROVED to EXECUTED or FAILED once."""
        ok = self.store.create(WIPE, {})
        bad = self.store.create(WIPE, {"table": "x"})
        self.store.approve(ok.proposal_id)
        self.store.approve(bad.proposal_id)

        assert self.store.finish_execution(ok.proposal_id, True).status == ProposalStatus.EXECUTED
        assert self.store.finish_execution(bad.proposal_id, False).status == ProposalStatus.FAILED
        assert self.store.finish_execution(ok.proposal_id, False).status == ProposalStatus.EXECUTED

    def test_ttl_expiry(self):
        """Test proposals past their TTL cannot be approved or executed."""
        store = ProposalStore(clock=self.clock, id_factory=sequential_ids(), ttl_seconds=60)
        stale = store.create(WIPE, {})
        fresh = store.create(WIPE, {"table": "t"})
        store.approve(fresh.proposal_id)

        assert stale.expires_at == START + timedelta(seconds=60)

        self.clock.advance(61)

        with pytest.raises(ProposalExpired):
            store.approve(stale.proposal_id)
        with pytest.raises(ProposalExpired):
            store.get_for_execution(fresh.proposal_id)

    def test_list_by_status(self):
        first = self.store.create(WIPE, {})
        self.store.create(WIPE, {"table": "t"})
        self.store.reject(first.proposal_id)

        pending = self.store.list(status=ProposalStatus.NEEDS_CONFIRMATION)

        assert len(self.store.list()) == 2
        assert [p.proposal_id for p in pending] == ["proposal_2"]
        assert len(self.store) == 2


class TestProposalManager:
    """Test cases for ProposalManager."""

    def setup_method(self):
        """Set up test fixtures."""
        ids = sequential_ids()
        self.clock = FakeClock()
        self.calls = []

        def record_handler(params, context):
            self.calls.append(params)
            if params.get("fail"):
                raise RuntimeError("disk full")
            return "done"

        self.registry = ToolRegistry()
        self.registry.register_tool(
            name="wipe",
            handler=record_handler,
            risk_level=RiskLevel.CRITICAL,
            params_schema={"properties": {"table": {"type": "string"}}},
        )
        self.audit = AuditLog(clock=self.clock, id_factory=ids)
        self.manager = ProposalManager(
            ProposalStore(clock=self.clock, id_factory=ids),
            self.registry,
            ToolExecutor(self.audit, id_factory=ids),
            self.audit,
        )

    def test_manual_create(self):
        """Test manual proposals are audited with the 'manual' reason."""
        proposal = self.manager.create("wipe", {"table": "users"}, actor="alice")

        assert proposal.risk_report == ["manual"]
        assert proposal.requested_by == "alice"

        entry = self.audit.list()[-1]
        assert entry.event == AuditEventType.PROPOSAL_CREATED
        assert entry.proposal_id == proposal.proposal_id
        assert entry.params_hash == proposal.params_hash

    def test_manual_create_unknown_tool(self):
        assert self.manager.create("nope", {}) is None

    def test_manual_create_validates(self):
        with pytest.raises(InvalidParamType):
            self.manager.create("wipe", {"table": 7})

    @pytest.mark.asyncio
    async def test_execute_not_approved(self):
        """Test pending proposals never reach the handler."""
        proposal = self.manager.create("wipe", {})

        result = await self.manager.execute(proposal.proposal_id)

        assert result.status == ToolStatus.ERROR
        assert result.error == "PROPOSAL_NOT_APPROVED"
        assert self.calls == []
        assert self.manager.get(proposal.proposal_id).status == ProposalStatus.NEEDS_CONFIRMATION

    @pytest.mark.asyncio
    async def test_execute_unknown(self):
        result = await self.manager.execute("proposal_404")

        assert result.error == "PROPOSAL_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_execute_after_approval(self):
        """Test approved proposals run once and become EXECUTED."""
        proposal = self.manager.create("wipe", {"table": "users"})
        self.manager.approve(proposal.proposal_id)

        result = await self.manager.execute(proposal.proposal_id)

        assert result.status == ToolStatus.OK
        assert result.result == "done"
        assert self.calls == [{"table": "users"}]
        assert self.manager.get(proposal.proposal_id).status == ProposalStatus.EXECUTED

    @pytest.mark.asyncio
    async def test_execute_twice_is_rejected(self):
        """Test an executed proposal cannot run again."""
        proposal = self.manager.create("wipe", {})
        self.manager.approve(proposal.proposal_id)
        await self.manager.execute(proposal.proposal_id)

        again = await self.manager.execute(proposal.proposal_id)

        assert again.error == "PROPOSAL_NOT_APPROVED"
        assert len(self.calls) == 1

    @pytest.mark.asyncio
    async def test_failed_execution(self):
        """Test handler errors mark the proposal FAILED."""
        proposal = self.manager.create("wipe", {"fail": True})
        self.manager.approve(proposal.proposal_id)

        result = await self.manager.execute(proposal.proposal_id)

        assert result.status == ToolStatus.ERROR
        assert result.error == "disk full"
        assert self.manager.get(proposal.proposal_id).status == ProposalStatus.FAILED

    @pytest.mark.asyncio
    async def test_execute_unregistered_tool(self):
        """Test a tool removed after approval leaves the proposal APPROVED."""
        proposal = self.manager.create("wipe", {})
        self.manager.approve(proposal.proposal_id)
        self.registry.unregister_tool("wipe")

        result = await self.manager.execute(proposal.proposal_id)

        assert result.error == "UNKNOWN_TOOL"
        assert self.manager.get(proposal.proposal_id).status == ProposalStatus.APPROVED

    def test_approve_and_reject_audited(self):
        first = self.manager.create("wipe", {})
        second = self.manager.create("wipe", {"table": "t"})

        self.manager.approve(first.proposal_id, "tok")
        self.manager.reject(second.proposal_id)

        events = [e.event for e in self.audit.list()]
        assert events[-2:] == [
            AuditEventType.PROPOSAL_APPROVED,
            AuditEventType.PROPOSAL_REJECTED,
        ]
        assert [p.proposal_id for p in self.manager.list_pending()] == []
