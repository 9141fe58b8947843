"""Unit tests for the HTTP interface."""

import pytest
from fastapi.testclient import TestClient

from tool_gateway.action_plane.gateway import build_gateway
from tool_gateway.core.config import Settings
from tool_gateway.core.domain.tools import RiskLevel
from tool_gateway.interfaces.http import GatewayApp


class TestGatewayApp:
    """Test cases for the FastAPI application."""

    def setup_method(self):
        """Set up an app around a fresh gateway."""
        self.gateway = build_gateway(Settings())
        self.wipe_calls = []

        def wipe(params, context):
            self.wipe_calls.append(params)
            return "wiped"

        self.gateway.register_tool(
            name="echo",
            description="Echo a message",
            handler=lambda params, context: params["msg"],
            params_schema={"required": ["msg"], "properties": {"msg": {"type": "string"}}},
        )
        self.gateway.register_tool(
            name="wipe",
            handler=wipe,
            risk_level=RiskLevel.CRITICAL,
            params_schema={"properties": {"table": {"type": "string"}}},
        )
        self.client = TestClient(GatewayApp(self.gateway).app)

    def _pending_proposal(self) -> str:
        response = self.client.post("/tools/call", json={"tool_name": "wipe", "params": {}})
        return response.json()["proposal_id"]

    def test_health_check(self):
        response = self.client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["tools"] == 3

    def test_list_tools(self):
        response = self.client.get("/tools")

        assert response.status_code == 200
        names = [tool["name"] for tool in response.json()]
        assert names == ["audit.get_recent_actions", "echo", "wipe"]
        assert all("handler" not in tool for tool in response.json())

    def test_call_tool_ok(self):
        response = self.client.post(
            "/tools/call", json={"tool_name": "echo", "params": {"msg": "hi"}}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "OK"
        assert data["result"] == "hi"
        assert data["human_summary"] == "echo executed"

    def test_call_tool_accepts_name_alias(self):
        response = self.client.post("/tools/call", json={"name": "echo", "params": {"msg": "a"}})

        assert response.json()["result"] == "a"

    def test_call_unknown_tool(self):
        response = self.client.post("/tools/call", json={"tool_name": "nope"})

        assert response.status_code == 200
        assert response.json()["error"] == "UNKNOWN_TOOL"

    def test_proposal_flow(self):
        """Test confirm, approve and execute over HTTP."""
        proposal_id = self._pending_proposal()

        fetched = self.client.get(f"/proposals/{proposal_id}")
        assert fetched.status_code == 200
        assert fetched.json()["status"] == "NEEDS_CONFIRMATION"

        approved = self.client.post(
            f"/proposals/{proposal_id}/approve", json={"confirmation_token": "tok-1"}
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "APPROVED"
        assert approved.json()["confirmation_token"] == "tok-1"

        executed = self.client.post(f"/proposals/{proposal_id}/execute")
        assert executed.status_code == 200
        assert executed.json()["status"] == "OK"
        assert executed.json()["result"] == "wiped"
        assert len(self.wipe_calls) == 1

        assert self.client.get(f"/proposals/{proposal_id}").json()["status"] == "EXECUTED"

    def test_approve_without_body(self):
        proposal_id = self._pending_proposal()

        response = self.client.post(f"/proposals/{proposal_id}/approve")

        assert response.status_code == 200
        assert response.json()["confirmation_token"] is None

    def test_execute_pending_proposal(self):
        proposal_id = self._pending_proposal()

        response = self.client.post(f"/proposals/{proposal_id}/execute")

        assert response.json()["error"] == "PROPOSAL_NOT_APPROVED"
        assert self.wipe_calls == []

    def test_reject_then_approve_conflicts(self):
        proposal_id = self._pending_proposal()

        rejected = self.client.post(f"/proposals/{proposal_id}/reject")
        conflict = self.client.post(f"/proposals/{proposal_id}/approve")

        assert rejected.status_code == 200
        assert rejected.json()["status"] == "REJECTED"
        assert conflict.status_code == 409

    @pytest.mark.parametrize("path", [
        "/proposals/proposal_missing/approve",
        "/proposals/proposal_missing/reject",
    ])
    def test_unknown_proposal_transitions(self, path):
        assert self.client.post(path).status_code == 404

    def test_get_unknown_proposal(self):
        assert self.client.get("/proposals/proposal_missing").status_code == 404

    def test_manual_proposal(self):
        response = self.client.post(
            "/proposals", json={"tool_name": "echo", "params": {"msg": "later"}}
        )

        assert response.status_code == 200
        assert response.json()["risk_report"] == ["manual"]

    def test_manual_proposal_errors(self):
        unknown = self.client.post("/proposals", json={"tool_name": "nope"})
        invalid = self.client.post("/proposals", json={"tool_name": "echo", "params": {}})

        assert unknown.status_code == 404
        assert invalid.status_code == 422
        assert invalid.json()["detail"] == "Missing required param: msg"

    def test_audit_listing(self):
        for msg in ["a", "b", "c"]:
            self.client.post("/tools/call", json={"tool_name": "echo", "params": {"msg": msg}})

        response = self.client.get("/audit", params={"limit": 2})

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 2
        assert all(entry["event"] == "TOOL_EXECUTION" for entry in entries)
        assert all("params" not in entry for entry in entries)

    def test_audit_default_limit(self):
        for i in range(25):
            self.client.post("/tools/call", json={"tool_name": "echo", "params": {"msg": str(i)}})

        response = self.client.get("/audit")

        assert response.status_code == 200
        assert len(response.json()) == self.gateway.settings.audit_default_limit

    def test_audit_zero_limit(self):
        self.client.post("/tools/call", json={"tool_name": "echo", "params": {"msg": "a"}})

        assert self.client.get("/audit", params={"limit": 0}).json() == []
