"""FastAPI application exposing a ToolGateway over HTTP.

Routes mirror the gateway operations: tool listing and calls, the proposal
lifecycle and the audit log. Call-path failures come back as structured
ExecutionResult bodies; only proposal lookups and transitions map to HTTP
error statuses.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import AliasChoices, BaseModel, Field

from ...action_plane.gateway import ToolGateway
from ...core.config import Settings
from ...core.errors import InvalidProposalState, ParamValidationError
from ...core.utils.ids import utc_now

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class CreateProposalRequest(BaseModel):
    """Body of a manual proposal request."""

    tool_name: str = Field(
        ...,
        validation_alias=AliasChoices("tool_name", "name", "tool"),
    )
    params: dict[str, Any] = Field(default_factory=dict)
    actor: Any = None
    signals: dict[str, Any] = Field(default_factory=dict)


class ApproveProposalRequest(BaseModel):
    """Body of an approval; the token is optional."""

    confirmation_token: str | None = None


class GatewayApp:
    """HTTP application wrapping one gateway instance."""

    def __init__(self, gateway: ToolGateway, settings: Settings | None = None):
        """Initialize the FastAPI application.

        Args:
            gateway: Gateway every route operates on
            settings: Configuration; the gateway's settings when None
        """
        self.gateway = gateway
        self.settings = settings or gateway.settings
        self.app = self._create_app()
        self._setup_routes()
        self._setup_middleware()

    def _create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""
        return FastAPI(
            title="Tool Invocation Gateway",
            description="Policy-checked, audited access to registered tools",
            version=API_VERSION,
            debug=self.settings.debug,
            lifespan=self._lifespan,
        )

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("===== TOOL GATEWAY STARTUP =====")
        logger.info(f"Environment: {self.settings.environment}")
        logger.info(f"Registered tools: {len(self.gateway.registry)}")
        logger.info(f"Default tool timeout: {self.settings.default_tool_timeout_seconds}s")
        yield
        logger.info(
            f"Tool gateway shutting down ({len(self.gateway.audit)} audit entries, "
            f"{len(self.gateway.proposals.list_pending())} pending proposals)"
        )

    def _setup_middleware(self) -> None:
        """Set up middleware for the application."""
        if self.settings.is_development():
            self.app.add_middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_credentials=True,
                allow_methods=["*"],
                allow_headers=["*"],
            )

    def _setup_routes(self) -> None:
        """Set up all application routes."""
        gateway = self.gateway

        @self.app.get("/health")
        async def health_check() -> dict[str, Any]:
            """Health check endpoint."""
            return {
                "status": "healthy",
                "timestamp": utc_now().isoformat(),
                "version": API_VERSION,
                "environment": self.settings.environment,
                "tools": len(gateway.registry),
            }

        @self.app.get("/tools")
        async def list_tools() -> list[dict[str, Any]]:
            """Redacted listing of registered tools."""
            return [tool.model_dump(mode="json") for tool in gateway.list_tools()]

        @self.app.post("/tools/call")
        async def call_tool(payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
            """Invoke a tool.

            The body is a CallRequest. Denials, confirmations and failures are
            reported in the result body with a 200 status.
            """
            result = await gateway.call_tool(payload)
            return result.model_dump(mode="json")

        @self.app.post("/proposals")
        async def create_proposal(request: CreateProposalRequest) -> dict[str, Any]:
            """Manually request confirmation for a call."""
            try:
                proposal = gateway.proposals.create(
                    request.tool_name,
                    request.params,
                    actor=request.actor,
                    signals=request.signals,
                )
            except ParamValidationError as e:
                raise HTTPException(status_code=422, detail=str(e))

            if proposal is None:
                raise HTTPException(status_code=404, detail=f"Unknown tool: {request.tool_name}")
            return proposal.model_dump(mode="json")

        @self.app.get("/proposals/{proposal_id}")
        async def get_proposal(proposal_id: str) -> dict[str, Any]:
            proposal = gateway.proposals.get(proposal_id)
            if proposal is None:
                raise HTTPException(status_code=404, detail="Proposal not found")
            return proposal.model_dump(mode="json")

        @self.app.post("/proposals/{proposal_id}/approve")
        async def approve_proposal(
            proposal_id: str,
            request: ApproveProposalRequest | None = None
        ) -> dict[str, Any]:
            """Approve a pending proposal."""
            token = request.confirmation_token if request else None
            try:
                proposal = gateway.proposals.approve(proposal_id, token)
            except InvalidProposalState as e:
                raise HTTPException(status_code=409, detail=str(e))

            if proposal is None:
                raise HTTPException(status_code=404, detail="Proposal not found")
            return proposal.model_dump(mode="json")

        @self.app.post("/proposals/{proposal_id}/reject")
        async def reject_proposal(proposal_id: str) -> dict[str, Any]:
            """Reject a pending proposal."""
            try:
                proposal = gateway.proposals.reject(proposal_id)
            except InvalidProposalState as e:
                raise HTTPException(status_code=409, detail=str(e))

            if proposal is None:
                raise HTTPException(status_code=404, detail="Proposal not found")
            return proposal.model_dump(mode="json")

        @self.app.post("/proposals/{proposal_id}/execute")
        async def execute_proposal(proposal_id: str) -> dict[str, Any]:
            """Run an approved proposal."""
            result = await gateway.proposals.execute(proposal_id)
            return result.model_dump(mode="json")

        @self.app.get("/audit")
        async def list_audit(limit: int | None = Query(None)) -> list[dict[str, Any]]:
            """Most recent audit entries, oldest first."""
            return [entry.model_dump(mode="json") for entry in gateway.audit.list(limit)]
