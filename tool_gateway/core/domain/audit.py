"""Audit models.

Entries record a params hash, never the params themselves.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .tools import DecisionType


class AuditEventType(str, Enum):
    """Kinds of outcome the gateway records."""

    TOOL_CALL = "TOOL_CALL"                  # Terminal outcome decided before execution
    TOOL_EXECUTION = "TOOL_EXECUTION"        # Handler ran (or timed out / failed)
    PROPOSAL_CREATED = "PROPOSAL_CREATED"
    PROPOSAL_APPROVED = "PROPOSAL_APPROVED"
    PROPOSAL_REJECTED = "PROPOSAL_REJECTED"


class AuditEntry(BaseModel):
    """Immutable record of one decision or outcome."""

    model_config = ConfigDict(frozen=True)

    entry_id: str
    timestamp: datetime
    event: AuditEventType
    tool_name: str
    actor: Any = None
    params_hash: str
    status: str = Field(..., description="Execution status or proposal status")

    decision: DecisionType | None = None
    reasons: list[str] | None = None
    proposal_id: str | None = None
    trace_id: str | None = None
    intent_id: str | None = None
    error: str | None = None
    replayed: bool = False
