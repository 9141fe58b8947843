"""Domain models for the tool gateway.

This module contains the core data structures shared by the registry,
policy engine, executor, proposal store and audit log.
"""

# Tool models - Registration, requests and results
from .tools import (
    CallRequest,
    DecisionType,
    ExecutionResult,
    OverrideContext,
    OverrideResult,
    PolicyDecision,
    PolicyOverride,
    RiskLevel,
    ToolContext,
    ToolDefinition,
    ToolStatus,
    ToolSummary,
)

# Proposal models - Human confirmation lifecycle
from .proposals import (
    Proposal,
    ProposalStatus,
    RequiredConfirmation,
)

# Audit models - Append-only outcome records
from .audit import (
    AuditEntry,
    AuditEventType,
)

__all__ = [
    # Tool models
    "CallRequest",
    "DecisionType",
    "ExecutionResult",
    "OverrideContext",
    "OverrideResult",
    "PolicyDecision",
    "PolicyOverride",
    "RiskLevel",
    "ToolContext",
    "ToolDefinition",
    "ToolStatus",
    "ToolSummary",

    # Proposal models
    "Proposal",
    "ProposalStatus",
    "RequiredConfirmation",

    # Audit models
    "AuditEntry",
    "AuditEventType",
]
