"""Tool models for the gateway.

These models define the data structures for tool registration,
call requests, policy decisions and normalized execution results.
"""

import threading
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

SUPPORTED_PARAM_TYPES = frozenset(
    {"string", "number", "boolean", "object", "array", "null"}
)


class RiskLevel(str, Enum):
    """Coarse risk classification of a tool.

    HIGH and CRITICAL tools require human confirmation under the
    default policy.
    """

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class DecisionType(str, Enum):
    """Policy engine decision types."""

    ALLOW = "ALLOW"                        # Execute immediately
    REQUIRE_CONFIRM = "REQUIRE_CONFIRM"    # Park as a proposal
    DENY = "DENY"                          # Refuse


class ToolStatus(str, Enum):
    """Status of a normalized execution result."""

    OK = "OK"
    CONFIRMATION_REQUIRED = "CONFIRMATION_REQUIRED"
    DENIED = "DENIED"
    ERROR = "ERROR"


class PolicyDecision(BaseModel):
    """Verdict of a policy engine for one call."""

    decision: DecisionType = Field(
        ...,
        description="The policy decision (ALLOW/REQUIRE_CONFIRM/DENY)"
    )

    reasons: list[str] = Field(
        default_factory=list,
        description="Ordered names of the rules that shaped the decision"
    )


class OverrideContext(BaseModel):
    """What a per-tool policy override gets to look at."""

    model_config = ConfigDict(frozen=True)

    params: dict[str, Any] = Field(default_factory=dict)
    signals: dict[str, Any] = Field(default_factory=dict)
    actor: Any = None
    decision: DecisionType = DecisionType.ALLOW


class OverrideResult(BaseModel):
    """A per-tool override verdict; replaces the accumulated decision."""

    decision: DecisionType
    reason: str | None = None


class PolicyOverride(ABC):
    """Tool-supplied policy hook.

    An override sees the decision reached by the default rules and may
    replace it, including de-escalating back to ALLOW or escalating to
    DENY. Returning ``None`` keeps the accumulated decision.
    """

    @abstractmethod
    def decide(self, context: OverrideContext) -> OverrideResult | None:
        """Return a replacement decision, or None to keep the current one."""
        pass


class ToolDefinition(BaseModel):
    """Identity and contract of one registered tool.

    Definitions are immutable; re-registering a name replaces the
    stored definition.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = Field(
        ...,
        description="Unique name for this tool",
        min_length=1,
    )

    description: str = Field(
        default="",
        description="Human-readable description for callers"
    )

    capabilities: list[str] = Field(
        default_factory=list,
        description="Capability tags used by authorization extensions"
    )

    risk_level: RiskLevel = Field(
        default=RiskLevel.LOW,
        description="Risk classification driving the default policy"
    )

    params_schema: dict[str, Any] | None = Field(
        default=None,
        description="Required names plus per-property type/enum constraints"
    )

    timeout_seconds: float | None = Field(
        default=None,
        gt=0,
        description="Maximum time the gateway waits for the handler"
    )

    handler: Callable[..., Any] = Field(
        ...,
        description="Callable invoked as handler(params, context)"
    )

    policy: PolicyOverride | None = Field(
        default=None,
        description="Optional per-tool policy override"
    )

    summary: Callable[[dict[str, Any]], str] | None = Field(
        default=None,
        description="Optional formatter producing a human summary from params"
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Reject blank tool names."""
        if not v.strip():
            raise ValueError("Tool name must be a non-empty string")
        return v

    @field_validator("capabilities")
    @classmethod
    def dedupe_capabilities(cls, v: list[str]) -> list[str]:
        """Capabilities behave as a set but keep declaration order."""
        return list(dict.fromkeys(v))

    @field_validator("params_schema")
    @classmethod
    def validate_params_schema(cls, v: dict[str, Any] | None) -> dict[str, Any] | None:
        """Check the schema only uses the supported constraint vocabulary."""
        if v is None:
            return v

        required = v.get("required", [])
        if not isinstance(required, list) or not all(isinstance(r, str) for r in required):
            raise ValueError("params_schema.required must be a list of names")

        properties = v.get("properties", {})
        if not isinstance(properties, dict):
            raise ValueError("params_schema.properties must be an object")

        for key, rules in properties.items():
            if not isinstance(rules, dict):
                raise ValueError(f"Constraints for {key} must be an object")
            declared = rules.get("type")
            if declared is not None and declared not in SUPPORTED_PARAM_TYPES:
                raise ValueError(f"Unsupported type '{declared}' for {key}")
            if "enum" in rules and not isinstance(rules["enum"], list):
                raise ValueError(f"Enum for {key} must be a list")

        return v

    def to_summary(self) -> "ToolSummary":
        """Redacted view safe to hand to callers."""
        return ToolSummary(
            name=self.name,
            description=self.description,
            capabilities=list(self.capabilities),
            risk_level=self.risk_level,
            params_schema=self.params_schema,
        )

    def build_human_summary(self, params: dict[str, Any] | None) -> str:
        """Describe a call to this tool for display."""
        if self.summary is not None:
            return self.summary(params or {})
        return f"{self.name} executed"


class ToolSummary(BaseModel):
    """Public listing entry for a tool; never exposes the handler."""

    name: str
    description: str
    capabilities: list[str]
    risk_level: RiskLevel
    params_schema: dict[str, Any] | None = None


class CallRequest(BaseModel):
    """One invocation attempt."""

    model_config = ConfigDict(populate_by_name=True)

    tool_name: str = Field(
        default="",
        validation_alias=AliasChoices("tool_name", "name", "tool"),
        description="Name of the tool to invoke"
    )

    params: dict[str, Any] = Field(
        default_factory=dict,
        description="Arguments passed to the handler"
    )

    actor: Any = Field(
        default_factory=dict,
        description="Already-authenticated caller descriptor"
    )

    signals: dict[str, Any] = Field(
        default_factory=dict,
        description="Trust metadata such as overall_confidence"
    )

    idempotency_key: str | None = Field(
        default=None,
        description="Deduplicates repeated calls to the same tool"
    )

    dry_run: bool = Field(
        default=False,
        description="Passed through to the handler context"
    )

    @field_validator("params", "signals", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("actor", mode="before")
    @classmethod
    def actor_none_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v


class ToolContext(BaseModel):
    """Per-execution context handed to a tool handler."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    tool_name: str
    trace_id: str
    intent_id: str
    actor: Any = None
    signals: dict[str, Any] = Field(default_factory=dict)
    idempotency_key: str | None = None
    dry_run: bool = False
    cancelled: threading.Event = Field(
        default_factory=threading.Event,
        description="Set when the gateway stops waiting for the handler"
    )


class ExecutionResult(BaseModel):
    """Normalized outcome of a call.

    Handlers may return this shape themselves (as a dict with a known
    ``status``); any extra keys they include are preserved.
    """

    model_config = ConfigDict(extra="allow")

    status: ToolStatus
    result: Any = None
    human_summary: str
    machine_events: list[Any] = Field(default_factory=list)
    error: str | None = None
    reason: list[str] | None = None
    proposal_id: str | None = None
    trace_id: str | None = None
    intent_id: str | None = None

    @property
    def is_ok(self) -> bool:
        return self.status == ToolStatus.OK

    @classmethod
    def failure(cls, error: str, human_summary: str | None = None) -> "ExecutionResult":
        """Build an ERROR result with a display-ready summary."""
        return cls(
            status=ToolStatus.ERROR,
            error=error,
            human_summary=human_summary or f"Call failed: {error}",
        )
