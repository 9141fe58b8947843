"""Exception taxonomy for the tool gateway.

Registration and configuration errors are raised to the caller. Errors on
the call path (validation, timeouts, handler failures) are converted into
structured ``ExecutionResult`` objects by the gateway, so they only escape
when components are used directly.
"""

# Stable error codes carried in ExecutionResult.error
UNKNOWN_TOOL = "UNKNOWN_TOOL"
TOOL_TIMEOUT = "TOOL_TIMEOUT"
TOOL_ERROR = "TOOL_ERROR"
POLICY_DENIED = "POLICY_DENIED"
INVALID_REQUEST = "INVALID_REQUEST"
PROPOSAL_NOT_FOUND = "PROPOSAL_NOT_FOUND"
PROPOSAL_NOT_APPROVED = "PROPOSAL_NOT_APPROVED"
PROPOSAL_EXPIRED = "PROPOSAL_EXPIRED"


class GatewayError(Exception):
    """Base exception for gateway errors."""
    pass


class InvalidToolDefinition(GatewayError):
    """Raised when a tool registration is malformed."""
    pass


class UnknownTool(GatewayError):
    """Raised when a tool name is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ParamValidationError(GatewayError):
    """Base class for parameter schema violations."""

    def __init__(self, message: str, param: str):
        super().__init__(message)
        self.param = param


class MissingRequiredParam(ParamValidationError):
    """A required parameter is absent."""

    def __init__(self, param: str):
        super().__init__(f"Missing required param: {param}", param)


class InvalidParamType(ParamValidationError):
    """A parameter value does not match its declared type."""

    def __init__(self, param: str):
        super().__init__(f"Invalid type for {param}", param)


class InvalidEnumValue(ParamValidationError):
    """A parameter value is not one of its declared enum members."""

    def __init__(self, param: str):
        super().__init__(f"Invalid enum value for {param}", param)


class InvalidPolicyEngine(GatewayError):
    """Raised when a replacement policy engine has no evaluate()."""
    pass


class ProposalNotFound(GatewayError):
    """Raised when a proposal id is unknown."""

    def __init__(self, proposal_id: str):
        super().__init__(f"Proposal not found: {proposal_id}")
        self.proposal_id = proposal_id


class InvalidProposalState(GatewayError):
    """Raised when a lifecycle transition is not allowed from the current state."""

    def __init__(self, proposal_id: str, status: str, operation: str):
        super().__init__(
            f"Cannot {operation} proposal {proposal_id} in status {status}"
        )
        self.proposal_id = proposal_id
        self.status = status
        self.operation = operation


class ProposalExpired(InvalidProposalState):
    """Raised when a proposal is used after its expiry."""

    def __init__(self, proposal_id: str, operation: str):
        super().__init__(proposal_id, "EXPIRED", operation)


class ToolTimeout(GatewayError):
    """Raised when a handler does not finish within its timeout."""

    def __init__(self, tool_name: str, timeout_seconds: float):
        super().__init__(TOOL_TIMEOUT)
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds


class ToolHandlerError(GatewayError):
    """Wraps an exception raised by a tool handler."""

    def __init__(self, tool_name: str, original_error: BaseException):
        message = str(original_error) or type(original_error).__name__
        super().__init__(message)
        self.tool_name = tool_name
        self.original_error = original_error
