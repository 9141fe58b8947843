"""Executor - runs approved tool calls with timeouts and idempotency."""

from .executor import ToolExecutor, normalize_result
from .idempotency import IdempotencyCache, IdempotencyClaim

__all__ = ["ToolExecutor", "normalize_result", "IdempotencyCache", "IdempotencyClaim"]
