"""Tool executor.

Runs one validated, policy-approved call: deduplicates by idempotency key,
builds the handler context, races the handler against the tool timeout,
normalizes the return value and writes the audit entry.
"""

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Callable

from ...core.domain.audit import AuditEventType
from ...core.domain.tools import ExecutionResult, ToolContext, ToolDefinition, ToolStatus
from ...core.errors import ToolHandlerError, ToolTimeout
from ...core.utils.ids import make_id
from ..audit import AuditLog
from .idempotency import IdempotencyCache

logger = logging.getLogger(__name__)

_RECOGNIZED_STATUSES = frozenset(status.value for status in ToolStatus)


def normalize_result(
    raw: Any,
    tool: ToolDefinition,
    params: dict[str, Any]
) -> ExecutionResult:
    """Coerce a handler's return value into an ExecutionResult.

    Values already shaped as ``{status, ...}`` with a known status pass
    through; anything else becomes the ``result`` of an OK outcome. A
    human summary and an event list are always present.

    Args:
        raw: Whatever the handler returned
        tool: Tool that produced it
        params: Params of the call, for the summary formatter

    Returns:
        Normalized execution result
    """
    if isinstance(raw, ExecutionResult):
        data = raw.model_dump()
    elif isinstance(raw, Mapping) and raw.get("status") in _RECOGNIZED_STATUSES:
        data = dict(raw)
    else:
        data = {"status": ToolStatus.OK, "result": raw}

    data["human_summary"] = data.get("human_summary") or tool.build_human_summary(params)
    data["machine_events"] = data.get("machine_events") or []

    return ExecutionResult.model_validate(data)


def _discard_outcome(task: asyncio.Task) -> None:
    """Swallow the late outcome of a handler the gateway stopped waiting for."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.debug(f"Timed-out handler finished with error: {error!r}")


class ToolExecutor:
    """Executes tool handlers with timeout, idempotency and auditing."""

    def __init__(
        self,
        audit_log: AuditLog,
        idempotency_cache: IdempotencyCache | None = None,
        id_factory: Callable[[str], str] = make_id
    ):
        self.audit_log = audit_log
        self.idempotency_cache = idempotency_cache or IdempotencyCache()
        self._id_factory = id_factory

    async def execute(
        self,
        tool: ToolDefinition,
        params: dict[str, Any],
        actor: Any = None,
        signals: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
        dry_run: bool = False
    ) -> ExecutionResult:
        """Execute a tool call.

        Handler errors and timeouts are returned as ERROR results, never
        raised.

        Args:
            tool: Definition of the tool to run
            params: Validated params
            actor: Caller descriptor
            signals: Trust signals of the call
            idempotency_key: Optional deduplication key
            dry_run: Passed through to the handler context

        Returns:
            Normalized execution result
        """
        if not idempotency_key:
            result, _ = await self._run(tool, params, actor, signals, None, dry_run)
            return result

        claim = self.idempotency_cache.claim(tool.name, idempotency_key)

        if claim.cached is not None:
            return self._replay(tool, params, actor, claim.cached)

        if claim.pending is not None:
            logger.info(
                f"Waiting for in-flight execution of {tool.name} "
                f"with idempotency key {idempotency_key}"
            )
            result = await asyncio.wrap_future(claim.pending)
            return self._replay(tool, params, actor, result)

        try:
            result, cacheable = await self._run(
                tool, params, actor, signals, idempotency_key, dry_run
            )
        except BaseException as e:
            self.idempotency_cache.abandon(tool.name, idempotency_key, e)
            raise

        self.idempotency_cache.complete(tool.name, idempotency_key, result, store=cacheable)
        return result

    def _replay(
        self,
        tool: ToolDefinition,
        params: dict[str, Any],
        actor: Any,
        result: ExecutionResult
    ) -> ExecutionResult:
        """Return a previous result unchanged, auditing the duplicate call."""
        self.audit_log.record(
            AuditEventType.TOOL_EXECUTION,
            tool_name=tool.name,
            status=result.status.value,
            actor=actor,
            params=params,
            trace_id=result.trace_id,
            intent_id=result.intent_id,
            error=result.error,
            replayed=True,
        )
        return result

    async def _run(
        self,
        tool: ToolDefinition,
        params: dict[str, Any],
        actor: Any,
        signals: dict[str, Any] | None,
        idempotency_key: str | None,
        dry_run: bool
    ) -> tuple[ExecutionResult, bool]:
        """Invoke the handler once.

        Returns:
            Tuple of (result, cacheable); only results the handler actually
            returned are cacheable
        """
        context = ToolContext(
            tool_name=tool.name,
            trace_id=self._id_factory("trace"),
            intent_id=self._id_factory("intent"),
            actor=actor,
            signals=signals or {},
            idempotency_key=idempotency_key,
            dry_run=dry_run,
        )

        cacheable = False
        try:
            raw = await self._invoke_with_timeout(tool, params, context)
            try:
                result = normalize_result(raw, tool, params)
            except Exception as e:
                raise ToolHandlerError(tool.name, e) from e
            cacheable = True
        except ToolTimeout as e:
            logger.warning(
                f"Tool {tool.name} timed out after {e.timeout_seconds}s "
                f"(trace {context.trace_id})"
            )
            result = self._error_result(tool, str(e))
        except ToolHandlerError as e:
            logger.error(f"Tool execution failed for '{tool.name}': {e}")
            result = self._error_result(tool, str(e))

        result.trace_id = context.trace_id
        result.intent_id = context.intent_id

        self.audit_log.record(
            AuditEventType.TOOL_EXECUTION,
            tool_name=tool.name,
            status=result.status.value,
            actor=actor,
            params=params,
            trace_id=context.trace_id,
            intent_id=context.intent_id,
            error=result.error,
        )

        return result, cacheable

    async def _invoke_with_timeout(
        self,
        tool: ToolDefinition,
        params: dict[str, Any],
        context: ToolContext
    ) -> Any:
        """Race the handler against the tool timeout.

        On timeout the handler task is cancelled but not awaited, and the
        context's ``cancelled`` event is set. Sync handlers run in a worker
        thread which cannot be interrupted; their late result is discarded.

        Raises:
            ToolTimeout: The timeout fired first
            ToolHandlerError: The handler raised
        """
        task = asyncio.ensure_future(self._call_handler(tool, params, context))
        done, _ = await asyncio.wait({task}, timeout=tool.timeout_seconds)

        if task not in done:
            context.cancelled.set()
            task.cancel()
            task.add_done_callback(_discard_outcome)
            raise ToolTimeout(tool.name, tool.timeout_seconds or 0.0)

        try:
            return task.result()
        except Exception as e:
            raise ToolHandlerError(tool.name, e) from e

    @staticmethod
    async def _call_handler(
        tool: ToolDefinition,
        params: dict[str, Any],
        context: ToolContext
    ) -> Any:
        handler = tool.handler
        if inspect.iscoroutinefunction(handler):
            return await handler(params, context)

        result = await asyncio.to_thread(handler, params, context)
        if inspect.isawaitable(result):
            result = await result
        return result

    @staticmethod
    def _error_result(tool: ToolDefinition, error: str) -> ExecutionResult:
        return ExecutionResult(
            status=ToolStatus.ERROR,
            error=error,
            human_summary=f"{tool.name} failed: {error}",
        )
