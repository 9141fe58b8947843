"""Idempotency cache for tool executions.

Results are keyed by ``(tool_name, idempotency_key)`` and kept for the
lifetime of the process. Executions that are still running are tracked
too, so a duplicate that arrives before the first call finishes waits for
that call's result instead of invoking the handler a second time.

In-flight executions are ``concurrent.futures.Future`` objects, which can
be awaited from any event loop via ``asyncio.wrap_future``.
"""

import threading
from concurrent.futures import Future
from dataclasses import dataclass

from ...core.domain.tools import ExecutionResult

CacheKey = tuple[str, str]


@dataclass
class IdempotencyClaim:
    """Outcome of claiming a key.

    Exactly one of ``cached``, ``pending`` or ``owned`` is set: a finished
    result, another caller's in-flight execution, or the right (and duty)
    to execute and then call ``complete``/``abandon``.
    """
    cached: ExecutionResult | None = None
    pending: Future | None = None
    owned: bool = False


class IdempotencyCache:
    """Process-lifetime store of results by idempotency key."""

    def __init__(self) -> None:
        self._results: dict[CacheKey, ExecutionResult] = {}
        self._in_flight: dict[CacheKey, Future] = {}
        self._lock = threading.Lock()

    def get(self, tool_name: str, key: str) -> ExecutionResult | None:
        """Finished result for a key, if any."""
        with self._lock:
            return self._results.get((tool_name, key))

    def claim(self, tool_name: str, key: str) -> IdempotencyClaim:
        """Look up a key, reserving it for the caller when it is unknown."""
        cache_key = (tool_name, key)
        with self._lock:
            if cache_key in self._results:
                return IdempotencyClaim(cached=self._results[cache_key])
            if cache_key in self._in_flight:
                return IdempotencyClaim(pending=self._in_flight[cache_key])
            self._in_flight[cache_key] = Future()
            return IdempotencyClaim(owned=True)

    def complete(
        self,
        tool_name: str,
        key: str,
        result: ExecutionResult,
        store: bool = True
    ) -> None:
        """Publish the owner's result to waiters, caching it when ``store``."""
        cache_key = (tool_name, key)
        with self._lock:
            future = self._in_flight.pop(cache_key, None)
            if store:
                self._results[cache_key] = result
        if future is not None:
            future.set_result(result)

    def abandon(self, tool_name: str, key: str, error: BaseException) -> None:
        """Release a claim whose owner failed without a result."""
        with self._lock:
            future = self._in_flight.pop((tool_name, key), None)
        if future is not None:
            future.set_exception(error)

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)
