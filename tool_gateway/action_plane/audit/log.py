"""Append-only, in-memory audit log.

Entries are written once per terminal outcome and never mutated or
removed. Callers only ever see copies of the entries.
"""

import copy
import logging
import threading
from datetime import datetime
from typing import Any, Callable

from ...core.domain.audit import AuditEntry, AuditEventType
from ...core.domain.tools import DecisionType
from ...core.utils.hashing import params_hash
from ...core.utils.ids import make_id, utc_now

logger = logging.getLogger(__name__)


class AuditLog:
    """Time-ordered record of every gateway decision and outcome."""

    def __init__(
        self,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[str], str] = make_id,
        default_limit: int = 20
    ):
        self._clock = clock
        self._id_factory = id_factory
        self.default_limit = default_limit
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()

    def record(
        self,
        event: AuditEventType,
        tool_name: str,
        status: str,
        actor: Any = None,
        params: dict[str, Any] | None = None,
        params_digest: str | None = None,
        decision: DecisionType | None = None,
        reasons: list[str] | None = None,
        proposal_id: str | None = None,
        trace_id: str | None = None,
        intent_id: str | None = None,
        error: str | None = None,
        replayed: bool = False
    ) -> AuditEntry:
        """Append one entry.

        Params are reduced to their hash here; pass ``params_digest`` when
        the hash is already known.

        Returns:
            Copy of the stored entry
        """
        entry = AuditEntry(
            entry_id=self._id_factory("audit"),
            timestamp=self._clock(),
            event=event,
            tool_name=tool_name,
            actor=copy.deepcopy(actor),
            params_hash=params_digest or params_hash(params),
            status=status,
            decision=decision,
            reasons=list(reasons) if reasons is not None else None,
            proposal_id=proposal_id,
            trace_id=trace_id,
            intent_id=intent_id,
            error=error,
            replayed=replayed,
        )

        with self._lock:
            self._entries.append(entry)

        logger.debug(
            f"Audit {entry.event.value} tool={tool_name} status={status} "
            f"params_hash={entry.params_hash}"
        )
        return entry.model_copy(deep=True)

    def list(self, limit: int | None = None) -> list[AuditEntry]:
        """Most recent entries, oldest first.

        Args:
            limit: Maximum number of entries; the configured default when None

        Returns:
            Up to ``limit`` entries; empty when ``limit <= 0``
        """
        if limit is None:
            limit = self.default_limit
        if limit <= 0:
            return []

        with self._lock:
            recent = self._entries[-limit:]
        return [entry.model_copy(deep=True) for entry in recent]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
