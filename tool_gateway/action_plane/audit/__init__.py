"""Audit - append-only record of gateway decisions and outcomes."""

from .log import AuditLog

__all__ = ["AuditLog"]
