"""Audit logging package."""

from ledger_engine.audit.logger import (
    AuditLogger,
    configure_log_level,
    create_correlation_id,
)

__all__ = ["AuditLogger", "configure_log_level", "create_correlation_id"]
