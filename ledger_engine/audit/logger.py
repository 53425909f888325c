"""
Audit Logger

DESIGN DECISION: Every mutation and every failed or discarded fetch is
logged. This provides:
1. Traceability of appends, deletes and moves
2. Visibility into fetch races that were resolved by discarding
3. A record of which widget fell back to its safe default

The audit logger:
- Is async so it can await a persistence sink
- Never raises into the caller (a logging failure must not break the list)
- Supports correlation IDs to trace one refresh or one mutation
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger_engine.config import get_settings
from ledger_engine.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from ledger_engine.services.interface import AuditSinkInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_log_level(level: Optional[str] = None) -> None:
    """
    Set the minimum level that filter_by_level lets through.

    Applies to every ledger_engine.* logger. Defaults to the configured
    AppSettings.log_level.
    """
    logging.getLogger("ledger_engine").setLevel(level or get_settings().app.log_level)


configure_log_level()


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An optional sink (for persistence)
    """

    def __init__(
        self,
        sink: Optional[AuditSinkInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            sink: Persistence backend. If None, only logs locally.
        """
        self._sink = sink
        self._logger = structlog.get_logger("ledger_engine.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the sink if available.

        Returns True if the sink write succeeded (or no sink configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value == "error":
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._sink:
            try:
                return await self._sink.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_sink_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_list_loaded(
        self,
        page: int,
        record_count: int,
        load_more: bool,
        signature: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.list_loaded(
            page=page,
            record_count=record_count,
            load_more=load_more,
            signature=signature,
            correlation_id=correlation_id,
        ))

    async def log_list_load_failed(
        self,
        error_message: str,
        signature: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.list_load_failed(
            error_message=error_message,
            signature=signature,
            correlation_id=correlation_id,
        ))

    async def log_stale_response(
        self,
        source: str,
        requested: str,
        current: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a response that arrived after its filter/scope changed."""
        await self.log(AuditEventBuilder.stale_response_discarded(
            source=source,
            requested=requested,
            current=current,
            correlation_id=correlation_id,
        ))

    async def log_children_loaded(self, parent_id: int, child_count: int) -> None:
        await self.log(AuditEventBuilder.children_loaded(parent_id, child_count))

    async def log_children_empty(self, parent_id: int, reported_count: int) -> None:
        await self.log(AuditEventBuilder.children_empty(parent_id, reported_count))

    async def log_children_load_failed(self, parent_id: int, error_message: str) -> None:
        await self.log(AuditEventBuilder.children_load_failed(parent_id, error_message))

    async def log_transaction_appended(
        self,
        parent_id: int,
        child_id: int,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_appended(
            parent_id=parent_id,
            child_id=child_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_moved(
        self,
        transaction_id: int,
        from_ledger_id: Optional[int],
        to_ledger_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_moved(
            transaction_id=transaction_id,
            from_ledger_id=from_ledger_id,
            to_ledger_id=to_ledger_id,
            correlation_id=correlation_id,
        ))

    async def log_mutation_rejected(
        self,
        operation: str,
        transaction_id: int,
        issues: list[dict],
    ) -> None:
        await self.log(AuditEventBuilder.mutation_rejected(
            operation=operation,
            transaction_id=transaction_id,
            issues=issues,
        ))

    async def log_mutation_failed(
        self,
        operation: str,
        transaction_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.mutation_failed(
            operation=operation,
            transaction_id=transaction_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_widget_fallback(
        self,
        event_type: AuditEventType,
        ledger_id: Optional[int],
        month: str,
        error_message: str,
    ) -> None:
        """Log a month-scoped widget falling back to its safe default."""
        await self.log(AuditEventBuilder.widget_fallback(
            event_type=event_type,
            ledger_id=ledger_id,
            month=month,
            error_message=error_message,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (refresh, append, move).
    """
    return uuid4()
