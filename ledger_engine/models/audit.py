"""
Audit Models for the Ledger Engine

Every mutation and every failed or discarded fetch is logged.
This provides:
1. Traceability of appends, deletes and ledger moves
2. Debugging information for fetch races (discarded stale responses)
3. A record of partial failures on the list screen

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # List loading
    LIST_LOADED = "list_loaded"
    LIST_LOAD_FAILED = "list_load_failed"
    STALE_RESPONSE_DISCARDED = "stale_response_discarded"

    # Expansion
    CHILDREN_LOADED = "children_loaded"
    CHILDREN_EMPTY = "children_empty"
    CHILDREN_LOAD_FAILED = "children_load_failed"

    # Mutations
    TRANSACTION_APPENDED = "transaction_appended"
    TRANSACTION_DELETED = "transaction_deleted"
    TRANSACTION_MOVED = "transaction_moved"
    MUTATION_REJECTED = "mutation_rejected"
    MUTATION_FAILED = "mutation_failed"

    # Month-scoped widgets
    SUMMARY_FALLBACK = "summary_fallback"
    BUDGET_UNSET = "budget_unset"
    STATISTICS_FALLBACK = "statistics_fallback"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'ledger', 'list')"
    )
    entity_id: Optional[int] = None

    # Correlation - for tracking related events (one refresh, one append)
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_appended(
            parent_id=42,
            child_id=43,
            amount="20.00",
            correlation_id=correlation_id,
        )
    """

    @staticmethod
    def list_loaded(
        page: int,
        record_count: int,
        load_more: bool,
        signature: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIST_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="list",
            correlation_id=correlation_id,
            description=f"Loaded page {page} ({record_count} records)",
            details={
                "page": page,
                "record_count": record_count,
                "load_more": load_more,
                "signature": signature,
            },
        )

    @staticmethod
    def list_load_failed(
        error_message: str,
        signature: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LIST_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="list",
            correlation_id=correlation_id,
            description="Transaction list fetch failed; previous list kept",
            details={"signature": signature},
            error_message=error_message,
        )

    @staticmethod
    def stale_response_discarded(
        source: str,
        requested: str,
        current: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_RESPONSE_DISCARDED,
            severity=AuditSeverity.DEBUG,
            entity_type=source,
            correlation_id=correlation_id,
            description=f"Discarded stale {source} response",
            details={"requested": requested, "current": current},
        )

    @staticmethod
    def children_loaded(parent_id: int, child_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHILDREN_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type="transaction",
            entity_id=parent_id,
            description=f"Loaded {child_count} appended children",
            details={"child_count": child_count},
        )

    @staticmethod
    def children_empty(parent_id: int, reported_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHILDREN_EMPTY,
            severity=AuditSeverity.INFO,
            entity_type="transaction",
            entity_id=parent_id,
            description="Parent reported children but none were returned",
            details={"reported_child_count": reported_count},
        )

    @staticmethod
    def children_load_failed(parent_id: int, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHILDREN_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            entity_id=parent_id,
            description="Failed to load appended children",
            error_message=error_message,
        )

    @staticmethod
    def transaction_appended(
        parent_id: int,
        child_id: int,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_APPENDED,
            entity_type="transaction",
            entity_id=parent_id,
            correlation_id=correlation_id,
            description=f"Appended {amount} to transaction {parent_id}",
            details={"child_id": child_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Deleted transaction {transaction_id}",
            is_user_action=True,
        )

    @staticmethod
    def transaction_moved(
        transaction_id: int,
        from_ledger_id: Optional[int],
        to_ledger_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_MOVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Moved transaction {transaction_id} to ledger {to_ledger_id}",
            details={"from_ledger_id": from_ledger_id, "to_ledger_id": to_ledger_id},
            is_user_action=True,
        )

    @staticmethod
    def mutation_rejected(
        operation: str,
        transaction_id: int,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{operation} rejected before dispatch",
            details={"operation": operation, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def mutation_failed(
        operation: str,
        transaction_id: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MUTATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"{operation} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def widget_fallback(
        event_type: AuditEventType,
        ledger_id: Optional[int],
        month: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            entity_id=ledger_id,
            description=f"{event_type.value} for {month}",
            details={"month": month},
            error_message=error_message,
        )
