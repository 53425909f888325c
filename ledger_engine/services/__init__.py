"""
Services Package

Abstract interfaces for the external collaborators the engine consumes,
the service error taxonomy, and in-memory implementations.
"""

from ledger_engine.services.interface import (
    AuditSinkInterface,
    BudgetNotConfiguredError,
    BudgetService,
    LookupService,
    NotFoundError,
    ServiceError,
    TransactionDataService,
    TransportError,
)
from ledger_engine.services.memory import (
    InMemoryAuditSink,
    InMemoryBudgetService,
    InMemoryLookup,
    InMemoryTransactionService,
)

__all__ = [
    # Interfaces
    "AuditSinkInterface",
    "BudgetService",
    "LookupService",
    "TransactionDataService",
    # Exceptions
    "BudgetNotConfiguredError",
    "NotFoundError",
    "ServiceError",
    "TransportError",
    # In-memory implementation
    "InMemoryAuditSink",
    "InMemoryBudgetService",
    "InMemoryLookup",
    "InMemoryTransactionService",
]
