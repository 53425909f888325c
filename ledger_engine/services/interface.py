"""
Abstract Service Interfaces

DESIGN DECISION: Everything the engine consumes is defined as an abstract
interface. This allows us to:
1. Swap the HTTP-backed services for in-memory ones in tests
2. Keep the engine free of any transport or wire format
3. Make the error taxonomy explicit at the boundary

The interfaces are intentionally narrow: just the operations the ledger
list needs.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ledger_engine.models.grouping import LookupEntry
from ledger_engine.models.summary import (
    BudgetOverview,
    CategorySummary,
    DailyStatistic,
    MonthlySummary,
)
from ledger_engine.models.transaction import (
    AggregatedTransaction,
    Transaction,
    TransactionPage,
    TransactionQuery,
    TransactionType,
)
from ledger_engine.models.audit import AuditEvent


class TransactionDataService(ABC):
    """
    Abstract interface for the external Transaction Data Service.

    Implementations raise TransportError for network/5xx failures and
    NotFoundError for unknown ids.
    """

    @abstractmethod
    async def query(self, query: TransactionQuery) -> TransactionPage:
        """
        Fetch one page of transactions.

        Args:
            query: Filter, window, paging and sort parameters

        Returns:
            The requested page

        Raises:
            TransportError: If the request fails
        """
        pass

    @abstractmethod
    async def delete(self, transaction_id: int) -> None:
        """Logically delete a transaction."""
        pass

    @abstractmethod
    async def move_to_ledger(self, transaction_id: int, ledger_id: int) -> None:
        """Move a transaction to another ledger."""
        pass

    @abstractmethod
    async def append_child(
        self,
        parent_id: int,
        amount: Decimal,
        description: Optional[str] = None,
    ) -> Transaction:
        """
        Append a child (top-up) transaction to a parent.

        Returns:
            The created child transaction
        """
        pass

    @abstractmethod
    async def get_aggregated(self, transaction_id: int) -> AggregatedTransaction:
        """Fetch a parent transaction together with its children."""
        pass

    @abstractmethod
    async def get_daily_statistics(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> list[DailyStatistic]:
        """Per-day totals in [start, end]."""
        pass

    @abstractmethod
    async def get_monthly_summary(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> MonthlySummary:
        """Income/expense/balance totals in [start, end]."""
        pass

    @abstractmethod
    async def get_category_summary(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
        type: TransactionType,
    ) -> CategorySummary:
        """Per-category totals of one transaction type in [start, end]."""
        pass


class LookupService(ABC):
    """
    Typed capability for resolving a category, payment method or ledger id.

    Lookups are local reference data, so resolution is synchronous.
    """

    @abstractmethod
    def resolve(self, item_id: int) -> Optional[LookupEntry]:
        """
        Resolve an id to its display data.

        Returns:
            The entry, or None when the id is unknown
        """
        pass


class BudgetService(ABC):
    """Abstract interface for the external Budget Service."""

    @abstractmethod
    async def get_budget_overview(
        self,
        ledger_id: int,
        year: int,
        month: int,
    ) -> BudgetOverview:
        """
        Fetch the budget overview of a ledger for one month.

        Raises:
            BudgetNotConfiguredError: If the ledger has no budget
            TransportError: If the request fails
        """
        pass


class AuditSinkInterface(ABC):
    """
    Abstract interface for persisting audit events.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event; returns True if persisted."""
        pass


class ServiceError(Exception):
    """Base exception for external service operations."""
    pass


class TransportError(ServiceError):
    """Network or server failure. Retried only by explicit user action."""
    pass


class NotFoundError(ServiceError):
    """Entity not found by the service."""
    pass


class BudgetNotConfiguredError(ServiceError):
    """The ledger has no budget for the requested month."""
    pass
