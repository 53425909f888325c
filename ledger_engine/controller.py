"""
Transaction List Controller

This module ties together the components of one ledger list screen:
1. Query Coordinator (the paged, filtered list)
2. Expansion Cache (appended children + the append mutation)
3. Summary State (summary, budget, calendar, category breakdown)
4. Search Overlay (keyword mode)

DESIGN DECISION: The controller owns no list state of its own. Each
sub-state has exactly one writer component; the controller only decides
WHEN they run:
- a full refresh runs the list and the month widgets concurrently
- scope changes inside the month (day, filter, sort) refetch only the list
- the month widgets are never refreshed while searching

Every mutation is audited and confirmed by the data service before the
list reflects it, except for the optimistic parent update after an
append, which is immediately reconciled by a refetch.
"""

import asyncio
from datetime import date
from typing import Callable, Optional
from uuid import UUID

import structlog

from ledger_engine.audit import AuditLogger, create_correlation_id
from ledger_engine.config import Settings, get_settings
from ledger_engine.expansion import ExpansionCache
from ledger_engine.grouping import (
    GroupingLookups,
    build_amount_brackets,
    flatten,
    group_transactions,
)
from ledger_engine.models.grouping import GroupDimension
from ledger_engine.models.summary import CategorySummary
from ledger_engine.models.transaction import (
    FilterType,
    SortDirection,
    SortField,
    Transaction,
    TransactionType,
)
from ledger_engine.models.views import ExpansionView, Notice, TransactionListView
from ledger_engine.queries import QueryCoordinator
from ledger_engine.search import SearchOverlay
from ledger_engine.services.interface import (
    AuditSinkInterface,
    BudgetService,
    LookupService,
    ServiceError,
    TransactionDataService,
    TransportError,
)
from ledger_engine.session import LedgerSession, month_start, shift_month
from ledger_engine.summary import SummaryState
from ledger_engine.validation import MutationValidator, ValidationError


logger = structlog.get_logger(__name__)


MUTATION_FAILED_MESSAGE = "Operation failed, please try again"


class TransactionListController:
    """
    Orchestrates one ledger list.

    Flow:
    1. refresh() on mount and pull-to-refresh
    2. navigation / filters narrow the scope and refetch what depends on it
    3. mutations (delete, move, append) go to the data service first
    4. view() renders everything into one serializable object
    """

    def __init__(
        self,
        service: TransactionDataService,
        budget_service: BudgetService,
        categories: LookupService,
        payment_methods: LookupService,
        session: Optional[LedgerSession] = None,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[MutationValidator] = None,
        clock: Callable[[], date] = date.today,
    ):
        settings = settings or get_settings()
        self._service = service
        self._categories = categories
        self._payment_methods = payment_methods
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or MutationValidator()
        self._clock = clock
        self._brackets = build_amount_brackets(settings.display.amount_bracket_bounds)
        self._currency_symbol = settings.display.currency_symbol

        self.session = session or LedgerSession(selected_month=clock())
        self.coordinator = QueryCoordinator(service, self._audit_logger, settings.paging)
        self.expansions = ExpansionCache(
            service,
            validator=self._validator,
            audit_logger=self._audit_logger,
            on_appended=self._after_append,
        )
        self.summary = SummaryState(
            service,
            budget_service,
            audit_logger=self._audit_logger,
            display=settings.display,
            clock=clock,
        )
        self.search = SearchOverlay(self.session)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def refresh(self, correlation_id: Optional[UUID] = None) -> None:
        """
        Reload the list and (unless searching) the month widgets.

        The fetches run concurrently and fail independently.
        """
        correlation_id = correlation_id or create_correlation_id()
        tasks = [self.coordinator.load(self.session, correlation_id=correlation_id)]
        if not self.search.is_active:
            tasks.extend(self._widget_refreshes())
        await asyncio.gather(*tasks)

    async def refresh_list(self, correlation_id: Optional[UUID] = None) -> bool:
        return await self.coordinator.load(self.session, correlation_id=correlation_id)

    async def refresh_widgets(self) -> None:
        if self.search.is_active:
            return
        await asyncio.gather(*self._widget_refreshes())

    async def load_more(self) -> bool:
        return await self.coordinator.load(self.session, load_more=True)

    async def load_category_breakdown(
        self,
        type: TransactionType = TransactionType.EXPENSE,
    ) -> CategorySummary:
        return await self.summary.load_category_breakdown(self.session, type)

    def _widget_refreshes(self) -> list:
        return [
            self.summary.refresh_statistics(self.session),
            self.summary.refresh_summary(self.session),
            self.summary.refresh_budget(self.session),
        ]

    # -------------------------------------------------------------------------
    # Navigation and filters
    # -------------------------------------------------------------------------

    async def previous_month(self) -> None:
        self.session.set_month(shift_month(self.session.selected_month, -1))
        await self.refresh()

    async def next_month(self) -> bool:
        """Move one month forward; never past the current month."""
        target = shift_month(self.session.selected_month, 1)
        if target > month_start(self._clock()):
            logger.debug("next_month_rejected", target=target.isoformat())
            return False
        self.session.set_month(target)
        await self.refresh()
        return True

    async def select_day(self, day: date) -> None:
        """Select a day, or clear the selection if it is already selected."""
        session = self.session
        if session.selected_day == day:
            session.set_day(None)
            await self.refresh_list()
            return

        previous_month = session.selected_month
        session.set_day(day)
        if session.selected_month != previous_month:
            await self.refresh()
        else:
            await self.refresh_list()

    async def set_filter_type(self, filter_type: FilterType) -> None:
        self.session.set_filter_type(filter_type)
        await self.refresh_list()

    async def set_sort(self, field: SortField, direction: SortDirection) -> None:
        self.session.set_sort(field, direction)
        await self.refresh_list()

    async def set_ledger(self, ledger_id: Optional[int]) -> None:
        self.session.set_ledger(ledger_id)
        self.expansions.clear()
        await self.refresh()

    def set_dimension(self, dimension: GroupDimension) -> None:
        """Regroup the loaded list; nothing is refetched."""
        self.session.set_dimension(dimension)

    def dismiss_notice(self) -> None:
        self.session.notice = None

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def start_search(self) -> None:
        self.search.activate()

    async def search_keyword(self, text: Optional[str]) -> bool:
        """Run a keyword search across all dates."""
        if not self.search.is_active:
            self.search.activate()
        self.search.set_keyword(text)
        return await self.refresh_list()

    async def end_search(self) -> None:
        self.search.deactivate()
        await self.refresh()

    # -------------------------------------------------------------------------
    # Expansion
    # -------------------------------------------------------------------------

    async def expand(self, transaction_id: int) -> ExpansionView:
        return await self.expansions.expand(transaction_id)

    def collapse(self, transaction_id: int) -> None:
        self.expansions.collapse(transaction_id)

    async def append(
        self,
        transaction_id: int,
        amount,
        description: Optional[str] = None,
    ) -> Transaction:
        """
        Append a child (top-up) to a parent transaction.

        Raises:
            ValidationError: If the request is invalid (nothing is sent)
            ServiceError: If the data service fails the request
        """
        correlation_id = create_correlation_id()
        try:
            return await self.expansions.append(
                transaction_id,
                amount,
                description,
                correlation_id=correlation_id,
            )
        except ServiceError as e:
            self._surface_failure(e)
            raise

    async def _after_append(self, parent_id: int, child: Transaction) -> None:
        parent = self.session.find(parent_id)
        if parent is not None:
            self.session.replace_transaction(parent.with_appended(child.amount))
        await self.refresh_list()
        await self.refresh_widgets()

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    async def delete(self, transaction_id: int) -> None:
        """
        Delete a transaction.

        The row leaves the list only after the data service confirms.
        Deleting a cached child reloads its parent's children and totals.
        """
        correlation_id = create_correlation_id()
        parent_id = self.expansions.parent_of(transaction_id)
        try:
            await self._service.delete(transaction_id)
        except ServiceError as e:
            await self._audit_logger.log_mutation_failed(
                operation="delete",
                transaction_id=transaction_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            self._surface_failure(e)
            raise

        self.session.remove_transaction(transaction_id)
        self.expansions.invalidate(transaction_id)
        await self._audit_logger.log_transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        if parent_id is not None:
            await self.expansions.reload(parent_id)
            await self.refresh_list()
        await self.refresh_widgets()

    async def move_to_ledger(self, transaction_id: int, ledger_id: int) -> None:
        """
        Move a transaction to another ledger and refetch.

        Raises:
            ValidationError: If the transaction is not listed or is
                already in ``ledger_id``
            ServiceError: If the data service fails the request
        """
        correlation_id = create_correlation_id()
        transaction = self.session.find(transaction_id)
        try:
            self._validator.validate_move(transaction, ledger_id)
        except ValidationError as e:
            await self._audit_logger.log_mutation_rejected(
                operation="move",
                transaction_id=transaction_id,
                issues=e.to_dicts(),
            )
            raise

        try:
            await self._service.move_to_ledger(transaction_id, ledger_id)
        except ServiceError as e:
            await self._audit_logger.log_mutation_failed(
                operation="move",
                transaction_id=transaction_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            self._surface_failure(e)
            raise

        await self._audit_logger.log_transaction_moved(
            transaction_id=transaction_id,
            from_ledger_id=transaction.ledger_id,
            to_ledger_id=ledger_id,
            correlation_id=correlation_id,
        )
        self.expansions.invalidate(transaction_id)
        await self.refresh(correlation_id=correlation_id)

    def _surface_failure(self, error: ServiceError) -> None:
        if isinstance(error, TransportError):
            self.session.notice = Notice.transport_failure(MUTATION_FAILED_MESSAGE)

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    def lookups(self) -> GroupingLookups:
        return GroupingLookups(
            categories=self._categories,
            payment_methods=self._payment_methods,
            today=self._clock(),
            brackets=self._brackets,
            currency_symbol=self._currency_symbol,
        )

    def view(self) -> TransactionListView:
        session = self.session
        return TransactionListView(
            dimension=session.dimension,
            groups=group_transactions(session.transactions, session.dimension, self.lookups()),
            transactions=flatten(session.transactions),
            expansions=self.expansions.views(),
            summary=self.summary.summary,
            budget=self.summary.budget_view(),
            calendar=self.summary.calendar(session.selected_month),
            category_breakdown=self.summary.category_breakdown,
            page=session.page,
            has_next=session.has_next,
            total_count=session.total_count,
            is_loading=session.is_loading,
            is_loading_more=session.is_loading_more,
            is_searching=session.search_active,
            keyword=session.keyword,
            selected_month=session.selected_month,
            selected_day=session.selected_day,
            notice=session.notice,
        )


def create_controller(
    service: TransactionDataService,
    budget_service: BudgetService,
    categories: LookupService,
    payment_methods: LookupService,
    audit_sink: Optional[AuditSinkInterface] = None,
    ledger_id: Optional[int] = None,
) -> TransactionListController:
    """
    Factory function to wire a controller for one ledger list.

    Args:
        audit_sink: Persistence for audit events. If None, audit events
            are only logged locally.
        ledger_id: Ledger to open the list on (None for all ledgers)
    """
    audit_logger = AuditLogger(audit_sink)
    session = LedgerSession(ledger_id=ledger_id)
    return TransactionListController(
        service=service,
        budget_service=budget_service,
        categories=categories,
        payment_methods=payment_methods,
        session=session,
        audit_logger=audit_logger,
    )
