"""
Monthly Summary & Budget State

Holds the month-scoped widgets of the ledger list, each refreshed
independently for the active (ledger, month):
1. The monthly summary (income, expense, balance, count)
2. The budget overview (only when a ledger is selected)
3. The daily statistics behind the calendar heat map
4. The category breakdown (on demand)

DESIGN DECISION: Each widget has exactly one writer method and its own
safe default. A failing fetch resets only its own widget:
- summary  -> zero-valued summary (never stale data)
- budget   -> unset (a missing budget is not an error)
- calendar -> no statistics (every day renders empty)

Budget status is trusted from the budget service, except that a negative
remaining budget always renders as EXCEEDED.

Responses are tagged with the (ledger, year, month) signature and a
per-widget sequence number; anything that no longer matches is dropped.
While a keyword search is active nothing here refreshes.
"""

import calendar
import itertools
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from ledger_engine.audit import AuditLogger
from ledger_engine.config import DisplaySettings, get_settings
from ledger_engine.models.audit import AuditEventType
from ledger_engine.models.summary import (
    BudgetOverview,
    CategorySummary,
    DailyStatistic,
    MonthlySummary,
)
from ledger_engine.models.transaction import TransactionType
from ledger_engine.models.views import BudgetView, CalendarDay
from ledger_engine.services.interface import (
    BudgetService,
    ServiceError,
    TransactionDataService,
)
from ledger_engine.session import LedgerSession, MonthSignature, month_window


def heat_level(stat: Optional[DailyStatistic], bounds: list[Decimal]) -> int:
    """
    Heat map intensity of one day.

    0 for no activity; otherwise 1 + the number of bounds the day's
    |income| + |expense| reaches.
    """
    if stat is None or stat.count == 0:
        return 0
    total = abs(stat.expense) + abs(stat.income)
    if total == 0:
        return 0
    for level, bound in enumerate(bounds, start=1):
        if total < bound:
            return level
    return len(bounds) + 1


class SummaryState:
    """Month-scoped summary, budget and calendar state of one ledger list."""

    def __init__(
        self,
        service: TransactionDataService,
        budget_service: BudgetService,
        audit_logger: Optional[AuditLogger] = None,
        display: Optional[DisplaySettings] = None,
        clock: Callable[[], date] = date.today,
    ):
        self._service = service
        self._budget_service = budget_service
        self._audit_logger = audit_logger or AuditLogger()
        self._display = display or get_settings().display
        self._clock = clock

        self.summary: MonthlySummary = MonthlySummary.zero()
        self.budget: Optional[BudgetOverview] = None
        self.daily_statistics: list[DailyStatistic] = []
        self.category_breakdown: Optional[CategorySummary] = None

        self._sequence = itertools.count(1)
        self._latest: dict[str, int] = {}

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def refresh_summary(self, session: LedgerSession) -> bool:
        """Refresh the monthly summary; falls back to zero on failure."""
        if session.search_active:
            return False
        signature, ticket = self._issue("summary", session)
        start, end = month_window(session.selected_month)

        try:
            summary = await self._service.get_monthly_summary(signature.ledger_id, start, end)
        except ServiceError as e:
            if self._is_current("summary", session, signature, ticket):
                self.summary = MonthlySummary.zero()
                await self._audit_logger.log_widget_fallback(
                    AuditEventType.SUMMARY_FALLBACK,
                    signature.ledger_id,
                    signature.describe(),
                    str(e),
                )
            return False

        if not await self._accept("summary", session, signature, ticket):
            return False
        self.summary = summary
        return True

    async def refresh_budget(self, session: LedgerSession) -> bool:
        """
        Refresh the budget overview.

        Without a selected ledger there is no budget. A missing budget or
        a failed fetch clears the overview to unset.
        """
        if session.search_active:
            return False
        signature, ticket = self._issue("budget", session)

        if signature.ledger_id is None:
            self.budget = None
            return True

        try:
            overview = await self._budget_service.get_budget_overview(
                signature.ledger_id, signature.year, signature.month
            )
        except ServiceError as e:
            if self._is_current("budget", session, signature, ticket):
                self.budget = None
                await self._audit_logger.log_widget_fallback(
                    AuditEventType.BUDGET_UNSET,
                    signature.ledger_id,
                    signature.describe(),
                    str(e),
                )
            return False

        if not await self._accept("budget", session, signature, ticket):
            return False
        self.budget = overview
        return True

    async def refresh_statistics(self, session: LedgerSession) -> bool:
        """Refresh the daily statistics of the calendar heat map."""
        if session.search_active:
            return False
        signature, ticket = self._issue("statistics", session)
        start, end = month_window(session.selected_month)

        try:
            stats = await self._service.get_daily_statistics(signature.ledger_id, start, end)
        except ServiceError as e:
            if self._is_current("statistics", session, signature, ticket):
                self.daily_statistics = []
                await self._audit_logger.log_widget_fallback(
                    AuditEventType.STATISTICS_FALLBACK,
                    signature.ledger_id,
                    signature.describe(),
                    str(e),
                )
            return False

        if not await self._accept("statistics", session, signature, ticket):
            return False
        self.daily_statistics = stats
        return True

    async def load_category_breakdown(
        self,
        session: LedgerSession,
        type: TransactionType = TransactionType.EXPENSE,
    ) -> CategorySummary:
        """Load the per-category breakdown; empty on failure."""
        signature, ticket = self._issue("categories", session)
        start, end = month_window(session.selected_month)

        try:
            breakdown = await self._service.get_category_summary(
                signature.ledger_id, start, end, type
            )
        except ServiceError:
            breakdown = CategorySummary.empty(type)

        if await self._accept("categories", session, signature, ticket):
            self.category_breakdown = breakdown
        return breakdown

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def budget_view(self) -> Optional[BudgetView]:
        if self.budget is None:
            return None
        return BudgetView.from_overview(self.budget)

    def calendar(self, month: date) -> list[CalendarDay]:
        """One cell per calendar day of ``month``."""
        today = self._clock()
        by_date = {stat.date: stat for stat in self.daily_statistics}
        bounds = self._display.heat_level_bounds
        days_in_month = calendar.monthrange(month.year, month.month)[1]

        cells = []
        for day_number in range(1, days_in_month + 1):
            day = date(month.year, month.month, day_number)
            stat = by_date.get(day)
            cells.append(CalendarDay(
                date=day,
                income=stat.income if stat else Decimal("0.00"),
                expense=stat.expense if stat else Decimal("0.00"),
                count=stat.count if stat else 0,
                heat_level=heat_level(stat, bounds),
                is_today=day == today,
                is_future=day > today,
            ))
        return cells

    # -------------------------------------------------------------------------
    # Stale-response bookkeeping
    # -------------------------------------------------------------------------

    def _issue(self, widget: str, session: LedgerSession) -> tuple[MonthSignature, int]:
        ticket = next(self._sequence)
        self._latest[widget] = ticket
        return session.month_signature(), ticket

    def _is_current(
        self,
        widget: str,
        session: LedgerSession,
        signature: MonthSignature,
        ticket: int,
    ) -> bool:
        return (
            self._latest.get(widget) == ticket
            and session.month_signature() == signature
        )

    async def _accept(
        self,
        widget: str,
        session: LedgerSession,
        signature: MonthSignature,
        ticket: int,
    ) -> bool:
        if self._is_current(widget, session, signature, ticket):
            return True
        await self._audit_logger.log_stale_response(
            source=widget,
            requested=signature.describe(),
            current=session.month_signature().describe(),
        )
        return False
