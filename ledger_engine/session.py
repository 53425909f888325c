"""
Ledger List Session State

DESIGN DECISION: All filter, scope, paging and list state of one ledger
list lives in an explicit LedgerSession object that is passed to the
components. There are no module-level singletons holding state.

Every setter that changes the fetch scope resets the page to 0, so a
scope change can never be combined with a stale page index.
"""

import calendar
from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ledger_engine.models.grouping import GroupDimension
from ledger_engine.models.transaction import (
    FilterType,
    SortDirection,
    SortField,
    Transaction,
    TransactionPage,
)
from ledger_engine.models.views import Notice


def month_start(day: date) -> date:
    """First day of the month containing ``day``."""
    return date(day.year, day.month, 1)


def shift_month(month: date, delta: int) -> date:
    """First day of the month ``delta`` months away from ``month``."""
    index = month.year * 12 + (month.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def day_window(day: date) -> tuple[datetime, datetime]:
    """[00:00:00, 23:59:59.999999] of one day."""
    return datetime.combine(day, time.min), datetime.combine(day, time.max)


def month_window(month: date) -> tuple[datetime, datetime]:
    """[first day 00:00, last day 23:59:59.999999] of one month."""
    last_day = calendar.monthrange(month.year, month.month)[1]
    return (
        datetime.combine(date(month.year, month.month, 1), time.min),
        datetime.combine(date(month.year, month.month, last_day), time.max),
    )


class ScopeSignature(BaseModel):
    """
    Everything that determines which records a list fetch returns.

    A response is applied only if the signature it was requested with
    still equals the session's current signature.
    """
    model_config = ConfigDict(frozen=True)

    filter_type: FilterType
    ledger_id: Optional[int]
    month: Optional[date]
    day: Optional[date]
    sort_field: SortField
    sort_direction: SortDirection
    keyword: Optional[str]

    def describe(self) -> str:
        return "|".join(
            "" if v is None else str(getattr(v, "value", v))
            for v in self.model_dump().values()
        )


class MonthSignature(BaseModel):
    """Scope of the month-scoped widgets (summary, budget, calendar)."""
    model_config = ConfigDict(frozen=True)

    ledger_id: Optional[int]
    year: int
    month: int

    def describe(self) -> str:
        return f"{self.ledger_id}|{self.year}-{self.month:02d}"


class LedgerSession:
    """
    Mutable state of one ledger list.

    The components read the scope from here and write their results
    back; each piece of state has exactly one writer component.
    """

    def __init__(
        self,
        selected_month: Optional[date] = None,
        ledger_id: Optional[int] = None,
        filter_type: FilterType = FilterType.ALL,
        dimension: GroupDimension = GroupDimension.DAY,
        sort_field: SortField = SortField.OCCURRED_AT,
        sort_direction: SortDirection = SortDirection.DESC,
    ):
        # Scope
        self.filter_type = filter_type
        self.ledger_id = ledger_id
        self.selected_month = month_start(selected_month or date.today())
        self.selected_day: Optional[date] = None
        self.sort_field = sort_field
        self.sort_direction = sort_direction
        self.keyword: Optional[str] = None
        self.search_active = False

        # Presentation
        self.dimension = dimension

        # List state (written by the query coordinator)
        self.transactions: list[Transaction] = []
        self.page = 0
        self.has_next = True
        self.total_count = 0
        self.is_loading = False
        self.is_loading_more = False
        self.list_generation = 0
        # Scope of the records in `transactions`; None until a page is applied
        self.loaded_signature: Optional[ScopeSignature] = None
        self.notice: Optional[Notice] = None

    # -------------------------------------------------------------------------
    # Scope setters
    # -------------------------------------------------------------------------

    def set_filter_type(self, filter_type: FilterType) -> None:
        self.filter_type = filter_type
        self.reset_paging()

    def set_ledger(self, ledger_id: Optional[int]) -> None:
        self.ledger_id = ledger_id
        self.reset_paging()

    def set_month(self, month: date) -> None:
        self.selected_month = month_start(month)
        self.selected_day = None
        self.reset_paging()

    def set_day(self, day: Optional[date]) -> None:
        """Select a single day (or clear the selection with None)."""
        if day is not None:
            self.selected_month = month_start(day)
        self.selected_day = day
        self.reset_paging()

    def set_sort(self, field: SortField, direction: SortDirection) -> None:
        self.sort_field = field
        self.sort_direction = direction
        self.reset_paging()

    def set_keyword(self, keyword: Optional[str]) -> None:
        keyword = (keyword or "").strip()
        self.keyword = keyword or None
        self.reset_paging()

    def set_dimension(self, dimension: GroupDimension) -> None:
        # Grouping is client-side; no refetch needed
        self.dimension = dimension

    def reset_paging(self) -> None:
        self.page = 0

    # -------------------------------------------------------------------------
    # Derived scope
    # -------------------------------------------------------------------------

    @property
    def is_time_scoped(self) -> bool:
        """False while searching: search ignores the month/day window."""
        return not self.search_active and not self.keyword

    def time_window(self) -> tuple[Optional[datetime], Optional[datetime]]:
        """The fetch window; a selected day wins over the month."""
        if not self.is_time_scoped:
            return None, None
        if self.selected_day is not None:
            return day_window(self.selected_day)
        return month_window(self.selected_month)

    def signature(self) -> ScopeSignature:
        scoped = self.is_time_scoped
        return ScopeSignature(
            filter_type=self.filter_type,
            ledger_id=self.ledger_id,
            month=self.selected_month if scoped else None,
            day=self.selected_day if scoped else None,
            sort_field=self.sort_field,
            sort_direction=self.sort_direction,
            keyword=self.keyword,
        )

    def month_signature(self) -> MonthSignature:
        return MonthSignature(
            ledger_id=self.ledger_id,
            year=self.selected_month.year,
            month=self.selected_month.month,
        )

    # -------------------------------------------------------------------------
    # List mutations
    # -------------------------------------------------------------------------

    def apply_page(self, result: TransactionPage, load_more: bool) -> None:
        if load_more:
            self.transactions = self.transactions + result.records
        else:
            self.transactions = list(result.records)
            self.loaded_signature = self.signature()
        self.page = result.page
        self.has_next = result.has_next
        self.total_count = result.total_count

    def find(self, transaction_id: int) -> Optional[Transaction]:
        for transaction in self.transactions:
            if transaction.id == transaction_id:
                return transaction
        return None

    def replace_transaction(self, transaction: Transaction) -> None:
        self.transactions = [
            transaction if t.id == transaction.id else t
            for t in self.transactions
        ]

    def remove_transaction(self, transaction_id: int) -> bool:
        before = len(self.transactions)
        self.transactions = [t for t in self.transactions if t.id != transaction_id]
        removed = len(self.transactions) < before
        if removed:
            self.total_count = max(self.total_count - 1, 0)
        return removed
