"""
View Models

Plain, serializable structures exposed upward to whatever renders the
ledger list. No UI-framework types appear here.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ledger_engine.models.grouping import GroupDimension, TransactionGroup
from ledger_engine.models.summary import (
    BudgetOverview,
    BudgetStatus,
    CategorySummary,
    MonthlySummary,
)
from ledger_engine.models.transaction import Transaction


class NoticeLevel(str, Enum):
    """Severity of a transient notice."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    """
    A transient, user-visible message (the toast of the list screen).

    retryable notices are the only way a failed fetch gets retried:
    by explicit user action.
    """

    level: NoticeLevel = NoticeLevel.INFO
    message: str
    retryable: bool = False
    created_at: datetime = Field(default_factory=datetime.now)

    @classmethod
    def info(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.INFO, message=message)

    @classmethod
    def transport_failure(cls, message: str) -> "Notice":
        return cls(level=NoticeLevel.ERROR, message=message, retryable=True)


class ExpansionStatus(str, Enum):
    """Per-transaction expansion state."""
    COLLAPSED = "collapsed"
    LOADING = "loading"
    EXPANDED = "expanded"


class ExpansionView(BaseModel):
    """Expansion state of one parent transaction."""

    transaction_id: int
    status: ExpansionStatus = ExpansionStatus.COLLAPSED
    children: list[Transaction] = Field(default_factory=list)
    notice: Optional[Notice] = None


class BudgetView(BaseModel):
    """Budget card data with the rendered (possibly overridden) status."""

    total_budget: Decimal
    total_expense: Decimal
    remaining_budget: Decimal
    progress: int
    bar_progress: int
    status: BudgetStatus

    @classmethod
    def from_overview(cls, overview: BudgetOverview) -> "BudgetView":
        return cls(
            total_budget=overview.total_budget,
            total_expense=overview.total_expense,
            remaining_budget=overview.remaining_budget,
            progress=overview.progress,
            bar_progress=overview.bar_progress,
            status=overview.display_status,
        )


class CalendarDay(BaseModel):
    """One cell of the monthly calendar heat map."""

    date: date
    income: Decimal = Decimal("0.00")
    expense: Decimal = Decimal("0.00")
    count: int = 0
    heat_level: int = Field(default=0, ge=0)
    is_today: bool = False
    is_future: bool = False


class TransactionListView(BaseModel):
    """Everything the list screen renders, in one serializable object."""

    dimension: GroupDimension
    groups: list[TransactionGroup] = Field(default_factory=list)
    transactions: list[Transaction] = Field(default_factory=list)
    expansions: dict[int, ExpansionView] = Field(default_factory=dict)

    summary: MonthlySummary = Field(default_factory=MonthlySummary)
    budget: Optional[BudgetView] = None
    calendar: list[CalendarDay] = Field(default_factory=list)
    category_breakdown: Optional[CategorySummary] = None

    page: int = 0
    has_next: bool = False
    total_count: int = 0
    is_loading: bool = False
    is_loading_more: bool = False
    is_searching: bool = False
    keyword: Optional[str] = None
    selected_month: date
    selected_day: Optional[date] = None
    notice: Optional[Notice] = None
