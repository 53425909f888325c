"""
Summary Models

Month-scoped aggregates computed by the external services: the monthly
summary, the per-day statistics behind the calendar heat map, the category
breakdown and the budget overview.

DESIGN DECISION: These are computed server-side. The engine only stores
them and applies one defensive override to the budget status.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ledger_engine.models.transaction import TransactionType, to_money


ZERO = Decimal("0.00")


class MonthlySummary(BaseModel):
    """Income/expense/balance for one (ledger, month)."""

    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO
    balance: Decimal = ZERO
    total_count: int = Field(default=0, ge=0)

    @field_validator("total_income", "total_expense", "balance")
    @classmethod
    def quantize(cls, v: Decimal) -> Decimal:
        return to_money(v)

    @classmethod
    def zero(cls) -> "MonthlySummary":
        """The fail-safe summary shown when the fetch fails."""
        return cls()


class DailyStatistic(BaseModel):
    """Totals for one calendar day."""

    date: date
    income: Decimal = ZERO
    expense: Decimal = ZERO
    count: int = Field(default=0, ge=0)

    @field_validator("income", "expense")
    @classmethod
    def quantize(cls, v: Decimal) -> Decimal:
        return to_money(v)


class CategorySummaryItem(BaseModel):
    """One row of the category breakdown."""

    category_id: int
    amount: Decimal = ZERO
    count: int = Field(default=0, ge=0)
    percentage: float = Field(default=0.0, ge=0.0, le=100.0)


class CategorySummary(BaseModel):
    """Category breakdown for one (ledger, month, type)."""

    type: TransactionType
    total_amount: Decimal = ZERO
    categories: list[CategorySummaryItem] = Field(default_factory=list)

    @classmethod
    def empty(cls, type: TransactionType) -> "CategorySummary":
        return cls(type=type)


class BudgetStatus(str, Enum):
    """Budget threshold classification reported by the budget service."""
    NORMAL = "normal"
    WARNING = "warning"
    EXCEEDED = "exceeded"


class CategoryBudget(BaseModel):
    """Per-category budget line."""

    category_id: int
    category_name: str = ""
    category_icon: str = ""
    budget_amount: Decimal = ZERO
    expense_amount: Decimal = ZERO
    remaining_amount: Decimal = ZERO
    progress: int = Field(default=0, ge=0)
    status: BudgetStatus = BudgetStatus.NORMAL


class BudgetOverview(BaseModel):
    """
    Spend-to-date against the configured monthly budget of a ledger.

    The status field is whatever the budget service reported.
    Use display_status for rendering.
    """

    ledger_id: Optional[int] = None
    total_budget: Decimal = ZERO
    total_expense: Decimal = ZERO
    remaining_budget: Decimal = ZERO
    progress: int = Field(
        default=0,
        ge=0,
        description="Percent of budget used; may exceed 100 when overspent"
    )
    status: BudgetStatus = BudgetStatus.NORMAL
    category_budgets: list[CategoryBudget] = Field(default_factory=list)

    @property
    def display_status(self) -> BudgetStatus:
        """Reported status, except a negative remainder is always EXCEEDED."""
        if self.remaining_budget < 0:
            return BudgetStatus.EXCEEDED
        return self.status

    @property
    def bar_progress(self) -> int:
        """Progress clamped for a 0-100 progress bar."""
        return min(self.progress, 100)
