"""
Transaction Models for the Ledger Engine

These models define the schemas for every record the engine reads from the
Transaction Data Service and every request it sends back.
They are designed to:
1. Enforce the 2-decimal currency representation at runtime
2. Keep aggregated (parent + appended children) amounts consistent
3. Be serializable for logging and for the view layer

DESIGN DECISION: Transactions are read-only representations. The engine
derives new copies (append, move) instead of mutating records in place.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a numeric value to the 2-decimal currency representation."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(value, symbol: str) -> str:
    """Render a money value with its symbol, e.g. ¥1,234.50."""
    return f"{symbol}{to_money(value):,.2f}"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of a transaction."""
    INCOME = "income"
    EXPENSE = "expense"


class TransactionSource(str, Enum):
    """How a transaction was recorded."""
    MANUAL = "manual"
    AI = "ai"


class FilterType(str, Enum):
    """
    List filter by transaction type.

    ALL sends no type constraint to the data service.
    """
    ALL = "all"
    EXPENSE = "expense"
    INCOME = "income"

    def to_transaction_type(self) -> Optional[TransactionType]:
        if self is FilterType.ALL:
            return None
        return TransactionType(self.value)


class SortField(str, Enum):
    """Server-side sort field."""
    OCCURRED_AT = "occurred_at"
    AMOUNT = "amount"
    CREATED_AT = "created_at"


class SortDirection(str, Enum):
    """Server-side sort direction."""
    ASC = "asc"
    DESC = "desc"


# =============================================================================
# CORE TRANSACTION MODEL
# =============================================================================

class Transaction(BaseModel):
    """
    A single ledger record as returned by the data service.

    A transaction with child_count > 0 is a parent that has absorbed one or
    more appended top-ups; its aggregated_amount is what gets displayed.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: int = Field(
        ...,
        description="Unique transaction ID"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Raw amount of this record"
    )
    type: TransactionType
    occurred_at: datetime = Field(
        ...,
        description="When the transaction happened"
    )
    category_id: int
    payment_method_id: Optional[int] = None
    ledger_id: Optional[int] = None
    description: Optional[str] = Field(
        default=None,
        max_length=500
    )
    created_by_user_id: Optional[int] = None
    source: TransactionSource = TransactionSource.MANUAL
    created_at: Optional[datetime] = None

    # Aggregation
    child_count: int = Field(
        default=0,
        ge=0,
        description="Number of appended child transactions"
    )
    aggregated_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        decimal_places=2,
        description="amount + sum of children; present only when child_count > 0"
    )
    # Stamped on the client when fetched through the aggregation endpoint
    parent_id: Optional[int] = None

    @field_validator("amount", "aggregated_amount")
    @classmethod
    def quantize_amount(cls, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return v
        return to_money(v)

    @model_validator(mode="after")
    def validate_aggregation(self) -> "Transaction":
        """aggregated_amount only makes sense for parents."""
        if self.child_count == 0 and self.aggregated_amount is not None:
            raise ValueError("aggregated_amount requires child_count > 0")
        return self

    @property
    def display_amount(self) -> Decimal:
        """The amount shown wherever this record is rendered."""
        if self.child_count > 0 and self.aggregated_amount is not None:
            return self.aggregated_amount
        return self.amount

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    def with_appended(self, amount: Decimal) -> "Transaction":
        """Return a copy that has absorbed one more child of ``amount``."""
        return self.model_copy(update={
            "child_count": self.child_count + 1,
            "aggregated_amount": to_money(self.display_amount + amount),
        })


class AggregatedTransaction(BaseModel):
    """A parent transaction together with its appended children."""

    parent: Transaction
    children: list[Transaction] = Field(default_factory=list)

    @property
    def aggregated_amount(self) -> Decimal:
        total = self.parent.amount + sum(
            (child.amount for child in self.children), Decimal("0")
        )
        return to_money(total)

    @property
    def child_count(self) -> int:
        return len(self.children)


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionQuery(BaseModel):
    """
    One paged fetch against the Transaction Data Service.

    start_time/end_time are None when no time window applies
    (always the case while a keyword search is active).
    """

    ledger_id: Optional[int] = None
    type: Optional[TransactionType] = None
    category_id: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    page: int = Field(default=0, ge=0)
    size: int = Field(default=10, ge=1, le=500)
    sort_by: SortField = SortField.OCCURRED_AT
    sort_direction: SortDirection = SortDirection.DESC
    keyword: Optional[str] = None

    @model_validator(mode="after")
    def validate_window(self) -> "TransactionQuery":
        if (self.start_time is None) != (self.end_time is None):
            raise ValueError("start_time and end_time must be set together")
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("end_time cannot be before start_time")
        return self


class TransactionPage(BaseModel):
    """A page of records returned by the data service."""

    records: list[Transaction] = Field(default_factory=list)
    page: int = Field(default=0, ge=0)
    has_next: bool = False
    total_count: int = Field(default=0, ge=0)
