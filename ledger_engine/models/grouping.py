"""
Grouping Models

Output types of the aggregation engine and the typed lookup result it
consumes.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ledger_engine.models.transaction import Transaction


class GroupDimension(str, Enum):
    """
    Attribute used to bucket the transaction list.

    NONE bypasses the engine; the list is rendered in fetch order.
    """
    NONE = "none"
    DAY = "day"
    CATEGORY = "category"
    PAYMENT_METHOD = "payment_method"
    AMOUNT = "amount"
    CREATOR = "creator"


class LookupEntry(BaseModel):
    """Display data resolved for a category, payment method or ledger id."""

    name: str
    color: Optional[str] = None
    icon: Optional[str] = None


class TransactionGroup(BaseModel):
    """
    One bucket of the grouped list.

    total_amount is always total_expense + total_income.
    """

    key: str
    title: str
    icon: str
    transactions: list[Transaction] = Field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")
    count: int = Field(default=0, ge=0)
    total_expense: Decimal = Decimal("0.00")
    total_income: Decimal = Decimal("0.00")
    formatted_total: str = ""

    def add(self, transaction: Transaction) -> None:
        amount = transaction.display_amount
        self.transactions.append(transaction)
        self.total_amount += amount
        self.count += 1
        if transaction.is_expense:
            self.total_expense += amount
        else:
            self.total_income += amount
