"""
Shared fixtures for the ledger engine tests.

Everything runs against the in-memory services; no network.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from ledger_engine.audit import AuditLogger
from ledger_engine.config import DisplaySettings, PagingSettings
from ledger_engine.models import LookupEntry, Transaction, TransactionType
from ledger_engine.services import (
    InMemoryAuditSink,
    InMemoryBudgetService,
    InMemoryLookup,
    InMemoryTransactionService,
)
from ledger_engine.session import LedgerSession


TODAY = date(2024, 5, 15)


@pytest.fixture
def make_transaction():
    """Factory for transactions with sensible defaults."""
    def _make(
        id: int,
        amount="10.00",
        type: TransactionType = TransactionType.EXPENSE,
        occurred_at: datetime = datetime(2024, 5, 10, 12, 0),
        category_id: int = 1,
        **kwargs,
    ) -> Transaction:
        return Transaction(
            id=id,
            amount=Decimal(str(amount)),
            type=type,
            occurred_at=occurred_at,
            category_id=category_id,
            **kwargs,
        )
    return _make


@pytest.fixture
def categories():
    return InMemoryLookup({
        1: LookupEntry(name="Food", color="#FF9800", icon="restaurant"),
        2: LookupEntry(name="Transport", color="#2196F3", icon="car"),
        3: LookupEntry(name="Salary", color="#4CAF50", icon="briefcase"),
    })


@pytest.fixture
def payment_methods():
    return InMemoryLookup({
        10: LookupEntry(name="Cash", icon="wallet"),
        11: LookupEntry(name="Credit card"),
    })


@pytest.fixture
def audit_sink():
    return InMemoryAuditSink()


@pytest.fixture
def audit_logger(audit_sink):
    return AuditLogger(audit_sink)


@pytest.fixture
def paging():
    return PagingSettings()


@pytest.fixture
def display():
    return DisplaySettings()


@pytest.fixture
def session():
    return LedgerSession(selected_month=TODAY)


@pytest.fixture
def service():
    return InMemoryTransactionService()


@pytest.fixture
def budget_service():
    return InMemoryBudgetService()
