"""
In-Memory Service Implementations

Reference implementations of the service interfaces, backed by plain
Python containers. Used for tests and for wiring the engine without a
backend.

Besides serving data they can:
- record every call (``calls``) so tests can count fetches
- pause a method until released (``pause`` / ``resume``) to hold a
  request in flight
- fail a method a given number of times (``fail``)
"""

import asyncio
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ledger_engine.models.audit import AuditEvent
from ledger_engine.models.grouping import LookupEntry
from ledger_engine.models.summary import (
    BudgetOverview,
    CategorySummary,
    CategorySummaryItem,
    DailyStatistic,
    MonthlySummary,
)
from ledger_engine.models.transaction import (
    AggregatedTransaction,
    SortDirection,
    SortField,
    Transaction,
    TransactionPage,
    TransactionQuery,
    TransactionType,
    to_money,
)
from ledger_engine.services.interface import (
    AuditSinkInterface,
    BudgetNotConfiguredError,
    BudgetService,
    LookupService,
    NotFoundError,
    TransactionDataService,
)


class _ScriptedService:
    """Call recording, pausing and failure injection shared by the fakes."""

    def __init__(self):
        self.calls: list[tuple] = []
        self._gates: dict[str, asyncio.Event] = {}
        self._failures: dict[str, list[Exception]] = defaultdict(list)

    def pause(self, method: str) -> None:
        """Hold every call to ``method`` until resume() is called."""
        self._gates[method] = asyncio.Event()

    def resume(self, method: str) -> None:
        gate = self._gates.pop(method, None)
        if gate is not None:
            gate.set()

    def fail(self, method: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise ``error``."""
        self._failures[method].extend([error] * times)

    def call_count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def _enter(self, method: str, *args) -> None:
        self.calls.append((method, *args))
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()
        if self._failures[method]:
            raise self._failures[method].pop(0)


class InMemoryTransactionService(_ScriptedService, TransactionDataService):
    """Transaction Data Service over a dict of records."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        super().__init__()
        self._records: dict[int, Transaction] = {}
        self._children: dict[int, list[Transaction]] = defaultdict(list)
        self._next_id = 1
        for transaction in transactions or []:
            self.add(transaction)

    def add(self, transaction: Transaction) -> None:
        self._records[transaction.id] = transaction
        self._next_id = max(self._next_id, transaction.id + 1)

    def add_child(self, parent_id: int, child: Transaction) -> None:
        """Seed an existing child; the parent's aggregate is recomputed."""
        parent = self._records[parent_id]
        self._children[parent_id].append(child)
        self._records[parent_id] = parent.with_appended(child.amount)
        self._next_id = max(self._next_id, child.id + 1)

    def get(self, transaction_id: int) -> Transaction:
        try:
            return self._records[transaction_id]
        except KeyError:
            raise NotFoundError(f"Transaction {transaction_id} not found")

    # -------------------------------------------------------------------------
    # TransactionDataService
    # -------------------------------------------------------------------------

    async def query(self, query: TransactionQuery) -> TransactionPage:
        await self._enter("query", query)

        matches = [
            record for record in self._records.values()
            if self._matches(record, query)
        ]
        matches.sort(
            key=lambda r: self._sort_key(r, query.sort_by),
            reverse=query.sort_direction == SortDirection.DESC,
        )

        start = query.page * query.size
        end = start + query.size
        return TransactionPage(
            records=matches[start:end],
            page=query.page,
            has_next=end < len(matches),
            total_count=len(matches),
        )

    async def delete(self, transaction_id: int) -> None:
        await self._enter("delete", transaction_id)
        for parent_id, children in self._children.items():
            if any(child.id == transaction_id for child in children):
                self._remove_child(parent_id, transaction_id)
                return
        self.get(transaction_id)
        del self._records[transaction_id]
        self._children.pop(transaction_id, None)

    async def move_to_ledger(self, transaction_id: int, ledger_id: int) -> None:
        await self._enter("move_to_ledger", transaction_id, ledger_id)
        record = self.get(transaction_id)
        self._records[transaction_id] = record.model_copy(update={"ledger_id": ledger_id})

    async def append_child(
        self,
        parent_id: int,
        amount: Decimal,
        description: Optional[str] = None,
    ) -> Transaction:
        await self._enter("append_child", parent_id, amount, description)
        parent = self.get(parent_id)
        child = Transaction(
            id=self._next_id,
            amount=amount,
            type=parent.type,
            occurred_at=datetime.now(),
            category_id=parent.category_id,
            payment_method_id=parent.payment_method_id,
            ledger_id=parent.ledger_id,
            description=description,
            created_by_user_id=parent.created_by_user_id,
            source=parent.source,
        )
        self._next_id += 1
        self._children[parent_id].append(child)
        self._records[parent_id] = parent.with_appended(child.amount)
        return child

    async def get_aggregated(self, transaction_id: int) -> AggregatedTransaction:
        await self._enter("get_aggregated", transaction_id)
        return AggregatedTransaction(
            parent=self.get(transaction_id),
            children=list(self._children.get(transaction_id, [])),
        )

    async def get_daily_statistics(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> list[DailyStatistic]:
        await self._enter("get_daily_statistics", ledger_id, start, end)

        by_day: dict[date, DailyStatistic] = {}
        for record in self._in_window(ledger_id, start, end):
            day = record.occurred_at.date()
            stat = by_day.setdefault(day, DailyStatistic(date=day))
            if record.is_expense:
                stat.expense += record.display_amount
            else:
                stat.income += record.display_amount
            stat.count += 1

        return [by_day[day] for day in sorted(by_day)]

    async def get_monthly_summary(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> MonthlySummary:
        await self._enter("get_monthly_summary", ledger_id, start, end)

        income = Decimal("0")
        expense = Decimal("0")
        count = 0
        for record in self._in_window(ledger_id, start, end):
            if record.is_expense:
                expense += record.display_amount
            else:
                income += record.display_amount
            count += 1

        return MonthlySummary(
            total_income=income,
            total_expense=expense,
            balance=income - expense,
            total_count=count,
        )

    async def get_category_summary(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
        type: TransactionType,
    ) -> CategorySummary:
        await self._enter("get_category_summary", ledger_id, start, end, type)

        totals: dict[int, Decimal] = defaultdict(Decimal)
        counts: dict[int, int] = defaultdict(int)
        for record in self._in_window(ledger_id, start, end):
            if record.type != type:
                continue
            totals[record.category_id] += record.display_amount
            counts[record.category_id] += 1

        grand_total = sum(totals.values(), Decimal("0"))
        items = [
            CategorySummaryItem(
                category_id=category_id,
                amount=to_money(amount),
                count=counts[category_id],
                percentage=round(float(amount / grand_total * 100), 2) if grand_total else 0.0,
            )
            for category_id, amount in sorted(
                totals.items(), key=lambda item: (-item[1], item[0])
            )
        ]
        return CategorySummary(
            type=type,
            total_amount=to_money(grand_total),
            categories=items,
        )

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _remove_child(self, parent_id: int, child_id: int) -> None:
        """Drop one child and recompute the parent's aggregate."""
        remaining = [c for c in self._children[parent_id] if c.id != child_id]
        self._children[parent_id] = remaining
        parent = self._records[parent_id].model_copy(
            update={"child_count": 0, "aggregated_amount": None}
        )
        for child in remaining:
            parent = parent.with_appended(child.amount)
        self._records[parent_id] = parent

    def _in_window(
        self,
        ledger_id: Optional[int],
        start: datetime,
        end: datetime,
    ) -> list[Transaction]:
        return [
            record for record in self._records.values()
            if (ledger_id is None or record.ledger_id == ledger_id)
            and start <= record.occurred_at <= end
        ]

    @staticmethod
    def _matches(record: Transaction, query: TransactionQuery) -> bool:
        if query.ledger_id is not None and record.ledger_id != query.ledger_id:
            return False
        if query.type is not None and record.type != query.type:
            return False
        if query.category_id is not None and record.category_id != query.category_id:
            return False
        if query.start_time is not None and record.occurred_at < query.start_time:
            return False
        if query.end_time is not None and record.occurred_at > query.end_time:
            return False
        if query.keyword:
            text = (record.description or "").lower()
            if query.keyword.lower() not in text:
                return False
        return True

    @staticmethod
    def _sort_key(record: Transaction, sort_by: SortField):
        if sort_by == SortField.AMOUNT:
            return (record.display_amount, record.id)
        if sort_by == SortField.CREATED_AT:
            return (record.created_at or record.occurred_at, record.id)
        return (record.occurred_at, record.id)


class InMemoryLookup(LookupService):
    """Lookup over a dict of id -> LookupEntry."""

    def __init__(self, entries: Optional[dict[int, LookupEntry]] = None):
        self._entries = dict(entries or {})

    def resolve(self, item_id: int) -> Optional[LookupEntry]:
        return self._entries.get(item_id)


class InMemoryBudgetService(_ScriptedService, BudgetService):
    """Budget Service over a dict keyed by (ledger_id, year, month)."""

    def __init__(self, overviews: Optional[dict[tuple[int, int, int], BudgetOverview]] = None):
        super().__init__()
        self._overviews = dict(overviews or {})

    def set_overview(self, ledger_id: int, year: int, month: int, overview: BudgetOverview) -> None:
        self._overviews[(ledger_id, year, month)] = overview

    async def get_budget_overview(
        self,
        ledger_id: int,
        year: int,
        month: int,
    ) -> BudgetOverview:
        await self._enter("get_budget_overview", ledger_id, year, month)
        try:
            return self._overviews[(ledger_id, year, month)]
        except KeyError:
            raise BudgetNotConfiguredError(
                f"No budget configured for ledger {ledger_id} in {year}-{month:02d}"
            )


class InMemoryAuditSink(AuditSinkInterface):
    """Keeps audit events in a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True
