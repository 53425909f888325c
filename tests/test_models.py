"""
Tests for the Ledger Engine models

Test strategy:
1. Unit tests for the pydantic models and their derived properties
2. Component tests against the in-memory services (other modules)
3. No network calls anywhere
"""

import pytest
from datetime import datetime
from decimal import Decimal

from ledger_engine.models import (
    AggregatedTransaction,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BudgetOverview,
    BudgetStatus,
    BudgetView,
    FilterType,
    MonthlySummary,
    Notice,
    NoticeLevel,
    TransactionQuery,
    TransactionType,
    to_money,
)


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_amount_is_quantized_to_cents(self, make_transaction):
        transaction = make_transaction(1, amount="12.5")
        assert transaction.amount == Decimal("12.50")
        assert str(transaction.amount) == "12.50"

    def test_rejects_negative_amount(self, make_transaction):
        with pytest.raises(ValueError):
            make_transaction(1, amount="-1")

    def test_rejects_more_than_two_decimals(self, make_transaction):
        with pytest.raises(ValueError):
            make_transaction(1, amount="1.005")

    def test_aggregated_amount_requires_children(self, make_transaction):
        """A record without children cannot carry an aggregated amount."""
        with pytest.raises(ValueError):
            make_transaction(1, amount="80", aggregated_amount=Decimal("80"))

    def test_display_amount_prefers_aggregate(self, make_transaction):
        plain = make_transaction(1, amount="80")
        parent = make_transaction(
            2, amount="80", child_count=1, aggregated_amount=Decimal("100")
        )
        assert plain.display_amount == Decimal("80.00")
        assert parent.display_amount == Decimal("100.00")

    def test_with_appended_returns_updated_copy(self, make_transaction):
        original = make_transaction(1, amount="80")
        updated = original.with_appended(Decimal("20"))

        assert updated.child_count == 1
        assert updated.aggregated_amount == Decimal("100.00")
        # Original is untouched
        assert original.child_count == 0
        assert original.aggregated_amount is None

    def test_with_appended_accumulates(self, make_transaction):
        parent = make_transaction(1, amount="80").with_appended(Decimal("20"))
        parent = parent.with_appended(Decimal("0.55"))
        assert parent.child_count == 2
        assert parent.aggregated_amount == Decimal("100.55")

    def test_aggregated_transaction_totals(self, make_transaction):
        aggregated = AggregatedTransaction(
            parent=make_transaction(1, amount="50"),
            children=[
                make_transaction(2, amount="10"),
                make_transaction(3, amount="5.25"),
            ],
        )
        assert aggregated.child_count == 2
        assert aggregated.aggregated_amount == Decimal("65.25")

    def test_to_money_rounds_half_up(self):
        assert to_money("2.345") == Decimal("2.35")
        assert to_money(3) == Decimal("3.00")


class TestQueryModels:
    """Tests for filter enums and the paged query."""

    def test_filter_all_sends_no_type(self):
        assert FilterType.ALL.to_transaction_type() is None
        assert FilterType.EXPENSE.to_transaction_type() == TransactionType.EXPENSE
        assert FilterType.INCOME.to_transaction_type() == TransactionType.INCOME

    def test_window_bounds_must_be_set_together(self):
        with pytest.raises(ValueError):
            TransactionQuery(start_time=datetime(2024, 5, 1))

    def test_window_end_before_start_rejected(self):
        with pytest.raises(ValueError):
            TransactionQuery(
                start_time=datetime(2024, 5, 2),
                end_time=datetime(2024, 5, 1),
            )

    def test_page_size_bounds(self):
        with pytest.raises(ValueError):
            TransactionQuery(size=0)


class TestSummaryModels:
    """Tests for summary and budget models."""

    def test_zero_summary(self):
        summary = MonthlySummary.zero()
        assert summary.total_income == Decimal("0.00")
        assert summary.total_expense == Decimal("0.00")
        assert summary.balance == Decimal("0.00")
        assert summary.total_count == 0

    def test_negative_remaining_overrides_status(self):
        """The service said NORMAL, but the budget is overspent."""
        overview = BudgetOverview(
            total_budget=Decimal("100"),
            total_expense=Decimal("130"),
            remaining_budget=Decimal("-30"),
            progress=130,
            status=BudgetStatus.NORMAL,
        )
        assert overview.display_status == BudgetStatus.EXCEEDED
        assert overview.bar_progress == 100

    def test_reported_status_trusted_otherwise(self):
        overview = BudgetOverview(
            total_budget=Decimal("100"),
            total_expense=Decimal("85"),
            remaining_budget=Decimal("15"),
            progress=85,
            status=BudgetStatus.WARNING,
        )
        assert overview.display_status == BudgetStatus.WARNING
        assert overview.bar_progress == 85

    def test_budget_view_uses_rendered_status(self):
        overview = BudgetOverview(
            remaining_budget=Decimal("-1"),
            progress=101,
            status=BudgetStatus.WARNING,
        )
        view = BudgetView.from_overview(overview)
        assert view.status == BudgetStatus.EXCEEDED
        assert view.progress == 101
        assert view.bar_progress == 100


class TestNotice:
    """Tests for the transient notice model."""

    def test_transport_failure_is_retryable(self):
        notice = Notice.transport_failure("Network down")
        assert notice.level == NoticeLevel.ERROR
        assert notice.retryable is True

    def test_info_is_not_retryable(self):
        notice = Notice.info("No appended transactions found")
        assert notice.level == NoticeLevel.INFO
        assert notice.retryable is False


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.TRANSACTION_DELETED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_appended_event(self):
        event = AuditEventBuilder.transaction_appended(
            parent_id=7,
            child_id=8,
            amount="20.00",
        )
        assert event.event_type == AuditEventType.TRANSACTION_APPENDED
        assert event.entity_id == 7
        assert event.is_user_action is True

    def test_widget_fallback_event(self):
        event = AuditEventBuilder.widget_fallback(
            event_type=AuditEventType.SUMMARY_FALLBACK,
            ledger_id=3,
            month="3|2024-05",
            error_message="timeout",
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.entity_type == "ledger"
        assert event.details["month"] == "3|2024-05"

    def test_to_log_dict(self):
        event = AuditEventBuilder.children_loaded(parent_id=5, child_count=2)
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "children_loaded"
        assert log_dict["entity_id"] == 5
        assert "timestamp" in log_dict
