"""
Tests for the transaction list controller

These run the whole engine against the in-memory services.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from ledger_engine.controller import TransactionListController, create_controller
from ledger_engine.models import (
    AuditEventType,
    BudgetOverview,
    BudgetStatus,
    ExpansionStatus,
    FilterType,
    GroupDimension,
    TransactionType,
)
from ledger_engine.services import InMemoryTransactionService, TransportError
from ledger_engine.session import LedgerSession
from ledger_engine.validation import ValidationError


TODAY = date(2024, 5, 15)


@pytest.fixture
def service(make_transaction):
    return InMemoryTransactionService([
        make_transaction(1, amount="100", occurred_at=datetime(2024, 5, 1, 8, 0), ledger_id=1),
        make_transaction(
            2,
            amount="50",
            type=TransactionType.INCOME,
            occurred_at=datetime(2024, 5, 2, 8, 0),
            category_id=3,
            ledger_id=1,
        ),
        make_transaction(
            3,
            amount="80",
            occurred_at=datetime(2024, 5, 2, 12, 0),
            category_id=2,
            ledger_id=1,
            description="Taxi to the airport",
        ),
        make_transaction(
            4,
            amount="12",
            occurred_at=datetime(2024, 3, 9, 8, 0),
            ledger_id=1,
            description="Coffee",
        ),
        make_transaction(5, amount="7", occurred_at=datetime(2024, 5, 2, 9, 0), ledger_id=2),
    ])


@pytest.fixture
def controller(service, budget_service, categories, payment_methods, audit_logger):
    return TransactionListController(
        service=service,
        budget_service=budget_service,
        categories=categories,
        payment_methods=payment_methods,
        session=LedgerSession(selected_month=TODAY, ledger_id=1),
        audit_logger=audit_logger,
        clock=lambda: TODAY,
    )


class TestRefresh:
    """Tests for the concurrent refresh."""

    @pytest.mark.asyncio
    async def test_refresh_loads_every_sub_state(self, controller, service, budget_service):
        budget_service.set_overview(1, 2024, 5, BudgetOverview(
            ledger_id=1,
            total_budget=Decimal("1000"),
            total_expense=Decimal("180"),
            remaining_budget=Decimal("820"),
            progress=18,
        ))

        await controller.refresh()

        view = controller.view()
        assert [t.id for t in view.transactions] == [3, 2, 1]
        assert view.summary.total_expense == Decimal("180.00")
        assert view.budget.status == BudgetStatus.NORMAL
        assert len(view.calendar) == 31
        assert service.call_count("query") == 1
        assert service.call_count("get_monthly_summary") == 1
        assert service.call_count("get_daily_statistics") == 1
        assert budget_service.call_count("get_budget_overview") == 1

    @pytest.mark.asyncio
    async def test_widget_failure_leaves_list_intact(self, controller, service):
        service.fail("get_monthly_summary", TransportError("timeout"))

        await controller.refresh()

        view = controller.view()
        assert len(view.transactions) == 3
        assert view.summary.total_count == 0
        assert view.notice is None

    @pytest.mark.asyncio
    async def test_list_failure_leaves_widgets_intact(self, controller, service):
        service.fail("query", TransportError("timeout"))

        await controller.refresh()

        view = controller.view()
        assert view.transactions == []
        assert view.summary.total_count == 3
        assert view.notice.retryable is True

        controller.dismiss_notice()
        assert controller.view().notice is None


class TestNavigation:
    """Tests for month and day navigation and filters."""

    @pytest.mark.asyncio
    async def test_cannot_navigate_past_current_month(self, controller, service):
        assert await controller.next_month() is False
        assert controller.session.selected_month == date(2024, 5, 1)
        assert service.call_count("query") == 0

    @pytest.mark.asyncio
    async def test_previous_then_next(self, controller):
        await controller.previous_month()
        assert controller.session.selected_month == date(2024, 4, 1)
        assert controller.view().transactions == []

        assert await controller.next_month() is True
        assert controller.session.selected_month == date(2024, 5, 1)

    @pytest.mark.asyncio
    async def test_select_day_toggles(self, controller, service):
        await controller.select_day(date(2024, 5, 2))
        assert controller.session.selected_day == date(2024, 5, 2)
        assert [t.id for t in controller.session.transactions] == [3, 2]
        # Day selection does not refresh the month widgets
        assert service.call_count("get_monthly_summary") == 0

        await controller.select_day(date(2024, 5, 2))
        assert controller.session.selected_day is None
        assert len(controller.session.transactions) == 3

    @pytest.mark.asyncio
    async def test_select_day_in_other_month_refreshes_widgets(self, controller, service):
        await controller.select_day(date(2024, 3, 9))
        assert controller.session.selected_month == date(2024, 3, 1)
        assert service.call_count("get_monthly_summary") == 1

    @pytest.mark.asyncio
    async def test_filter_type(self, controller):
        await controller.set_filter_type(FilterType.INCOME)
        assert [t.id for t in controller.session.transactions] == [2]

    @pytest.mark.asyncio
    async def test_set_ledger(self, controller):
        await controller.set_ledger(2)
        assert [t.id for t in controller.session.transactions] == [5]

    @pytest.mark.asyncio
    async def test_dimension_change_does_not_refetch(self, controller, service):
        await controller.refresh()
        controller.set_dimension(GroupDimension.CATEGORY)

        view = controller.view()
        assert [g.title for g in view.groups] == ["Food", "Transport", "Salary"]
        assert service.call_count("query") == 1

    @pytest.mark.asyncio
    async def test_flat_list_has_no_groups(self, controller):
        await controller.refresh()
        controller.set_dimension(GroupDimension.NONE)
        view = controller.view()
        assert view.groups == []
        assert len(view.transactions) == 3


class TestSearch:
    """Tests for search mode through the controller."""

    @pytest.mark.asyncio
    async def test_search_ignores_month_and_skips_widgets(self, controller, service):
        controller.start_search()
        await controller.search_keyword("coffee")

        view = controller.view()
        assert view.is_searching is True
        assert [t.id for t in view.transactions] == [4]

        await controller.refresh()
        assert service.call_count("get_monthly_summary") == 0

        query = service.calls[-1][1]
        assert query.start_time is None
        assert query.keyword == "coffee"
        assert query.size == 20

    @pytest.mark.asyncio
    async def test_end_search_restores_month_list(self, controller, service):
        await controller.search_keyword("coffee")
        await controller.end_search()

        view = controller.view()
        assert view.is_searching is False
        assert view.keyword is None
        assert len(view.transactions) == 3
        assert service.call_count("get_monthly_summary") == 1


class TestMutations:
    """Tests for delete, move and append."""

    @pytest.mark.asyncio
    async def test_delete_removes_row(self, controller, service, audit_sink):
        await controller.refresh()

        await controller.delete(3)

        assert controller.session.find(3) is None
        assert controller.session.total_count == 2
        assert audit_sink.events[-1].event_type != AuditEventType.MUTATION_FAILED
        assert any(
            e.event_type == AuditEventType.TRANSACTION_DELETED for e in audit_sink.events
        )
        # Widgets re-derived from the server
        assert controller.summary.summary.total_expense == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_row(self, controller, service):
        await controller.refresh()
        service.fail("delete", TransportError("timeout"))

        with pytest.raises(TransportError):
            await controller.delete(3)

        assert controller.session.find(3) is not None
        assert controller.session.notice.retryable is True

    @pytest.mark.asyncio
    async def test_move_to_same_ledger_rejected(self, controller, service, audit_sink):
        await controller.refresh()

        with pytest.raises(ValidationError):
            await controller.move_to_ledger(3, 1)

        assert service.call_count("move_to_ledger") == 0
        assert audit_sink.events[-1].event_type == AuditEventType.MUTATION_REJECTED

    @pytest.mark.asyncio
    async def test_move_to_other_ledger_refetches(self, controller, service):
        await controller.refresh()

        await controller.move_to_ledger(3, 2)

        assert service.get(3).ledger_id == 2
        assert controller.session.find(3) is None
        assert service.call_count("query") == 2

    @pytest.mark.asyncio
    async def test_append_updates_parent(self, controller, service):
        """¥80 parent, append ¥20 -> one line of ¥100 with one child."""
        await controller.refresh()

        await controller.append(3, "20")

        parent = controller.session.find(3)
        assert parent.child_count == 1
        assert parent.display_amount == Decimal("100.00")
        assert controller.summary.summary.total_expense == Decimal("200.00")

        view = await controller.expand(3)
        assert view.status == ExpansionStatus.EXPANDED
        assert [c.amount for c in view.children] == [Decimal("20.00")]

    @pytest.mark.asyncio
    async def test_invalid_append_not_sent(self, controller, service):
        await controller.refresh()

        with pytest.raises(ValidationError):
            await controller.append(3, 0)

        assert service.call_count("append_child") == 0
        assert controller.session.find(3).child_count == 0

    @pytest.mark.asyncio
    async def test_expansion_state_in_view(self, controller, service):
        await controller.refresh()
        await controller.append(3, "5")
        await controller.expand(3)

        view = controller.view()
        assert view.expansions[3].status == ExpansionStatus.EXPANDED

        controller.collapse(3)
        assert 3 not in controller.view().expansions

    @pytest.mark.asyncio
    async def test_expanded_parent_stays_open_after_append(self, controller):
        await controller.refresh()
        await controller.append(3, "5")
        await controller.expand(3)

        await controller.append(3, "2.5")

        view = controller.view()
        assert view.expansions[3].status == ExpansionStatus.EXPANDED
        assert [c.amount for c in view.expansions[3].children] == [
            Decimal("5.00"),
            Decimal("2.50"),
        ]
        assert controller.session.find(3).display_amount == Decimal("87.50")

    @pytest.mark.asyncio
    async def test_delete_child_reloads_parent(self, controller, service):
        await controller.refresh()
        await controller.append(3, "5")
        child = await controller.append(3, "2.5")
        await controller.expand(3)

        await controller.delete(child.id)

        view = controller.view()
        assert [c.amount for c in view.expansions[3].children] == [Decimal("5.00")]
        assert controller.session.find(3).display_amount == Decimal("85.00")
        assert controller.summary.summary.total_expense == Decimal("185.00")


class TestFactory:
    """Tests for the controller factory."""

    @pytest.mark.asyncio
    async def test_create_controller(self, service, budget_service, categories, payment_methods, audit_sink):
        controller = create_controller(
            service,
            budget_service,
            categories,
            payment_methods,
            audit_sink=audit_sink,
            ledger_id=2,
        )
        assert controller.session.ledger_id == 2
        assert controller.session.dimension == GroupDimension.DAY

        await controller.refresh_list()
        assert audit_sink.events[-1].event_type == AuditEventType.LIST_LOADED
