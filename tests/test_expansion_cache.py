"""Tests for the parent-child expansion cache."""

import asyncio
import pytest
from datetime import datetime
from decimal import Decimal

from ledger_engine.expansion import ExpansionCache
from ledger_engine.models import AuditEventType, ExpansionStatus, NoticeLevel
from ledger_engine.services import InMemoryTransactionService, NotFoundError, TransportError
from ledger_engine.validation import ValidationError


@pytest.fixture
def service(make_transaction):
    service = InMemoryTransactionService([
        make_transaction(1, amount="50"),
        make_transaction(2, amount="80"),
    ])
    service.add_child(1, make_transaction(10, amount="5", occurred_at=datetime(2024, 5, 11)))
    service.add_child(1, make_transaction(11, amount="7.5", occurred_at=datetime(2024, 5, 12)))
    return service


@pytest.fixture
def cache(service, audit_logger):
    return ExpansionCache(service, audit_logger=audit_logger)


class TestExpand:
    """Tests for loading children."""

    @pytest.mark.asyncio
    async def test_expand_loads_children(self, cache, service):
        assert service.get(1).child_count == 2

        view = await cache.expand(1)

        assert view.status == ExpansionStatus.EXPANDED
        assert [c.id for c in view.children] == [10, 11]
        assert all(c.parent_id == 1 for c in view.children)

    @pytest.mark.asyncio
    async def test_concurrent_expand_issues_one_fetch(self, cache, service):
        service.pause("get_aggregated")
        first = asyncio.create_task(cache.expand(1))
        await asyncio.sleep(0)
        assert cache.status(1) == ExpansionStatus.LOADING

        second = await cache.expand(1)
        assert second.status == ExpansionStatus.LOADING
        assert service.call_count("get_aggregated") == 1

        service.resume("get_aggregated")
        view = await first
        assert view.status == ExpansionStatus.EXPANDED
        assert len(view.children) == 2

    @pytest.mark.asyncio
    async def test_expanded_is_served_from_cache(self, cache, service):
        await cache.expand(1)
        await cache.expand(1)
        assert service.call_count("get_aggregated") == 1

    @pytest.mark.asyncio
    async def test_different_ids_load_in_parallel(self, cache, service):
        service.pause("get_aggregated")
        first = asyncio.create_task(cache.expand(1))
        second = asyncio.create_task(cache.expand(2))
        await asyncio.sleep(0)

        assert cache.status(1) == ExpansionStatus.LOADING
        assert cache.status(2) == ExpansionStatus.LOADING
        assert service.call_count("get_aggregated") == 2

        service.resume("get_aggregated")
        await asyncio.gather(first, second)

    @pytest.mark.asyncio
    async def test_no_children_collapses_with_info(self, cache, audit_sink):
        view = await cache.expand(2)

        assert view.status == ExpansionStatus.COLLAPSED
        assert view.notice.level == NoticeLevel.INFO
        assert view.notice.message == "No appended transactions found"
        assert audit_sink.events[-1].event_type == AuditEventType.CHILDREN_EMPTY

    @pytest.mark.asyncio
    async def test_transport_failure_collapses_with_retryable_notice(self, cache, service):
        service.fail("get_aggregated", TransportError("timeout"))

        view = await cache.expand(1)

        assert view.status == ExpansionStatus.COLLAPSED
        assert view.notice.retryable is True
        # A retry is just another expand
        view = await cache.expand(1)
        assert view.status == ExpansionStatus.EXPANDED

    @pytest.mark.asyncio
    async def test_unknown_parent(self, cache):
        view = await cache.expand(404)
        assert view.status == ExpansionStatus.COLLAPSED
        assert view.notice.level == NoticeLevel.ERROR
        assert view.notice.retryable is False


class TestCollapse:
    """Tests for dropping cached children."""

    @pytest.mark.asyncio
    async def test_collapse_clears_and_refetches(self, cache, service):
        await cache.expand(1)
        cache.collapse(1)

        assert cache.status(1) == ExpansionStatus.COLLAPSED
        assert cache.view(1).children == []

        await cache.expand(1)
        assert service.call_count("get_aggregated") == 2

    @pytest.mark.asyncio
    async def test_collapse_during_loading_discards_result(self, cache, service, audit_sink):
        service.pause("get_aggregated")
        task = asyncio.create_task(cache.expand(1))
        await asyncio.sleep(0)

        cache.collapse(1)
        service.resume("get_aggregated")
        await task

        assert cache.status(1) == ExpansionStatus.COLLAPSED
        assert cache.views() == {}
        assert audit_sink.events[-1].event_type == AuditEventType.STALE_RESPONSE_DISCARDED


class TestAppend:
    """Tests for the append mutation."""

    @pytest.mark.asyncio
    async def test_append_updates_parent_aggregate(self, cache, service):
        """¥80 parent with no children, append ¥20 -> ¥100 with one child."""
        child = await cache.append(2, Decimal("20"))

        parent = service.get(2)
        assert parent.aggregated_amount == Decimal("100.00")
        assert parent.child_count == 1
        assert child.amount == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_append_reexpands_expanded_parent(self, cache, service):
        await cache.expand(1)
        child = await cache.append(1, "3")

        view = cache.view(1)
        assert view.status == ExpansionStatus.EXPANDED
        assert [c.id for c in view.children] == [10, 11, child.id]
        assert service.call_count("get_aggregated") == 2

    @pytest.mark.asyncio
    async def test_append_leaves_collapsed_parent_collapsed(self, cache, service):
        await cache.append(1, "3")

        assert cache.status(1) == ExpansionStatus.COLLAPSED
        assert service.call_count("get_aggregated") == 0
        view = await cache.expand(1)
        assert len(view.children) == 3

    @pytest.mark.asyncio
    async def test_append_notifies_callback(self, service, audit_logger):
        appended = []

        async def on_appended(parent_id, child):
            appended.append((parent_id, child.amount))

        cache = ExpansionCache(service, audit_logger=audit_logger, on_appended=on_appended)
        await cache.append(2, "12.30", description="  tip  ")

        assert appended == [(2, Decimal("12.30"))]
        assert service.calls[-1] == ("append_child", 2, Decimal("12.30"), "tip")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, "-5", "abc", None, "1.234"])
    async def test_invalid_amount_never_dispatched(self, cache, service, audit_sink, amount):
        with pytest.raises(ValidationError):
            await cache.append(2, amount)

        assert service.call_count("append_child") == 0
        assert audit_sink.events[-1].event_type == AuditEventType.MUTATION_REJECTED

    @pytest.mark.asyncio
    async def test_long_description_rejected(self, cache, service):
        with pytest.raises(ValidationError):
            await cache.append(2, "5", description="x" * 201)
        assert service.call_count("append_child") == 0

    @pytest.mark.asyncio
    async def test_service_failure_propagates(self, cache, service, audit_sink):
        service.fail("append_child", TransportError("timeout"))

        with pytest.raises(TransportError):
            await cache.append(2, "5")

        assert service.get(2).child_count == 0
        assert audit_sink.events[-1].event_type == AuditEventType.MUTATION_FAILED

    @pytest.mark.asyncio
    async def test_append_to_unknown_parent(self, cache):
        with pytest.raises(NotFoundError):
            await cache.append(404, "5")


class TestChildLookup:
    """Tests for locating and reloading a cached child's parent."""

    @pytest.mark.asyncio
    async def test_parent_of_cached_child(self, cache):
        await cache.expand(1)
        assert cache.parent_of(11) == 1
        assert cache.parent_of(2) is None

    @pytest.mark.asyncio
    async def test_reload_after_child_deleted(self, cache, service):
        await cache.expand(1)
        await service.delete(10)

        view = await cache.reload(1)

        assert [c.id for c in view.children] == [11]
        assert service.get(1).child_count == 1
        assert service.get(1).display_amount == Decimal("57.50")
