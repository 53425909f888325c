"""
Parent-Child Expansion Cache

Per transaction id:

    COLLAPSED -> LOADING -> EXPANDED
    LOADING   -> COLLAPSED (with an info or error notice)
    EXPANDED  -> COLLAPSED (collapse)

DESIGN DECISION: Each expand() is tagged with a per-id request token.
collapse() (or an append invalidating the entry) drops the entry, so a
response that arrives afterwards no longer matches any token and is
discarded. Different ids load independently; the same id never has two
fetches in flight because expand() is a no-op while LOADING.

A parent that was EXPANDED when an append succeeded is expanded again
once the list has been refreshed, so it shows the new child.

The parent/child relation is assembled by the aggregation endpoint.
Children are stamped with their parent's id when they are cached.
"""

import itertools
from decimal import Decimal
from typing import Awaitable, Callable, Optional
from uuid import UUID

from ledger_engine.audit import AuditLogger
from ledger_engine.models.transaction import Transaction
from ledger_engine.models.views import (
    ExpansionStatus,
    ExpansionView,
    Notice,
    NoticeLevel,
)
from ledger_engine.services.interface import (
    ServiceError,
    TransactionDataService,
    TransportError,
)
from ledger_engine.validation import MutationValidator, ValidationError


NO_CHILDREN_MESSAGE = "No appended transactions found"
LOAD_CHILDREN_FAILED_MESSAGE = "Failed to load appended transactions, please try again"

AppendCallback = Callable[[int, Transaction], Awaitable[None]]


class _Entry:
    __slots__ = ("status", "children", "notice", "token")

    def __init__(self, status: ExpansionStatus, token: int):
        self.status = status
        self.children: list[Transaction] = []
        self.notice: Optional[Notice] = None
        self.token = token


class ExpansionCache:
    """
    On-demand cache of the appended children of parent transactions.

    Also owns the append mutation, since an append is what makes a
    cached child list stale.
    """

    def __init__(
        self,
        service: TransactionDataService,
        validator: Optional[MutationValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        on_appended: Optional[AppendCallback] = None,
    ):
        """
        Args:
            service: Data service used for aggregation and append calls
            validator: Pre-dispatch validation of append requests
            audit_logger: Audit trail
            on_appended: Awaited after a successful append with
                (parent_id, child); the list refresh hangs off this
        """
        self._service = service
        self._validator = validator or MutationValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._on_appended = on_appended
        self._entries: dict[int, _Entry] = {}
        self._tokens = itertools.count(1)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def status(self, transaction_id: int) -> ExpansionStatus:
        entry = self._entries.get(transaction_id)
        return entry.status if entry else ExpansionStatus.COLLAPSED

    def view(self, transaction_id: int) -> ExpansionView:
        entry = self._entries.get(transaction_id)
        if entry is None:
            return ExpansionView(transaction_id=transaction_id)
        return ExpansionView(
            transaction_id=transaction_id,
            status=entry.status,
            children=list(entry.children),
            notice=entry.notice,
        )

    def views(self) -> dict[int, ExpansionView]:
        return {tid: self.view(tid) for tid in self._entries}

    def invalidate(self, transaction_id: int) -> None:
        """Drop an entry; an in-flight fetch for it will be discarded."""
        self._entries.pop(transaction_id, None)

    def clear(self) -> None:
        self._entries.clear()

    def parent_of(self, child_id: int) -> Optional[int]:
        """Id of the expanded parent whose cached children include ``child_id``."""
        for parent_id, entry in self._entries.items():
            if any(child.id == child_id for child in entry.children):
                return parent_id
        return None

    async def reload(self, transaction_id: int) -> ExpansionView:
        """Drop the cached children and fetch them again."""
        self.invalidate(transaction_id)
        return await self.expand(transaction_id)

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def expand(self, transaction_id: int) -> ExpansionView:
        """
        Load and cache the children of a parent transaction.

        No-op while the id is LOADING or already EXPANDED.
        """
        entry = self._entries.get(transaction_id)
        if entry is not None and entry.status in (
            ExpansionStatus.LOADING,
            ExpansionStatus.EXPANDED,
        ):
            return self.view(transaction_id)

        token = next(self._tokens)
        self._entries[transaction_id] = _Entry(ExpansionStatus.LOADING, token)

        try:
            aggregated = await self._service.get_aggregated(transaction_id)
        except ServiceError as e:
            if self._is_current(transaction_id, token):
                failed = _Entry(ExpansionStatus.COLLAPSED, token)
                failed.notice = (
                    Notice.transport_failure(LOAD_CHILDREN_FAILED_MESSAGE)
                    if isinstance(e, TransportError)
                    else Notice(level=NoticeLevel.ERROR, message=str(e))
                )
                self._entries[transaction_id] = failed
            await self._audit_logger.log_children_load_failed(transaction_id, str(e))
            return self.view(transaction_id)

        if not self._is_current(transaction_id, token):
            await self._audit_logger.log_stale_response(
                source="children",
                requested=f"{transaction_id}#{token}",
                current=f"{transaction_id}#{self._current_token(transaction_id)}",
            )
            return self.view(transaction_id)

        children = [
            child.model_copy(update={"parent_id": transaction_id})
            for child in aggregated.children
        ]
        entry = _Entry(ExpansionStatus.EXPANDED, token)
        if children:
            entry.children = children
            await self._audit_logger.log_children_loaded(transaction_id, len(children))
        else:
            # Benign: the parent reported children the endpoint did not return
            entry.status = ExpansionStatus.COLLAPSED
            entry.notice = Notice.info(NO_CHILDREN_MESSAGE)
            await self._audit_logger.log_children_empty(
                transaction_id, aggregated.parent.child_count
            )
        self._entries[transaction_id] = entry
        return self.view(transaction_id)

    def collapse(self, transaction_id: int) -> None:
        """
        Drop the cached children.

        Server state is untouched; the next expand() refetches. A fetch
        still in flight finishes but its result is discarded.
        """
        self._entries.pop(transaction_id, None)

    async def append(
        self,
        transaction_id: int,
        amount,
        description: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Transaction:
        """
        Append a child (top-up) to a parent transaction.

        Returns:
            The created child

        Raises:
            ValidationError: If the request is invalid (nothing is sent)
            ServiceError: If the data service rejects or fails the request
        """
        try:
            normalized: Decimal = self._validator.validate_append(amount, description)
        except ValidationError as e:
            await self._audit_logger.log_mutation_rejected(
                operation="append",
                transaction_id=transaction_id,
                issues=e.to_dicts(),
            )
            raise

        if description is not None:
            description = description.strip() or None

        try:
            child = await self._service.append_child(transaction_id, normalized, description)
        except ServiceError as e:
            await self._audit_logger.log_mutation_failed(
                operation="append",
                transaction_id=transaction_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
            raise

        was_expanded = self.status(transaction_id) == ExpansionStatus.EXPANDED
        self.invalidate(transaction_id)
        await self._audit_logger.log_transaction_appended(
            parent_id=transaction_id,
            child_id=child.id,
            amount=str(normalized),
            correlation_id=correlation_id,
        )

        if self._on_appended is not None:
            await self._on_appended(transaction_id, child)
        if was_expanded:
            await self.expand(transaction_id)
        return child

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _current_token(self, transaction_id: int) -> Optional[int]:
        entry = self._entries.get(transaction_id)
        return entry.token if entry else None

    def _is_current(self, transaction_id: int, token: int) -> bool:
        return self._current_token(transaction_id) == token
