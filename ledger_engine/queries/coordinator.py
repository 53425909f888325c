"""
Query Coordinator

DESIGN DECISION: The coordinator is the ONLY writer of the session's list
state. It translates the session's filter/scope/sort/search state into a
single paged fetch, and applies the response only if the session still
has the scope the request was made for.

Rules:
- a keyword search (or an active search overlay) drops the time window
- a selected day wins over month scoping
- page size: 10 by default, 100 for a single day, 20 while searching
- load-more appends, everything else replaces
- overlapping load-more requests are rejected, not queued
- load-more only extends a list loaded for the current scope
- a failed fetch keeps the previous list and surfaces a retryable notice;
  nothing is retried automatically
"""

from typing import Optional
from uuid import UUID

import structlog

from ledger_engine.audit import AuditLogger
from ledger_engine.config import PagingSettings, get_settings
from ledger_engine.models.transaction import TransactionQuery
from ledger_engine.models.views import Notice, NoticeLevel
from ledger_engine.services.interface import (
    ServiceError,
    TransactionDataService,
    TransportError,
)
from ledger_engine.session import LedgerSession


logger = structlog.get_logger(__name__)


LOAD_FAILED_MESSAGE = "Failed to load transactions, please try again"


class QueryCoordinator:
    """
    Issues list fetches for a LedgerSession.

    GUARANTEES:
    - Never applies a response whose scope signature no longer matches
    - Never clears the loaded list because of a failure
    - At most one load-more in flight per session
    """

    def __init__(
        self,
        service: TransactionDataService,
        audit_logger: Optional[AuditLogger] = None,
        paging: Optional[PagingSettings] = None,
    ):
        self._service = service
        self._audit_logger = audit_logger or AuditLogger()
        self._paging = paging or get_settings().paging

    def page_size(self, session: LedgerSession) -> int:
        if not session.is_time_scoped:
            return self._paging.search_page_size
        if session.selected_day is not None:
            return self._paging.day_page_size
        return self._paging.default_page_size

    def build_query(
        self,
        session: LedgerSession,
        load_more: bool = False,
    ) -> TransactionQuery:
        """Translate the session state into one paged request."""
        start_time, end_time = session.time_window()
        return TransactionQuery(
            ledger_id=session.ledger_id,
            type=session.filter_type.to_transaction_type(),
            start_time=start_time,
            end_time=end_time,
            page=session.page + 1 if load_more else 0,
            size=self.page_size(session),
            sort_by=session.sort_field,
            sort_direction=session.sort_direction,
            keyword=session.keyword,
        )

    def can_load_more(self, session: LedgerSession) -> bool:
        return (
            not session.is_loading
            and not session.is_loading_more
            and session.has_next
            and len(session.transactions) > 0
            and session.loaded_signature == session.signature()
        )

    async def load(
        self,
        session: LedgerSession,
        load_more: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Fetch a page and apply it to the session.

        Returns:
            True if a response was applied; False if the request was
            rejected by the busy guard, failed, or came back stale.
        """
        if load_more:
            if not self.can_load_more(session):
                logger.debug(
                    "load_more_rejected",
                    is_loading=session.is_loading,
                    is_loading_more=session.is_loading_more,
                    has_next=session.has_next,
                    scope_changed=session.loaded_signature != session.signature(),
                )
                return False
            session.is_loading_more = True
        else:
            session.is_loading = True
            session.list_generation += 1

        generation = session.list_generation
        signature = session.signature()
        query = self.build_query(session, load_more=load_more)

        try:
            result = await self._service.query(query)
        except ServiceError as e:
            if self._is_current(session, signature, generation):
                session.notice = (
                    Notice.transport_failure(LOAD_FAILED_MESSAGE)
                    if isinstance(e, TransportError)
                    else Notice(level=NoticeLevel.ERROR, message=str(e))
                )
            await self._audit_logger.log_list_load_failed(
                error_message=str(e),
                signature=signature.describe(),
                correlation_id=correlation_id,
            )
            return False
        finally:
            if load_more:
                session.is_loading_more = False
            elif generation == session.list_generation:
                session.is_loading = False

        if not self._is_current(session, signature, generation):
            await self._audit_logger.log_stale_response(
                source="list",
                requested=signature.describe(),
                current=session.signature().describe(),
                correlation_id=correlation_id,
            )
            return False

        session.apply_page(result, load_more=load_more)
        if session.notice is not None and session.notice.retryable:
            session.notice = None

        await self._audit_logger.log_list_loaded(
            page=result.page,
            record_count=len(result.records),
            load_more=load_more,
            signature=signature.describe(),
            correlation_id=correlation_id,
        )
        return True

    @staticmethod
    def _is_current(session: LedgerSession, signature, generation: int) -> bool:
        return (
            session.signature() == signature
            and session.list_generation == generation
        )
