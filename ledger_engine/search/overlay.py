"""
Search/Filter Overlay

Owns the keyword text and the active flag of a LedgerSession.

While active, list fetches ignore the month/day window and the
month-scoped widgets (summary, budget, calendar) are not refreshed;
search results never drive them.
"""

from datetime import date
from typing import Optional

from ledger_engine.session import LedgerSession


class SearchOverlay:
    """Keyword search mode of one ledger list."""

    def __init__(self, session: LedgerSession):
        self._session = session
        self._remembered_month: Optional[date] = None

    @property
    def is_active(self) -> bool:
        return self._session.search_active

    @property
    def keyword(self) -> Optional[str]:
        return self._session.keyword

    def activate(self) -> None:
        """Enter search mode: drop the day selection and the time window."""
        session = self._session
        if session.search_active:
            return
        self._remembered_month = session.selected_month
        session.selected_day = None
        session.search_active = True
        session.reset_paging()

    def set_keyword(self, text: Optional[str]) -> None:
        """Set the trimmed keyword (blank clears it); page goes back to 0."""
        self._session.set_keyword(text)

    def deactivate(self) -> None:
        """Leave search mode and restore the month scope it was entered from."""
        session = self._session
        if not session.search_active:
            return
        session.set_keyword(None)
        session.search_active = False
        if self._remembered_month is not None:
            session.set_month(self._remembered_month)
        else:
            session.reset_paging()
        self._remembered_month = None
