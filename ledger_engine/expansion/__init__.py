"""Parent-child expansion package."""

from ledger_engine.expansion.cache import ExpansionCache

__all__ = ["ExpansionCache"]
