"""Keyword search package."""

from ledger_engine.search.overlay import SearchOverlay

__all__ = ["SearchOverlay"]
