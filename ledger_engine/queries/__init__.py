"""Query coordination package."""

from ledger_engine.queries.coordinator import QueryCoordinator

__all__ = ["QueryCoordinator"]
