"""Monthly summary, budget and calendar package."""

from ledger_engine.summary.state import SummaryState, heat_level

__all__ = ["SummaryState", "heat_level"]
