"""Aggregation and grouping package."""

from ledger_engine.grouping.engine import (
    AmountBracket,
    GroupingLookups,
    build_amount_brackets,
    day_title,
    default_creator_title,
    find_bracket,
    flatten,
    group_transactions,
)

__all__ = [
    "AmountBracket",
    "GroupingLookups",
    "build_amount_brackets",
    "day_title",
    "default_creator_title",
    "find_bracket",
    "flatten",
    "group_transactions",
]
