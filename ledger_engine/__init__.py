"""
Ledger Engine - Source Package

The aggregation, grouping and incremental-paging engine behind a
personal/shared ledger's transaction list.

DESIGN PRINCIPLES:
1. Records come from the data service; the engine never invents them
2. Grouping is a pure function of (transactions, dimension, lookups)
3. Every fetch is tagged; stale responses are discarded
4. A failing sub-state falls back to its own safe default
5. Services are swappable behind abstract interfaces
"""

__version__ = "1.0.0"
__author__ = "Ledger Engine Team"
