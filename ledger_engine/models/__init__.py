"""
Data Models Package

This package contains all Pydantic models used by the Ledger Engine.
All data flowing through the engine must conform to these schemas.
"""

from ledger_engine.models.transaction import (
    AggregatedTransaction,
    FilterType,
    SortDirection,
    SortField,
    Transaction,
    TransactionPage,
    TransactionQuery,
    TransactionSource,
    TransactionType,
    format_amount,
    to_money,
)
from ledger_engine.models.summary import (
    BudgetOverview,
    BudgetStatus,
    CategoryBudget,
    CategorySummary,
    CategorySummaryItem,
    DailyStatistic,
    MonthlySummary,
)
from ledger_engine.models.grouping import (
    GroupDimension,
    LookupEntry,
    TransactionGroup,
)
from ledger_engine.models.views import (
    BudgetView,
    CalendarDay,
    ExpansionStatus,
    ExpansionView,
    Notice,
    NoticeLevel,
    TransactionListView,
)
from ledger_engine.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "AggregatedTransaction",
    "FilterType",
    "SortDirection",
    "SortField",
    "Transaction",
    "TransactionPage",
    "TransactionQuery",
    "TransactionSource",
    "TransactionType",
    "format_amount",
    "to_money",
    # Summary models
    "BudgetOverview",
    "BudgetStatus",
    "CategoryBudget",
    "CategorySummary",
    "CategorySummaryItem",
    "DailyStatistic",
    "MonthlySummary",
    # Grouping models
    "GroupDimension",
    "LookupEntry",
    "TransactionGroup",
    # View models
    "BudgetView",
    "CalendarDay",
    "ExpansionStatus",
    "ExpansionView",
    "Notice",
    "NoticeLevel",
    "TransactionListView",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
