"""
Aggregation & Grouping Engine

DESIGN DECISION: Grouping is a PURE function of
(transactions, dimension, lookups). It keeps no cache, reads no session
state and mutates nothing it is given, so the list screen can re-derive
the groups on every refresh, delete or append without invalidation logic.

Ordering:
- DAY groups sort by their zero-padded ISO date key, newest first
- every other dimension sorts by total_amount descending, with the group
  key ascending as a deterministic tie-break

Resolution rules:
- CATEGORY: a transaction whose category cannot be resolved is dropped
  from all groups
- PAYMENT_METHOD: missing or unresolved methods go to the "unknown" group
- AMOUNT: the last bracket is a catch-all
- CREATOR: the title comes from a caller-supplied placeholder
"""

from datetime import date, timedelta, tzinfo
from decimal import Decimal
from typing import Callable, Iterable, Optional

from pydantic import BaseModel

from ledger_engine.config import get_settings
from ledger_engine.models.grouping import GroupDimension, TransactionGroup
from ledger_engine.models.transaction import Transaction, format_amount
from ledger_engine.services.interface import LookupService


UNKNOWN_PAYMENT_METHOD_KEY = "unknown"
UNKNOWN_CREATOR_ID = 0

DAY_ICON = "calendar-outline"
CATEGORY_ICON = "pricetag"
PAYMENT_METHOD_ICON = "card"
UNKNOWN_PAYMENT_METHOD_ICON = "card-outline"
CREATOR_ICON = "person"

_BRACKET_STYLES = [
    ("Small", "cash-outline"),
    ("Medium", "cash"),
    ("Large", "diamond-outline"),
    ("Extra large", "trophy"),
]


def default_creator_title(user_id: int) -> str:
    if user_id == UNKNOWN_CREATOR_ID:
        return "Unknown user"
    return f"User {user_id}"


class AmountBracket(BaseModel):
    """Half-open amount range [lower, upper); upper None means unbounded."""

    lower: Decimal
    upper: Optional[Decimal] = None
    label: str
    icon: str

    @property
    def key(self) -> str:
        upper = "inf" if self.upper is None else _plain(self.upper)
        return f"{_plain(self.lower)}-{upper}"

    def contains(self, amount: Decimal) -> bool:
        if amount < self.lower:
            return False
        return self.upper is None or amount < self.upper


def _plain(value: Decimal) -> str:
    """Render 50 / 50.0 / 50.00 all as '50'."""
    return format(value.normalize(), "f")


def build_amount_brackets(bounds: Optional[list[Decimal]] = None) -> list[AmountBracket]:
    """
    Build contiguous brackets from ascending upper bounds.

    [50, 200, 1000] yields [0,50), [50,200), [200,1000), [1000,inf).
    """
    if bounds is None:
        bounds = get_settings().display.amount_bracket_bounds

    edges = [Decimal("0")] + list(bounds)
    brackets = []
    for i, lower in enumerate(edges):
        upper = edges[i + 1] if i + 1 < len(edges) else None
        if len(edges) == len(_BRACKET_STYLES):
            label, icon = _BRACKET_STYLES[i]
        else:
            label = f"{_plain(lower)}+" if upper is None else f"{_plain(lower)}-{_plain(upper)}"
            icon = "cash"
        brackets.append(AmountBracket(lower=lower, upper=upper, label=label, icon=icon))
    return brackets


def find_bracket(amount: Decimal, brackets: list[AmountBracket]) -> AmountBracket:
    """The bracket containing ``amount``; the last bracket catches the rest."""
    for bracket in brackets:
        if bracket.contains(amount):
            return bracket
    return brackets[-1]


class GroupingLookups:
    """
    Everything the engine needs besides the transactions themselves.

    Args:
        categories: Resolves category ids
        payment_methods: Resolves payment method ids
        today: Reference date for the Today/Yesterday/Tomorrow titles
        creator_title: Placeholder title for a creator id
        brackets: Amount brackets (defaults to the configured ones)
        tz: If given, aware timestamps are converted to this zone
            before taking their calendar date
        currency_symbol: Prefix of the formatted group totals
    """

    def __init__(
        self,
        categories: LookupService,
        payment_methods: LookupService,
        today: Optional[date] = None,
        creator_title: Callable[[int], str] = default_creator_title,
        brackets: Optional[list[AmountBracket]] = None,
        tz: Optional[tzinfo] = None,
        currency_symbol: Optional[str] = None,
    ):
        self.categories = categories
        self.payment_methods = payment_methods
        self.today = today or date.today()
        self.creator_title = creator_title
        self.brackets = brackets or build_amount_brackets()
        self.tz = tz
        self.currency_symbol = (
            get_settings().display.currency_symbol
            if currency_symbol is None
            else currency_symbol
        )


def local_date(transaction: Transaction, tz: Optional[tzinfo] = None) -> date:
    occurred_at = transaction.occurred_at
    if tz is not None and occurred_at.tzinfo is not None:
        occurred_at = occurred_at.astimezone(tz)
    return occurred_at.date()


def day_title(day: date, today: date) -> str:
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    if day == today + timedelta(days=1):
        return "Tomorrow"
    return f"{day:%B} {day.day}"


def _group_identity(
    transaction: Transaction,
    dimension: GroupDimension,
    lookups: GroupingLookups,
) -> Optional[tuple[str, str, str]]:
    """(key, title, icon) of the group a transaction belongs to, or None to drop it."""
    if dimension == GroupDimension.DAY:
        day = local_date(transaction, lookups.tz)
        return day.isoformat(), day_title(day, lookups.today), DAY_ICON

    if dimension == GroupDimension.CATEGORY:
        entry = lookups.categories.resolve(transaction.category_id)
        if entry is None:
            return None
        return str(transaction.category_id), entry.name, entry.icon or CATEGORY_ICON

    if dimension == GroupDimension.PAYMENT_METHOD:
        entry = None
        if transaction.payment_method_id is not None:
            entry = lookups.payment_methods.resolve(transaction.payment_method_id)
        if entry is None:
            return UNKNOWN_PAYMENT_METHOD_KEY, "Unassigned account", UNKNOWN_PAYMENT_METHOD_ICON
        return str(transaction.payment_method_id), entry.name, entry.icon or PAYMENT_METHOD_ICON

    if dimension == GroupDimension.AMOUNT:
        bracket = find_bracket(transaction.display_amount, lookups.brackets)
        return bracket.key, bracket.label, bracket.icon

    if dimension == GroupDimension.CREATOR:
        user_id = transaction.created_by_user_id or UNKNOWN_CREATOR_ID
        return str(user_id), lookups.creator_title(user_id), CREATOR_ICON

    raise ValueError(f"Unsupported grouping dimension: {dimension}")


def group_transactions(
    transactions: Iterable[Transaction],
    dimension: GroupDimension,
    lookups: GroupingLookups,
) -> list[TransactionGroup]:
    """
    Bucket transactions by ``dimension`` with per-group totals.

    Members keep their input order within a group. Returns an empty list
    for GroupDimension.NONE; the caller renders the flat list instead.
    """
    if dimension == GroupDimension.NONE:
        return []

    groups: dict[str, TransactionGroup] = {}
    for transaction in transactions:
        identity = _group_identity(transaction, dimension, lookups)
        if identity is None:
            continue
        key, title, icon = identity
        group = groups.get(key)
        if group is None:
            group = TransactionGroup(key=key, title=title, icon=icon)
            groups[key] = group
        group.add(transaction)

    for group in groups.values():
        group.formatted_total = format_amount(group.total_amount, lookups.currency_symbol)

    if dimension == GroupDimension.DAY:
        return sorted(groups.values(), key=lambda g: g.key, reverse=True)
    # Two stable passes: key ascending, then total descending
    by_key = sorted(groups.values(), key=lambda g: g.key)
    return sorted(by_key, key=lambda g: g.total_amount, reverse=True)


def flatten(transactions: Iterable[Transaction]) -> list[Transaction]:
    """The ungrouped list, in fetch order."""
    return list(transactions)
