"""
Domain types consumed and produced by the budget engine.

Inputs (categories, budget periods, budget lines, transactions) are plain
immutable records supplied by the data-access layer. Outputs are the
per-category and household-level figures of one computation. All monetary
values are ``Decimal``; nothing here rounds.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple, Union

from periods import Window, coerce_date, format_month_key, parse_month_key

ZERO = Decimal("0")
HUNDRED = Decimal("100")

TYPE_INCOME = "income"
TYPE_EXPENSE = "expense"
SCOPE_SHARED = "shared"
SCOPE_MEMBER = "member"

STATUS_ON_TRACK = "on_track"
STATUS_WARNING = "warning"
STATUS_OVER_BUDGET = "over_budget"


def to_decimal(value: Any) -> Decimal:
    """
    Coerce a monetary value to Decimal.

    ``None`` normalizes to zero. Floats go through ``str`` so that ``0.1``
    becomes ``Decimal("0.1")`` rather than its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass(frozen=True)
class HouseholdContext:
    """
    Explicit tenant context passed into every entry point.

    Attributes:
        household_id: Household whose data is being computed
        member_id: Member requesting the computation, if known
    """
    household_id: str
    member_id: Optional[str] = None


@dataclass(frozen=True)
class Category:
    """
    Budget category with its recurrence metadata.

    Attributes:
        id: Category identifier
        name: Display name
        default_amount: Budgeted amount per occurrence (not per month), may be None
        period_months: Months between occurrences (1, 2, 3, 12...), may be None
        type: ``income`` or ``expense``
        sort_order: Display ordering position
    """
    id: str
    name: str = ""
    default_amount: Optional[Decimal] = None
    period_months: Optional[int] = 1
    type: str = TYPE_EXPENSE
    sort_order: int = 0

    def __post_init__(self) -> None:
        if self.default_amount is not None:
            object.__setattr__(self, "default_amount", to_decimal(self.default_amount))

    @property
    def is_expense(self) -> bool:
        return self.type == TYPE_EXPENSE


@dataclass(frozen=True)
class Transaction:
    """
    Single ledger entry, amount stored as a positive magnitude.

    Attributes:
        amount: Transaction amount (positive)
        type: ``income`` or ``expense``
        date: Calendar date of the transaction
        category_id: Category reference, None for uncategorized entries
        scope: ``shared`` (household) or ``member`` (private)
    """
    amount: Decimal
    type: str
    date: date
    category_id: Optional[str] = None
    scope: str = SCOPE_SHARED

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "date", coerce_date(self.date))

    @property
    def is_shared(self) -> bool:
        return self.scope == SCOPE_SHARED


@dataclass(frozen=True)
class BudgetPeriod:
    """Activation record: the household has a budget for ``month``."""
    id: str
    household_id: str
    month: date


@dataclass(frozen=True)
class BudgetLine:
    """Explicit amount for one category in one budget period."""
    budget_period_id: str
    category_id: str
    amount: Decimal
    scope: str = SCOPE_SHARED

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


class Unset:
    """No override stored: the computed default applies."""

    _instance = None

    def __new__(cls) -> "Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = Unset()


@dataclass(frozen=True)
class Explicit:
    """Stored override amount. ``Explicit(0)`` is a deliberate zero budget."""
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


Override = Union[Unset, Explicit]

OverridesByMonth = Mapping[date, Mapping[str, Decimal]]


@dataclass(frozen=True)
class PeriodTotals:
    """Budget and spend totals of a period, used for rollover."""
    budget: Decimal
    spent: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "budget", to_decimal(self.budget))
        object.__setattr__(self, "spent", to_decimal(self.spent))


@dataclass(frozen=True)
class BudgetSnapshot:
    """
    Read-only inputs of one computation, already scoped to a household.

    Attributes:
        context: Household the snapshot belongs to
        categories: All categories (income ones are skipped by the engine)
        active_months: Months that have a BudgetPeriod (months present in
            ``overrides_by_month`` are included automatically)
        overrides_by_month: Month key -> category id -> explicit amount
        transactions: Transactions covering at least the requested window
        load_warnings: Data-quality messages raised while building the snapshot
    """
    context: HouseholdContext
    categories: Tuple[Category, ...] = ()
    active_months: FrozenSet[date] = frozenset()
    overrides_by_month: OverridesByMonth = field(default_factory=dict)
    transactions: Tuple[Transaction, ...] = ()
    load_warnings: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "categories", tuple(self.categories))
        overrides = {
            parse_month_key(month): {
                category_id: to_decimal(amount)
                for category_id, amount in lines.items()
            }
            for month, lines in self.overrides_by_month.items()
        }
        object.__setattr__(self, "overrides_by_month", overrides)
        # a month that carries overrides has a budget period by construction
        active = frozenset(parse_month_key(month) for month in self.active_months)
        active = active | frozenset(overrides.keys())
        object.__setattr__(self, "active_months", active)
        object.__setattr__(self, "transactions", tuple(self.transactions))
        object.__setattr__(self, "load_warnings", tuple(self.load_warnings))

    def expense_categories(self) -> List[Category]:
        """Expense categories in display order."""
        expense = [category for category in self.categories if category.is_expense]
        return sorted(expense, key=lambda c: (c.sort_order, c.name.casefold(), c.id))

    def has_budget_period(self, month: date) -> bool:
        return month in self.active_months


@dataclass(frozen=True)
class CategoryResult:
    """
    Computed figures for one category over the window.

    Attributes:
        category_id: Category identifier
        name: Display name
        expected: Budgeted amount over the window
        spent: Shared expense spend in the window
        remaining: expected - spent (deviation for range windows)
        percent: Percentage of the budget consumed
        average_spent: spent divided by the window length
        status: on_track, warning or over_budget
        source: ``override``, ``default`` or ``projection``
        period_label: Recurrence of the category default (``monthly``, ``quarterly``...)
    """
    category_id: str
    name: str
    expected: Decimal
    spent: Decimal
    remaining: Decimal
    percent: Decimal
    average_spent: Decimal
    status: str
    source: str
    period_label: str = ""

    def as_dict(self) -> Dict[str, Any]:
        return {
            "expected": self.expected,
            "spent": self.spent,
            "remaining": self.remaining,
            "percent": self.percent,
        }


@dataclass(frozen=True)
class BudgetSummary:
    """
    Household-level totals for the window.

    Attributes:
        income: Shared income transactions
        expense: Shared expense transactions, uncategorized included
        balance: income - expense
        budget_total: Sum of per-category expected amounts
        rollover: Carry from the previous period (zero for range windows)
        effective_available: budget_total + rollover
        available: Net available after spend
        percent: Percentage of the effective budget consumed
        status: on_track, warning or over_budget
    """
    income: Decimal
    expense: Decimal
    balance: Decimal
    budget_total: Decimal
    rollover: Decimal
    effective_available: Decimal
    available: Decimal
    percent: Decimal
    status: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "income": self.income,
            "expense": self.expense,
            "balance": self.balance,
            "budgetTotal": self.budget_total,
            "available": self.available,
        }


@dataclass(frozen=True)
class ComputationResult:
    """Output of one engine computation."""
    household_id: str
    window: Window
    per_category: Mapping[str, CategoryResult]
    summary: BudgetSummary
    warnings: Tuple[str, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        """Return the ``{perCategory, summary}`` mapping consumed by presentation."""
        return {
            "perCategory": {
                category_id: result.as_dict()
                for category_id, result in self.per_category.items()
            },
            "summary": self.summary.as_dict(),
        }

    def describe(self) -> Dict[str, Any]:
        """Flat metadata used in logs and report headers."""
        return {
            "household_id": self.household_id,
            "window": self.window.label(),
            "mode": self.window.mode,
            "anchor": format_month_key(self.window.anchor),
            "categories": len(self.per_category),
            "warnings": len(self.warnings),
        }
