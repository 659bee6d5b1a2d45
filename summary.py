"""
Household-level aggregation and status thresholds.

Reduces per-category results and raw transaction totals into the summary
figures shown on the budget page, and classifies consumption percentages
into on-track, warning and over-budget statuses.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from models import (
    HUNDRED,
    STATUS_ON_TRACK,
    STATUS_OVER_BUDGET,
    STATUS_WARNING,
    TYPE_EXPENSE,
    TYPE_INCOME,
    ZERO,
    BudgetSummary,
    CategoryResult,
    ComputationResult,
    Transaction,
    to_decimal,
)
from periods import Window
from rollover import effective_available

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusThresholds:
    """
    Percent boundaries for status classification.

    Attributes:
        warning: Percent above which a budget is flagged as warning
        over: Percent above which a budget is over budget
    """
    warning: Decimal = Decimal("85")
    over: Decimal = Decimal("100")

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]]) -> "StatusThresholds":
        """Build thresholds from an ``engine.status_thresholds`` mapping."""
        config = config or {}
        return cls(
            warning=to_decimal(config.get("warning", cls.warning)),
            over=to_decimal(config.get("over", cls.over)),
        )


def percent_consumed(spent: Any, budget: Any) -> Decimal:
    """
    Percentage of a budget consumed.

    A zero (or negative) budget reports 100 when anything was spent and 0
    otherwise, never an unbounded value.
    """
    spent = to_decimal(spent)
    budget = to_decimal(budget)
    if budget > ZERO:
        return spent / budget * HUNDRED
    return HUNDRED if spent > ZERO else ZERO


def budget_status(
    percent: Any,
    budget: Any,
    spent: Any,
    thresholds: Optional[StatusThresholds] = None
) -> str:
    """
    Classify a consumption percentage.

    Args:
        percent: Percentage consumed.
        budget: Budgeted amount.
        spent: Amount spent.
        thresholds: Status boundaries (defaults 85 / 100).

    Returns:
        ``over_budget``, ``warning`` or ``on_track``.
    """
    thresholds = thresholds or StatusThresholds()
    percent = to_decimal(percent)
    if to_decimal(budget) <= ZERO and to_decimal(spent) > ZERO:
        return STATUS_OVER_BUDGET
    if percent > thresholds.over:
        return STATUS_OVER_BUDGET
    if percent > thresholds.warning:
        return STATUS_WARNING
    return STATUS_ON_TRACK


def total_by_type(transactions: Iterable[Transaction], window: Window, transaction_type: str) -> Decimal:
    """Sum shared transactions of one type dated inside the window."""
    total = ZERO
    for txn in transactions:
        if txn.is_shared and txn.type == transaction_type and window.contains(txn.date):
            total += txn.amount
    return total


def summarize(
    per_category: Mapping[str, CategoryResult],
    transactions: Iterable[Transaction],
    window: Window,
    carry: Any = ZERO,
    thresholds: Optional[StatusThresholds] = None
) -> BudgetSummary:
    """
    Reduce per-category results into household totals.

    Income is taken from shared income transactions directly; it has no
    budget lines. Expense includes uncategorized spend. The carry is only
    folded in for single-month windows.

    Args:
        per_category: Results keyed by category id.
        transactions: Transactions of the snapshot.
        window: Reporting window.
        carry: Rollover from the previous period.
        thresholds: Status boundaries.

    Returns:
        BudgetSummary for the window.
    """
    transactions = tuple(transactions)
    budget_total = sum((result.expected for result in per_category.values()), ZERO)
    income = total_by_type(transactions, window, TYPE_INCOME)
    expense = total_by_type(transactions, window, TYPE_EXPENSE)

    rollover = to_decimal(carry) if window.is_single_month else ZERO
    effective = effective_available(budget_total, rollover)
    available = effective - expense
    percent = percent_consumed(expense, effective)

    summary = BudgetSummary(
        income=income,
        expense=expense,
        balance=income - expense,
        budget_total=budget_total,
        rollover=rollover,
        effective_available=effective,
        available=available,
        percent=percent,
        status=budget_status(percent, effective, expense, thresholds),
    )
    logger.debug("Budget summary calculated for %s: %s", window.label(), summary)
    return summary


def budget_alerts(result: ComputationResult) -> List[str]:
    """High-priority alerts derived from a computation result."""
    alerts: List[str] = []
    for category in result.per_category.values():
        if category.status != STATUS_OVER_BUDGET:
            continue
        if category.expected == ZERO:
            alerts.append(f"'{category.name}' has spending but no budget.")
        else:
            alerts.append(
                f"'{category.name}' is over budget ({category.percent:.1f}% spent)."
            )
    if result.summary.available < ZERO:
        alerts.append("Remaining available is negative: spending exceeds the budget.")
    if result.summary.rollover < ZERO:
        alerts.append("Last month's overspend was carried into this month.")
    return alerts


def status_counts(per_category: Mapping[str, CategoryResult]) -> Dict[str, int]:
    """Count categories per status."""
    counts = {STATUS_ON_TRACK: 0, STATUS_WARNING: 0, STATUS_OVER_BUDGET: 0}
    for result in per_category.values():
        counts[result.status] = counts.get(result.status, 0) + 1
    return counts
