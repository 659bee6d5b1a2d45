"""
Per-month budget overrides.

A budget line stored for (budget period, category, scope) supersedes the
category default for that single calendar month. Presence matters more than
value: an explicit zero is a deliberate zero budget, while a missing line
means the computed default applies. Only months that have a BudgetPeriod can
carry overrides.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from models import (
    SCOPE_SHARED,
    UNSET,
    BudgetLine,
    BudgetPeriod,
    Category,
    Explicit,
    Override,
    OverridesByMonth,
)
from periods import format_month_key, parse_month_key
from recurrence import monthly_equivalent

logger = logging.getLogger(__name__)

SOURCE_OVERRIDE = "override"
SOURCE_DEFAULT = "default"


def build_overrides_by_month(
    periods: Iterable[BudgetPeriod],
    lines: Iterable[BudgetLine],
    scope: str = SCOPE_SHARED,
    warnings: Optional[List[str]] = None
) -> Dict[date, Dict[str, Decimal]]:
    """
    Index stored budget lines by month and category.

    Lines for another scope are skipped. Lines that reference a period the
    household does not have are ignored, since the BudgetPeriod is what makes
    an override active.

    Args:
        periods: Budget periods of the household.
        lines: Budget lines of those periods.
        scope: Scope to keep (``shared`` by default).
        warnings: Optional list collecting data-quality messages.

    Returns:
        Mapping of month key -> category id -> explicit amount. Every period
        has an entry, possibly empty.
    """
    month_by_period: Dict[str, date] = {}
    overrides: Dict[date, Dict[str, Decimal]] = {}
    for period in periods:
        month = parse_month_key(period.month)
        month_by_period[period.id] = month
        overrides.setdefault(month, {})

    for line in lines:
        if line.scope != scope:
            continue
        month = month_by_period.get(line.budget_period_id)
        if month is None:
            message = (
                f"Ignoring override for category '{line.category_id}': "
                f"budget period '{line.budget_period_id}' does not exist"
            )
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
            continue

        month_lines = overrides[month]
        if line.category_id in month_lines:
            message = (
                f"Duplicate override for category '{line.category_id}' in "
                f"{format_month_key(month)}; keeping the last one"
            )
            logger.warning(message)
            if warnings is not None:
                warnings.append(message)
        month_lines[line.category_id] = line.amount

    logger.debug(
        "Indexed overrides for %s months (%s lines)",
        len(overrides),
        sum(len(v) for v in overrides.values())
    )
    return overrides


def lookup_override(
    overrides_by_month: OverridesByMonth,
    month: date,
    category_id: str
) -> Override:
    """
    Return the override stored for a category in a month.

    Args:
        overrides_by_month: Month key -> category id -> amount.
        month: Month key.
        category_id: Category identifier.

    Returns:
        ``Explicit(amount)`` when a line is present (even if zero), else ``UNSET``.
    """
    month_lines = overrides_by_month.get(month)
    if month_lines is None or category_id not in month_lines:
        return UNSET
    return Explicit(month_lines[category_id])


def resolve_month_budget(
    category: Category,
    month: date,
    overrides_by_month: OverridesByMonth
) -> Tuple[Decimal, str]:
    """
    Resolve the budget of a category for one month and report where it came from.

    Returns:
        Tuple of (amount, source) where source is ``override`` or ``default``.
    """
    override = lookup_override(overrides_by_month, month, category.id)
    if isinstance(override, Explicit):
        return override.amount, SOURCE_OVERRIDE
    return monthly_equivalent(category.default_amount, category.period_months), SOURCE_DEFAULT


def effective_budget(
    category: Category,
    month: date,
    overrides_by_month: OverridesByMonth
) -> Decimal:
    """
    Effective budget of a category for one calendar month.

    An explicit override wins, including an explicit zero. Without one, the
    category's monthly-equivalent default is used.
    """
    amount, _ = resolve_month_budget(category, month, overrides_by_month)
    return amount
