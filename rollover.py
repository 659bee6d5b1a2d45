"""
Carry-over of the previous period's balance.

The previous month's budget minus its spend is carried into the current
month as-is: a surplus raises what is available, a deficit lowers it. Nothing
is clamped. Rollover applies to single-month windows only and is never
chained further back than one month.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional

from models import ZERO, BudgetSnapshot, PeriodTotals, to_decimal
from periods import format_month_key, previous_month

logger = logging.getLogger(__name__)


def calculate_rollover(previous_budget_total: Any, previous_spent_total: Any) -> Decimal:
    """
    Carry from the previous period.

    Args:
        previous_budget_total: Total budget of the previous period.
        previous_spent_total: Total expense spend of the previous period.

    Returns:
        ``budget - spent``, positive for a surplus, negative for a deficit.
    """
    return to_decimal(previous_budget_total) - to_decimal(previous_spent_total)


def effective_available(current_budget_total: Any, carry: Any) -> Decimal:
    """Budget available this period once the carry is folded in."""
    return to_decimal(current_budget_total) + to_decimal(carry)


def resolve_carry(
    snapshot: BudgetSnapshot,
    month: date,
    totals_for_month: Callable[[BudgetSnapshot, date], PeriodTotals],
    previous_totals: Optional[PeriodTotals] = None
) -> Decimal:
    """
    Determine the carry into ``month``.

    Totals supplied by the caller are used as-is. Otherwise the carry is zero
    when the previous month has no budget period, and derived from that
    month's own projection when it does.

    Args:
        snapshot: Inputs of the current computation.
        month: Month receiving the carry.
        totals_for_month: Callable computing a month's budget and spend totals.
        previous_totals: Optional totals of the previous period.

    Returns:
        Carry amount (may be negative).
    """
    if previous_totals is not None:
        carry = calculate_rollover(previous_totals.budget, previous_totals.spent)
        logger.debug("Using supplied previous totals for %s: carry=%s", format_month_key(month), carry)
        return carry

    prior = previous_month(month)
    if not snapshot.has_budget_period(prior):
        logger.debug("No budget period for %s; carry is zero", format_month_key(prior))
        return ZERO

    totals = totals_for_month(snapshot, prior)
    carry = calculate_rollover(totals.budget, totals.spent)
    logger.info(
        "Rollover from %s into %s: budget=%s spent=%s carry=%s",
        format_month_key(prior),
        format_month_key(month),
        totals.budget,
        totals.spent,
        carry
    )
    return carry
