"""
Recurrence arithmetic for category budgets.

A category's default amount is denominated per occurrence and recurs every
``period_months`` months. This module converts that into a monthly
equivalent, counts how often the cost posts inside a window anchored at the
window start, and exposes the two projection strategies the budget views have
used over time behind a single ``RecurrenceModel`` interface.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Type

from exceptions import ConfigError, InvalidWindowError
from models import to_decimal

logger = logging.getLogger(__name__)

MONTHLY = 1
BIMONTHLY = 2
QUARTERLY = 3
YEARLY = 12

PERIOD_LABELS: Dict[int, str] = {
    MONTHLY: "monthly",
    BIMONTHLY: "bimonthly",
    QUARTERLY: "quarterly",
    YEARLY: "yearly",
}


def normalize_period_months(period_months: Any) -> Tuple[int, bool]:
    """
    Resolve a category's recurrence period.

    Unknown periods fail open to monthly so a usable number is always
    produced. Any positive integer is accepted.

    Args:
        period_months: Raw period value from the category record.

    Returns:
        Tuple of (period, recognized). ``recognized`` is False when the
        value was missing or invalid and monthly was substituted.
    """
    if isinstance(period_months, bool) or period_months is None:
        return MONTHLY, False
    if isinstance(period_months, int):
        return (period_months, True) if period_months > 0 else (MONTHLY, False)
    if isinstance(period_months, str) and period_months.strip().isdigit():
        value = int(period_months.strip())
        return (value, True) if value > 0 else (MONTHLY, False)
    return MONTHLY, False


def monthly_equivalent(amount: Any, period_months: Any) -> Decimal:
    """
    Convert a per-occurrence amount into its monthly equivalent.

    Args:
        amount: Amount per occurrence, None counts as zero.
        period_months: Months between occurrences.

    Returns:
        ``amount / period_months`` as a Decimal.
    """
    period, _ = normalize_period_months(period_months)
    return to_decimal(amount) / Decimal(period)


def occurrences(window_months: int, period_months: Any) -> int:
    """
    Count how many times a recurring cost posts inside a window.

    Occurrences are anchored at the window start: offset ``o`` in
    ``0..window_months-1`` counts when ``o % period == 0``. The anchor month
    always counts, so a period longer than the window still yields one.

    Args:
        window_months: Window length in months.
        period_months: Months between occurrences.

    Returns:
        Number of occurrences (>= 1 for any valid window).

    Raises:
        InvalidWindowError: If the window length is not a positive integer.
    """
    if isinstance(window_months, bool) or not isinstance(window_months, int) or window_months <= 0:
        raise InvalidWindowError(
            "Occurrence count requires a positive window length",
            details={"window_months": window_months}
        )
    period, _ = normalize_period_months(period_months)
    return sum(1 for offset in range(window_months) if offset % period == 0)


class RecurrenceModel:
    """
    Strategy for projecting a category default over a multi-month window.

    Subclasses implement ``project``; ``name`` is the key used in
    configuration.
    """

    name = ""

    def project(self, amount: Any, period_months: Any, window_months: int) -> Decimal:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(name='{self.name}')>"


class OccurrenceRecurrence(RecurrenceModel):
    """Discrete model: monthly equivalent times the number of occurrences."""

    name = "occurrence"

    def project(self, amount: Any, period_months: Any, window_months: int) -> Decimal:
        return monthly_equivalent(amount, period_months) * occurrences(window_months, period_months)


class FractionalRecurrence(RecurrenceModel):
    """Fractional model: monthly equivalent spread over every month of the window."""

    name = "fractional"

    def project(self, amount: Any, period_months: Any, window_months: int) -> Decimal:
        if isinstance(window_months, bool) or not isinstance(window_months, int) or window_months <= 0:
            raise InvalidWindowError(
                "Projection requires a positive window length",
                details={"window_months": window_months}
            )
        return monthly_equivalent(amount, period_months) * window_months


_MODELS: Dict[str, Type[RecurrenceModel]] = {
    OccurrenceRecurrence.name: OccurrenceRecurrence,
    FractionalRecurrence.name: FractionalRecurrence,
}

DEFAULT_RECURRENCE_MODEL = OccurrenceRecurrence.name


def get_recurrence_model(name: Optional[str] = None) -> RecurrenceModel:
    """
    Return the recurrence strategy registered under ``name``.

    Args:
        name: ``occurrence`` or ``fractional``; None selects the default.

    Raises:
        ConfigError: If the name is not a registered model.
    """
    key = str(name or DEFAULT_RECURRENCE_MODEL).strip().lower()
    model_cls = _MODELS.get(key)
    if model_cls is None:
        raise ConfigError(
            "Unknown recurrence model",
            details={"recurrence_model": name, "available": ", ".join(sorted(_MODELS))}
        )
    logger.debug("Using recurrence model '%s'", key)
    return model_cls()


def describe_period(period_months: Any) -> str:
    """Return a label such as ``quarterly`` or ``every 6 months``."""
    period, _ = normalize_period_months(period_months)
    return PERIOD_LABELS.get(period, f"every {period} months")
