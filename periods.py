"""
Calendar month helpers and reporting windows.

Month keys are ``date`` objects pinned to the first day of the month. A
reporting window is either a single month or a run of trailing months that
ends with an anchor month; both are expressed as a half-open date interval
``[start, end)`` so that a transaction dated on the first day of the next
month is never counted twice.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List

from exceptions import InvalidWindowError


MODE_MONTH = "month"
MODE_RANGE = "range"

_MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")


def parse_month_key(value: Any) -> date:
    """
    Convert a month reference into a canonical month key.

    Args:
        value: ``date``/``datetime``, ``"YYYY-MM"`` or ``"YYYY-MM-DD"`` string.

    Returns:
        Date pinned to the first day of the month.

    Raises:
        InvalidWindowError: If the value cannot be interpreted as a month.
    """
    if isinstance(value, datetime):
        return value.date().replace(day=1)
    if isinstance(value, date):
        return value.replace(day=1)
    if not isinstance(value, str):
        raise InvalidWindowError(
            "Month key must be a date or an ISO month string",
            details={"value": value}
        )

    match = _MONTH_KEY_PATTERN.match(value.strip())
    if not match:
        raise InvalidWindowError("Malformed month key", details={"value": value})

    year, month, day = match.groups()
    try:
        return date(int(year), int(month), int(day or 1)).replace(day=1)
    except ValueError as exc:
        raise InvalidWindowError(
            "Malformed month key",
            details={"value": value},
            original_error=exc
        ) from exc


def format_month_key(month: date) -> str:
    """Return the ``YYYY-MM`` label for a month key."""
    return f"{month.year:04d}-{month.month:02d}"


def add_months(month: date, offset: int) -> date:
    """
    Shift a month key by a number of months.

    Args:
        month: Month key (any day is accepted, the result is pinned to day 1).
        offset: Months to add, may be negative.

    Returns:
        Shifted month key.
    """
    index = month.year * 12 + (month.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def previous_month(month: date) -> date:
    """Return the month key immediately before ``month``."""
    return add_months(month, -1)


def coerce_date(value: Any) -> date:
    """
    Normalize a transaction date.

    Args:
        value: ``date``, ``datetime`` or ISO 8601 string.

    Returns:
        Calendar date.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
    raise ValueError(f"Unsupported date value: {value!r}")


@dataclass(frozen=True)
class Window:
    """
    Reporting window over whole calendar months.

    Attributes:
        mode: ``"month"`` for a single month, ``"range"`` for trailing months
        anchor: Month key of the last month in the window
        length_months: Number of calendar months covered
    """
    mode: str
    anchor: date
    length_months: int = 1

    def __post_init__(self) -> None:
        if self.mode not in (MODE_MONTH, MODE_RANGE):
            raise InvalidWindowError("Unknown window mode", details={"mode": self.mode})
        # bool is an int subclass; True is not a window length
        if isinstance(self.length_months, bool) or not isinstance(self.length_months, int):
            raise InvalidWindowError(
                "Window length must be an integer number of months",
                details={"length_months": self.length_months}
            )
        if self.length_months <= 0:
            raise InvalidWindowError(
                "Window length must be positive",
                details={"length_months": self.length_months}
            )
        if self.mode == MODE_MONTH and self.length_months != 1:
            raise InvalidWindowError(
                "Single-month windows cover exactly one month",
                details={"length_months": self.length_months}
            )
        object.__setattr__(self, "anchor", parse_month_key(self.anchor))

    @classmethod
    def single_month(cls, month: Any) -> "Window":
        """Build a window covering exactly one calendar month."""
        return cls(MODE_MONTH, parse_month_key(month), 1)

    @classmethod
    def trailing(cls, anchor_month: Any, length_months: int) -> "Window":
        """Build a range window of ``length_months`` months ending at ``anchor_month``."""
        return cls(MODE_RANGE, parse_month_key(anchor_month), length_months)

    @property
    def is_single_month(self) -> bool:
        return self.mode == MODE_MONTH

    @property
    def first_month(self) -> date:
        return add_months(self.anchor, -(self.length_months - 1))

    @property
    def start(self) -> date:
        """Inclusive start date of the window."""
        return self.first_month

    @property
    def end(self) -> date:
        """Exclusive end date of the window (first day after the last month)."""
        return add_months(self.anchor, 1)

    def months(self) -> List[date]:
        """Return every month key in the window, oldest first."""
        return [add_months(self.first_month, offset) for offset in range(self.length_months)]

    def contains(self, day: date) -> bool:
        """Return True if ``day`` falls inside ``[start, end)``."""
        return self.start <= day < self.end

    def label(self) -> str:
        """Human-readable label used in logs and reports."""
        if self.is_single_month:
            return format_month_key(self.anchor)
        return f"{format_month_key(self.first_month)}..{format_month_key(self.anchor)}"
