"""
Unit tests for previous-period rollover.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import Mock

from models import PeriodTotals
from rollover import calculate_rollover, effective_available, resolve_carry

MARCH = date(2024, 3, 1)
FEBRUARY = date(2024, 2, 1)


class TestCalculateRollover:
    """Tests for the carry arithmetic."""

    def test_surplus_is_carried_forward(self):
        assert calculate_rollover(100, 60) == Decimal("40")

    def test_deficit_is_not_clamped(self):
        assert calculate_rollover(50, 80) == Decimal("-30")

    def test_effective_available_adds_carry(self):
        assert effective_available(200, calculate_rollover(200, 250)) == Decimal("150")


class TestResolveCarry:
    """Tests for choosing where the previous totals come from."""

    def test_supplied_totals_are_used_as_given(self, make_snapshot):
        totals_for_month = Mock()
        carry = resolve_carry(make_snapshot(), MARCH, totals_for_month, PeriodTotals(200, 250))

        assert carry == Decimal("-50")
        totals_for_month.assert_not_called()

    def test_zero_without_previous_budget_period(self, make_snapshot):
        totals_for_month = Mock()
        carry = resolve_carry(make_snapshot(active_months=[MARCH]), MARCH, totals_for_month)

        assert carry == Decimal("0")
        totals_for_month.assert_not_called()

    def test_derived_from_previous_month_totals(self, make_snapshot):
        snapshot = make_snapshot(active_months=[FEBRUARY, MARCH])
        totals_for_month = Mock(return_value=PeriodTotals(100, 60))

        carry = resolve_carry(snapshot, MARCH, totals_for_month)

        assert carry == Decimal("40")
        totals_for_month.assert_called_once_with(snapshot, FEBRUARY)
