"""
Unit tests for the unified exception hierarchy.

Tests exception creation, attributes, string representations, and error context.
"""

import pytest

from exceptions import (
    BudgetError,
    ConfigError,
    DatabaseError,
    HouseholdBudgetError,
    InvalidWindowError,
    ReportError,
)


class TestHouseholdBudgetError:
    """Test base HouseholdBudgetError class."""

    def test_basic_exception_creation(self):
        error = HouseholdBudgetError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}
        assert error.original_error is None

    def test_exception_with_details(self):
        details = {"window_months": 0, "mode": "range"}
        error = HouseholdBudgetError("Invalid window", details=details)
        assert error.details == details
        assert str(error) == "Invalid window (window_months=0, mode=range)"

    def test_exception_with_original_error(self):
        original = ValueError("bad value")
        error = HouseholdBudgetError("Wrapped", original_error=original)
        assert error.original_error is original


class TestExceptionHierarchy:
    """Test that subclasses can be caught through their parents."""

    @pytest.mark.parametrize("error_cls", [ConfigError, DatabaseError, BudgetError, ReportError])
    def test_subclasses_inherit_from_base(self, error_cls):
        with pytest.raises(HouseholdBudgetError):
            raise error_cls("failure")

    def test_invalid_window_is_budget_error(self):
        error = InvalidWindowError("Window length must be positive", details={"length_months": 0})
        assert isinstance(error, BudgetError)
        assert "length_months=0" in str(error)
