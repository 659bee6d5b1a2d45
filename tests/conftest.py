"""
Shared fixtures for the budget engine test suite.
"""

from datetime import date

import pytest

from budgeting import BudgetEngine
from models import BudgetSnapshot, Category, HouseholdContext, Transaction


@pytest.fixture
def context():
    """Household context used across tests."""
    return HouseholdContext(household_id="household-1", member_id="member-1")


@pytest.fixture
def engine():
    """Engine with default configuration (occurrence model, rollover on)."""
    return BudgetEngine()


@pytest.fixture
def groceries():
    return Category(id="groceries", name="Groceries", default_amount=100, period_months=1, sort_order=1)


@pytest.fixture
def insurance():
    return Category(id="insurance", name="Insurance", default_amount=300, period_months=3, sort_order=2)


@pytest.fixture
def make_snapshot(context):
    """Factory building a BudgetSnapshot with the shared household context."""

    def _make(categories=(), active_months=(), overrides=None, transactions=()):
        return BudgetSnapshot(
            context=context,
            categories=categories,
            active_months=frozenset(active_months),
            overrides_by_month=overrides or {},
            transactions=transactions,
        )

    return _make


def expense(amount, day, category_id=None, scope="shared"):
    """Build a shared expense transaction."""
    return Transaction(amount=amount, type="expense", date=day, category_id=category_id, scope=scope)


def income(amount, day, scope="shared"):
    """Build an income transaction."""
    return Transaction(amount=amount, type="income", date=day, scope=scope)


MARCH = date(2024, 3, 1)
FEBRUARY = date(2024, 2, 1)
