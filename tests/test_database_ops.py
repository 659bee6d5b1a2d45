"""
Tests for the SQLAlchemy data-access layer feeding the budget engine.
"""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from budgeting import BudgetEngine
from database_ops import BudgetLine, BudgetPeriod, Category, DatabaseManager, Transaction
from exceptions import DatabaseError
from models import HouseholdContext
from periods import Window

HOUSEHOLD = "household-1"
OTHER_HOUSEHOLD = "household-2"


@pytest.fixture()
def db_manager(tmp_path):
    """Provide a DatabaseManager backed by a temporary SQLite file."""
    manager = DatabaseManager(f"sqlite:///{(tmp_path / 'budget.db').as_posix()}")
    manager.create_tables()
    try:
        yield manager
    finally:
        manager.close()


@pytest.fixture()
def seeded(db_manager):
    """Seed two expense categories, one income category and some transactions."""
    session = db_manager.get_session()
    try:
        session.add_all([
            Category(id="groceries", household_id=HOUSEHOLD, name="Groceries",
                     default_budget=Decimal("100.00"), budget_period_months=1, sort_order=1),
            Category(id="insurance", household_id=HOUSEHOLD, name="Insurance",
                     default_budget=Decimal("300.00"), budget_period_months=3, sort_order=2),
            Category(id="salary", household_id=HOUSEHOLD, name="Salary", type="income"),
            Category(id="other-groceries", household_id=OTHER_HOUSEHOLD, name="Groceries",
                     default_budget=Decimal("999.00")),
        ])
        session.add_all([
            Transaction(household_id=HOUSEHOLD, amount=Decimal("200.00"), type="expense",
                        category_id="groceries", date=date(2024, 3, 12)),
            Transaction(household_id=HOUSEHOLD, amount=Decimal("40.00"), type="expense",
                        category_id="groceries", scope="member", member_id="member-1", date=date(2024, 3, 13)),
            Transaction(household_id=HOUSEHOLD, amount=Decimal("2500.00"), type="income",
                        category_id="salary", date=date(2024, 3, 1)),
            Transaction(household_id=HOUSEHOLD, amount=Decimal("70.00"), type="expense",
                        category_id="groceries", date=date(2024, 2, 20)),
            Transaction(household_id=HOUSEHOLD, amount=Decimal("15.00"), type="expense",
                        date=date(2024, 4, 1)),
            Transaction(household_id=OTHER_HOUSEHOLD, amount=Decimal("500.00"), type="expense",
                        category_id="other-groceries", date=date(2024, 3, 5)),
        ])
        session.commit()
    finally:
        session.close()
    return db_manager


class TestBudgetPeriods:
    """Tests for month activation."""

    def test_get_or_create_is_idempotent(self, db_manager):
        first = db_manager.get_or_create_budget_period(HOUSEHOLD, "2024-03")
        second = db_manager.get_or_create_budget_period(HOUSEHOLD, date(2024, 3, 20))

        assert first.id == second.id
        assert first.month == date(2024, 3, 1)

        session = db_manager.get_session()
        try:
            assert session.query(BudgetPeriod).count() == 1
        finally:
            session.close()

    def test_periods_are_per_household(self, db_manager):
        first = db_manager.get_or_create_budget_period(HOUSEHOLD, "2024-03")
        other = db_manager.get_or_create_budget_period(OTHER_HOUSEHOLD, "2024-03")
        assert first.id != other.id

    def test_get_budget_months_newest_first(self, db_manager):
        db_manager.get_or_create_budget_period(HOUSEHOLD, "2024-01")
        db_manager.get_or_create_budget_period(HOUSEHOLD, "2024-03")

        assert db_manager.get_budget_months(HOUSEHOLD) == [date(2024, 3, 1), date(2024, 1, 1)]
        assert db_manager.get_budget_months(OTHER_HOUSEHOLD) == []


class TestBudgetLines:
    """Tests for override storage."""

    def test_upsert_creates_period_and_updates_in_place(self, seeded):
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "150")
        line = seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", 0)

        assert line.amount == Decimal("0")
        assert seeded.get_budget_months(HOUSEHOLD) == [date(2024, 3, 1)]

        session = seeded.get_session()
        try:
            assert session.query(BudgetLine).count() == 1
        finally:
            session.close()

    def test_second_line_for_same_category_and_scope_is_rejected(self, seeded):
        """Storage keeps one line per (period, category, scope)."""
        period = seeded.get_or_create_budget_period(HOUSEHOLD, "2024-03")
        session = seeded.get_session()
        try:
            session.add(BudgetLine(budget_id=period.id, category_id="groceries", scope="shared", amount=Decimal("150")))
            session.commit()
            session.add(BudgetLine(budget_id=period.id, category_id="groceries", scope="shared", amount=Decimal("175")))
            with pytest.raises(IntegrityError):
                session.commit()
            session.rollback()
            assert session.query(BudgetLine).count() == 1
        finally:
            session.close()

    def test_member_scope_line_coexists_with_shared_line(self, seeded):
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "150")
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "40", scope="member")

        session = seeded.get_session()
        try:
            assert session.query(BudgetLine).count() == 2
        finally:
            session.close()

    def test_clear_budget_line(self, seeded):
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "150")

        assert seeded.clear_budget_line(HOUSEHOLD, "2024-03", "groceries") is True
        assert seeded.clear_budget_line(HOUSEHOLD, "2024-03", "groceries") is False
        assert seeded.clear_budget_line(HOUSEHOLD, "2023-01", "groceries") is False


class TestLoadSnapshot:
    """Tests for building engine inputs from stored rows."""

    def test_snapshot_is_scoped_to_household_and_window(self, seeded):
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "150")
        context = HouseholdContext(household_id=HOUSEHOLD)

        snapshot = seeded.load_snapshot(context, Window.single_month("2024-03"))

        assert {c.id for c in snapshot.categories} == {"groceries", "insurance", "salary"}
        assert snapshot.active_months == frozenset({date(2024, 3, 1)})
        assert snapshot.overrides_by_month == {date(2024, 3, 1): {"groceries": Decimal("150.00")}}
        # February is loaded for rollover, April 1st is outside the window
        assert sorted(t.amount for t in snapshot.transactions) == [
            Decimal("40.00"), Decimal("70.00"), Decimal("200.00"), Decimal("2500.00"),
        ]

    def test_snapshot_feeds_the_engine(self, seeded):
        seeded.upsert_budget_line(HOUSEHOLD, "2024-03", "groceries", "150")
        window = Window.single_month("2024-03")

        snapshot = seeded.load_snapshot(HouseholdContext(household_id=HOUSEHOLD), window)
        result = BudgetEngine().compute(snapshot, window)

        groceries = result.per_category["groceries"]
        assert groceries.expected == Decimal("150.00")
        assert groceries.spent == Decimal("200.00")
        assert groceries.remaining == Decimal("-50.00")
        assert list(result.per_category) == ["groceries", "insurance"]
        assert result.summary.income == Decimal("2500.00")
        assert result.summary.expense == Decimal("200.00")
        assert result.summary.rollover == Decimal("0")


def test_invalid_connection_string_raises_database_error():
    with pytest.raises(DatabaseError):
        DatabaseManager("notadialect://nowhere")
