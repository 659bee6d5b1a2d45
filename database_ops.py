"""
Database operations module for the budget data-access layer.

This module holds the minimal relational shape that feeds the budget engine
(categories, budget periods, budget lines and transactions) using SQLAlchemy
ORM, and turns stored rows into immutable ``BudgetSnapshot`` objects. SQLite
is the default backend; any SQLAlchemy URL works.
"""

import logging
import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any, List

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from exceptions import DatabaseError
from models import (
    SCOPE_SHARED,
    BudgetLine as BudgetLineRecord,
    BudgetPeriod as BudgetPeriodRecord,
    BudgetSnapshot,
    Category as CategoryRecord,
    HouseholdContext,
    Transaction as TransactionRecord,
)
from overrides import build_overrides_by_month
from periods import Window, format_month_key, parse_month_key, previous_month

# Configure logging
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """
    Get current UTC datetime with timezone awareness.

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def new_id() -> str:
    """Generate a string primary key."""
    return str(uuid.uuid4())


# Base class for declarative models
Base = declarative_base()


class Category(Base):
    """
    SQLAlchemy model representing a budget category.

    Attributes:
        id: String primary key
        household_id: Owning household
        name: Category name
        type: ``income`` or ``expense``
        default_budget: Default amount per occurrence (nullable)
        budget_period_months: Months between occurrences (nullable)
        sort_order: Display position
    """

    __tablename__ = "categories"

    id = Column(String(36), primary_key=True, default=new_id)
    household_id = Column(String(36), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    type = Column(String(10), nullable=False, default="expense")
    default_budget = Column(Numeric(12, 2), nullable=True)
    budget_period_months = Column(Integer, nullable=True, default=1)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    def __repr__(self) -> str:
        """String representation of the category."""
        return (
            f"<Category(id={self.id}, name='{self.name}', type={self.type}, "
            f"default={self.default_budget}, period={self.budget_period_months})>"
        )


class BudgetPeriod(Base):
    """
    SQLAlchemy model representing a household's budget for one month.

    At most one row exists per (household, month).
    """

    __tablename__ = "budget_periods"

    id = Column(String(36), primary_key=True, default=new_id)
    household_id = Column(String(36), nullable=False, index=True)
    month = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    lines = relationship("BudgetLine", back_populates="budget_period", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("household_id", "month", name="uq_budget_period_household_month"),
    )

    def __repr__(self) -> str:
        """String representation of the budget period."""
        return f"<BudgetPeriod(id={self.id}, household={self.household_id}, month={self.month})>"


class BudgetLine(Base):
    """
    SQLAlchemy model representing a per-month category override.

    At most one row exists per (budget period, category, scope).
    """

    __tablename__ = "budget_lines"

    id = Column(Integer, primary_key=True, autoincrement=True)
    budget_id = Column(String(36), ForeignKey("budget_periods.id"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=False)
    scope = Column(String(10), nullable=False, default=SCOPE_SHARED)
    amount = Column(Numeric(12, 2), nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    budget_period = relationship("BudgetPeriod", back_populates="lines")

    __table_args__ = (
        UniqueConstraint("budget_id", "category_id", "scope", name="uq_budget_line"),
    )

    def __repr__(self) -> str:
        """String representation of the budget line."""
        return (
            f"<BudgetLine(budget_id={self.budget_id}, category_id={self.category_id}, "
            f"scope={self.scope}, amount={self.amount})>"
        )


class Transaction(Base):
    """
    SQLAlchemy model representing a household transaction.

    Attributes:
        id: Auto-incrementing primary key
        household_id: Owning household
        amount: Positive magnitude
        type: ``income`` or ``expense``
        category_id: Optional category reference
        scope: ``shared`` or ``member``
        date: Calendar date of the transaction
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    household_id = Column(String(36), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    type = Column(String(10), nullable=False)
    category_id = Column(String(36), ForeignKey("categories.id"), nullable=True)
    scope = Column(String(10), nullable=False, default=SCOPE_SHARED)
    member_id = Column(String(36), nullable=True)
    description = Column(String(255), nullable=True)
    date = Column(Date, nullable=False)

    # Composite index for the window query
    __table_args__ = (
        Index("idx_transactions_household_date", "household_id", "date"),
    )

    def __repr__(self) -> str:
        """String representation of the transaction."""
        return (
            f"<Transaction(id={self.id}, date={self.date}, type={self.type}, "
            f"amount={self.amount}, category_id={self.category_id})>"
        )


class DatabaseManager:
    """
    Manages database connections and the reads that feed the budget engine.

    Also offers the two idempotent writes the budget page needs: activating a
    month and storing an override.
    """

    def __init__(self, connection_string: str):
        """
        Initialize the database manager.

        Args:
            connection_string: SQLAlchemy connection string (e.g., 'sqlite:///data/budget.db')

        Raises:
            DatabaseError: If the engine cannot be created
        """
        try:
            self.engine = create_engine(connection_string, echo=False)
            self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
            logger.info(f"Database manager initialized with connection: {connection_string}")
        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise DatabaseError(
                "Failed to initialize database",
                details={"connection_string": connection_string},
                original_error=e
            ) from e

    def create_tables(self) -> None:
        """
        Create all database tables if they don't exist.

        Raises:
            DatabaseError: If table creation fails
        """
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database tables created/verified successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create database tables: {e}")
            raise DatabaseError("Failed to create database tables", original_error=e) from e

    def get_session(self) -> Session:
        """
        Get a new database session.

        Note:
            Caller is responsible for closing the session.
        """
        return self.SessionLocal()

    def get_or_create_budget_period(self, household_id: str, month: Any) -> BudgetPeriod:
        """
        Activate a household budget for a month.

        Idempotent: calling it again for the same (household, month) returns
        the existing row.

        Args:
            household_id: Household identifier
            month: Month key (date or ``YYYY-MM`` string)

        Returns:
            BudgetPeriod row (detached)

        Raises:
            DatabaseError: If the query or insert fails
        """
        month_key = parse_month_key(month)
        session = self.get_session()
        try:
            existing = session.query(BudgetPeriod).filter(
                BudgetPeriod.household_id == household_id,
                BudgetPeriod.month == month_key
            ).first()
            if existing:
                session.expunge(existing)
                return existing

            period = BudgetPeriod(household_id=household_id, month=month_key)
            session.add(period)
            session.commit()
            session.refresh(period)
            session.expunge(period)
            logger.info("Created budget period for household '%s' %s", household_id, format_month_key(month_key))
            return period
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to create budget period: {e}")
            raise DatabaseError(
                "Failed to create budget period",
                details={"household_id": household_id, "month": format_month_key(month_key)},
                original_error=e
            ) from e
        finally:
            session.close()

    def upsert_budget_line(
        self,
        household_id: str,
        month: Any,
        category_id: str,
        amount: Any,
        scope: str = SCOPE_SHARED
    ) -> BudgetLine:
        """
        Create or update the override of a category for a month.

        The month's budget period is created when missing, since overrides
        only take effect on active months.

        Args:
            household_id: Household identifier
            month: Month key
            category_id: Category identifier
            amount: Override amount (zero is a valid explicit budget)
            scope: Line scope

        Returns:
            BudgetLine row (detached)

        Raises:
            DatabaseError: If the write fails
        """
        period = self.get_or_create_budget_period(household_id, month)
        session = self.get_session()
        try:
            line = session.query(BudgetLine).filter(
                BudgetLine.budget_id == period.id,
                BudgetLine.category_id == category_id,
                BudgetLine.scope == scope
            ).first()

            if line:
                line.amount = Decimal(str(amount))
                line.updated_at = utc_now()
            else:
                line = BudgetLine(
                    budget_id=period.id,
                    category_id=category_id,
                    scope=scope,
                    amount=Decimal(str(amount))
                )
                session.add(line)

            session.commit()
            session.refresh(line)
            session.expunge(line)
            logger.info(
                "Override saved for category '%s' in %s: %s",
                category_id,
                format_month_key(period.month),
                amount
            )
            return line
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to upsert budget line: {e}")
            raise DatabaseError(
                "Failed to upsert budget line",
                details={"category_id": category_id, "month": format_month_key(period.month)},
                original_error=e
            ) from e
        finally:
            session.close()

    def clear_budget_line(
        self,
        household_id: str,
        month: Any,
        category_id: str,
        scope: str = SCOPE_SHARED
    ) -> bool:
        """
        Delete the override of a category for a month, restoring the default.

        Returns:
            True if a line was deleted, False if none existed
        """
        month_key = parse_month_key(month)
        session = self.get_session()
        try:
            period = session.query(BudgetPeriod).filter(
                BudgetPeriod.household_id == household_id,
                BudgetPeriod.month == month_key
            ).first()
            if not period:
                return False

            deleted = session.query(BudgetLine).filter(
                BudgetLine.budget_id == period.id,
                BudgetLine.category_id == category_id,
                BudgetLine.scope == scope
            ).delete()
            if deleted:
                session.commit()
                logger.info("Override cleared for category '%s' in %s", category_id, format_month_key(month_key))
                return True
            return False
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Failed to clear budget line: {e}")
            raise DatabaseError("Failed to clear budget line", original_error=e) from e
        finally:
            session.close()

    def get_budget_months(self, household_id: str) -> List[date]:
        """Return the months with an active budget, newest first."""
        session = self.get_session()
        try:
            rows = session.query(BudgetPeriod.month).filter(
                BudgetPeriod.household_id == household_id
            ).order_by(BudgetPeriod.month.desc()).all()
            return [row[0] for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch budget months: {e}")
            raise DatabaseError("Failed to fetch budget months", original_error=e) from e
        finally:
            session.close()

    def load_snapshot(self, context: HouseholdContext, window: Window) -> BudgetSnapshot:
        """
        Load everything the engine needs for a window.

        Fetches the household's categories, the budget periods and shared
        lines of the window plus the month before it (for rollover), and the
        transactions dated in that span.

        Args:
            context: Household context
            window: Reporting window

        Returns:
            Immutable BudgetSnapshot

        Raises:
            DatabaseError: If any query fails
        """
        span_start = previous_month(window.start)
        span_end = window.end
        household_id = context.household_id

        session = self.get_session()
        try:
            category_rows = session.query(Category).filter(
                Category.household_id == household_id
            ).order_by(Category.sort_order, Category.name).all()

            period_rows = session.query(BudgetPeriod).filter(
                BudgetPeriod.household_id == household_id,
                BudgetPeriod.month >= span_start,
                BudgetPeriod.month < span_end
            ).all()

            period_ids = [row.id for row in period_rows]
            line_rows = []
            if period_ids:
                line_rows = session.query(BudgetLine).filter(
                    BudgetLine.budget_id.in_(period_ids),
                    BudgetLine.scope == SCOPE_SHARED
                ).all()

            transaction_rows = session.query(Transaction).filter(
                Transaction.household_id == household_id,
                Transaction.date >= span_start,
                Transaction.date < span_end
            ).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load budget snapshot: {e}")
            raise DatabaseError(
                "Failed to load budget snapshot",
                details={"household_id": household_id, "window": window.label()},
                original_error=e
            ) from e
        finally:
            session.close()

        periods = [
            BudgetPeriodRecord(id=row.id, household_id=row.household_id, month=row.month)
            for row in period_rows
        ]
        lines = [
            BudgetLineRecord(
                budget_period_id=row.budget_id,
                category_id=row.category_id,
                amount=row.amount,
                scope=row.scope,
            )
            for row in line_rows
        ]
        load_warnings: List[str] = []
        overrides_by_month = build_overrides_by_month(periods, lines, warnings=load_warnings)
        snapshot = BudgetSnapshot(
            context=context,
            categories=[
                CategoryRecord(
                    id=row.id,
                    name=row.name,
                    default_amount=row.default_budget,
                    period_months=row.budget_period_months,
                    type=row.type,
                    sort_order=row.sort_order,
                )
                for row in category_rows
            ],
            active_months={period.month for period in periods},
            overrides_by_month=overrides_by_month,
            transactions=[
                TransactionRecord(
                    amount=row.amount,
                    type=row.type,
                    date=row.date,
                    category_id=row.category_id,
                    scope=row.scope,
                )
                for row in transaction_rows
            ],
            load_warnings=load_warnings,
        )
        logger.debug(
            "Loaded snapshot for household '%s' %s: %s categories, %s periods, %s transactions",
            household_id,
            window.label(),
            len(snapshot.categories),
            len(periods),
            len(snapshot.transactions)
        )
        return snapshot

    def close(self) -> None:
        """Dispose of the engine's connection pool."""
        self.engine.dispose()
        logger.info("Database connections closed")
