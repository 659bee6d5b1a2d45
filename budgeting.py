"""
Budgeting module: the budget computation engine.

This module projects category budgets over a reporting window, compares them
with shared spending, folds in the previous month's rollover and produces the
per-category and household figures shown on the budget page. The engine is a
pure function of its inputs: it performs no I/O and keeps no state between
computations beyond its configuration.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from exceptions import BudgetError, ConfigError
from models import (
    TYPE_EXPENSE,
    ZERO,
    BudgetSnapshot,
    Category,
    CategoryResult,
    ComputationResult,
    PeriodTotals,
)
from overrides import resolve_month_budget
from periods import Window
from recurrence import RecurrenceModel, describe_period, get_recurrence_model, normalize_period_months
from rollover import resolve_carry
from summary import StatusThresholds, budget_status, percent_consumed, summarize

logger = logging.getLogger(__name__)

SOURCE_PROJECTION = "projection"


class BudgetEngine:
    """
    Computes budget figures for one household snapshot and window.

    Single-month windows reconcile against stored overrides and apply
    rollover. Range windows project category defaults only, through the
    configured recurrence model, and never apply rollover.
    """

    def __init__(
        self,
        recurrence_model: Optional[RecurrenceModel] = None,
        rollover_enabled: bool = True,
        thresholds: Optional[StatusThresholds] = None
    ):
        """
        Initialize the budget engine.

        Args:
            recurrence_model: Strategy used for range projections
            rollover_enabled: Whether single-month windows carry the previous balance
            thresholds: Status boundaries for warning/over-budget classification
        """
        self.recurrence_model = recurrence_model or get_recurrence_model()
        self.rollover_enabled = rollover_enabled
        self.thresholds = thresholds or StatusThresholds()
        logger.info(
            "Budget engine initialized (recurrence=%s, rollover=%s)",
            self.recurrence_model.name,
            self.rollover_enabled
        )

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "BudgetEngine":
        """
        Build an engine from the ``engine`` section of the configuration.

        Raises:
            ConfigError: If a configured value is invalid.
        """
        engine_config = (config or {}).get("engine", {}) or {}
        rollover = engine_config.get("rollover", True)
        if not isinstance(rollover, bool):
            raise ConfigError("engine.rollover must be true or false", details={"rollover": rollover})
        try:
            thresholds = StatusThresholds.from_config(engine_config.get("status_thresholds"))
        except (ArithmeticError, ValueError, TypeError) as exc:
            raise ConfigError(
                "Invalid status thresholds",
                details={"status_thresholds": engine_config.get("status_thresholds")},
                original_error=exc
            ) from exc
        if thresholds.warning > thresholds.over:
            raise ConfigError(
                "Warning threshold cannot exceed the over-budget threshold",
                details={"warning": thresholds.warning, "over": thresholds.over}
            )
        return cls(
            recurrence_model=get_recurrence_model(engine_config.get("recurrence_model")),
            rollover_enabled=rollover,
            thresholds=thresholds,
        )

    @staticmethod
    def _spending_by_category(snapshot: BudgetSnapshot, window: Window) -> Dict[str, Decimal]:
        """
        Sum shared expense transactions per category for the window.

        Uncategorized transactions are left out here; they still count in the
        household expense total.
        """
        spent: Dict[str, Decimal] = {}
        for txn in snapshot.transactions:
            if not txn.is_shared or txn.type != TYPE_EXPENSE or txn.category_id is None:
                continue
            if not window.contains(txn.date):
                continue
            spent[txn.category_id] = spent.get(txn.category_id, ZERO) + txn.amount
        return spent

    def _check_recurrence(self, category: Category, warnings: List[str]) -> None:
        """Record a data-quality warning for a category without a usable period."""
        _, recognized = normalize_period_months(category.period_months)
        if recognized:
            return
        message = (
            f"Category '{category.name or category.id}' has no recognized recurrence "
            f"period ({category.period_months!r}); treating it as monthly"
        )
        logger.warning(message)
        warnings.append(message)

    def _expected_for(
        self,
        snapshot: BudgetSnapshot,
        category: Category,
        window: Window
    ) -> Tuple[Decimal, str]:
        """Expected budget of a category over the window and where it came from."""
        if window.is_single_month:
            return resolve_month_budget(category, window.anchor, snapshot.overrides_by_month)

        expected = self.recurrence_model.project(
            category.default_amount,
            category.period_months,
            window.length_months
        )
        return expected, SOURCE_PROJECTION

    def project(
        self,
        snapshot: BudgetSnapshot,
        window: Window,
        warnings: Optional[List[str]] = None,
        check_recurrence: bool = True
    ) -> Dict[str, CategoryResult]:
        """
        Project expected budget and actual spend for every expense category.

        Args:
            snapshot: Household inputs
            window: Reporting window
            warnings: Optional list collecting data-quality messages
            check_recurrence: Whether to report categories without a usable period

        Returns:
            Category results keyed by category id, in display order.
        """
        if warnings is None:
            warnings = []
        spent_by_category = self._spending_by_category(snapshot, window)
        months = Decimal(window.length_months)

        results: Dict[str, CategoryResult] = {}
        for category in snapshot.expense_categories():
            if check_recurrence:
                self._check_recurrence(category, warnings)
            expected, source = self._expected_for(snapshot, category, window)
            spent = spent_by_category.get(category.id, ZERO)
            percent = percent_consumed(spent, expected)

            results[category.id] = CategoryResult(
                category_id=category.id,
                name=category.name,
                expected=expected,
                spent=spent,
                remaining=expected - spent,
                percent=percent,
                average_spent=spent / months,
                status=budget_status(percent, expected, spent, self.thresholds),
                source=source,
                period_label=describe_period(category.period_months),
            )

        logger.debug("Projected %s categories for %s", len(results), window.label())
        return results

    def period_totals(self, snapshot: BudgetSnapshot, month: date) -> PeriodTotals:
        """
        Budget and expense totals of a single month.

        The budget total reconciles the month's own overrides; the spend total
        covers every shared expense of the month, uncategorized included.
        """
        window = Window.single_month(month)
        # recurrence warnings belong to the reported window only
        per_category = self.project(snapshot, window, check_recurrence=False)
        summary = summarize(per_category, snapshot.transactions, window, ZERO, self.thresholds)
        return PeriodTotals(budget=summary.budget_total, spent=summary.expense)

    def compute(
        self,
        snapshot: BudgetSnapshot,
        window: Window,
        previous_totals: Optional[PeriodTotals] = None,
        apply_rollover: Optional[bool] = None
    ) -> ComputationResult:
        """
        Compute the full budget result for a window.

        Args:
            snapshot: Household inputs, read-only
            window: Reporting window
            previous_totals: Optional totals of the previous month for rollover
            apply_rollover: Override the configured rollover setting

        Returns:
            ComputationResult with per-category figures, household summary
            and data-quality warnings.

        Raises:
            BudgetError: If the snapshot or window is not usable.
        """
        if not isinstance(window, Window):
            raise BudgetError("compute() requires a Window", details={"window": window})
        if not isinstance(snapshot, BudgetSnapshot):
            raise BudgetError("compute() requires a BudgetSnapshot")

        warnings: List[str] = list(snapshot.load_warnings)
        per_category = self.project(snapshot, window, warnings)

        rollover = self.rollover_enabled if apply_rollover is None else apply_rollover
        carry = ZERO
        if rollover and window.is_single_month:
            carry = resolve_carry(snapshot, window.anchor, self.period_totals, previous_totals)

        summary = summarize(per_category, snapshot.transactions, window, carry, self.thresholds)
        result = ComputationResult(
            household_id=snapshot.context.household_id,
            window=window,
            per_category=per_category,
            summary=summary,
            warnings=tuple(warnings),
        )
        logger.info(
            "Computed budget for household '%s' %s: budget=%s spent=%s available=%s",
            result.household_id,
            window.label(),
            summary.budget_total,
            summary.expense,
            summary.available
        )
        return result
