"""
Report generator module for budget computation results.

This module turns a ``ComputationResult`` into a pandas DataFrame, a text
report (tables rendered with tabulate), JSON, or a CSV export. Rounding
happens here and only here; the engine hands over unrounded Decimals.
"""

import json
import logging
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import pandas as pd
from tabulate import tabulate

from exceptions import ReportError
from models import ComputationResult
from summary import budget_alerts, status_counts

logger = logging.getLogger(__name__)

CATEGORY_COLUMNS = [
    "category_id",
    "category",
    "period",
    "expected",
    "spent",
    "remaining",
    "percent",
    "average_spent",
    "status",
    "source",
]

STATUS_LABELS = {
    "on_track": "On track",
    "warning": "Warning",
    "over_budget": "Over budget",
}

_CENT = Decimal("0.01")
_TENTH = Decimal("0.1")


def _round(value: Decimal, quantum: Decimal = _CENT) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


class ReportGenerator:
    """
    Generate formatted reports from budget computation results.

    Supports text tables for the CLI, JSON for integrations and CSV exports.
    """

    def __init__(self, currency_symbol: str = "€"):
        """
        Initialize the report generator.

        Args:
            currency_symbol: Symbol prefixed to monetary amounts
        """
        self.currency_symbol = currency_symbol
        logger.debug("Report generator initialized")

    def format_currency(self, amount: Decimal) -> str:
        """
        Format amount as currency string.

        Args:
            amount: Amount to format

        Returns:
            Formatted currency string (e.g., "€1,234.56" or "-€12.00")
        """
        rounded = _round(Decimal(amount))
        sign = "-" if rounded < 0 else ""
        return f"{sign}{self.currency_symbol}{abs(rounded):,.2f}"

    def format_percentage(self, percentage: Decimal) -> str:
        """Format percentage string with one decimal place."""
        return f"{_round(Decimal(percentage), _TENTH)}%"

    def results_to_dataframe(self, result: ComputationResult) -> pd.DataFrame:
        """
        Build a per-category DataFrame, amounts rounded to cents.

        Args:
            result: Computation result

        Returns:
            DataFrame with one row per category in display order
        """
        rows: List[Dict[str, Any]] = []
        for category in result.per_category.values():
            rows.append({
                "category_id": category.category_id,
                "category": category.name or category.category_id,
                "period": category.period_label,
                "expected": float(_round(category.expected)),
                "spent": float(_round(category.spent)),
                "remaining": float(_round(category.remaining)),
                "percent": float(_round(category.percent, _TENTH)),
                "average_spent": float(_round(category.average_spent)),
                "status": category.status,
                "source": category.source,
            })
        return pd.DataFrame(rows, columns=CATEGORY_COLUMNS)

    def generate_budget_report(self, result: ComputationResult) -> str:
        """
        Generate the text report for a computation.

        Args:
            result: Computation result

        Returns:
            Formatted multi-line report
        """
        summary = result.summary
        window = result.window
        title = "MONTHLY BUDGET" if window.is_single_month else f"BUDGET PROJECTION ({window.length_months} MONTHS)"

        lines = [
            "=" * 100,
            f"{title} - {window.label()} - household {result.household_id}",
            "=" * 100,
        ]

        if result.per_category:
            table = [
                [
                    category.name or category.category_id,
                    category.period_label,
                    self.format_currency(category.expected),
                    self.format_currency(category.spent),
                    self.format_currency(category.remaining),
                    self.format_percentage(category.percent),
                    STATUS_LABELS.get(category.status, category.status),
                ]
                for category in result.per_category.values()
            ]
            headers = ["Category", "Period", "Budget", "Spent", "Remaining", "Used", "Status"]
            if not window.is_single_month:
                headers[4] = "Deviation"
            lines.append(tabulate(table, headers=headers, tablefmt="simple", stralign="right"))
        else:
            lines.append("No expense categories found.")

        totals = [
            ["Income", self.format_currency(summary.income)],
            ["Expenses", self.format_currency(summary.expense)],
            ["Balance", self.format_currency(summary.balance)],
            ["Budget total", self.format_currency(summary.budget_total)],
        ]
        if window.is_single_month:
            totals.append(["Rollover", self.format_currency(summary.rollover)])
            totals.append(["Available budget", self.format_currency(summary.effective_available)])
        totals.append(["Net available", self.format_currency(summary.available)])
        totals.append(["Budget used", self.format_percentage(summary.percent)])

        lines.extend(["", "-" * 100, tabulate(totals, tablefmt="plain", colalign=("left", "right"))])

        if result.per_category:
            counts = status_counts(result.per_category)
            lines.append(
                "Categories: " + ", ".join(f"{counts[status]} {label.lower()}" for status, label in STATUS_LABELS.items())
            )

        alerts = budget_alerts(result)
        if alerts:
            lines.extend(["", "Alerts:"])
            lines.extend(f"  [!] {alert}" for alert in alerts)

        if result.warnings:
            lines.extend(["", "Data quality:"])
            lines.extend(f"  - {warning}" for warning in result.warnings)

        lines.append("=" * 100)
        return "\n".join(lines)

    def generate_json(self, result: ComputationResult) -> str:
        """Serialize ``result.as_dict()`` with Decimals rendered as strings."""
        payload = result.as_dict()
        payload["window"] = result.describe()
        payload["warnings"] = list(result.warnings)
        return json.dumps(payload, indent=2, default=str, ensure_ascii=False)

    def export_csv(self, result: ComputationResult, file_path: Union[str, Path]) -> Path:
        """
        Export per-category results to CSV.

        Raises:
            ReportError: If the file cannot be written
        """
        path = Path(file_path)
        try:
            self.results_to_dataframe(result).to_csv(path, index=False)
        except OSError as e:
            logger.error(f"Failed to export report: {e}")
            raise ReportError("Failed to export report", details={"file_path": str(path)}, original_error=e) from e
        logger.info("Exported %s categories to %s", len(result.per_category), path)
        return path

    def render(self, result: ComputationResult, output_format: Optional[str] = "table") -> str:
        """
        Render a result in the requested format.

        Raises:
            ReportError: For unknown formats
        """
        output_format = (output_format or "table").lower()
        if output_format == "table":
            return self.generate_budget_report(result)
        if output_format == "json":
            return self.generate_json(result)
        if output_format == "csv":
            return self.results_to_dataframe(result).to_csv(index=False)
        raise ReportError("Unknown report format", details={"format": output_format})
