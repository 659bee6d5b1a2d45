"""
Main module for the household budget engine CLI.

Commands:
1. init-db   - create the tables that feed the engine
2. period    - activate a household budget for a month
3. override  - set or clear a category override for a month
4. report    - compute and print a monthly or multi-month budget report
"""

import argparse
import logging
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from budgeting import BudgetEngine
from config_manager import load_config
from database_ops import DatabaseManager
from exceptions import HouseholdBudgetError
from models import HouseholdContext
from periods import Window, format_month_key, parse_month_key
from report_generator import ReportGenerator
from utils import ensure_data_dir, resolve_connection_string, resolve_log_path

# Configure module-level logger
logger = logging.getLogger(__name__)


def setup_logging(config: dict) -> None:
    """
    Configure logging based on config settings.

    Args:
        config: Configuration dictionary with logging settings
    """
    log_config = config.get("logging", {}) or {}
    level_name = str(log_config.get("level", "INFO")).upper()
    log_level = getattr(logging, level_name, None)
    if not isinstance(log_level, int):
        log_level = logging.INFO
    log_format = log_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = log_config.get("file")

    # stdout carries report output (json/csv); log records go to stderr
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        try:
            log_path = resolve_log_path(log_file)
        except OSError as exc:
            raise RuntimeError(f"Unable to prepare log file path '{log_file}': {exc}") from exc
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=log_level,
        format=log_format,
        handlers=handlers,
        force=True
    )


def parse_amount(value: str) -> Decimal:
    """Argparse type for monetary amounts."""
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid amount: {value!r}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        description="Household budget computation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Monthly report with rollover
  python main.py report --household HOUSEHOLD_ID --month 2024-03

  # Three trailing months ending in March, projected from defaults
  python main.py report --household HOUSEHOLD_ID --anchor 2024-03 --months 3

  # Explicit zero budget for a category in March
  python main.py override set --household HOUSEHOLD_ID --month 2024-03 --category CATEGORY_ID --amount 0
        """
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init-db", help="Create database tables")

    # Period command
    period_parser = subparsers.add_parser("period", help="Manage budget periods")
    period_subparsers = period_parser.add_subparsers(dest="period_action", help="Period actions")
    period_create = period_subparsers.add_parser("create", help="Activate a budget for a month")
    period_create.add_argument("--household", required=True, help="Household ID")
    period_create.add_argument("--month", required=True, help="Month (YYYY-MM)")
    period_list = period_subparsers.add_parser("list", help="List months with a budget")
    period_list.add_argument("--household", required=True, help="Household ID")

    # Override command
    override_parser = subparsers.add_parser("override", help="Manage category overrides")
    override_subparsers = override_parser.add_subparsers(dest="override_action", help="Override actions")
    override_set = override_subparsers.add_parser("set", help="Set a category override for a month")
    override_set.add_argument("--household", required=True, help="Household ID")
    override_set.add_argument("--month", required=True, help="Month (YYYY-MM)")
    override_set.add_argument("--category", required=True, help="Category ID")
    override_set.add_argument("--amount", required=True, type=parse_amount, help="Override amount (0 is an explicit zero budget)")
    override_clear = override_subparsers.add_parser("clear", help="Remove a category override")
    override_clear.add_argument("--household", required=True, help="Household ID")
    override_clear.add_argument("--month", required=True, help="Month (YYYY-MM)")
    override_clear.add_argument("--category", required=True, help="Category ID")

    # Report command
    report_parser = subparsers.add_parser("report", help="Compute a budget report")
    report_parser.add_argument("--household", required=True, help="Household ID")
    report_parser.add_argument("--member", help="Member ID requesting the report")
    window_group = report_parser.add_mutually_exclusive_group(required=True)
    window_group.add_argument("--month", help="Single month (YYYY-MM)")
    window_group.add_argument("--anchor", help="Last month of a multi-month range (YYYY-MM)")
    report_parser.add_argument(
        "--months",
        type=int,
        default=3,
        help="Number of trailing months for --anchor (default: 3)"
    )
    report_parser.add_argument(
        "--format",
        dest="output_format",
        choices=["table", "json", "csv"],
        default="table",
        help="Output format (default: table)"
    )
    report_parser.add_argument("--export", metavar="FILE", help="Export per-category results to CSV")
    report_parser.add_argument("--no-rollover", action="store_true", help="Do not carry last month's balance")

    return parser


def build_window(args: argparse.Namespace) -> Window:
    """Build the reporting window from report arguments."""
    if args.month:
        return Window.single_month(args.month)
    return Window.trailing(args.anchor, args.months)


def handle_period_command(args: argparse.Namespace, db_manager: DatabaseManager) -> None:
    """Handle budget period commands."""
    if args.period_action == "create":
        period = db_manager.get_or_create_budget_period(args.household, args.month)
        print(f"Budget active for {format_month_key(period.month)} (period {period.id})")
    elif args.period_action == "list":
        months = db_manager.get_budget_months(args.household)
        if not months:
            print("No budget periods found.")
        for month in months:
            print(format_month_key(month))
    else:
        print("Invalid period action", file=sys.stderr)
        sys.exit(1)


def handle_override_command(args: argparse.Namespace, db_manager: DatabaseManager) -> None:
    """Handle category override commands."""
    if args.override_action == "set":
        db_manager.upsert_budget_line(args.household, args.month, args.category, args.amount)
        print(f"Override for '{args.category}' in {format_month_key(parse_month_key(args.month))}: {args.amount}")
    elif args.override_action == "clear":
        if db_manager.clear_budget_line(args.household, args.month, args.category):
            print(f"Override cleared for '{args.category}'")
        else:
            print(f"No override stored for '{args.category}'")
    else:
        print("Invalid override action", file=sys.stderr)
        sys.exit(1)


def handle_report_command(args: argparse.Namespace, config: dict, db_manager: DatabaseManager) -> None:
    """Compute and print a budget report."""
    window = build_window(args)
    context = HouseholdContext(household_id=args.household, member_id=args.member)
    engine = BudgetEngine.from_config(config)

    snapshot = db_manager.load_snapshot(context, window)
    result = engine.compute(snapshot, window, apply_rollover=False if args.no_rollover else None)

    generator = ReportGenerator(currency_symbol=config.get("report", {}).get("currency_symbol", "€"))
    print(generator.render(result, args.output_format))
    if args.export:
        path = generator.export_csv(result, args.export)
        print(f"Exported report to {path}")


def main():
    """Main entry point for the application."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = load_config(Path(args.config))
        ensure_data_dir(config)
    except (HouseholdBudgetError, OSError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config)

    db_manager = None
    try:
        db_manager = DatabaseManager(resolve_connection_string(config))
        db_manager.create_tables()

        if args.command == "init-db":
            print("Database ready.")
        elif args.command == "period":
            handle_period_command(args, db_manager)
        elif args.command == "override":
            handle_override_command(args, db_manager)
        elif args.command == "report":
            handle_report_command(args, config, db_manager)
        else:
            parser.print_help()
            sys.exit(1)
    except HouseholdBudgetError as e:
        logger.error(f"{args.command} command failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        if db_manager is not None:
            db_manager.close()


if __name__ == "__main__":
    main()
