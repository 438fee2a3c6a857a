"""Console interface for the expense tracker."""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from expense_core.config import Settings, configure_logging
from expense_core.coordinator import ExpenseCoordinator
from expense_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from expense_core.models import Expense, isoformat_utc
from expense_core.network import HTTPNetworkClient
from expense_core.storage import JSONExpenseStore, JSONKeyValueStore
from expense_core.validators import validate_datetime


def _parse_date(value: str) -> str:
    try:
        validate_datetime(value, "date")
    except ValidationError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid date '{value}'. Expected YYYY-MM-DD or an ISO 8601 datetime."
        ) from exc
    return value


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if not amount.is_finite():
        raise argparse.ArgumentTypeError("Amount must be a finite value")
    return value


def _load_coordinator(args: argparse.Namespace, settings: Settings) -> ExpenseCoordinator:
    data_dir = args.data_dir or settings.data_dir
    network = HTTPNetworkClient(timeout=settings.remote_timeout) if args.refresh_remote else None
    return ExpenseCoordinator(
        JSONExpenseStore(data_dir),
        JSONKeyValueStore(data_dir / "settings"),
        network,
        remote_url=settings.remote_url,
    )


def _format_expense(expense: Expense) -> str:
    return (
        f"[{expense.id}] {isoformat_utc(expense.date)} {expense.amount:.2f}\n"
        f"  Category: {expense.category or '-'}\n"
        f"  Note: {expense.note or '-'}\n"
    )


def handle_expense(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> int:
    if args.command == "add":
        expense = coordinator.add_expense(args.amount, args.category, args.note, args.date)
        if expense is None:
            raise ValidationError("Expense requires a finite amount and a non-empty category")
        print("Expense added:\n" + _format_expense(expense))
        if coordinator.pending_saves:
            print("Warning: expense could not be saved yet.", file=sys.stderr)
            return 1
    elif args.command == "list":
        expenses = [
            expense
            for expense in coordinator.expenses
            if args.category is None or expense.category == args.category
        ]
        if not expenses:
            print("No expenses found.")
            return 0
        total = sum((expense.amount for expense in expenses), start=Decimal("0.00"))
        print(f"Found {len(expenses)} expenses (total {total:.2f}):")
        for expense in expenses:
            print(_format_expense(expense))
    return 0


def handle_category(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> int:
    if args.command == "add":
        before = len(coordinator.categories)
        coordinator.add_category(args.name)
        if len(coordinator.categories) == before:
            raise ValidationError("Category name must be a non-empty string")
        print(f"Category {args.name} added.")
    elif args.command == "list":
        for index, name in enumerate(coordinator.categories):
            print(f"{index}: {name}")
    elif args.command == "delete":
        removed = coordinator.delete_category(args.index)
        print(f"Category {', '.join(removed)} deleted.")
    return 0


def handle_budget(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> int:
    if args.command == "set":
        coordinator.set_budget(args.category, args.amount)
        print(f"Budget for {args.category} set to {coordinator.get_budget(args.category):.2f}")
    elif args.command == "get":
        print(
            f"{args.category}: budget {coordinator.get_budget(args.category):.2f}, "
            f"spent {coordinator.total_for_category(args.category):.2f}, "
            f"remaining {coordinator.remaining_budget(args.category):.2f}"
        )
    return 0


def handle_summary(args: argparse.Namespace, coordinator: ExpenseCoordinator) -> int:
    for entry in coordinator.summary():
        flag = " (over budget)" if entry.remaining < 0 else ""
        print(
            f"{entry.category}: spent {entry.total:.2f} of {entry.budget:.2f}, "
            f"remaining {entry.remaining:.2f}{flag}"
        )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Expense Tracker CLI")
    parser.add_argument(
        "--data-dir",
        default=None,
        type=Path,
        help="Directory to store JSON data (default: $EXPENSE_TRACKER_DATA_DIR or ./data)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $EXPENSE_TRACKER_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--refresh-remote",
        action="store_true",
        help="Fetch the remote diagnostic feed on startup",
    )

    subparsers = parser.add_subparsers(dest="entity", required=True)

    expense_parser = subparsers.add_parser("expense", help="Manage expenses")
    expense_sub = expense_parser.add_subparsers(dest="command", required=True)

    expense_add = expense_sub.add_parser("add", help="Add a new expense")
    expense_add.add_argument("amount", type=_parse_amount)
    expense_add.add_argument("category")
    expense_add.add_argument("--note")
    expense_add.add_argument("--date", type=_parse_date)

    expense_list = expense_sub.add_parser("list", help="List expenses")
    expense_list.add_argument("--category")

    category_parser = subparsers.add_parser("category", help="Manage categories")
    category_sub = category_parser.add_subparsers(dest="command", required=True)

    category_add = category_sub.add_parser("add", help="Add a category")
    category_add.add_argument("name")

    category_sub.add_parser("list", help="List categories with their indices")

    category_delete = category_sub.add_parser("delete", help="Delete the category at an index")
    category_delete.add_argument("index", type=int)

    budget_parser = subparsers.add_parser("budget", help="Manage budgets")
    budget_sub = budget_parser.add_subparsers(dest="command", required=True)

    budget_set = budget_sub.add_parser("set", help="Set a category budget")
    budget_set.add_argument("category")
    budget_set.add_argument("amount", type=_parse_amount)

    budget_get = budget_sub.add_parser("get", help="Show budget and remaining amount")
    budget_get.add_argument("category")

    subparsers.add_parser("summary", help="Show totals and remaining budget per category")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(args.log_level or settings.log_level)

    handlers = {
        "expense": handle_expense,
        "category": handle_category,
        "budget": handle_budget,
        "summary": handle_summary,
    }
    coordinator = _load_coordinator(args, settings)
    try:
        return handlers[args.entity](args, coordinator)
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except RecordNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Storage error: {exc}", file=sys.stderr)
        return 1
    finally:
        coordinator.close()


if __name__ == "__main__":
    raise SystemExit(main())
