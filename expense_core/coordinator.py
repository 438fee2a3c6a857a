"""Expense/budget state coordinator.

Owns the in-memory view of expenses, categories and budgets, keeps the
per-category aggregate consistent after every mutation and mediates between
the durable expense store, the budget key-value store and the remote feed.
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Tuple, Union
from uuid import uuid4

from . import events
from .events import Event, EventBus
from .exceptions import (
    FetchFailed,
    PersistenceError,
    RecordNotFoundError,
    RemoteFetchError,
    ValidationError,
)
from .models import Expense, RemoteExpense
from .network import decode_remote_expenses
from .ports import KeyValuePort, NetworkPort, PersistencePort
from .validators import (
    CATEGORY_MAX_LENGTH,
    NOTE_MAX_LENGTH,
    parse_amount,
    parse_decimal,
    validate_datetime,
    validate_optional_str,
    validate_required_str,
)

__all__ = [
    "BUDGETS_KEY",
    "CategorySummary",
    "DEFAULT_CATEGORIES",
    "DEFAULT_REMOTE_URL",
    "ExpenseCoordinator",
    "RecordedError",
    "UNKNOWN_CATEGORY",
    "decode_budgets",
    "encode_budgets",
]

logger = logging.getLogger(__name__)

BUDGETS_KEY = "budgets"
UNKNOWN_CATEGORY = "Unknown"
DEFAULT_REMOTE_URL = "https://api.example.com/data"
MAX_RECORDED_ERRORS = 100
DEFAULT_CATEGORIES = ("Food", "Transport", "Entertainment", "Utilities", "Rent", "Miscellaneous")

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class RecordedError:
    """A failure the coordinator swallowed and kept for callers to inspect."""

    operation: str
    error: Exception
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class CategorySummary:
    category: str
    total: Decimal
    budget: Decimal
    remaining: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "total": f"{self.total:.2f}",
            "budget": f"{self.budget:.2f}",
            "remaining": f"{self.remaining:.2f}",
        }


def encode_budgets(budgets: Dict[str, Decimal]) -> bytes:
    return json.dumps({category: str(amount) for category, amount in budgets.items()}).encode("utf-8")


def decode_budgets(data: bytes) -> Dict[str, Decimal]:
    try:
        payload = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise FetchFailed("Stored budgets are not valid JSON") from exc
    if not isinstance(payload, dict):
        raise FetchFailed("Stored budgets must be a mapping")
    try:
        return {str(category): parse_decimal(amount, "budget") for category, amount in payload.items()}
    except ValidationError as exc:
        raise FetchFailed(f"Stored budgets contain a bad amount: {exc}") from exc


class ExpenseCoordinator:
    """Single-owner coordinator for expenses, categories and budgets.

    Construction loads persisted expenses, categories and budgets and, when a
    network port is given and ``refresh_on_start`` is set, starts a
    best-effort remote refresh. None of these failures abort construction.
    """

    def __init__(
        self,
        persistence: PersistencePort,
        key_value: KeyValuePort,
        network: Optional[NetworkPort] = None,
        *,
        bus: Optional[EventBus] = None,
        remote_url: str = DEFAULT_REMOTE_URL,
        refresh_on_start: bool = True,
        executor: Optional[Executor] = None,
        default_categories: Iterable[str] = DEFAULT_CATEGORIES,
        max_errors: int = MAX_RECORDED_ERRORS,
    ) -> None:
        self._persistence = persistence
        self._key_value = key_value
        self._network = network
        self._bus = bus or EventBus()
        self._remote_url = remote_url
        self._executor = executor
        self._owns_executor = executor is None

        self._expenses: List[Expense] = []
        self._categories: List[str] = list(default_categories)
        self._budgets: Dict[str, Decimal] = {}
        self._expenses_by_category: Dict[str, Decimal] = {}
        self._pending_saves: List[Expense] = []
        # Oldest entries are dropped once max_errors is reached.
        self._errors: Deque[RecordedError] = deque(maxlen=max_errors)
        self._errors_lock = threading.Lock()

        try:
            self.fetch_expenses()
        except FetchFailed as exc:
            logger.error("Initial expense load failed: %s", exc)
            self._record_error("fetch_expenses", exc)
        self.update_expenses_by_category()
        self._load_categories()
        self._load_budgets()
        if network is not None and refresh_on_start:
            self.refresh_remote()

    # Published state ------------------------------------------------------
    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def expenses(self) -> Tuple[Expense, ...]:
        return tuple(self._expenses)

    @property
    def categories(self) -> List[str]:
        return list(self._categories)

    @property
    def budgets(self) -> Dict[str, Decimal]:
        return dict(self._budgets)

    @property
    def expenses_by_category(self) -> Dict[str, Decimal]:
        return dict(self._expenses_by_category)

    @property
    def pending_saves(self) -> Tuple[Expense, ...]:
        return tuple(self._pending_saves)

    @property
    def errors(self) -> List[RecordedError]:
        with self._errors_lock:
            return list(self._errors)

    def clear_errors(self) -> None:
        with self._errors_lock:
            self._errors.clear()

    def on_budget_changed(self, handler: Callable[[Event], Any]) -> None:
        self._bus.subscribe(events.BUDGET_CHANGED, handler)

    # Expenses -------------------------------------------------------------
    def fetch_expenses(self) -> None:
        """Reload expenses from the store; on failure the prior state is kept.

        Expenses still waiting in ``pending_saves`` are kept after the
        stored ones so an unsaved addition is never lost by a reload.
        """
        try:
            loaded = list(self._persistence.fetch_all())
        except FetchFailed:
            raise
        except PersistenceError as exc:
            raise FetchFailed(f"Unable to load expenses: {exc}") from exc
        stored_ids = {expense.id for expense in loaded}
        loaded.extend(expense for expense in self._pending_saves if expense.id not in stored_ids)
        self._expenses = loaded
        self.update_expenses_by_category()
        logger.info("Loaded %d expense(s)", len(loaded))
        self._bus.publish(events.EXPENSES_CHANGED, {"count": len(loaded)})

    def add_expense(
        self,
        amount: object,
        category: object,
        note: object = None,
        date: object = None,
    ) -> Optional[Expense]:
        """Record a new expense. Invalid input is ignored and ``None`` returned."""
        try:
            expense = Expense(
                id=str(uuid4()),
                amount=parse_amount(amount, "amount"),
                category=validate_required_str(category, "category", CATEGORY_MAX_LENGTH),
                date=datetime.now(timezone.utc) if date is None else validate_datetime(date, "date"),
                note=validate_optional_str(note, "note", NOTE_MAX_LENGTH),
            )
        except ValidationError as exc:
            logger.warning("Ignoring invalid expense: %s", exc)
            return None

        self._expenses.append(expense)
        self.update_expenses_by_category()
        self._pending_saves.append(expense)
        self.flush_pending()
        self._bus.publish(events.EXPENSES_CHANGED, {"count": len(self._expenses), "added": expense.id})
        return expense

    def flush_pending(self) -> bool:
        """Save every pending expense and commit. Returns True when nothing is left pending."""
        if not self._pending_saves:
            return True
        try:
            for expense in self._pending_saves:
                self._persistence.save(expense)
            self._persistence.commit()
        except PersistenceError as exc:
            logger.error("Could not save %d expense(s): %s", len(self._pending_saves), exc)
            self._record_error("save_expenses", exc)
            return False
        self._pending_saves.clear()
        return True

    def update_expenses_by_category(self) -> None:
        totals: Dict[str, Decimal] = {}
        for expense in self._expenses:
            category = expense.category or UNKNOWN_CATEGORY
            totals[category] = totals.get(category, ZERO) + expense.amount
        self._expenses_by_category = totals

    # Categories -----------------------------------------------------------
    def add_category(self, name: object) -> None:
        """Append a category. Duplicate names are kept, matching existing behaviour."""
        try:
            category = validate_required_str(name, "category", CATEGORY_MAX_LENGTH)
        except ValidationError as exc:
            logger.warning("Ignoring invalid category: %s", exc)
            return
        self._categories.append(category)
        self._persist_categories()
        self._bus.publish(events.CATEGORIES_CHANGED, {"added": category})

    def delete_category(self, at: Union[int, Iterable[int]]) -> List[str]:
        """Remove the categories at the given indices and drop their budgets.

        Expenses tagged with a removed category are left untouched.
        """
        indices = sorted({at} if isinstance(at, int) else set(at), reverse=True)
        for index in indices:
            if not 0 <= index < len(self._categories):
                raise RecordNotFoundError(f"No category at index {index}")

        removed = []
        budgets_changed = False
        for index in indices:
            category = self._categories.pop(index)
            removed.append(category)
            if self._budgets.pop(category, None) is not None:
                budgets_changed = True
        removed.reverse()

        self._persist_categories()
        if budgets_changed:
            self._save_budgets()
            self._bus.publish(events.BUDGET_CHANGED, {})
        self._bus.publish(events.CATEGORIES_CHANGED, {"removed": removed})
        return removed

    # Budgets --------------------------------------------------------------
    def set_budget(self, category: str, amount: object) -> None:
        """Set a category's budget. Negative amounts are accepted; non-numeric ones ignored."""
        try:
            value = parse_decimal(amount, "budget")
        except ValidationError as exc:
            logger.warning("Ignoring invalid budget for %s: %s", category, exc)
            return
        self._budgets[category] = value
        self._save_budgets()
        self._bus.publish(events.BUDGET_CHANGED, {})

    def get_budget(self, category: str) -> Decimal:
        return self._budgets.get(category, ZERO)

    def total_for_category(self, category: str) -> Decimal:
        return sum(
            (expense.amount for expense in self._expenses if expense.category == category),
            start=ZERO,
        )

    def remaining_budget(self, category: str) -> Decimal:
        return self.get_budget(category) - self.total_for_category(category)

    def summary(self) -> List[CategorySummary]:
        """Per-category totals in display order, then categories only seen on expenses."""
        names = list(dict.fromkeys(self._categories))
        names.extend(name for name in self._expenses_by_category if name not in names)
        return [
            CategorySummary(
                category=name,
                total=self._expenses_by_category.get(name, ZERO),
                budget=self.get_budget(name),
                remaining=self.get_budget(name) - self._expenses_by_category.get(name, ZERO),
            )
            for name in names
        ]

    # Remote refresh -------------------------------------------------------
    def refresh_remote(self) -> Optional[Future]:
        """Start the diagnostic remote fetch. The result is only logged and published."""
        if self._network is None:
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-refresh")
        return self._executor.submit(self._run_remote_refresh)

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    def _run_remote_refresh(self) -> Optional[List[RemoteExpense]]:
        try:
            records = decode_remote_expenses(self._network.fetch_json(self._remote_url))
        except RemoteFetchError as exc:
            logger.warning("Error fetching data from %s: %s", self._remote_url, exc)
            self._record_error("refresh_remote", exc)
            return None
        total = sum((record.amount for record in records), start=Decimal("0"))
        logger.info("Fetched %d remote record(s) totalling %s", len(records), total)
        self._bus.publish(events.REMOTE_REFRESHED, {"count": len(records), "total": str(total)})
        return records

    # Internal helpers -----------------------------------------------------
    def _load_categories(self) -> None:
        try:
            stored = self._persistence.fetch_categories()
        except PersistenceError as exc:
            logger.warning("Failed to load categories, using defaults: %s", exc)
            self._record_error("load_categories", exc)
            return
        if stored is not None:
            self._categories = list(stored)

    def _persist_categories(self) -> None:
        try:
            self._persistence.save_categories(self._categories)
            self._persistence.commit()
        except PersistenceError as exc:
            logger.error("Could not save categories: %s", exc)
            self._record_error("save_categories", exc)

    def _load_budgets(self) -> None:
        try:
            data = self._key_value.get(BUDGETS_KEY)
            if data is None:
                return
            self._budgets = decode_budgets(data)
        except PersistenceError as exc:
            logger.warning("Failed to load budgets: %s", exc)
            self._record_error("load_budgets", exc)
            return
        logger.info("Loaded budgets for %d categories", len(self._budgets))

    def _save_budgets(self) -> None:
        try:
            self._key_value.set(BUDGETS_KEY, encode_budgets(self._budgets))
        except PersistenceError as exc:
            logger.error("Failed to save budgets: %s", exc)
            self._record_error("save_budgets", exc)
            return
        logger.debug("Budgets saved")

    def _record_error(self, operation: str, error: Exception) -> None:
        with self._errors_lock:
            self._errors.append(RecordedError(operation=operation, error=error))
        self._bus.publish(events.ERROR_RECORDED, {"operation": operation, "error": str(error)})
