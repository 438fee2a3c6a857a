"""Shared fixtures and in-memory port fakes for the expense tracker tests."""

from __future__ import annotations

from concurrent.futures import Executor, Future
from typing import Any, Dict, List, Optional, Sequence

import pytest

from expense_core.coordinator import ExpenseCoordinator
from expense_core.exceptions import FetchFailed, SaveFailed
from expense_core.models import Expense


class MemoryPersistence:
    """PersistencePort fake; flip the ``fail_*`` flags to simulate store errors."""

    def __init__(self, expenses: Optional[List[Expense]] = None, categories: Optional[List[str]] = None):
        self.stored: Dict[str, Expense] = {expense.id: expense for expense in expenses or []}
        self.stored_categories = categories
        self.staged: Dict[str, Expense] = {}
        self.staged_categories: Optional[List[str]] = None
        self.fail_fetch = False
        self.fail_commit = False
        self.commits = 0

    def fetch_all(self) -> List[Expense]:
        if self.fail_fetch:
            raise FetchFailed("store offline")
        return list(self.stored.values())

    def save(self, expense: Expense) -> None:
        self.staged[expense.id] = expense

    def fetch_categories(self) -> Optional[List[str]]:
        if self.fail_fetch:
            raise FetchFailed("store offline")
        return None if self.stored_categories is None else list(self.stored_categories)

    def save_categories(self, categories: Sequence[str]) -> None:
        self.staged_categories = list(categories)

    def commit(self) -> None:
        if self.fail_commit:
            raise SaveFailed("disk full")
        self.stored.update(self.staged)
        self.staged.clear()
        if self.staged_categories is not None:
            self.stored_categories = self.staged_categories
            self.staged_categories = None
        self.commits += 1


class MemoryKeyValue:
    def __init__(self, data: Optional[Dict[str, bytes]] = None):
        self.data: Dict[str, bytes] = dict(data or {})
        self.fail_set = False

    def get(self, key: str) -> Optional[bytes]:
        return self.data.get(key)

    def set(self, key: str, value: bytes) -> None:
        if self.fail_set:
            raise SaveFailed("preferences locked")
        self.data[key] = value


class StubNetwork:
    def __init__(self, payload: Any = None, error: Optional[Exception] = None):
        self.payload = [] if payload is None else payload
        self.error = error
        self.requested: List[str] = []

    def fetch_json(self, url: str) -> Any:
        self.requested.append(url)
        if self.error is not None:
            raise self.error
        return self.payload


class InlineExecutor(Executor):
    """Runs submitted work immediately on the calling thread."""

    def submit(self, fn, *args, **kwargs):
        future: Future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as exc:
            future.set_exception(exc)
        return future


@pytest.fixture
def persistence() -> MemoryPersistence:
    return MemoryPersistence()


@pytest.fixture
def key_value() -> MemoryKeyValue:
    return MemoryKeyValue()


@pytest.fixture
def coordinator(persistence, key_value) -> ExpenseCoordinator:
    manager = ExpenseCoordinator(persistence, key_value)
    yield manager
    manager.close()
