from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from expense_core.coordinator import ExpenseCoordinator
from expense_core.exceptions import FetchFailed, SaveFailed, ValidationError
from expense_core.models import Expense
from expense_core.storage import JSONExpenseStore, JSONKeyValueStore


def _expense(expense_id: str = "e1", amount: str = "12.30") -> Expense:
    return Expense(
        id=expense_id,
        amount=Decimal(amount),
        category="Food",
        date=datetime(2025, 2, 3, 4, 5, 6, tzinfo=timezone.utc),
        note="market",
    )


def test_missing_files_load_as_empty(tmp_path):
    store = JSONExpenseStore(tmp_path / "data")

    assert store.fetch_all() == []
    assert store.fetch_categories() is None


def test_save_is_staged_until_commit(tmp_path):
    store = JSONExpenseStore(tmp_path)
    store.save(_expense())

    assert store.fetch_all() == []
    store.commit()

    assert store.fetch_all() == [_expense()]
    written = json.loads((tmp_path / "expenses.json").read_text(encoding="utf-8"))
    assert written == [
        {
            "id": "e1",
            "amount": "12.30",
            "category": "Food",
            "date": "2025-02-03T04:05:06Z",
            "note": "market",
        }
    ]


def test_commit_merges_with_existing_records(tmp_path):
    store = JSONExpenseStore(tmp_path)
    store.save(_expense("e1"))
    store.commit()

    other = JSONExpenseStore(tmp_path)
    other.save(_expense("e2", "1.00"))
    other.commit()

    assert [expense.id for expense in store.fetch_all()] == ["e1", "e2"]


def test_corrupted_expenses_raise_fetch_failed(tmp_path):
    (tmp_path / "expenses.json").write_text("{broken", encoding="utf-8")
    store = JSONExpenseStore(tmp_path)

    with pytest.raises(FetchFailed):
        store.fetch_all()


def test_malformed_record_raises_fetch_failed(tmp_path):
    (tmp_path / "expenses.json").write_text(json.dumps([{"id": "x"}]), encoding="utf-8")
    with pytest.raises(FetchFailed):
        JSONExpenseStore(tmp_path).fetch_all()


def test_failed_commit_keeps_staged_changes(tmp_path):
    path = tmp_path / "expenses.json"
    path.write_text("not json", encoding="utf-8")
    store = JSONExpenseStore(tmp_path)
    store.save(_expense())

    with pytest.raises(SaveFailed):
        store.commit()

    path.write_text("[]", encoding="utf-8")
    store.commit()
    assert store.fetch_all() == [_expense()]


def test_categories_round_trip(tmp_path):
    store = JSONExpenseStore(tmp_path)
    store.save_categories(["Food", "Travel", "Travel"])
    store.commit()

    assert JSONExpenseStore(tmp_path).fetch_categories() == ["Food", "Travel", "Travel"]


def test_key_value_store_round_trip(tmp_path):
    store = JSONKeyValueStore(tmp_path / "settings")

    assert store.get("budgets") is None
    store.set("budgets", b'{"Food": "10"}')
    assert store.get("budgets") == b'{"Food": "10"}'
    assert not list((tmp_path / "settings").glob("*.tmp"))


@pytest.mark.parametrize("key", ["", "../escape", "a/b", ".hidden"])
def test_key_value_store_rejects_unsafe_keys(tmp_path, key):
    with pytest.raises(ValidationError):
        JSONKeyValueStore(tmp_path).set(key, b"x")


def test_coordinator_state_survives_restart(tmp_path):
    def open_coordinator():
        return ExpenseCoordinator(JSONExpenseStore(tmp_path), JSONKeyValueStore(tmp_path / "settings"))

    first = open_coordinator()
    first.add_expense("50", "Food", "groceries")
    first.add_expense("20", "Food")
    first.add_category("Travel")
    first.set_budget("Food", "100")

    second = open_coordinator()

    assert len(second.expenses) == 2
    assert second.categories[-1] == "Travel"
    assert second.remaining_budget("Food") == Decimal("30.00")
