"""File-backed persistence adapters for the expense coordinator."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import FetchFailed, SaveFailed, ValidationError
from .models import Expense

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,64}$")


def _read_json(path: Path) -> Any:
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise FetchFailed(f"Corrupted JSON data in {path}") from exc
    except OSError as exc:
        raise FetchFailed(f"Unable to read from {path}") from exc


def _write_atomic(path: Path, data: bytes) -> None:
    temp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        with temp_path.open("wb") as handle:
            handle.write(data)
            handle.flush()
        # Use replace for atomic move on POSIX; ensures crash-safe persistence.
        temp_path.replace(path)
    except OSError as exc:
        raise SaveFailed(f"Unable to write to {path}") from exc


def _write_json(path: Path, payload: Any) -> None:
    _write_atomic(path, json.dumps(payload, indent=2).encode("utf-8"))


class JSONExpenseStore:
    """Expense and category storage in JSON files with staged writes.

    ``save`` and ``save_categories`` only stage changes; nothing reaches disk
    until ``commit`` succeeds. A failed commit keeps the staged changes so a
    later commit can retry them.
    """

    def __init__(
        self,
        base_path: Path,
        expenses_resource: str = "expenses.json",
        categories_resource: str = "categories.json",
    ) -> None:
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)
        self._expenses_path = self._base_path / expenses_resource
        self._categories_path = self._base_path / categories_resource
        self._pending: Dict[str, Expense] = {}
        self._pending_categories: Optional[List[str]] = None

    def fetch_all(self) -> List[Expense]:
        payload = _read_json(self._expenses_path)
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise FetchFailed(f"Expected list payload in {self._expenses_path}")
        try:
            return [Expense.from_dict(record) for record in payload]
        except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
            raise FetchFailed(f"Malformed expense record in {self._expenses_path}") from exc

    def save(self, expense: Expense) -> None:
        self._pending[expense.id] = expense

    def fetch_categories(self) -> Optional[List[str]]:
        payload = _read_json(self._categories_path)
        if payload is None:
            return None
        if not isinstance(payload, list) or not all(isinstance(item, str) for item in payload):
            raise FetchFailed(f"Expected list of strings in {self._categories_path}")
        return payload

    def save_categories(self, categories: Sequence[str]) -> None:
        self._pending_categories = list(categories)

    def commit(self) -> None:
        if self._pending:
            try:
                records = {expense.id: expense for expense in self.fetch_all()}
            except FetchFailed as exc:
                raise SaveFailed(f"Unable to merge into {self._expenses_path}") from exc
            records.update(self._pending)
            _write_json(self._expenses_path, [expense.to_dict() for expense in records.values()])
            logger.debug("Committed %d expense(s) to %s", len(self._pending), self._expenses_path)
            self._pending.clear()
        if self._pending_categories is not None:
            _write_json(self._categories_path, self._pending_categories)
            self._pending_categories = None

    @property
    def base_path(self) -> Path:
        return self._base_path


class JSONKeyValueStore:
    """Stores each key's raw bytes in its own file under ``base_path``."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            raise FetchFailed(f"Unable to read from {path}") from exc

    def set(self, key: str, value: bytes) -> None:
        _write_atomic(self._path_for(key), value)

    def _path_for(self, key: str) -> Path:
        if not KEY_PATTERN.fullmatch(key) or key.startswith("."):
            raise ValidationError(f"Invalid storage key: {key!r}")
        return self._base_path / f"{key}.bin"

    @property
    def base_path(self) -> Path:
        return self._base_path
