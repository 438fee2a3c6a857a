"""Collaborator contracts injected into the expense coordinator."""

from __future__ import annotations

from typing import Any, List, Optional, Protocol, Sequence

from .models import Expense


class PersistencePort(Protocol):
    """Durable store for expense records and the category list.

    ``save`` and ``save_categories`` may stage changes; ``commit`` flushes them.
    Read failures raise ``FetchFailed``, write failures raise ``SaveFailed``.
    """

    def fetch_all(self) -> List[Expense]:
        ...

    def save(self, expense: Expense) -> None:
        ...

    def fetch_categories(self) -> Optional[List[str]]:
        ...

    def save_categories(self, categories: Sequence[str]) -> None:
        ...

    def commit(self) -> None:
        ...


class KeyValuePort(Protocol):
    """Flat key to bytes store used for the budget map."""

    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


class NetworkPort(Protocol):
    """Fetches a URL and returns the decoded JSON payload.

    Raises ``InvalidURL``, ``DecodingError`` or ``NetworkError``.
    """

    def fetch_json(self, url: str) -> Any:
        ...
