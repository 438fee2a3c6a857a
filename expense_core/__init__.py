"""Core business logic package for the expense tracker."""

from .coordinator import CategorySummary, ExpenseCoordinator, RecordedError
from .events import EventBus
from .exceptions import (
    DecodingError,
    FetchFailed,
    InvalidURL,
    NetworkError,
    PersistenceError,
    RecordNotFoundError,
    RemoteFetchError,
    SaveFailed,
    ValidationError,
)
from .models import Expense, RemoteExpense
from .network import HTTPNetworkClient
from .storage import JSONExpenseStore, JSONKeyValueStore

__all__ = [
    "CategorySummary",
    "ExpenseCoordinator",
    "RecordedError",
    "EventBus",
    "Expense",
    "RemoteExpense",
    "HTTPNetworkClient",
    "JSONExpenseStore",
    "JSONKeyValueStore",
    "DecodingError",
    "FetchFailed",
    "InvalidURL",
    "NetworkError",
    "PersistenceError",
    "RecordNotFoundError",
    "RemoteFetchError",
    "SaveFailed",
    "ValidationError",
]
