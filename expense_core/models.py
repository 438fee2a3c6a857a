"""Data models for the expense tracker domain."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional

__all__ = ["Expense", "RemoteExpense", "isoformat_utc", "parse_datetime"]


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO 8601 string with trailing Z for UTC-aware datetimes."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    iso = dt.isoformat(timespec="seconds")
    # datetime.isoformat renders +00:00 for UTC; replace with the shorter Z form.
    return iso.replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse ISO 8601 datetime strings with optional trailing Z into UTC-aware datetime."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        # Treat naive datetimes as UTC to avoid accidental timezone drift.
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Expense:
    """A single recorded expense. Never edited once created."""

    id: str
    amount: Decimal
    category: Optional[str]
    date: datetime
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the expense to JSON-friendly natives."""
        return {
            "id": self.id,
            "amount": f"{self.amount:.2f}",
            "category": self.category,
            "date": isoformat_utc(self.date),
            "note": self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Expense":
        """Hydrate an Expense from JSON-native data."""
        return cls(
            id=data["id"],
            amount=Decimal(str(data["amount"])),
            category=data.get("category"),
            date=parse_datetime(data["date"]),
            note=data.get("note"),
        )


@dataclass(frozen=True)
class RemoteExpense:
    """A record of the remote diagnostic feed."""

    amount: Decimal
    category: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RemoteExpense":
        return cls(amount=Decimal(str(data["amount"])), category=str(data["category"]))
