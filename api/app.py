"""Flask REST API exposing the expense coordinator."""

from __future__ import annotations

import atexit
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

from flask import Flask, jsonify, request
from flask_cors import CORS

from expense_core.config import Settings
from expense_core.coordinator import ExpenseCoordinator
from expense_core.exceptions import PersistenceError, RecordNotFoundError, ValidationError
from expense_core.network import HTTPNetworkClient
from expense_core.ports import NetworkPort
from expense_core.storage import JSONExpenseStore, JSONKeyValueStore
from expense_core.validators import parse_decimal


def _money(amount: Decimal) -> str:
    return f"{amount:.2f}"


def create_app(
    data_dir: Optional[Path] = None,
    *,
    settings: Optional[Settings] = None,
    network: Optional[NetworkPort] = None,
) -> Flask:
    app = Flask(__name__)
    settings = settings or Settings.from_env()

    if settings.is_dev:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": settings.allowed_origins}}, supports_credentials=True)
    else:
        CORS(app)

    root = Path(data_dir or settings.data_dir)
    coordinator = ExpenseCoordinator(
        JSONExpenseStore(root),
        JSONKeyValueStore(root / "settings"),
        network or HTTPNetworkClient(timeout=settings.remote_timeout),
        remote_url=settings.remote_url,
        refresh_on_start=settings.refresh_on_start,
    )
    app.extensions["expense_coordinator"] = coordinator
    atexit.register(coordinator.close)

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str):
        app.logger.error("%s: %s", message, exc)
        return jsonify({"error": message, "details": str(exc)}), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found")

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(exc: PersistenceError):
        return _handle_error(exc, 500, "Persistence error")

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    @app.get("/expenses")
    def list_expenses():
        expenses = coordinator.expenses
        return _success({
            "items": [expense.to_dict() for expense in expenses],
            "by_category": {
                category: _money(total)
                for category, total in coordinator.expenses_by_category.items()
            },
        })

    @app.post("/expenses")
    def create_expense():
        payload = _json_body()
        expense = coordinator.add_expense(
            payload.get("amount"),
            payload.get("category"),
            payload.get("note"),
            payload.get("date"),
        )
        if expense is None:
            raise ValidationError("Expense requires a finite amount and a non-empty category")
        return _success(expense.to_dict(), 201)

    @app.post("/expenses/reload")
    def reload_expenses():
        coordinator.fetch_expenses()
        return _success({"count": len(coordinator.expenses)})

    @app.get("/categories")
    def list_categories():
        return _success({"items": coordinator.categories})

    @app.post("/categories")
    def create_category():
        payload = _json_body()
        before = len(coordinator.categories)
        coordinator.add_category(payload.get("name"))
        if len(coordinator.categories) == before:
            raise ValidationError("Category name must be a non-empty string")
        return _success({"items": coordinator.categories}, 201)

    @app.delete("/categories/<int:index>")
    def delete_category(index: int):
        coordinator.delete_category(index)
        return _success({}, 204)

    @app.get("/budgets/<category>")
    def get_budget(category: str):
        return _success({
            "category": category,
            "budget": _money(coordinator.get_budget(category)),
            "total": _money(coordinator.total_for_category(category)),
            "remaining": _money(coordinator.remaining_budget(category)),
        })

    @app.put("/budgets/<category>")
    def set_budget(category: str):
        payload = _json_body()
        amount = parse_decimal(payload.get("amount"), "amount")
        coordinator.set_budget(category, amount)
        return _success({"category": category, "budget": _money(coordinator.get_budget(category))})

    @app.get("/summary")
    def summary():
        return _success({"items": [entry.to_dict() for entry in coordinator.summary()]})

    @app.get("/errors")
    def list_errors():
        return _success({
            "items": [
                {
                    "operation": recorded.operation,
                    "error": str(recorded.error),
                    "type": type(recorded.error).__name__,
                    "at": recorded.at.isoformat(),
                }
                for recorded in coordinator.errors
            ]
        })

    return app
