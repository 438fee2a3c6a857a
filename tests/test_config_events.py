from __future__ import annotations

from pathlib import Path

import pytest

from expense_core.config import Settings, configure_logging
from expense_core.coordinator import DEFAULT_REMOTE_URL
from expense_core.events import BUDGET_CHANGED, EventBus
from expense_core.exceptions import ValidationError


def test_settings_defaults():
    settings = Settings.from_env({})

    assert settings.data_dir == Path("data")
    assert settings.remote_url == DEFAULT_REMOTE_URL
    assert settings.remote_timeout == 10.0
    assert settings.refresh_on_start is True
    assert settings.is_dev is False
    assert settings.allowed_origins == []


def test_settings_from_environment():
    settings = Settings.from_env(
        {
            "EXPENSE_TRACKER_DATA_DIR": "/tmp/expenses",
            "EXPENSE_TRACKER_REMOTE_URL": "https://feed.example.com",
            "EXPENSE_TRACKER_REMOTE_TIMEOUT": "2.5",
            "EXPENSE_TRACKER_REMOTE_REFRESH": "off",
            "EXPENSE_TRACKER_LOG_LEVEL": "debug",
            "EXPENSE_TRACKER_ENV": "Development",
            "EXPENSE_TRACKER_ALLOWED_ORIGINS": "https://a.example, ,https://b.example",
        }
    )

    assert settings.data_dir == Path("/tmp/expenses")
    assert settings.remote_timeout == 2.5
    assert settings.refresh_on_start is False
    assert settings.log_level == "DEBUG"
    assert settings.is_dev is True
    assert settings.allowed_origins == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize("timeout", ["soon", "0", "-1"])
def test_settings_reject_bad_timeout(timeout):
    with pytest.raises(ValidationError):
        Settings.from_env({"EXPENSE_TRACKER_REMOTE_TIMEOUT": timeout})


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValidationError):
        configure_logging("LOUD")


def test_event_bus_subscribe_publish_unsubscribe():
    bus = EventBus()
    received = []

    def handler(event):
        received.append((event.name, event.payload))
        return "ok"

    bus.subscribe(BUDGET_CHANGED, handler)
    assert bus.publish(BUDGET_CHANGED, {"category": "Food"}) == ["ok"]
    bus.unsubscribe(BUDGET_CHANGED, handler)
    assert bus.publish(BUDGET_CHANGED) == []

    assert received == [(BUDGET_CHANGED, {"category": "Food"})]


def test_failing_listener_does_not_block_others():
    bus = EventBus()
    calls = []

    def broken(event):
        raise RuntimeError("listener bug")

    bus.subscribe(BUDGET_CHANGED, broken)
    bus.subscribe(BUDGET_CHANGED, lambda event: calls.append(event.name))

    bus.publish(BUDGET_CHANGED)

    assert calls == [BUDGET_CHANGED]
