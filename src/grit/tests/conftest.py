"""Shared fixtures: simulated sleeps and settings isolation."""

from __future__ import annotations

import pytest

from grit import engine
from grit.settings import clear_settings_cache


@pytest.fixture
def sleeps(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    """Replace engine sleeps with recorders; returns the list of requested delays (ms)."""
    recorded: list[float] = []

    async def fake_sleep(ms: float) -> None:
        recorded.append(ms)

    def fake_sleep_sync(ms: float) -> None:
        recorded.append(ms)

    monkeypatch.setattr(engine, "_sleep", fake_sleep)
    monkeypatch.setattr(engine, "_sleep_sync", fake_sleep_sync)
    return recorded


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> object:
    """Isolate tests from GRIT_* variables in the environment."""
    monkeypatch.delenv("GRIT_LOGGING", raising=False)
    monkeypatch.delenv("GRIT_LOG_LEVEL", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()
