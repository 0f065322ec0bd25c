"""Tests for CancelSignal, settings, and error formatting."""

from __future__ import annotations

import logging

import pytest

from grit import AbortError, CancelSignal, GritError, configure_logging, get_settings
from grit.settings import clear_settings_cache


class TestCancelSignal:
    def test_initial_state(self) -> None:
        sig = CancelSignal()
        assert not sig.aborted
        assert sig.reason is None

    def test_default_reason(self) -> None:
        sig = CancelSignal()
        sig.abort()
        assert sig.aborted
        assert isinstance(sig.reason, AbortError)

    def test_first_abort_wins(self) -> None:
        sig = CancelSignal()
        first = ValueError("first")
        sig.abort(first)
        sig.abort(ValueError("second"))
        assert sig.reason is first

    def test_listeners_notified_once(self) -> None:
        sig = CancelSignal()
        seen: list[BaseException] = []
        sig.add_listener(seen.append)
        sig.abort()
        sig.abort()
        assert len(seen) == 1

    def test_late_listener_fires_immediately(self) -> None:
        sig = CancelSignal()
        sig.abort()
        seen: list[BaseException] = []
        sig.add_listener(seen.append)
        assert seen == [sig.reason]

    def test_removed_listener_not_called(self) -> None:
        sig = CancelSignal()
        seen: list[BaseException] = []
        remove = sig.add_listener(seen.append)
        remove()
        remove()
        sig.abort()
        assert seen == []

    def test_reason_must_be_exception(self) -> None:
        with pytest.raises(TypeError):
            CancelSignal().abort("stop")  # type: ignore[arg-type]


class TestSettings:
    def test_defaults(self) -> None:
        settings = get_settings()
        assert settings.logging is False
        assert settings.log_level == "INFO"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GRIT_LOG_LEVEL", "debug")
        clear_settings_cache()
        assert get_settings().log_level == "DEBUG"

    def test_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_configure_logging(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GRIT_LOG_LEVEL", "WARNING")
        clear_settings_cache()
        log = configure_logging()
        assert log.name == "grit"
        assert log.level == logging.WARNING
        assert configure_logging(logging.DEBUG).level == logging.DEBUG
        log.setLevel(logging.NOTSET)


class TestErrors:
    def test_validation_message_lists_fields(self) -> None:
        from grit import retry
        with pytest.raises(GritError) as info:
            retry(-1).build()
        assert str(info.value).startswith("Invalid retry config: retry_count:")

    def test_config_error_is_not_timeout(self) -> None:
        assert not issubclass(GritError, TimeoutError)
