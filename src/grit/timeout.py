"""Timeout races for single attempts.

An attempt under a timeout policy races three things: the operation, a
timer, and an optional CancelSignal. The first to settle decides the
attempt's outcome. The operation is never cancelled or interrupted when it
loses; it is abandoned and left to finish on its own.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import logging
import threading
from collections.abc import Mapping
from concurrent.futures import Future, InvalidStateError
from concurrent.futures import wait as wait_futures
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from .delay import Millis
from .errors import GritError, GritTimeoutError
from .signal import CancelSignal

T = TypeVar("T")

logger = logging.getLogger("grit.timeout")


class TimeoutConfig(BaseModel):
    """Per-attempt timeout.

    Attributes:
        timeout: Milliseconds to wait for each attempt (> 0, finite)
        message: Custom message for the raised GritTimeoutError
        signal: External signal that aborts the attempt being awaited
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    timeout: Millis
    message: str | None = None
    signal: CancelSignal | None = None

    @property
    def error_message(self) -> str:
        return self.message or f"Operation timed out after {self.timeout:g} milliseconds"

    def error(self) -> GritTimeoutError:
        return GritTimeoutError(self.error_message, self.timeout)


TimeoutInput = int | float | Mapping[str, object] | TimeoutConfig


def coerce_timeout(config: TimeoutInput) -> TimeoutConfig:
    """Build a validated TimeoutConfig from a number, mapping, or TimeoutConfig.

    Raises:
        GritError: Unknown shape or invalid values
    """
    if isinstance(config, TimeoutConfig):
        return config
    try:
        if isinstance(config, (int, float)) and not isinstance(config, bool):
            return TimeoutConfig(timeout=config)
        if isinstance(config, Mapping):
            return TimeoutConfig.model_validate(dict(config))
    except ValidationError as e:
        raise GritError.from_validation(e, context="timeout config") from None
    raise GritError(f"Invalid timeout config: {config!r}")


def _log_abandoned(fut: asyncio.Future[object]) -> None:
    """Retrieve the outcome of an abandoned attempt so it is never reported as unhandled."""
    if fut.cancelled():
        return
    if (exc := fut.exception()) is not None:
        logger.debug(f"Abandoned attempt failed after timeout: {exc!r}")


# ─────────────────────────────────────────────────────────────────────────────
# Async race
# ─────────────────────────────────────────────────────────────────────────────

def _settle(fut: asyncio.Future[BaseException], reason: BaseException) -> None:
    if not fut.done():
        fut.set_result(reason)


async def race_timeout(operation: Callable[[], Awaitable[T] | T], config: TimeoutConfig) -> T:
    """Await operation() unless the timer or the signal fires first.

    Raises:
        GritTimeoutError: Timer elapsed first
        BaseException: The signal's abort reason, if it fired first or was
            already aborted (in which case operation is never called)
    """
    signal = config.signal
    if signal is not None and (reason := signal.reason) is not None:
        raise reason

    result = operation()
    if not inspect.isawaitable(result):
        return result

    loop = asyncio.get_running_loop()
    task: asyncio.Future[T] = asyncio.ensure_future(result)
    aborted: asyncio.Future[BaseException] = loop.create_future()
    remove = signal.add_listener(lambda r: loop.call_soon_threadsafe(_settle, aborted, r)) if signal else None
    try:
        done, _ = await asyncio.wait(
            {task, aborted}, timeout=config.timeout / 1000, return_when=asyncio.FIRST_COMPLETED,
        )
    finally:
        if remove is not None:
            remove()
        if not aborted.done():
            aborted.cancel()
        if not task.done():
            task.add_done_callback(_log_abandoned)

    if task in done:
        return task.result()
    if aborted in done:
        raise aborted.result()
    raise config.error()


# ─────────────────────────────────────────────────────────────────────────────
# Sync race (operation runs on its own daemon thread)
# ─────────────────────────────────────────────────────────────────────────────

def _reject(dst: Future[T], reason: BaseException) -> bool:
    try:
        dst.set_exception(reason)
    except InvalidStateError:
        return False  # Already settled
    return True


def _run_attempt(operation: Callable[[], T], ctx: contextvars.Context, outcome: Future[T]) -> None:
    try:
        result = ctx.run(operation)
    except BaseException as exc:
        if not _reject(outcome, exc):
            logger.debug(f"Abandoned attempt failed after timeout: {exc!r}")
        return
    try:
        outcome.set_result(result)
    except InvalidStateError:
        pass  # Timer or signal won


def race_timeout_sync(operation: Callable[[], T], config: TimeoutConfig) -> T:
    """Blocking counterpart of race_timeout.

    Each attempt gets a dedicated daemon thread, so an attempt that never
    returns cannot hold up attempts of other runs. The caller stops waiting
    when the timer or signal wins; the thread is left to finish.
    """
    signal = config.signal
    if signal is not None and (reason := signal.reason) is not None:
        raise reason

    outcome: Future[T] = Future()
    thread = threading.Thread(
        target=_run_attempt,
        args=(operation, contextvars.copy_context(), outcome),
        name="grit-attempt",
        daemon=True,
    )
    remove = signal.add_listener(lambda r: _reject(outcome, r)) if signal else None
    thread.start()
    try:
        wait_futures([outcome], timeout=config.timeout / 1000)
    finally:
        if remove is not None:
            remove()
    _reject(outcome, config.error())
    return outcome.result()
