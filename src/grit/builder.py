"""Fluent retry configuration.

Example:
    >>> from grit import retry
    >>> value = await (
    ...     retry(3)
    ...     .only_errors([ConnectionError])
    ...     .with_delay({"delay": 100, "factor": 2})
    ...     .with_timeout(5_000)
    ...     .run(lambda attempt: fetch(url))
    ... )

Builders are immutable: every chain method returns a new builder, so one
builder can be shared and extended freely. Each run builds a fresh engine,
so calls made through the same builder never share attempt counters.
Options are stored as given; validation happens when a run builds its
engine, and a malformed configuration raises GritError from run() itself.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Generic, ParamSpec, TypeVar

from .delay import DelayInput
from .engine import Grit, Operation, SafeResult
from .policy import ErrorFilter, FallbackFn, RetryHook
from .settings import get_settings
from .timeout import TimeoutInput

T = TypeVar("T")
F = TypeVar("F")
U = TypeVar("U")
P = ParamSpec("P")


@dataclass(frozen=True, slots=True)
class RetryConfig:
    """Raw, unvalidated options gathered by a builder.

    `logging` defaults to the GRIT_LOGGING setting, also when a RetryConfig
    is handed to Grit directly.
    """

    retry_count: int | None = None
    only_errors: tuple[ErrorFilter, ...] = ()
    skip_errors: tuple[ErrorFilter, ...] = ()
    delay: DelayInput | None = None
    timeout: TimeoutInput | None = None
    fallback: FallbackFn | None = None
    logging: bool = field(default_factory=lambda: get_settings().logging)
    on_retry: RetryHook | None = None


class GritBuilder(Generic[F]):
    """Immutable builder of retry options.

    `F` is the fallback's result type; a run yields either the operation's
    value or the fallback's.
    """

    __slots__ = ("_config",)

    def __init__(self, config: RetryConfig) -> None:
        self._config = config

    @classmethod
    def create(cls, retry_count: int) -> GritBuilder[Any]:
        return cls(RetryConfig(retry_count=retry_count))

    @property
    def config(self) -> RetryConfig:
        return self._config

    def _with(self, **changes: Any) -> GritBuilder[F]:
        return GritBuilder(replace(self._config, **changes))

    # ─────────────────────────────────────────────────────────────────
    # Options
    # ─────────────────────────────────────────────────────────────────

    def only_errors(self, errors: Iterable[ErrorFilter]) -> GritBuilder[F]:
        """Retry only errors of these exact classes (or matching these predicates)."""
        return self._with(only_errors=tuple(errors))

    def skip_errors(self, errors: Iterable[ErrorFilter]) -> GritBuilder[F]:
        """Never retry errors of these exact classes (or matching these predicates)."""
        return self._with(skip_errors=tuple(errors))

    def with_delay(self, delay: DelayInput) -> GritBuilder[F]:
        return self._with(delay=delay)

    def with_timeout(self, timeout: TimeoutInput) -> GritBuilder[F]:
        return self._with(timeout=timeout)

    def with_logging(self, enabled: bool = True) -> GritBuilder[F]:
        return self._with(logging=enabled)

    def with_fallback(self, fallback: Callable[[BaseException, int], Awaitable[U] | U]) -> GritBuilder[U]:
        """Substitute fallback(error, attempt_number) for the error once retries run out."""
        return GritBuilder(replace(self._config, fallback=fallback))

    def on_retry(self, hook: RetryHook) -> GritBuilder[F]:
        """Call hook(error, failed_attempt, delay_ms) before each retry."""
        return self._with(on_retry=hook)

    # ─────────────────────────────────────────────────────────────────
    # Execution
    # ─────────────────────────────────────────────────────────────────

    def build(self) -> Grit[Any]:
        """Create a fresh engine. Raises GritError for malformed options."""
        return Grit(self._config)

    def run(self, fn: Operation[T]) -> Coroutine[Any, Any, T | F]:
        """Run fn(attempt_number) with retries; awaiting yields the final value.

        The engine is built before the coroutine is returned, so
        configuration errors raise here rather than on await.
        """
        return self.build().attempt(fn)

    def run_safe(self, fn: Operation[T]) -> Coroutine[Any, Any, SafeResult[T | F]]:
        """Like run(), but awaiting never raises an execution error."""
        return self.build().safe_attempt(fn)

    def run_sync(self, fn: Callable[[int], T]) -> T | F:
        return self.build().attempt_sync(fn)

    def run_safe_sync(self, fn: Callable[[int], T]) -> SafeResult[T | F]:
        return self.build().safe_attempt_sync(fn)

    attempt = run
    safe_attempt = run_safe

    def wrap(self, fn: Callable[P, T]) -> Callable[P, Any]:
        """Decorate fn so every call runs under a fresh engine.

        Coroutine functions stay async; plain functions run through run_sync().
        The attempt number is not passed to fn.

        Example:
            >>> @retry(2).with_delay(50).wrap
            ... async def fetch(url: str) -> bytes: ...
        """
        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                return await self.run(lambda _: fn(*args, **kwargs))
            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            return self.run_sync(lambda _: fn(*args, **kwargs))
        return wrapper

    def __repr__(self) -> str:
        return f"GritBuilder({self._config!r})"


def retry(retry_count: int) -> GritBuilder[Any]:
    """Entry point: retry(3) allows three retries, four attempts in total."""
    return GritBuilder.create(retry_count)
