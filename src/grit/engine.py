"""Retry execution engine.

One Grit instance drives exactly one execution: it owns the run state
(attempt number, retries consumed) and loops

    invoke (with optional timeout race) -> on failure: budget check ->
    classify -> advance state -> delay -> invoke ...

until a success value, a fallback value, or a propagated error. Builders
create a fresh engine per call, which is what keeps builder reuse free of
shared counters.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass
from functools import partial
from typing import TYPE_CHECKING, Awaitable, Callable, Generic, Iterator, TypeVar

from .errors import GritError
from .policy import RetryPolicy, validate_policy
from .timeout import race_timeout, race_timeout_sync

if TYPE_CHECKING:
    from .builder import GritBuilder, RetryConfig

T = TypeVar("T")

Operation = Callable[[int], Awaitable[T] | T]

logger = logging.getLogger("grit.engine")


async def _sleep(ms: float) -> None:
    await asyncio.sleep(ms / 1000)


def _sleep_sync(ms: float) -> None:
    time.sleep(ms / 1000)


async def _resolve(value: Awaitable[T] | T) -> T:
    return await value if inspect.isawaitable(value) else value


def _ensure_sync(value: T, source: str) -> T:
    """Reject awaitables produced in a sync run."""
    if inspect.isawaitable(value):
        if inspect.iscoroutine(value):
            value.close()
        raise GritError(f"{source} returned an awaitable in a sync run; use run() instead")
    return value


@dataclass(slots=True, frozen=True)
class SafeResult(Generic[T]):
    """Outcome of a safe run: exactly one of result/error is meaningful.

    Unpacks as a pair:
        >>> result, error = await retry(2).run_safe(fetch)
    """

    result: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Get result or raise stored error."""
        if self.error is not None:
            raise self.error
        return self.result  # type: ignore[return-value]

    def unwrap_or(self, default: T) -> T:
        return self.result if self.error is None else default  # type: ignore[return-value]

    def __iter__(self) -> Iterator[object]:
        yield self.result
        yield self.error


class Grit(Generic[T]):
    """Execution engine for a single retried call.

    Validates its policy on construction, so a malformed configuration
    raises GritError before any attempt is made.

    Example:
        >>> engine = Grit(RetryConfig(retry_count=2, delay=100))
        >>> await engine.attempt(lambda attempt: fetch())
    """

    __slots__ = ("_policy", "_attempts", "_retries")

    def __init__(self, config: RetryConfig | RetryPolicy) -> None:
        self._policy = config if isinstance(config, RetryPolicy) else validate_policy(config)
        self._attempts = 1
        self._retries = 0

    @staticmethod
    def retry(retry_count: int) -> GritBuilder[T]:
        """Start a builder chain: Grit.retry(3).with_delay(100).run(fn)."""
        from .builder import GritBuilder
        return GritBuilder.create(retry_count)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def attempts(self) -> int:
        """Current attempt number (1-indexed); equals invocations so far."""
        return self._attempts

    @property
    def retries(self) -> int:
        return self._retries

    def _advance(self, error: BaseException) -> float:
        """Move run state to the next attempt and return the delay to wait, in ms."""
        policy = self._policy
        failed = self._attempts
        self._attempts += 1
        self._retries += 1
        delay = policy.get_delay(self._attempts - 2)

        if policy.logging:
            logger.info(
                f"Attempt {failed} failed ({type(error).__name__}: {error}). "
                f"Retry {self._retries}/{policy.retry_count}"
            )
            if policy.delay is not None:
                logger.debug(f"Delaying for {delay:g} ms")

        if policy.on_retry:
            policy.on_retry(error, failed, delay)
        return delay

    async def attempt(self, fn: Operation[T]) -> T:
        """Run fn with retries, returning its value or raising the terminal error."""
        policy = self._policy
        while True:
            attempt = self._attempts
            try:
                if policy.timeout is not None:
                    result = await race_timeout(partial(fn, attempt), policy.timeout)
                else:
                    result = await _resolve(fn(attempt))
            except Exception as error:
                if self._retries >= policy.retry_count:
                    if policy.fallback is None:
                        raise
                    return await _resolve(policy.fallback(error, attempt))
                if not policy.should_retry(error):
                    raise
                delay = self._advance(error)
            else:
                return result
            if delay:
                await _sleep(delay)

    async def safe_attempt(self, fn: Operation[T]) -> SafeResult[T]:
        """Like attempt(), but never raises: failures land in SafeResult.error."""
        try:
            return SafeResult(result=await self.attempt(fn))
        except Exception as e:
            return SafeResult(error=e)

    def attempt_sync(self, fn: Callable[[int], T]) -> T:
        """Blocking attempt(). Under a timeout, each attempt runs on a worker thread."""
        policy = self._policy
        while True:
            attempt = self._attempts
            try:
                if policy.timeout is not None:
                    result = race_timeout_sync(partial(fn, attempt), policy.timeout)
                else:
                    result = fn(attempt)
            except Exception as error:
                if self._retries >= policy.retry_count:
                    if policy.fallback is None:
                        raise
                    return _ensure_sync(policy.fallback(error, attempt), "fallback")
                if not policy.should_retry(error):
                    raise
                delay = self._advance(error)
            else:
                return _ensure_sync(result, "operation")
            if delay:
                _sleep_sync(delay)

    def safe_attempt_sync(self, fn: Callable[[int], T]) -> SafeResult[T]:
        try:
            return SafeResult(result=self.attempt_sync(fn))
        except Exception as e:
            return SafeResult(error=e)

    def __repr__(self) -> str:
        return f"Grit(attempts={self._attempts}, retries={self._retries}, policy={self._policy!r})"
