"""Validated retry policy.

A RetryPolicy is the frozen, validated form of the options gathered by a
builder. It is materialized once per engine, so list-valued inputs are
copied into tuples and cannot be changed underneath a running engine.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import TYPE_CHECKING, Annotated, Any, Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .delay import DelayConfig, DelaySequence, coerce_delay
from .errors import GritError
from .timeout import TimeoutConfig, coerce_timeout

if TYPE_CHECKING:
    from .builder import RetryConfig


ErrorFilter = type[BaseException] | Callable[[BaseException], bool]
FallbackFn = Callable[[BaseException, int], Any]
RetryHook = Callable[[BaseException, int, float], None]


def _is_error_class(f: object) -> bool:
    return isinstance(f, type) and issubclass(f, BaseException)


def matches(error: BaseException, filters: Iterable[ErrorFilter]) -> bool:
    """Whether error matches any filter.

    Exception classes match by exact runtime class (subclasses do not match);
    any other callable is used as a predicate.
    """
    cls = type(error)
    return any(f is cls if _is_error_class(f) else f(error) for f in filters)


class RetryPolicy(BaseModel):
    """Options governing one engine's behavior.

    Attributes:
        retry_count: Retries after the first attempt (total attempts = retry_count + 1)
        only_errors: If non-empty, only matching errors are retried
        skip_errors: Matching errors are never retried (checked before only_errors)
        delay: Wait strategy between attempts, None for immediate retry
        timeout: Per-attempt timeout, None to await the operation indefinitely
        fallback: Called with (error, attempt_number) once retries are exhausted
        logging: Emit retry and delay diagnostics
        on_retry: Called with (error, attempt_number, delay_ms) before each retry
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        revalidate_instances="never",
    )

    retry_count: Annotated[int, Field(strict=True, ge=0)]
    only_errors: tuple[Any, ...] = ()
    skip_errors: tuple[Any, ...] = ()
    delay: DelayConfig | None = None
    timeout: TimeoutConfig | None = None
    fallback: FallbackFn | None = Field(default=None, repr=False)
    logging: bool = False
    on_retry: RetryHook | None = Field(default=None, repr=False)

    @field_validator("only_errors", "skip_errors", mode="before")
    @classmethod
    def _copy_filters(cls, v: Iterable[ErrorFilter] | None) -> tuple[ErrorFilter, ...]:
        """Copy filters into a tuple, rejecting entries that are neither exception classes nor predicates."""
        filters = tuple(v or ())
        for f in filters:
            if not _is_error_class(f) and (isinstance(f, type) or not callable(f)):
                raise ValueError(f"error filter must be an exception class or predicate, got {f!r}")
        return filters

    @model_validator(mode="after")
    def _check_sequence_length(self) -> RetryPolicy:
        if isinstance(self.delay, DelaySequence) and len(self.delay) != self.retry_count:
            raise ValueError(
                f"delay sequence length ({len(self.delay)}) must equal retry count ({self.retry_count})"
            )
        return self

    def should_retry(self, error: BaseException) -> bool:
        """Classify a failure: False means propagate immediately."""
        if self.skip_errors and matches(error, self.skip_errors):
            return False
        if self.only_errors and not matches(error, self.only_errors):
            return False
        return True

    def get_delay(self, index: int) -> float:
        """Delay in ms before the retry with 0-indexed `index` (0 without a delay policy).

        Raises:
            GritError: Strategy produced no usable positive delay
        """
        if self.delay is None:
            return 0.0
        try:
            d = self.delay.get_delay(index)
        except OverflowError:
            raise GritError(f"Delay for retry {index + 1} is out of range") from None
        if d is None or not (math.isfinite(d) and d > 0):
            raise GritError(f"No usable delay for retry {index + 1}: {d!r}")
        return d


def validate_policy(config: RetryConfig) -> RetryPolicy:
    """Turn raw builder options into a RetryPolicy.

    Raises:
        GritError: Any malformed option
    """
    if config.retry_count is None:
        raise GritError("Missing retry config (retry(<count>))")
    delay = coerce_delay(config.delay) if config.delay is not None else None
    timeout = coerce_timeout(config.timeout) if config.timeout is not None else None
    try:
        return RetryPolicy(
            retry_count=config.retry_count,
            only_errors=config.only_errors,
            skip_errors=config.skip_errors,
            delay=delay,
            timeout=timeout,
            fallback=config.fallback,
            logging=config.logging,
            on_retry=config.on_retry,
        )
    except ValidationError as e:
        raise GritError.from_validation(e) from None
