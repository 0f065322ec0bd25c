"""Delay strategies between retry attempts.

All values are milliseconds. Retry indices are 0-indexed (first retry = 0).

- FixedDelay: same wait before every retry
- DelaySequence: explicit per-retry waits, one entry per retry
- ExponentialDelay: delay * factor ** index
- JitterDelay: uniform random in [min_delay, max_delay), optionally scaled by factor ** index

Raw configuration (numbers, lists, mappings) is turned into one of these
models by `coerce_delay`.
"""

from __future__ import annotations

import random
from collections.abc import Mapping
from typing import Annotated, Protocol, runtime_checkable

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from .errors import GritError


def _number(v: object) -> object:
    """Reject bools and non-numeric input before float coercion."""
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ValueError("must be a number")
    return v


Millis = Annotated[float, BeforeValidator(_number), Field(gt=0, allow_inf_nan=False)]
Factor = Annotated[float, BeforeValidator(_number), Field(allow_inf_nan=False)]


@runtime_checkable
class DelayStrategy(Protocol):
    """Protocol for delay calculation.

    Implementations compute the wait in milliseconds before a retry.
    """

    def get_delay(self, index: int) -> float:
        """Delay in milliseconds before the retry with 0-indexed `index`."""
        ...


_FROZEN = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)


class FixedDelay(BaseModel):
    """Fixed wait before every retry."""

    model_config = _FROZEN

    delay: Millis

    def get_delay(self, index: int) -> float:
        return self.delay


class DelaySequence(BaseModel):
    """Explicit per-retry waits.

    The sequence length must equal the policy's retry count; this is checked
    when the policy is built since the model itself does not know the count.
    """

    model_config = _FROZEN

    delays: tuple[Millis, ...]

    def get_delay(self, index: int) -> float:
        try:
            return self.delays[index]
        except IndexError:
            raise GritError(f"No delay configured for retry {index + 1}") from None

    def __len__(self) -> int:
        return len(self.delays)


class ExponentialDelay(BaseModel):
    """Exponential growth: delay * factor ** index.

    Attributes:
        delay: Initial delay in ms (alias: initial_delay)
        factor: Growth factor, >= 1 (default: 1, i.e. constant)
    """

    model_config = _FROZEN

    delay: Millis = Field(validation_alias=AliasChoices("delay", "initial_delay"))
    factor: Annotated[Factor, Field(ge=1)] = 1.0

    def get_delay(self, index: int) -> float:
        return self.delay * self.factor ** index


class JitterDelay(BaseModel):
    """Random delay in [min_delay, max_delay), optionally scaled by factor ** index.

    Spreading retries randomly keeps many callers from retrying in lockstep.
    """

    model_config = _FROZEN

    min_delay: Millis
    max_delay: Millis
    factor: Annotated[Factor, Field(gt=0)] | None = None

    @model_validator(mode="after")
    def _check_range(self) -> JitterDelay:
        if self.min_delay >= self.max_delay:
            raise ValueError("min_delay must be less than max_delay")
        return self

    def get_delay(self, index: int) -> float:
        d = self.min_delay + random.random() * (self.max_delay - self.min_delay)
        return d * self.factor ** index if self.factor else d


DelayConfig = FixedDelay | DelaySequence | ExponentialDelay | JitterDelay
DelayInput = int | float | list[float] | tuple[float, ...] | Mapping[str, float] | DelayConfig


def coerce_delay(config: DelayInput) -> DelayConfig:
    """Build a validated delay model from raw configuration.

    Accepts:
        - number: FixedDelay
        - list/tuple of numbers: DelaySequence (copied)
        - mapping with "delay" (or "initial_delay") and optional "factor": ExponentialDelay
        - mapping with "min_delay", "max_delay" and optional "factor": JitterDelay
        - an existing delay model, returned as-is

    Raises:
        GritError: Unknown shape or invalid values
    """
    if isinstance(config, (FixedDelay, DelaySequence, ExponentialDelay, JitterDelay)):
        return config
    try:
        if isinstance(config, bool):
            raise GritError("Invalid delay config: bool is not a delay")
        if isinstance(config, (int, float)):
            return FixedDelay(delay=config)
        if isinstance(config, (list, tuple)):
            return DelaySequence(delays=tuple(config))
        if isinstance(config, Mapping):
            if "delay" in config or "initial_delay" in config:
                return ExponentialDelay.model_validate(dict(config))
            if "min_delay" in config or "max_delay" in config:
                return JitterDelay.model_validate(dict(config))
    except ValidationError as e:
        raise GritError.from_validation(e, context="delay config") from None
    raise GritError(f"Invalid delay config: {config!r}")
