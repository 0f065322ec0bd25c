"""grit: retry with backoff, timeouts, and fallbacks for sync and async callables.

Example:
    >>> from grit import retry
    >>> result = await (
    ...     retry(3)
    ...     .skip_errors([PermissionError])
    ...     .with_delay({"min_delay": 100, "max_delay": 500, "factor": 2})
    ...     .with_timeout({"timeout": 2_000, "message": "upstream too slow"})
    ...     .with_fallback(lambda error, attempt: cached_value)
    ...     .run(fetch)
    ... )
    >>> result, error = await retry(2).run_safe(fetch)
"""

from .builder import GritBuilder, RetryConfig, retry
from .delay import (
    DelayConfig,
    DelaySequence,
    DelayStrategy,
    ExponentialDelay,
    FixedDelay,
    JitterDelay,
    coerce_delay,
)
from .engine import Grit, SafeResult
from .errors import AbortError, GritError, GritTimeoutError, format_validation_error
from .policy import RetryPolicy, matches, validate_policy
from .settings import GritSettings, clear_settings_cache, configure_logging, get_settings
from .signal import CancelSignal
from .timeout import TimeoutConfig, coerce_timeout

__version__ = "1.0.0"

__all__ = [
    # Entry points
    "retry", "Grit", "GritBuilder", "RetryConfig", "SafeResult",
    # Policy
    "RetryPolicy", "validate_policy", "matches",
    # Delay strategies
    "DelayConfig", "DelayStrategy", "FixedDelay", "DelaySequence", "ExponentialDelay", "JitterDelay",
    "coerce_delay",
    # Timeouts & cancellation
    "TimeoutConfig", "coerce_timeout", "CancelSignal",
    # Errors
    "GritError", "GritTimeoutError", "AbortError", "format_validation_error",
    # Settings
    "GritSettings", "get_settings", "clear_settings_cache", "configure_logging",
]
