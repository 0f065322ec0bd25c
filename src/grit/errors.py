"""Error taxonomy for retry execution.

- GritError: malformed retry configuration, raised before any attempt
- GritTimeoutError: an attempt's timer elapsed before the operation settled
- AbortError: default reason for an aborted CancelSignal

Configuration errors are never retried and never handed to a fallback.
Timeout and abort errors are ordinary failures as far as the retry loop
is concerned.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pydantic import ValidationError


class GritError(Exception):
    """Invalid retry configuration."""

    @classmethod
    def from_validation(cls, exc: ValidationError, context: str = "retry config") -> GritError:
        """Collapse a pydantic ValidationError into a single configuration error."""
        return cls(format_validation_error(exc, context=context))


class GritTimeoutError(TimeoutError):
    """Operation did not settle within the configured timeout.

    Attributes:
        timeout: Configured timeout in milliseconds
    """

    def __init__(self, message: str, timeout: float | None = None) -> None:
        super().__init__(message)
        self.timeout = timeout


class AbortError(Exception):
    """Attempt aborted by an external CancelSignal without an explicit reason."""

    def __init__(self, message: str = "This operation was aborted.") -> None:
        super().__init__(message)


def format_validation_error(exc: ValidationError, *, context: str = "retry config") -> str:
    """Format ValidationError into a one-line, human-readable message.

    Example:
        >>> format_validation_error(exc, context="delay")
        "Invalid delay: delay: Input should be greater than 0"
    """
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return f"Invalid {context}: " + "; ".join(parts or ["invalid value"])
