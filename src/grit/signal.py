"""External cancellation signal for timeout races.

A CancelSignal is handed to `with_timeout({"timeout": ..., "signal": sig})`.
Aborting it fails the attempt currently being awaited with the signal's
reason. It never interrupts the operation itself and never stops the retry
loop: an aborted attempt is a failure like any other.

Signals are thread-safe so the same signal works for async runs and for
sync runs whose attempts execute on worker threads.

Example:
    >>> sig = CancelSignal()
    >>> task = asyncio.create_task(
    ...     retry(0).with_timeout({"timeout": 5_000, "signal": sig}).run(fetch)
    ... )
    >>> sig.abort()  # task fails with AbortError
"""

from __future__ import annotations

import threading
from typing import Callable

from .errors import AbortError

Listener = Callable[[BaseException], None]


class CancelSignal:
    """One-shot abort flag with listeners.

    Once aborted a signal stays aborted; later abort() calls are no-ops.
    Listeners added after the abort are invoked immediately.
    """

    __slots__ = ("_lock", "_reason", "_listeners")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reason: BaseException | None = None
        self._listeners: list[Listener] = []

    @property
    def aborted(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> BaseException | None:
        """Abort reason, or None while the signal is live."""
        return self._reason

    def abort(self, reason: BaseException | None = None) -> None:
        """Abort the signal, notifying every listener with the reason."""
        if reason is not None and not isinstance(reason, BaseException):
            raise TypeError(f"abort reason must be an exception, got {type(reason).__name__}")
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason if reason is not None else AbortError()
            listeners, self._listeners = self._listeners, []
        for listener in listeners:
            listener(self._reason)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Register listener, returning a function that removes it."""
        with self._lock:
            reason = self._reason
            if reason is None:
                self._listeners.append(listener)
        if reason is not None:
            listener(reason)
            return lambda: None

        def remove() -> None:
            with self._lock:
                try:
                    self._listeners.remove(listener)
                except ValueError:
                    pass  # Already fired or removed

        return remove

    def __repr__(self) -> str:
        return f"CancelSignal(aborted={self.aborted})"
