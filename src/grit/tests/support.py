"""Scripted operations and error types shared by the test modules."""

from __future__ import annotations


class NetworkError(Exception):
    pass


class ValidationFailed(Exception):
    pass


class Flaky:
    """Operation that raises the scripted errors in order, then returns value.

    Records the attempt number of every call.
    """

    def __init__(self, *errors: BaseException, value: object = "success") -> None:
        self._errors = list(errors)
        self.value = value
        self.calls: list[int] = []

    @property
    def count(self) -> int:
        return len(self.calls)

    def __call__(self, attempt: int) -> object:
        self.calls.append(attempt)
        if self._errors:
            raise self._errors.pop(0)
        return self.value


class AsyncFlaky(Flaky):
    async def __call__(self, attempt: int) -> object:  # type: ignore[override]
        return Flaky.__call__(self, attempt)


class AlwaysFails(Flaky):
    def __init__(self, error: BaseException) -> None:
        super().__init__()
        self.error = error

    def __call__(self, attempt: int) -> object:
        self.calls.append(attempt)
        raise self.error


class AsyncAlwaysFails(AlwaysFails):
    async def __call__(self, attempt: int) -> object:  # type: ignore[override]
        return AlwaysFails.__call__(self, attempt)
