"""coflow error types."""

from __future__ import annotations

from typing import Any

from coflow.utils import describe

SUPPORTED_KINDS = "yield a function, promise, generator, array, or object of yieldables"


class CoflowError(Exception):
    """Base class for errors raised by coflow itself."""


class ClassificationError(CoflowError, TypeError):
    """Raised into a computation that yielded a value no awaitable kind accepts.

    The error is delivered at the suspension point like any other failure,
    so the computation may catch it and keep going.

    Attributes:
        value: The object that could not be classified.

    Example:
        >>> def program():
        ...     try:
        ...         yield "something"
        ...     except ClassificationError as err:
        ...         return err.value
        >>> run(program).result()
        'something'
    """

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(
            f"You may only {SUPPORTED_KINDS} "
            "(a callable taking a done callback, a future or awaitable, a generator, "
            f"a list/tuple, or a mapping), but the following object was passed: {describe(value)}"
        )


class OperationError(CoflowError):
    """Wraps an error payload signalled by a callback operation that is not an exception.

    Attributes:
        reason: The raw payload passed as the first argument of ``done``.
    """

    def __init__(self, reason: Any) -> None:
        self.reason = reason
        super().__init__(f"Operation failed: {describe(reason)}")


class InvalidStateError(CoflowError):
    """Raised when a ResultFuture is settled twice or read while pending."""


class ResumptionError(CoflowError):
    """Raised when a continuation is resumed twice or a finished computation is stepped."""


__all__ = [
    "SUPPORTED_KINDS",
    "ClassificationError",
    "CoflowError",
    "InvalidStateError",
    "OperationError",
    "ResumptionError",
]
