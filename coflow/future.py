"""
ResultFuture: the settle-once handle returned by ``run()``.

A ResultFuture is created pending and settled exactly once, either with the
computation's return value or with the error that escaped it. Callbacks
registered before settlement run at settlement time; callbacks registered
afterwards run immediately.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Callable, Generator
from enum import Enum, auto
from typing import Any, Generic, TypeVar

from coflow._vendor import Err, Ok, Result
from coflow.errors import InvalidStateError
from coflow.utils import CreationSite

T = TypeVar("T")
U = TypeVar("U")

logger = logging.getLogger(__name__)


class FutureState(Enum):
    PENDING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


class ResultFuture(Generic[T]):
    """Settle-once handle for the outcome of a computation."""

    def __init__(self, created_at: CreationSite | None = None) -> None:
        self._state = FutureState.PENDING
        self._value: Any = None
        self._error: BaseException | None = None
        self._callbacks: list[Callable[[ResultFuture[T]], None]] = []
        self._lock = threading.Lock()
        self.created_at = created_at

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> FutureState:
        return self._state

    def done(self) -> bool:
        return self._state is not FutureState.PENDING

    def succeeded(self) -> bool:
        return self._state is FutureState.SUCCEEDED

    def failed(self) -> bool:
        return self._state is FutureState.FAILED

    def result(self) -> T:
        """Return the value, raise the failure, or raise InvalidStateError while pending."""
        if self._state is FutureState.PENDING:
            raise InvalidStateError("Result is not ready")
        if self._state is FutureState.FAILED:
            assert self._error is not None
            raise self._error
        return self._value

    def exception(self) -> BaseException | None:
        if self._state is FutureState.PENDING:
            raise InvalidStateError("Exception is not set")
        return self._error

    def to_result(self) -> Result[T]:
        """Convert a settled future into ``Ok``/``Err``."""
        if self._state is FutureState.PENDING:
            raise InvalidStateError("Result is not ready")
        if self._state is FutureState.FAILED:
            assert self._error is not None
            return Err(self._error)
        return Ok(self._value)

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def set_result(self, value: T) -> None:
        self._settle(FutureState.SUCCEEDED, value, None)

    def set_exception(self, error: BaseException) -> None:
        if not isinstance(error, BaseException):
            raise TypeError(f"set_exception expects an exception, got {type(error)!r}")
        self._settle(FutureState.FAILED, None, error)

    def _settle(self, state: FutureState, value: Any, error: BaseException | None) -> None:
        with self._lock:
            if self._state is not FutureState.PENDING:
                raise InvalidStateError(f"{self!r} is already settled")
            self._state = state
            self._value = value
            self._error = error
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            self._invoke(callback)

    def _invoke(self, callback: Callable[[ResultFuture[T]], None]) -> None:
        try:
            callback(self)
        except Exception:
            logger.exception("Exception in ResultFuture callback %r", callback)

    # ------------------------------------------------------------------
    # Continuations
    # ------------------------------------------------------------------

    def add_done_callback(self, callback: Callable[[ResultFuture[T]], None]) -> None:
        """Call ``callback(self)`` once the future settles."""
        with self._lock:
            if self._state is FutureState.PENDING:
                self._callbacks.append(callback)
                return
        self._invoke(callback)

    def then(
        self,
        on_success: Callable[[T], U] | None = None,
        on_failure: Callable[[BaseException], U] | None = None,
    ) -> ResultFuture[U]:
        """Attach success/failure continuations, promise style.

        Returns a new ResultFuture settled with the continuation's return
        value, or with the exception it raised. A missing continuation
        passes the outcome through unchanged.
        """
        derived: ResultFuture[U] = ResultFuture(created_at=self.created_at)

        def _chain(source: ResultFuture[T]) -> None:
            try:
                if source.failed():
                    error = source._error
                    assert error is not None
                    if on_failure is None:
                        derived.set_exception(error)
                        return
                    outcome = on_failure(error)
                else:
                    if on_success is None:
                        derived.set_result(source._value)
                        return
                    outcome = on_success(source._value)
            except Exception as exc:
                derived.set_exception(exc)
                return
            derived.set_result(outcome)

        self.add_done_callback(_chain)
        return derived

    def catch(self, on_failure: Callable[[BaseException], U]) -> ResultFuture[T | U]:
        return self.then(None, on_failure)

    # ------------------------------------------------------------------
    # asyncio bridge
    # ------------------------------------------------------------------

    def __await__(self) -> Generator[Any, None, T]:
        if self.done():
            return self.result()
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[T] = loop.create_future()

        def _transfer(source: ResultFuture[T]) -> None:
            def _apply() -> None:
                if waiter.cancelled():
                    return
                if source.failed():
                    waiter.set_exception(source._error)  # type: ignore[arg-type]
                else:
                    waiter.set_result(source._value)

            loop.call_soon_threadsafe(_apply)

        self.add_done_callback(_transfer)
        return (yield from waiter.__await__())

    def __repr__(self) -> str:
        parts = [self._state.name.lower()]
        if self._state is FutureState.SUCCEEDED:
            parts.append(f"result={self._value!r}")
        elif self._state is FutureState.FAILED:
            parts.append(f"exception={self._error!r}")
        if self.created_at is not None:
            parts.append(f"created_at={self.created_at.filename}:{self.created_at.line}")
        return f"<ResultFuture {' '.join(parts)}>"


__all__ = ["FutureState", "ResultFuture"]
