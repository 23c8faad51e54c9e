"""
Driver for suspendable computations.

A Driver owns one computation from its first step to termination. Each
step either settles the Driver's ResultFuture or suspends on a yielded
value; the yielded value is subscribed through the completion contract
with a single-shot Continuation, and the continuation schedules the next
step on the thread's trampoline.

State machine::

    RUNNING -> SUSPENDED -> RUNNING -> ... -> SUCCEEDED | FAILED

Terminal states are absorbing.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from enum import Enum, auto
from functools import partial
from typing import Any, Generic, TypeVar

from coflow._vendor import trace_err
from coflow.awaitables import kind_name
from coflow.computation import (
    START,
    Done,
    Error,
    Failed,
    Resumption,
    SuspendableComputation,
    Value,
    as_computation,
)
from coflow.contract import subscribe
from coflow.errors import ResumptionError
from coflow.future import ResultFuture
from coflow.scheduler import Scheduler, current_trampoline, fresh_trampoline
from coflow.utils import DEBUG_RUNS, CreationSite, capture_creation_site, describe

T = TypeVar("T")

logger = logging.getLogger(__name__)


class DriverState(Enum):
    RUNNING = auto()
    SUSPENDED = auto()
    SUCCEEDED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({DriverState.SUCCEEDED, DriverState.FAILED})


class Continuation:
    """Resumption of one suspension point; can be used once (single-shot).

    ``resume`` feeds a value back into the computation, ``throw`` raises an
    error at the suspension point. Either schedules the Driver's next step.
    """

    __slots__ = ("_driver", "_used", "_lock")

    def __init__(self, driver: Driver[Any]) -> None:
        self._driver = driver
        self._used = False
        self._lock = threading.Lock()

    @property
    def used(self) -> bool:
        return self._used

    def _use(self) -> None:
        with self._lock:
            if self._used:
                raise ResumptionError("Continuation already used (single-shot)")
            self._used = True

    def resume(self, value: Any) -> None:
        self._use()
        self._driver._schedule(Value(value))

    def throw(self, error: BaseException) -> None:
        self._use()
        self._driver._schedule(Error(error))


class Driver(Generic[T]):
    """Steps one SuspendableComputation to completion.

    Args:
        computation: The computation to drive. It must not be shared with another Driver.
        scheduler: Trampoline used for steps. Defaults to the trampoline of the
            thread delivering each resumption.
        created_at: Call site recorded on the ResultFuture for debugging.
    """

    def __init__(
        self,
        computation: SuspendableComputation,
        *,
        scheduler: Scheduler | None = None,
        created_at: CreationSite | None = None,
    ) -> None:
        self._computation = computation
        self._scheduler = scheduler
        self._state = DriverState.RUNNING
        self._started = False
        self._future: ResultFuture[T] = ResultFuture(created_at=created_at)

    @property
    def state(self) -> DriverState:
        return self._state

    @property
    def future(self) -> ResultFuture[T]:
        return self._future

    def start(self) -> ResultFuture[T]:
        """Schedule the first step and return the ResultFuture."""
        if self._started:
            raise ResumptionError(f"{self!r} already started")
        self._started = True
        self._schedule(START)
        return self._future

    def _schedule(self, resumption: Resumption) -> None:
        scheduler = self._scheduler or current_trampoline()
        scheduler.submit(partial(self._step, resumption))
        scheduler.drain()

    def _step(self, resumption: Resumption) -> None:
        if self._state in TERMINAL_STATES:
            raise ResumptionError(f"{self!r} is already {self._state.name.lower()}")
        self._state = DriverState.RUNNING
        try:
            outcome = self._computation.step(resumption)
        except ResumptionError:
            raise
        except Exception as exc:
            outcome = Failed(exc)

        if isinstance(outcome, Done):
            self._state = DriverState.SUCCEEDED
            logger.debug("%r succeeded with %s", self, describe(outcome.value))
            self._future.set_result(outcome.value)
        elif isinstance(outcome, Failed):
            self._state = DriverState.FAILED
            self._log_failure(outcome.exception)
            self._future.set_exception(outcome.exception)
        else:
            self._state = DriverState.SUSPENDED
            self._suspend(outcome.yielded)

    def _suspend(self, yielded: Any) -> None:
        k = Continuation(self)
        awaitable = subscribe(yielded, k.resume, k.throw)
        if awaitable is None:
            logger.debug("%r yielded unclassifiable %s", self, describe(yielded))
        else:
            logger.debug("%r suspended on %s", self, kind_name(awaitable))

    def _log_failure(self, error: BaseException) -> None:
        created_at = self._future.created_at
        if DEBUG_RUNS and created_at is not None:
            logger.debug("%r failed\n%s", self, trace_err(error, created_at.format()))
        else:
            logger.debug("%r failed with %r", self, error)

    def __repr__(self) -> str:
        return f"<Driver {self._computation!r} {self._state.name.lower()}>"


def run(computation: Any, *args: Any, **kwargs: Any) -> ResultFuture[Any]:
    """Drive ``computation`` to completion and return its ResultFuture.

    ``computation`` may be a SuspendableComputation, a generator, or a
    factory (typically a generator function) called with ``args``/``kwargs``.
    A factory that raises yields a failed future; one that returns a plain
    value yields a future resolved with that value.

    A computation that never suspends is settled before ``run`` returns, also
    when ``run`` is called from inside another computation's step.

    Example::

        def program():
            a = yield fetch("a")
            b = yield [fetch("b"), fetch("c")]
            return a, b

        future = run(program)
        future.then(print)
    """
    created_at = capture_creation_site() if DEBUG_RUNS else None
    try:
        target = as_computation(computation, args, kwargs)
    except Exception as exc:
        future: ResultFuture[Any] = ResultFuture(created_at=created_at)
        future.set_exception(exc)
        return future
    driver: Driver[Any] = Driver(target, created_at=created_at)
    if current_trampoline().draining:
        with fresh_trampoline():
            return driver.start()
    return driver.start()


def run_sync(computation: Any, *args: Any, **kwargs: Any) -> Any:
    """Run ``computation`` inside a fresh asyncio event loop and return its value.

    The escaped error, if any, is raised. Use :func:`run` and ``await`` from
    code that is already inside an event loop.
    """

    async def _main() -> Any:
        return await run(computation, *args, **kwargs)

    with fresh_trampoline():
        return asyncio.run(_main())


__all__ = [
    "Continuation",
    "Driver",
    "DriverState",
    "TERMINAL_STATES",
    "run",
    "run_sync",
]
