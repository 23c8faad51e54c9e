"""
Completion contracts: one shape for every awaitable kind.

``subscribe(value, on_success, on_failure)`` classifies ``value`` and
arranges for exactly one of the two callbacks to fire, exactly once.

The completion signal handed to callback-style operations honours only
its first use. A second call, or an exception escaping the operation body
after it already signalled, is discarded. This is the one place where a
secondary error is dropped on purpose: an operation that reports a result
and then raises is buggy, and the first report is the one the waiting
computation has already been promised.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from collections.abc import Callable, Hashable, Iterable
from functools import partial
from typing import Any

from coflow.awaitables import Awaitable, Keyed, Nested, Ordered, Promise, Thunk, classify
from coflow.errors import ClassificationError, OperationError
from coflow.future import ResultFuture
from coflow.utils import describe

logger = logging.getLogger(__name__)

OnSuccess = Callable[[Any], None]
OnFailure = Callable[[BaseException], None]


class Outcome:
    """One-shot pair of success/failure callbacks.

    ``succeed``/``fail`` return False when an outcome was already delivered,
    in which case the call has no effect.
    """

    __slots__ = ("_on_success", "_on_failure", "_fired", "_lock")

    def __init__(self, on_success: OnSuccess, on_failure: OnFailure) -> None:
        self._on_success = on_success
        self._on_failure = on_failure
        self._fired = False
        self._lock = threading.Lock()

    @property
    def fired(self) -> bool:
        return self._fired

    def _claim(self) -> bool:
        with self._lock:
            if self._fired:
                return False
            self._fired = True
            return True

    def succeed(self, value: Any) -> bool:
        if not self._claim():
            return False
        self._on_success(value)
        return True

    def fail(self, error: BaseException) -> bool:
        if not self._claim():
            return False
        self._on_failure(error)
        return True


class CompletionSignal:
    """The ``done(error, *values)`` callback handed to a callback-style operation.

    - ``error`` not None: failure. Non-exception payloads are wrapped in OperationError.
    - no values: success with None
    - one value: success with that value
    - several values: success with the list of values
    """

    __slots__ = ("_outcome", "_operation")

    def __init__(self, outcome: Outcome, operation: Any) -> None:
        self._outcome = outcome
        self._operation = operation

    def __call__(self, error: Any = None, *values: Any) -> None:
        if error is not None:
            if not isinstance(error, BaseException):
                error = OperationError(error)
            delivered = self._outcome.fail(error)
        elif not values:
            delivered = self._outcome.succeed(None)
        elif len(values) == 1:
            delivered = self._outcome.succeed(values[0])
        else:
            delivered = self._outcome.succeed(list(values))
        if not delivered:
            logger.debug("Discarding repeated completion signal from %s", describe(self._operation))


# ============================================================================
# Per-kind subscription
# ============================================================================


def _subscribe_thunk(thunk: Thunk, outcome: Outcome) -> None:
    signal = CompletionSignal(outcome, thunk.fn)
    try:
        thunk.fn(signal)
    except Exception as exc:
        if not outcome.fail(exc):
            # First signal already won; the later raise is dropped.
            logger.debug(
                "Discarding %r raised by %s after it signalled completion",
                exc,
                describe(thunk.fn),
            )


def _settle_from_result_future(outcome: Outcome, future: ResultFuture[Any]) -> None:
    if future.failed():
        error = future.exception()
        assert error is not None
        outcome.fail(error)
    else:
        outcome.succeed(future.result())


def _settle_from_future(
    outcome: Outcome, future: asyncio.Future[Any] | concurrent.futures.Future[Any]
) -> None:
    if future.cancelled():
        outcome.fail(concurrent.futures.CancelledError(f"{describe(future)} was cancelled"))
        return
    error = future.exception()
    if error is not None:
        outcome.fail(error)
    else:
        outcome.succeed(future.result())


def _subscribe_promise(promise: Promise, outcome: Outcome) -> None:
    source = promise.source
    if isinstance(source, ResultFuture):
        source.add_done_callback(partial(_settle_from_result_future, outcome))
        return
    if asyncio.isfuture(source) or isinstance(source, concurrent.futures.Future):
        source.add_done_callback(partial(_settle_from_future, outcome))
        return
    if inspect.isawaitable(source):
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(source):
                source.close()
            raise RuntimeError(
                f"Cannot await {describe(source)}: no running event loop"
            ) from None
        task = asyncio.ensure_future(source, loop=loop)
        task.add_done_callback(partial(_settle_from_future, outcome))
        return
    then = getattr(source, "then", None)
    if callable(then):
        then(outcome.succeed, outcome.fail)
        return
    raise ClassificationError(source)


def _subscribe_nested(nested: Nested, outcome: Outcome) -> None:
    from coflow.driver import Driver

    Driver(nested.computation).start().add_done_callback(
        partial(_settle_from_result_future, outcome)
    )


# ============================================================================
# Fan-out
# ============================================================================


class _FanOut:
    """Aggregate state shared by the elements of one collection.

    Each element writes only its own slot. The first failure settles the
    aggregate; results arriving after that are discarded, and elements
    still running are left to finish on their own.
    """

    def __init__(
        self,
        keys: Iterable[Hashable],
        outcome: Outcome,
        build: Callable[[dict[Hashable, Any]], Any],
    ) -> None:
        self._slots: dict[Hashable, Any] = dict.fromkeys(keys)
        self._remaining = len(self._slots)
        self._outcome = outcome
        self._build = build
        self._lock = threading.Lock()

    def start(self, items: Iterable[tuple[Hashable, Any]]) -> None:
        for key, item in items:
            subscribe(item, partial(self._element_succeeded, key), partial(self._element_failed, key))

    def _element_succeeded(self, key: Hashable, value: Any) -> None:
        with self._lock:
            discarded = self._outcome.fired
            if not discarded:
                self._slots[key] = value
                self._remaining -= 1
            finished = not discarded and self._remaining == 0
        if discarded:
            logger.debug("Discarding fan-out result for %r after the aggregate settled", key)
        elif finished:
            self._outcome.succeed(self._build(self._slots))

    def _element_failed(self, key: Hashable, error: BaseException) -> None:
        if not self._outcome.fail(error):
            logger.debug("Discarding fan-out error for %r after the aggregate settled: %r", key, error)


def _subscribe_ordered(ordered: Ordered, outcome: Outcome) -> None:
    if not ordered.items:
        outcome.succeed(ordered.shape([]))
        return
    count = len(ordered.items)
    fan = _FanOut(
        range(count),
        outcome,
        lambda slots: ordered.shape([slots[index] for index in range(count)]),
    )
    fan.start(enumerate(ordered.items))


def _subscribe_keyed(keyed: Keyed, outcome: Outcome) -> None:
    if not keyed.items:
        outcome.succeed({})
        return
    fan = _FanOut(keyed.items.keys(), outcome, dict)
    fan.start(keyed.items.items())


_SUBSCRIBERS: dict[type, Callable[[Any, Outcome], None]] = {
    Thunk: _subscribe_thunk,
    Promise: _subscribe_promise,
    Nested: _subscribe_nested,
    Ordered: _subscribe_ordered,
    Keyed: _subscribe_keyed,
}


def subscribe(value: Any, on_success: OnSuccess, on_failure: OnFailure) -> Awaitable | None:
    """Subscribe for the single outcome of ``value``.

    Exactly one of ``on_success``/``on_failure`` fires, exactly once. A value
    no kind accepts fails synchronously with ClassificationError.

    Returns:
        The classified awaitable, or None when classification failed.
    """
    outcome = Outcome(on_success, on_failure)
    try:
        awaitable = classify(value)
    except Exception as exc:
        outcome.fail(exc)
        return None
    try:
        _SUBSCRIBERS[type(awaitable)](awaitable, outcome)
    except Exception as exc:
        if not outcome.fail(exc):
            logger.debug("Discarding %r raised after %s settled", exc, describe(awaitable))
    return awaitable


__all__ = ["CompletionSignal", "OnFailure", "OnSuccess", "Outcome", "subscribe"]
