"""Helpers for callback-style operations (thunks)."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from coflow.awaitables import Thunk
from coflow.contract import Outcome, subscribe
from coflow.utils import describe

logger = logging.getLogger(__name__)

Done = Callable[..., None]


def thunkify(func: Callable[..., Any]) -> Callable[..., Thunk]:
    """Turn ``func(*args, callback)`` into ``thunk_factory(*args) -> Thunk``.

    ``callback`` follows the ``(error, *values)`` convention. The returned
    thunk defers the call until it is yielded.

    Example::

        read = thunkify(legacy_client.read)

        def program():
            body = yield read("/status")
    """

    @wraps(func)
    def factory(*args: Any, **kwargs: Any) -> Thunk:
        def operation(done: Done) -> None:
            func(*args, done, **kwargs)

        return Thunk(operation)

    return factory


def with_timeout(operation: Any, seconds: float) -> Thunk:
    """Fail ``operation`` with TimeoutError unless it settles within ``seconds``.

    ``operation`` is any yieldable. The timer runs on the running asyncio
    loop. The operation itself is not cancelled; if it completes after the
    deadline its result is discarded like any repeated completion signal.
    """
    if seconds < 0:
        raise ValueError("seconds must be >= 0")

    def timed(done: Done) -> None:
        loop = asyncio.get_running_loop()
        outcome = Outcome(lambda value: done(None, value), done)
        timer = loop.call_later(
            seconds,
            outcome.fail,
            TimeoutError(f"Operation timed out after {seconds}s"),
        )

        def _succeeded(value: Any) -> None:
            timer.cancel()
            if not outcome.succeed(value):
                logger.debug("Discarding result of %s after timeout", describe(operation))

        def _failed(error: BaseException) -> None:
            timer.cancel()
            if not outcome.fail(error):
                logger.debug("Discarding %r from %s after timeout", error, describe(operation))

        subscribe(operation, _succeeded, _failed)

    return Thunk(timed)


__all__ = ["thunkify", "with_timeout"]
