"""
Pytest configuration for coflow tests.

Provides callback-style operation factories driven by the running asyncio
loop's timers, plus synchronous variants that signal inline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any, Protocol

import pytest

Operation = Callable[[Callable[..., None]], None]


class OperationFactory(Protocol):
    def __call__(
        self,
        value: Any = None,
        err: BaseException | None = None,
        error: BaseException | None = None,
        delay: float = 0.01,
    ) -> Operation: ...


def _timer_op(
    value: Any = None,
    err: BaseException | None = None,
    error: BaseException | None = None,
    delay: float = 0.01,
) -> Operation:
    """Operation completing ``done(err, value)`` after ``delay`` seconds.

    ``error`` is raised synchronously from the operation body instead.
    """

    def operation(done: Callable[..., None]) -> None:
        if error is not None:
            raise error
        asyncio.get_running_loop().call_later(delay, done, err, value)

    return operation


def _inline_op(
    value: Any = None,
    err: BaseException | None = None,
    error: BaseException | None = None,
    delay: float = 0.0,
) -> Operation:
    """Operation calling ``done(err, value)`` before returning."""

    def operation(done: Callable[..., None]) -> None:
        if error is not None:
            raise error
        done(err, value)

    return operation


@pytest.fixture
def get() -> OperationFactory:
    """Timer-driven callback operation factory; requires a running loop."""
    return _timer_op


@pytest.fixture
def get_now() -> OperationFactory:
    """Synchronous callback operation factory; usable without an event loop."""
    return _inline_op
