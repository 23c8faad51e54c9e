"""Awaitable kinds and the classifier that maps yielded values onto them.

The set of kinds is closed: every yielded value is either already one of
the wrappers below, is mapped onto one by :func:`classify`, or is rejected
with :class:`ClassificationError`. Callers who want to bypass the shape
checks wrap values explicitly, e.g. ``yield Thunk(op)`` for a callable
that also happens to have a ``then`` attribute.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias

from coflow._vendor import FrozenDict
from coflow.computation import SuspendableComputation, as_computation, is_computation
from coflow.errors import ClassificationError
from coflow.future import ResultFuture


@dataclass(frozen=True)
class Thunk:
    """Callback-style operation: ``fn(done)`` where ``done(error, *values)``."""

    fn: Callable[[Callable[..., None]], Any]


@dataclass(frozen=True)
class Promise:
    """Future-like source.

    ``source`` is a ResultFuture, an asyncio or concurrent future, any
    awaitable, or an object exposing ``then(on_success, on_failure)``.
    """

    source: Any


@dataclass(frozen=True)
class Nested:
    """A suspendable computation driven by its own Driver."""

    computation: SuspendableComputation

    @classmethod
    def of(cls, value: Any) -> Nested:
        return cls(as_computation(value))


@dataclass(frozen=True)
class Ordered:
    """Fan-out over a list or tuple; resolves to the same sequence type."""

    items: tuple[Any, ...]
    as_tuple: bool = False

    @classmethod
    def of(cls, value: list[Any] | tuple[Any, ...]) -> Ordered:
        return cls(tuple(value), as_tuple=isinstance(value, tuple))

    def shape(self, values: list[Any]) -> list[Any] | tuple[Any, ...]:
        return tuple(values) if self.as_tuple else values


@dataclass(frozen=True)
class Keyed:
    """Fan-out over a mapping; resolves to a dict with the same keys in the same order."""

    items: FrozenDict

    @classmethod
    def of(cls, value: Mapping[Any, Any]) -> Keyed:
        return cls(FrozenDict(value))


Awaitable: TypeAlias = Thunk | Promise | Nested | Ordered | Keyed

AWAITABLE_TYPES = (Thunk, Promise, Nested, Ordered, Keyed)


def is_future_like(value: Any) -> bool:
    return (
        isinstance(value, (ResultFuture, concurrent.futures.Future))
        or asyncio.isfuture(value)
        or inspect.isawaitable(value)
        or callable(getattr(value, "then", None))
    )


def classify(value: Any) -> Awaitable:
    """Map a yielded value onto exactly one awaitable kind.

    Checks run in precedence order; the first match wins:

    1. suspendable computation (SuspendableComputation, generator, generator function)
    2. future-like (ResultFuture, asyncio/concurrent future, awaitable, object
       with a two-continuation ``then``, coroutine function)
    3. list or tuple
    4. mapping
    5. any other callable, treated as a callback-style operation

    Raises:
        ClassificationError: when none of the above applies.
    """
    if isinstance(value, AWAITABLE_TYPES):
        return value
    if is_computation(value):
        return Nested.of(value)
    if inspect.isgeneratorfunction(value):
        return Nested.of(value)
    if is_future_like(value):
        return Promise(value)
    if inspect.iscoroutinefunction(value):
        return Promise(value())
    if isinstance(value, (list, tuple)):
        return Ordered.of(value)
    if isinstance(value, Mapping):
        return Keyed.of(value)
    if callable(value):
        return Thunk(value)
    raise ClassificationError(value)


def kind_name(awaitable: Awaitable) -> str:
    return type(awaitable).__name__.lower()


__all__ = [
    "AWAITABLE_TYPES",
    "Awaitable",
    "Keyed",
    "Nested",
    "Ordered",
    "Promise",
    "Thunk",
    "classify",
    "is_future_like",
    "kind_name",
]
