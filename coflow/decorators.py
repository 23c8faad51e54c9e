"""
The coroutine decorator for coflow.

This module provides ``@coroutine``, which turns a generator function into
a plain function returning a ResultFuture.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable, Generator
from functools import wraps
from typing import Any, Generic, ParamSpec, TypeVar

from coflow.driver import run
from coflow.future import ResultFuture

P = ParamSpec("P")
T = TypeVar("T")


class CoroutineFunction(Generic[P, T]):
    """Callable wrapper produced by :func:`coroutine`."""

    def __init__(self, func: Callable[P, Generator[Any, Any, T]]) -> None:
        if not inspect.isgeneratorfunction(func):
            raise TypeError(f"@coroutine expects a generator function, got {func!r}")
        self.original_func = func
        wraps(func)(self)

        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            signature = None
        if signature is not None:
            self.__signature__ = signature

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> ResultFuture[T]:
        return run(self.original_func, *args, **kwargs)

    def __get__(self, instance: Any, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return _BoundCoroutine(self, instance)

    @property
    def original_generator(self) -> Callable[P, Generator[Any, Any, T]]:
        """Expose the user-defined generator for callers that want to drive it themselves."""

        return self.original_func

    def __repr__(self) -> str:
        return f"<coroutine {self.original_func.__qualname__}>"


class _BoundCoroutine:
    def __init__(self, function: CoroutineFunction[Any, Any], instance: Any) -> None:
        self._function = function
        self._instance = instance

    def __call__(self, *args: Any, **kwargs: Any) -> ResultFuture[Any]:
        return self._function(self._instance, *args, **kwargs)


def coroutine(func: Callable[P, Generator[Any, Any, T]]) -> CoroutineFunction[P, T]:
    """
    Decorator that makes a generator function start a run when called.

    Each call drives a fresh generator with :func:`coflow.run` and returns
    its ResultFuture. Because the ResultFuture is future-like, a decorated
    function can be yielded from another computation.

    Usage:
        @coroutine
        def read_config(path):
            raw = yield read_file(path)
            return parse(raw)

        future = read_config("app.toml")   # ResultFuture

        def main():
            config = yield read_config("app.toml")
            ...

    Args:
        func: A generator function yielding awaitables and returning T

    Returns:
        CoroutineFunction whose calls return ResultFuture[T]
    """

    return CoroutineFunction(func)


__all__ = ["CoroutineFunction", "coroutine"]
