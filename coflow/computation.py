"""Suspendable computation step protocol.

This module provides:
- Resumption types: Value, Error
- Step outcomes: Suspended, Done, Failed
- SuspendableComputation: the abstract step protocol the Driver consumes
- GeneratorComputation: adapter for Python generators
- Immediate: a computation that finishes on its first step
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import Any, TypeAlias

from coflow.errors import ResumptionError


# ============================================================================
# Resumption Types
# ============================================================================


@dataclass(frozen=True)
class Value:
    """Resume the computation with a value."""

    v: Any


@dataclass(frozen=True)
class Error:
    """Resume the computation by raising an exception at the suspension point."""

    ex: BaseException


Resumption: TypeAlias = Value | Error

START = Value(None)


# ============================================================================
# Step Outcomes
# ============================================================================


@dataclass(frozen=True)
class Suspended:
    """The computation paused and produced a value to be awaited."""

    yielded: Any


@dataclass(frozen=True)
class Done:
    """Terminal: computation completed successfully."""

    value: Any


@dataclass(frozen=True)
class Failed:
    """Terminal: computation failed with exception."""

    exception: BaseException


StepOutcome: TypeAlias = Suspended | Done | Failed


# ============================================================================
# Computations
# ============================================================================


class SuspendableComputation(ABC):
    """A computation that can pause at well-defined points and resume later.

    The first call to :meth:`step` must pass ``Value(None)``. Every later
    call answers exactly one ``Suspended`` outcome. Once ``Done`` or
    ``Failed`` has been returned the computation is finished and further
    steps raise :class:`ResumptionError`.
    """

    @abstractmethod
    def step(self, resumption: Resumption) -> StepOutcome:
        """Advance to the next suspension point or to termination."""


class GeneratorComputation(SuspendableComputation):
    """Drive a Python generator through the step protocol.

    ``Value`` is delivered with ``send`` and ``Error`` with ``throw``.
    ``StopIteration`` becomes ``Done``; any other ``Exception`` escaping the
    generator becomes ``Failed``.
    """

    def __init__(self, gen: Generator[Any, Any, Any]) -> None:
        if not inspect.isgenerator(gen):
            raise TypeError(f"Expected a generator, got {type(gen)!r}")
        self._gen = gen
        self._finished = False

    @property
    def finished(self) -> bool:
        return self._finished

    def step(self, resumption: Resumption) -> StepOutcome:
        if self._finished:
            raise ResumptionError(f"{self._gen!r} already finished")
        try:
            if isinstance(resumption, Error):
                yielded = self._gen.throw(resumption.ex)
            else:
                yielded = self._gen.send(resumption.v)
        except StopIteration as stop:
            self._finished = True
            return Done(stop.value)
        except Exception as exc:
            self._finished = True
            return Failed(exc)
        return Suspended(yielded)

    def __repr__(self) -> str:
        return f"GeneratorComputation({self._gen.__qualname__})"


class Immediate(SuspendableComputation):
    """A computation that finishes with ``value`` on its first step."""

    def __init__(self, value: Any) -> None:
        self._value = value
        self._finished = False

    def step(self, resumption: Resumption) -> StepOutcome:
        if self._finished:
            raise ResumptionError("Immediate computation already finished")
        self._finished = True
        if isinstance(resumption, Error):
            return Failed(resumption.ex)
        return Done(self._value)


def is_computation(value: Any) -> bool:
    """True for objects the Driver can step directly."""
    return isinstance(value, SuspendableComputation) or inspect.isgenerator(value)


def as_computation(
    target: Any,
    args: tuple[Any, ...] = (),
    kwargs: dict[str, Any] | None = None,
) -> SuspendableComputation:
    """Normalize ``target`` into a SuspendableComputation.

    ``target`` may be a computation, a generator, or a factory that is
    called with ``args``/``kwargs``. A factory returning anything else is
    treated as an immediate result. Exceptions raised by the factory
    propagate to the caller.
    """
    if not is_computation(target) and callable(target):
        factory: Callable[..., Any] = target
        target = factory(*args, **(kwargs or {}))
    if isinstance(target, SuspendableComputation):
        return target
    if inspect.isgenerator(target):
        return GeneratorComputation(target)
    return Immediate(target)


__all__ = [
    "START",
    "Done",
    "Error",
    "Failed",
    "GeneratorComputation",
    "Immediate",
    "Resumption",
    "StepOutcome",
    "SuspendableComputation",
    "Suspended",
    "Value",
    "as_computation",
    "is_computation",
]
