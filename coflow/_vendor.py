"""
Minimal result and trace types shared across coflow.

``Result`` is the sum type returned by :meth:`ResultFuture.to_result`;
``TraceError`` attaches a formatted traceback plus the ``run()`` call site.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass
from typing import Generic, NoReturn, TypeVar

from frozendict import frozendict

# =========================================================
# Type Vars
# =========================================================
T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)


class Result(Generic[T_co]):
    """Settled outcome of a run: ``Ok(value)`` or ``Err(error)``."""

    __slots__ = ()

    def is_ok(self) -> bool:
        return isinstance(self, Ok)

    def is_err(self) -> bool:
        return isinstance(self, Err)

    def unwrap(self) -> T_co:
        """Return the value, or raise the error the run failed with."""
        raise NotImplementedError


@dataclass(frozen=True)
class Ok(Result[T], Generic[T]):
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Result[NoReturn]):
    error: BaseException

    def unwrap(self) -> NoReturn:
        raise self.error


# =========================================================
# Trace Error
# =========================================================
@dataclass(frozen=True)
class TraceError(Exception):
    """Exception with formatted traceback and the call site that started the run."""

    exc: BaseException
    tb: str
    created_at: str | None = None

    def __str__(self) -> str:
        lines: list[str] = []
        lines.append(f"[{self.exc.__class__.__name__}] {self.exc}")
        if self.tb:
            lines.append("----- Exception Traceback -----")
            lines.append(self.tb.rstrip())
        if self.created_at:
            lines.append("----- Run Started At -----")
            lines.append(self.created_at.rstrip())
        return "\n".join(lines)


def trace_err(e: BaseException, created_at: str | None = None) -> TraceError:
    """Create TraceError from exception."""
    tb_str = "".join(traceback.format_exception(e.__class__, e, e.__traceback__))
    return TraceError(e, tb_str, created_at)


# =========================================================
# Frozen Dict
# =========================================================
FrozenDict = frozendict

__all__ = [
    "Err",
    "FrozenDict",
    "Ok",
    "Result",
    "TraceError",
    "trace_err",
]
