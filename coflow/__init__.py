"""
coflow: a generator-driven coroutine executor.

Write sequential-looking generator code that yields callback-style
operations, futures, nested generators, or collections of them, and let
``run`` drive it to completion::

    from coflow import run

    def program():
        a = yield fetch("a")                  # callback-style operation
        b, c = yield [fetch("b"), fetch("c")]  # parallel fan-out
        return a + b + c

    run(program).then(print)
"""

from coflow._vendor import Err, Ok, Result
from coflow.awaitables import Keyed, Nested, Ordered, Promise, Thunk, classify
from coflow.computation import (
    Done,
    Error,
    Failed,
    GeneratorComputation,
    SuspendableComputation,
    Suspended,
    Value,
)
from coflow.contract import subscribe
from coflow.decorators import coroutine
from coflow.driver import Driver, DriverState, run, run_sync
from coflow.errors import (
    ClassificationError,
    CoflowError,
    InvalidStateError,
    OperationError,
    ResumptionError,
)
from coflow.future import FutureState, ResultFuture
from coflow.thunks import thunkify, with_timeout

__all__ = [
    # Entry points
    "run",
    "run_sync",
    "coroutine",
    "Driver",
    "DriverState",
    # Futures
    "ResultFuture",
    "FutureState",
    "Result",
    "Ok",
    "Err",
    # Awaitable kinds
    "Thunk",
    "Promise",
    "Nested",
    "Ordered",
    "Keyed",
    "classify",
    "subscribe",
    # Step protocol
    "SuspendableComputation",
    "GeneratorComputation",
    "Value",
    "Error",
    "Suspended",
    "Done",
    "Failed",
    # Errors
    "CoflowError",
    "ClassificationError",
    "OperationError",
    "InvalidStateError",
    "ResumptionError",
    # Thunk helpers
    "thunkify",
    "with_timeout",
]
