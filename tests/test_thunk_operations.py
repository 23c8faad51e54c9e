"""Driving generators that yield callback-style operations."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import pytest

from coflow import ClassificationError, OperationError, run
from coflow.errors import SUPPORTED_KINDS

if TYPE_CHECKING:
    from tests.conftest import OperationFactory


class TestYields:
    def test_no_yields_settles_before_run_returns(self) -> None:
        def program():
            return "done"
            yield  # pragma: no cover

        future = run(program)
        assert future.done()
        assert future.result() == "done"

    @pytest.mark.asyncio
    async def test_one_yield(self, get: OperationFactory) -> None:
        def program():
            a = yield get(1)
            assert a == 1
            return a

        assert await run(program) == 1

    @pytest.mark.asyncio
    async def test_several_yields(self, get: OperationFactory) -> None:
        def program():
            a = yield get(1)
            b = yield get(2)
            c = yield get(3)
            return [a, b, c]

        assert await run(program) == [1, 2, 3]

    def test_many_values_become_a_list(self) -> None:
        def exec_(cmd: str):
            def operation(done):
                done(None, "stdout", "stderr")

            return operation

        def program():
            out = yield exec_("something")
            return out

        assert run(program).result() == ["stdout", "stderr"]

    def test_no_values_resolve_to_none(self) -> None:
        def program():
            return (yield lambda done: done())

        assert run(program).result() is None

    def test_sequential_values_without_interleaving(self, get_now: OperationFactory) -> None:
        seen = []

        def program():
            for i in range(50):
                seen.append((yield get_now(i)))
            return len(seen)

        assert run(program).result() == 50
        assert seen == list(range(50))


class TestReturnValues:
    @pytest.mark.asyncio
    async def test_return_value_is_passed(self, get: OperationFactory) -> None:
        def program():
            return [(yield get(1)), (yield get(2)), (yield get(3))]

        assert await run(program) == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_nested_return_value(self, get: OperationFactory) -> None:
        def program():
            other = yield run(inner)
            return [(yield get(1)), (yield get(2)), (yield get(3))] + other

        def inner():
            return [(yield get(4)), (yield get(5)), (yield get(6))]

        assert await run(program) == [1, 2, 3, 4, 5, 6]


class TestNestedRuns:
    @pytest.mark.asyncio
    async def test_nested_runs_execute_in_order(self, get: OperationFactory) -> None:
        hit: list[str] = []

        def three():
            hit.append("three")
            return [(yield get(1)), (yield get(2)), (yield get(3))]

        def two():
            hit.append("two")
            values = [(yield get(1)), (yield get(2)), (yield get(3))]
            assert values == [1, 2, 3]
            return (yield run(three))

        def four():
            hit.append("four")
            return [(yield get(1)), (yield get(2)), (yield get(3))]

        def program():
            values = [(yield get(1)), (yield get(2)), (yield get(3))]
            hit.append("one")
            assert values == [1, 2, 3]
            assert (yield run(two)) == [1, 2, 3]
            assert (yield run(four)) == [1, 2, 3]
            return hit

        assert await run(program) == ["one", "two", "three", "four"]


class TestErrors:
    @pytest.mark.asyncio
    async def test_sync_raise_is_caught(self, get: OperationFactory) -> None:
        def program():
            try:
                yield get(1, error=ValueError("boom"))
            except ValueError as err:
                return str(err)

        assert await run(program) == "boom"

    @pytest.mark.asyncio
    async def test_error_passed_throws_and_resumes(self, get: OperationFactory) -> None:
        def program():
            try:
                yield get(1, err=ValueError("boom"))
            except ValueError as err:
                error = err
            assert str(error) == "boom"
            return (yield get(1))

        assert await run(program) == 1

    @pytest.mark.asyncio
    async def test_errors_are_independent(self, get: OperationFactory) -> None:
        errors = []

        def program():
            try:
                yield get(1, err=ValueError("foo"))
            except ValueError as err:
                errors.append(str(err))
            try:
                yield get(1, err=ValueError("bar"))
            except ValueError as err:
                errors.append(str(err))
            return errors

        assert await run(program) == ["foo", "bar"]

    @pytest.mark.asyncio
    async def test_sync_raises_are_independent(self, get: OperationFactory) -> None:
        errors = []

        def program():
            try:
                yield get(1, error=ValueError("foo"))
            except ValueError as err:
                errors.append(str(err))
            try:
                yield get(1, error=ValueError("bar"))
            except ValueError as err:
                errors.append(str(err))
            return errors

        assert await run(program) == ["foo", "bar"]

    @pytest.mark.asyncio
    async def test_future_raise_escapes(self, get: OperationFactory) -> None:
        reached = []

        def program():
            yield get(1)
            yield get(2, error=ValueError("fail"))
            reached.append(True)  # pragma: no cover
            yield get(3)  # pragma: no cover

        with pytest.raises(ValueError, match="fail"):
            await run(program)
        assert reached == []

    @pytest.mark.asyncio
    async def test_signalled_error_escapes(self, get: OperationFactory) -> None:
        def program():
            yield get(1)
            yield get(2, err=ValueError("fail"))
            yield get(3)  # pragma: no cover

        with pytest.raises(ValueError, match="fail"):
            await run(program)

    def test_error_before_first_yield(self) -> None:
        error = ValueError("fail")

        def program():
            raise error
            yield  # pragma: no cover

        future = run(program)
        assert future.failed()
        assert future.exception() is error

    def test_non_exception_payload_is_wrapped(self) -> None:
        def program():
            yield lambda done: done("disk full")

        error = run(program).exception()
        assert isinstance(error, OperationError)
        assert error.reason == "disk full"


class TestFirstSignalWins:
    """An operation that signals and then misbehaves contributes only its first signal."""

    def test_error_then_raise_reports_first(self) -> None:
        def failing(done):
            done(ValueError("first"))
            raise ValueError("second")

        def program():
            yield failing

        future = run(program)
        assert future.failed()
        assert str(future.exception()) == "first"

    def test_second_error_never_reaches_the_computation(self) -> None:
        observed = []

        def failing(done):
            done(ValueError("first"))
            raise ValueError("second")

        def program():
            try:
                yield failing
            except ValueError as err:
                observed.append(str(err))
            observed.append((yield lambda done: done(None, "after")))
            return observed

        assert run(program).result() == ["first", "after"]

    def test_value_then_raise_keeps_value(self) -> None:
        def succeeding(done):
            done(None, 1)
            raise RuntimeError("late")

        def program():
            return (yield succeeding)

        assert run(program).result() == 1

    def test_repeated_done_is_ignored(self) -> None:
        def chatty(done):
            done(None, 1)
            done(None, 2)
            done(ValueError("three"))

        def program():
            return (yield chatty)

        assert run(program).result() == 1

    @pytest.mark.asyncio
    async def test_late_signal_after_raise_is_ignored(self, get: OperationFactory) -> None:
        def raising(done):
            asyncio.get_running_loop().call_later(0.01, done, None, "late")
            raise ValueError("raised")

        def program():
            try:
                yield raising
            except ValueError as err:
                first = str(err)
            second = yield get("next", delay=0.03)
            return first, second

        assert await run(program) == ("raised", "next")

    def test_discarded_signal_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        caplog.set_level(logging.DEBUG, logger="coflow.contract")

        def failing(done):
            done(ValueError("first"))
            raise ValueError("second")

        def program():
            yield failing

        run(program)
        assert any("second" in record.getMessage() for record in caplog.records)


class TestUnclassifiable:
    def test_yielding_a_string_throws_twice(self) -> None:
        errors = []

        def program():
            try:
                yield "something"
            except ClassificationError as err:
                errors.append(str(err))
            try:
                yield "something"
            except ClassificationError as err:
                errors.append(str(err))
            return errors

        result = run(program).result()
        assert len(result) == 2
        msg = "yield a function, promise, generator, array,"
        assert msg in result[0]
        assert msg in result[1]

    def test_uncaught_classification_error_fails_the_run(self) -> None:
        def program():
            yield 42

        error = run(program).exception()
        assert isinstance(error, ClassificationError)
        assert error.value == 42
        assert SUPPORTED_KINDS in str(error)
