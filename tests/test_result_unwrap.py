"""Result sum type and TraceError formatting."""

import pytest

from coflow import Err, Ok, run
from coflow._vendor import FrozenDict, trace_err


def program_ok():
    return (yield lambda done: done(None, 10))


def program_err():
    yield lambda done: done(ValueError("boom"))


def test_unwrap_ok():
    result = run(program_ok).to_result()

    assert result == Ok(10)
    assert result.is_ok()
    assert not result.is_err()
    assert result.unwrap() == 10


def test_unwrap_err():
    result = run(program_err).to_result()

    assert isinstance(result, Err)
    assert result.is_err()
    assert not result.is_ok()
    assert str(result.error) == "boom"
    with pytest.raises(ValueError, match="boom"):
        result.unwrap()


def test_err_unwrap_raises_the_same_instance():
    error = KeyError("k")
    with pytest.raises(KeyError) as info:
        Err(error).unwrap()
    assert info.value is error


def test_trace_err_formatting():
    try:
        raise ValueError("traced")
    except ValueError as exc:
        traced = trace_err(exc, "test_result_unwrap.py:1 in caller")

    text = str(traced)
    assert text.startswith("[ValueError] traced")
    assert "----- Exception Traceback -----" in text
    assert "----- Run Started At -----" in text
    assert traced.exc.args == ("traced",)


def test_frozen_dict_is_hashable():
    items = FrozenDict({"a": 1})
    assert hash(items) == hash(FrozenDict({"a": 1}))
    with pytest.raises(TypeError):
        items["b"] = 2  # type: ignore[index]
