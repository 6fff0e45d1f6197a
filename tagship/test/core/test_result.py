"""Tests for tagship.core.result module."""

import pytest

from tagship.core.result import Err, Ok, Result, is_err, is_ok


class TestOk:
    def test_value_and_flags(self) -> None:
        result = Ok(42)
        assert result.value == 42
        assert result.is_ok() is True
        assert result.is_err() is False

    def test_unwrap(self) -> None:
        assert Ok("v1.2.3").unwrap() == "v1.2.3"
        assert Ok(1).unwrap_or(0) == 1

    def test_map(self) -> None:
        assert Ok(2).map(lambda x: x * 10) == Ok(20)

    def test_map_err_is_noop(self) -> None:
        result = Ok(1)
        assert result.map_err(str) is result


class TestErr:
    def test_error_and_flags(self) -> None:
        result = Err("boom")
        assert result.error == "boom"
        assert result.is_ok() is False
        assert result.is_err() is True

    def test_unwrap_raises(self) -> None:
        with pytest.raises(ValueError, match="called unwrap on Err: boom"):
            Err("boom").unwrap()

    def test_unwrap_or_returns_default(self) -> None:
        assert Err("boom").unwrap_or(7) == 7

    def test_map_err_translates_error(self) -> None:
        assert Err(404).map_err(lambda code: f"HTTP {code}") == Err("HTTP 404")

    def test_map_is_noop(self) -> None:
        result = Err("boom")
        assert result.map(lambda x: x) is result


def test_type_guards() -> None:
    ok: Result[int, str] = Ok(1)
    err: Result[int, str] = Err("x")
    assert is_ok(ok) and not is_err(ok)
    assert is_err(err) and not is_ok(err)


def test_pattern_matching() -> None:
    match Ok("v1"):
        case Ok(value):
            assert value == "v1"
        case Err():
            pytest.fail("expected Ok")
