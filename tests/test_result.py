"""Tests for the Result value."""

from __future__ import annotations

import pytest

from entrepot.errors import EntrepotError, ObjectNotFoundError
from entrepot.result import Result


class TestResult:
    """Success and failure outcomes."""

    def test_success(self) -> None:
        result = Result.success(5)

        assert result.ok
        assert result.value == 5
        assert result.error is None
        assert result.unwrap() == 5

    def test_success_with_none_value(self) -> None:
        assert Result.success(None).ok

    def test_failure_with_exception(self) -> None:
        error = ObjectNotFoundError(storage="memory", key="a")
        result: Result[int] = Result.failure(error)

        assert not result.ok
        with pytest.raises(ObjectNotFoundError) as exc_info:
            result.unwrap()
        assert exc_info.value is error

    def test_failure_with_message(self) -> None:
        result: Result[int] = Result.failure("id must be a string")

        with pytest.raises(EntrepotError, match="id must be a string"):
            result.unwrap()

    def test_failure_requires_error(self) -> None:
        with pytest.raises(ValueError):
            Result.failure(None)

    def test_frozen(self) -> None:
        result = Result.success(1)

        with pytest.raises(AttributeError):
            result.value = 2  # type: ignore[misc]
