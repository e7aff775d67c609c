"""Explicit success/failure value returned by the Entrepot façade.

Backends raise typed errors; the higher-level operations (Locator.parse,
copy, add_metadata, Uploader.store) capture those into a Result so callers
can chain steps without try/except at every call site.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from entrepot.errors import EntrepotError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Result(Generic[T]):
    """Outcome of a fallible operation.

    Attributes:
        value: The produced value when the operation succeeded.
        error: The failure reason; an exception instance or a message.
            None means success.
    """

    value: T | None = None
    error: Any = None

    @classmethod
    def success(cls, value: T) -> Result[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: Any) -> Result[T]:
        if error is None:
            raise ValueError("failure requires an error value")
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the captured error.

        Exceptions are re-raised as-is; any other error value is wrapped in
        EntrepotError.
        """
        if self.error is None:
            return self.value  # type: ignore[return-value]
        if isinstance(self.error, BaseException):
            raise self.error
        raise EntrepotError(str(self.error))
