"""Result and the identifier aliases shared by the dispatch runtime."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, cast

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Result(Generic[T, E]):
    """Either a success value (Ok) or an expected failure (Err).

    The public server surface returns Result so callers can tell "the call
    failed for a known reason" (auth rejected, rate limited, unknown tool)
    apart from bugs, which still raise.

    Usage:
        result = await server.call_tool("s-1", "calculate", {"x": 1, "y": 2, "operation": "add"})
        if result.is_ok:
            print(result.value.text_content)
        else:
            log.warning("call.rejected", error=str(result.error))
    """

    _value: T | None
    _error: E | None
    _is_ok: bool

    @classmethod
    def ok(cls, value: T) -> Result[T, E]:
        """Create a successful Result containing the given value."""
        return cls(_value=value, _error=None, _is_ok=True)

    @classmethod
    def err(cls, error: E) -> Result[T, E]:
        """Create a failed Result containing the given error."""
        return cls(_value=None, _error=error, _is_ok=False)

    @property
    def is_ok(self) -> bool:
        """Return True if this Result is Ok."""
        return self._is_ok

    @property
    def is_err(self) -> bool:
        """Return True if this Result is Err."""
        return not self._is_ok

    def __repr__(self) -> str:
        if self._is_ok:
            return f"Ok({self._value!r})"
        return f"Err({self._error!r})"

    @property
    def value(self) -> T:
        """Return the Ok value.

        Raises:
            ValueError: If this Result is Err.
        """
        if not self._is_ok:
            msg = "Cannot access value on Err result"
            raise ValueError(msg)
        return cast(T, self._value)

    @property
    def error(self) -> E:
        """Return the Err value.

        Raises:
            ValueError: If this Result is Ok.
        """
        if self._is_ok:
            msg = "Cannot access error on Ok result"
            raise ValueError(msg)
        return cast(E, self._error)

    def unwrap(self) -> T:
        """Return the Ok value, re-raising the error if it is an exception.

        Raises:
            E: The wrapped error when it is an exception instance.
            ValueError: When the wrapped error is not an exception.
        """
        if self._is_ok:
            return cast(T, self._value)
        if isinstance(self._error, BaseException):
            raise self._error
        raise ValueError(str(self._error))


JSONDict = dict[str, Any]
"""Type alias for raw, untyped JSON objects (tool arguments, payloads)."""

SessionId = str
"""Type alias for opaque transport-issued session identifiers."""

CorrelationId = str
"""Type alias for the id linking a sampling request to its response."""
