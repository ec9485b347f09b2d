"""Tagged result type for operations that fail softly."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar


T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Result(Generic[T, E]):
    """Either a success value (which may itself be ``None``) or an error.

    ``Result.ok(None)`` is a legitimate success: an update check that found
    nothing to do is not a failed check.
    """

    value: Optional[T] = None
    error: Optional[E] = None

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(error=error)

    def is_ok(self) -> bool:
        return self.error is None

    def is_err(self) -> bool:
        return self.error is not None

    def unwrap(self) -> Optional[T]:
        if self.error is not None:
            raise RuntimeError(f"Tried to unwrap error result: {self.error}")
        return self.value

    def value_or_none(self) -> Optional[T]:
        """Return the success value, collapsing an error into ``None``."""

        return self.value if self.error is None else None


__all__ = ["Result"]
