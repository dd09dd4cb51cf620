from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Result of a core operation that never raises

    degraded is True when the operation failed and value is the permissive
    default that was used instead; error holds the cause.
    """
    value: T
    degraded: bool = False
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: BaseException) -> "Outcome[T]":
        return cls(value=value, degraded=True, error=error)
