from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of an external fetch: either the provider's payload or a fallback with the reason."""
    value: T
    is_fallback: bool = False
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def fallback(cls, value: T, error: str) -> "Outcome[T]":
        return cls(value=value, is_fallback=True, error=error)
