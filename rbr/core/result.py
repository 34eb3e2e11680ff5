"""Result type for explicit error handling.

Pipeline steps return ``Ok(value)`` or ``Err(error)`` instead of raising, so
a branch can stop at the first failing step and report the error value as-is.

Usage:
    match package_binary(built, ...):
        case Ok(artifact):
            publish(artifact)
        case Err(failure):
            console.error(failure.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeAlias, TypeVar

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result carrying ``value``."""

    value: T

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed result carrying ``error``."""

    error: E

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result: TypeAlias = Ok[T] | Err[E]
