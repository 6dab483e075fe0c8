"""
Result envelope for per-version success/failure handling.

Each protocol version is synthesized independently. Rather than letting the
first failing version raise out of the batch loop, per-version work returns
``Ok(release)`` or ``Err(error)`` and the caller partitions the results at
the end, so one broken version never prevents the others from publishing.

Architecture:
    ::

        ┌──────────────────────────────────────────────┐
        │                 Result[T]                     │
        ├───────────────┬───────────────┬──────────────┤
        │    Ok[T]      │    Err[T]     │  Utilities   │
        ├───────────────┼───────────────┼──────────────┤
        │ • value: T    │ • error: Exc  │ • partition_ │
        │ • is_err()    │ • is_err()    │   results    │
        └───────────────┴───────────────┴──────────────┘

Examples:
    >>> from protorelease.core.result import Ok, Err, partition_results
    >>> values, errors = partition_results([Ok(1), Err(ValueError("x")), Ok(2)])
    >>> values
    [1, 2]
    >>> len(errors)
    1
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_err(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """Failed result containing an error."""

    error: Exception

    def is_err(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


# Type alias for Result
Result = Ok[T] | Err[T]


def partition_results(
    results: list[Result[T]],
) -> tuple[list[T], list[Exception]]:
    """
    Partition results into successes and failures, preserving order.

    Args:
        results: List of Result[T] to partition

    Returns:
        Tuple of (values from Ok, errors from Err)
    """
    values: list[T] = []
    errors: list[Exception] = []
    for result in results:
        if isinstance(result, Ok):
            values.append(result.value)
        else:
            errors.append(result.error)
    return values, errors


__all__ = ["Ok", "Err", "Result", "partition_results"]
