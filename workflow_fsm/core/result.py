"""
Tagged operation results.

Every engine entry point returns either ``Ok(value)`` or ``Err(kind, errors)``
instead of raising, so callers branch on the outcome without try/except.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failed operation."""

    VALIDATION = "validation"  # Blocking validation error
    NOT_FOUND = "not_found"    # Referenced definition/instance/state/action is absent
    OPERATION = "operation"    # Unexpected internal failure


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the produced or requested value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying human-readable diagnostics."""

    kind: ErrorKind
    errors: list[str] = field(default_factory=list)

    @property
    def is_ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def validation_error(*messages: str) -> Err:
    return Err(ErrorKind.VALIDATION, list(messages))


def not_found(*messages: str) -> Err:
    return Err(ErrorKind.NOT_FOUND, list(messages))


def operation_error(activity: str) -> Err:
    """Generic internal failure; never exposes the underlying exception."""
    return Err(
        ErrorKind.OPERATION,
        [f"An unexpected error occurred while {activity}"],
    )
