"""Discriminated success/failure values.

Handlers, the validator and the replay engine return ``Ok`` or ``Err``
instead of raising, so a caller always sees which outcome it got.

Example:
    >>> result = validator.validate(request, today)
    >>> match result:
    ...     case Ok(value):
    ...         process(value)
    ...     case Err(error):
    ...         report(error)
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

from qledger.errors import LedgerError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the error that caused it."""

    error: LedgerError

    @property
    def is_ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the carried error."""
        raise self.error


Result = Ok[T] | Err
