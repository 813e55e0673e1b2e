"""Two-variant result type returned by every service operation.

Services never raise for expected failures. They return either ``Ok(value)``
or ``Err(error)`` so callers can tell validation, denial, not-found and
infrastructure failures apart at the call site:

    result = await okr_service.create_okr(payload)
    if result.is_err():
        return render_error(result.error)
    okr = result.value
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the produced value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying a typed error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self):
        raise RuntimeError(f"Called unwrap() on Err: {self.error!r}")


Result = Union[Ok[T], Err[E]]
