"""Shared schema building blocks."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_core import PydanticCustomError

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(UTC)


class DomainModel(BaseModel):
    """Base for persisted entities handed out by repositories.

    Entities are immutable snapshots; ``from_attributes`` lets the SQL
    repositories build them straight from ORM rows.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)


class InputModel(BaseModel):
    """Base for operation inputs validated at the service boundary."""

    model_config = ConfigDict(frozen=True)


NO_CHANGES = "No fields to update"


class ChangeInput(InputModel):
    """Update input that must carry at least one field to change.

    Every field not named in ``identity_fields`` is a change; an input whose
    changes are all None fails validation, so no I/O happens for it.
    """

    identity_fields: ClassVar[tuple[str, ...]] = ()

    @model_validator(mode="after")
    def require_change(self) -> "ChangeInput":
        if not self.changes():
            raise PydanticCustomError("no_changes", NO_CHANGES)
        return self

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True, exclude=set(self.identity_fields))


class SortOrder(str, Enum):
    """Sort direction for list queries."""
    ASC = "asc"
    DESC = "desc"


class Pagination(BaseModel):
    """Pagination options accepted by every ``list`` repository method."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    order: SortOrder = SortOrder.ASC
    order_by: str = Field(default="created_at", min_length=1, max_length=50)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """One page of list results plus the total match count."""

    items: list[T]
    count: int
