"""OKR, key result and review schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from .common import ChangeInput, DomainModel, InputModel, Pagination


class OkrType(str, Enum):
    """Scope of an objective."""
    TEAM = "team"
    PERSONAL = "personal"


class ReviewType(str, Enum):
    PROGRESS = "progress"
    FINAL = "final"


class Quarter(BaseModel):
    year: int = Field(..., ge=2000, le=3000)
    quarter: int = Field(..., ge=1, le=4)


class Okr(DomainModel):
    id: UUID
    title: str
    description: Optional[str] = None
    type: OkrType
    team_id: UUID
    owner_id: Optional[UUID] = None
    quarter_year: int
    quarter_quarter: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_ownerless(self) -> bool:
        return self.owner_id is None


class KeyResult(DomainModel):
    id: UUID
    okr_id: UUID
    title: str
    target_value: float
    current_value: float = 0
    unit: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @property
    def completion(self) -> float:
        """Completion ratio capped at 1.0; a zero target counts as done."""
        if self.target_value <= 0:
            return 1.0
        return min(self.current_value / self.target_value, 1.0)


class Review(DomainModel):
    id: UUID
    okr_id: UUID
    type: ReviewType
    content: str
    reviewer_id: UUID
    created_at: datetime
    updated_at: datetime


class OkrWithKeyResults(Okr):
    """An objective together with its key results."""

    key_results: list[KeyResult] = Field(default_factory=list)

    @computed_field
    @property
    def progress(self) -> float:
        """Average key result completion as a 0-100 percentage."""
        if not self.key_results:
            return 0.0
        total = sum(kr.completion for kr in self.key_results)
        return round(total / len(self.key_results) * 100, 1)


# =============================================================================
# Repository parameters
# =============================================================================


class CreateOkrParams(BaseModel):
    title: str
    description: Optional[str] = None
    type: OkrType
    team_id: UUID
    owner_id: Optional[UUID] = None
    quarter_year: int
    quarter_quarter: int


class UpdateOkrParams(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class OkrFilter(BaseModel):
    team_id: Optional[UUID] = None
    owner_id: Optional[UUID] = None
    type: Optional[OkrType] = None
    year: Optional[int] = Field(None, ge=2020, le=2100)
    quarter: Optional[int] = Field(None, ge=1, le=4)


class CreateKeyResultParams(BaseModel):
    okr_id: UUID
    title: str
    target_value: float
    current_value: float = 0
    unit: Optional[str] = None


class UpdateKeyResultParams(BaseModel):
    title: Optional[str] = None
    target_value: Optional[float] = None
    current_value: Optional[float] = None
    unit: Optional[str] = None


class CreateReviewParams(BaseModel):
    okr_id: UUID
    type: ReviewType
    content: str
    reviewer_id: UUID


class UpdateReviewParams(BaseModel):
    content: Optional[str] = None


# =============================================================================
# Operation inputs
# =============================================================================


class KeyResultDraft(InputModel):
    """Key result supplied together with a new OKR."""

    title: str = Field(..., min_length=1, max_length=200)
    target_value: float = Field(..., ge=0, allow_inf_nan=False)
    unit: Optional[str] = Field(None, max_length=50)


class CreateOkrInput(InputModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    type: OkrType
    team_id: UUID
    user_id: UUID
    # None on a team OKR means ownerless; personal OKRs default to the actor
    owner_id: Optional[UUID] = None
    quarter: Quarter
    key_results: list[KeyResultDraft] = Field(..., min_length=1, max_length=5)


class OkrActorInput(InputModel):
    okr_id: UUID
    user_id: UUID


class ListTeamOkrsInput(InputModel):
    team_id: UUID
    user_id: UUID
    type: Optional[OkrType] = None
    owner_id: Optional[UUID] = None
    year: Optional[int] = Field(None, ge=2020, le=2100)
    quarter: Optional[int] = Field(None, ge=1, le=4)
    pagination: Pagination = Field(default_factory=Pagination)


class UpdateOkrInput(OkrActorInput, ChangeInput):
    identity_fields = ("okr_id", "user_id")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)


class KeyResultActorInput(InputModel):
    key_result_id: UUID
    user_id: UUID


class UpdateKeyResultInput(KeyResultActorInput, ChangeInput):
    identity_fields = ("key_result_id", "user_id")

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    target_value: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    current_value: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    unit: Optional[str] = Field(None, max_length=50)


class UpdateKeyResultProgressInput(KeyResultActorInput):
    current_value: float = Field(..., ge=0, allow_inf_nan=False)


class CreateReviewInput(InputModel):
    okr_id: UUID
    type: ReviewType
    content: str = Field(..., min_length=1, max_length=2000)
    reviewer_id: UUID


class ListReviewsInput(OkrActorInput):
    type: Optional[ReviewType] = None


class ReviewActorInput(InputModel):
    review_id: UUID
    user_id: UUID


class UpdateReviewInput(ReviewActorInput, ChangeInput):
    identity_fields = ("review_id", "user_id")

    content: Optional[str] = Field(None, min_length=1, max_length=2000)
