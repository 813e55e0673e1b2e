"""Repository ports.

One protocol per entity. Every method is a single, independently-failing
operation: it returns the requested value (``None`` when a lookup finds
nothing) or raises a ``RepositoryError``. Two storage guarantees are part of
the contract because the invitation flow relies on them:

- ``TeamMemberRepository.create`` raises ``UniqueViolationError`` when the
  (team_id, user_id) pair already exists.
- ``InvitationRepository.update_status`` is a compare-and-swap: it raises
  ``StaleStateError`` unless the stored status equals ``expected``.
"""

from __future__ import annotations

from typing import Optional, Protocol
from uuid import UUID

from okrkeeper.schemas.common import Page, Pagination
from okrkeeper.schemas.okr import (
    CreateKeyResultParams,
    CreateOkrParams,
    CreateReviewParams,
    KeyResult,
    Okr,
    OkrFilter,
    OkrWithKeyResults,
    Review,
    ReviewType,
    UpdateKeyResultParams,
    UpdateOkrParams,
    UpdateReviewParams,
)
from okrkeeper.schemas.team import (
    CreateInvitationParams,
    CreateTeamParams,
    Invitation,
    InvitationFilter,
    InvitationStatus,
    MemberFilter,
    Team,
    TeamMember,
    TeamRole,
    UpdateTeamParams,
)
from okrkeeper.schemas.user import CreateUserParams, UpdateUserParams, User


class RepositoryError(Exception):
    """Base exception for storage failures."""
    pass


class UniqueViolationError(RepositoryError):
    """A uniqueness constraint rejected the write."""
    pass


class StaleStateError(RepositoryError):
    """A conditional update found the row in an unexpected state."""
    pass


class RecordNotFoundError(RepositoryError):
    """An update or delete targeted a row that does not exist."""
    pass


class UserRepository(Protocol):
    async def create(self, params: CreateUserParams) -> User: ...

    async def get_by_id(self, user_id: UUID) -> Optional[User]: ...

    async def get_by_email(self, email: str) -> Optional[User]: ...

    async def update(self, user_id: UUID, params: UpdateUserParams) -> User: ...


class TeamRepository(Protocol):
    async def create(self, params: CreateTeamParams) -> Team: ...

    async def get_by_id(self, team_id: UUID) -> Optional[Team]: ...

    async def update(self, team_id: UUID, params: UpdateTeamParams) -> Team: ...

    async def delete(self, team_id: UUID) -> None:
        """Delete the team and cascade its members, invitations and OKRs."""
        ...

    async def list_by_user(self, user_id: UUID) -> list[Team]:
        """Teams the user belongs to, by name."""
        ...


class TeamMemberRepository(Protocol):
    async def create(self, team_id: UUID, user_id: UUID, role: TeamRole) -> TeamMember:
        """Insert a membership; raises UniqueViolationError on a duplicate pair."""
        ...

    async def get(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]: ...

    async def update_role(self, team_id: UUID, user_id: UUID, role: TeamRole) -> TeamMember: ...

    async def delete(self, team_id: UUID, user_id: UUID) -> None: ...

    async def list(
        self,
        team_id: UUID,
        pagination: Pagination,
        filter: Optional[MemberFilter] = None,
    ) -> Page[TeamMember]: ...

    async def list_by_team(self, team_id: UUID) -> list[TeamMember]:
        """Every member of the team, oldest first."""
        ...

    async def count_by_team(self, team_id: UUID) -> int: ...


class InvitationRepository(Protocol):
    async def create(self, params: CreateInvitationParams) -> Invitation:
        """Insert a pending invitation; raises UniqueViolationError when one
        is already pending for the same (team_id, invited_email)."""
        ...

    async def get_by_id(self, invitation_id: UUID) -> Optional[Invitation]: ...

    async def get_pending(self, team_id: UUID, invited_email: str) -> Optional[Invitation]: ...

    async def update_status(
        self,
        invitation_id: UUID,
        status: InvitationStatus,
        expected: InvitationStatus = InvitationStatus.PENDING,
    ) -> Invitation:
        """Compare-and-swap the status; raises StaleStateError on mismatch."""
        ...

    async def list(
        self, pagination: Pagination, filter: Optional[InvitationFilter] = None
    ) -> Page[Invitation]: ...

    async def list_by_email(
        self, email: str, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]: ...


class OkrRepository(Protocol):
    async def create(self, params: CreateOkrParams) -> Okr: ...

    async def get_by_id(self, okr_id: UUID) -> Optional[OkrWithKeyResults]: ...

    async def update(self, okr_id: UUID, params: UpdateOkrParams) -> Okr: ...

    async def delete(self, okr_id: UUID) -> None:
        """Delete the OKR and cascade its key results and reviews."""
        ...

    async def list(
        self, pagination: Pagination, filter: Optional[OkrFilter] = None
    ) -> Page[OkrWithKeyResults]: ...


class KeyResultRepository(Protocol):
    async def create(self, params: CreateKeyResultParams) -> KeyResult: ...

    async def get_by_id(self, key_result_id: UUID) -> Optional[KeyResult]: ...

    async def update(self, key_result_id: UUID, params: UpdateKeyResultParams) -> KeyResult: ...

    async def update_progress(self, key_result_id: UUID, current_value: float) -> KeyResult: ...

    async def delete(self, key_result_id: UUID) -> None: ...


class ReviewRepository(Protocol):
    async def create(self, params: CreateReviewParams) -> Review: ...

    async def get_by_id(self, review_id: UUID) -> Optional[Review]: ...

    async def update(self, review_id: UUID, params: UpdateReviewParams) -> Review: ...

    async def delete(self, review_id: UUID) -> None: ...

    async def list_by_okr(
        self, okr_id: UUID, type: Optional[ReviewType] = None
    ) -> list[Review]:
        """The OKR's reviews, optionally of one type, newest first."""
        ...
