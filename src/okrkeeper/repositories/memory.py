"""In-memory repositories.

All repositories share one ``InMemoryStore`` so cascades (team → members,
invitations, OKRs; OKR → key results, reviews) behave like the SQL schema.

Every method yields to the event loop once before touching the store, which
lets concurrent service calls interleave between repository calls the way
they would against a real database. The check-and-write inside a single
method never awaits, so each call is atomic under asyncio; that is what makes
the membership uniqueness check and the invitation compare-and-swap hold.

Failures can be injected per operation for error-path tests:

    store.fail("key_results.create", "disk full")
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, TypeVar

from okrkeeper.schemas.common import Page, Pagination, SortOrder, utcnow
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

from .ports import RecordNotFoundError, RepositoryError, StaleStateError, UniqueViolationError

T = TypeVar("T")


@dataclass
class InMemoryStore:
    """Shared tables for the in-memory repositories."""

    users: dict[uuid.UUID, User] = field(default_factory=dict)
    teams: dict[uuid.UUID, Team] = field(default_factory=dict)
    members: dict[tuple[uuid.UUID, uuid.UUID], TeamMember] = field(default_factory=dict)
    invitations: dict[uuid.UUID, Invitation] = field(default_factory=dict)
    okrs: dict[uuid.UUID, Okr] = field(default_factory=dict)
    key_results: dict[uuid.UUID, KeyResult] = field(default_factory=dict)
    reviews: dict[uuid.UUID, Review] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)

    def fail(self, operation: str, message: str = "Simulated storage failure") -> None:
        """Make ``operation`` (e.g. ``"okrs.create"``) raise RepositoryError."""
        self.failures[operation] = message

    def recover(self, operation: Optional[str] = None) -> None:
        """Clear one injected failure, or all of them."""
        if operation is None:
            self.failures.clear()
        else:
            self.failures.pop(operation, None)

    # Cascades shared by several repositories

    def drop_okr(self, okr_id: uuid.UUID) -> None:
        self.okrs.pop(okr_id, None)
        for kr_id in [k.id for k in self.key_results.values() if k.okr_id == okr_id]:
            del self.key_results[kr_id]
        for review_id in [r.id for r in self.reviews.values() if r.okr_id == okr_id]:
            del self.reviews[review_id]

    def okr_with_key_results(self, okr: Okr) -> OkrWithKeyResults:
        key_results = sorted(
            (k for k in self.key_results.values() if k.okr_id == okr.id),
            key=lambda k: k.created_at,
        )
        return OkrWithKeyResults(**okr.model_dump(), key_results=key_results)


def _paginate(items: Iterable[T], pagination: Pagination) -> Page[T]:
    def sort_key(item: Any) -> Any:
        value = getattr(item, pagination.order_by, None)
        if value is None:
            value = getattr(item, "created_at", None) or getattr(item, "joined_at", None)
        return value

    ordered = sorted(
        items,
        key=sort_key,
        reverse=pagination.order == SortOrder.DESC,
    )
    start = pagination.offset
    return Page(items=ordered[start:start + pagination.limit], count=len(ordered))


class _InMemoryRepository:
    table: str = ""

    def __init__(self, store: InMemoryStore):
        self.store = store

    async def _checkpoint(self, operation: str) -> None:
        await asyncio.sleep(0)
        message = self.store.failures.get(f"{self.table}.{operation}")
        if message is not None:
            raise RepositoryError(message)

    @staticmethod
    def _changes(params: Any) -> dict[str, Any]:
        return params.model_dump(exclude_none=True)

    @staticmethod
    def _require(value: Optional[T], what: str) -> T:
        if value is None:
            raise RecordNotFoundError(f"{what} does not exist")
        return value


class InMemoryUserRepository(_InMemoryRepository):
    table = "users"

    async def create(self, params: CreateUserParams) -> User:
        await self._checkpoint("create")
        if any(u.email == params.email for u in self.store.users.values()):
            raise UniqueViolationError(f"User with email {params.email} already exists")
        now = utcnow()
        user = User(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        self.store.users[user.id] = user
        return user

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        await self._checkpoint("get_by_id")
        return self.store.users.get(user_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        await self._checkpoint("get_by_email")
        return next((u for u in self.store.users.values() if u.email == email), None)

    async def update(self, user_id: uuid.UUID, params: UpdateUserParams) -> User:
        await self._checkpoint("update")
        user = self._require(self.store.users.get(user_id), f"User {user_id}")
        user = user.model_copy(update={**self._changes(params), "updated_at": utcnow()})
        self.store.users[user_id] = user
        return user


class InMemoryTeamRepository(_InMemoryRepository):
    table = "teams"

    async def create(self, params: CreateTeamParams) -> Team:
        await self._checkpoint("create")
        now = utcnow()
        team = Team(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        self.store.teams[team.id] = team
        return team

    async def get_by_id(self, team_id: uuid.UUID) -> Optional[Team]:
        await self._checkpoint("get_by_id")
        return self.store.teams.get(team_id)

    async def update(self, team_id: uuid.UUID, params: UpdateTeamParams) -> Team:
        await self._checkpoint("update")
        team = self._require(self.store.teams.get(team_id), f"Team {team_id}")
        team = team.model_copy(update={**self._changes(params), "updated_at": utcnow()})
        self.store.teams[team_id] = team
        return team

    async def delete(self, team_id: uuid.UUID) -> None:
        await self._checkpoint("delete")
        self._require(self.store.teams.pop(team_id, None), f"Team {team_id}")
        for key in [k for k in self.store.members if k[0] == team_id]:
            del self.store.members[key]
        for inv_id in [i.id for i in self.store.invitations.values() if i.team_id == team_id]:
            del self.store.invitations[inv_id]
        for okr_id in [o.id for o in self.store.okrs.values() if o.team_id == team_id]:
            self.store.drop_okr(okr_id)

    async def list_by_user(self, user_id: uuid.UUID) -> list[Team]:
        await self._checkpoint("list_by_user")
        team_ids = {k[0] for k in self.store.members if k[1] == user_id}
        return sorted(
            (t for t in self.store.teams.values() if t.id in team_ids),
            key=lambda t: t.name,
        )


class InMemoryTeamMemberRepository(_InMemoryRepository):
    table = "team_members"

    async def create(self, team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole) -> TeamMember:
        await self._checkpoint("create")
        key = (team_id, user_id)
        if key in self.store.members:
            raise UniqueViolationError(f"User {user_id} is already a member of team {team_id}")
        if team_id not in self.store.teams:
            raise RepositoryError(f"Team {team_id} does not exist")
        member = TeamMember(team_id=team_id, user_id=user_id, role=role, joined_at=utcnow())
        self.store.members[key] = member
        return member

    async def get(self, team_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TeamMember]:
        await self._checkpoint("get")
        return self.store.members.get((team_id, user_id))

    async def update_role(self, team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole) -> TeamMember:
        await self._checkpoint("update_role")
        key = (team_id, user_id)
        member = self._require(self.store.members.get(key), f"Member {user_id} of team {team_id}")
        member = member.model_copy(update={"role": role})
        self.store.members[key] = member
        return member

    async def delete(self, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        await self._checkpoint("delete")
        self._require(
            self.store.members.pop((team_id, user_id), None),
            f"Member {user_id} of team {team_id}",
        )

    def _team_members(self, team_id: uuid.UUID) -> list[TeamMember]:
        return sorted(
            (m for m in self.store.members.values() if m.team_id == team_id),
            key=lambda m: m.joined_at,
        )

    async def list(
        self,
        team_id: uuid.UUID,
        pagination: Pagination,
        filter: Optional[MemberFilter] = None,
    ) -> Page[TeamMember]:
        await self._checkpoint("list")
        members = self._team_members(team_id)
        if filter and filter.role:
            members = [m for m in members if m.role == filter.role]
        return _paginate(members, pagination)

    async def list_by_team(self, team_id: uuid.UUID) -> list[TeamMember]:
        await self._checkpoint("list_by_team")
        return self._team_members(team_id)

    async def count_by_team(self, team_id: uuid.UUID) -> int:
        await self._checkpoint("count_by_team")
        return sum(1 for k in self.store.members if k[0] == team_id)


class InMemoryInvitationRepository(_InMemoryRepository):
    table = "invitations"

    def _find_pending(self, team_id: uuid.UUID, invited_email: str) -> Optional[Invitation]:
        return next(
            (
                i for i in self.store.invitations.values()
                if i.team_id == team_id and i.invited_email == invited_email and i.is_pending
            ),
            None,
        )

    async def create(self, params: CreateInvitationParams) -> Invitation:
        await self._checkpoint("create")
        if self._find_pending(params.team_id, params.invited_email) is not None:
            raise UniqueViolationError("Invitation already exists for this team and email")
        now = utcnow()
        invitation = Invitation(
            id=uuid.uuid4(),
            status=InvitationStatus.PENDING,
            created_at=now,
            updated_at=now,
            **params.model_dump(),
        )
        self.store.invitations[invitation.id] = invitation
        return invitation

    async def get_by_id(self, invitation_id: uuid.UUID) -> Optional[Invitation]:
        await self._checkpoint("get_by_id")
        return self.store.invitations.get(invitation_id)

    async def get_pending(self, team_id: uuid.UUID, invited_email: str) -> Optional[Invitation]:
        await self._checkpoint("get_pending")
        return self._find_pending(team_id, invited_email)

    async def update_status(
        self,
        invitation_id: uuid.UUID,
        status: InvitationStatus,
        expected: InvitationStatus = InvitationStatus.PENDING,
    ) -> Invitation:
        await self._checkpoint("update_status")
        invitation = self._require(
            self.store.invitations.get(invitation_id), f"Invitation {invitation_id}"
        )
        if invitation.status != expected:
            raise StaleStateError(
                f"Invitation {invitation_id} is {invitation.status.value}, expected {expected.value}"
            )
        invitation = invitation.model_copy(update={"status": status, "updated_at": utcnow()})
        self.store.invitations[invitation_id] = invitation
        return invitation

    async def list(
        self, pagination: Pagination, filter: Optional[InvitationFilter] = None
    ) -> Page[Invitation]:
        await self._checkpoint("list")
        invitations: Iterable[Invitation] = self.store.invitations.values()
        if filter:
            invitations = _apply_filter(invitations, filter.model_dump(exclude_none=True))
        return _paginate(invitations, pagination)

    async def list_by_email(
        self, email: str, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        await self._checkpoint("list_by_email")
        invitations = [
            i for i in self.store.invitations.values()
            if i.invited_email == email and (status is None or i.status == status)
        ]
        return sorted(invitations, key=lambda i: i.created_at, reverse=True)


def _apply_filter(items: Iterable[T], criteria: dict[str, Any]) -> list[T]:
    return [
        item for item in items
        if all(getattr(item, name) == value for name, value in criteria.items())
    ]


class InMemoryOkrRepository(_InMemoryRepository):
    table = "okrs"

    async def create(self, params: CreateOkrParams) -> Okr:
        await self._checkpoint("create")
        if params.team_id not in self.store.teams:
            raise RepositoryError(f"Team {params.team_id} does not exist")
        now = utcnow()
        okr = Okr(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        self.store.okrs[okr.id] = okr
        return okr

    async def get_by_id(self, okr_id: uuid.UUID) -> Optional[OkrWithKeyResults]:
        await self._checkpoint("get_by_id")
        okr = self.store.okrs.get(okr_id)
        return self.store.okr_with_key_results(okr) if okr else None

    async def update(self, okr_id: uuid.UUID, params: UpdateOkrParams) -> Okr:
        await self._checkpoint("update")
        okr = self._require(self.store.okrs.get(okr_id), f"OKR {okr_id}")
        okr = okr.model_copy(update={**self._changes(params), "updated_at": utcnow()})
        self.store.okrs[okr_id] = okr
        return okr

    async def delete(self, okr_id: uuid.UUID) -> None:
        await self._checkpoint("delete")
        self._require(self.store.okrs.get(okr_id), f"OKR {okr_id}")
        self.store.drop_okr(okr_id)

    def _matching(self, predicate: Callable[[Okr], bool]) -> list[OkrWithKeyResults]:
        return [
            self.store.okr_with_key_results(o)
            for o in self.store.okrs.values() if predicate(o)
        ]

    async def list(
        self, pagination: Pagination, filter: Optional[OkrFilter] = None
    ) -> Page[OkrWithKeyResults]:
        await self._checkpoint("list")
        f = filter or OkrFilter()

        def matches(okr: Okr) -> bool:
            return (
                (f.team_id is None or okr.team_id == f.team_id)
                and (f.owner_id is None or okr.owner_id == f.owner_id)
                and (f.type is None or okr.type == f.type)
                and (f.year is None or okr.quarter_year == f.year)
                and (f.quarter is None or okr.quarter_quarter == f.quarter)
            )

        return _paginate(self._matching(matches), pagination)


class InMemoryKeyResultRepository(_InMemoryRepository):
    table = "key_results"

    async def create(self, params: CreateKeyResultParams) -> KeyResult:
        await self._checkpoint("create")
        if params.okr_id not in self.store.okrs:
            raise RepositoryError(f"OKR {params.okr_id} does not exist")
        now = utcnow()
        key_result = KeyResult(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        self.store.key_results[key_result.id] = key_result
        return key_result

    async def get_by_id(self, key_result_id: uuid.UUID) -> Optional[KeyResult]:
        await self._checkpoint("get_by_id")
        return self.store.key_results.get(key_result_id)

    async def update(self, key_result_id: uuid.UUID, params: UpdateKeyResultParams) -> KeyResult:
        await self._checkpoint("update")
        key_result = self._require(
            self.store.key_results.get(key_result_id), f"Key result {key_result_id}"
        )
        key_result = key_result.model_copy(update={**self._changes(params), "updated_at": utcnow()})
        self.store.key_results[key_result_id] = key_result
        return key_result

    async def update_progress(self, key_result_id: uuid.UUID, current_value: float) -> KeyResult:
        return await self.update(key_result_id, UpdateKeyResultParams(current_value=current_value))

    async def delete(self, key_result_id: uuid.UUID) -> None:
        await self._checkpoint("delete")
        self._require(self.store.key_results.pop(key_result_id, None), f"Key result {key_result_id}")


class InMemoryReviewRepository(_InMemoryRepository):
    table = "reviews"

    async def create(self, params: CreateReviewParams) -> Review:
        await self._checkpoint("create")
        if params.okr_id not in self.store.okrs:
            raise RepositoryError(f"OKR {params.okr_id} does not exist")
        now = utcnow()
        review = Review(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        self.store.reviews[review.id] = review
        return review

    async def get_by_id(self, review_id: uuid.UUID) -> Optional[Review]:
        await self._checkpoint("get_by_id")
        return self.store.reviews.get(review_id)

    async def update(self, review_id: uuid.UUID, params: UpdateReviewParams) -> Review:
        await self._checkpoint("update")
        review = self._require(self.store.reviews.get(review_id), f"Review {review_id}")
        review = review.model_copy(update={**self._changes(params), "updated_at": utcnow()})
        self.store.reviews[review_id] = review
        return review

    async def delete(self, review_id: uuid.UUID) -> None:
        await self._checkpoint("delete")
        self._require(self.store.reviews.pop(review_id, None), f"Review {review_id}")

    async def list_by_okr(
        self, okr_id: uuid.UUID, type: Optional[ReviewType] = None
    ) -> list[Review]:
        await self._checkpoint("list_by_okr")
        return sorted(
            (
                r for r in self.store.reviews.values()
                if r.okr_id == okr_id and (type is None or r.type == type)
            ),
            key=lambda r: r.created_at,
            reverse=True,
        )
