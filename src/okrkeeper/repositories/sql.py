"""SQLAlchemy repositories.

Each call runs in its own session and commits before returning, so every
repository method is one independently-failing unit of work. Driver errors
are translated into the ``RepositoryError`` family at this boundary.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

from sqlalchemy import Select, delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from okrkeeper.models.okr import KeyResultRow, OkrRow, ReviewRow
from okrkeeper.models.team import InvitationRow, TeamMemberRow, TeamRow
from okrkeeper.models.user import UserRow
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

logger = logging.getLogger(__name__)


class _SqlRepository:
    """Shared session handling for the SQL repositories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except RepositoryError:
                await session.rollback()
                raise
            except IntegrityError as e:
                await session.rollback()
                raise _integrity_error(e) from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(f"Database error in {type(self).__name__}: {e}")
                raise RepositoryError(str(e)) from e

    async def _fetch_page(
        self, session: AsyncSession, query: Select, row_cls: Any, pagination: Pagination
    ) -> tuple[list[Any], int]:
        count = await session.scalar(select(func.count()).select_from(query.subquery()))
        column = row_cls.__table__.c.get(pagination.order_by)
        if column is None:
            column = row_cls.__table__.c.get("created_at", row_cls.__table__.c.get("joined_at"))
        ordering = column.desc() if pagination.order == SortOrder.DESC else column.asc()
        result = await session.execute(
            query.order_by(ordering).offset(pagination.offset).limit(pagination.limit)
        )
        return list(result.scalars().all()), count or 0

    @staticmethod
    def _apply(row: Any, changes: dict[str, Any]) -> None:
        for name, value in changes.items():
            setattr(row, name, value)
        if hasattr(row, "updated_at"):
            row.updated_at = utcnow()


def _missing(what: str) -> RecordNotFoundError:
    return RecordNotFoundError(f"{what} does not exist")


UNIQUE_VIOLATION_SQLSTATE = "23505"


def _integrity_error(error: IntegrityError) -> RepositoryError:
    """Classify a constraint failure.

    Only unique and primary-key conflicts become ``UniqueViolationError``;
    foreign-key, not-null and check failures are plain ``RepositoryError``.
    PostgreSQL drivers expose the SQLSTATE, SQLite only the message.
    """
    orig = error.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        is_unique = code == UNIQUE_VIOLATION_SQLSTATE
    else:
        is_unique = "UNIQUE constraint failed" in str(orig)

    if is_unique:
        return UniqueViolationError(str(orig))
    logger.error(f"Integrity error: {orig}")
    return RepositoryError(str(orig))


# =============================================================================
# Users
# =============================================================================


class SqlUserRepository(_SqlRepository):
    async def create(self, params: CreateUserParams) -> User:
        now = utcnow()
        row = UserRow(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return User.model_validate(row)

    async def get_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        async with self._session() as session:
            row = await session.get(UserRow, user_id)
            return User.model_validate(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        async with self._session() as session:
            row = await session.scalar(select(UserRow).where(UserRow.email == email))
            return User.model_validate(row) if row else None

    async def update(self, user_id: uuid.UUID, params: UpdateUserParams) -> User:
        async with self._session() as session:
            row = await session.get(UserRow, user_id)
            if row is None:
                raise _missing(f"User {user_id}")
            self._apply(row, params.model_dump(exclude_none=True))
            await session.flush()
            return User.model_validate(row)


# =============================================================================
# Teams and membership
# =============================================================================


class SqlTeamRepository(_SqlRepository):
    async def create(self, params: CreateTeamParams) -> Team:
        now = utcnow()
        row = TeamRow(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return Team.model_validate(row)

    async def get_by_id(self, team_id: uuid.UUID) -> Optional[Team]:
        async with self._session() as session:
            row = await session.get(TeamRow, team_id)
            return Team.model_validate(row) if row else None

    async def update(self, team_id: uuid.UUID, params: UpdateTeamParams) -> Team:
        async with self._session() as session:
            row = await session.get(TeamRow, team_id)
            if row is None:
                raise _missing(f"Team {team_id}")
            self._apply(row, params.model_dump(exclude_none=True))
            await session.flush()
            return Team.model_validate(row)

    async def delete(self, team_id: uuid.UUID) -> None:
        async with self._session() as session:
            row = await session.get(
                TeamRow,
                team_id,
                options=[
                    selectinload(TeamRow.members),
                    selectinload(TeamRow.invitations),
                    selectinload(TeamRow.okrs).selectinload(OkrRow.key_results),
                    selectinload(TeamRow.okrs).selectinload(OkrRow.reviews),
                ],
            )
            if row is None:
                raise _missing(f"Team {team_id}")
            await session.delete(row)

    async def list_by_user(self, user_id: uuid.UUID) -> list[Team]:
        query = (
            select(TeamRow)
            .join(TeamMemberRow, TeamMemberRow.team_id == TeamRow.id)
            .where(TeamMemberRow.user_id == user_id)
            .order_by(TeamRow.name)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [Team.model_validate(r) for r in result.scalars().all()]


class SqlTeamMemberRepository(_SqlRepository):
    async def create(self, team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole) -> TeamMember:
        row = TeamMemberRow(team_id=team_id, user_id=user_id, role=role, joined_at=utcnow())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return TeamMember.model_validate(row)

    async def get(self, team_id: uuid.UUID, user_id: uuid.UUID) -> Optional[TeamMember]:
        async with self._session() as session:
            row = await session.get(TeamMemberRow, (team_id, user_id))
            return TeamMember.model_validate(row) if row else None

    async def update_role(self, team_id: uuid.UUID, user_id: uuid.UUID, role: TeamRole) -> TeamMember:
        async with self._session() as session:
            row = await session.get(TeamMemberRow, (team_id, user_id))
            if row is None:
                raise _missing(f"Member {user_id} of team {team_id}")
            row.role = role
            await session.flush()
            return TeamMember.model_validate(row)

    async def delete(self, team_id: uuid.UUID, user_id: uuid.UUID) -> None:
        async with self._session() as session:
            result = await session.execute(
                delete(TeamMemberRow).where(
                    TeamMemberRow.team_id == team_id,
                    TeamMemberRow.user_id == user_id,
                )
            )
            if result.rowcount == 0:
                raise _missing(f"Member {user_id} of team {team_id}")

    async def list(
        self,
        team_id: uuid.UUID,
        pagination: Pagination,
        filter: Optional[MemberFilter] = None,
    ) -> Page[TeamMember]:
        query = select(TeamMemberRow).where(TeamMemberRow.team_id == team_id)
        if filter and filter.role:
            query = query.where(TeamMemberRow.role == filter.role)
        if pagination.order_by == "created_at":
            pagination = pagination.model_copy(update={"order_by": "joined_at"})
        async with self._session() as session:
            rows, count = await self._fetch_page(session, query, TeamMemberRow, pagination)
            return Page(items=[TeamMember.model_validate(r) for r in rows], count=count)

    async def list_by_team(self, team_id: uuid.UUID) -> list[TeamMember]:
        query = (
            select(TeamMemberRow)
            .where(TeamMemberRow.team_id == team_id)
            .order_by(TeamMemberRow.joined_at)
        )
        async with self._session() as session:
            result = await session.execute(query)
            return [TeamMember.model_validate(r) for r in result.scalars().all()]

    async def count_by_team(self, team_id: uuid.UUID) -> int:
        async with self._session() as session:
            count = await session.scalar(
                select(func.count()).select_from(TeamMemberRow).where(TeamMemberRow.team_id == team_id)
            )
            return count or 0


class SqlInvitationRepository(_SqlRepository):
    async def create(self, params: CreateInvitationParams) -> Invitation:
        now = utcnow()
        row = InvitationRow(
            id=uuid.uuid4(),
            status=InvitationStatus.PENDING,
            created_at=now,
            updated_at=now,
            **params.model_dump(),
        )
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return Invitation.model_validate(row)

    async def get_by_id(self, invitation_id: uuid.UUID) -> Optional[Invitation]:
        async with self._session() as session:
            row = await session.get(InvitationRow, invitation_id)
            return Invitation.model_validate(row) if row else None

    async def get_pending(self, team_id: uuid.UUID, invited_email: str) -> Optional[Invitation]:
        async with self._session() as session:
            row = await session.scalar(
                select(InvitationRow).where(
                    InvitationRow.team_id == team_id,
                    InvitationRow.invited_email == invited_email,
                    InvitationRow.status == InvitationStatus.PENDING,
                )
            )
            return Invitation.model_validate(row) if row else None

    async def update_status(
        self,
        invitation_id: uuid.UUID,
        status: InvitationStatus,
        expected: InvitationStatus = InvitationStatus.PENDING,
    ) -> Invitation:
        async with self._session() as session:
            # Conditional UPDATE: exactly one concurrent caller can move the row
            result = await session.execute(
                update(InvitationRow)
                .where(InvitationRow.id == invitation_id, InvitationRow.status == expected)
                .values(status=status, updated_at=utcnow())
            )
            if result.rowcount == 0:
                row = await session.get(InvitationRow, invitation_id)
                if row is None:
                    raise _missing(f"Invitation {invitation_id}")
                raise StaleStateError(
                    f"Invitation {invitation_id} is {row.status.value}, expected {expected.value}"
                )
            row = await session.get(InvitationRow, invitation_id, populate_existing=True)
            return Invitation.model_validate(row)

    async def list(
        self, pagination: Pagination, filter: Optional[InvitationFilter] = None
    ) -> Page[Invitation]:
        query = select(InvitationRow)
        if filter:
            for name, value in filter.model_dump(exclude_none=True).items():
                query = query.where(getattr(InvitationRow, name) == value)
        async with self._session() as session:
            rows, count = await self._fetch_page(session, query, InvitationRow, pagination)
            return Page(items=[Invitation.model_validate(r) for r in rows], count=count)

    async def list_by_email(
        self, email: str, status: Optional[InvitationStatus] = None
    ) -> list[Invitation]:
        query = select(InvitationRow).where(InvitationRow.invited_email == email)
        if status is not None:
            query = query.where(InvitationRow.status == status)
        async with self._session() as session:
            result = await session.execute(query.order_by(InvitationRow.created_at.desc()))
            return [Invitation.model_validate(r) for r in result.scalars().all()]


# =============================================================================
# OKRs, key results and reviews
# =============================================================================


def _okr_query() -> Select:
    return select(OkrRow).options(selectinload(OkrRow.key_results))


class SqlOkrRepository(_SqlRepository):
    async def create(self, params: CreateOkrParams) -> Okr:
        now = utcnow()
        row = OkrRow(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return Okr.model_validate(row)

    async def get_by_id(self, okr_id: uuid.UUID) -> Optional[OkrWithKeyResults]:
        async with self._session() as session:
            row = await session.scalar(_okr_query().where(OkrRow.id == okr_id))
            return OkrWithKeyResults.model_validate(row) if row else None

    async def update(self, okr_id: uuid.UUID, params: UpdateOkrParams) -> Okr:
        async with self._session() as session:
            row = await session.get(OkrRow, okr_id)
            if row is None:
                raise _missing(f"OKR {okr_id}")
            self._apply(row, params.model_dump(exclude_none=True))
            await session.flush()
            return Okr.model_validate(row)

    async def delete(self, okr_id: uuid.UUID) -> None:
        async with self._session() as session:
            row = await session.get(
                OkrRow,
                okr_id,
                options=[selectinload(OkrRow.key_results), selectinload(OkrRow.reviews)],
            )
            if row is None:
                raise _missing(f"OKR {okr_id}")
            await session.delete(row)

    async def list(
        self, pagination: Pagination, filter: Optional[OkrFilter] = None
    ) -> Page[OkrWithKeyResults]:
        query = _okr_query()
        f = filter or OkrFilter()
        if f.team_id is not None:
            query = query.where(OkrRow.team_id == f.team_id)
        if f.owner_id is not None:
            query = query.where(OkrRow.owner_id == f.owner_id)
        if f.type is not None:
            query = query.where(OkrRow.type == f.type)
        if f.year is not None:
            query = query.where(OkrRow.quarter_year == f.year)
        if f.quarter is not None:
            query = query.where(OkrRow.quarter_quarter == f.quarter)
        async with self._session() as session:
            rows, count = await self._fetch_page(session, query, OkrRow, pagination)
            return Page(items=[OkrWithKeyResults.model_validate(r) for r in rows], count=count)


class SqlKeyResultRepository(_SqlRepository):
    async def create(self, params: CreateKeyResultParams) -> KeyResult:
        now = utcnow()
        row = KeyResultRow(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return KeyResult.model_validate(row)

    async def get_by_id(self, key_result_id: uuid.UUID) -> Optional[KeyResult]:
        async with self._session() as session:
            row = await session.get(KeyResultRow, key_result_id)
            return KeyResult.model_validate(row) if row else None

    async def update(self, key_result_id: uuid.UUID, params: UpdateKeyResultParams) -> KeyResult:
        async with self._session() as session:
            row = await session.get(KeyResultRow, key_result_id)
            if row is None:
                raise _missing(f"Key result {key_result_id}")
            self._apply(row, params.model_dump(exclude_none=True))
            await session.flush()
            return KeyResult.model_validate(row)

    async def update_progress(self, key_result_id: uuid.UUID, current_value: float) -> KeyResult:
        return await self.update(key_result_id, UpdateKeyResultParams(current_value=current_value))

    async def delete(self, key_result_id: uuid.UUID) -> None:
        async with self._session() as session:
            result = await session.execute(
                delete(KeyResultRow).where(KeyResultRow.id == key_result_id)
            )
            if result.rowcount == 0:
                raise _missing(f"Key result {key_result_id}")


class SqlReviewRepository(_SqlRepository):
    async def create(self, params: CreateReviewParams) -> Review:
        now = utcnow()
        row = ReviewRow(id=uuid.uuid4(), created_at=now, updated_at=now, **params.model_dump())
        async with self._session() as session:
            session.add(row)
            await session.flush()
            return Review.model_validate(row)

    async def get_by_id(self, review_id: uuid.UUID) -> Optional[Review]:
        async with self._session() as session:
            row = await session.get(ReviewRow, review_id)
            return Review.model_validate(row) if row else None

    async def update(self, review_id: uuid.UUID, params: UpdateReviewParams) -> Review:
        async with self._session() as session:
            row = await session.get(ReviewRow, review_id)
            if row is None:
                raise _missing(f"Review {review_id}")
            self._apply(row, params.model_dump(exclude_none=True))
            await session.flush()
            return Review.model_validate(row)

    async def delete(self, review_id: uuid.UUID) -> None:
        async with self._session() as session:
            result = await session.execute(delete(ReviewRow).where(ReviewRow.id == review_id))
            if result.rowcount == 0:
                raise _missing(f"Review {review_id}")

    async def list_by_okr(
        self, okr_id: uuid.UUID, type: Optional[ReviewType] = None
    ) -> list[Review]:
        query = select(ReviewRow).where(ReviewRow.okr_id == okr_id)
        if type is not None:
            query = query.where(ReviewRow.type == type)
        query = query.order_by(ReviewRow.created_at.desc())
        async with self._session() as session:
            result = await session.execute(query)
            return [Review.model_validate(r) for r in result.scalars().all()]
