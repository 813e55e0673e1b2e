"""Collaborators shared by every service.

A ``ServiceContext`` bundles one implementation of each repository port plus
the password and session adapters. Services only ever see the protocols, so
the same service code runs against memory or SQL storage.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from okrkeeper.core.config import Settings, get_settings
from okrkeeper.core.security import (
    BcryptPasswordHasher,
    JWTSessionManager,
    PasswordHasher,
    SessionManager,
)
from okrkeeper.repositories import (
    InMemoryInvitationRepository,
    InMemoryKeyResultRepository,
    InMemoryOkrRepository,
    InMemoryReviewRepository,
    InMemoryStore,
    InMemoryTeamMemberRepository,
    InMemoryTeamRepository,
    InMemoryUserRepository,
    InvitationRepository,
    KeyResultRepository,
    OkrRepository,
    ReviewRepository,
    SqlInvitationRepository,
    SqlKeyResultRepository,
    SqlOkrRepository,
    SqlReviewRepository,
    SqlTeamMemberRepository,
    SqlTeamRepository,
    SqlUserRepository,
    TeamMemberRepository,
    TeamRepository,
    UserRepository,
)


@dataclass
class ServiceContext:
    users: UserRepository
    teams: TeamRepository
    members: TeamMemberRepository
    invitations: InvitationRepository
    okrs: OkrRepository
    key_results: KeyResultRepository
    reviews: ReviewRepository
    password_hasher: PasswordHasher
    session_manager: SessionManager
    settings: Settings = field(default_factory=get_settings)


def build_memory_context(
    store: Optional[InMemoryStore] = None,
    settings: Optional[Settings] = None,
    password_hasher: Optional[PasswordHasher] = None,
    session_manager: Optional[SessionManager] = None,
) -> ServiceContext:
    """Wire every port to the in-memory repositories over one shared store."""
    store = store or InMemoryStore()
    settings = settings or get_settings()
    return ServiceContext(
        users=InMemoryUserRepository(store),
        teams=InMemoryTeamRepository(store),
        members=InMemoryTeamMemberRepository(store),
        invitations=InMemoryInvitationRepository(store),
        okrs=InMemoryOkrRepository(store),
        key_results=InMemoryKeyResultRepository(store),
        reviews=InMemoryReviewRepository(store),
        password_hasher=password_hasher or BcryptPasswordHasher(settings.bcrypt_rounds),
        session_manager=session_manager or JWTSessionManager(settings),
        settings=settings,
    )


def build_sql_context(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
    password_hasher: Optional[PasswordHasher] = None,
    session_manager: Optional[SessionManager] = None,
) -> ServiceContext:
    """Wire every port to the SQLAlchemy repositories."""
    settings = settings or get_settings()
    return ServiceContext(
        users=SqlUserRepository(session_factory),
        teams=SqlTeamRepository(session_factory),
        members=SqlTeamMemberRepository(session_factory),
        invitations=SqlInvitationRepository(session_factory),
        okrs=SqlOkrRepository(session_factory),
        key_results=SqlKeyResultRepository(session_factory),
        reviews=SqlReviewRepository(session_factory),
        password_hasher=password_hasher or BcryptPasswordHasher(settings.bcrypt_rounds),
        session_manager=session_manager or JWTSessionManager(settings),
        settings=settings,
    )
