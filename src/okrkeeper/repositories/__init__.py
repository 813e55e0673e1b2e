"""Persistence ports and their in-memory and SQLAlchemy implementations."""

from .memory import (
    InMemoryInvitationRepository,
    InMemoryKeyResultRepository,
    InMemoryOkrRepository,
    InMemoryReviewRepository,
    InMemoryStore,
    InMemoryTeamMemberRepository,
    InMemoryTeamRepository,
    InMemoryUserRepository,
)
from .ports import (
    InvitationRepository,
    KeyResultRepository,
    OkrRepository,
    RecordNotFoundError,
    RepositoryError,
    ReviewRepository,
    StaleStateError,
    TeamMemberRepository,
    TeamRepository,
    UniqueViolationError,
    UserRepository,
)
from .sql import (
    SqlInvitationRepository,
    SqlKeyResultRepository,
    SqlOkrRepository,
    SqlReviewRepository,
    SqlTeamMemberRepository,
    SqlTeamRepository,
    SqlUserRepository,
)

__all__ = [
    # Ports
    "UserRepository",
    "TeamRepository",
    "TeamMemberRepository",
    "InvitationRepository",
    "OkrRepository",
    "KeyResultRepository",
    "ReviewRepository",
    # Errors
    "RepositoryError",
    "UniqueViolationError",
    "StaleStateError",
    "RecordNotFoundError",
    # In-memory
    "InMemoryStore",
    "InMemoryUserRepository",
    "InMemoryTeamRepository",
    "InMemoryTeamMemberRepository",
    "InMemoryInvitationRepository",
    "InMemoryOkrRepository",
    "InMemoryKeyResultRepository",
    "InMemoryReviewRepository",
    # SQLAlchemy
    "SqlUserRepository",
    "SqlTeamRepository",
    "SqlTeamMemberRepository",
    "SqlInvitationRepository",
    "SqlOkrRepository",
    "SqlKeyResultRepository",
    "SqlReviewRepository",
]
