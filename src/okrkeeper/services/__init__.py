"""Business logic services for OKR Keeper.

Every public service operation is a coroutine returning ``Ok`` or ``Err``.
"""

from .context import ServiceContext, build_memory_context, build_sql_context
from .errors import (
    AlreadyMemberError,
    ApplicationError,
    DeniedError,
    DuplicateInvitationError,
    InfrastructureError,
    InvalidInputError,
    InvitationNotPendingError,
    LastAdminError,
    NotFoundError,
    TeamNotEmptyError,
)
from .invitation_service import InvitationService
from .membership_guard import MembershipGuard
from .okr_service import OkrService
from .policy import Action, Decision, evaluate, require
from .review_service import ReviewService
from .team_service import TeamService
from .user_service import UserService

__all__ = [
    # Wiring
    "ServiceContext",
    "build_memory_context",
    "build_sql_context",
    # Errors
    "ApplicationError",
    "InvalidInputError",
    "DeniedError",
    "LastAdminError",
    "AlreadyMemberError",
    "InvitationNotPendingError",
    "DuplicateInvitationError",
    "TeamNotEmptyError",
    "NotFoundError",
    "InfrastructureError",
    # Policy
    "Action",
    "Decision",
    "evaluate",
    "require",
    "MembershipGuard",
    # Services
    "TeamService",
    "InvitationService",
    "OkrService",
    "ReviewService",
    "UserService",
]
