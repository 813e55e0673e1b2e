"""Pydantic schemas for OKR Keeper.

Three kinds of model live here:
- Entities (``DomainModel``): immutable snapshots returned by repositories
- Repository parameters: plain payloads for create/update/list calls
- Operation inputs (``InputModel``): validated at the start of every service
  operation, before any I/O happens
"""

from .common import DomainModel, InputModel, Page, Pagination, SortOrder
from .okr import (
    KeyResult,
    Okr,
    OkrType,
    OkrWithKeyResults,
    Quarter,
    Review,
    ReviewType,
)
from .team import (
    Invitation,
    InvitationStatus,
    ReviewFrequency,
    Team,
    TeamMember,
    TeamRole,
)
from .user import AuthSession, SessionData, User, UserProfile

__all__ = [
    # Common
    "DomainModel",
    "InputModel",
    "Page",
    "Pagination",
    "SortOrder",
    # Users
    "User",
    "UserProfile",
    "SessionData",
    "AuthSession",
    # Teams
    "Team",
    "TeamMember",
    "TeamRole",
    "ReviewFrequency",
    "Invitation",
    "InvitationStatus",
    # OKRs
    "Okr",
    "OkrType",
    "OkrWithKeyResults",
    "Quarter",
    "KeyResult",
    "Review",
    "ReviewType",
]
