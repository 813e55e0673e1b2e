"""Team, membership and invitation schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import DomainModel, InputModel


class TeamRole(str, Enum):
    """Roles within a team."""
    ADMIN = "admin"         # Manage members, settings and every team OKR
    MEMBER = "member"       # Create personal OKRs, act as OKR owner
    VIEWER = "viewer"       # Read-only access


class ReviewFrequency(str, Enum):
    """How often a team reviews its OKRs."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"


class InvitationStatus(str, Enum):
    """Status of team invitations. Only PENDING can transition."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

    @property
    def is_terminal(self) -> bool:
        return self is not InvitationStatus.PENDING


class Team(DomainModel):
    id: UUID
    name: str
    description: Optional[str] = None
    review_frequency: ReviewFrequency
    created_at: datetime
    updated_at: datetime


class TeamMember(DomainModel):
    """Membership row keyed by (team_id, user_id)."""

    team_id: UUID
    user_id: UUID
    role: TeamRole
    joined_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == TeamRole.ADMIN


class Invitation(DomainModel):
    id: UUID
    team_id: UUID
    invited_email: str
    invited_by_id: UUID
    role: TeamRole
    status: InvitationStatus
    created_at: datetime
    updated_at: datetime

    @property
    def is_pending(self) -> bool:
        return not self.status.is_terminal


# =============================================================================
# Repository parameters
# =============================================================================


class CreateTeamParams(BaseModel):
    name: str
    description: Optional[str] = None
    review_frequency: ReviewFrequency = ReviewFrequency.MONTHLY


class UpdateTeamParams(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    review_frequency: Optional[ReviewFrequency] = None


class MemberFilter(BaseModel):
    role: Optional[TeamRole] = None


class CreateInvitationParams(BaseModel):
    team_id: UUID
    invited_email: str
    invited_by_id: UUID
    role: TeamRole


class InvitationFilter(BaseModel):
    team_id: Optional[UUID] = None
    status: Optional[InvitationStatus] = None


# =============================================================================
# Operation inputs
# =============================================================================


class CreateTeamInput(InputModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    review_frequency: ReviewFrequency = ReviewFrequency.MONTHLY
    user_id: UUID


class TeamActorInput(InputModel):
    """Input naming a team and the acting user."""

    team_id: UUID
    user_id: UUID


class ListUserTeamsInput(InputModel):
    user_id: UUID


class UpdateTeamInput(TeamActorInput):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)


class UpdateTeamReviewFrequencyInput(TeamActorInput):
    review_frequency: ReviewFrequency


class GetTeamMembersInput(TeamActorInput):
    role: Optional[TeamRole] = None


class UpdateMemberRoleInput(TeamActorInput):
    target_user_id: UUID
    role: TeamRole


class RemoveMemberInput(TeamActorInput):
    target_user_id: UUID


class InviteToTeamInput(InputModel):
    team_id: UUID
    invited_email: EmailStr
    invited_by_id: UUID
    role: TeamRole = TeamRole.MEMBER


class InvitationActionInput(InputModel):
    """Accept or reject an invitation as ``user_id``."""

    invitation_id: UUID
    user_id: UUID


class ListTeamInvitationsInput(TeamActorInput):
    status: Optional[InvitationStatus] = InvitationStatus.PENDING


class ListUserInvitationsInput(InputModel):
    user_id: UUID
    status: Optional[InvitationStatus] = InvitationStatus.PENDING
