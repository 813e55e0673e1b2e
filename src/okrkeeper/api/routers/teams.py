"""Teams router.

Endpoints for teams and everything scoped to one team:
- Team CRUD and review frequency settings
- Member listing, role changes and removal
- Invitations sent by team admins
- Team and personal OKRs filed under the team
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query, Response, status
from pydantic import BaseModel, Field

from okrkeeper.api.deps import CurrentUser, Invitations, Okrs, Teams
from okrkeeper.api.exceptions import unwrap
from okrkeeper.schemas.common import Page, SortOrder
from okrkeeper.schemas.okr import OkrType, OkrWithKeyResults
from okrkeeper.schemas.team import (
    Invitation,
    InvitationStatus,
    ReviewFrequency,
    Team,
    TeamMember,
    TeamRole,
)

router = APIRouter()

TeamId = Annotated[str, Path(description="Team ID")]
MemberId = Annotated[str, Path(description="User ID of the member")]


# =============================================================================
# Pydantic Schemas
# =============================================================================


class TeamCreate(BaseModel):
    """Request to create a new team."""

    name: str = Field(..., description="Team display name")
    description: Optional[str] = Field(None, description="Team description")
    review_frequency: ReviewFrequency = ReviewFrequency.MONTHLY


class TeamUpdate(BaseModel):
    """Request to update team details."""

    name: str
    description: Optional[str] = None


class ReviewFrequencyUpdate(BaseModel):
    review_frequency: ReviewFrequency


class MemberRoleUpdate(BaseModel):
    """Request to change a member's role."""

    role: TeamRole


class InviteCreate(BaseModel):
    """Request to invite someone by email."""

    email: str
    role: TeamRole = TeamRole.MEMBER


class KeyResultCreate(BaseModel):
    title: str
    target_value: float
    unit: Optional[str] = None


class QuarterBody(BaseModel):
    year: int
    quarter: int


class OkrCreate(BaseModel):
    """Request to create an OKR with its key results."""

    title: str
    description: Optional[str] = None
    type: OkrType
    owner_id: Optional[str] = None
    quarter: QuarterBody
    key_results: list[KeyResultCreate]


# =============================================================================
# Team Endpoints
# =============================================================================


@router.post(
    "",
    response_model=Team,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new team",
    description="Create a team. The creator becomes its first admin.",
)
async def create_team(request: TeamCreate, user: CurrentUser, teams: Teams) -> Team:
    return unwrap(
        await teams.create_team({**request.model_dump(), "user_id": user.user_id})
    )


@router.get("", response_model=list[Team], summary="List my teams")
async def list_teams(user: CurrentUser, teams: Teams) -> list[Team]:
    return unwrap(await teams.list_user_teams({"user_id": user.user_id}))


@router.get("/{team_id}", response_model=Team, summary="Get team details")
async def get_team(team_id: TeamId, user: CurrentUser, teams: Teams) -> Team:
    return unwrap(await teams.get_team({"team_id": team_id, "user_id": user.user_id}))


@router.patch(
    "/{team_id}",
    response_model=Team,
    summary="Update team",
    description="Update team name and description. Requires admin role.",
)
async def update_team(
    team_id: TeamId,
    request: TeamUpdate,
    user: CurrentUser,
    teams: Teams,
) -> Team:
    return unwrap(
        await teams.update_team(
            {**request.model_dump(), "team_id": team_id, "user_id": user.user_id}
        )
    )


@router.put(
    "/{team_id}/review-frequency",
    response_model=Team,
    summary="Set how often the team reviews its OKRs",
)
async def update_review_frequency(
    team_id: TeamId,
    request: ReviewFrequencyUpdate,
    user: CurrentUser,
    teams: Teams,
) -> Team:
    return unwrap(
        await teams.update_team_review_frequency(
            {
                "team_id": team_id,
                "user_id": user.user_id,
                "review_frequency": request.review_frequency,
            }
        )
    )


@router.delete(
    "/{team_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete team",
    description="Delete a team whose only remaining member is the requesting admin.",
)
async def delete_team(team_id: TeamId, user: CurrentUser, teams: Teams) -> Response:
    unwrap(await teams.delete_team({"team_id": team_id, "user_id": user.user_id}))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Member Endpoints
# =============================================================================


@router.get("/{team_id}/members", response_model=Page[TeamMember], summary="List team members")
async def list_members(
    team_id: TeamId,
    user: CurrentUser,
    teams: Teams,
    role: Annotated[Optional[TeamRole], Query(description="Filter by role")] = None,
) -> Page[TeamMember]:
    return unwrap(
        await teams.get_team_members(
            {"team_id": team_id, "user_id": user.user_id, "role": role}
        )
    )


@router.patch(
    "/{team_id}/members/{member_user_id}",
    response_model=TeamMember,
    summary="Update member role",
)
async def update_member_role(
    team_id: TeamId,
    member_user_id: MemberId,
    request: MemberRoleUpdate,
    user: CurrentUser,
    teams: Teams,
) -> TeamMember:
    return unwrap(
        await teams.update_member_role(
            {
                "team_id": team_id,
                "user_id": user.user_id,
                "target_user_id": member_user_id,
                "role": request.role,
            }
        )
    )


@router.delete(
    "/{team_id}/members/{member_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove member",
)
async def remove_member(
    team_id: TeamId,
    member_user_id: MemberId,
    user: CurrentUser,
    teams: Teams,
) -> Response:
    unwrap(
        await teams.remove_member_from_team(
            {"team_id": team_id, "user_id": user.user_id, "target_user_id": member_user_id}
        )
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Invitation Endpoints
# =============================================================================


@router.post(
    "/{team_id}/invitations",
    response_model=Invitation,
    status_code=status.HTTP_201_CREATED,
    summary="Invite someone to the team",
)
async def create_invitation(
    team_id: TeamId,
    request: InviteCreate,
    user: CurrentUser,
    invitations: Invitations,
) -> Invitation:
    return unwrap(
        await invitations.invite_to_team(
            {
                "team_id": team_id,
                "invited_email": request.email,
                "invited_by_id": user.user_id,
                "role": request.role,
            }
        )
    )


@router.get(
    "/{team_id}/invitations",
    response_model=Page[Invitation],
    summary="List team invitations",
)
async def list_invitations(
    team_id: TeamId,
    user: CurrentUser,
    invitations: Invitations,
    invitation_status: Annotated[
        Optional[InvitationStatus], Query(alias="status")
    ] = InvitationStatus.PENDING,
) -> Page[Invitation]:
    return unwrap(
        await invitations.list_team_invitations(
            {"team_id": team_id, "user_id": user.user_id, "status": invitation_status}
        )
    )


# =============================================================================
# OKR Endpoints
# =============================================================================


@router.post(
    "/{team_id}/okrs",
    response_model=OkrWithKeyResults,
    status_code=status.HTTP_201_CREATED,
    summary="Create an OKR",
    description="Team OKRs need an admin; personal OKRs need an admin or member.",
)
async def create_okr(
    team_id: TeamId,
    request: OkrCreate,
    user: CurrentUser,
    okrs: Okrs,
) -> OkrWithKeyResults:
    return unwrap(
        await okrs.create_okr(
            {**request.model_dump(), "team_id": team_id, "user_id": user.user_id}
        )
    )


@router.get(
    "/{team_id}/okrs",
    response_model=Page[OkrWithKeyResults],
    summary="List team OKRs",
)
async def list_okrs(
    team_id: TeamId,
    user: CurrentUser,
    okrs: Okrs,
    okr_type: Annotated[Optional[OkrType], Query(alias="type")] = None,
    owner_id: Optional[str] = None,
    year: Optional[int] = None,
    quarter: Optional[int] = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    order: SortOrder = SortOrder.DESC,
) -> Page[OkrWithKeyResults]:
    return unwrap(
        await okrs.list_team_okrs(
            {
                "team_id": team_id,
                "user_id": user.user_id,
                "type": okr_type,
                "owner_id": owner_id,
                "year": year,
                "quarter": quarter,
                "pagination": {"page": page, "limit": limit, "order": order},
            }
        )
    )
