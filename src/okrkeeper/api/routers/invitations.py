"""Invitations router for the invitee side of the flow."""

from typing import Annotated, Optional

from fastapi import APIRouter, Path, Query

from okrkeeper.api.deps import CurrentUser, Invitations
from okrkeeper.api.exceptions import unwrap
from okrkeeper.schemas.team import Invitation, InvitationStatus, TeamMember

router = APIRouter()

InvitationId = Annotated[str, Path(description="Invitation ID")]


@router.get("", response_model=list[Invitation], summary="List invitations sent to me")
async def list_my_invitations(
    user: CurrentUser,
    invitations: Invitations,
    invitation_status: Annotated[
        Optional[InvitationStatus], Query(alias="status")
    ] = InvitationStatus.PENDING,
) -> list[Invitation]:
    return unwrap(
        await invitations.list_user_invitations(
            {"user_id": user.user_id, "status": invitation_status}
        )
    )


@router.post(
    "/{invitation_id}/accept",
    response_model=TeamMember,
    summary="Accept an invitation",
    description="Join the team with the invited role. Only pending invitations can be accepted.",
)
async def accept_invitation(
    invitation_id: InvitationId,
    user: CurrentUser,
    invitations: Invitations,
) -> TeamMember:
    return unwrap(
        await invitations.accept_invitation(
            {"invitation_id": invitation_id, "user_id": user.user_id}
        )
    )


@router.post("/{invitation_id}/reject", response_model=Invitation, summary="Reject an invitation")
async def reject_invitation(
    invitation_id: InvitationId,
    user: CurrentUser,
    invitations: Invitations,
) -> Invitation:
    return unwrap(
        await invitations.reject_invitation(
            {"invitation_id": invitation_id, "user_id": user.user_id}
        )
    )
