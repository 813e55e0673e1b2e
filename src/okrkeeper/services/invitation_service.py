"""Invitation lifecycle.

Invitations move ``pending → accepted`` or ``pending → rejected`` exactly
once. Two storage guarantees make acceptance race-safe without locks:

- the membership insert fails on a duplicate (team_id, user_id), which a
  losing racer reports as "User is already a team member";
- the status flip is a compare-and-swap on ``pending``, which a losing racer
  reports as "Invitation is not pending".

An acceptance that inserted the membership but then lost the status flip
(to a concurrent rejection, say) deletes that membership again, so a
rejected invitation never leaves its invitee in the team.
"""

import logging
from uuid import UUID

from okrkeeper.repositories.ports import (
    RecordNotFoundError,
    RepositoryError,
    StaleStateError,
    UniqueViolationError,
)
from okrkeeper.schemas.common import Page, Pagination, SortOrder
from okrkeeper.schemas.team import (
    CreateInvitationParams,
    Invitation,
    InvitationActionInput,
    InvitationFilter,
    InvitationStatus,
    InviteToTeamInput,
    ListTeamInvitationsInput,
    ListUserInvitationsInput,
    TeamMember,
)
from okrkeeper.schemas.user import User

from .context import ServiceContext
from .errors import (
    AlreadyMemberError,
    DeniedError,
    DuplicateInvitationError,
    InfrastructureError,
    InvitationNotPendingError,
    NotFoundError,
    Payload,
    repository_errors,
    returns_result,
    validate,
)
from .policy import Action, evaluate, require

logger = logging.getLogger(__name__)

ALREADY_MEMBER = "User is already a team member"
NOT_PENDING = "Invitation is not pending"
DUPLICATE_INVITATION = "User already has a pending invitation"
EMAIL_MISMATCH = "User email does not match invitation"


class InvitationService:
    """Service for inviting users to teams and resolving invitations."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    async def _require_pending(self, invitation_id: UUID) -> Invitation:
        with repository_errors("Failed to get invitation"):
            invitation = await self.ctx.invitations.get_by_id(invitation_id)
        if invitation is None:
            raise NotFoundError("Invitation")
        if not invitation.is_pending:
            raise InvitationNotPendingError(NOT_PENDING)
        return invitation

    async def _require_invitee(self, invitation: Invitation, user_id: UUID) -> User:
        with repository_errors("Failed to get user"):
            user = await self.ctx.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        # Exact, case-sensitive comparison
        if user.email != invitation.invited_email:
            raise DeniedError(EMAIL_MISMATCH)
        return user

    # =========================================================================
    # Invite
    # =========================================================================

    @returns_result
    async def invite_to_team(self, data: Payload) -> Invitation:
        """Invite an email address to a team.

        Args:
            data: InviteToTeamInput fields; ``invited_by_id`` is the acting admin

        Returns:
            The pending invitation

        Raises (as Err):
            NotFoundError: If the team doesn't exist
            DeniedError: If the inviter is not a team admin
            AlreadyMemberError: If the email belongs to a current member
            DuplicateInvitationError: If a pending invitation already exists
        """
        params = validate(InviteToTeamInput, data)

        with repository_errors("Failed to check team membership"):
            team = await self.ctx.teams.get_by_id(params.team_id)
            if team is None:
                raise NotFoundError("Team")
            membership = await self.ctx.members.get(params.team_id, params.invited_by_id)
        require(evaluate(Action.INVITE_MEMBER, params.invited_by_id, membership))

        with repository_errors("Failed to check existing membership"):
            existing_user = await self.ctx.users.get_by_email(params.invited_email)
            if existing_user is not None:
                if await self.ctx.members.get(params.team_id, existing_user.id) is not None:
                    raise AlreadyMemberError(ALREADY_MEMBER)
            if await self.ctx.invitations.get_pending(params.team_id, params.invited_email):
                raise DuplicateInvitationError(DUPLICATE_INVITATION)

        with repository_errors("Failed to create invitation"):
            try:
                invitation = await self.ctx.invitations.create(
                    CreateInvitationParams(
                        team_id=params.team_id,
                        invited_email=params.invited_email,
                        invited_by_id=params.invited_by_id,
                        role=params.role,
                    )
                )
            except UniqueViolationError as e:
                # Lost a race with a concurrent invite for the same email
                raise DuplicateInvitationError(DUPLICATE_INVITATION, cause=e) from e

        logger.info(
            f"Invited {params.invited_email} to team {params.team_id} as {params.role.value}"
        )
        return invitation

    # =========================================================================
    # Accept / Reject
    # =========================================================================

    @returns_result
    async def accept_invitation(self, data: Payload) -> TeamMember:
        """Accept a pending invitation and join the team.

        Membership is written first, then the status is flipped with a
        compare-and-swap. Of N concurrent acceptances exactly one succeeds.

        Returns:
            The new membership with the invitation's role
        """
        params = validate(InvitationActionInput, data)
        invitation = await self._require_pending(params.invitation_id)
        await self._require_invitee(invitation, params.user_id)

        with repository_errors("Failed to check team membership"):
            existing = await self.ctx.members.get(invitation.team_id, params.user_id)
        if existing is not None:
            raise AlreadyMemberError(ALREADY_MEMBER)

        with repository_errors("Failed to create team member"):
            try:
                member = await self.ctx.members.create(
                    invitation.team_id, params.user_id, invitation.role
                )
            except UniqueViolationError as e:
                raise AlreadyMemberError(ALREADY_MEMBER, cause=e) from e

        try:
            await self.ctx.invitations.update_status(
                invitation.id, InvitationStatus.ACCEPTED, expected=InvitationStatus.PENDING
            )
        except StaleStateError as e:
            # Rejected (or accepted elsewhere) after our insert
            await self._withdraw_membership(invitation, params.user_id)
            raise InvitationNotPendingError(NOT_PENDING, cause=e) from e
        except RepositoryError as e:
            await self._withdraw_membership(invitation, params.user_id)
            raise InfrastructureError("Failed to update invitation status", cause=e) from e

        logger.info(f"User {params.user_id} joined team {invitation.team_id} via invitation {invitation.id}")
        return member

    async def _withdraw_membership(self, invitation: Invitation, user_id: UUID) -> None:
        """Undo the membership inserted by an acceptance whose status flip failed."""
        with repository_errors("Failed to roll back team membership"):
            try:
                await self.ctx.members.delete(invitation.team_id, user_id)
            except RecordNotFoundError:
                # Already removed by someone else
                return
        logger.warning(
            f"Withdrew membership of user {user_id} in team {invitation.team_id}: "
            f"invitation {invitation.id} was not accepted"
        )

    @returns_result
    async def reject_invitation(self, data: Payload) -> Invitation:
        params = validate(InvitationActionInput, data)
        invitation = await self._require_pending(params.invitation_id)
        await self._require_invitee(invitation, params.user_id)

        with repository_errors("Failed to update invitation status"):
            try:
                rejected = await self.ctx.invitations.update_status(
                    invitation.id, InvitationStatus.REJECTED, expected=InvitationStatus.PENDING
                )
            except StaleStateError as e:
                raise InvitationNotPendingError(NOT_PENDING, cause=e) from e

        logger.info(f"User {params.user_id} rejected invitation {invitation.id}")
        return rejected

    # =========================================================================
    # Listing
    # =========================================================================

    @returns_result
    async def list_team_invitations(self, data: Payload) -> Page[Invitation]:
        """List a team's invitations, pending ones by default (admins only)."""
        params = validate(ListTeamInvitationsInput, data)

        with repository_errors("Failed to check team membership"):
            membership = await self.ctx.members.get(params.team_id, params.user_id)
        require(evaluate(Action.LIST_TEAM_INVITATIONS, params.user_id, membership))

        with repository_errors("Failed to list invitations"):
            return await self.ctx.invitations.list(
                Pagination(limit=100, order=SortOrder.DESC),
                InvitationFilter(team_id=params.team_id, status=params.status),
            )

    @returns_result
    async def list_user_invitations(self, data: Payload) -> list[Invitation]:
        """List invitations addressed to the user's email, newest first."""
        params = validate(ListUserInvitationsInput, data)

        with repository_errors("Failed to get user"):
            user = await self.ctx.users.get_by_id(params.user_id)
        if user is None:
            raise NotFoundError("User")

        with repository_errors("Failed to list invitations"):
            return await self.ctx.invitations.list_by_email(user.email, params.status)
