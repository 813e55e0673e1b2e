"""Team management service.

Provides business logic for team operations:
- Team CRUD with the creator as first admin
- Member listing, role changes and removal guarded by the admin invariant
- Review frequency settings
"""

import logging
from typing import Optional
from uuid import UUID

from okrkeeper.schemas.common import Page, Pagination
from okrkeeper.schemas.team import (
    CreateTeamInput,
    CreateTeamParams,
    GetTeamMembersInput,
    ListUserTeamsInput,
    MemberFilter,
    RemoveMemberInput,
    Team,
    TeamActorInput,
    TeamMember,
    TeamRole,
    UpdateMemberRoleInput,
    UpdateTeamInput,
    UpdateTeamParams,
    UpdateTeamReviewFrequencyInput,
)

from .context import ServiceContext
from .errors import NotFoundError, Payload, repository_errors, returns_result, validate
from .membership_guard import MembershipGuard
from .policy import Action, evaluate, require

logger = logging.getLogger(__name__)


class TeamService:
    """Service for managing teams and their members."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx
        self.guard = MembershipGuard(ctx.members)

    # =========================================================================
    # Lookups shared by team operations
    # =========================================================================

    async def _require_team(self, team_id: UUID) -> Team:
        with repository_errors("Failed to get team"):
            team = await self.ctx.teams.get_by_id(team_id)
        if team is None:
            raise NotFoundError("Team")
        return team

    async def _membership(self, team_id: UUID, user_id: UUID) -> Optional[TeamMember]:
        with repository_errors("Failed to check team membership"):
            return await self.ctx.members.get(team_id, user_id)

    # =========================================================================
    # Team CRUD
    # =========================================================================

    @returns_result
    async def create_team(self, data: Payload) -> Team:
        """Create a team with the given user as its only admin.

        The team row and the admin membership are two separate writes. If the
        membership write fails the team row stays behind without members.

        Args:
            data: CreateTeamInput fields

        Returns:
            Created team

        Raises (as Err):
            NotFoundError: If the creating user doesn't exist
        """
        params = validate(CreateTeamInput, data)

        with repository_errors("Failed to get user"):
            creator = await self.ctx.users.get_by_id(params.user_id)
        if creator is None:
            raise NotFoundError("User")

        with repository_errors("Failed to create team"):
            team = await self.ctx.teams.create(
                CreateTeamParams(
                    name=params.name,
                    description=params.description,
                    review_frequency=params.review_frequency,
                )
            )

        with repository_errors("Failed to add team creator as admin"):
            await self.ctx.members.create(team.id, params.user_id, TeamRole.ADMIN)

        logger.info(f"Created team {team.id} with admin {params.user_id}")
        return team

    @returns_result
    async def get_team(self, data: Payload) -> Team:
        """Get a team the actor belongs to."""
        params = validate(TeamActorInput, data)
        team = await self._require_team(params.team_id)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.VIEW_TEAM, params.user_id, membership))
        return team

    @returns_result
    async def list_user_teams(self, data: Payload) -> list[Team]:
        params = validate(ListUserTeamsInput, data)
        with repository_errors("Failed to get teams"):
            return await self.ctx.teams.list_by_user(params.user_id)

    @returns_result
    async def update_team(self, data: Payload) -> Team:
        """Rename a team or change its description (admins only)."""
        params = validate(UpdateTeamInput, data)
        await self._require_team(params.team_id)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.UPDATE_TEAM, params.user_id, membership))

        with repository_errors("Failed to update team"):
            team = await self.ctx.teams.update(
                params.team_id,
                UpdateTeamParams(name=params.name, description=params.description),
            )
        logger.info(f"Team {team.id} updated by {params.user_id}")
        return team

    @returns_result
    async def update_team_review_frequency(self, data: Payload) -> Team:
        params = validate(UpdateTeamReviewFrequencyInput, data)
        await self._require_team(params.team_id)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.UPDATE_TEAM_SETTINGS, params.user_id, membership))

        with repository_errors("Failed to update team review frequency"):
            team = await self.ctx.teams.update(
                params.team_id,
                UpdateTeamParams(review_frequency=params.review_frequency),
            )
        logger.info(f"Team {team.id} review frequency set to {team.review_frequency.value}")
        return team

    @returns_result
    async def delete_team(self, data: Payload) -> None:
        """Delete a team whose only remaining member is the acting admin.

        The member count is checked before the actor's role, so a populated
        team reports "Cannot delete team with other members" to everyone.

        Raises (as Err):
            NotFoundError: If the team doesn't exist
            TeamNotEmptyError: If the team has more than one member
            DeniedError: If the actor is not an admin
        """
        params = validate(TeamActorInput, data)
        await self._require_team(params.team_id)

        with repository_errors("Failed to check team members"):
            await self.guard.check_team_deletion(params.team_id)

        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.DELETE_TEAM, params.user_id, membership))

        with repository_errors("Failed to delete team"):
            await self.ctx.teams.delete(params.team_id)
        logger.info(f"Team {params.team_id} deleted by {params.user_id}")

    # =========================================================================
    # Member Management
    # =========================================================================

    @returns_result
    async def get_team_members(self, data: Payload) -> Page[TeamMember]:
        params = validate(GetTeamMembersInput, data)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.VIEW_TEAM, params.user_id, membership))

        pagination = Pagination(
            page=1,
            limit=min(self.ctx.settings.member_list_limit, 100),
            order_by="joined_at",
        )
        with repository_errors("Failed to get team members"):
            return await self.ctx.members.list(
                params.team_id, pagination, MemberFilter(role=params.role)
            )

    @returns_result
    async def update_member_role(self, data: Payload) -> TeamMember:
        """Change a member's role.

        Args:
            data: UpdateMemberRoleInput fields; ``user_id`` is the acting admin

        Returns:
            Updated membership

        Raises (as Err):
            NotFoundError: If the team doesn't exist or the target is not a member
            DeniedError: If the actor is not an admin
            LastAdminError: If the only admin demotes themself
        """
        params = validate(UpdateMemberRoleInput, data)
        await self._require_team(params.team_id)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.UPDATE_MEMBER_ROLE, params.user_id, membership))

        target = await self._membership(params.team_id, params.target_user_id)
        if target is None:
            raise NotFoundError("Team member")

        with repository_errors("Failed to check team members"):
            await self.guard.check_role_change(
                params.team_id, params.user_id, params.target_user_id, params.role
            )

        with repository_errors("Failed to update member role"):
            updated = await self.ctx.members.update_role(
                params.team_id, params.target_user_id, params.role
            )
            if params.role != TeamRole.ADMIN:
                await self.guard.confirm_admin_remains(params.team_id, target)
        logger.info(
            f"Member {params.target_user_id} of team {params.team_id} is now {updated.role.value}"
        )
        return updated

    @returns_result
    async def remove_member_from_team(self, data: Payload) -> None:
        """Remove a member (admins only).

        An admin may remove themself only while another admin remains.
        """
        params = validate(RemoveMemberInput, data)
        await self._require_team(params.team_id)
        membership = await self._membership(params.team_id, params.user_id)
        require(evaluate(Action.REMOVE_MEMBER, params.user_id, membership))

        target = await self._membership(params.team_id, params.target_user_id)
        if target is None:
            raise NotFoundError("Team member")

        with repository_errors("Failed to check team members"):
            await self.guard.check_removal(params.team_id, params.user_id, params.target_user_id)

        with repository_errors("Failed to remove team member"):
            await self.ctx.members.delete(params.team_id, params.target_user_id)
            await self.guard.confirm_admin_remains(params.team_id, target)
        logger.info(f"Removed {params.target_user_id} from team {params.team_id}")
