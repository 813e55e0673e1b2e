"""Membership integrity guard.

Keeps every team with members holding at least one admin. The pre-write
checks only step in when an admin acts on themself (self-demotion or
self-removal); removing or demoting a *different* admin is left to the
policy evaluator. After any admin is demoted or removed the count is read
again, which catches concurrent self-demotions that each saw the other admin.
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from okrkeeper.repositories.ports import TeamMemberRepository
from okrkeeper.schemas.team import TeamMember, TeamRole

from .errors import LastAdminError, TeamNotEmptyError

logger = logging.getLogger(__name__)

LAST_ADMIN = "Cannot remove the last admin from the team"
TEAM_NOT_EMPTY = "Cannot delete team with other members"


def count_admins(members: Iterable[TeamMember]) -> int:
    return sum(1 for m in members if m.role == TeamRole.ADMIN)


class MembershipGuard:
    """Checks that run around membership mutations.

    Reads go through the member repository; callers wrap the calls in
    ``repository_errors`` so storage failures surface as infrastructure errors.
    """

    def __init__(self, members: TeamMemberRepository):
        self.members = members

    async def check_role_change(
        self,
        team_id: UUID,
        actor_id: UUID,
        target_user_id: UUID,
        new_role: TeamRole,
    ) -> None:
        """Refuse a self-demotion that would leave the team without admins.

        Raises:
            LastAdminError: If the actor is the only admin and demotes themself
        """
        if actor_id != target_user_id or new_role == TeamRole.ADMIN:
            return
        members = await self.members.list_by_team(team_id)
        remaining = count_admins(m for m in members if m.user_id != actor_id)
        if remaining == 0:
            logger.info(f"Blocked self-demotion of last admin {actor_id} in team {team_id}")
            raise LastAdminError(LAST_ADMIN)

    async def check_removal(self, team_id: UUID, actor_id: UUID, target_user_id: UUID) -> None:
        """Refuse a self-removal that would leave the team without admins.

        Raises:
            LastAdminError: If the actor is the only admin and removes themself
        """
        if actor_id != target_user_id:
            return
        members = await self.members.list_by_team(team_id)
        actor = next((m for m in members if m.user_id == actor_id), None)
        if actor is None or actor.role != TeamRole.ADMIN:
            return
        if count_admins(m for m in members if m.user_id != actor_id) == 0:
            logger.info(f"Blocked self-removal of last admin {actor_id} from team {team_id}")
            raise LastAdminError(LAST_ADMIN)

    async def check_team_deletion(self, team_id: UUID) -> None:
        """Refuse deleting a team that still has more than one member.

        Raises:
            TeamNotEmptyError: If anyone besides the sole remaining member is left
        """
        if await self.members.count_by_team(team_id) > 1:
            raise TeamNotEmptyError(TEAM_NOT_EMPTY)

    async def confirm_admin_remains(self, team_id: UUID, target: TeamMember) -> None:
        """Re-check the admin invariant after a demotion or removal was written.

        The pre-write checks read the admin count before writing, so two admins
        demoting or removing themselves at once can both pass them. When the
        team ends up with members but no admin, ``target`` is put back as an
        admin and the change is refused.

        Args:
            target: The membership as it was before the write

        Raises:
            LastAdminError: If the write left the team without an admin
        """
        if target.role != TeamRole.ADMIN:
            return
        members = await self.members.list_by_team(team_id)
        if not members or count_admins(members) > 0:
            return

        logger.warning(f"Team {team_id} lost its last admin; restoring {target.user_id}")
        if any(m.user_id == target.user_id for m in members):
            await self.members.update_role(team_id, target.user_id, TeamRole.ADMIN)
        else:
            await self.members.create(team_id, target.user_id, TeamRole.ADMIN)
        raise LastAdminError(LAST_ADMIN)
