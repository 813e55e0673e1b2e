"""Authorization policy evaluator.

Stateless decisions over snapshots the caller already loaded: the actor id,
the actor's membership in the relevant team (``None`` for non-members) and,
where the action targets one, the OKR or review. Nothing here touches storage.

    decision = evaluate(Action.UPDATE_OKR, actor_id, membership, okr=okr)
    require(decision)  # raises DeniedError with the reason
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from okrkeeper.schemas.okr import Okr, OkrType, Review
from okrkeeper.schemas.team import TeamMember, TeamRole

from .errors import DeniedError


class Action(str, Enum):
    """Every guarded action, grouped by family below."""

    # Team administration
    UPDATE_TEAM = "update_team"
    UPDATE_TEAM_SETTINGS = "update_team_settings"
    DELETE_TEAM = "delete_team"
    INVITE_MEMBER = "invite_member"
    LIST_TEAM_INVITATIONS = "list_team_invitations"
    UPDATE_MEMBER_ROLE = "update_member_role"
    REMOVE_MEMBER = "remove_member"

    # Team reads
    VIEW_TEAM = "view_team"

    # OKR creation
    CREATE_TEAM_OKR = "create_team_okr"
    CREATE_PERSONAL_OKR = "create_personal_okr"

    # OKR and key result edits
    UPDATE_OKR = "update_okr"
    DELETE_OKR = "delete_okr"
    UPDATE_KEY_RESULT = "update_key_result"
    DELETE_KEY_RESULT = "delete_key_result"
    UPDATE_PROGRESS = "update_progress"

    # Reviews
    CREATE_REVIEW = "create_review"
    UPDATE_REVIEW = "update_review"
    DELETE_REVIEW = "delete_review"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "Decision":
        return cls(allowed=False, reason=reason)


NOT_TEAM_MEMBER = "User is not a member of this team"
NOT_A_TEAM_MEMBER = "User is not a team member"

ADMIN_ONLY_REASONS = {
    Action.UPDATE_TEAM: "User is not authorized to update this team",
    Action.UPDATE_TEAM_SETTINGS: "User is not authorized to update team settings",
    Action.DELETE_TEAM: "User is not authorized to delete this team",
    Action.INVITE_MEMBER: "Only team admins can invite members",
    Action.LIST_TEAM_INVITATIONS: "Only team admins can view team invitations",
    Action.UPDATE_MEMBER_ROLE: "User is not authorized to update member roles",
    Action.REMOVE_MEMBER: "Only admins can remove team members",
}

OWNER_OR_ADMIN_REASONS = {
    Action.UPDATE_OKR: "Insufficient permissions to edit this OKR",
    Action.DELETE_OKR: "Insufficient permissions to delete this OKR",
    Action.UPDATE_KEY_RESULT: "Insufficient permissions to edit this key result",
    Action.DELETE_KEY_RESULT: "Insufficient permissions to delete this key result",
    Action.UPDATE_PROGRESS: "Permission denied: only OKR owner or team admin can update progress",
}

REVIEWER_ONLY_REASONS = {
    Action.UPDATE_REVIEW: "Unauthorized: You can only edit your own reviews",
    Action.DELETE_REVIEW: "Unauthorized: You can only delete your own reviews",
}


def _is_admin(membership: Optional[TeamMember]) -> bool:
    return membership is not None and membership.role == TeamRole.ADMIN


def _is_owner(actor_id: UUID, okr: Optional[Okr]) -> bool:
    # An ownerless OKR has no owner to match, so only admins qualify
    return okr is not None and not okr.is_ownerless and okr.owner_id == actor_id


def can_administer_team(action: Action, membership: Optional[TeamMember]) -> Decision:
    if membership is None and action == Action.REMOVE_MEMBER:
        return Decision.deny(NOT_TEAM_MEMBER)
    if _is_admin(membership):
        return Decision.allow()
    return Decision.deny(ADMIN_ONLY_REASONS[action])


def can_view_team(membership: Optional[TeamMember]) -> Decision:
    if membership is None:
        return Decision.deny(NOT_TEAM_MEMBER)
    return Decision.allow()


def can_create_okr(okr_type: OkrType, membership: Optional[TeamMember]) -> Decision:
    if okr_type == OkrType.TEAM:
        if _is_admin(membership):
            return Decision.allow()
        return Decision.deny("Only team admins can create team OKRs")
    if membership is not None and membership.role in (TeamRole.ADMIN, TeamRole.MEMBER):
        return Decision.allow()
    return Decision.deny("Only team admins and members can create personal OKRs")


def can_edit_okr(
    action: Action,
    actor_id: UUID,
    membership: Optional[TeamMember],
    okr: Okr,
) -> Decision:
    if membership is None:
        if action == Action.UPDATE_PROGRESS:
            return Decision.deny(NOT_A_TEAM_MEMBER)
        return Decision.deny(NOT_TEAM_MEMBER)
    if _is_admin(membership) or _is_owner(actor_id, okr):
        return Decision.allow()
    return Decision.deny(OWNER_OR_ADMIN_REASONS[action])


def can_create_review(actor_id: UUID, membership: Optional[TeamMember], okr: Okr) -> Decision:
    if membership is None:
        return Decision.deny(NOT_A_TEAM_MEMBER)
    if _is_admin(membership) or _is_owner(actor_id, okr):
        return Decision.allow()
    return Decision.deny("Permission denied: only OKR owner or team admin can create reviews")


def can_modify_review(action: Action, actor_id: UUID, review: Review) -> Decision:
    if review.reviewer_id == actor_id:
        return Decision.allow()
    return Decision.deny(REVIEWER_ONLY_REASONS[action])


def evaluate(
    action: Action,
    actor_id: UUID,
    membership: Optional[TeamMember],
    *,
    okr: Optional[Okr] = None,
    review: Optional[Review] = None,
) -> Decision:
    """Decide whether ``actor_id`` may perform ``action``.

    Args:
        action: Action being attempted
        actor_id: Acting user
        membership: Actor's membership in the team that owns the resource
        okr: Target OKR for OKR, key result and review-create actions
        review: Target review for review update and delete

    Returns:
        Decision with the denial reason when not allowed
    """
    if action in ADMIN_ONLY_REASONS:
        return can_administer_team(action, membership)
    if action == Action.VIEW_TEAM:
        return can_view_team(membership)
    if action == Action.CREATE_TEAM_OKR:
        return can_create_okr(OkrType.TEAM, membership)
    if action == Action.CREATE_PERSONAL_OKR:
        return can_create_okr(OkrType.PERSONAL, membership)
    if action in OWNER_OR_ADMIN_REASONS:
        if okr is None:
            raise ValueError(f"{action.value} needs the target OKR")
        return can_edit_okr(action, actor_id, membership, okr)
    if action == Action.CREATE_REVIEW:
        if okr is None:
            raise ValueError(f"{action.value} needs the target OKR")
        return can_create_review(actor_id, membership, okr)
    if action in REVIEWER_ONLY_REASONS:
        if review is None:
            raise ValueError(f"{action.value} needs the target review")
        return can_modify_review(action, actor_id, review)
    raise ValueError(f"Unknown action: {action}")


def require(decision: Decision) -> None:
    """Raise DeniedError when the decision is a denial."""
    if not decision.allowed:
        raise DeniedError(decision.reason or "Permission denied")
