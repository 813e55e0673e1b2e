"""Tests for the authorization policy evaluator."""

import uuid
from datetime import UTC, datetime

import pytest

from okrkeeper.schemas.okr import Okr, OkrType, Review, ReviewType
from okrkeeper.schemas.team import TeamMember, TeamRole
from okrkeeper.services.errors import DeniedError
from okrkeeper.services.policy import Action, Decision, evaluate, require

NOW = datetime(2024, 1, 15, tzinfo=UTC)
TEAM_ID = uuid.uuid4()


def member(user_id: uuid.UUID, role: TeamRole) -> TeamMember:
    return TeamMember(team_id=TEAM_ID, user_id=user_id, role=role, joined_at=NOW)


def okr(owner_id: uuid.UUID | None, okr_type: OkrType = OkrType.TEAM) -> Okr:
    return Okr(
        id=uuid.uuid4(),
        title="Grow revenue",
        type=okr_type,
        team_id=TEAM_ID,
        owner_id=owner_id,
        quarter_year=2024,
        quarter_quarter=1,
        created_at=NOW,
        updated_at=NOW,
    )


def review(reviewer_id: uuid.UUID) -> Review:
    return Review(
        id=uuid.uuid4(),
        okr_id=uuid.uuid4(),
        type=ReviewType.PROGRESS,
        content="On track",
        reviewer_id=reviewer_id,
        created_at=NOW,
        updated_at=NOW,
    )


ADMIN_ACTIONS = [
    Action.UPDATE_TEAM,
    Action.UPDATE_TEAM_SETTINGS,
    Action.DELETE_TEAM,
    Action.INVITE_MEMBER,
    Action.LIST_TEAM_INVITATIONS,
    Action.UPDATE_MEMBER_ROLE,
    Action.REMOVE_MEMBER,
]

OKR_EDIT_ACTIONS = [
    Action.UPDATE_OKR,
    Action.DELETE_OKR,
    Action.UPDATE_KEY_RESULT,
    Action.DELETE_KEY_RESULT,
    Action.UPDATE_PROGRESS,
]


class TestTeamAdministration:
    """Admin-only team actions."""

    @pytest.mark.parametrize("action", ADMIN_ACTIONS)
    def test_admin_allowed(self, action: Action) -> None:
        actor = uuid.uuid4()
        assert evaluate(action, actor, member(actor, TeamRole.ADMIN)).allowed

    @pytest.mark.parametrize("action", ADMIN_ACTIONS)
    @pytest.mark.parametrize("role", [TeamRole.MEMBER, TeamRole.VIEWER])
    def test_non_admin_denied(self, action: Action, role: TeamRole) -> None:
        actor = uuid.uuid4()
        decision = evaluate(action, actor, member(actor, role))
        assert not decision.allowed
        assert decision.reason

    def test_invite_reason(self) -> None:
        actor = uuid.uuid4()
        decision = evaluate(Action.INVITE_MEMBER, actor, member(actor, TeamRole.MEMBER))
        assert decision.reason == "Only team admins can invite members"

    def test_delete_team_reason(self) -> None:
        actor = uuid.uuid4()
        decision = evaluate(Action.DELETE_TEAM, actor, member(actor, TeamRole.VIEWER))
        assert decision.reason == "User is not authorized to delete this team"

    def test_remove_member_by_outsider_reports_non_membership(self) -> None:
        decision = evaluate(Action.REMOVE_MEMBER, uuid.uuid4(), None)
        assert decision.reason == "User is not a member of this team"

    def test_remove_member_by_member(self) -> None:
        actor = uuid.uuid4()
        decision = evaluate(Action.REMOVE_MEMBER, actor, member(actor, TeamRole.MEMBER))
        assert decision.reason == "Only admins can remove team members"


class TestViewTeam:
    @pytest.mark.parametrize("role", list(TeamRole))
    def test_any_member_can_view(self, role: TeamRole) -> None:
        actor = uuid.uuid4()
        assert evaluate(Action.VIEW_TEAM, actor, member(actor, role)).allowed

    def test_outsider_cannot_view(self) -> None:
        decision = evaluate(Action.VIEW_TEAM, uuid.uuid4(), None)
        assert decision == Decision.deny("User is not a member of this team")


class TestOkrCreation:
    def test_team_okr_admin_only(self) -> None:
        actor = uuid.uuid4()
        assert evaluate(Action.CREATE_TEAM_OKR, actor, member(actor, TeamRole.ADMIN)).allowed
        decision = evaluate(Action.CREATE_TEAM_OKR, actor, member(actor, TeamRole.MEMBER))
        assert decision.reason == "Only team admins can create team OKRs"

    @pytest.mark.parametrize("role", [TeamRole.ADMIN, TeamRole.MEMBER])
    def test_personal_okr_for_admins_and_members(self, role: TeamRole) -> None:
        actor = uuid.uuid4()
        assert evaluate(Action.CREATE_PERSONAL_OKR, actor, member(actor, role)).allowed

    def test_viewer_cannot_create_personal_okr(self) -> None:
        actor = uuid.uuid4()
        decision = evaluate(Action.CREATE_PERSONAL_OKR, actor, member(actor, TeamRole.VIEWER))
        assert decision.reason == "Only team admins and members can create personal OKRs"

    def test_outsider_cannot_create(self) -> None:
        assert not evaluate(Action.CREATE_PERSONAL_OKR, uuid.uuid4(), None).allowed
        assert not evaluate(Action.CREATE_TEAM_OKR, uuid.uuid4(), None).allowed


class TestOkrEdits:
    @pytest.mark.parametrize("action", OKR_EDIT_ACTIONS)
    def test_owner_allowed(self, action: Action) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=actor)
        assert evaluate(action, actor, member(actor, TeamRole.MEMBER), okr=target).allowed

    @pytest.mark.parametrize("action", OKR_EDIT_ACTIONS)
    def test_admin_allowed_on_any_okr(self, action: Action) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=uuid.uuid4())
        assert evaluate(action, actor, member(actor, TeamRole.ADMIN), okr=target).allowed

    @pytest.mark.parametrize("action", OKR_EDIT_ACTIONS)
    def test_other_member_denied(self, action: Action) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=uuid.uuid4())
        assert not evaluate(action, actor, member(actor, TeamRole.MEMBER), okr=target).allowed

    def test_ownerless_okr_is_admin_only(self) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=None)
        decision = evaluate(Action.UPDATE_OKR, actor, member(actor, TeamRole.MEMBER), okr=target)
        assert decision.reason == "Insufficient permissions to edit this OKR"

    def test_owner_viewer_may_update_progress(self) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=actor)
        decision = evaluate(
            Action.UPDATE_PROGRESS, actor, member(actor, TeamRole.VIEWER), okr=target
        )
        assert decision.allowed

    def test_progress_reasons(self) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=uuid.uuid4())
        outsider = evaluate(Action.UPDATE_PROGRESS, actor, None, okr=target)
        assert outsider.reason == "User is not a team member"
        viewer = evaluate(
            Action.UPDATE_PROGRESS, actor, member(actor, TeamRole.VIEWER), okr=target
        )
        assert viewer.reason == "Permission denied: only OKR owner or team admin can update progress"

    def test_outsider_owner_still_denied(self) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=actor)
        decision = evaluate(Action.DELETE_OKR, actor, None, okr=target)
        assert decision.reason == "User is not a member of this team"

    def test_missing_okr_is_a_programming_error(self) -> None:
        actor = uuid.uuid4()
        with pytest.raises(ValueError):
            evaluate(Action.UPDATE_OKR, actor, member(actor, TeamRole.ADMIN))


class TestReviews:
    def test_owner_and_admin_may_review(self) -> None:
        owner = uuid.uuid4()
        admin = uuid.uuid4()
        target = okr(owner_id=owner)
        assert evaluate(Action.CREATE_REVIEW, owner, member(owner, TeamRole.MEMBER), okr=target).allowed
        assert evaluate(Action.CREATE_REVIEW, admin, member(admin, TeamRole.ADMIN), okr=target).allowed

    def test_other_member_may_not_review(self) -> None:
        actor = uuid.uuid4()
        target = okr(owner_id=uuid.uuid4())
        decision = evaluate(Action.CREATE_REVIEW, actor, member(actor, TeamRole.MEMBER), okr=target)
        assert decision.reason == "Permission denied: only OKR owner or team admin can create reviews"

    def test_outsider_may_not_review(self) -> None:
        decision = evaluate(Action.CREATE_REVIEW, uuid.uuid4(), None, okr=okr(None))
        assert decision.reason == "User is not a team member"

    def test_only_reviewer_modifies(self) -> None:
        reviewer = uuid.uuid4()
        target = review(reviewer)
        assert evaluate(Action.UPDATE_REVIEW, reviewer, None, review=target).allowed
        assert evaluate(Action.DELETE_REVIEW, reviewer, None, review=target).allowed

    def test_admin_cannot_modify_someone_elses_review(self) -> None:
        admin = uuid.uuid4()
        target = review(uuid.uuid4())
        update = evaluate(Action.UPDATE_REVIEW, admin, member(admin, TeamRole.ADMIN), review=target)
        delete = evaluate(Action.DELETE_REVIEW, admin, member(admin, TeamRole.ADMIN), review=target)
        assert update.reason == "Unauthorized: You can only edit your own reviews"
        assert delete.reason == "Unauthorized: You can only delete your own reviews"


class TestRequire:
    def test_allow_passes(self) -> None:
        require(Decision.allow())

    def test_deny_raises_with_reason(self) -> None:
        with pytest.raises(DeniedError, match="nope"):
            require(Decision.deny("nope"))
