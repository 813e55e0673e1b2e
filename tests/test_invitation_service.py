"""Tests for the invitation lifecycle."""

import asyncio
import uuid

import pytest

from okrkeeper.core.result import Ok
from okrkeeper.schemas.team import InvitationStatus, TeamRole
from okrkeeper.services.errors import (
    AlreadyMemberError,
    DeniedError,
    DuplicateInvitationError,
    InfrastructureError,
    InvalidInputError,
    InvitationNotPendingError,
    NotFoundError,
)


@pytest.fixture
def invite(invitations):
    async def _invite(team, admin, email: str, role: str = "member"):
        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": email, "invited_by_id": admin.id, "role": role}
        )
        assert result.is_ok(), result
        return result.value

    return _invite


class TestInvite:
    async def test_admin_invites(self, invitations, make_user, make_team) -> None:
        alice = await make_user("alice")
        team = await make_team(alice)

        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": "bob@example.com", "invited_by_id": alice.id}
        )
        assert isinstance(result, Ok)
        assert result.value.status == InvitationStatus.PENDING
        assert result.value.role == TeamRole.MEMBER

    async def test_member_cannot_invite(self, invitations, make_user, make_team, add_member) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob")
        team = await make_team(alice)
        await add_member(team, bob)

        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": "carol@example.com", "invited_by_id": bob.id}
        )
        assert result.error.message == "Only team admins can invite members"

    async def test_missing_team(self, invitations, make_user) -> None:
        alice = await make_user("alice")
        result = await invitations.invite_to_team(
            {"team_id": uuid.uuid4(), "invited_email": "bob@example.com", "invited_by_id": alice.id}
        )
        assert isinstance(result.error, NotFoundError)

    async def test_invalid_email(self, invitations, make_user, make_team) -> None:
        alice = await make_user("alice")
        team = await make_team(alice)
        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": "not-an-email", "invited_by_id": alice.id}
        )
        assert isinstance(result.error, InvalidInputError)

    async def test_existing_member(self, invitations, make_user, make_team, add_member) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        await add_member(team, bob)

        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": "bob@example.com", "invited_by_id": alice.id}
        )
        assert isinstance(result.error, AlreadyMemberError)
        assert result.error.message == "User is already a team member"

    async def test_duplicate_pending_invitation(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        team = await make_team(alice)
        await invite(team, alice, "bob@example.com")

        result = await invitations.invite_to_team(
            {"team_id": team.id, "invited_email": "bob@example.com", "invited_by_id": alice.id}
        )
        assert isinstance(result.error, DuplicateInvitationError)
        assert result.error.message == "User already has a pending invitation"

    async def test_reinvite_after_rejection(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        first = await invite(team, alice, "bob@example.com")
        await invitations.reject_invitation({"invitation_id": first.id, "user_id": bob.id})

        second = await invite(team, alice, "bob@example.com")
        assert second.id != first.id

    async def test_concurrent_invites_create_one(self, invitations, store, make_user, make_team) -> None:
        alice = await make_user("alice")
        team = await make_team(alice)
        payload = {"team_id": team.id, "invited_email": "bob@example.com", "invited_by_id": alice.id}

        results = await asyncio.gather(*(invitations.invite_to_team(payload) for _ in range(5)))

        assert sum(r.is_ok() for r in results) == 1
        assert all(isinstance(r.error, DuplicateInvitationError) for r in results if r.is_err())
        assert len(store.invitations) == 1


class TestAccept:
    async def test_accept_joins_with_invited_role(
        self, invitations, invite, ctx, make_user, make_team
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com", role="viewer")

        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": bob.id}
        )
        assert result.value.role == TeamRole.VIEWER
        assert (await ctx.invitations.get_by_id(invitation.id)).status == InvitationStatus.ACCEPTED

    async def test_accept_twice(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        payload = {"invitation_id": invitation.id, "user_id": bob.id}

        assert (await invitations.accept_invitation(payload)).is_ok()
        again = await invitations.accept_invitation(payload)
        assert isinstance(again.error, InvitationNotPendingError)
        assert again.error.message == "Invitation is not pending"

    async def test_wrong_user(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        carol = await make_user("carol", "carol@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")

        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": carol.id}
        )
        assert type(result.error) is DeniedError
        assert result.error.message == "User email does not match invitation"

    async def test_email_comparison_is_case_sensitive(
        self, invitations, invite, make_user, make_team
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "Bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")

        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": bob.id}
        )
        assert result.error.message == "User email does not match invitation"

    async def test_missing_invitation(self, invitations, make_user) -> None:
        bob = await make_user("bob")
        result = await invitations.accept_invitation(
            {"invitation_id": uuid.uuid4(), "user_id": bob.id}
        )
        assert result.error.message == "Invitation not found"

    async def test_unknown_user(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": uuid.uuid4()}
        )
        assert result.error.message == "User not found"

    async def test_already_member_when_accepting(
        self, invitations, invite, make_user, make_team, add_member
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        await add_member(team, bob)

        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": bob.id}
        )
        assert isinstance(result.error, AlreadyMemberError)

    async def test_concurrent_accepts_yield_one_membership(
        self, invitations, invite, ctx, store, make_user, make_team
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        payload = {"invitation_id": invitation.id, "user_id": bob.id}

        results = await asyncio.gather(*(invitations.accept_invitation(payload) for _ in range(10)))

        winners = [r for r in results if r.is_ok()]
        assert len(winners) == 1
        for loser in (r for r in results if r.is_err()):
            assert isinstance(loser.error, (AlreadyMemberError, InvitationNotPendingError))
        assert sum(1 for key in store.members if key == (team.id, bob.id)) == 1
        assert (await ctx.invitations.get_by_id(invitation.id)).status == InvitationStatus.ACCEPTED

    async def test_status_write_failure(self, invitations, invite, store, make_user, make_team) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        store.fail("invitations.update_status", "timeout")

        result = await invitations.accept_invitation(
            {"invitation_id": invitation.id, "user_id": bob.id}
        )
        assert isinstance(result.error, InfrastructureError)
        assert result.error.message == "Failed to update invitation status"
        assert result.error.cause is not None
        assert (team.id, bob.id) not in store.members

    async def test_accept_racing_reject_leaves_no_member(
        self, invitations, invite, ctx, store, make_user, make_team
    ) -> None:
        """Whichever resolution wins, a rejected invitation has no membership."""
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)

        for _ in range(5):
            invitation = await invite(team, alice, "bob@example.com")
            payload = {"invitation_id": invitation.id, "user_id": bob.id}

            accepted, rejected = await asyncio.gather(
                invitations.accept_invitation(payload),
                invitations.reject_invitation(payload),
            )

            assert accepted.is_ok() != rejected.is_ok()
            status = (await ctx.invitations.get_by_id(invitation.id)).status
            is_member = (team.id, bob.id) in store.members
            if rejected.is_ok():
                assert status == InvitationStatus.REJECTED
                assert not is_member
                assert isinstance(accepted.error, InvitationNotPendingError)
            else:
                assert status == InvitationStatus.ACCEPTED
                assert is_member
                del store.members[(team.id, bob.id)]


class TestReject:
    async def test_reject(self, invitations, invite, ctx, make_user, make_team) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")

        result = await invitations.reject_invitation(
            {"invitation_id": invitation.id, "user_id": bob.id}
        )
        assert result.value.status == InvitationStatus.REJECTED
        assert await ctx.members.get(team.id, bob.id) is None

    async def test_cannot_accept_after_reject(self, invitations, invite, make_user, make_team) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        payload = {"invitation_id": invitation.id, "user_id": bob.id}

        await invitations.reject_invitation(payload)
        result = await invitations.accept_invitation(payload)
        assert isinstance(result.error, InvitationNotPendingError)


class TestListing:
    async def test_team_invitations_admin_only(
        self, invitations, invite, make_user, make_team, add_member
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob")
        team = await make_team(alice)
        await add_member(team, bob)
        await invite(team, alice, "carol@example.com")
        await invite(team, alice, "dave@example.com")

        listed = await invitations.list_team_invitations({"team_id": team.id, "user_id": alice.id})
        assert listed.value.count == 2

        denied = await invitations.list_team_invitations({"team_id": team.id, "user_id": bob.id})
        assert denied.error.message == "Only team admins can view team invitations"

    async def test_user_invitations_pending_by_default(
        self, invitations, invite, make_user, make_team
    ) -> None:
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        first = await make_team(alice, "First")
        second = await make_team(alice, "Second")
        rejected = await invite(first, alice, "bob@example.com")
        await invite(second, alice, "bob@example.com")
        await invitations.reject_invitation({"invitation_id": rejected.id, "user_id": bob.id})

        pending = await invitations.list_user_invitations({"user_id": bob.id})
        assert [i.team_id for i in pending.value] == [second.id]

        everything = await invitations.list_user_invitations({"user_id": bob.id, "status": None})
        assert len(everything.value) == 2


class TestInvitationScenario:
    async def test_invite_accept_and_act(
        self, invitations, invite, teams, okrs, make_user, make_team, make_okr
    ) -> None:
        """An invited member joins, owns a personal OKR and updates its progress."""
        alice = await make_user("alice")
        bob = await make_user("bob", "bob@example.com")
        team = await make_team(alice)
        invitation = await invite(team, alice, "bob@example.com")
        await invitations.accept_invitation({"invitation_id": invitation.id, "user_id": bob.id})

        members = await teams.get_team_members({"team_id": team.id, "user_id": bob.id})
        assert {m.user_id for m in members.value.items} == {alice.id, bob.id}

        okr = await make_okr(team, bob, okr_type="personal", targets=(10,))
        assert okr.owner_id == bob.id
        progress = await okrs.update_key_result_progress(
            {"key_result_id": okr.key_results[0].id, "user_id": bob.id, "current_value": 5}
        )
        assert progress.value.current_value == 5
