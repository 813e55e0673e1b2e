"""Shared fixtures: an in-memory service context and seeding helpers."""

import uuid

import pytest

from okrkeeper.core.config import Settings
from okrkeeper.repositories import InMemoryStore
from okrkeeper.schemas.okr import OkrType
from okrkeeper.schemas.team import TeamRole
from okrkeeper.schemas.user import CreateUserParams
from okrkeeper.services import (
    InvitationService,
    OkrService,
    ReviewService,
    TeamService,
    UserService,
    build_memory_context,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        secret_key="test-secret-key",
        bcrypt_rounds=4,
        database_url="sqlite:///:memory:",
    )


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def ctx(store, settings):
    return build_memory_context(store, settings)


@pytest.fixture
def teams(ctx) -> TeamService:
    return TeamService(ctx)


@pytest.fixture
def invitations(ctx) -> InvitationService:
    return InvitationService(ctx)


@pytest.fixture
def okrs(ctx) -> OkrService:
    return OkrService(ctx)


@pytest.fixture
def reviews(ctx) -> ReviewService:
    return ReviewService(ctx)


@pytest.fixture
def users(ctx) -> UserService:
    return UserService(ctx)


@pytest.fixture
def make_user(ctx):
    """Create a user row directly, skipping password hashing."""

    async def _make_user(name: str = "user", email: str | None = None):
        email = email or f"{name}-{uuid.uuid4().hex[:8]}@example.com"
        return await ctx.users.create(
            CreateUserParams(email=email, display_name=name, hashed_password="not-a-hash")
        )

    return _make_user


@pytest.fixture
def make_team(teams):
    """Create a team through the service with ``admin`` as its creator."""

    async def _make_team(admin, name: str = "Platform"):
        result = await teams.create_team({"name": name, "user_id": admin.id})
        assert result.is_ok(), result
        return result.value

    return _make_team


@pytest.fixture
def add_member(ctx):
    async def _add_member(team, user, role: TeamRole = TeamRole.MEMBER):
        return await ctx.members.create(team.id, user.id, role)

    return _add_member


@pytest.fixture
def make_okr(okrs):
    """Create an OKR with one key result per target value."""

    async def _make_okr(
        team,
        actor,
        okr_type: OkrType = OkrType.TEAM,
        owner=None,
        targets=(100,),
        title: str = "Ship v2",
    ):
        payload = {
            "title": title,
            "type": okr_type,
            "team_id": team.id,
            "user_id": actor.id,
            "quarter": {"year": 2024, "quarter": 1},
            "key_results": [
                {"title": f"KR {i}", "target_value": target}
                for i, target in enumerate(targets, start=1)
            ],
        }
        if owner is not None:
            payload["owner_id"] = owner.id
        result = await okrs.create_okr(payload)
        assert result.is_ok(), result
        return result.value

    return _make_okr
