"""User registration, login, session and profile service.

Sits beside the authorization core: apart from the team-mates lookup it only
talks to the user repository and the password and session ports.
"""

import logging
from typing import Optional
from uuid import UUID

from okrkeeper.repositories.ports import UniqueViolationError
from okrkeeper.schemas.user import (
    AuthSession,
    ChangePasswordInput,
    CreateUserInput,
    CreateUserParams,
    ListUsersInUserTeamsInput,
    LoginUserInput,
    SessionData,
    UpdateProfileInput,
    UpdateUserParams,
    UserProfile,
)

from .context import ServiceContext
from .errors import (
    DeniedError,
    NotFoundError,
    Payload,
    repository_errors,
    returns_result,
    validate,
)

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "User with this email already exists"
INVALID_CREDENTIALS = "Invalid email or password"


class UserService:
    """Service for user accounts and sessions."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    @returns_result
    async def create_user(self, data: Payload) -> UserProfile:
        """Register a user.

        Args:
            data: CreateUserInput fields

        Returns:
            Public profile of the new user

        Raises (as Err):
            DeniedError: If the email is already registered
        """
        params = validate(CreateUserInput, data)

        with repository_errors("Failed to check existing user"):
            existing = await self.ctx.users.get_by_email(params.email)
        if existing is not None:
            raise DeniedError(EMAIL_TAKEN)

        hashed = await self.ctx.password_hasher.hash(params.password)

        with repository_errors("Failed to create user"):
            try:
                user = await self.ctx.users.create(
                    CreateUserParams(
                        email=params.email,
                        display_name=params.display_name,
                        hashed_password=hashed,
                    )
                )
            except UniqueViolationError as e:
                raise DeniedError(EMAIL_TAKEN, cause=e) from e

        logger.info(f"Registered user {user.id}")
        return UserProfile.from_user(user)

    @returns_result
    async def login_user(self, data: Payload) -> AuthSession:
        """Verify credentials and open a session.

        Unknown email and wrong password report the same message.
        """
        params = validate(LoginUserInput, data)

        with repository_errors("Failed to find user"):
            user = await self.ctx.users.get_by_email(params.email)
        if user is None:
            raise DeniedError(INVALID_CREDENTIALS)

        if not await self.ctx.password_hasher.verify(params.password, user.hashed_password):
            raise DeniedError(INVALID_CREDENTIALS)

        token = await self.ctx.session_manager.sign_in(
            SessionData(user_id=user.id, email=user.email, display_name=user.display_name)
        )
        logger.info(f"User {user.id} signed in")
        return AuthSession(access_token=token, user=UserProfile.from_user(user))

    @returns_result
    async def logout_user(self, token: str) -> None:
        await self.ctx.session_manager.sign_out(token)

    @returns_result
    async def get_session(self, token: str) -> Optional[SessionData]:
        """Resolve a token to its session, or None when invalid or signed out."""
        return await self.ctx.session_manager.get_session(token)

    @returns_result
    async def change_password(self, data: Payload) -> None:
        params = validate(ChangePasswordInput, data)

        with repository_errors("Failed to get user"):
            user = await self.ctx.users.get_by_id(params.user_id)
        if user is None:
            raise NotFoundError("User")

        if not await self.ctx.password_hasher.verify(params.current_password, user.hashed_password):
            raise DeniedError("Current password is incorrect")

        hashed = await self.ctx.password_hasher.hash(params.new_password)
        with repository_errors("Failed to update password"):
            await self.ctx.users.update(user.id, UpdateUserParams(hashed_password=hashed))
        logger.info(f"User {user.id} changed password")

    @returns_result
    async def update_profile(self, data: Payload) -> UserProfile:
        """Change the user's display name.

        Tokens issued earlier keep the old name until the next login.
        """
        params = validate(UpdateProfileInput, data)

        with repository_errors("Failed to get user"):
            user = await self.ctx.users.get_by_id(params.user_id)
        if user is None:
            raise NotFoundError("User")

        with repository_errors("Failed to update profile"):
            updated = await self.ctx.users.update(
                user.id, UpdateUserParams(display_name=params.display_name)
            )
        logger.info(f"User {user.id} updated their profile")
        return UserProfile.from_user(updated)

    @returns_result
    async def list_users_in_user_teams(self, data: Payload) -> list[UserProfile]:
        """List everyone who shares at least one team with the user.

        The user is included when they belong to any team. Profiles are
        ordered by team, then by join date within the team, without repeats.
        """
        params = validate(ListUsersInUserTeamsInput, data)

        with repository_errors("Failed to get user teams"):
            teams = await self.ctx.teams.list_by_user(params.user_id)

        user_ids: dict[UUID, None] = {}
        with repository_errors("Failed to list team members"):
            for team in teams:
                for member in await self.ctx.members.list_by_team(team.id):
                    user_ids.setdefault(member.user_id)

        profiles = []
        with repository_errors("Failed to get user"):
            for user_id in user_ids:
                user = await self.ctx.users.get_by_id(user_id)
                if user is not None:
                    profiles.append(UserProfile.from_user(user))
        return profiles
