"""Authentication router for registration and sessions.

Endpoints for user registration, login, logout, profile and password changes.
Sessions are JWT bearer tokens issued by the session manager.
"""

from fastapi import APIRouter, status
from pydantic import BaseModel

from okrkeeper.api.deps import BearerToken, CurrentUser, Users
from okrkeeper.api.exceptions import UnauthorizedError, unwrap
from okrkeeper.schemas.user import AuthSession, SessionData, UserProfile
from okrkeeper.services.errors import DeniedError

router = APIRouter()


# =============================================================================
# Schemas
# =============================================================================


class RegisterRequest(BaseModel):
    """User registration request."""

    email: str
    display_name: str
    password: str


class LoginRequest(BaseModel):
    """User login request."""

    email: str
    password: str


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class UpdateProfileRequest(BaseModel):
    display_name: str


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/register",
    response_model=UserProfile,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
)
async def register(request: RegisterRequest, users: Users) -> UserProfile:
    return unwrap(await users.create_user(request))


@router.post(
    "/login",
    response_model=AuthSession,
    summary="Sign in with email and password",
)
async def login(request: LoginRequest, users: Users) -> AuthSession:
    """Exchange credentials for a bearer token.

    Bad credentials are reported as 401 rather than 403.
    """
    result = await users.login_user(request)
    if result.is_err() and type(result.error) is DeniedError:
        raise UnauthorizedError(result.error.message)
    return unwrap(result)


@router.post("/logout", response_model=MessageResponse, summary="Sign out")
async def logout(token: BearerToken, users: Users) -> MessageResponse:
    unwrap(await users.logout_user(token))
    return MessageResponse(message="Successfully logged out")


@router.get("/me", response_model=SessionData, summary="Get the signed-in user")
async def get_me(user: CurrentUser) -> SessionData:
    return user


@router.patch("/me", response_model=UserProfile, summary="Update the signed-in user's profile")
async def update_me(request: UpdateProfileRequest, user: CurrentUser, users: Users) -> UserProfile:
    return unwrap(
        await users.update_profile({"user_id": user.user_id, "display_name": request.display_name})
    )


@router.get(
    "/me/teammates",
    response_model=list[UserProfile],
    summary="List users who share a team with the signed-in user",
)
async def list_teammates(user: CurrentUser, users: Users) -> list[UserProfile]:
    return unwrap(await users.list_users_in_user_teams({"user_id": user.user_id}))


@router.post(
    "/change-password",
    response_model=MessageResponse,
    summary="Change the signed-in user's password",
)
async def change_password(
    request: ChangePasswordRequest,
    user: CurrentUser,
    users: Users,
) -> MessageResponse:
    unwrap(
        await users.change_password(
            {
                "user_id": user.user_id,
                "current_password": request.current_password,
                "new_password": request.new_password,
            }
        )
    )
    return MessageResponse(message="Password changed")
