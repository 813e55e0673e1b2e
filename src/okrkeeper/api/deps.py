"""FastAPI dependencies for dependency injection.

Provides the service context wired at start-up and the bearer-token
authentication every team, OKR and review endpoint relies on.
"""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from okrkeeper.api.exceptions import UnauthorizedError
from okrkeeper.schemas.user import SessionData
from okrkeeper.services import (
    InvitationService,
    OkrService,
    ReviewService,
    ServiceContext,
    TeamService,
    UserService,
)

# Security scheme
security = HTTPBearer(auto_error=False)


def get_service_context(request: Request) -> ServiceContext:
    """Return the context built by the application lifespan."""
    context = getattr(request.app.state, "context", None)
    if context is None:
        raise RuntimeError("Service context not initialized")
    return context


Context = Annotated[ServiceContext, Depends(get_service_context)]


async def get_bearer_token(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> str:
    if credentials is None:
        raise UnauthorizedError("Missing authentication token")
    return credentials.credentials


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def get_current_user(token: BearerToken, ctx: Context) -> SessionData:
    """Resolve the acting user from the bearer token.

    Raises:
        UnauthorizedError: If the token is invalid, expired or signed out
    """
    session = await ctx.session_manager.get_session(token)
    if session is None:
        raise UnauthorizedError("Invalid or expired token")
    return session


CurrentUser = Annotated[SessionData, Depends(get_current_user)]


def get_team_service(ctx: Context) -> TeamService:
    return TeamService(ctx)


def get_invitation_service(ctx: Context) -> InvitationService:
    return InvitationService(ctx)


def get_okr_service(ctx: Context) -> OkrService:
    return OkrService(ctx)


def get_review_service(ctx: Context) -> ReviewService:
    return ReviewService(ctx)


def get_user_service(ctx: Context) -> UserService:
    return UserService(ctx)


Teams = Annotated[TeamService, Depends(get_team_service)]
Invitations = Annotated[InvitationService, Depends(get_invitation_service)]
Okrs = Annotated[OkrService, Depends(get_okr_service)]
Reviews = Annotated[ReviewService, Depends(get_review_service)]
Users = Annotated[UserService, Depends(get_user_service)]
