"""User entities, repository parameters and operation inputs."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from .common import DomainModel, InputModel


class User(DomainModel):
    """Registered user account."""

    id: UUID
    email: str
    display_name: str
    hashed_password: str
    created_at: datetime
    updated_at: datetime


class UserProfile(DomainModel):
    """Public view of a user, without credentials."""

    id: UUID
    email: str
    display_name: str
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            created_at=user.created_at,
        )


class SessionData(BaseModel):
    """Identity carried by a signed-in session."""

    user_id: UUID
    email: str
    display_name: str


class CreateUserParams(BaseModel):
    email: str
    display_name: str
    hashed_password: str


class UpdateUserParams(BaseModel):
    display_name: Optional[str] = None
    hashed_password: Optional[str] = None


# =============================================================================
# Operation inputs
# =============================================================================


class CreateUserInput(InputModel):
    email: EmailStr
    display_name: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=8)


class LoginUserInput(InputModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ChangePasswordInput(InputModel):
    user_id: UUID
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


class UpdateProfileInput(InputModel):
    user_id: UUID
    display_name: str = Field(..., min_length=1, max_length=100)


class ListUsersInUserTeamsInput(InputModel):
    user_id: UUID


class AuthSession(BaseModel):
    """Token handed back by a successful login."""

    access_token: str
    token_type: str = "bearer"
    user: UserProfile
