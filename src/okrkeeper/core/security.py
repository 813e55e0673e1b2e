"""Password hashing and session token adapters.

The user services depend on the ``PasswordHasher`` and ``SessionManager``
protocols only; the bcrypt and JWT implementations below are the ones wired
by the API.
"""
import secrets
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import bcrypt
from jose import JWTError, jwt

from okrkeeper.core.config import Settings, get_settings
from okrkeeper.schemas.user import SessionData


class PasswordHasher(Protocol):
    """Port for hashing and verifying passwords."""

    async def hash(self, password: str) -> str: ...

    async def verify(self, password: str, hashed_password: str) -> bool: ...


class SessionManager(Protocol):
    """Port for issuing and resolving user sessions."""

    async def sign_in(self, session: SessionData) -> str: ...

    async def sign_out(self, token: str) -> None: ...

    async def get_session(self, token: str) -> SessionData | None: ...


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password using bcrypt.

    Args:
        password: Plain text password to hash
        rounds: bcrypt cost factor

    Returns:
        Hashed password string
    """
    # Bcrypt requires bytes and has 72-byte limit
    password_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Previously hashed password

    Returns:
        True if password matches, False otherwise
    """
    try:
        password_bytes = plain_password.encode("utf-8")[:72]
        hashed_bytes = hashed_password.encode("utf-8")
        return bcrypt.checkpw(password_bytes, hashed_bytes)
    except (ValueError, TypeError):
        return False


class BcryptPasswordHasher:
    """PasswordHasher backed by bcrypt."""

    def __init__(self, rounds: int | None = None):
        self.rounds = rounds or get_settings().bcrypt_rounds

    async def hash(self, password: str) -> str:
        return hash_password(password, self.rounds)

    async def verify(self, password: str, hashed_password: str) -> bool:
        return verify_password(password, hashed_password)


def create_access_token(
    subject: str | uuid.UUID,
    settings: Settings,
    expires_delta: timedelta | None = None,
    extra_claims: dict[str, Any] | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        subject: The subject of the token (the user ID)
        settings: Settings providing secret and algorithm
        expires_delta: Optional custom expiration time
        extra_claims: Additional claims to include in the token

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(UTC)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode: dict[str, Any] = {
        "sub": str(subject),
        "exp": expire,
        "iat": now,
        "jti": secrets.token_hex(16),
        "type": "access",
    }

    if extra_claims:
        to_encode.update(extra_claims)

    encoded: str = jwt.encode(
        to_encode,
        settings.effective_jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    return encoded


def decode_access_token(token: str, settings: Settings) -> dict[str, Any] | None:
    """Decode and validate a JWT access token.

    Returns:
        Decoded token payload or None if invalid
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.effective_jwt_secret,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
    if payload.get("type") != "access":
        return None
    return payload


class JWTSessionManager:
    """SessionManager issuing signed JWTs.

    Tokens are stateless; ``sign_out`` records the token id in a per-process
    revocation table, so a restart forgets revocations until the token
    expires. Entries are dropped once their token has expired, since an
    expired token is rejected on decode anyway.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        # jti -> exp (unix seconds)
        self._revoked: dict[str, int] = {}

    async def sign_in(self, session: SessionData) -> str:
        return create_access_token(
            session.user_id,
            self.settings,
            extra_claims={"email": session.email, "name": session.display_name},
        )

    async def sign_out(self, token: str) -> None:
        payload = decode_access_token(token, self.settings)
        if payload is None:
            return
        self._prune_revoked()
        self._revoked[payload["jti"]] = int(payload["exp"])

    def _prune_revoked(self) -> None:
        now = int(datetime.now(UTC).timestamp())
        expired = [jti for jti, exp in self._revoked.items() if exp <= now]
        for jti in expired:
            del self._revoked[jti]

    async def get_session(self, token: str) -> SessionData | None:
        payload = decode_access_token(token, self.settings)
        if payload is None or payload.get("jti") in self._revoked:
            return None
        try:
            user_id = uuid.UUID(payload["sub"])
        except (KeyError, ValueError):
            return None
        return SessionData(
            user_id=user_id,
            email=payload.get("email", ""),
            display_name=payload.get("name", ""),
        )
