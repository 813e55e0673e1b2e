"""Core utilities and configuration for OKR Keeper.

This module contains:
- Configuration and settings management
- Security utilities (password hashing, JWT sessions)
- The Ok/Err result type returned by services
"""
from .config import Settings, get_settings, settings
from .result import Err, Ok, Result
from .security import (
    BcryptPasswordHasher,
    JWTSessionManager,
    PasswordHasher,
    SessionManager,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "Settings",
    "get_settings",
    # Results
    "Ok",
    "Err",
    "Result",
    # Security - Password
    "PasswordHasher",
    "BcryptPasswordHasher",
    "hash_password",
    "verify_password",
    # Security - Sessions
    "SessionManager",
    "JWTSessionManager",
    "create_access_token",
    "decode_access_token",
]
