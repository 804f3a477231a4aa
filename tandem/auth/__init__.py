from __future__ import annotations

from .passwords import PasswordHasher, new_session_token
from .service import AuthService, InvalidCredentialsError
from .sessions import Credentials, DatabaseSessionVerifier, SessionVerifier

__all__ = [
    "AuthService",
    "Credentials",
    "DatabaseSessionVerifier",
    "InvalidCredentialsError",
    "PasswordHasher",
    "SessionVerifier",
    "new_session_token",
]
