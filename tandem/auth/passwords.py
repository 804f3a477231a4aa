from __future__ import annotations

import asyncio
import secrets

from passlib.context import CryptContext

SESSION_TOKEN_BYTES = 32


class PasswordHasher:
    """bcrypt password hashing via passlib."""

    __slots__ = ("_context",)

    def __init__(self, rounds: int = 12) -> None:
        self._context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        return self._context.verify(password, password_hash)

    # bcrypt is CPU-bound; run it in a worker thread so the event loop keeps serving.
    async def ahash(self, password: str) -> str:
        return await asyncio.to_thread(self.hash, password)

    async def averify(self, password: str, password_hash: str) -> bool:
        return await asyncio.to_thread(self.verify, password, password_hash)


def new_session_token() -> str:
    return secrets.token_urlsafe(SESSION_TOKEN_BYTES)
