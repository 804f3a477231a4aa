"""Session verification as an explicit capability.

Handlers never inspect headers themselves: they receive a `Principal` from a
`SessionVerifier` supplied through the application state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Self

from ..core.enums import Intent
from ..logger import get_logger
from ..repositories import sessions as sessions_repo

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..infrastructure.postgres import PoolRegistry
    from ..models import Principal

logger = get_logger(__name__)

_BEARER_PREFIX = "bearer "


@dataclass(frozen=True, slots=True)
class Credentials:
    """Session token presented by a client, from a bearer header or a cookie."""

    token: str | None

    @classmethod
    def from_request(cls, headers: Mapping[str, str], cookies: Mapping[str, str], cookie_name: str) -> Self:
        authorization = headers.get("authorization", "")
        if authorization.lower().startswith(_BEARER_PREFIX):
            token = authorization[len(_BEARER_PREFIX) :].strip()
            if token:
                return cls(token=token)
        return cls(token=cookies.get(cookie_name) or None)


class SessionVerifier(Protocol):
    async def averify(self, credentials: Credentials) -> Principal | None: ...


class DatabaseSessionVerifier:
    """Looks sessions up on the writable pool.

    A session is usually checked right after it was created at login, so the
    lookup cannot tolerate replication lag.
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: PoolRegistry) -> None:
        self._registry = registry

    async def averify(self, credentials: Credentials) -> Principal | None:
        if not credentials.token:
            return None

        principal = await sessions_repo.aget_session_principal(
            self._registry.select(Intent.WRITE),
            credentials.token,
        )
        if principal is None:
            logger.debug("Session token rejected")
        return principal
