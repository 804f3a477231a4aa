from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from ..core.enums import Intent
from ..logger import get_logger
from ..models import AuthResult, Principal, UserCreate
from ..repositories import sessions as sessions_repo
from ..repositories import users as users_repo
from .passwords import PasswordHasher, new_session_token

if TYPE_CHECKING:
    import uuid

    from ..config.settings import AuthSettings
    from ..infrastructure.postgres import PoolRegistry, QueryExecutor
    from ..models import LoginRequest, SessionPublic, SignupRequest

logger = get_logger(__name__)


class InvalidCredentialsError(Exception):
    """Unknown email or wrong password. Deliberately does not say which."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password")


class AuthService:
    """Email/password sign-up, login and logout.

    All work runs on the writable pool: each operation either writes or reads
    what a write just produced.
    """

    __slots__ = ("_hasher", "_registry", "_settings")

    def __init__(self, registry: PoolRegistry, settings: AuthSettings, hasher: PasswordHasher | None = None) -> None:
        self._registry = registry
        self._settings = settings
        self._hasher = hasher or PasswordHasher(settings.bcrypt_rounds)

    async def asignup(
        self,
        request: SignupRequest,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """Create user, credential account and first session in one transaction.

        Raises
        ------
        DuplicateEmailError
            If the email is already registered. Nothing is written.
        """
        password_hash = await self._hasher.ahash(request.password)

        async with self._registry.atransaction() as tx:
            user = await users_repo.acreate_user(tx, UserCreate(name=request.name, email=request.email))
            await sessions_repo.acreate_account(tx, user.id, password_hash)
            session = await self._acreate_session(tx, user.id, ip_address=ip_address, user_agent=user_agent)

        logger.info("User signed up", user_id=str(user.id))
        return AuthResult(user=Principal.model_validate(user.model_dump()), session=session)

    async def alogin(
        self,
        request: LoginRequest,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthResult:
        """Verify the password and open a new session.

        Raises
        ------
        InvalidCredentialsError
            Unknown email or wrong password.
        """
        credentials = await sessions_repo.aget_credentials(self._registry.select(Intent.WRITE), str(request.email))
        if credentials is None:
            raise InvalidCredentialsError
        principal, password_hash = credentials
        if not await self._hasher.averify(request.password, password_hash):
            logger.info("Login rejected", user_id=str(principal.id))
            raise InvalidCredentialsError

        session = await self._acreate_session(
            self._registry.select(Intent.WRITE),
            principal.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("User logged in", user_id=str(principal.id))
        return AuthResult(user=principal, session=session)

    async def alogout(self, token: str | None) -> bool:
        if not token:
            return False
        return await sessions_repo.adelete_session(self._registry.select(Intent.WRITE), token)

    async def _acreate_session(
        self,
        db: QueryExecutor,
        user_id: uuid.UUID,
        *,
        ip_address: str | None,
        user_agent: str | None,
    ) -> SessionPublic:
        expires_at = datetime.now(UTC) + timedelta(seconds=self._settings.session_ttl_s)
        return await sessions_repo.acreate_session(
            db,
            user_id=user_id,
            token=new_session_token(),
            expires_at=expires_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
