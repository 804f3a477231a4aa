"""Credential accounts and login sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..models import Principal, SessionPublic

if TYPE_CHECKING:
    import uuid
    from datetime import datetime

    from ..infrastructure.postgres import PinnedTransaction, QueryExecutor

CREDENTIAL_PROVIDER = "credential"


async def acreate_account(tx: PinnedTransaction, user_id: uuid.UUID, password_hash: str) -> None:
    await tx.aexecute(
        "INSERT INTO accounts (user_id, provider_id, password_hash) VALUES ($1, $2, $3)",
        user_id,
        CREDENTIAL_PROVIDER,
        password_hash,
    )


async def aget_credentials(db: QueryExecutor, email: str) -> tuple[Principal, str] | None:
    """Return the user and stored password hash for ``email``, if any."""
    row = await db.afetchrow(
        """
        SELECT u.id, u.name, u.email, u.email_verified, u.image, a.password_hash
        FROM users u
        JOIN accounts a ON a.user_id = u.id AND a.provider_id = $2
        WHERE u.email = $1
        """,
        email.lower(),
        CREDENTIAL_PROVIDER,
    )
    if row is None:
        return None
    values = dict(row)
    password_hash = values.pop("password_hash")
    return Principal.model_validate(values), password_hash


async def acreate_session(
    db: QueryExecutor,
    *,
    user_id: uuid.UUID,
    token: str,
    expires_at: datetime,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SessionPublic:
    await db.aexecute(
        """
        INSERT INTO sessions (token, user_id, expires_at, ip_address, user_agent)
        VALUES ($1, $2, $3, $4, $5)
        """,
        token,
        user_id,
        expires_at,
        ip_address,
        user_agent,
    )
    return SessionPublic(token=token, expires_at=expires_at)


async def aget_session_principal(db: QueryExecutor, token: str) -> Principal | None:
    row = await db.afetchrow(
        """
        SELECT u.id, u.name, u.email, u.email_verified, u.image
        FROM sessions s
        JOIN users u ON u.id = s.user_id
        WHERE s.token = $1 AND s.expires_at > now()
        """,
        token,
    )
    return Principal.model_validate(dict(row)) if row is not None else None


async def adelete_session(db: QueryExecutor, token: str) -> bool:
    deleted = await db.afetchval("DELETE FROM sessions WHERE token = $1 RETURNING id", token)
    return deleted is not None
