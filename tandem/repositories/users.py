from __future__ import annotations

from typing import TYPE_CHECKING, Any

import asyncpg

from ..models import UserCreate, UserPublic
from .errors import DuplicateEmailError

if TYPE_CHECKING:
    import uuid

    from ..infrastructure.postgres import QueryExecutor

USER_COLUMNS = "id, name, email, email_verified, image, created_at, updated_at"
_UPDATABLE_COLUMNS = frozenset({"name", "image"})


async def alist_users(db: QueryExecutor, *, limit: int, offset: int) -> list[UserPublic]:
    rows = await db.afetch(
        f"SELECT {USER_COLUMNS} FROM users ORDER BY created_at, id LIMIT $1 OFFSET $2",  # noqa: S608
        limit,
        offset,
    )
    return [UserPublic.model_validate(dict(row)) for row in rows]


async def aget_user(db: QueryExecutor, user_id: uuid.UUID) -> UserPublic | None:
    row = await db.afetchrow(f"SELECT {USER_COLUMNS} FROM users WHERE id = $1", user_id)  # noqa: S608
    return UserPublic.model_validate(dict(row)) if row is not None else None


async def acreate_user(db: QueryExecutor, data: UserCreate) -> UserPublic:
    """Insert a user.

    Raises
    ------
    DuplicateEmailError
        If the email is already registered.
    """
    try:
        row = await db.afetchrow(
            f"""
            INSERT INTO users (name, email, email_verified, image)
            VALUES ($1, $2, $3, $4)
            RETURNING {USER_COLUMNS}
            """,  # noqa: S608
            data.name,
            str(data.email).lower(),
            data.email_verified,
            data.image,
        )
    except asyncpg.exceptions.UniqueViolationError as e:
        raise DuplicateEmailError(str(data.email)) from e
    return UserPublic.model_validate(dict(row))  # type: ignore[arg-type]


async def aupdate_user(db: QueryExecutor, user_id: uuid.UUID, changes: dict[str, Any]) -> UserPublic | None:
    columns = [column for column in changes if column in _UPDATABLE_COLUMNS]
    assignments = [f"{column} = ${index}" for index, column in enumerate(columns, start=2)]
    assignments.append("updated_at = now()")

    row = await db.afetchrow(
        f"UPDATE users SET {', '.join(assignments)} WHERE id = $1 RETURNING {USER_COLUMNS}",  # noqa: S608
        user_id,
        *(changes[column] for column in columns),
    )
    return UserPublic.model_validate(dict(row)) if row is not None else None


async def adelete_user(db: QueryExecutor, user_id: uuid.UUID) -> bool:
    deleted = await db.afetchval("DELETE FROM users WHERE id = $1 RETURNING id", user_id)
    return deleted is not None
