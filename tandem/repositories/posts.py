from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..models import AuthorSummary, PostCreate, PostPublic, PostWithAuthor

if TYPE_CHECKING:
    import uuid

    from asyncpg import Record

    from ..infrastructure.postgres import PinnedTransaction, QueryExecutor

POST_COLUMNS = "id, title, content, published, author_id, created_at, updated_at"
_UPDATABLE_COLUMNS = frozenset({"title", "content", "published"})

_SELECT_WITH_AUTHOR = """
    SELECT p.id, p.title, p.content, p.published, p.author_id, p.created_at, p.updated_at,
           u.name AS author_name, u.email AS author_email, u.image AS author_image
    FROM posts p
    JOIN users u ON u.id = p.author_id
"""


def _with_author(row: Record) -> PostWithAuthor:
    values = dict(row)
    author = AuthorSummary(
        id=values["author_id"],
        name=values.pop("author_name"),
        email=values.pop("author_email"),
        image=values.pop("author_image"),
    )
    return PostWithAuthor.model_validate({**values, "author": author})


async def alist_posts(
    db: QueryExecutor,
    *,
    limit: int,
    offset: int,
    published: bool | None = None,
) -> list[PostWithAuthor]:
    if published is None:
        rows = await db.afetch(f"{_SELECT_WITH_AUTHOR} ORDER BY p.created_at DESC, p.id LIMIT $1 OFFSET $2", limit, offset)
    else:
        rows = await db.afetch(
            f"{_SELECT_WITH_AUTHOR} WHERE p.published = $3 ORDER BY p.created_at DESC, p.id LIMIT $1 OFFSET $2",
            limit,
            offset,
            published,
        )
    return [_with_author(row) for row in rows]


async def aget_post(db: QueryExecutor, post_id: uuid.UUID) -> PostWithAuthor | None:
    row = await db.afetchrow(f"{_SELECT_WITH_AUTHOR} WHERE p.id = $1", post_id)
    return _with_author(row) if row is not None else None


async def acreate_post(db: QueryExecutor, author_id: uuid.UUID, data: PostCreate) -> PostPublic:
    row = await db.afetchrow(
        f"""
        INSERT INTO posts (title, content, published, author_id)
        VALUES ($1, $2, $3, $4)
        RETURNING {POST_COLUMNS}
        """,  # noqa: S608
        data.title,
        data.content,
        data.published,
        author_id,
    )
    return PostPublic.model_validate(dict(row))  # type: ignore[arg-type]


async def alock_post_author(tx: PinnedTransaction, post_id: uuid.UUID) -> uuid.UUID | None:
    """Lock the post row for the rest of the transaction and return its author."""
    return await tx.afetchval("SELECT author_id FROM posts WHERE id = $1 FOR UPDATE", post_id)


async def aupdate_post(db: QueryExecutor, post_id: uuid.UUID, changes: dict[str, Any]) -> PostPublic | None:
    columns = [column for column in changes if column in _UPDATABLE_COLUMNS]
    assignments = [f"{column} = ${index}" for index, column in enumerate(columns, start=2)]
    assignments.append("updated_at = now()")

    row = await db.afetchrow(
        f"UPDATE posts SET {', '.join(assignments)} WHERE id = $1 RETURNING {POST_COLUMNS}",  # noqa: S608
        post_id,
        *(changes[column] for column in columns),
    )
    return PostPublic.model_validate(dict(row)) if row is not None else None


async def adelete_post(db: QueryExecutor, post_id: uuid.UUID) -> bool:
    deleted = await db.afetchval("DELETE FROM posts WHERE id = $1 RETURNING id", post_id)
    return deleted is not None
