"""Post routes.

Updates and deletes check ownership and mutate inside one transaction on the
primary, with the post row locked, so the check cannot go stale before the
write.
"""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...infrastructure.postgres import PinnedTransaction
from ...models import Envelope, Message, Pagination, PostCreate, PostPublic, PostUpdate, PostWithAuthor, Principal
from ...repositories import posts as posts_repo
from ..deps import CurrentPrincipal, ReadPoolDep, RegistryDep, WritePoolDep, get_current_principal

router = APIRouter(prefix="/posts", tags=["posts"], dependencies=[Depends(get_current_principal)])

LimitQuery = Annotated[int, Query(ge=1, le=100)]
OffsetQuery = Annotated[int, Query(ge=0)]


def _post_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")


async def _alock_owned_post(tx: PinnedTransaction, post_id: uuid.UUID, principal: Principal) -> None:
    author_id = await posts_repo.alock_post_author(tx, post_id)
    if author_id is None:
        raise _post_not_found()
    if author_id != principal.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own posts")


@router.get("", response_model=Envelope[list[PostWithAuthor]])
async def list_posts(
    pool: ReadPoolDep,
    limit: LimitQuery = 10,
    offset: OffsetQuery = 0,
    published: bool | None = None,
) -> Envelope[list[PostWithAuthor]]:
    posts = await posts_repo.alist_posts(pool, limit=limit, offset=offset, published=published)
    return Envelope(data=posts, pagination=Pagination(limit=limit, offset=offset))


@router.get("/{post_id}", response_model=Envelope[PostWithAuthor])
async def read_post(post_id: uuid.UUID, pool: ReadPoolDep) -> Envelope[PostWithAuthor]:
    post = await posts_repo.aget_post(pool, post_id)
    if post is None:
        raise _post_not_found()
    return Envelope(data=post)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[PostPublic])
async def create_post(body: PostCreate, principal: CurrentPrincipal, pool: WritePoolDep) -> Envelope[PostPublic]:
    post = await posts_repo.acreate_post(pool, principal.id, body)
    return Envelope(message="Post created", data=post)


@router.patch("/{post_id}", response_model=Envelope[PostPublic])
async def update_post(
    post_id: uuid.UUID,
    body: PostUpdate,
    principal: CurrentPrincipal,
    registry: RegistryDep,
) -> Envelope[PostPublic]:
    async with registry.atransaction() as tx:
        await _alock_owned_post(tx, post_id, principal)
        post = await posts_repo.aupdate_post(tx, post_id, body.changes())
    if post is None:
        raise _post_not_found()
    return Envelope(message="Post updated", data=post)


@router.delete("/{post_id}", response_model=Message)
async def delete_post(post_id: uuid.UUID, principal: CurrentPrincipal, registry: RegistryDep) -> Message:
    async with registry.atransaction() as tx:
        await _alock_owned_post(tx, post_id, principal)
        deleted = await posts_repo.adelete_post(tx, post_id)
    if not deleted:
        raise _post_not_found()
    return Message(message="Post deleted")
