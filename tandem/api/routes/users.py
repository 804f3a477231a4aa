from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models import Envelope, Message, Pagination, Principal, UserCreate, UserPublic, UserUpdate
from ...repositories import users as users_repo
from ..deps import CurrentPrincipal, ReadPoolDep, WritePoolDep, get_current_principal

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_principal)])

LimitQuery = Annotated[int, Query(ge=1, le=100)]
OffsetQuery = Annotated[int, Query(ge=0)]


def _user_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")


def _require_self(principal: Principal, user_id: uuid.UUID) -> None:
    if principal.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only modify your own account")


@router.get("", response_model=Envelope[list[UserPublic]])
async def list_users(pool: ReadPoolDep, limit: LimitQuery = 10, offset: OffsetQuery = 0) -> Envelope[list[UserPublic]]:
    users = await users_repo.alist_users(pool, limit=limit, offset=offset)
    return Envelope(data=users, pagination=Pagination(limit=limit, offset=offset))


@router.get("/{user_id}", response_model=Envelope[UserPublic])
async def read_user(user_id: uuid.UUID, pool: ReadPoolDep) -> Envelope[UserPublic]:
    user = await users_repo.aget_user(pool, user_id)
    if user is None:
        raise _user_not_found()
    return Envelope(data=user)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Envelope[UserPublic])
async def create_user(body: UserCreate, pool: WritePoolDep) -> Envelope[UserPublic]:
    user = await users_repo.acreate_user(pool, body)
    return Envelope(message="User created", data=user)


@router.patch("/{user_id}", response_model=Envelope[UserPublic])
async def update_user(
    user_id: uuid.UUID,
    body: UserUpdate,
    principal: CurrentPrincipal,
    pool: WritePoolDep,
) -> Envelope[UserPublic]:
    _require_self(principal, user_id)
    user = await users_repo.aupdate_user(pool, user_id, body.changes())
    if user is None:
        raise _user_not_found()
    return Envelope(message="User updated", data=user)


@router.delete("/{user_id}", response_model=Message)
async def delete_user(user_id: uuid.UUID, principal: CurrentPrincipal, pool: WritePoolDep) -> Message:
    _require_self(principal, user_id)
    if not await users_repo.adelete_user(pool, user_id):
        raise _user_not_found()
    return Message(message="User deleted")
