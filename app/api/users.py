from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.api.dependencies import (
    InvalidationsDep,
    PrincipalDep,
    RepoDep,
    http_error,
    require_permission,
)
from app.core.permissions import Permission
from app.models.principal import Principal
from app.models.user import Role, User
from app.services import cache, users_service
from app.services.errors import AcademyError

logger = logging.getLogger(__name__)

# User administration under /v1/admin/users, plus the public leaderboard.
# Sub-admins only see and manage the users they created (users_service).

router = APIRouter(tags=["users"])

CreateUsersDep = Annotated[Principal, Depends(require_permission(Permission.CREATE_USERS))]


class UserOut(BaseModel):
    id: UUID
    email: str
    name: str
    role: str
    xp_points: int
    is_active: bool


class UserCreateIn(BaseModel):
    email: str
    name: str
    password: str
    role: Role = Role.USER


class RoleIn(BaseModel):
    role: Role


class LeaderboardEntryOut(BaseModel):
    rank: int
    user_id: UUID
    name: str
    xp_points: int


def _user_out(u: User) -> UserOut:
    return UserOut(
        id=u.id,
        email=u.email,
        name=u.name,
        role=u.role.value,
        xp_points=u.xp_points,
        is_active=u.is_active,
    )


@router.get("/v1/admin/users", response_model=list[UserOut])
async def admin_list_users(principal: CreateUsersDep, repo: RepoDep) -> list[UserOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    users = await users_service.list_users(repo, actor=principal)
    return [_user_out(u) for u in users]


@router.post(
    "/v1/admin/users", response_model=UserOut, status_code=status.HTTP_201_CREATED
)
async def admin_create_user(
    payload: UserCreateIn, principal: CreateUsersDep, repo: RepoDep
) -> UserOut:
    try:
        user = await users_service.create_user(
            repo,
            actor=principal,
            email=payload.email,
            name=payload.name,
            password=payload.password,
            role=payload.role,
        )
    except users_service.UserAlreadyExistsError:
        logger.warning("Duplicate user rejected email=%s", payload.email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="email already exists",
        ) from None
    except AcademyError as e:
        raise http_error(e) from None
    return _user_out(user)


@router.patch("/v1/admin/users/{user_id}/role", response_model=UserOut)
async def admin_update_role(
    user_id: UUID,
    payload: RoleIn,
    principal: Annotated[Principal, Depends(require_permission(Permission.MANAGE_ROLES))],
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> UserOut:
    try:
        user = await users_service.update_role(
            repo, actor=principal, user_id=user_id, role=payload.role
        )
    except AcademyError as e:
        raise http_error(e) from None
    # Leaderboard membership depends on role.
    invalidations.add(user_id)
    return _user_out(user)


@router.delete("/v1/admin/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_user(
    user_id: UUID,
    principal: CreateUsersDep,
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> None:
    try:
        await users_service.delete_user(repo, actor=principal, user_id=user_id)
    except AcademyError as e:
        raise http_error(e) from None
    invalidations.add(user_id)


@router.get("/v1/leaderboard", response_model=list[LeaderboardEntryOut])
async def get_leaderboard(
    _principal: PrincipalDep,
    repo: RepoDep,
    limit: Annotated[int, Query(ge=1, le=100)] = users_service.DEFAULT_LEADERBOARD_LIMIT,
) -> list[LeaderboardEntryOut]:
    key = cache.leaderboard_key(limit)
    cached = await cache.get_json(key)
    if cached is not None:
        return [LeaderboardEntryOut(**row) for row in cached]

    users = await users_service.leaderboard(repo, limit)
    entries = [
        LeaderboardEntryOut(rank=i, user_id=u.id, name=u.name, xp_points=u.xp_points)
        for i, u in enumerate(users, start=1)
    ]
    await cache.set_json(
        key, [e.model_dump(mode="json") for e in entries], cache.LEADERBOARD_TTL_SECONDS
    )
    return entries
