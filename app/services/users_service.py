from __future__ import annotations

import logging
from uuid import UUID

from argon2 import PasswordHasher

from app.core.permissions import Permission, has_permission
from app.models.principal import Principal
from app.models.user import Role, User
from app.repos.academy_repo import AcademyRepo, DuplicateRecordError
from app.services.errors import (
    AcademyError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8
DEFAULT_LEADERBOARD_LIMIT = 10

_ph = PasswordHasher()


class UserAlreadyExistsError(AcademyError):
    pass


def hash_password(plain_password: str) -> str:
    return _ph.hash(plain_password)


def _check_can_grant(actor: Principal, role: Role) -> None:
    if role is not Role.USER and not has_permission(
        actor.role, Permission.CREATE_SUB_ADMINS
    ):
        logger.warning("Denied role grant actor=%s role=%s", actor.user_id, role)
        raise PermissionDeniedError(f"cannot grant role {role}")


async def create_user(
    repo: AcademyRepo,
    *,
    actor: Principal,
    email: str,
    name: str,
    password: str,
    role: Role = Role.USER,
) -> User:
    if not has_permission(actor.role, Permission.CREATE_USERS):
        raise PermissionDeniedError("cannot create users")
    _check_can_grant(actor, role)

    email = email.strip().lower()
    if not email or "@" not in email:
        logger.warning("Rejected invalid email=%r", email)
        raise ValidationError("email must be a valid address")
    name = name.strip()
    if not name:
        raise ValidationError("name must be non-empty")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"password must be at least {MIN_PASSWORD_LENGTH} characters"
        )

    if await repo.get_user_by_email(email) is not None:
        logger.warning("Rejected duplicate email=%s", email)
        raise UserAlreadyExistsError(email)

    user = User.new(
        email=email,
        name=name,
        password_hash=hash_password(password),
        role=role,
        created_by=actor.uid,
    )
    try:
        await repo.add_user(user)
    except DuplicateRecordError:
        logger.warning("Rejected duplicate email=%s (race)", email)
        raise UserAlreadyExistsError(email) from None

    logger.info(
        "Created user id=%s email=%s role=%s by=%s",
        user.id,
        user.email,
        user.role,
        actor.user_id,
    )
    return user


async def list_users(repo: AcademyRepo, *, actor: Principal) -> list[User]:
    users = await repo.list_users()
    if has_permission(actor.role, Permission.VIEW_ALL_USERS):
        return users
    return [u for u in users if u.created_by == actor.uid]


async def _manageable(
    repo: AcademyRepo, actor: Principal, user_id: UUID, everyone: Permission
) -> User:
    target = await repo.get_user(user_id)
    if target is None:
        raise NotFoundError(f"user {user_id} not found")
    if not has_permission(actor.role, everyone) and target.created_by != actor.uid:
        logger.warning(
            "Denied management of user=%s by actor=%s", user_id, actor.user_id
        )
        raise PermissionDeniedError("can only manage users you created")
    return target


async def update_role(
    repo: AcademyRepo, *, actor: Principal, user_id: UUID, role: Role
) -> User:
    if not has_permission(actor.role, Permission.MANAGE_ROLES):
        raise PermissionDeniedError("cannot manage roles")
    if user_id == actor.uid:
        raise ValidationError("cannot change your own role")
    await _manageable(repo, actor, user_id, Permission.EDIT_ALL_USERS)
    _check_can_grant(actor, role)

    updated = await repo.update_user_role(user_id, role)
    if updated is None:
        raise NotFoundError(f"user {user_id} not found")
    logger.info("Role changed user=%s role=%s by=%s", user_id, role, actor.user_id)
    return updated


async def delete_user(repo: AcademyRepo, *, actor: Principal, user_id: UUID) -> None:
    if not has_permission(actor.role, Permission.CREATE_USERS):
        raise PermissionDeniedError("cannot delete users")
    if user_id == actor.uid:
        raise ValidationError("cannot delete yourself")
    await _manageable(repo, actor, user_id, Permission.DELETE_ALL_USERS)

    await repo.delete_user(user_id)
    logger.info("Deleted user=%s by=%s", user_id, actor.user_id)


async def leaderboard(
    repo: AcademyRepo, limit: int = DEFAULT_LEADERBOARD_LIMIT
) -> list[User]:
    return await repo.leaderboard(limit)
