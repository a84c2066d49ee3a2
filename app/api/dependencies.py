from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.logging import user_id_var
from app.core.permissions import Permission, has_permission
from app.db.engine import async_session_factory
from app.models.principal import Principal
from app.models.user import Role
from app.repos.academy_repo import AcademyRepo, InMemoryAcademyRepo
from app.repos.pg_academy_repo import PgAcademyRepo
from app.services import cache, token_service
from app.services.errors import (
    AcademyError,
    NotEligibleError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# Store used when DATABASE_URL is not configured.
memory_repo = InMemoryAcademyRepo()


class PendingInvalidations:
    """Learners whose cached reads go stale once this request commits.

    Routes record user ids here; get_academy_repo() drops the cache
    entries after the session commits, so a concurrent read cannot
    re-cache rows from before the write.
    """

    def __init__(self) -> None:
        self._user_ids: set[str] = set()

    def add(self, user_id: str | UUID) -> None:
        self._user_ids.add(str(user_id))

    async def flush(self) -> None:
        for user_id in sorted(self._user_ids):
            await cache.invalidate_learner(user_id)
        self._user_ids.clear()


def get_pending_invalidations() -> PendingInvalidations:
    return PendingInvalidations()


InvalidationsDep = Annotated[PendingInvalidations, Depends(get_pending_invalidations)]


async def get_academy_repo(
    invalidations: InvalidationsDep,
) -> AsyncGenerator[AcademyRepo, None]:
    """Request-scoped store.

    With a database: one session per request, committed on success and
    rolled back on any exception (HTTPException included).  Cache
    invalidations run only after a successful commit.
    """
    if async_session_factory is None:
        yield memory_repo
        await invalidations.flush()
        return
    async with async_session_factory() as session:
        try:
            yield PgAcademyRepo(session)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    await invalidations.flush()


RepoDep = Annotated[AcademyRepo, Depends(get_academy_repo)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Validate the bearer token and return the caller as a Principal."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    try:
        claims = token_service.decode_access_token(credentials.credentials)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise _unauthorized("Token expired") from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise _unauthorized("Invalid token") from None

    try:
        UUID(claims["sub"])
        role = Role(claims["role"])
    except (ValueError, TypeError, AttributeError):
        logger.warning(
            "Token with malformed claims rejected sub=%r role=%r",
            claims.get("sub"),
            claims.get("role"),
        )
        raise _unauthorized("Invalid token") from None

    principal = Principal(user_id=claims["sub"], role=role)
    user_id_var.set(principal.user_id)
    logger.debug("Token validated for user=%s role=%s", principal.user_id, role)
    return principal


PrincipalDep = Annotated[Principal, Depends(require_user)]


def require_permission(permission: Permission):
    """Dependency factory: demand a permission from the role table.

    Usage: Depends(require_permission(Permission.MANAGE_COURSES))
    """

    def _guard(principal: PrincipalDep) -> Principal:
        if not has_permission(principal.role, permission):
            logger.warning(
                "Access denied: user=%s role=%s missing permission=%s",
                principal.user_id,
                principal.role,
                permission,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


_STATUS_BY_ERROR: tuple[tuple[type[AcademyError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (NotEligibleError, status.HTTP_400_BAD_REQUEST),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_CONTENT),
)


def http_error(exc: AcademyError) -> HTTPException:
    """Translate a domain error into the HTTPException the route raises."""
    code = status.HTTP_400_BAD_REQUEST
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            code = status_code
            break
    logger.warning("%s: %s", type(exc).__name__, exc)
    return HTTPException(status_code=code, detail=str(exc))
