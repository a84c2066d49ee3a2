"""User notifications: a per-user event log with a read flag.

emit() is fire-and-forget.  A notification is never worth failing the
action that produced it, so emit() logs and counts failures instead of
raising.  The badge award is the one writer that needs the notification
inside its own transaction; it inserts through the repo directly.
"""

from __future__ import annotations

import datetime
import logging
from typing import Any
from uuid import UUID

from app.core.metrics import NOTIFICATION_FAILURES
from app.models.notification import Notification
from app.repos.academy_repo import AcademyRepo
from app.services.errors import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


async def emit(
    repo: AcademyRepo,
    user_id: UUID,
    type: str,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> None:
    notification = Notification.new(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        created_at=_now(),
        metadata=metadata,
    )
    try:
        await repo.add_notification(notification)
    except Exception:
        NOTIFICATION_FAILURES.labels(type=type).inc()
        logger.exception(
            "Notification dropped user=%s type=%s", user_id, type
        )
        return
    logger.debug("Notification emitted user=%s type=%s", user_id, type)


async def list_for_user(
    repo: AcademyRepo, user_id: UUID, limit: int = DEFAULT_LIST_LIMIT
) -> list[Notification]:
    return await repo.list_notifications(user_id, limit)


async def unread_count(repo: AcademyRepo, user_id: UUID) -> int:
    return await repo.count_unread_notifications(user_id)


async def _owned(repo: AcademyRepo, user_id: UUID, notification_id: UUID) -> Notification:
    notification = await repo.get_notification(notification_id)
    if notification is None:
        raise NotFoundError("notification not found")
    if notification.user_id != user_id:
        raise PermissionDeniedError("notification belongs to another user")
    return notification


async def mark_read(
    repo: AcademyRepo, user_id: UUID, notification_id: UUID
) -> Notification:
    await _owned(repo, user_id, notification_id)
    updated = await repo.mark_notification_read(notification_id)
    if updated is None:
        raise NotFoundError("notification not found")
    return updated


async def mark_all_read(repo: AcademyRepo, user_id: UUID) -> int:
    changed = await repo.mark_all_notifications_read(user_id)
    logger.info("Marked %d notifications read user=%s", changed, user_id)
    return changed


async def delete(repo: AcademyRepo, user_id: UUID, notification_id: UUID) -> None:
    await _owned(repo, user_id, notification_id)
    await repo.delete_notification(notification_id)
