from __future__ import annotations

from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Query, status
from pydantic import BaseModel

from app.api.dependencies import PrincipalDep, RepoDep, http_error
from app.models.notification import Notification
from app.services import notification_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    read: bool
    created_at: int
    metadata: dict[str, Any]


class CountOut(BaseModel):
    unread: int


class ReadAllOut(BaseModel):
    updated: int


def _out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        read=n.read,
        created_at=n.created_at,
        metadata=n.metadata,
    )


@router.get("", response_model=list[NotificationOut])
async def list_notifications(
    principal: PrincipalDep,
    repo: RepoDep,
    limit: Annotated[int, Query(ge=1, le=100)] = notification_service.DEFAULT_LIST_LIMIT,
) -> list[NotificationOut]:
    notifications = await notification_service.list_for_user(repo, principal.uid, limit)
    return [_out(n) for n in notifications]


@router.get("/count", response_model=CountOut)
async def unread_count(principal: PrincipalDep, repo: RepoDep) -> CountOut:
    return CountOut(unread=await notification_service.unread_count(repo, principal.uid))


# Registered before /{notification_id}/read so "read-all" is never parsed as an id.
@router.patch("/read-all", response_model=ReadAllOut)
async def mark_all_read(principal: PrincipalDep, repo: RepoDep) -> ReadAllOut:
    return ReadAllOut(updated=await notification_service.mark_all_read(repo, principal.uid))


@router.patch("/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: UUID, principal: PrincipalDep, repo: RepoDep
) -> NotificationOut:
    try:
        notification = await notification_service.mark_read(
            repo, principal.uid, notification_id
        )
    except AcademyError as e:
        raise http_error(e) from None
    return _out(notification)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notification(
    notification_id: UUID, principal: PrincipalDep, repo: RepoDep
) -> None:
    try:
        await notification_service.delete(repo, principal.uid, notification_id)
    except AcademyError as e:
        raise http_error(e) from None
