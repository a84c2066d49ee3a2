from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: UUID
    type: str  # badge_earned|certificate_earned|assessment_passed|assessment_failed|...
    title: str
    message: str
    created_at: int
    read: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: UUID,
        type: str,
        title: str,
        message: str,
        created_at: int,
        metadata: dict[str, Any] | None = None,
    ) -> Notification:
        return Notification(
            id=uuid4(),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            created_at=created_at,
            metadata=dict(metadata or {}),
        )
