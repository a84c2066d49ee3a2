from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Badge:
    """Catalog entry.  ``type`` selects the predicate that awards it."""

    id: UUID
    name: str
    type: str
    description: str | None = None
    xp_points: int = 100
    image_url: str | None = None

    @staticmethod
    def new(
        *,
        name: str,
        type: str,
        description: str | None = None,
        xp_points: int = 100,
        image_url: str | None = None,
    ) -> Badge:
        return Badge(
            id=uuid4(),
            name=name,
            type=type,
            description=description,
            xp_points=xp_points,
            image_url=image_url,
        )


@dataclass(frozen=True, slots=True)
class UserBadge:
    id: UUID
    user_id: UUID
    badge_id: UUID
    earned_at: int

    @staticmethod
    def new(*, user_id: UUID, badge_id: UUID, earned_at: int) -> UserBadge:
        return UserBadge(
            id=uuid4(), user_id=user_id, badge_id=badge_id, earned_at=earned_at
        )
