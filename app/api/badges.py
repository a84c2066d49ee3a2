"""Badge catalog and the caller's earned badges.

POST /v1/badges/check runs every rule against the caller's current
record.  Badges are normally awarded as a side effect of submissions
and completions; this endpoint catches up anything those paths missed.
"""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import InvalidationsDep, PrincipalDep, RepoDep
from app.models.badge import Badge
from app.services import badge_service
from app.services.badge_service import AwardContext, Trigger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/badges", tags=["badges"])


class BadgeOut(BaseModel):
    id: UUID
    name: str
    type: str
    description: str | None
    xp_points: int
    image_url: str | None


class EarnedBadgeOut(BaseModel):
    badge: BadgeOut
    earned_at: int


class CheckOut(BaseModel):
    awarded: list[BadgeOut]


def badge_out(b: Badge) -> BadgeOut:
    return BadgeOut(
        id=b.id,
        name=b.name,
        type=b.type,
        description=b.description,
        xp_points=b.xp_points,
        image_url=b.image_url,
    )


@router.get("", response_model=list[BadgeOut])
async def list_badges(_principal: PrincipalDep, repo: RepoDep) -> list[BadgeOut]:
    return [badge_out(b) for b in await badge_service.list_catalog(repo)]


@router.get("/mine", response_model=list[EarnedBadgeOut])
async def my_badges(principal: PrincipalDep, repo: RepoDep) -> list[EarnedBadgeOut]:
    earned = await badge_service.list_earned(repo, principal.uid)
    return [
        EarnedBadgeOut(badge=badge_out(badge), earned_at=ub.earned_at)
        for ub, badge in earned
    ]


@router.post("/check", response_model=CheckOut)
async def check_badges(
    principal: PrincipalDep, repo: RepoDep, invalidations: InvalidationsDep
) -> CheckOut:
    awarded = await badge_service.award_eligible_badges(
        repo, principal.uid, AwardContext(trigger=Trigger.FULL_SCAN)
    )
    if awarded:
        invalidations.add(principal.user_id)
    logger.info("Badge check user=%s awarded=%d", principal.user_id, len(awarded))

    catalog = {b.id: b for b in await badge_service.list_catalog(repo)}
    return CheckOut(
        awarded=[badge_out(catalog[ub.badge_id]) for ub in awarded if ub.badge_id in catalog]
    )
