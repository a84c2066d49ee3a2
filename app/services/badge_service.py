"""Badge award engine.

A badge's ``type`` names the rule that awards it.  Rules re-derive the
learner's state from full history every time they run, so a missed event
is corrected by the next check (or by POST /v1/badges/check, which runs
every rule).

Which rules run depends on the trigger:

  assessment_passed  → assessment, assessment_perfect, assessment_master
  course_completed   → course_completion, area_completion, explorer,
                       blocks, certificates
  full_scan          → all of them

Awarding one badge is a single transaction: UserBadge row, XP credit,
badge_earned notification.  Losing a concurrent race on the UserBadge
unique constraint means the badge is already held, which is fine.

Learning actions call award_badges_best_effort(): a bug in a rule must
never fail the assessment submission or block completion that fired it.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum
from uuid import UUID, uuid4

from app.core.config import SETTINGS
from app.core.metrics import BADGE_CHECK_FAILURES, BADGES_AWARDED
from app.models.badge import Badge, UserBadge
from app.models.notification import Notification
from app.repos.academy_repo import AcademyRepo, DuplicateRecordError

logger = logging.getLogger(__name__)

MASTER_MIN_SCORE = 90
MASTER_MIN_PASSES = 10
EXPLORER_MIN_COURSES = 5
BLOCKS_MIN_COMPLETED = 50
CERTIFICATES_MIN = 5


class Trigger(StrEnum):
    ASSESSMENT_PASSED = "assessment_passed"
    COURSE_COMPLETED = "course_completed"
    FULL_SCAN = "full_scan"


@dataclass(frozen=True, slots=True)
class AwardContext:
    trigger: Trigger


Rule = Callable[[AcademyRepo, UUID], Awaitable[bool]]


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


async def _first_pass(repo: AcademyRepo, user_id: UUID) -> bool:
    passed = [a for a in await repo.list_attempts(user_id) if a.passed]
    return len(passed) == 1


async def _perfect_score(repo: AcademyRepo, user_id: UUID) -> bool:
    return any(a.passed and a.score == 100 for a in await repo.list_attempts(user_id))


async def _assessment_master(repo: AcademyRepo, user_id: UUID) -> bool:
    high = [
        a
        for a in await repo.list_attempts(user_id)
        if a.passed and a.score >= MASTER_MIN_SCORE
    ]
    return len(high) >= MASTER_MIN_PASSES


async def _any_course_completed(repo: AcademyRepo, user_id: UUID) -> bool:
    return any(p.completed for p in await repo.list_progress(user_id))


async def _area_completed(repo: AcademyRepo, user_id: UUID) -> bool:
    keyword = SETTINGS.area_badge_keyword
    areas = [
        a for a in await repo.list_training_areas() if keyword in a.name.lower()
    ]
    if not areas:
        return False

    course_ids: set[UUID] = set()
    for area in areas:
        for module in await repo.list_modules(area.id):
            course_ids.update(c.id for c in await repo.list_courses(module.id))
    if not course_ids:
        return False

    done = {p.course_id for p in await repo.list_progress(user_id) if p.completed}
    return course_ids <= done


async def _explorer(repo: AcademyRepo, user_id: UUID) -> bool:
    started = [p for p in await repo.list_progress(user_id) if p.percent_complete > 0]
    return len(started) >= EXPLORER_MIN_COURSES


async def _block_count(repo: AcademyRepo, user_id: UUID) -> bool:
    completed = {
        c.block_id for c in await repo.list_block_completions(user_id) if c.completed
    }
    if len(completed) < BLOCKS_MIN_COMPLETED:
        return False

    # Only blocks reachable from a course the learner has progress on.
    seen_units: set[UUID] = set()
    counted: set[UUID] = set()
    for progress in await repo.list_progress(user_id):
        for unit in await repo.list_units_for_course(progress.course_id):
            if unit.id in seen_units:
                continue
            seen_units.add(unit.id)
            counted.update(b.id for b in await repo.list_blocks(unit.id) if b.id in completed)
    return len(counted) >= BLOCKS_MIN_COMPLETED


async def _certificate_count(repo: AcademyRepo, user_id: UUID) -> bool:
    return len(await repo.list_certificates(user_id)) >= CERTIFICATES_MIN


BADGE_RULES: dict[str, Rule] = {
    "assessment": _first_pass,
    "assessment_perfect": _perfect_score,
    "assessment_master": _assessment_master,
    "course_completion": _any_course_completed,
    "area_completion": _area_completed,
    "explorer": _explorer,
    "blocks": _block_count,
    "certificates": _certificate_count,
}

_RULES_BY_TRIGGER: dict[Trigger, frozenset[str]] = {
    Trigger.ASSESSMENT_PASSED: frozenset(
        {"assessment", "assessment_perfect", "assessment_master"}
    ),
    Trigger.COURSE_COMPLETED: frozenset(
        {"course_completion", "area_completion", "explorer", "blocks", "certificates"}
    ),
    Trigger.FULL_SCAN: frozenset(BADGE_RULES),
}


# ---------------------------------------------------------------------------
# Award
# ---------------------------------------------------------------------------


async def award_badge(repo: AcademyRepo, user_id: UUID, badge: Badge) -> UserBadge | None:
    """Award ``badge`` once.  Returns None when the user already holds it."""
    user_badge = UserBadge.new(user_id=user_id, badge_id=badge.id, earned_at=_now())
    try:
        async with repo.transaction():
            await repo.add_user_badge(user_badge)
            await repo.credit_xp(user_id, badge.xp_points)
            await repo.add_notification(
                Notification.new(
                    user_id=user_id,
                    type="badge_earned",
                    title="New Badge Earned!",
                    message=(
                        f'You earned the "{badge.name}" badge '
                        f"and {badge.xp_points} XP."
                    ),
                    created_at=user_badge.earned_at,
                    metadata={"badge_id": str(badge.id), "badge_type": badge.type},
                )
            )
    except DuplicateRecordError:
        logger.info("Badge already held user=%s badge=%s", user_id, badge.id)
        return None

    BADGES_AWARDED.labels(badge_type=badge.type).inc()
    logger.info(
        "Badge awarded user=%s badge=%s type=%s xp=%d",
        user_id,
        badge.id,
        badge.type,
        badge.xp_points,
    )
    return user_badge


async def award_eligible_badges(
    repo: AcademyRepo, user_id: UUID, context: AwardContext
) -> list[UserBadge]:
    """Run the rules selected by ``context.trigger``; award what they grant.

    Each badge is checked and awarded on its own: a rule that raises is
    logged and counted, and the remaining badges are still evaluated.
    """
    wanted = _RULES_BY_TRIGGER[context.trigger]
    held = {ub.badge_id for ub in await repo.list_user_badges(user_id)}
    verdicts: dict[str, bool] = {}
    awarded: list[UserBadge] = []

    for badge in await repo.list_badges():
        if badge.id in held or badge.type not in wanted:
            continue
        rule = BADGE_RULES.get(badge.type)
        if rule is None:
            continue
        try:
            if badge.type not in verdicts:
                # Savepoint, so a failed read leaves the session usable.
                async with repo.transaction():
                    verdicts[badge.type] = await rule(repo, user_id)
            if not verdicts[badge.type]:
                continue
            user_badge = await award_badge(repo, user_id, badge)
        except Exception:
            verdicts[badge.type] = False
            BADGE_CHECK_FAILURES.labels(trigger=context.trigger.value).inc()
            logger.exception(
                "Badge check failed user=%s badge_type=%s trigger=%s",
                user_id,
                badge.type,
                context.trigger,
            )
            continue
        if user_badge is not None:
            awarded.append(user_badge)

    return awarded


async def award_badges_best_effort(
    repo: AcademyRepo, user_id: UUID, context: AwardContext
) -> list[UserBadge]:
    try:
        return await award_eligible_badges(repo, user_id, context)
    except Exception:
        BADGE_CHECK_FAILURES.labels(trigger=context.trigger.value).inc()
        logger.exception(
            "Badge check failed user=%s trigger=%s", user_id, context.trigger
        )
        return []


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

DEFAULT_BADGES: tuple[Badge, ...] = (
    Badge.new(
        name="First Assessment",
        type="assessment",
        description="Passed your first assessment",
        xp_points=50,
    ),
    Badge.new(
        name="Perfect Score",
        type="assessment_perfect",
        description="Achieved 100% on an assessment",
        xp_points=75,
    ),
    Badge.new(
        name="Assessment Master",
        type="assessment_master",
        description="Passed 10 assessments with 90% or higher",
        xp_points=300,
    ),
    Badge.new(
        name="Course Completion",
        type="course_completion",
        description="Successfully completed a course",
        xp_points=100,
    ),
    Badge.new(
        name="Abu Dhabi Expert",
        type="area_completion",
        description="Completed every course in the Abu Dhabi training area",
        xp_points=200,
    ),
    Badge.new(
        name="Course Explorer",
        type="explorer",
        description="Started 5 different courses",
        xp_points=100,
    ),
    Badge.new(
        name="Knowledge Seeker",
        type="blocks",
        description="Completed 50 learning blocks",
        xp_points=250,
    ),
    Badge.new(
        name="Certificate Collector",
        type="certificates",
        description="Earned 5 certificates",
        xp_points=400,
    ),
)


async def seed_default_badges(repo: AcademyRepo) -> int:
    """Insert the default catalog into an empty badge table.

    Returns how many badges were added (0 when any badge already exists).
    """
    if await repo.list_badges():
        return 0
    for template in DEFAULT_BADGES:
        await repo.add_badge(replace(template, id=uuid4()))
    logger.info("Seeded %d default badges", len(DEFAULT_BADGES))
    return len(DEFAULT_BADGES)


async def list_catalog(repo: AcademyRepo) -> list[Badge]:
    return await repo.list_badges()


async def list_earned(repo: AcademyRepo, user_id: UUID) -> list[tuple[UserBadge, Badge]]:
    earned: list[tuple[UserBadge, Badge]] = []
    for user_badge in await repo.list_user_badges(user_id):
        badge = await repo.get_badge(user_badge.badge_id)
        if badge is not None:
            earned.append((user_badge, badge))
    return earned
