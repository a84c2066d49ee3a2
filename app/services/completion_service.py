"""Course completion evaluator.

For one (user, course) pair:

  1. load the course's units in position order
  2. classify every unit from its blocks and assessments
       blocks       NO_REQUIREMENT  no blocks
                    COMPLETE        every block has a completed BlockCompletion
                    PENDING         otherwise
       assessments  NO_REQUIREMENT  no unit-level assessments
                    COMPLETE        every assessment has a passed attempt
                    PENDING         otherwise
     A unit is done unless it is PENDING, so a unit with nothing to do
     counts as done (and shows up as NO_REQUIREMENT in the breakdown).
  3. percent = round-half-up(100 * done / total); a course without units
     is 0 percent and never completed
  4. upsert UserProgress

All reads happen before the single write: if any lookup fails the
evaluation aborts and nothing is persisted.
"""

from __future__ import annotations

import datetime
import logging
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from app.core.metrics import COURSE_COMPLETIONS
from app.models.assessment import AssessmentAttempt
from app.models.progress import (
    CourseCompletion,
    UnitCompletion,
    UnitStatus,
    UserProgress,
)
from app.repos.academy_repo import AcademyRepo
from app.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def percent(done: int, total: int) -> int:
    """Whole-number percentage, halves rounded up (Python's round() would
    send 12.5 to 12)."""
    if total <= 0:
        return 0
    exact = Decimal(100 * done) / Decimal(total)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _side_status(required: int, satisfied: int) -> UnitStatus:
    if required == 0:
        return UnitStatus.NO_REQUIREMENT
    if satisfied == required:
        return UnitStatus.COMPLETE
    return UnitStatus.PENDING


async def evaluate_course_completion(
    repo: AcademyRepo, user_id: UUID, course_id: UUID
) -> CourseCompletion:
    course = await repo.get_course(course_id)
    if course is None:
        raise NotFoundError(f"course {course_id} not found")

    units = await repo.list_units_for_course(course_id)

    completed_blocks = {
        c.block_id for c in await repo.list_block_completions(user_id) if c.completed
    }
    passed_assessments = _passed_assessment_ids(await repo.list_attempts(user_id))

    breakdown: list[UnitCompletion] = []
    for unit in units:
        blocks = await repo.list_blocks(unit.id)
        assessments = await repo.list_assessments_for_unit(unit.id)
        breakdown.append(
            UnitCompletion(
                unit_id=unit.id,
                blocks=_side_status(
                    len(blocks), sum(1 for b in blocks if b.id in completed_blocks)
                ),
                assessments=_side_status(
                    len(assessments),
                    sum(1 for a in assessments if a.id in passed_assessments),
                ),
            )
        )

    total = len(breakdown)
    done = sum(1 for u in breakdown if u.status.is_done)
    completed = total > 0 and done == total
    result = CourseCompletion(
        course_id=course_id,
        percent_complete=percent(done, total),
        completed=completed,
        units=tuple(breakdown),
    )

    await repo.upsert_progress(
        UserProgress(
            user_id=user_id,
            course_id=course_id,
            percent_complete=result.percent_complete,
            completed=result.completed,
            last_accessed=_now(),
        )
    )
    logger.debug(
        "Evaluated course=%s user=%s units=%d/%d percent=%d",
        course_id,
        user_id,
        done,
        total,
        result.percent_complete,
    )
    return result


def _passed_assessment_ids(attempts: list[AssessmentAttempt]) -> set[UUID]:
    return {a.assessment_id for a in attempts if a.passed}


async def refresh_courses_for_unit(
    repo: AcademyRepo, user_id: UUID, unit_id: UUID
) -> list[UUID]:
    """Re-evaluate every course that includes ``unit_id``.

    Returns the ids of courses that went from not completed to completed.
    """
    course_ids = await repo.list_course_ids_for_unit(unit_id)
    return await refresh_courses(repo, user_id, course_ids)


async def refresh_courses(
    repo: AcademyRepo, user_id: UUID, course_ids: list[UUID]
) -> list[UUID]:
    newly_completed: list[UUID] = []
    for course_id in course_ids:
        before = await repo.get_progress(user_id, course_id)
        result = await evaluate_course_completion(repo, user_id, course_id)
        if result.completed and (before is None or not before.completed):
            newly_completed.append(course_id)

    if newly_completed:
        COURSE_COMPLETIONS.inc(len(newly_completed))
        logger.info(
            "Courses completed user=%s courses=%s",
            user_id,
            [str(c) for c in newly_completed],
        )
    return newly_completed
