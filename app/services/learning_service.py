"""Learner actions: complete a block, submit an assessment, record progress.

Each action has a primary effect that must succeed or fail on its own
merits (the completion row, the attempt row, the XP for them) and a tail
of follow-ups that must never turn a success into a failure:

  primary    one repo.transaction(); errors propagate to the caller
  follow-up  progress re-evaluation, badges, certificate, notifications;
             each runs best effort, logged and counted on failure

Progress re-evaluation covers every course that contains the unit, since
units are shared between courses.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from app.core.metrics import ASSESSMENT_SUBMISSIONS, BLOCK_COMPLETIONS
from app.models.assessment import Assessment, AssessmentAttempt, Question
from app.models.progress import BlockCompletion, CourseCompletion, UserProgress
from app.repos.academy_repo import AcademyRepo, DuplicateRecordError
from app.services import badge_service, certificate_service, notification_service
from app.services.badge_service import AwardContext, Trigger
from app.services.completion_service import (
    evaluate_course_completion,
    percent,
    refresh_courses,
)
from app.services.errors import NotEligibleError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    attempt: AssessmentAttempt
    passed: bool
    message: str
    attempts_remaining: int
    certificate_generated: bool


# ---------------------------------------------------------------------------
# Follow-ups
# ---------------------------------------------------------------------------


async def _refresh_best_effort(
    repo: AcademyRepo, user_id: UUID, course_ids: list[UUID]
) -> list[UUID]:
    try:
        async with repo.transaction():
            return await refresh_courses(repo, user_id, course_ids)
    except Exception:
        logger.exception(
            "Progress refresh failed user=%s courses=%s",
            user_id,
            [str(c) for c in course_ids],
        )
        return []


async def _after_courses_completed(
    repo: AcademyRepo, user_id: UUID, course_ids: list[UUID]
) -> None:
    # Course rules read full history, one pass covers every course.
    if course_ids:
        await badge_service.award_badges_best_effort(
            repo,
            user_id,
            AwardContext(trigger=Trigger.COURSE_COMPLETED),
        )


async def _owning_course_ids(repo: AcademyRepo, assessment: Assessment) -> list[UUID]:
    if assessment.unit_id is not None:
        return await repo.list_course_ids_for_unit(assessment.unit_id)
    if assessment.course_id is not None:
        return [assessment.course_id]
    return []


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


async def complete_block(
    repo: AcademyRepo, user_id: UUID, block_id: UUID
) -> tuple[BlockCompletion, bool]:
    """Mark a block done.  Returns (completion, created); XP is credited once."""
    block = await repo.get_block(block_id)
    if block is None:
        raise NotFoundError(f"block {block_id} not found")

    existing = await repo.get_block_completion(user_id, block_id)
    if existing is not None:
        BLOCK_COMPLETIONS.labels(result="existing").inc()
        return existing, False

    completion = BlockCompletion.new(
        user_id=user_id, block_id=block_id, completed_at=_now()
    )
    try:
        async with repo.transaction():
            await repo.add_block_completion(completion)
            await repo.credit_xp(user_id, block.xp_points)
    except DuplicateRecordError:
        winner = await repo.get_block_completion(user_id, block_id)
        if winner is None:
            raise
        BLOCK_COMPLETIONS.labels(result="existing").inc()
        return winner, False

    BLOCK_COMPLETIONS.labels(result="created").inc()
    logger.info(
        "Block completed user=%s block=%s xp=%d", user_id, block_id, block.xp_points
    )

    course_ids = await repo.list_course_ids_for_unit(block.unit_id)
    newly_completed = await _refresh_best_effort(repo, user_id, course_ids)
    await _after_courses_completed(repo, user_id, newly_completed)
    return completion, True


async def list_block_completions(
    repo: AcademyRepo, user_id: UUID
) -> list[BlockCompletion]:
    return await repo.list_block_completions(user_id)


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------


def _is_correct(question: Question, answer: Any) -> bool:
    if question.correct_answer is None or answer is None:
        return False
    if question.question_type == "true_false":
        return str(answer).strip().lower() == question.correct_answer.strip().lower()
    return answer == question.correct_answer


def grade(questions: list[Question], answers: Mapping[str, Any]) -> int:
    """Score 0..100 from answers keyed by question id."""
    correct = sum(1 for q in questions if _is_correct(q, answers.get(str(q.id))))
    return percent(correct, len(questions))


async def submit_assessment(
    repo: AcademyRepo,
    user_id: UUID,
    assessment_id: UUID,
    answers: Mapping[str, Any],
    score: int | None = None,
    started_at: int | None = None,
) -> SubmissionResult:
    assessment = await repo.get_assessment(assessment_id)
    if assessment is None:
        raise NotFoundError(f"assessment {assessment_id} not found")

    previous = await repo.list_attempts(user_id, assessment_id)
    if len(previous) >= assessment.max_retakes:
        logger.warning(
            "Retake limit reached user=%s assessment=%s attempts=%d",
            user_id,
            assessment_id,
            len(previous),
        )
        raise NotEligibleError("no attempts remaining")

    questions = await repo.list_questions(assessment_id)
    if questions:
        # Server-side grading; a client-supplied score is ignored.
        final_score = grade(questions, answers)
    elif score is None:
        raise ValidationError("score is required for an assessment without questions")
    elif not 0 <= score <= 100:
        raise ValidationError("score must be between 0 and 100")
    else:
        final_score = score

    if assessment.is_graded:
        passed = final_score >= assessment.effective_passing_score
    else:
        passed = True

    now = _now()
    attempt = AssessmentAttempt.new(
        user_id=user_id,
        assessment_id=assessment_id,
        score=final_score,
        passed=passed,
        answers=dict(answers),
        started_at=started_at if started_at is not None else now,
        completed_at=now,
    )
    async with repo.transaction():
        await repo.add_attempt(attempt)
        if passed:
            await repo.credit_xp(user_id, assessment.xp_points)

    ASSESSMENT_SUBMISSIONS.labels(result="passed" if passed else "failed").inc()
    attempts_remaining = max(0, assessment.max_retakes - len(previous) - 1)
    logger.info(
        "Assessment submitted user=%s assessment=%s score=%d passed=%s remaining=%d",
        user_id,
        assessment_id,
        final_score,
        passed,
        attempts_remaining,
    )

    certificate_generated = False
    if passed:
        course_ids = await _owning_course_ids(repo, assessment)
        newly_completed = await _refresh_best_effort(repo, user_id, course_ids)
        await badge_service.award_badges_best_effort(
            repo,
            user_id,
            AwardContext(trigger=Trigger.ASSESSMENT_PASSED),
        )
        await _after_courses_completed(repo, user_id, newly_completed)
        if assessment.has_certificate:
            certificate_generated = await _issue_certificates(repo, user_id, course_ids)

        message = f'You passed "{assessment.title}" with a score of {final_score}%.'
        await notification_service.emit(
            repo,
            user_id,
            "assessment_passed",
            "Assessment Passed!",
            message,
            {"assessment_id": str(assessment_id), "score": final_score},
        )
    else:
        remaining = (
            f"You have {attempts_remaining} attempts remaining."
            if attempts_remaining > 0
            else "No attempts remaining."
        )
        message = f'You scored {final_score}% on "{assessment.title}". {remaining}'
        await notification_service.emit(
            repo,
            user_id,
            "assessment_failed",
            "Assessment Not Passed",
            message,
            {"assessment_id": str(assessment_id), "score": final_score},
        )

    return SubmissionResult(
        attempt=attempt,
        passed=passed,
        message=message,
        attempts_remaining=attempts_remaining,
        certificate_generated=certificate_generated,
    )


async def _issue_certificates(
    repo: AcademyRepo, user_id: UUID, course_ids: list[UUID]
) -> bool:
    generated = False
    for course_id in course_ids:
        progress = await repo.get_progress(user_id, course_id)
        if progress is None or not progress.completed:
            continue
        try:
            async with repo.transaction():
                _, created = await certificate_service.generate_certificate(
                    repo, user_id, course_id
                )
        except Exception:
            logger.exception(
                "Certificate on submission failed user=%s course=%s", user_id, course_id
            )
            continue
        generated = generated or created
    return generated


async def list_attempts(
    repo: AcademyRepo, user_id: UUID, assessment_id: UUID
) -> list[AssessmentAttempt]:
    if await repo.get_assessment(assessment_id) is None:
        raise NotFoundError(f"assessment {assessment_id} not found")
    return await repo.list_attempts(user_id, assessment_id)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


async def record_progress(
    repo: AcademyRepo,
    user_id: UUID,
    course_id: UUID,
    percent_complete: int | None = None,
    completed: bool | None = None,
) -> UserProgress:
    """Client-driven upsert that bypasses the evaluator.

    Percent is clamped to 0..100; completed forces it to 100.
    """
    if await repo.get_course(course_id) is None:
        raise NotFoundError(f"course {course_id} not found")

    before = await repo.get_progress(user_id, course_id)
    new_percent = percent_complete
    if new_percent is None:
        new_percent = before.percent_complete if before is not None else 0
    new_percent = min(100, max(0, new_percent))
    new_completed = completed
    if new_completed is None:
        new_completed = before.completed if before is not None else False
    if new_completed:
        new_percent = 100

    progress = UserProgress(
        user_id=user_id,
        course_id=course_id,
        percent_complete=new_percent,
        completed=new_completed,
        last_accessed=_now(),
    )
    await repo.upsert_progress(progress)

    if new_completed and (before is None or not before.completed):
        await _after_courses_completed(repo, user_id, [course_id])
    return progress


async def refresh_progress(
    repo: AcademyRepo, user_id: UUID, course_id: UUID
) -> CourseCompletion:
    before = await repo.get_progress(user_id, course_id)
    result = await evaluate_course_completion(repo, user_id, course_id)
    if result.completed and (before is None or not before.completed):
        await _after_courses_completed(repo, user_id, [course_id])
    return result


async def list_progress(repo: AcademyRepo, user_id: UUID) -> list[UserProgress]:
    return await repo.list_progress(user_id)
