"""Assessment submission.

The response always reflects the attempt itself.  Badges, the optional
certificate and notifications are follow-ups: if one of them fails the
learner still gets their score (see learning_service).
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.api.dependencies import InvalidationsDep, PrincipalDep, RepoDep, http_error
from app.models.assessment import AssessmentAttempt
from app.services import learning_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/assessments", tags=["assessments"])


class SubmissionIn(BaseModel):
    answers: dict[str, Any]
    # Only used when the assessment has no questions to grade against.
    score: int | None = Field(default=None, ge=0, le=100)
    started_at: int | None = None


class AttemptOut(BaseModel):
    id: UUID
    assessment_id: UUID
    score: int
    passed: bool
    answers: dict[str, Any]
    started_at: int
    completed_at: int


class SubmissionOut(BaseModel):
    attempt: AttemptOut
    passed: bool
    message: str
    attempts_remaining: int
    certificate_generated: bool


def _attempt_out(a: AssessmentAttempt) -> AttemptOut:
    return AttemptOut(
        id=a.id,
        assessment_id=a.assessment_id,
        score=a.score,
        passed=a.passed,
        answers=a.answers,
        started_at=a.started_at,
        completed_at=a.completed_at,
    )


@router.post("/{assessment_id}/submit", response_model=SubmissionOut)
async def submit(
    assessment_id: UUID,
    payload: SubmissionIn,
    principal: PrincipalDep,
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> SubmissionOut:
    try:
        result = await learning_service.submit_assessment(
            repo,
            principal.uid,
            assessment_id,
            payload.answers,
            score=payload.score,
            started_at=payload.started_at,
        )
    except AcademyError as e:
        raise http_error(e) from None

    invalidations.add(principal.user_id)
    return SubmissionOut(
        attempt=_attempt_out(result.attempt),
        passed=result.passed,
        message=result.message,
        attempts_remaining=result.attempts_remaining,
        certificate_generated=result.certificate_generated,
    )


@router.get("/{assessment_id}/attempts", response_model=list[AttemptOut])
async def list_attempts(
    assessment_id: UUID, principal: PrincipalDep, repo: RepoDep
) -> list[AttemptOut]:
    try:
        attempts = await learning_service.list_attempts(repo, principal.uid, assessment_id)
    except AcademyError as e:
        raise http_error(e) from None
    return [_attempt_out(a) for a in attempts]
