from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID, uuid4

DEFAULT_PASSING_SCORE = 70


@dataclass(frozen=True, slots=True)
class Assessment:
    """Quiz attached to a unit, or directly to a course (unit_id is None)."""

    id: UUID
    title: str
    unit_id: UUID | None = None
    course_id: UUID | None = None
    passing_score: int | None = None  # None → DEFAULT_PASSING_SCORE
    is_graded: bool = True
    max_retakes: int = 3
    xp_points: int = 50
    has_certificate: bool = False

    @property
    def effective_passing_score(self) -> int:
        if self.passing_score is None:
            return DEFAULT_PASSING_SCORE
        return self.passing_score

    @staticmethod
    def new(
        *,
        title: str,
        unit_id: UUID | None = None,
        course_id: UUID | None = None,
        passing_score: int | None = None,
        is_graded: bool = True,
        max_retakes: int = 3,
        xp_points: int = 50,
        has_certificate: bool = False,
    ) -> Assessment:
        return Assessment(
            id=uuid4(),
            title=title,
            unit_id=unit_id,
            course_id=course_id,
            passing_score=passing_score,
            is_graded=is_graded,
            max_retakes=max_retakes,
            xp_points=xp_points,
            has_certificate=has_certificate,
        )


@dataclass(frozen=True, slots=True)
class Question:
    id: UUID
    assessment_id: UUID
    text: str
    position: int
    question_type: str = "mcq"  # mcq|true_false|open_ended
    options: tuple[str, ...] = ()
    correct_answer: str | None = None

    @staticmethod
    def new(
        *,
        assessment_id: UUID,
        text: str,
        position: int,
        question_type: str = "mcq",
        options: tuple[str, ...] = (),
        correct_answer: str | None = None,
    ) -> Question:
        return Question(
            id=uuid4(),
            assessment_id=assessment_id,
            text=text,
            position=position,
            question_type=question_type,
            options=options,
            correct_answer=correct_answer,
        )


@dataclass(frozen=True, slots=True)
class AssessmentAttempt:
    """Append-only record of one submission."""

    id: UUID
    user_id: UUID
    assessment_id: UUID
    score: int
    passed: bool
    started_at: int
    completed_at: int
    answers: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def new(
        *,
        user_id: UUID,
        assessment_id: UUID,
        score: int,
        passed: bool,
        answers: dict[str, Any],
        started_at: int,
        completed_at: int,
    ) -> AssessmentAttempt:
        return AssessmentAttempt(
            id=uuid4(),
            user_id=user_id,
            assessment_id=assessment_id,
            score=score,
            passed=passed,
            started_at=started_at,
            completed_at=completed_at,
            answers=answers,
        )
