"""Learner action tests: block completion, assessment submission, progress."""

from __future__ import annotations

from uuid import uuid4

import pytest

from app.models.assessment import Assessment
from app.services import badge_service, learning_service
from app.services.errors import NotEligibleError, NotFoundError, ValidationError
from tests.conftest import run, seed_badges, seed_course, seed_user


def _answers(seeded, value: str = "true") -> dict[str, str]:
    return {str(q.id): value for q in seeded.questions}


# ---------------------------------------------------------------------------
# Blocks
# ---------------------------------------------------------------------------


def test_complete_block_credits_xp_once(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, units=1, blocks_per_unit=2)
    block = seeded.blocks[0]

    first, created = run(learning_service.complete_block(repo, user.id, block.id))
    again, created_again = run(learning_service.complete_block(repo, user.id, block.id))

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert run(repo.get_user(user.id)).xp_points == block.xp_points


def test_complete_unknown_block_is_not_found(repo) -> None:
    with pytest.raises(NotFoundError):
        run(learning_service.complete_block(repo, uuid4(), uuid4()))


def test_last_block_completes_course_and_awards_course_badge(repo) -> None:
    seed_badges(repo)
    user = seed_user(repo)
    seeded = seed_course(repo, units=2, blocks_per_unit=1)

    run(learning_service.complete_block(repo, user.id, seeded.blocks[0].id))
    progress = run(repo.get_progress(user.id, seeded.course.id))
    assert progress.percent_complete == 50
    assert progress.completed is False

    run(learning_service.complete_block(repo, user.id, seeded.blocks[1].id))
    progress = run(repo.get_progress(user.id, seeded.course.id))
    assert progress.completed is True

    earned = {b.type for _, b in run(badge_service.list_earned(repo, user.id))}
    assert "course_completion" in earned


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------


def test_grade_compares_true_false_case_insensitively(repo) -> None:
    seeded = seed_course(repo, with_assessment=True)
    questions = seeded.questions

    assert learning_service.grade(questions, {str(questions[0].id): " TRUE "}) == 100
    assert learning_service.grade(questions, {str(questions[0].id): "false"}) == 0
    assert learning_service.grade(questions, {}) == 0


def test_submission_is_graded_on_the_server(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0, with_assessment=True)

    result = run(
        learning_service.submit_assessment(
            repo, user.id, seeded.assessments[0].id, _answers(seeded, "false"), score=100
        )
    )

    assert result.attempt.score == 0
    assert result.passed is False
    assert result.attempts_remaining == 2
    assert "2 attempts remaining" in result.message


def test_pass_credits_xp_and_completes_course(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0, with_assessment=True)
    assessment = seeded.assessments[0]

    result = run(
        learning_service.submit_assessment(repo, user.id, assessment.id, _answers(seeded))
    )

    assert result.passed is True
    assert result.attempt.score == 100
    assert run(repo.get_user(user.id)).xp_points == assessment.xp_points
    assert run(repo.get_progress(user.id, seeded.course.id)).completed is True
    notifications = run(repo.list_notifications(user.id, 10))
    assert notifications[0].type == "assessment_passed"


def test_first_perfect_pass_awards_badges_and_xp(repo) -> None:
    seed_badges(repo)
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0, with_assessment=True)

    run(
        learning_service.submit_assessment(
            repo, user.id, seeded.assessments[0].id, _answers(seeded)
        )
    )

    earned = {b.type: b.xp_points for _, b in run(badge_service.list_earned(repo, user.id))}
    assert set(earned) == {"assessment", "assessment_perfect", "course_completion"}
    # 50 + 75 + 100 from badges, plus the assessment's own XP.
    expected_xp = sum(earned.values()) + seeded.assessments[0].xp_points
    assert expected_xp == 50 + 75 + 100 + 50
    assert run(repo.get_user(user.id)).xp_points == expected_xp


def test_retake_limit(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0, with_assessment=True)
    assessment = seeded.assessments[0]

    for _ in range(assessment.max_retakes):
        run(
            learning_service.submit_assessment(
                repo, user.id, assessment.id, _answers(seeded, "false")
            )
        )

    with pytest.raises(NotEligibleError):
        run(
            learning_service.submit_assessment(
                repo, user.id, assessment.id, _answers(seeded)
            )
        )
    assert len(run(repo.list_attempts(user.id, assessment.id))) == assessment.max_retakes


def test_assessment_without_questions_needs_client_score(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0)
    assessment = Assessment.new(title="Essay", unit_id=seeded.units[0].id, passing_score=60)
    run(repo.add_assessment(assessment))

    with pytest.raises(ValidationError):
        run(learning_service.submit_assessment(repo, user.id, assessment.id, {}))
    with pytest.raises(ValidationError):
        run(learning_service.submit_assessment(repo, user.id, assessment.id, {}, score=101))

    result = run(
        learning_service.submit_assessment(repo, user.id, assessment.id, {}, score=60)
    )
    assert result.passed is True


def test_ungraded_assessment_always_passes(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0)
    assessment = Assessment.new(title="Survey", unit_id=seeded.units[0].id, is_graded=False)
    run(repo.add_assessment(assessment))

    result = run(
        learning_service.submit_assessment(repo, user.id, assessment.id, {}, score=5)
    )

    assert result.passed is True


def test_certificate_issued_when_pass_completes_course(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(
        repo, blocks_per_unit=0, with_assessment=True, has_certificate=True
    )

    result = run(
        learning_service.submit_assessment(
            repo, user.id, seeded.assessments[0].id, _answers(seeded)
        )
    )

    assert result.certificate_generated is True
    assert run(repo.get_certificate_for(user.id, seeded.course.id)) is not None


def test_no_certificate_while_course_incomplete(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=1, with_assessment=True, has_certificate=True)

    result = run(
        learning_service.submit_assessment(
            repo, user.id, seeded.assessments[0].id, _answers(seeded)
        )
    )

    assert result.passed is True
    assert result.certificate_generated is False


def test_badge_failure_does_not_fail_submission(repo, monkeypatch) -> None:
    seed_badges(repo)
    user = seed_user(repo)
    seeded = seed_course(repo, blocks_per_unit=0, with_assessment=True)

    async def broken(repo, user_id) -> bool:
        raise RuntimeError("rule bug")

    monkeypatch.setitem(badge_service.BADGE_RULES, "assessment", broken)

    result = run(
        learning_service.submit_assessment(
            repo, user.id, seeded.assessments[0].id, _answers(seeded)
        )
    )

    assert result.passed is True
    assert len(run(repo.list_attempts(user.id))) == 1


def test_list_attempts_unknown_assessment(repo) -> None:
    with pytest.raises(NotFoundError):
        run(learning_service.list_attempts(repo, uuid4(), uuid4()))


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "percent,completed,expected_percent",
    [
        (150, None, 100),
        (-5, None, 0),
        (40, None, 40),
        (40, True, 100),
    ],
)
def test_record_progress_clamps(repo, percent, completed, expected_percent) -> None:
    seeded = seed_course(repo)

    progress = run(
        learning_service.record_progress(
            repo, uuid4(), seeded.course.id, percent_complete=percent, completed=completed
        )
    )

    assert progress.percent_complete == expected_percent


def test_record_progress_unknown_course(repo) -> None:
    with pytest.raises(NotFoundError):
        run(learning_service.record_progress(repo, uuid4(), uuid4(), percent_complete=10))


def test_refresh_progress_overwrites_client_value(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, units=2)
    run(
        learning_service.record_progress(
            repo, user.id, seeded.course.id, percent_complete=90
        )
    )

    result = run(learning_service.refresh_progress(repo, user.id, seeded.course.id))

    assert result.percent_complete == 0
    assert run(repo.get_progress(user.id, seeded.course.id)).percent_complete == 0
