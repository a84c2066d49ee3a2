from __future__ import annotations

import asyncio
import sys
from collections.abc import Coroutine, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from app.api import dependencies
from app.main import app
from app.models.assessment import Assessment, Question
from app.models.course import (
    Course,
    CourseModule,
    CourseType,
    CourseUnit,
    LearningBlock,
    TrainingArea,
    Unit,
)
from app.models.user import Role, User
from app.repos.academy_repo import InMemoryAcademyRepo
from app.services import badge_service, token_service
from app.services.cache import cache_service

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

T = TypeVar("T")


def run(coro: Coroutine[Any, Any, T]) -> T:
    """Drive one async service call from a sync test."""
    return asyncio.run(coro)


@pytest.fixture(autouse=True)
def repo(monkeypatch: pytest.MonkeyPatch) -> Iterator[InMemoryAcademyRepo]:
    """Fresh store per test, served by get_academy_repo in place of the default.

    Swapping the store (not overriding the dependency) keeps the
    post-commit cache invalidation in the request path.
    """
    store = InMemoryAcademyRepo()
    monkeypatch.setattr(dependencies, "memory_repo", store)
    yield store


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(user_id: str | None = None, role: str = "user") -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=user_id or str(uuid4()), role=role)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def seed_user(
    repo: InMemoryAcademyRepo,
    role: Role = Role.USER,
    *,
    name: str = "Test Learner",
    created_by=None,
) -> User:
    user = User.new(
        email=f"{role}-{uuid4().hex[:8]}@example.com",
        name=name,
        password_hash="x",
        role=role,
        created_by=created_by,
    )
    run(repo.add_user(user))
    return user


def seed_badges(repo: InMemoryAcademyRepo) -> None:
    run(badge_service.seed_default_badges(repo))


@dataclass
class SeededCourse:
    area: TrainingArea
    course: Course
    units: list[Unit] = field(default_factory=list)
    blocks: list[LearningBlock] = field(default_factory=list)
    assessments: list[Assessment] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)


def seed_course(
    repo: InMemoryAcademyRepo,
    *,
    units: int = 1,
    blocks_per_unit: int = 1,
    with_assessment: bool = False,
    has_certificate: bool = False,
    course_type: CourseType = CourseType.FREE,
    area_name: str = "General",
    area: TrainingArea | None = None,
) -> SeededCourse:
    """Build a course with ``units`` units, each with blocks and optionally
    one graded true/false assessment (correct answer "true")."""
    if area is None:
        area = TrainingArea.new(name=area_name)
        run(repo.add_training_area(area))
    module = CourseModule.new(training_area_id=area.id, name="Module")
    run(repo.add_module(module))
    course = Course.new(
        training_area_id=area.id,
        module_id=module.id,
        name=f"Course {uuid4().hex[:6]}",
        course_type=course_type,
    )
    run(repo.add_course(course))
    seeded = SeededCourse(area=area, course=course)

    for u in range(units):
        unit = Unit.new(name=f"Unit {u + 1}")
        run(repo.add_unit(unit))
        run(repo.attach_unit(CourseUnit(course_id=course.id, unit_id=unit.id, position=u)))
        seeded.units.append(unit)
        for b in range(blocks_per_unit):
            block = LearningBlock.new(
                unit_id=unit.id, type="text", title=f"Block {b + 1}", position=b
            )
            run(repo.add_block(block))
            seeded.blocks.append(block)
        if with_assessment:
            assessment = Assessment.new(
                title=f"Quiz {u + 1}", unit_id=unit.id, has_certificate=has_certificate
            )
            run(repo.add_assessment(assessment))
            question = Question.new(
                assessment_id=assessment.id,
                text="True or false?",
                position=0,
                question_type="true_false",
                correct_answer="true",
            )
            run(repo.add_question(question))
            seeded.assessments.append(assessment)
            seeded.questions.append(question)

    return seeded
