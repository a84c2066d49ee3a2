"""Catalog authoring for admins.

Every create checks that the rows it points at exist (NotFoundError) and
that the shape is coherent (ValidationError).  Uniqueness is left to the
store: a second link of the same unit, prerequisite or mandatory course
raises DuplicateRecordError, which the admin API reports as 409.
"""

from __future__ import annotations

import logging
from uuid import UUID

from app.models.assessment import Assessment, Question
from app.models.badge import Badge
from app.models.course import (
    Course,
    CourseModule,
    CoursePrerequisite,
    CourseType,
    CourseUnit,
    LearningBlock,
    RoleMandatoryCourse,
    TrainingArea,
    Unit,
)
from app.models.user import Role
from app.repos.academy_repo import AcademyRepo
from app.services.badge_service import BADGE_RULES
from app.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

BLOCK_TYPES = frozenset({"video", "text", "interactive", "image", "scorm"})
QUESTION_TYPES = frozenset({"mcq", "true_false", "open_ended"})
LEVELS = frozenset({"beginner", "intermediate", "advanced"})


def _require_name(value: str, field: str = "name") -> str:
    value = value.strip()
    if not value:
        raise ValidationError(f"{field} must be non-empty")
    return value


def _require_non_negative(value: int, field: str) -> int:
    if value < 0:
        raise ValidationError(f"{field} must be >= 0")
    return value


async def create_training_area(
    repo: AcademyRepo, *, name: str, description: str | None = None
) -> TrainingArea:
    area = TrainingArea.new(name=_require_name(name), description=description)
    await repo.add_training_area(area)
    logger.info("Training area created id=%s name=%s", area.id, area.name)
    return area


async def create_module(
    repo: AcademyRepo,
    *,
    training_area_id: UUID,
    name: str,
    description: str | None = None,
) -> CourseModule:
    if await repo.get_training_area(training_area_id) is None:
        raise NotFoundError(f"training area {training_area_id} not found")
    module = CourseModule.new(
        training_area_id=training_area_id,
        name=_require_name(name),
        description=description,
    )
    await repo.add_module(module)
    logger.info("Module created id=%s area=%s", module.id, training_area_id)
    return module


async def create_course(
    repo: AcademyRepo,
    *,
    module_id: UUID,
    name: str,
    description: str | None = None,
    course_type: CourseType = CourseType.SEQUENTIAL,
    duration: int = 0,
    level: str = "beginner",
) -> Course:
    module = await repo.get_module(module_id)
    if module is None:
        raise NotFoundError(f"module {module_id} not found")
    if level not in LEVELS:
        raise ValidationError(f"level must be one of {sorted(LEVELS)}")
    course = Course.new(
        training_area_id=module.training_area_id,
        module_id=module_id,
        name=_require_name(name),
        description=description,
        course_type=course_type,
        duration=_require_non_negative(duration, "duration"),
        level=level,
    )
    await repo.add_course(course)
    logger.info(
        "Course created id=%s module=%s type=%s", course.id, module_id, course_type
    )
    return course


async def create_unit(
    repo: AcademyRepo,
    *,
    name: str,
    description: str | None = None,
    xp_points: int = 100,
) -> Unit:
    unit = Unit.new(
        name=_require_name(name),
        description=description,
        xp_points=_require_non_negative(xp_points, "xp_points"),
    )
    await repo.add_unit(unit)
    return unit


async def attach_unit(
    repo: AcademyRepo, *, course_id: UUID, unit_id: UUID, position: int
) -> CourseUnit:
    if await repo.get_course(course_id) is None:
        raise NotFoundError(f"course {course_id} not found")
    if await repo.get_unit(unit_id) is None:
        raise NotFoundError(f"unit {unit_id} not found")
    link = CourseUnit(course_id=course_id, unit_id=unit_id, position=position)
    await repo.attach_unit(link)
    logger.info(
        "Unit attached course=%s unit=%s position=%d", course_id, unit_id, position
    )
    return link


async def create_block(
    repo: AcademyRepo,
    *,
    unit_id: UUID,
    type: str,
    title: str,
    position: int,
    content: str | None = None,
    xp_points: int = 10,
) -> LearningBlock:
    if await repo.get_unit(unit_id) is None:
        raise NotFoundError(f"unit {unit_id} not found")
    if type not in BLOCK_TYPES:
        raise ValidationError(f"type must be one of {sorted(BLOCK_TYPES)}")
    block = LearningBlock.new(
        unit_id=unit_id,
        type=type,
        title=_require_name(title, "title"),
        position=position,
        content=content,
        xp_points=_require_non_negative(xp_points, "xp_points"),
    )
    await repo.add_block(block)
    return block


async def create_assessment(
    repo: AcademyRepo,
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
    if unit_id is None and course_id is None:
        raise ValidationError("assessment needs a unit_id or a course_id")
    if unit_id is not None and await repo.get_unit(unit_id) is None:
        raise NotFoundError(f"unit {unit_id} not found")
    if course_id is not None and await repo.get_course(course_id) is None:
        raise NotFoundError(f"course {course_id} not found")
    if passing_score is not None and not 0 <= passing_score <= 100:
        raise ValidationError("passing_score must be between 0 and 100")
    if max_retakes < 1:
        raise ValidationError("max_retakes must be >= 1")

    assessment = Assessment.new(
        title=_require_name(title, "title"),
        unit_id=unit_id,
        course_id=course_id,
        passing_score=passing_score,
        is_graded=is_graded,
        max_retakes=max_retakes,
        xp_points=_require_non_negative(xp_points, "xp_points"),
        has_certificate=has_certificate,
    )
    await repo.add_assessment(assessment)
    logger.info(
        "Assessment created id=%s unit=%s course=%s", assessment.id, unit_id, course_id
    )
    return assessment


async def add_question(
    repo: AcademyRepo,
    *,
    assessment_id: UUID,
    text: str,
    position: int,
    question_type: str = "mcq",
    options: list[str] | None = None,
    correct_answer: str | None = None,
) -> Question:
    if await repo.get_assessment(assessment_id) is None:
        raise NotFoundError(f"assessment {assessment_id} not found")
    if question_type not in QUESTION_TYPES:
        raise ValidationError(f"question_type must be one of {sorted(QUESTION_TYPES)}")
    question = Question.new(
        assessment_id=assessment_id,
        text=_require_name(text, "text"),
        position=position,
        question_type=question_type,
        options=tuple(options or ()),
        correct_answer=correct_answer,
    )
    await repo.add_question(question)
    return question


async def add_prerequisite(
    repo: AcademyRepo, *, course_id: UUID, prerequisite_course_id: UUID
) -> CoursePrerequisite:
    if course_id == prerequisite_course_id:
        raise ValidationError("a course cannot be its own prerequisite")
    for cid in (course_id, prerequisite_course_id):
        if await repo.get_course(cid) is None:
            raise NotFoundError(f"course {cid} not found")
    link = CoursePrerequisite(
        course_id=course_id, prerequisite_course_id=prerequisite_course_id
    )
    await repo.add_prerequisite(link)
    return link


async def add_mandatory_course(
    repo: AcademyRepo, *, role: Role, course_id: UUID
) -> RoleMandatoryCourse:
    if await repo.get_course(course_id) is None:
        raise NotFoundError(f"course {course_id} not found")
    link = RoleMandatoryCourse(role=role, course_id=course_id)
    await repo.add_mandatory_course(link)
    return link


async def create_badge(
    repo: AcademyRepo,
    *,
    name: str,
    type: str,
    description: str | None = None,
    xp_points: int = 100,
    image_url: str | None = None,
) -> Badge:
    if type not in BADGE_RULES:
        # Stored anyway; it simply never gets awarded.
        logger.warning("Badge type %r has no award rule", type)
    badge = Badge.new(
        name=_require_name(name),
        type=_require_name(type, "type"),
        description=description,
        xp_points=_require_non_negative(xp_points, "xp_points"),
        image_url=image_url,
    )
    await repo.add_badge(badge)
    return badge
