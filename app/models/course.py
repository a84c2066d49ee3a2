from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4

from app.models.user import Role


class CourseType(StrEnum):
    SEQUENTIAL = "sequential"  # gated by prerequisites
    FREE = "free"  # always accessible


@dataclass(frozen=True, slots=True)
class TrainingArea:
    id: UUID
    name: str
    description: str | None = None

    @staticmethod
    def new(*, name: str, description: str | None = None) -> TrainingArea:
        return TrainingArea(id=uuid4(), name=name, description=description)


@dataclass(frozen=True, slots=True)
class CourseModule:
    """A grouping of courses under a training area ("Module" in the UI)."""

    id: UUID
    training_area_id: UUID
    name: str
    description: str | None = None

    @staticmethod
    def new(
        *, training_area_id: UUID, name: str, description: str | None = None
    ) -> CourseModule:
        return CourseModule(
            id=uuid4(),
            training_area_id=training_area_id,
            name=name,
            description=description,
        )


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    training_area_id: UUID
    module_id: UUID
    name: str
    description: str | None = None
    course_type: CourseType = CourseType.SEQUENTIAL
    duration: int = 0  # minutes
    level: str = "beginner"  # beginner|intermediate|advanced

    @staticmethod
    def new(
        *,
        training_area_id: UUID,
        module_id: UUID,
        name: str,
        description: str | None = None,
        course_type: CourseType = CourseType.SEQUENTIAL,
        duration: int = 0,
        level: str = "beginner",
    ) -> Course:
        return Course(
            id=uuid4(),
            training_area_id=training_area_id,
            module_id=module_id,
            name=name,
            description=description,
            course_type=course_type,
            duration=duration,
            level=level,
        )


@dataclass(frozen=True, slots=True)
class Unit:
    """Bundle of blocks and assessments; shared between courses via CourseUnit."""

    id: UUID
    name: str
    description: str | None = None
    xp_points: int = 100

    @staticmethod
    def new(
        *, name: str, description: str | None = None, xp_points: int = 100
    ) -> Unit:
        return Unit(id=uuid4(), name=name, description=description, xp_points=xp_points)


@dataclass(frozen=True, slots=True)
class CourseUnit:
    course_id: UUID
    unit_id: UUID
    position: int


@dataclass(frozen=True, slots=True)
class LearningBlock:
    id: UUID
    unit_id: UUID
    type: str  # video|text|interactive|image|scorm
    title: str
    position: int
    content: str | None = None
    xp_points: int = 10

    @staticmethod
    def new(
        *,
        unit_id: UUID,
        type: str,
        title: str,
        position: int,
        content: str | None = None,
        xp_points: int = 10,
    ) -> LearningBlock:
        return LearningBlock(
            id=uuid4(),
            unit_id=unit_id,
            type=type,
            title=title,
            position=position,
            content=content,
            xp_points=xp_points,
        )


@dataclass(frozen=True, slots=True)
class CoursePrerequisite:
    course_id: UUID
    prerequisite_course_id: UUID


@dataclass(frozen=True, slots=True)
class RoleMandatoryCourse:
    role: Role
    course_id: UUID
