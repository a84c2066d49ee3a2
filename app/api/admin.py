"""Catalog authoring endpoints under /v1/admin.

Each route demands the permission for the kind of row it creates (see
app/core/permissions.py).  A second link of the same pair (unit in a
course, prerequisite, mandatory course) is a 409.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from app.api.badges import BadgeOut, badge_out
from app.api.courses import CourseOut, UnitOut, course_out, unit_out
from app.api.dependencies import RepoDep, http_error, require_permission
from app.core.permissions import Permission
from app.models.course import CourseType
from app.models.principal import Principal
from app.models.user import Role
from app.repos.academy_repo import DuplicateRecordError
from app.services import catalog_service
from app.services.errors import AcademyError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


def _guard(permission: Permission):
    return Annotated[Principal, Depends(require_permission(permission))]


AreasDep = _guard(Permission.MANAGE_TRAINING_AREAS)
ModulesDep = _guard(Permission.MANAGE_MODULES)
CoursesDep = _guard(Permission.MANAGE_COURSES)
UnitsDep = _guard(Permission.MANAGE_UNITS)
BlocksDep = _guard(Permission.MANAGE_LEARNING_BLOCKS)
AssessmentsDep = _guard(Permission.MANAGE_ASSESSMENTS)
BadgesDep = _guard(Permission.MANAGE_BADGES)


def _conflict(what: str) -> HTTPException:
    logger.warning("Duplicate %s rejected", what)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"{what} already exists")


# --- request/response models ---


class TrainingAreaIn(BaseModel):
    name: str
    description: str | None = None


class TrainingAreaOut(BaseModel):
    id: UUID
    name: str
    description: str | None


class ModuleIn(BaseModel):
    training_area_id: UUID
    name: str
    description: str | None = None


class ModuleOut(BaseModel):
    id: UUID
    training_area_id: UUID
    name: str
    description: str | None


class CourseIn(BaseModel):
    module_id: UUID
    name: str
    description: str | None = None
    course_type: CourseType = CourseType.SEQUENTIAL
    duration: int = 0
    level: str = "beginner"


class UnitIn(BaseModel):
    name: str
    description: str | None = None
    xp_points: int = 100


class AttachUnitIn(BaseModel):
    unit_id: UUID
    position: int


class CourseUnitOut(BaseModel):
    course_id: UUID
    unit_id: UUID
    position: int


class BlockIn(BaseModel):
    unit_id: UUID
    type: str
    title: str
    position: int
    content: str | None = None
    xp_points: int = 10


class BlockOut(BaseModel):
    id: UUID
    unit_id: UUID
    type: str
    title: str
    position: int
    content: str | None
    xp_points: int


class AssessmentIn(BaseModel):
    title: str
    unit_id: UUID | None = None
    course_id: UUID | None = None
    passing_score: int | None = None
    is_graded: bool = True
    max_retakes: int = 3
    xp_points: int = 50
    has_certificate: bool = False


class AssessmentOut(BaseModel):
    id: UUID
    title: str
    unit_id: UUID | None
    course_id: UUID | None
    passing_score: int
    is_graded: bool
    max_retakes: int
    xp_points: int
    has_certificate: bool


class QuestionIn(BaseModel):
    text: str
    position: int
    question_type: str = "mcq"
    options: list[str] = Field(default_factory=list)
    correct_answer: str | None = None


class QuestionOut(BaseModel):
    id: UUID
    assessment_id: UUID
    text: str
    position: int
    question_type: str
    options: list[str]


class PrerequisiteIn(BaseModel):
    prerequisite_course_id: UUID


class PrerequisiteOut(BaseModel):
    course_id: UUID
    prerequisite_course_id: UUID


class MandatoryCourseIn(BaseModel):
    course_id: UUID


class MandatoryCourseOut(BaseModel):
    role: str
    course_id: UUID


class BadgeIn(BaseModel):
    name: str
    type: str
    description: str | None = None
    xp_points: int = 100
    image_url: str | None = None


# --- routes ---


@router.post(
    "/training-areas", response_model=TrainingAreaOut, status_code=status.HTTP_201_CREATED
)
async def create_training_area(
    payload: TrainingAreaIn, _principal: AreasDep, repo: RepoDep
) -> TrainingAreaOut:
    try:
        area = await catalog_service.create_training_area(
            repo, name=payload.name, description=payload.description
        )
    except AcademyError as e:
        raise http_error(e) from None
    return TrainingAreaOut(id=area.id, name=area.name, description=area.description)


@router.post("/modules", response_model=ModuleOut, status_code=status.HTTP_201_CREATED)
async def create_module(
    payload: ModuleIn, _principal: ModulesDep, repo: RepoDep
) -> ModuleOut:
    try:
        module = await catalog_service.create_module(
            repo,
            training_area_id=payload.training_area_id,
            name=payload.name,
            description=payload.description,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return ModuleOut(
        id=module.id,
        training_area_id=module.training_area_id,
        name=module.name,
        description=module.description,
    )


@router.post("/courses", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseIn, _principal: CoursesDep, repo: RepoDep
) -> CourseOut:
    try:
        course = await catalog_service.create_course(
            repo,
            module_id=payload.module_id,
            name=payload.name,
            description=payload.description,
            course_type=payload.course_type,
            duration=payload.duration,
            level=payload.level,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return course_out(course)


@router.post("/units", response_model=UnitOut, status_code=status.HTTP_201_CREATED)
async def create_unit(payload: UnitIn, _principal: UnitsDep, repo: RepoDep) -> UnitOut:
    try:
        unit = await catalog_service.create_unit(
            repo,
            name=payload.name,
            description=payload.description,
            xp_points=payload.xp_points,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return unit_out(unit)


@router.post(
    "/courses/{course_id}/units",
    response_model=CourseUnitOut,
    status_code=status.HTTP_201_CREATED,
)
async def attach_unit(
    course_id: UUID, payload: AttachUnitIn, _principal: CoursesDep, repo: RepoDep
) -> CourseUnitOut:
    try:
        link = await catalog_service.attach_unit(
            repo, course_id=course_id, unit_id=payload.unit_id, position=payload.position
        )
    except DuplicateRecordError:
        raise _conflict("course unit") from None
    except AcademyError as e:
        raise http_error(e) from None
    return CourseUnitOut(course_id=link.course_id, unit_id=link.unit_id, position=link.position)


@router.post("/blocks", response_model=BlockOut, status_code=status.HTTP_201_CREATED)
async def create_block(payload: BlockIn, _principal: BlocksDep, repo: RepoDep) -> BlockOut:
    try:
        block = await catalog_service.create_block(
            repo,
            unit_id=payload.unit_id,
            type=payload.type,
            title=payload.title,
            position=payload.position,
            content=payload.content,
            xp_points=payload.xp_points,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return BlockOut(
        id=block.id,
        unit_id=block.unit_id,
        type=block.type,
        title=block.title,
        position=block.position,
        content=block.content,
        xp_points=block.xp_points,
    )


@router.post(
    "/assessments", response_model=AssessmentOut, status_code=status.HTTP_201_CREATED
)
async def create_assessment(
    payload: AssessmentIn, _principal: AssessmentsDep, repo: RepoDep
) -> AssessmentOut:
    try:
        assessment = await catalog_service.create_assessment(
            repo,
            title=payload.title,
            unit_id=payload.unit_id,
            course_id=payload.course_id,
            passing_score=payload.passing_score,
            is_graded=payload.is_graded,
            max_retakes=payload.max_retakes,
            xp_points=payload.xp_points,
            has_certificate=payload.has_certificate,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return AssessmentOut(
        id=assessment.id,
        title=assessment.title,
        unit_id=assessment.unit_id,
        course_id=assessment.course_id,
        passing_score=assessment.effective_passing_score,
        is_graded=assessment.is_graded,
        max_retakes=assessment.max_retakes,
        xp_points=assessment.xp_points,
        has_certificate=assessment.has_certificate,
    )


@router.post(
    "/assessments/{assessment_id}/questions",
    response_model=QuestionOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_question(
    assessment_id: UUID, payload: QuestionIn, _principal: AssessmentsDep, repo: RepoDep
) -> QuestionOut:
    try:
        question = await catalog_service.add_question(
            repo,
            assessment_id=assessment_id,
            text=payload.text,
            position=payload.position,
            question_type=payload.question_type,
            options=payload.options,
            correct_answer=payload.correct_answer,
        )
    except AcademyError as e:
        raise http_error(e) from None
    # correct_answer stays server-side.
    return QuestionOut(
        id=question.id,
        assessment_id=question.assessment_id,
        text=question.text,
        position=question.position,
        question_type=question.question_type,
        options=list(question.options),
    )


@router.post(
    "/courses/{course_id}/prerequisites",
    response_model=PrerequisiteOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_prerequisite(
    course_id: UUID, payload: PrerequisiteIn, _principal: CoursesDep, repo: RepoDep
) -> PrerequisiteOut:
    try:
        link = await catalog_service.add_prerequisite(
            repo,
            course_id=course_id,
            prerequisite_course_id=payload.prerequisite_course_id,
        )
    except DuplicateRecordError:
        raise _conflict("prerequisite") from None
    except AcademyError as e:
        raise http_error(e) from None
    return PrerequisiteOut(
        course_id=link.course_id, prerequisite_course_id=link.prerequisite_course_id
    )


@router.post(
    "/roles/{role}/mandatory-courses",
    response_model=MandatoryCourseOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_mandatory_course(
    role: Role, payload: MandatoryCourseIn, _principal: CoursesDep, repo: RepoDep
) -> MandatoryCourseOut:
    try:
        link = await catalog_service.add_mandatory_course(
            repo, role=role, course_id=payload.course_id
        )
    except DuplicateRecordError:
        raise _conflict("mandatory course") from None
    except AcademyError as e:
        raise http_error(e) from None
    return MandatoryCourseOut(role=link.role.value, course_id=link.course_id)


@router.post("/badges", response_model=BadgeOut, status_code=status.HTTP_201_CREATED)
async def create_badge(payload: BadgeIn, _principal: BadgesDep, repo: RepoDep) -> BadgeOut:
    try:
        badge = await catalog_service.create_badge(
            repo,
            name=payload.name,
            type=payload.type,
            description=payload.description,
            xp_points=payload.xp_points,
            image_url=payload.image_url,
        )
    except AcademyError as e:
        raise http_error(e) from None
    return badge_out(badge)
