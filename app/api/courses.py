"""Course catalog as seen by a learner.

  GET /v1/courses              every course (optionally one module's)
  GET /v1/courses/accessible   courses the caller may start now
  GET /v1/courses/mandatory    courses assigned to the caller's role
  GET /v1/courses/{id}/units   a course's units in position order
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import PrincipalDep, RepoDep, http_error
from app.models.course import Course, Unit
from app.services import course_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseOut(BaseModel):
    id: UUID
    training_area_id: UUID
    module_id: UUID
    name: str
    description: str | None
    course_type: str
    duration: int
    level: str


class UnitOut(BaseModel):
    id: UUID
    name: str
    description: str | None
    xp_points: int


def course_out(c: Course) -> CourseOut:
    return CourseOut(
        id=c.id,
        training_area_id=c.training_area_id,
        module_id=c.module_id,
        name=c.name,
        description=c.description,
        course_type=c.course_type.value,
        duration=c.duration,
        level=c.level,
    )


def unit_out(u: Unit) -> UnitOut:
    return UnitOut(id=u.id, name=u.name, description=u.description, xp_points=u.xp_points)


@router.get("", response_model=list[CourseOut])
async def list_courses(
    _principal: PrincipalDep, repo: RepoDep, module_id: UUID | None = None
) -> list[CourseOut]:
    return [course_out(c) for c in await course_service.list_courses(repo, module_id)]


@router.get("/accessible", response_model=list[CourseOut])
async def accessible_courses(principal: PrincipalDep, repo: RepoDep) -> list[CourseOut]:
    courses = await course_service.accessible_courses(repo, principal.uid)
    return [course_out(c) for c in courses]


@router.get("/mandatory", response_model=list[CourseOut])
async def mandatory_courses(principal: PrincipalDep, repo: RepoDep) -> list[CourseOut]:
    courses = await course_service.mandatory_courses(repo, principal.role)
    return [course_out(c) for c in courses]


@router.get("/{course_id}/units", response_model=list[UnitOut])
async def list_units(
    course_id: UUID, _principal: PrincipalDep, repo: RepoDep
) -> list[UnitOut]:
    try:
        units = await course_service.list_units(repo, course_id)
    except AcademyError as e:
        raise http_error(e) from None
    return [unit_out(u) for u in units]
