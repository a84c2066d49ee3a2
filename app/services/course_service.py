"""Learner-facing course queries: catalog, accessible and mandatory courses.

Access rule:
  free courses        always accessible
  sequential courses  accessible once every prerequisite course is
                      completed (no prerequisites → accessible)
"""

from __future__ import annotations

from uuid import UUID

from app.models.course import Course, CourseType, Unit
from app.models.user import Role
from app.repos.academy_repo import AcademyRepo
from app.services.errors import NotFoundError


async def list_courses(repo: AcademyRepo, module_id: UUID | None = None) -> list[Course]:
    return await repo.list_courses(module_id)


async def list_units(repo: AcademyRepo, course_id: UUID) -> list[Unit]:
    if await repo.get_course(course_id) is None:
        raise NotFoundError(f"course {course_id} not found")
    return await repo.list_units_for_course(course_id)


async def is_accessible(
    repo: AcademyRepo, course: Course, completed_ids: set[UUID]
) -> bool:
    if course.course_type is CourseType.FREE:
        return True
    prerequisites = await repo.list_prerequisite_ids(course.id)
    return all(p in completed_ids for p in prerequisites)


async def accessible_courses(repo: AcademyRepo, user_id: UUID) -> list[Course]:
    completed_ids = {p.course_id for p in await repo.list_progress(user_id) if p.completed}
    return [
        course
        for course in await repo.list_courses()
        if await is_accessible(repo, course, completed_ids)
    ]


async def mandatory_courses(repo: AcademyRepo, role: Role) -> list[Course]:
    courses: list[Course] = []
    for course_id in await repo.list_mandatory_course_ids(role):
        course = await repo.get_course(course_id)
        if course is not None:
            courses.append(course)
    return courses
