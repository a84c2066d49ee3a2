"""Course progress endpoints.

  GET  /v1/progress                      caller's UserProgress rows
                                         (read-through cached)
  POST /v1/progress                      client-supplied upsert
  POST /v1/progress/{course_id}/refresh  recompute from completions

POST /v1/progress trusts the client's percentage (clamped to 0..100,
forced to 100 when completed=true).  The refresh endpoint is the
authoritative path: it walks the course's units and overwrites the row.
Both invalidate the cached list.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel

from app.api.dependencies import InvalidationsDep, PrincipalDep, RepoDep, http_error
from app.models.progress import CourseCompletion, UserProgress
from app.services import cache, learning_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class ProgressOut(BaseModel):
    course_id: UUID
    percent_complete: int
    completed: bool
    last_accessed: int | None


class ProgressIn(BaseModel):
    course_id: UUID
    percent_complete: int | None = None
    completed: bool | None = None


class UnitCompletionOut(BaseModel):
    unit_id: UUID
    status: str
    blocks: str
    assessments: str


class CourseCompletionOut(BaseModel):
    course_id: UUID
    percent_complete: int
    completed: bool
    units: list[UnitCompletionOut]


def progress_out(p: UserProgress) -> ProgressOut:
    return ProgressOut(
        course_id=p.course_id,
        percent_complete=p.percent_complete,
        completed=p.completed,
        last_accessed=p.last_accessed,
    )


def _completion_out(c: CourseCompletion) -> CourseCompletionOut:
    return CourseCompletionOut(
        course_id=c.course_id,
        percent_complete=c.percent_complete,
        completed=c.completed,
        units=[
            UnitCompletionOut(
                unit_id=u.unit_id,
                status=u.status.value,
                blocks=u.blocks.value,
                assessments=u.assessments.value,
            )
            for u in c.units
        ],
    )


@router.get("", response_model=list[ProgressOut])
async def get_progress(principal: PrincipalDep, repo: RepoDep) -> list[ProgressOut]:
    key = cache.progress_key(principal.user_id)
    cached = await cache.get_json(key)
    if cached is not None:
        return [ProgressOut(**row) for row in cached]

    rows = [progress_out(p) for p in await learning_service.list_progress(repo, principal.uid)]
    await cache.set_json(
        key, [r.model_dump(mode="json") for r in rows], cache.PROGRESS_TTL_SECONDS
    )
    return rows


@router.post("", response_model=ProgressOut)
async def post_progress(
    payload: ProgressIn,
    principal: PrincipalDep,
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> ProgressOut:
    try:
        progress = await learning_service.record_progress(
            repo,
            principal.uid,
            payload.course_id,
            percent_complete=payload.percent_complete,
            completed=payload.completed,
        )
    except AcademyError as e:
        raise http_error(e) from None
    invalidations.add(principal.user_id)
    return progress_out(progress)


@router.post("/{course_id}/refresh", response_model=CourseCompletionOut)
async def refresh_progress(
    course_id: UUID,
    principal: PrincipalDep,
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> CourseCompletionOut:
    try:
        result = await learning_service.refresh_progress(repo, principal.uid, course_id)
    except AcademyError as e:
        raise http_error(e) from None
    invalidations.add(principal.user_id)
    return _completion_out(result)
