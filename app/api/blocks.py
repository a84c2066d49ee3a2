from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.api.dependencies import InvalidationsDep, PrincipalDep, RepoDep, http_error
from app.models.progress import BlockCompletion
from app.services import learning_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/blocks", tags=["blocks"])


class BlockCompletionOut(BaseModel):
    id: UUID
    block_id: UUID
    completed: bool
    completed_at: int


def _out(c: BlockCompletion) -> BlockCompletionOut:
    return BlockCompletionOut(
        id=c.id, block_id=c.block_id, completed=c.completed, completed_at=c.completed_at
    )


@router.post(
    "/{block_id}/complete",
    response_model=BlockCompletionOut,
    status_code=status.HTTP_201_CREATED,
)
async def complete_block(
    block_id: UUID,
    response: Response,
    principal: PrincipalDep,
    repo: RepoDep,
    invalidations: InvalidationsDep,
) -> BlockCompletionOut:
    """Idempotent: 201 the first time, 200 with the same record afterwards."""
    try:
        completion, created = await learning_service.complete_block(
            repo, principal.uid, block_id
        )
    except AcademyError as e:
        raise http_error(e) from None

    if created:
        invalidations.add(principal.user_id)
    else:
        response.status_code = status.HTTP_200_OK
    return _out(completion)


@router.get("/completions", response_model=list[BlockCompletionOut])
async def list_completions(
    principal: PrincipalDep, repo: RepoDep
) -> list[BlockCompletionOut]:
    completions = await learning_service.list_block_completions(repo, principal.uid)
    return [_out(c) for c in completions]
