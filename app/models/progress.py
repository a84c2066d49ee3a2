from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class BlockCompletion:
    """Fact row: one per (user, block)."""

    id: UUID
    user_id: UUID
    block_id: UUID
    completed: bool
    completed_at: int

    @staticmethod
    def new(*, user_id: UUID, block_id: UUID, completed_at: int) -> BlockCompletion:
        return BlockCompletion(
            id=uuid4(),
            user_id=user_id,
            block_id=block_id,
            completed=True,
            completed_at=completed_at,
        )


@dataclass(frozen=True, slots=True)
class UserProgress:
    """Per (user, course) summary written by the completion evaluator.

    completed implies percent_complete == 100.
    """

    user_id: UUID
    course_id: UUID
    percent_complete: int = 0
    completed: bool = False
    last_accessed: int | None = None


class UnitStatus(StrEnum):
    """Completion state of a unit, or of one side (blocks/assessments) of it.

    NO_REQUIREMENT is distinct from COMPLETE so that informational units
    (nothing to do) are visible in the breakdown; both count as done.
    """

    NO_REQUIREMENT = "no_requirement"
    PENDING = "pending"
    COMPLETE = "complete"

    @property
    def is_done(self) -> bool:
        return self is not UnitStatus.PENDING


@dataclass(frozen=True, slots=True)
class UnitCompletion:
    unit_id: UUID
    blocks: UnitStatus
    assessments: UnitStatus

    @property
    def status(self) -> UnitStatus:
        if (
            self.blocks is UnitStatus.NO_REQUIREMENT
            and self.assessments is UnitStatus.NO_REQUIREMENT
        ):
            return UnitStatus.NO_REQUIREMENT
        if self.blocks.is_done and self.assessments.is_done:
            return UnitStatus.COMPLETE
        return UnitStatus.PENDING


@dataclass(frozen=True, slots=True)
class CourseCompletion:
    course_id: UUID
    percent_complete: int
    completed: bool
    units: tuple[UnitCompletion, ...] = ()
