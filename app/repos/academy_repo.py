"""Entity store for the academy.

One async Protocol covers every table the learning services touch.  Two
implementations satisfy it:

  InMemoryAcademyRepo  dicts of frozen dataclasses; used when no
                       DATABASE_URL is configured and in tests
  PgAcademyRepo        PostgreSQL via async SQLAlchemy
                       (app/repos/pg_academy_repo.py)

Writes that would break a uniqueness rule raise DuplicateRecordError in
both implementations.  ``transaction()`` groups several writes so they
land together or not at all; the badge award (user badge + XP credit +
notification) relies on it.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import replace
from typing import Protocol
from uuid import UUID

from app.models.assessment import Assessment, AssessmentAttempt, Question
from app.models.badge import Badge, UserBadge
from app.models.certificate import Certificate
from app.models.course import (
    Course,
    CourseModule,
    CoursePrerequisite,
    CourseUnit,
    LearningBlock,
    RoleMandatoryCourse,
    TrainingArea,
    Unit,
)
from app.models.notification import Notification
from app.models.progress import BlockCompletion, UserProgress
from app.models.user import Role, User


class DuplicateRecordError(Exception):
    """A write would violate a uniqueness constraint."""


class AcademyRepo(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[None]: ...

    # users
    async def get_user(self, user_id: UUID) -> User | None: ...
    async def get_user_by_email(self, email: str) -> User | None: ...
    async def add_user(self, user: User) -> None: ...
    async def list_users(self) -> list[User]: ...
    async def update_user_role(self, user_id: UUID, role: Role) -> User | None: ...
    async def credit_xp(self, user_id: UUID, amount: int) -> User | None: ...
    async def delete_user(self, user_id: UUID) -> bool: ...
    async def leaderboard(self, limit: int) -> list[User]: ...

    # catalog
    async def add_training_area(self, area: TrainingArea) -> None: ...
    async def get_training_area(self, area_id: UUID) -> TrainingArea | None: ...
    async def list_training_areas(self) -> list[TrainingArea]: ...
    async def add_module(self, module: CourseModule) -> None: ...
    async def get_module(self, module_id: UUID) -> CourseModule | None: ...
    async def list_modules(
        self, training_area_id: UUID | None = None
    ) -> list[CourseModule]: ...
    async def add_course(self, course: Course) -> None: ...
    async def get_course(self, course_id: UUID) -> Course | None: ...
    async def list_courses(self, module_id: UUID | None = None) -> list[Course]: ...
    async def add_unit(self, unit: Unit) -> None: ...
    async def get_unit(self, unit_id: UUID) -> Unit | None: ...
    async def attach_unit(self, link: CourseUnit) -> None: ...
    async def list_units_for_course(self, course_id: UUID) -> list[Unit]: ...
    async def list_course_ids_for_unit(self, unit_id: UUID) -> list[UUID]: ...
    async def add_block(self, block: LearningBlock) -> None: ...
    async def get_block(self, block_id: UUID) -> LearningBlock | None: ...
    async def list_blocks(self, unit_id: UUID) -> list[LearningBlock]: ...
    async def add_assessment(self, assessment: Assessment) -> None: ...
    async def get_assessment(self, assessment_id: UUID) -> Assessment | None: ...
    async def list_assessments_for_unit(self, unit_id: UUID) -> list[Assessment]: ...
    async def add_question(self, question: Question) -> None: ...
    async def list_questions(self, assessment_id: UUID) -> list[Question]: ...
    async def add_prerequisite(self, link: CoursePrerequisite) -> None: ...
    async def list_prerequisite_ids(self, course_id: UUID) -> list[UUID]: ...
    async def add_mandatory_course(self, link: RoleMandatoryCourse) -> None: ...
    async def list_mandatory_course_ids(self, role: Role) -> list[UUID]: ...

    # learner activity
    async def get_block_completion(
        self, user_id: UUID, block_id: UUID
    ) -> BlockCompletion | None: ...
    async def add_block_completion(self, completion: BlockCompletion) -> None: ...
    async def list_block_completions(self, user_id: UUID) -> list[BlockCompletion]: ...
    async def add_attempt(self, attempt: AssessmentAttempt) -> None: ...
    async def list_attempts(
        self, user_id: UUID, assessment_id: UUID | None = None
    ) -> list[AssessmentAttempt]: ...
    async def get_progress(
        self, user_id: UUID, course_id: UUID
    ) -> UserProgress | None: ...
    async def list_progress(self, user_id: UUID) -> list[UserProgress]: ...
    async def upsert_progress(self, progress: UserProgress) -> None: ...

    # badges, certificates, notifications
    async def add_badge(self, badge: Badge) -> None: ...
    async def get_badge(self, badge_id: UUID) -> Badge | None: ...
    async def list_badges(self) -> list[Badge]: ...
    async def add_user_badge(self, user_badge: UserBadge) -> None: ...
    async def list_user_badges(self, user_id: UUID) -> list[UserBadge]: ...
    async def add_certificate(self, certificate: Certificate) -> None: ...
    async def get_certificate(self, certificate_id: UUID) -> Certificate | None: ...
    async def get_certificate_for(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None: ...
    async def list_certificates(self, user_id: UUID) -> list[Certificate]: ...
    async def add_notification(self, notification: Notification) -> None: ...
    async def get_notification(
        self, notification_id: UUID
    ) -> Notification | None: ...
    async def list_notifications(
        self, user_id: UUID, limit: int
    ) -> list[Notification]: ...
    async def count_unread_notifications(self, user_id: UUID) -> int: ...
    async def mark_notification_read(
        self, notification_id: UUID
    ) -> Notification | None: ...
    async def mark_all_notifications_read(self, user_id: UUID) -> int: ...
    async def delete_notification(self, notification_id: UUID) -> bool: ...


# Every dict that holds rows; snapshotted by transaction().
_TABLES = (
    "_users",
    "_areas",
    "_modules",
    "_courses",
    "_units",
    "_course_units",
    "_blocks",
    "_assessments",
    "_questions",
    "_prerequisites",
    "_mandatory",
    "_block_completions",
    "_attempts",
    "_progress",
    "_badges",
    "_user_badges",
    "_certificates",
    "_notifications",
)


class InMemoryAcademyRepo:
    """Dict-backed store.  Rows are frozen dataclasses, so a shallow copy
    of each dict is a complete snapshot for rollback."""

    def __init__(self) -> None:
        self._users: dict[UUID, User] = {}
        self._areas: dict[UUID, TrainingArea] = {}
        self._modules: dict[UUID, CourseModule] = {}
        self._courses: dict[UUID, Course] = {}
        self._units: dict[UUID, Unit] = {}
        self._course_units: dict[tuple[UUID, UUID], CourseUnit] = {}
        self._blocks: dict[UUID, LearningBlock] = {}
        self._assessments: dict[UUID, Assessment] = {}
        self._questions: dict[UUID, Question] = {}
        self._prerequisites: dict[tuple[UUID, UUID], CoursePrerequisite] = {}
        self._mandatory: dict[tuple[Role, UUID], RoleMandatoryCourse] = {}
        self._block_completions: dict[tuple[UUID, UUID], BlockCompletion] = {}
        self._attempts: dict[UUID, AssessmentAttempt] = {}
        self._progress: dict[tuple[UUID, UUID], UserProgress] = {}
        self._badges: dict[UUID, Badge] = {}
        self._user_badges: dict[tuple[UUID, UUID], UserBadge] = {}
        self._certificates: dict[UUID, Certificate] = {}
        self._notifications: dict[UUID, Notification] = {}

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        snapshot = {name: dict(getattr(self, name)) for name in _TABLES}
        try:
            yield
        except BaseException:
            for name, rows in snapshot.items():
                setattr(self, name, rows)
            raise

    # --- users ---

    async def get_user(self, user_id: UUID) -> User | None:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        needle = email.strip().lower()
        for user in self._users.values():
            if user.email.lower() == needle:
                return user
        return None

    async def add_user(self, user: User) -> None:
        if user.id in self._users or await self.get_user_by_email(user.email):
            raise DuplicateRecordError("email already exists")
        self._users[user.id] = user

    async def list_users(self) -> list[User]:
        return list(self._users.values())

    async def update_user_role(self, user_id: UUID, role: Role) -> User | None:
        u = self._users.get(user_id)
        if u is None:
            return None
        updated = replace(u, role=role)
        self._users[user_id] = updated
        return updated

    async def credit_xp(self, user_id: UUID, amount: int) -> User | None:
        u = self._users.get(user_id)
        if u is None:
            return None
        updated = replace(u, xp_points=max(0, u.xp_points + amount))
        self._users[user_id] = updated
        return updated

    async def delete_user(self, user_id: UUID) -> bool:
        if self._users.pop(user_id, None) is None:
            return False

        def owned(rows: dict, key_of) -> None:
            for k in [k for k, v in rows.items() if key_of(k, v) == user_id]:
                del rows[k]

        owned(self._block_completions, lambda k, v: v.user_id)
        owned(self._attempts, lambda k, v: v.user_id)
        owned(self._progress, lambda k, v: v.user_id)
        owned(self._user_badges, lambda k, v: v.user_id)
        owned(self._certificates, lambda k, v: v.user_id)
        owned(self._notifications, lambda k, v: v.user_id)
        for uid, other in list(self._users.items()):
            if other.created_by == user_id:
                self._users[uid] = replace(other, created_by=None)
        return True

    async def leaderboard(self, limit: int) -> list[User]:
        learners = [
            u for u in self._users.values() if u.role is Role.USER and u.is_active
        ]
        learners.sort(key=lambda u: u.xp_points, reverse=True)
        return learners[:limit]

    # --- catalog ---

    async def add_training_area(self, area: TrainingArea) -> None:
        self._areas[area.id] = area

    async def get_training_area(self, area_id: UUID) -> TrainingArea | None:
        return self._areas.get(area_id)

    async def list_training_areas(self) -> list[TrainingArea]:
        return list(self._areas.values())

    async def add_module(self, module: CourseModule) -> None:
        self._modules[module.id] = module

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        return self._modules.get(module_id)

    async def list_modules(
        self, training_area_id: UUID | None = None
    ) -> list[CourseModule]:
        return [
            m
            for m in self._modules.values()
            if training_area_id is None or m.training_area_id == training_area_id
        ]

    async def add_course(self, course: Course) -> None:
        self._courses[course.id] = course

    async def get_course(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def list_courses(self, module_id: UUID | None = None) -> list[Course]:
        return [
            c
            for c in self._courses.values()
            if module_id is None or c.module_id == module_id
        ]

    async def add_unit(self, unit: Unit) -> None:
        self._units[unit.id] = unit

    async def get_unit(self, unit_id: UUID) -> Unit | None:
        return self._units.get(unit_id)

    async def attach_unit(self, link: CourseUnit) -> None:
        key = (link.course_id, link.unit_id)
        if key in self._course_units:
            raise DuplicateRecordError("unit already attached to course")
        self._course_units[key] = link

    async def list_units_for_course(self, course_id: UUID) -> list[Unit]:
        links = sorted(
            (cu for cu in self._course_units.values() if cu.course_id == course_id),
            key=lambda cu: cu.position,
        )
        return [self._units[cu.unit_id] for cu in links if cu.unit_id in self._units]

    async def list_course_ids_for_unit(self, unit_id: UUID) -> list[UUID]:
        return [cu.course_id for cu in self._course_units.values() if cu.unit_id == unit_id]

    async def add_block(self, block: LearningBlock) -> None:
        self._blocks[block.id] = block

    async def get_block(self, block_id: UUID) -> LearningBlock | None:
        return self._blocks.get(block_id)

    async def list_blocks(self, unit_id: UUID) -> list[LearningBlock]:
        return sorted(
            (b for b in self._blocks.values() if b.unit_id == unit_id),
            key=lambda b: b.position,
        )

    async def add_assessment(self, assessment: Assessment) -> None:
        self._assessments[assessment.id] = assessment

    async def get_assessment(self, assessment_id: UUID) -> Assessment | None:
        return self._assessments.get(assessment_id)

    async def list_assessments_for_unit(self, unit_id: UUID) -> list[Assessment]:
        return [a for a in self._assessments.values() if a.unit_id == unit_id]

    async def add_question(self, question: Question) -> None:
        self._questions[question.id] = question

    async def list_questions(self, assessment_id: UUID) -> list[Question]:
        return sorted(
            (q for q in self._questions.values() if q.assessment_id == assessment_id),
            key=lambda q: q.position,
        )

    async def add_prerequisite(self, link: CoursePrerequisite) -> None:
        key = (link.course_id, link.prerequisite_course_id)
        if key in self._prerequisites:
            raise DuplicateRecordError("prerequisite already exists")
        self._prerequisites[key] = link

    async def list_prerequisite_ids(self, course_id: UUID) -> list[UUID]:
        return [
            p.prerequisite_course_id
            for p in self._prerequisites.values()
            if p.course_id == course_id
        ]

    async def add_mandatory_course(self, link: RoleMandatoryCourse) -> None:
        key = (link.role, link.course_id)
        if key in self._mandatory:
            raise DuplicateRecordError("course already mandatory for role")
        self._mandatory[key] = link

    async def list_mandatory_course_ids(self, role: Role) -> list[UUID]:
        return [m.course_id for m in self._mandatory.values() if m.role is role]

    # --- learner activity ---

    async def get_block_completion(
        self, user_id: UUID, block_id: UUID
    ) -> BlockCompletion | None:
        return self._block_completions.get((user_id, block_id))

    async def add_block_completion(self, completion: BlockCompletion) -> None:
        key = (completion.user_id, completion.block_id)
        if key in self._block_completions:
            raise DuplicateRecordError("block already completed")
        self._block_completions[key] = completion

    async def list_block_completions(self, user_id: UUID) -> list[BlockCompletion]:
        return [c for c in self._block_completions.values() if c.user_id == user_id]

    async def add_attempt(self, attempt: AssessmentAttempt) -> None:
        self._attempts[attempt.id] = attempt

    async def list_attempts(
        self, user_id: UUID, assessment_id: UUID | None = None
    ) -> list[AssessmentAttempt]:
        return [
            a
            for a in self._attempts.values()
            if a.user_id == user_id
            and (assessment_id is None or a.assessment_id == assessment_id)
        ]

    async def get_progress(self, user_id: UUID, course_id: UUID) -> UserProgress | None:
        return self._progress.get((user_id, course_id))

    async def list_progress(self, user_id: UUID) -> list[UserProgress]:
        return [p for p in self._progress.values() if p.user_id == user_id]

    async def upsert_progress(self, progress: UserProgress) -> None:
        self._progress[(progress.user_id, progress.course_id)] = progress

    # --- badges, certificates, notifications ---

    async def add_badge(self, badge: Badge) -> None:
        self._badges[badge.id] = badge

    async def get_badge(self, badge_id: UUID) -> Badge | None:
        return self._badges.get(badge_id)

    async def list_badges(self) -> list[Badge]:
        return list(self._badges.values())

    async def add_user_badge(self, user_badge: UserBadge) -> None:
        key = (user_badge.user_id, user_badge.badge_id)
        if key in self._user_badges:
            raise DuplicateRecordError("badge already awarded")
        self._user_badges[key] = user_badge

    async def list_user_badges(self, user_id: UUID) -> list[UserBadge]:
        return [ub for ub in self._user_badges.values() if ub.user_id == user_id]

    async def add_certificate(self, certificate: Certificate) -> None:
        for existing in self._certificates.values():
            if (existing.user_id, existing.course_id) == (
                certificate.user_id,
                certificate.course_id,
            ):
                raise DuplicateRecordError("certificate already issued")
            if existing.certificate_number == certificate.certificate_number:
                raise DuplicateRecordError("certificate number already used")
        self._certificates[certificate.id] = certificate

    async def get_certificate(self, certificate_id: UUID) -> Certificate | None:
        return self._certificates.get(certificate_id)

    async def get_certificate_for(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        for c in self._certificates.values():
            if c.user_id == user_id and c.course_id == course_id:
                return c
        return None

    async def list_certificates(self, user_id: UUID) -> list[Certificate]:
        return [c for c in self._certificates.values() if c.user_id == user_id]

    async def add_notification(self, notification: Notification) -> None:
        self._notifications[notification.id] = notification

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        return self._notifications.get(notification_id)

    async def list_notifications(self, user_id: UUID, limit: int) -> list[Notification]:
        # Newest first; among equal timestamps the later insert wins.
        mine = [n for n in reversed(self._notifications.values()) if n.user_id == user_id]
        mine.sort(key=lambda n: n.created_at, reverse=True)
        return mine[:limit]

    async def count_unread_notifications(self, user_id: UUID) -> int:
        return sum(
            1 for n in self._notifications.values() if n.user_id == user_id and not n.read
        )

    async def mark_notification_read(self, notification_id: UUID) -> Notification | None:
        n = self._notifications.get(notification_id)
        if n is None:
            return None
        updated = replace(n, read=True)
        self._notifications[notification_id] = updated
        return updated

    async def mark_all_notifications_read(self, user_id: UUID) -> int:
        changed = 0
        for nid, n in list(self._notifications.items()):
            if n.user_id == user_id and not n.read:
                self._notifications[nid] = replace(n, read=True)
                changed += 1
        return changed

    async def delete_notification(self, notification_id: UUID) -> bool:
        return self._notifications.pop(notification_id, None) is not None
