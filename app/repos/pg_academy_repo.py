"""PostgreSQL implementation of AcademyRepo."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.engine import Base
from app.db.tables import (
    AssessmentAttemptRow,
    AssessmentRow,
    BadgeRow,
    BlockCompletionRow,
    CertificateRow,
    CoursePrerequisiteRow,
    CourseRow,
    CourseUnitRow,
    LearningBlockRow,
    ModuleRow,
    NotificationRow,
    QuestionRow,
    RoleMandatoryCourseRow,
    TrainingAreaRow,
    UnitRow,
    UserBadgeRow,
    UserProgressRow,
    UserRow,
)
from app.models.assessment import Assessment, AssessmentAttempt, Question
from app.models.badge import Badge, UserBadge
from app.models.certificate import Certificate, CertificateStatus
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
from app.models.notification import Notification
from app.models.progress import BlockCompletion, UserProgress
from app.models.user import Role, User
from app.repos.academy_repo import DuplicateRecordError


class PgAcademyRepo:
    """Satisfies the AcademyRepo Protocol using PostgreSQL via SQLAlchemy.

    The session belongs to the request (see get_academy_repo); this class
    never commits.  transaction() and every insert that can collide use a
    SAVEPOINT so a failed group rolls back without poisoning the request's
    outer transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        async with self._session.begin_nested():
            yield

    async def _insert(self, row: Base, what: str) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as exc:
            raise DuplicateRecordError(f"{what} already exists") from exc

    # --- users ---

    async def get_user(self, user_id: UUID) -> User | None:
        row = await self._session.get(UserRow, user_id)
        return _row_to_user(row) if row is not None else None

    async def get_user_by_email(self, email: str) -> User | None:
        stmt = select(UserRow).where(func.lower(UserRow.email) == email.strip().lower())
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def add_user(self, user: User) -> None:
        row = UserRow(
            id=user.id,
            email=user.email,
            name=user.name,
            password_hash=user.password_hash,
            role=user.role.value,
            xp_points=user.xp_points,
            is_active=user.is_active,
            created_by=user.created_by,
        )
        await self._insert(row, "email")

    async def list_users(self) -> list[User]:
        rows = (await self._session.execute(select(UserRow))).scalars().all()
        return [_row_to_user(r) for r in rows]

    async def update_user_role(self, user_id: UUID, role: Role) -> User | None:
        stmt = update(UserRow).where(UserRow.id == user_id).values(role=role.value)
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self._refetch_user(user_id)

    async def credit_xp(self, user_id: UUID, amount: int) -> User | None:
        # Single UPDATE so concurrent credits do not lose increments.
        stmt = (
            update(UserRow)
            .where(UserRow.id == user_id)
            .values(xp_points=func.greatest(UserRow.xp_points + amount, 0))
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            return None
        return await self._refetch_user(user_id)

    async def _refetch_user(self, user_id: UUID) -> User | None:
        stmt = (
            select(UserRow)
            .where(UserRow.id == user_id)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_user(row) if row is not None else None

    async def delete_user(self, user_id: UUID) -> bool:
        # Owned rows go with it through ON DELETE CASCADE.
        result = await self._session.execute(delete(UserRow).where(UserRow.id == user_id))
        return result.rowcount > 0

    async def leaderboard(self, limit: int) -> list[User]:
        stmt = (
            select(UserRow)
            .where(UserRow.role == Role.USER.value, UserRow.is_active.is_(True))
            .order_by(UserRow.xp_points.desc())
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows]

    # --- catalog ---

    async def add_training_area(self, area: TrainingArea) -> None:
        await self._insert(
            TrainingAreaRow(id=area.id, name=area.name, description=area.description),
            "training area",
        )

    async def get_training_area(self, area_id: UUID) -> TrainingArea | None:
        row = await self._session.get(TrainingAreaRow, area_id)
        if row is None:
            return None
        return TrainingArea(id=row.id, name=row.name, description=row.description)

    async def list_training_areas(self) -> list[TrainingArea]:
        rows = (await self._session.execute(select(TrainingAreaRow))).scalars().all()
        return [
            TrainingArea(id=r.id, name=r.name, description=r.description) for r in rows
        ]

    async def add_module(self, module: CourseModule) -> None:
        row = ModuleRow(
            id=module.id,
            training_area_id=module.training_area_id,
            name=module.name,
            description=module.description,
        )
        await self._insert(row, "module")

    async def get_module(self, module_id: UUID) -> CourseModule | None:
        row = await self._session.get(ModuleRow, module_id)
        return _row_to_module(row) if row is not None else None

    async def list_modules(
        self, training_area_id: UUID | None = None
    ) -> list[CourseModule]:
        stmt = select(ModuleRow)
        if training_area_id is not None:
            stmt = stmt.where(ModuleRow.training_area_id == training_area_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module(r) for r in rows]

    async def add_course(self, course: Course) -> None:
        row = CourseRow(
            id=course.id,
            training_area_id=course.training_area_id,
            module_id=course.module_id,
            name=course.name,
            description=course.description,
            course_type=course.course_type.value,
            duration=course.duration,
            level=course.level,
        )
        await self._insert(row, "course")

    async def get_course(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def list_courses(self, module_id: UUID | None = None) -> list[Course]:
        stmt = select(CourseRow)
        if module_id is not None:
            stmt = stmt.where(CourseRow.module_id == module_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add_unit(self, unit: Unit) -> None:
        row = UnitRow(
            id=unit.id,
            name=unit.name,
            description=unit.description,
            xp_points=unit.xp_points,
        )
        await self._insert(row, "unit")

    async def get_unit(self, unit_id: UUID) -> Unit | None:
        row = await self._session.get(UnitRow, unit_id)
        return _row_to_unit(row) if row is not None else None

    async def attach_unit(self, link: CourseUnit) -> None:
        row = CourseUnitRow(
            course_id=link.course_id, unit_id=link.unit_id, position=link.position
        )
        await self._insert(row, "course unit")

    async def list_units_for_course(self, course_id: UUID) -> list[Unit]:
        stmt = (
            select(UnitRow)
            .join(CourseUnitRow, CourseUnitRow.unit_id == UnitRow.id)
            .where(CourseUnitRow.course_id == course_id)
            .order_by(CourseUnitRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_unit(r) for r in rows]

    async def list_course_ids_for_unit(self, unit_id: UUID) -> list[UUID]:
        stmt = select(CourseUnitRow.course_id).where(CourseUnitRow.unit_id == unit_id)
        return list((await self._session.execute(stmt)).scalars().all())

    async def add_block(self, block: LearningBlock) -> None:
        row = LearningBlockRow(
            id=block.id,
            unit_id=block.unit_id,
            type=block.type,
            title=block.title,
            content=block.content,
            position=block.position,
            xp_points=block.xp_points,
        )
        await self._insert(row, "learning block")

    async def get_block(self, block_id: UUID) -> LearningBlock | None:
        row = await self._session.get(LearningBlockRow, block_id)
        return _row_to_block(row) if row is not None else None

    async def list_blocks(self, unit_id: UUID) -> list[LearningBlock]:
        stmt = (
            select(LearningBlockRow)
            .where(LearningBlockRow.unit_id == unit_id)
            .order_by(LearningBlockRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_block(r) for r in rows]

    async def add_assessment(self, assessment: Assessment) -> None:
        row = AssessmentRow(
            id=assessment.id,
            title=assessment.title,
            unit_id=assessment.unit_id,
            course_id=assessment.course_id,
            passing_score=assessment.passing_score,
            is_graded=assessment.is_graded,
            max_retakes=assessment.max_retakes,
            xp_points=assessment.xp_points,
            has_certificate=assessment.has_certificate,
        )
        await self._insert(row, "assessment")

    async def get_assessment(self, assessment_id: UUID) -> Assessment | None:
        row = await self._session.get(AssessmentRow, assessment_id)
        return _row_to_assessment(row) if row is not None else None

    async def list_assessments_for_unit(self, unit_id: UUID) -> list[Assessment]:
        stmt = select(AssessmentRow).where(AssessmentRow.unit_id == unit_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_assessment(r) for r in rows]

    async def add_question(self, question: Question) -> None:
        row = QuestionRow(
            id=question.id,
            assessment_id=question.assessment_id,
            text=question.text,
            question_type=question.question_type,
            options=list(question.options),
            correct_answer=question.correct_answer,
            position=question.position,
        )
        await self._insert(row, "question")

    async def list_questions(self, assessment_id: UUID) -> list[Question]:
        stmt = (
            select(QuestionRow)
            .where(QuestionRow.assessment_id == assessment_id)
            .order_by(QuestionRow.position)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Question(
                id=r.id,
                assessment_id=r.assessment_id,
                text=r.text,
                position=r.position,
                question_type=r.question_type,
                options=tuple(r.options or ()),
                correct_answer=r.correct_answer,
            )
            for r in rows
        ]

    async def add_prerequisite(self, link: CoursePrerequisite) -> None:
        row = CoursePrerequisiteRow(
            course_id=link.course_id,
            prerequisite_course_id=link.prerequisite_course_id,
        )
        await self._insert(row, "prerequisite")

    async def list_prerequisite_ids(self, course_id: UUID) -> list[UUID]:
        stmt = select(CoursePrerequisiteRow.prerequisite_course_id).where(
            CoursePrerequisiteRow.course_id == course_id
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def add_mandatory_course(self, link: RoleMandatoryCourse) -> None:
        row = RoleMandatoryCourseRow(role=link.role.value, course_id=link.course_id)
        await self._insert(row, "mandatory course")

    async def list_mandatory_course_ids(self, role: Role) -> list[UUID]:
        stmt = select(RoleMandatoryCourseRow.course_id).where(
            RoleMandatoryCourseRow.role == role.value
        )
        return list((await self._session.execute(stmt)).scalars().all())

    # --- learner activity ---

    async def get_block_completion(
        self, user_id: UUID, block_id: UUID
    ) -> BlockCompletion | None:
        stmt = select(BlockCompletionRow).where(
            BlockCompletionRow.user_id == user_id,
            BlockCompletionRow.block_id == block_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_block_completion(row) if row is not None else None

    async def add_block_completion(self, completion: BlockCompletion) -> None:
        row = BlockCompletionRow(
            id=completion.id,
            user_id=completion.user_id,
            block_id=completion.block_id,
            completed=completion.completed,
            completed_at=completion.completed_at,
        )
        await self._insert(row, "block completion")

    async def list_block_completions(self, user_id: UUID) -> list[BlockCompletion]:
        stmt = select(BlockCompletionRow).where(BlockCompletionRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_block_completion(r) for r in rows]

    async def add_attempt(self, attempt: AssessmentAttempt) -> None:
        row = AssessmentAttemptRow(
            id=attempt.id,
            user_id=attempt.user_id,
            assessment_id=attempt.assessment_id,
            score=attempt.score,
            passed=attempt.passed,
            answers=dict(attempt.answers),
            started_at=attempt.started_at,
            completed_at=attempt.completed_at,
        )
        await self._insert(row, "assessment attempt")

    async def list_attempts(
        self, user_id: UUID, assessment_id: UUID | None = None
    ) -> list[AssessmentAttempt]:
        stmt = select(AssessmentAttemptRow).where(
            AssessmentAttemptRow.user_id == user_id
        )
        if assessment_id is not None:
            stmt = stmt.where(AssessmentAttemptRow.assessment_id == assessment_id)
        stmt = stmt.order_by(AssessmentAttemptRow.completed_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            AssessmentAttempt(
                id=r.id,
                user_id=r.user_id,
                assessment_id=r.assessment_id,
                score=r.score,
                passed=r.passed,
                started_at=r.started_at,
                completed_at=r.completed_at,
                answers=dict(r.answers or {}),
            )
            for r in rows
        ]

    async def get_progress(self, user_id: UUID, course_id: UUID) -> UserProgress | None:
        stmt = (
            select(UserProgressRow)
            .where(
                UserProgressRow.user_id == user_id,
                UserProgressRow.course_id == course_id,
            )
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_progress(row) if row is not None else None

    async def list_progress(self, user_id: UUID) -> list[UserProgress]:
        stmt = (
            select(UserProgressRow)
            .where(UserProgressRow.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def upsert_progress(self, progress: UserProgress) -> None:
        values = {
            "percent_complete": progress.percent_complete,
            "completed": progress.completed,
            "last_accessed": progress.last_accessed,
        }
        stmt = (
            pg_insert(UserProgressRow)
            .values(user_id=progress.user_id, course_id=progress.course_id, **values)
            .on_conflict_do_update(
                index_elements=[UserProgressRow.user_id, UserProgressRow.course_id],
                set_=values,
            )
        )
        await self._session.execute(stmt)

    # --- badges, certificates, notifications ---

    async def add_badge(self, badge: Badge) -> None:
        row = BadgeRow(
            id=badge.id,
            name=badge.name,
            description=badge.description,
            type=badge.type,
            xp_points=badge.xp_points,
            image_url=badge.image_url,
        )
        await self._insert(row, "badge")

    async def get_badge(self, badge_id: UUID) -> Badge | None:
        row = await self._session.get(BadgeRow, badge_id)
        return _row_to_badge(row) if row is not None else None

    async def list_badges(self) -> list[Badge]:
        rows = (await self._session.execute(select(BadgeRow))).scalars().all()
        return [_row_to_badge(r) for r in rows]

    async def add_user_badge(self, user_badge: UserBadge) -> None:
        row = UserBadgeRow(
            id=user_badge.id,
            user_id=user_badge.user_id,
            badge_id=user_badge.badge_id,
            earned_at=user_badge.earned_at,
        )
        await self._insert(row, "user badge")

    async def list_user_badges(self, user_id: UUID) -> list[UserBadge]:
        stmt = select(UserBadgeRow).where(UserBadgeRow.user_id == user_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            UserBadge(
                id=r.id, user_id=r.user_id, badge_id=r.badge_id, earned_at=r.earned_at
            )
            for r in rows
        ]

    async def add_certificate(self, certificate: Certificate) -> None:
        row = CertificateRow(
            id=certificate.id,
            user_id=certificate.user_id,
            course_id=certificate.course_id,
            certificate_number=certificate.certificate_number,
            issued_at=certificate.issued_at,
            expires_at=certificate.expires_at,
            status=certificate.status.value,
        )
        await self._insert(row, "certificate")

    async def get_certificate(self, certificate_id: UUID) -> Certificate | None:
        row = await self._session.get(CertificateRow, certificate_id)
        return _row_to_certificate(row) if row is not None else None

    async def get_certificate_for(
        self, user_id: UUID, course_id: UUID
    ) -> Certificate | None:
        stmt = select(CertificateRow).where(
            CertificateRow.user_id == user_id, CertificateRow.course_id == course_id
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_certificate(row) if row is not None else None

    async def list_certificates(self, user_id: UUID) -> list[Certificate]:
        stmt = (
            select(CertificateRow)
            .where(CertificateRow.user_id == user_id)
            .order_by(CertificateRow.issued_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_certificate(r) for r in rows]

    async def add_notification(self, notification: Notification) -> None:
        row = NotificationRow(
            id=notification.id,
            user_id=notification.user_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            metadata_=dict(notification.metadata),
            read=notification.read,
            created_at=notification.created_at,
        )
        await self._insert(row, "notification")

    async def get_notification(self, notification_id: UUID) -> Notification | None:
        row = await self._session.get(NotificationRow, notification_id)
        return _row_to_notification(row) if row is not None else None

    async def list_notifications(self, user_id: UUID, limit: int) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.user_id == user_id)
            .order_by(NotificationRow.created_at.desc())
            .limit(limit)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_notification(r) for r in rows]

    async def count_unread_notifications(self, user_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(NotificationRow)
            .where(NotificationRow.user_id == user_id, NotificationRow.read.is_(False))
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def mark_notification_read(
        self, notification_id: UUID
    ) -> Notification | None:
        row = await self._session.get(NotificationRow, notification_id)
        if row is None:
            return None
        row.read = True
        await self._session.flush()
        return _row_to_notification(row)

    async def mark_all_notifications_read(self, user_id: UUID) -> int:
        stmt = (
            update(NotificationRow)
            .where(NotificationRow.user_id == user_id, NotificationRow.read.is_(False))
            .values(read=True)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete_notification(self, notification_id: UUID) -> bool:
        stmt = delete(NotificationRow).where(NotificationRow.id == notification_id)
        result = await self._session.execute(stmt)
        return result.rowcount > 0


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name or "",
        password_hash=row.password_hash,
        role=Role(row.role),
        xp_points=row.xp_points,
        is_active=row.is_active,
        created_by=row.created_by,
    )


def _row_to_module(row: ModuleRow) -> CourseModule:
    return CourseModule(
        id=row.id,
        training_area_id=row.training_area_id,
        name=row.name,
        description=row.description,
    )


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        training_area_id=row.training_area_id,
        module_id=row.module_id,
        name=row.name,
        description=row.description,
        course_type=CourseType(row.course_type),
        duration=row.duration,
        level=row.level,
    )


def _row_to_unit(row: UnitRow) -> Unit:
    return Unit(
        id=row.id, name=row.name, description=row.description, xp_points=row.xp_points
    )


def _row_to_block(row: LearningBlockRow) -> LearningBlock:
    return LearningBlock(
        id=row.id,
        unit_id=row.unit_id,
        type=row.type,
        title=row.title,
        position=row.position,
        content=row.content,
        xp_points=row.xp_points,
    )


def _row_to_assessment(row: AssessmentRow) -> Assessment:
    return Assessment(
        id=row.id,
        title=row.title,
        unit_id=row.unit_id,
        course_id=row.course_id,
        passing_score=row.passing_score,
        is_graded=row.is_graded,
        max_retakes=row.max_retakes,
        xp_points=row.xp_points,
        has_certificate=row.has_certificate,
    )


def _row_to_block_completion(row: BlockCompletionRow) -> BlockCompletion:
    return BlockCompletion(
        id=row.id,
        user_id=row.user_id,
        block_id=row.block_id,
        completed=row.completed,
        completed_at=row.completed_at,
    )


def _row_to_progress(row: UserProgressRow) -> UserProgress:
    return UserProgress(
        user_id=row.user_id,
        course_id=row.course_id,
        percent_complete=row.percent_complete,
        completed=row.completed,
        last_accessed=row.last_accessed,
    )


def _row_to_badge(row: BadgeRow) -> Badge:
    return Badge(
        id=row.id,
        name=row.name,
        type=row.type,
        description=row.description,
        xp_points=row.xp_points,
        image_url=row.image_url,
    )


def _row_to_certificate(row: CertificateRow) -> Certificate:
    return Certificate(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        certificate_number=row.certificate_number,
        issued_at=row.issued_at,
        expires_at=row.expires_at,
        status=CertificateStatus(row.status),
    )


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        type=row.type,
        title=row.title,
        message=row.message,
        created_at=row.created_at,
        read=row.read,
        metadata=dict(row.metadata_ or {}),
    )
