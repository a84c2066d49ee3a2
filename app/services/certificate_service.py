"""Certificate issuance.

One certificate per (user, course), issued only once the learner's
UserProgress for the course is completed.  Re-requesting returns the
existing certificate untouched.

Numbers look like CERT-1760000000-9F2C41AB: the issue timestamp plus
32 random bits, backed by a unique index.  Two concurrent requests for
the same course race on the (user_id, course_id) constraint; the loser
reads back the winner's row.
"""

from __future__ import annotations

import datetime
import logging
import secrets
from uuid import UUID

from app.core.config import SETTINGS
from app.core.metrics import CERTIFICATES_ISSUED
from app.models.certificate import Certificate
from app.repos.academy_repo import AcademyRepo, DuplicateRecordError
from app.services import notification_service
from app.services.errors import NotEligibleError, NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86_400


def _now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def new_certificate_number(issued_at: int) -> str:
    return f"CERT-{issued_at}-{secrets.token_hex(4).upper()}"


async def generate_certificate(
    repo: AcademyRepo, user_id: UUID, course_id: UUID
) -> tuple[Certificate, bool]:
    """Return (certificate, created)."""
    course = await repo.get_course(course_id)
    if course is None:
        raise NotFoundError(f"course {course_id} not found")

    existing = await repo.get_certificate_for(user_id, course_id)
    if existing is not None:
        return existing, False

    progress = await repo.get_progress(user_id, course_id)
    if progress is None or not progress.completed:
        logger.warning(
            "Certificate refused, course not completed user=%s course=%s",
            user_id,
            course_id,
        )
        raise NotEligibleError("course not completed")

    issued_at = _now()
    certificate = Certificate.new(
        user_id=user_id,
        course_id=course_id,
        certificate_number=new_certificate_number(issued_at),
        issued_at=issued_at,
        expires_at=issued_at + SETTINGS.certificate_valid_days * _SECONDS_PER_DAY,
    )
    try:
        await repo.add_certificate(certificate)
    except DuplicateRecordError:
        winner = await repo.get_certificate_for(user_id, course_id)
        if winner is None:
            # Number collision, not a race on the course; surface it.
            raise
        return winner, False

    CERTIFICATES_ISSUED.inc()
    logger.info(
        "Certificate issued user=%s course=%s number=%s",
        user_id,
        course_id,
        certificate.certificate_number,
    )
    await notification_service.emit(
        repo,
        user_id,
        "certificate_earned",
        "Certificate Earned!",
        f'Congratulations! You earned a certificate for completing "{course.name}".',
        {
            "certificate_id": str(certificate.id),
            "course_id": str(course_id),
            "certificate_number": certificate.certificate_number,
        },
    )
    return certificate, True


async def list_for_user(repo: AcademyRepo, user_id: UUID) -> list[Certificate]:
    return await repo.list_certificates(user_id)


async def get_owned(
    repo: AcademyRepo, user_id: UUID, certificate_id: UUID
) -> Certificate:
    certificate = await repo.get_certificate(certificate_id)
    if certificate is None:
        raise NotFoundError("certificate not found")
    if certificate.user_id != user_id:
        raise PermissionDeniedError("certificate belongs to another user")
    return certificate
