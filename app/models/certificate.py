from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class CertificateStatus(StrEnum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class Certificate:
    id: UUID
    user_id: UUID
    course_id: UUID
    certificate_number: str
    issued_at: int
    expires_at: int | None = None
    status: CertificateStatus = CertificateStatus.ACTIVE

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        certificate_number: str,
        issued_at: int,
        expires_at: int | None,
    ) -> Certificate:
        return Certificate(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            certificate_number=certificate_number,
            issued_at=issued_at,
            expires_at=expires_at,
        )
