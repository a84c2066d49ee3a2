from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.api.dependencies import PrincipalDep, RepoDep, http_error
from app.models.certificate import Certificate
from app.services import certificate_service
from app.services.errors import AcademyError

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


class GenerateIn(BaseModel):
    course_id: UUID


class CertificateOut(BaseModel):
    id: UUID
    course_id: UUID
    certificate_number: str
    issued_at: int
    expires_at: int | None
    status: str


def _out(c: Certificate) -> CertificateOut:
    return CertificateOut(
        id=c.id,
        course_id=c.course_id,
        certificate_number=c.certificate_number,
        issued_at=c.issued_at,
        expires_at=c.expires_at,
        status=c.status.value,
    )


@router.post(
    "/generate", response_model=CertificateOut, status_code=status.HTTP_201_CREATED
)
async def generate(
    payload: GenerateIn, response: Response, principal: PrincipalDep, repo: RepoDep
) -> CertificateOut:
    try:
        certificate, created = await certificate_service.generate_certificate(
            repo, principal.uid, payload.course_id
        )
    except AcademyError as e:
        raise http_error(e) from None

    if not created:
        response.status_code = status.HTTP_200_OK
    return _out(certificate)


@router.get("", response_model=list[CertificateOut])
async def list_certificates(
    principal: PrincipalDep, repo: RepoDep
) -> list[CertificateOut]:
    return [_out(c) for c in await certificate_service.list_for_user(repo, principal.uid)]


@router.get("/{certificate_id}", response_model=CertificateOut)
async def get_certificate(
    certificate_id: UUID, principal: PrincipalDep, repo: RepoDep
) -> CertificateOut:
    try:
        certificate = await certificate_service.get_owned(
            repo, principal.uid, certificate_id
        )
    except AcademyError as e:
        raise http_error(e) from None
    return _out(certificate)
