from __future__ import annotations

import re
from uuid import uuid4

import pytest

from app.core.config import SETTINGS
from app.models.progress import UserProgress
from app.services import certificate_service
from app.services.errors import NotEligibleError, NotFoundError, PermissionDeniedError
from tests.conftest import run, seed_course, seed_user


def _finish(repo, user_id, course_id) -> None:
    run(
        repo.upsert_progress(
            UserProgress(
                user_id=user_id, course_id=course_id, percent_complete=100, completed=True
            )
        )
    )


def test_unknown_course_is_not_found(repo) -> None:
    with pytest.raises(NotFoundError):
        run(certificate_service.generate_certificate(repo, uuid4(), uuid4()))


@pytest.mark.parametrize("percent", [None, 99])
def test_incomplete_course_is_not_eligible(repo, percent) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo)
    if percent is not None:
        run(
            repo.upsert_progress(
                UserProgress(
                    user_id=user.id, course_id=seeded.course.id, percent_complete=percent
                )
            )
        )

    with pytest.raises(NotEligibleError):
        run(certificate_service.generate_certificate(repo, user.id, seeded.course.id))


def test_generate_is_idempotent(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo)
    _finish(repo, user.id, seeded.course.id)

    first, created = run(
        certificate_service.generate_certificate(repo, user.id, seeded.course.id)
    )
    again, created_again = run(
        certificate_service.generate_certificate(repo, user.id, seeded.course.id)
    )

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert re.fullmatch(r"CERT-\d+-[0-9A-F]{8}", first.certificate_number)
    assert first.expires_at == first.issued_at + SETTINGS.certificate_valid_days * 86_400


def test_generate_emits_one_notification(repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo)
    _finish(repo, user.id, seeded.course.id)

    run(certificate_service.generate_certificate(repo, user.id, seeded.course.id))
    run(certificate_service.generate_certificate(repo, user.id, seeded.course.id))

    notifications = run(repo.list_notifications(user.id, 10))
    assert [n.type for n in notifications] == ["certificate_earned"]
    assert seeded.course.name in notifications[0].message


def test_get_owned_checks_owner(repo) -> None:
    owner = seed_user(repo)
    other = seed_user(repo)
    seeded = seed_course(repo)
    _finish(repo, owner.id, seeded.course.id)
    certificate, _ = run(
        certificate_service.generate_certificate(repo, owner.id, seeded.course.id)
    )

    assert run(certificate_service.get_owned(repo, owner.id, certificate.id)) == certificate
    with pytest.raises(PermissionDeniedError):
        run(certificate_service.get_owned(repo, other.id, certificate.id))
    with pytest.raises(NotFoundError):
        run(certificate_service.get_owned(repo, owner.id, uuid4()))
