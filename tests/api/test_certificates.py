from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.progress import UserProgress
from tests.conftest import auth, mint_token, run, seed_course, seed_user


def _finish(repo, user_id, course_id) -> None:
    run(
        repo.upsert_progress(
            UserProgress(
                user_id=user_id, course_id=course_id, percent_complete=100, completed=True
            )
        )
    )


def _generate(client: TestClient, token: str, course_id):
    return client.post(
        "/v1/certificates/generate",
        json={"course_id": str(course_id)},
        headers=auth(token),
    )


def test_generate_201_then_200(client: TestClient, repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo)
    _finish(repo, user.id, seeded.course.id)
    token = mint_token(str(user.id))

    first = _generate(client, token, seeded.course.id)
    second = _generate(client, token, seeded.course.id)

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["certificate_number"] == second.json()["certificate_number"]
    assert first.json()["status"] == "active"


def test_generate_before_completion_is_400(client: TestClient, repo) -> None:
    seeded = seed_course(repo)

    resp = _generate(client, mint_token(), seeded.course.id)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "course not completed"


def test_generate_unknown_course_is_404(client: TestClient) -> None:
    assert _generate(client, mint_token(), uuid4()).status_code == 404


def test_get_is_owner_only(client: TestClient, repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo)
    _finish(repo, user.id, seeded.course.id)
    token = mint_token(str(user.id))
    cert_id = _generate(client, token, seeded.course.id).json()["id"]

    assert client.get(f"/v1/certificates/{cert_id}", headers=auth(token)).status_code == 200
    assert (
        client.get(f"/v1/certificates/{cert_id}", headers=auth(mint_token())).status_code
        == 403
    )
    assert client.get(f"/v1/certificates/{uuid4()}", headers=auth(token)).status_code == 404


def test_list_certificates(client: TestClient, repo) -> None:
    user = seed_user(repo)
    token = mint_token(str(user.id))
    for _ in range(2):
        seeded = seed_course(repo)
        _finish(repo, user.id, seeded.course.id)
        _generate(client, token, seeded.course.id)

    assert len(client.get("/v1/certificates", headers=auth(token)).json()) == 2
    assert client.get("/v1/certificates", headers=auth(mint_token())).json() == []
