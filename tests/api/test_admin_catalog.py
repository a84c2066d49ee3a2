from __future__ import annotations

from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token, run, seed_course


@pytest.fixture()
def admin_post(client: TestClient):
    headers = auth(mint_token(role="admin"))

    def _post(path: str, body: dict):
        return client.post(f"/v1/admin{path}", json=body, headers=headers)

    return _post


def test_build_catalog_end_to_end(client: TestClient, repo, admin_post) -> None:
    area = admin_post("/training-areas", {"name": "Abu Dhabi"}).json()
    module = admin_post(
        "/modules", {"training_area_id": area["id"], "name": "Heritage"}
    ).json()
    resp = admin_post(
        "/courses", {"module_id": module["id"], "name": "Old Town", "level": "intermediate"}
    )
    assert resp.status_code == 201
    course = resp.json()
    assert course["training_area_id"] == area["id"]

    unit = admin_post("/units", {"name": "Souks"}).json()
    link = admin_post(f"/courses/{course['id']}/units", {"unit_id": unit["id"], "position": 1})
    assert link.status_code == 201

    block = admin_post(
        "/blocks",
        {"unit_id": unit["id"], "type": "video", "title": "Walkthrough", "position": 0},
    )
    assert block.status_code == 201
    assert block.json()["xp_points"] == 10

    assessment = admin_post("/assessments", {"title": "Quiz", "unit_id": unit["id"]}).json()
    assert assessment["passing_score"] == 70

    question = admin_post(
        f"/assessments/{assessment['id']}/questions",
        {
            "text": "Oldest souk?",
            "position": 1,
            "question_type": "mcq",
            "options": ["A", "B"],
            "correct_answer": "A",
        },
    )
    assert question.status_code == 201
    assert "correct_answer" not in question.json()
    stored = run(repo.list_questions(UUID(assessment["id"])))
    assert [q.correct_answer for q in stored] == ["A"]

    units = client.get(
        f"/v1/courses/{course['id']}/units", headers=auth(mint_token())
    ).json()
    assert [u["id"] for u in units] == [unit["id"]]


def test_duplicate_links_are_409(repo, admin_post) -> None:
    seeded = seed_course(repo)
    other = seed_course(repo)
    course_id = seeded.course.id

    attach = {"unit_id": str(seeded.units[0].id), "position": 5}
    prereq = {"prerequisite_course_id": str(other.course.id)}
    mandatory = {"course_id": str(course_id)}

    assert admin_post(f"/courses/{course_id}/units", attach).status_code == 409
    assert admin_post(f"/courses/{course_id}/prerequisites", prereq).status_code == 201
    assert admin_post(f"/courses/{course_id}/prerequisites", prereq).status_code == 409
    assert admin_post("/roles/user/mandatory-courses", mandatory).status_code == 201
    assert admin_post("/roles/user/mandatory-courses", mandatory).status_code == 409


@pytest.mark.parametrize(
    "path,body",
    [
        ("/modules", {"training_area_id": None, "name": "M"}),
        ("/assessments/{missing}/questions", {"text": "Q", "position": 1}),
        ("/courses/{missing}/prerequisites", {"prerequisite_course_id": None}),
    ],
)
def test_unknown_parent_is_404(admin_post, path: str, body: dict) -> None:
    missing = str(uuid4())
    body = {k: (str(uuid4()) if v is None else v) for k, v in body.items()}

    resp = admin_post(path.format(missing=missing), body)

    assert resp.status_code == 404


@pytest.mark.parametrize(
    "path,body",
    [
        ("/training-areas", {"name": "   "}),
        ("/units", {"name": "Unit", "xp_points": -5}),
        ("/assessments", {"title": "Orphan"}),
        ("/badges", {"name": "", "type": "blocks"}),
    ],
)
def test_invalid_payload_is_422(admin_post, path: str, body: dict) -> None:
    assert admin_post(path, body).status_code == 422


def test_invalid_block_type_is_422(repo, admin_post) -> None:
    seeded = seed_course(repo)

    resp = admin_post(
        "/blocks",
        {"unit_id": str(seeded.units[0].id), "type": "podcast", "title": "Ep", "position": 0},
    )

    assert resp.status_code == 422


def test_create_badge(admin_post) -> None:
    resp = admin_post(
        "/badges",
        {"name": "Night Owl", "type": "custom", "description": "Late study", "xp_points": 5},
    )

    assert resp.status_code == 201
    assert resp.json()["xp_points"] == 5
