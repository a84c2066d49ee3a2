from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.course import CoursePrerequisite, CourseType, RoleMandatoryCourse
from app.models.user import Role
from tests.conftest import auth, mint_token, run, seed_course


def test_list_courses(client: TestClient, repo) -> None:
    seeded = seed_course(repo)

    resp = client.get("/v1/courses", headers=auth(mint_token()))

    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == [str(seeded.course.id)]
    assert resp.json()[0]["course_type"] == "free"


def test_list_courses_by_module(client: TestClient, repo) -> None:
    a = seed_course(repo)
    seed_course(repo)

    resp = client.get(
        "/v1/courses",
        params={"module_id": str(a.course.module_id)},
        headers=auth(mint_token()),
    )

    assert [c["id"] for c in resp.json()] == [str(a.course.id)]


def test_accessible_hides_gated_course(client: TestClient, repo) -> None:
    intro = seed_course(repo, course_type=CourseType.SEQUENTIAL)
    gated = seed_course(repo, course_type=CourseType.SEQUENTIAL)
    run(
        repo.add_prerequisite(
            CoursePrerequisite(course_id=gated.course.id, prerequisite_course_id=intro.course.id)
        )
    )

    resp = client.get("/v1/courses/accessible", headers=auth(mint_token()))

    assert [c["id"] for c in resp.json()] == [str(intro.course.id)]


def test_mandatory_uses_token_role(client: TestClient, repo) -> None:
    seeded = seed_course(repo)
    run(repo.add_mandatory_course(RoleMandatoryCourse(role=Role.USER, course_id=seeded.course.id)))

    as_user = client.get("/v1/courses/mandatory", headers=auth(mint_token(role="user")))
    as_admin = client.get("/v1/courses/mandatory", headers=auth(mint_token(role="admin")))

    assert [c["id"] for c in as_user.json()] == [str(seeded.course.id)]
    assert as_admin.json() == []


def test_units_in_order(client: TestClient, repo) -> None:
    seeded = seed_course(repo, units=3)

    resp = client.get(f"/v1/courses/{seeded.course.id}/units", headers=auth(mint_token()))

    assert [u["id"] for u in resp.json()] == [str(u.id) for u in seeded.units]


def test_units_of_unknown_course_is_404(client: TestClient) -> None:
    resp = client.get(f"/v1/courses/{uuid4()}/units", headers=auth(mint_token()))
    assert resp.status_code == 404
