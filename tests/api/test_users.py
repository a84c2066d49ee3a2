from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.user import Role
from tests.conftest import auth, mint_token, run, seed_user


def _admin(repo, role: Role = Role.ADMIN) -> tuple[str, dict[str, str]]:
    user = seed_user(repo, role)
    return str(user.id), auth(mint_token(str(user.id), role=role.value))


def _new_user(email: str = "learner@example.com", **extra) -> dict:
    return {"email": email, "name": "Learner", "password": "long-enough", **extra}


def test_admin_creates_and_lists_users(client: TestClient, repo) -> None:
    _, headers = _admin(repo)

    resp = client.post("/v1/admin/users", json=_new_user(), headers=headers)

    assert resp.status_code == 201
    body = resp.json()
    assert body["email"] == "learner@example.com"
    assert body["role"] == "user"
    assert body["xp_points"] == 0
    assert "password_hash" not in body
    listed = client.get("/v1/admin/users", headers=headers).json()
    assert body["id"] in {u["id"] for u in listed}


def test_duplicate_email_is_409(client: TestClient, repo) -> None:
    _, headers = _admin(repo)
    client.post("/v1/admin/users", json=_new_user("dupe@example.com"), headers=headers)

    resp = client.post(
        "/v1/admin/users", json=_new_user("DUPE@example.com"), headers=headers
    )

    assert resp.status_code == 409


def test_short_password_is_422(client: TestClient, repo) -> None:
    _, headers = _admin(repo)

    resp = client.post(
        "/v1/admin/users", json=_new_user(password="short"), headers=headers
    )

    assert resp.status_code == 422


def test_sub_admin_scope(client: TestClient, repo) -> None:
    _, admin_headers = _admin(repo)
    _, sub_headers = _admin(repo, Role.SUB_ADMIN)
    mine = client.post(
        "/v1/admin/users", json=_new_user("mine@example.com"), headers=sub_headers
    ).json()
    theirs = client.post(
        "/v1/admin/users", json=_new_user("theirs@example.com"), headers=admin_headers
    ).json()

    listed = client.get("/v1/admin/users", headers=sub_headers).json()
    assert [u["id"] for u in listed] == [mine["id"]]

    elevated = client.post(
        "/v1/admin/users",
        json=_new_user("boss@example.com", role="admin"),
        headers=sub_headers,
    )
    assert elevated.status_code == 403
    assert client.delete(f"/v1/admin/users/{theirs['id']}", headers=sub_headers).status_code == 403
    assert client.delete(f"/v1/admin/users/{mine['id']}", headers=sub_headers).status_code == 204


def test_update_role(client: TestClient, repo) -> None:
    admin_id, headers = _admin(repo)
    target = seed_user(repo)

    resp = client.patch(
        f"/v1/admin/users/{target.id}/role", json={"role": "sub-admin"}, headers=headers
    )

    assert resp.status_code == 200
    assert resp.json()["role"] == "sub-admin"
    assert run(repo.get_user(target.id)).role is Role.SUB_ADMIN

    own = client.patch(
        f"/v1/admin/users/{admin_id}/role", json={"role": "user"}, headers=headers
    )
    assert own.status_code == 422
    missing = client.patch(
        f"/v1/admin/users/{uuid4()}/role", json={"role": "user"}, headers=headers
    )
    assert missing.status_code == 404


def test_delete_user(client: TestClient, repo) -> None:
    _, headers = _admin(repo)
    target = seed_user(repo)

    resp = client.delete(f"/v1/admin/users/{target.id}", headers=headers)

    assert resp.status_code == 204
    assert run(repo.get_user(target.id)) is None
    assert client.delete(f"/v1/admin/users/{target.id}", headers=headers).status_code == 404


def test_leaderboard(client: TestClient, repo) -> None:
    low = seed_user(repo, name="Low")
    high = seed_user(repo, name="High")
    seed_user(repo, Role.ADMIN, name="Admin")
    run(repo.credit_xp(low.id, 20))
    run(repo.credit_xp(high.id, 300))

    resp = client.get("/v1/leaderboard", params={"limit": 5}, headers=auth(mint_token()))

    assert resp.status_code == 200
    assert [(e["rank"], e["name"], e["xp_points"]) for e in resp.json()] == [
        (1, "High", 300),
        (2, "Low", 20),
    ]


def test_leaderboard_limit_out_of_range(client: TestClient) -> None:
    resp = client.get("/v1/leaderboard", params={"limit": 101}, headers=auth(mint_token()))
    assert resp.status_code == 422
