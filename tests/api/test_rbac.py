"""Table-driven RBAC tests.

Each row describes: endpoint, method, role, expected HTTP status.
Anything past the permission guard is fine for this table, so a 404 for
an unknown parent still proves the role was let through.
"""

from __future__ import annotations

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token

_UNKNOWN = str(uuid4())

_BODIES: dict[str, dict] = {
    "/v1/admin/training-areas": {"name": "RBAC Area"},
    "/v1/admin/units": {"name": "RBAC Unit"},
    "/v1/admin/badges": {"name": "RBAC Badge", "type": "blocks"},
    "/v1/admin/courses": {"module_id": _UNKNOWN, "name": "RBAC Course"},
    "/v1/admin/users": {
        "email": "rbac-test@example.com",
        "name": "RBAC",
        "password": "long-enough",
    },
}

_RBAC_CASES = [
    # (endpoint, method, role, expected_status)
    # user administration: admin and sub-admin
    ("/v1/admin/users", "GET", "admin", 200),
    ("/v1/admin/users", "GET", "sub-admin", 200),
    ("/v1/admin/users", "GET", "user", 403),
    ("/v1/admin/users", "GET", None, 401),
    ("/v1/admin/users", "POST", "admin", 201),
    ("/v1/admin/users", "POST", "sub-admin", 201),
    ("/v1/admin/users", "POST", "user", 403),
    ("/v1/admin/users", "POST", None, 401),
    # catalog authoring: admin only, except courses
    ("/v1/admin/training-areas", "POST", "admin", 201),
    ("/v1/admin/training-areas", "POST", "sub-admin", 403),
    ("/v1/admin/training-areas", "POST", "user", 403),
    ("/v1/admin/training-areas", "POST", None, 401),
    ("/v1/admin/units", "POST", "admin", 201),
    ("/v1/admin/units", "POST", "sub-admin", 403),
    ("/v1/admin/badges", "POST", "admin", 201),
    ("/v1/admin/badges", "POST", "sub-admin", 403),
    ("/v1/admin/badges", "POST", "user", 403),
    ("/v1/admin/courses", "POST", "admin", 404),
    ("/v1/admin/courses", "POST", "sub-admin", 404),
    ("/v1/admin/courses", "POST", "user", 403),
    ("/v1/admin/courses", "POST", None, 401),
    # learner endpoints: any authenticated role
    ("/v1/courses", "GET", "user", 200),
    ("/v1/courses", "GET", "admin", 200),
    ("/v1/courses", "GET", None, 401),
    ("/v1/progress", "GET", "user", 200),
    ("/v1/progress", "GET", None, 401),
    ("/v1/badges", "GET", "sub-admin", 200),
    ("/v1/badges", "GET", None, 401),
    ("/v1/certificates", "GET", "user", 200),
    ("/v1/certificates", "GET", None, 401),
    ("/v1/notifications/count", "GET", "user", 200),
    ("/v1/notifications/count", "GET", None, 401),
    ("/v1/leaderboard", "GET", "user", 200),
    ("/v1/leaderboard", "GET", None, 401),
]


def _case_id(case: tuple) -> str:
    endpoint, method, role, expected = case
    role_label = role or "anon"
    return f"{method} {endpoint} [{role_label}] -> {expected}"


@pytest.mark.parametrize(
    "endpoint,method,role,expected",
    _RBAC_CASES,
    ids=[_case_id(c) for c in _RBAC_CASES],
)
def test_rbac(
    client: TestClient,
    endpoint: str,
    method: str,
    role: str | None,
    expected: int,
) -> None:
    headers = auth(mint_token(role=role) if role else None)

    if method == "GET":
        resp = client.get(endpoint, headers=headers)
    elif method == "POST":
        resp = client.post(endpoint, json=_BODIES.get(endpoint, {}), headers=headers)
    else:
        pytest.fail(f"Unsupported method: {method}")

    assert resp.status_code == expected, (
        f"{method} {endpoint} role={role}: expected {expected}, got {resp.status_code}"
    )
