"""Request IDs are generated or echoed, and returned on every response."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "submit-7f3a"})
    assert resp.headers.get("x-request-id") == "submit-7f3a"


@pytest.mark.parametrize(
    "path,headers,expected",
    [
        ("/v1/progress", {}, 401),
        (f"/v1/certificates/{uuid.uuid4()}", None, 404),
    ],
)
def test_request_id_present_on_error_responses(
    client: TestClient, path: str, headers: dict | None, expected: int
) -> None:
    if headers is None:
        headers = auth(mint_token())
    resp = client.get(path, headers=headers)
    assert resp.status_code == expected
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_is_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/v1/courses", headers=auth(mint_token()))

    records = [r for r in caplog.records if getattr(r, "path", None) == "/v1/courses"]
    assert records
    assert records[-1].status_code == 200
