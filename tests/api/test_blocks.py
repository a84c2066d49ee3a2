from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token, run, seed_course, seed_user


def test_complete_block_is_201_then_200(client: TestClient, repo) -> None:
    user = seed_user(repo)
    seeded = seed_course(repo, units=1, blocks_per_unit=2)
    token = mint_token(str(user.id))
    url = f"/v1/blocks/{seeded.blocks[0].id}/complete"

    first = client.post(url, headers=auth(token))
    second = client.post(url, headers=auth(token))

    assert first.status_code == 201
    assert second.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert first.json()["completed"] is True
    assert run(repo.get_user(user.id)).xp_points == seeded.blocks[0].xp_points


def test_complete_unknown_block_is_404(client: TestClient) -> None:
    resp = client.post(f"/v1/blocks/{uuid4()}/complete", headers=auth(mint_token()))
    assert resp.status_code == 404


def test_list_completions(client: TestClient, repo) -> None:
    seeded = seed_course(repo, units=1, blocks_per_unit=2)
    token = mint_token()
    for block in seeded.blocks:
        client.post(f"/v1/blocks/{block.id}/complete", headers=auth(token))

    resp = client.get("/v1/blocks/completions", headers=auth(token))

    assert resp.status_code == 200
    assert {c["block_id"] for c in resp.json()} == {str(b.id) for b in seeded.blocks}
    assert client.get("/v1/blocks/completions", headers=auth(mint_token())).json() == []
