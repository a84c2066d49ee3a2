"""Demo: build a one-unit course and walk a learner through it.

Uses FastAPI's TestClient against the in-memory store, so no database
or Redis is needed.

Run with:
    python scripts/demo_learning_flow.py
"""

from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from app.main import app
from app.services import token_service


def _bearer(sub: str, role: str) -> dict[str, str]:
    token = token_service.create_access_token(sub=sub, role=role)
    return {"Authorization": f"Bearer {token}"}


def main() -> None:
    # Entering the context runs the lifespan, which seeds the badge catalog.
    with TestClient(app) as client:
        admin = _bearer(str(uuid4()), "admin")

        # ── Step 1: admin creates a learner ─────────────────────────
        r = client.post(
            "/v1/admin/users",
            json={"email": "learner@example.com", "name": "Learner", "password": "learn-1234"},
            headers=admin,
        )
        learner_id = r.json()["id"]
        learner = _bearer(learner_id, "user")
        print(f"1. POST /v1/admin/users          → {r.status_code}  id={learner_id}")

        # ── Step 2: admin builds the catalog ────────────────────────
        area = client.post(
            "/v1/admin/training-areas", json={"name": "Abu Dhabi Culture"}, headers=admin
        ).json()
        module = client.post(
            "/v1/admin/modules",
            json={"training_area_id": area["id"], "name": "Heritage"},
            headers=admin,
        ).json()
        course = client.post(
            "/v1/admin/courses",
            json={"module_id": module["id"], "name": "Old Town", "course_type": "free"},
            headers=admin,
        ).json()
        unit = client.post(
            "/v1/admin/units", json={"name": "Qasr Al Hosn"}, headers=admin
        ).json()
        client.post(
            f"/v1/admin/courses/{course['id']}/units",
            json={"unit_id": unit["id"], "position": 1},
            headers=admin,
        )
        block = client.post(
            "/v1/admin/blocks",
            json={"unit_id": unit["id"], "type": "text", "title": "History", "position": 1},
            headers=admin,
        ).json()
        assessment = client.post(
            "/v1/admin/assessments",
            json={"title": "Quiz", "unit_id": unit["id"], "has_certificate": True},
            headers=admin,
        ).json()
        question = client.post(
            f"/v1/admin/assessments/{assessment['id']}/questions",
            json={
                "text": "Qasr Al Hosn is the oldest stone building in Abu Dhabi.",
                "position": 1,
                "question_type": "true_false",
                "correct_answer": "true",
            },
            headers=admin,
        ).json()
        print(f"2. catalog ready                  course={course['id']}")

        # ── Step 3: learner completes the block ─────────────────────
        r = client.post(f"/v1/blocks/{block['id']}/complete", headers=learner)
        print(f"3. POST /v1/blocks/…/complete     → {r.status_code}")

        # ── Step 4: learner passes the quiz ─────────────────────────
        r = client.post(
            f"/v1/assessments/{assessment['id']}/submit",
            json={"answers": {question["id"]: "True"}},
            headers=learner,
        )
        body = r.json()
        print(
            f"4. POST /v1/assessments/…/submit → {r.status_code}  "
            f"passed={body['passed']}  certificate={body['certificate_generated']}"
        )

        # ── Step 5: progress, badges, notifications ─────────────────
        r = client.get("/v1/progress", headers=learner)
        print(f"5. GET  /v1/progress              → {r.status_code}  {r.json()}")
        r = client.get("/v1/badges/mine", headers=learner)
        print(f"   GET  /v1/badges/mine           → {[b['badge']['name'] for b in r.json()]}")
        r = client.get("/v1/notifications/count", headers=learner)
        print(f"   GET  /v1/notifications/count   → {r.json()}")
        r = client.get("/v1/leaderboard", headers=learner)
        print(f"   GET  /v1/leaderboard           → {r.json()}")

    print("\nAll steps completed.")


if __name__ == "__main__":
    main()
