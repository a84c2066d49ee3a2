from __future__ import annotations

from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from app.services import notification_service
from app.services.errors import NotFoundError, PermissionDeniedError
from tests.conftest import run


def _sample(name: str, labels: dict | None = None) -> float:
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def _emit(repo, user_id, type: str = "assessment_passed") -> None:
    run(notification_service.emit(repo, user_id, type, "Title", "Message"))


def test_list_is_newest_first_and_limited(repo) -> None:
    user_id = uuid4()
    for t in ("first", "second", "third"):
        _emit(repo, user_id, t)

    listed = run(notification_service.list_for_user(repo, user_id, limit=2))

    assert [n.type for n in listed] == ["third", "second"]


def test_unread_count_and_mark_read(repo) -> None:
    user_id = uuid4()
    _emit(repo, user_id)
    _emit(repo, user_id)
    target = run(notification_service.list_for_user(repo, user_id))[0]

    updated = run(notification_service.mark_read(repo, user_id, target.id))

    assert updated.read is True
    assert run(notification_service.unread_count(repo, user_id)) == 1


def test_mark_all_read_counts_changes(repo) -> None:
    user_id = uuid4()
    for _ in range(3):
        _emit(repo, user_id)
    _emit(repo, uuid4())

    assert run(notification_service.mark_all_read(repo, user_id)) == 3
    assert run(notification_service.mark_all_read(repo, user_id)) == 0
    assert run(notification_service.unread_count(repo, user_id)) == 0


def test_cannot_touch_someone_elses_notification(repo) -> None:
    owner, stranger = uuid4(), uuid4()
    _emit(repo, owner)
    target = run(notification_service.list_for_user(repo, owner))[0]

    with pytest.raises(PermissionDeniedError):
        run(notification_service.mark_read(repo, stranger, target.id))
    with pytest.raises(PermissionDeniedError):
        run(notification_service.delete(repo, stranger, target.id))
    with pytest.raises(NotFoundError):
        run(notification_service.delete(repo, owner, uuid4()))


def test_delete(repo) -> None:
    user_id = uuid4()
    _emit(repo, user_id)
    target = run(notification_service.list_for_user(repo, user_id))[0]

    run(notification_service.delete(repo, user_id, target.id))

    assert run(notification_service.list_for_user(repo, user_id)) == []


def test_emit_swallows_store_errors(repo, monkeypatch) -> None:
    async def boom(notification) -> None:
        raise RuntimeError("store down")

    monkeypatch.setattr(repo, "add_notification", boom)
    before = _sample("notification_failures_total", {"type": "badge_earned"})

    run(notification_service.emit(repo, uuid4(), "badge_earned", "Title", "Message"))

    after = _sample("notification_failures_total", {"type": "badge_earned"})
    assert after - before == 1
