from __future__ import annotations

import pytest

from app.core.permissions import Permission, has_permission, permissions_for
from app.models.user import Role


def test_admin_has_every_permission() -> None:
    assert permissions_for(Role.ADMIN) == frozenset(Permission)


def test_user_has_no_permissions() -> None:
    assert permissions_for(Role.USER) == frozenset()


@pytest.mark.parametrize(
    "permission,expected",
    [
        (Permission.CREATE_USERS, True),
        (Permission.MANAGE_ROLES, True),
        (Permission.MANAGE_COURSES, True),
        (Permission.CREATE_SUB_ADMINS, False),
        (Permission.VIEW_ALL_USERS, False),
        (Permission.DELETE_ALL_USERS, False),
        (Permission.MANAGE_BADGES, False),
        (Permission.MANAGE_UNITS, False),
    ],
)
def test_sub_admin_permissions(permission: Permission, expected: bool) -> None:
    assert has_permission(Role.SUB_ADMIN, permission) is expected
