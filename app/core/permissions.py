"""Role → permission table.

Roles are a closed enum, and permissions_for() matches on it
exhaustively, so adding a Role without deciding its permissions is a
type error rather than a silent "no access".

  admin      everything
  sub-admin  create plain users, manage roles and courses; user
             administration is limited to users they created
  user       nothing administrative
"""

from __future__ import annotations

from enum import StrEnum
from typing import assert_never

from app.models.user import Role


class Permission(StrEnum):
    CREATE_USERS = "create_users"
    CREATE_SUB_ADMINS = "create_sub_admins"
    VIEW_ALL_USERS = "view_all_users"
    EDIT_ALL_USERS = "edit_all_users"
    DELETE_ALL_USERS = "delete_all_users"
    MANAGE_ROLES = "manage_roles"
    MANAGE_COURSES = "manage_courses"
    MANAGE_TRAINING_AREAS = "manage_training_areas"
    MANAGE_MODULES = "manage_modules"
    MANAGE_UNITS = "manage_units"
    MANAGE_ASSESSMENTS = "manage_assessments"
    MANAGE_LEARNING_BLOCKS = "manage_learning_blocks"
    MANAGE_BADGES = "manage_badges"


_SUB_ADMIN = frozenset(
    {
        Permission.CREATE_USERS,
        Permission.MANAGE_ROLES,
        Permission.MANAGE_COURSES,
    }
)


def permissions_for(role: Role) -> frozenset[Permission]:
    match role:
        case Role.ADMIN:
            return frozenset(Permission)
        case Role.SUB_ADMIN:
            return _SUB_ADMIN
        case Role.USER:
            return frozenset()
        case _:
            assert_never(role)


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in permissions_for(role)
