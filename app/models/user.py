from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID, uuid4


class Role(StrEnum):
    """Platform roles.  Closed set: permission checks match on every member."""

    ADMIN = "admin"
    SUB_ADMIN = "sub-admin"
    USER = "user"


@dataclass(frozen=True, slots=True)
class User:
    id: UUID
    email: str
    name: str
    password_hash: str
    role: Role = Role.USER
    xp_points: int = 0
    is_active: bool = True
    created_by: UUID | None = None

    @staticmethod
    def new(
        *,
        email: str,
        name: str,
        password_hash: str,
        role: Role = Role.USER,
        created_by: UUID | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email,
            name=name,
            password_hash=password_hash,
            role=role,
            created_by=created_by,
        )
