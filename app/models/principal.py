from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from app.models.user import Role


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.

        user_id: subject (the User.id as a string)
        role: platform role claim
    """

    user_id: str
    role: Role

    @property
    def uid(self) -> UUID:
        return UUID(self.user_id)

    def has_role(self, role: Role) -> bool:
        return self.role == role

    def has_any_role(self, roles: set[Role]) -> bool:
        return self.role in roles
