from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated identity extracted from a validated JWT.

    Carried through the request via FastAPI's dependency system.

        user_id: subject from JWT (the user's UUID as a string)
        roles: platform roles (learner, creator, admin)
    """

    user_id: str
    roles: frozenset[str]

    def has_any_role(self, roles: set[str]) -> bool:
        return bool(self.roles & roles)
