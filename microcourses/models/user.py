from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class User:
    """Directory entry for a learner, creator or admin.

    Accounts are managed by the auth side of the platform; this service
    only reads names for certificate facts.
    """

    id: UUID
    email: str
    first_name: str = ""
    last_name: str = ""
    role: str = "learner"  # learner|creator|admin

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @staticmethod
    def new(
        *,
        email: str,
        first_name: str = "",
        last_name: str = "",
        role: str = "learner",
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            role=role,
        )
