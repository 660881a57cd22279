"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond shaping). The
store and the service do the work; api/models.py owns the HTTP contract.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Role(str, Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


@dataclass
class Principal:
    """A registered user identity.

    identifier is the login email. It is unique and compared case-sensitively
    (the store's UNIQUE constraint is the authority on uniqueness).

    hashed_password is a bcrypt hash and must never leave the auth layer.
    Use summary() when building anything outward-facing.

    role is None until an admin assigns one through the update path.
    skills is an ordered list without duplicates.
    """

    identifier: str
    hashed_password: str
    name: str | None = None
    role: Role | None = None
    skills: list[str] = field(default_factory=list)
    id: int | None = None
    created_at: str | None = None

    @property
    def public_id(self) -> str:
        return str(self.id) if self.id is not None else ""

    def summary(self) -> dict:
        """Outward-facing view. Never includes the password hash."""
        return {"id": self.public_id, "identifier": self.identifier, "name": self.name}


def normalize_skills(skills: list[str] | None) -> list[str]:
    """Strip blanks and drop duplicates, keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for skill in skills or []:
        cleaned = str(skill).strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result
