from dataclasses import dataclass

from backend.models.user import Role


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a scheduling operation."""

    id: int
    role: Role

    @classmethod
    def from_user(cls, user) -> 'Actor':
        return cls(id=user.id, role=Role(user.role))
