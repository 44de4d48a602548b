"""
Identity handed to the coordinator by the authentication collaborator.
"""

from dataclasses import dataclass

from volunteerhub.models.user import UserRole


@dataclass(frozen=True)
class Principal:
    """Authenticated caller. The role is asserted, not trusted."""
    user_id: int
    role: UserRole

    @classmethod
    def of(cls, user_id: int, role: str) -> "Principal":
        return cls(user_id=user_id, role=UserRole(role))
