"""
Error taxonomy for the coordination layer.

ValidationError subclasses are client-correctable and carry a ViolationKind.
ConflictError is transient and safe to retry. StorageError means the store
itself is unavailable.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ViolationKind(str, Enum):
    """Kinds of business-rule violations."""
    CAPACITY_EXCEEDED = "capacity_exceeded"
    INVALID_LEADER = "invalid_leader"
    DANGLING_REFERENCE = "dangling_reference"
    UNAUTHORIZED = "unauthorized"
    ALREADY_MEMBER = "already_member"
    INVALID_VALUE = "invalid_value"
    NOT_MEMBER = "not_member"
    NOT_FOUND = "not_found"


class CoordinationError(Exception):
    """Base class for every error surfaced by the coordinator."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


# ============================================================
# VALIDATION ERRORS (client error)
# ============================================================


class ValidationError(CoordinationError):
    """A business rule rejected the request."""

    kind: ViolationKind = ViolationKind.INVALID_VALUE


class CapacityExceeded(ValidationError):
    kind = ViolationKind.CAPACITY_EXCEEDED

    def __init__(self, team_id: int, max_members: int):
        self.team_id = team_id
        self.max_members = max_members
        super().__init__(
            f"Team {team_id} is full ({max_members} active members)",
            {"team_id": team_id, "max_members": max_members},
        )


class InvalidLeader(ValidationError):
    kind = ViolationKind.INVALID_LEADER

    def __init__(self, team_id: int, volunteer_id: int):
        self.team_id = team_id
        self.volunteer_id = volunteer_id
        super().__init__(
            f"Volunteer {volunteer_id} is not an active member of team {team_id}",
            {"team_id": team_id, "volunteer_id": volunteer_id},
        )


class DanglingReference(ValidationError):
    kind = ViolationKind.DANGLING_REFERENCE

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"No {entity_type} with id {entity_id}",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


class Unauthorized(ValidationError):
    kind = ViolationKind.UNAUTHORIZED


class AlreadyMember(ValidationError):
    kind = ViolationKind.ALREADY_MEMBER

    def __init__(self, team_id: int, volunteer_id: int):
        self.team_id = team_id
        self.volunteer_id = volunteer_id
        super().__init__(
            f"Volunteer {volunteer_id} is already an active member of team {team_id}",
            {"team_id": team_id, "volunteer_id": volunteer_id},
        )


class InvalidValue(ValidationError):
    kind = ViolationKind.INVALID_VALUE


class NotMember(ValidationError):
    kind = ViolationKind.NOT_MEMBER

    def __init__(self, team_id: int, volunteer_id: int):
        self.team_id = team_id
        self.volunteer_id = volunteer_id
        super().__init__(
            f"Volunteer {volunteer_id} has no active membership in team {team_id}",
            {"team_id": team_id, "volunteer_id": volunteer_id},
        )


class NotFound(ValidationError):
    kind = ViolationKind.NOT_FOUND

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} not found",
            {"entity_type": entity_type, "entity_id": entity_id},
        )


# ============================================================
# INFRASTRUCTURE ERRORS
# ============================================================


class ConflictError(CoordinationError):
    """Concurrent modification detected; the transaction may be retried."""


class StorageError(CoordinationError):
    """The underlying store failed or is unavailable."""
