"""
Invariant Engine - business rules that span more than one table.

Every check runs inside the caller's transaction, before commit. A check
either returns normally or raises a ValidationError subclass; the
coordinator rolls the whole transaction back on any raise.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, Optional, Union

from sqlmodel import Session

from volunteerhub.core.exceptions import (
    CapacityExceeded,
    DanglingReference,
    InvalidLeader,
    InvalidValue,
    NotFound,
    Unauthorized,
)
from volunteerhub.crud.project import project_crud
from volunteerhub.crud.team import membership_crud, team_crud
from volunteerhub.crud.user import charity_profile_crud
from volunteerhub.models.activity import ActivityLog
from volunteerhub.models.project import Project
from volunteerhub.models.rating import MAX_RATING, MIN_RATING, RatedEntityType
from volunteerhub.models.team import Team
from volunteerhub.models.user import CharityProfile, User, UserRole, VolunteerProfile
from volunteerhub.schemas.account import Account

logger = logging.getLogger(__name__)


class InvariantOperation(str, Enum):
    MEMBERSHIP_ACTIVATE = "membership_activate"
    LEADER_ASSIGN = "leader_assign"
    RATING_INSERT = "rating_insert"
    ACTIVITY_LOG = "activity_log"
    ACTIVITY_APPROVE = "activity_approve"


class InvariantEngine:
    """Validates multi-row rules for a pending write."""

    def __init__(self):
        self._checks: Dict[InvariantOperation, Callable[..., Any]] = {
            InvariantOperation.MEMBERSHIP_ACTIVATE: self.check_capacity,
            InvariantOperation.LEADER_ASSIGN: self.check_leader,
            InvariantOperation.RATING_INSERT: self.check_rating,
            InvariantOperation.ACTIVITY_LOG: self.check_activity_references,
            InvariantOperation.ACTIVITY_APPROVE: self.check_approver,
        }
        # Polymorphic rating targets: one existence check per entity type.
        self._entity_lookups: Dict[RatedEntityType, Callable[[Session, int], Optional[Any]]] = {
            RatedEntityType.volunteer: lambda db, entity_id: db.get(VolunteerProfile, entity_id),
            RatedEntityType.project: lambda db, entity_id: db.get(Project, entity_id),
            RatedEntityType.team: lambda db, entity_id: db.get(Team, entity_id),
            RatedEntityType.charity: lambda db, entity_id: db.get(CharityProfile, entity_id),
        }

    def validate(self, db: Session, operation: InvariantOperation, **context) -> Any:
        """Run the check registered for an operation."""
        check = self._checks[InvariantOperation(operation)]
        return check(db, **context)

    # ========================================
    # TEAM CAPACITY AND LEADERSHIP
    # ========================================

    def lock_team(self, db: Session, team_id: int) -> Team:
        """Take the team row lock that guards its membership count and leader."""
        team = team_crud.get_team_for_update(db, team_id)
        if team is None:
            raise NotFound("team", team_id)
        return team

    def check_capacity(self, db: Session, team: Team) -> int:
        """
        Reject activating one more membership in a full team.

        The caller must hold the team lock (lock_team) so that the count
        cannot go stale between this check and the insert.
        """
        active = membership_crud.count_active_members(db, team.id)
        if active + 1 > team.max_members:
            logger.info(f"Team {team.id} at capacity ({active}/{team.max_members})")
            raise CapacityExceeded(team.id, team.max_members)
        return active

    def check_leader(self, db: Session, team: Team, volunteer_id: int) -> None:
        if not membership_crud.is_active_member(db, team.id, volunteer_id):
            raise InvalidLeader(team.id, volunteer_id)

    def release_leadership(self, db: Session, team: Team, volunteer_id: int) -> bool:
        """Clear the leader when their membership closes. Returns True if cleared."""
        if team.team_leader_id != volunteer_id:
            return False
        team_crud.set_leader(db, team, None)
        logger.info(f"Cleared leader {volunteer_id} of team {team.id} after membership closed")
        return True

    # ========================================
    # POLYMORPHIC RATING TARGETS
    # ========================================

    def resolve_entity_type(self, entity_type: Union[str, RatedEntityType]) -> RatedEntityType:
        try:
            return RatedEntityType(entity_type)
        except ValueError:
            raise InvalidValue(
                f"Unknown rated entity type '{entity_type}'",
                {"allowed": [t.value for t in RatedEntityType]},
            )

    def check_entity_exists(self, db: Session, entity_type: Union[str, RatedEntityType], entity_id: int) -> Any:
        entity_type = self.resolve_entity_type(entity_type)
        entity = self._entity_lookups[entity_type](db, entity_id)
        if entity is None:
            raise DanglingReference(entity_type.value, entity_id)
        return entity

    def check_rating_value(self, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
            raise InvalidValue(
                f"Rating value must be an integer between {MIN_RATING} and {MAX_RATING}",
                {"value": value},
            )
        return value

    def check_rating(
        self, db: Session, entity_type: Union[str, RatedEntityType], entity_id: int, value: Any
    ) -> RatedEntityType:
        self.check_rating_value(value)
        self.check_entity_exists(db, entity_type, entity_id)
        return self.resolve_entity_type(entity_type)

    # ========================================
    # ACTIVITY LOGGING AND APPROVAL
    # ========================================

    def check_activity_references(
        self,
        db: Session,
        duration_minutes: int,
        project_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Optional[int]:
        """
        Validate the optional project/team of a new activity.

        Returns the project id to record, filled in from the team when only
        the team was given.
        """
        if duration_minutes is None or duration_minutes < 0:
            raise InvalidValue("duration_minutes must be zero or positive", {"duration_minutes": duration_minutes})

        if project_id is not None and project_crud.get_project(db, project_id) is None:
            raise DanglingReference("project", project_id)

        if team_id is not None:
            team = team_crud.get_team(db, team_id)
            if team is None:
                raise DanglingReference("team", team_id)
            if project_id is not None and team.project_id != project_id:
                raise InvalidValue(
                    f"Team {team_id} does not belong to project {project_id}",
                    {"team_id": team_id, "project_id": project_id},
                )
            return team.project_id

        return project_id

    def activity_project(self, db: Session, activity: ActivityLog) -> Optional[Project]:
        if activity.project_id is not None:
            return project_crud.get_project(db, activity.project_id)
        if activity.team_id is not None:
            team = team_crud.get_team(db, activity.team_id)
            if team is not None:
                return project_crud.get_project(db, team.project_id)
        return None

    def check_approver(self, db: Session, approver: Optional[User], activity: ActivityLog) -> None:
        """
        Only admins, or the charity that owns the activity's project, may
        approve. Activities with no project or team can only be approved by
        an admin.
        """
        if approver is None or not approver.is_active:
            raise Unauthorized("Approver is not an active user")

        if approver.role == UserRole.admin:
            return

        if approver.role != UserRole.charity:
            raise Unauthorized(
                "Only charities and admins can approve activity",
                {"approver_id": approver.id, "role": approver.role.value},
            )

        charity = charity_profile_crud.get_profile_by_user_id(db, approver.id)
        project = self.activity_project(db, activity)
        if charity is None or project is None or project.charity_id != charity.id:
            raise Unauthorized(
                f"User {approver.id} is not authorised to approve activity {activity.id}",
                {"approver_id": approver.id, "activity_id": activity.id},
            )

    # ========================================
    # ACTOR AUTHORITY
    # ========================================

    def require_admin(self, actor: Account) -> None:
        if actor.role != UserRole.admin:
            raise Unauthorized("Admin role required", {"user_id": actor.user.id})

    def require_self_or_admin(self, actor: Account, volunteer_id: int) -> None:
        if actor.role == UserRole.admin:
            return
        if actor.role == UserRole.volunteer and actor.profile.id == volunteer_id:
            return
        raise Unauthorized(
            f"User {actor.user.id} cannot act for volunteer {volunteer_id}",
            {"user_id": actor.user.id, "volunteer_id": volunteer_id},
        )

    def require_project_authority(self, actor: Account, project: Project) -> None:
        if actor.role == UserRole.admin:
            return
        if actor.role == UserRole.charity and actor.profile.id == project.charity_id:
            return
        raise Unauthorized(
            f"User {actor.user.id} does not manage project {project.id}",
            {"user_id": actor.user.id, "project_id": project.id},
        )

    def require_team_authority(self, db: Session, actor: Account, team: Team) -> None:
        project = project_crud.get_project(db, team.project_id)
        self.require_project_authority(actor, project)


invariant_engine = InvariantEngine()
