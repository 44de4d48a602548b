"""
Membership Service - team join/leave and leadership
"""

import logging
from typing import List, Optional

from sqlmodel import Session

from volunteerhub.core.audit_log import AuditEventType, queue_event
from volunteerhub.core.exceptions import AlreadyMember, NotFound, NotMember
from volunteerhub.crud.team import membership_crud, team_crud
from volunteerhub.crud.user import volunteer_profile_crud
from volunteerhub.models.team import Team, TeamMembership
from volunteerhub.services.invariants import InvariantOperation, invariant_engine

logger = logging.getLogger(__name__)


class MembershipService:
    """All writes take the team row lock first."""

    @staticmethod
    def join(db: Session, volunteer_id: int, team_id: int) -> TeamMembership:
        if volunteer_profile_crud.get_profile(db, volunteer_id) is None:
            raise NotFound("volunteer", volunteer_id)

        team = invariant_engine.lock_team(db, team_id)

        membership = membership_crud.get_membership(db, team_id, volunteer_id)
        if membership is not None and membership.is_active:
            raise AlreadyMember(team_id, volunteer_id)

        invariant_engine.validate(db, InvariantOperation.MEMBERSHIP_ACTIVATE, team=team)

        if membership is None:
            membership = membership_crud.create_membership(db, team_id, volunteer_id)
        else:
            membership = membership_crud.reactivate(db, membership)

        logger.info(f"Volunteer {volunteer_id} joined team {team_id}")
        queue_event(
            db,
            AuditEventType.MEMBERSHIP_JOINED,
            entity_type="team",
            entity_id=team_id,
            details={"volunteer_id": volunteer_id},
        )
        return membership

    @staticmethod
    def leave(db: Session, volunteer_id: int, team_id: int) -> TeamMembership:
        """Soft-close the membership, clearing the leader seat if it was theirs."""
        team = invariant_engine.lock_team(db, team_id)

        membership = membership_crud.get_membership(db, team_id, volunteer_id)
        if membership is None or not membership.is_active:
            raise NotMember(team_id, volunteer_id)

        membership_crud.deactivate(db, membership)
        queue_event(
            db,
            AuditEventType.MEMBERSHIP_LEFT,
            entity_type="team",
            entity_id=team_id,
            details={"volunteer_id": volunteer_id},
        )

        if invariant_engine.release_leadership(db, team, volunteer_id):
            queue_event(
                db,
                AuditEventType.LEADER_CLEARED,
                entity_type="team",
                entity_id=team_id,
                details={"volunteer_id": volunteer_id},
            )

        logger.info(f"Volunteer {volunteer_id} left team {team_id}")
        return membership

    @staticmethod
    def assign_leader(db: Session, team_id: int, volunteer_id: Optional[int]) -> Team:
        """Set the team leader, or clear it when volunteer_id is None."""
        team = invariant_engine.lock_team(db, team_id)

        if volunteer_id is None:
            previous = team.team_leader_id
            team_crud.set_leader(db, team, None)
            if previous is not None:
                queue_event(
                    db,
                    AuditEventType.LEADER_CLEARED,
                    entity_type="team",
                    entity_id=team_id,
                    details={"volunteer_id": previous},
                )
            return team

        invariant_engine.validate(db, InvariantOperation.LEADER_ASSIGN, team=team, volunteer_id=volunteer_id)
        team_crud.set_leader(db, team, volunteer_id)

        logger.info(f"Volunteer {volunteer_id} is now leader of team {team_id}")
        queue_event(
            db,
            AuditEventType.LEADER_ASSIGNED,
            entity_type="team",
            entity_id=team_id,
            details={"volunteer_id": volunteer_id},
        )
        return team

    @staticmethod
    def list_active_members(db: Session, team_id: int) -> List[TeamMembership]:
        if team_crud.get_team(db, team_id) is None:
            raise NotFound("team", team_id)
        return membership_crud.get_active_members(db, team_id)
