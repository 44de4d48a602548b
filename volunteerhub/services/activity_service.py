"""
Activity & Scoring Service - approval workflow and the points ledger
"""

import logging
from typing import List, Optional
from datetime import date, datetime, time

from sqlmodel import Session

from volunteerhub.core.audit_log import AuditEventType, queue_event
from volunteerhub.core.exceptions import InvalidValue, NotFound
from volunteerhub.crud.activity import activity_crud
from volunteerhub.crud.user import user_crud, volunteer_profile_crud
from volunteerhub.models.activity import ActivityLog, ActivityType
from volunteerhub.schemas.points import PointsCorrection, PointsSummary, ReconciliationReport
from volunteerhub.services.invariants import InvariantOperation, invariant_engine

logger = logging.getLogger(__name__)


class ActivityService:
    """
    Pending -> Approved is the only transition. An approved row is final:
    its points_awarded never changes and it is counted exactly once in the
    volunteer's cached balance.
    """

    # ========================================
    # LOGGING
    # ========================================

    @staticmethod
    def log_activity(
        db: Session,
        volunteer_id: int,
        activity_type: ActivityType,
        duration_minutes: int,
        activity_date: date,
        project_id: Optional[int] = None,
        team_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> ActivityLog:
        """Record a contribution as pending with zero points."""
        if volunteer_profile_crud.get_profile(db, volunteer_id) is None:
            raise NotFound("volunteer", volunteer_id)

        try:
            activity_type = ActivityType(activity_type)
        except ValueError:
            raise InvalidValue(f"Unknown activity type '{activity_type}'")

        if isinstance(activity_date, datetime):
            activity_date = activity_date.date()
        elif not isinstance(activity_date, date):
            raise InvalidValue("activity_date must be a date", {"activity_date": repr(activity_date)})

        project_id = invariant_engine.validate(
            db,
            InvariantOperation.ACTIVITY_LOG,
            duration_minutes=duration_minutes,
            project_id=project_id,
            team_id=team_id,
        )

        activity = activity_crud.create_activity(
            db,
            volunteer_id=volunteer_id,
            activity_type=activity_type,
            duration_minutes=duration_minutes,
            activity_date=activity_date,
            project_id=project_id,
            team_id=team_id,
            description=description,
        )
        queue_event(
            db,
            AuditEventType.ACTIVITY_LOGGED,
            entity_type="activity",
            entity_id=activity.id,
            details={"volunteer_id": volunteer_id, "activity_type": activity_type.value},
        )
        return activity

    # ========================================
    # APPROVAL
    # ========================================

    @staticmethod
    def approve(db: Session, activity_id: int, approver_id: int, points_to_award: int) -> ActivityLog:
        """
        Approve a pending activity and credit its points.

        The activity row is locked before the approved check, so two
        concurrent approvals cannot both credit. Approving an already
        approved activity returns it unchanged.
        """
        activity = activity_crud.get_activity_for_update(db, activity_id)
        if activity is None:
            raise NotFound("activity", activity_id)

        approver = user_crud.get_user(db, approver_id)
        invariant_engine.validate(db, InvariantOperation.ACTIVITY_APPROVE, approver=approver, activity=activity)

        if activity.is_approved:
            logger.info(
                f"Activity {activity_id} already approved by user {activity.approved_by}; ignoring re-approval"
            )
            return activity

        if isinstance(points_to_award, bool) or not isinstance(points_to_award, int) or points_to_award < 0:
            raise InvalidValue("points_to_award must be a non-negative integer", {"points": points_to_award})

        profile = volunteer_profile_crud.get_profile_for_update(db, activity.volunteer_id)
        if profile is None:
            raise NotFound("volunteer", activity.volunteer_id)

        activity_crud.mark_approved(db, activity, approver_id, points_to_award)

        profile.points += points_to_award
        activity_moment = datetime.combine(activity.activity_date, time.min)
        if profile.last_activity is None or activity_moment > profile.last_activity:
            profile.last_activity = activity_moment
        profile.updated_at = datetime.utcnow()
        db.add(profile)
        db.flush()

        logger.info(
            f"Awarded {points_to_award} points to volunteer {profile.id} for activity {activity_id}"
        )
        queue_event(
            db,
            AuditEventType.ACTIVITY_APPROVED,
            user_id=approver_id,
            entity_type="activity",
            entity_id=activity_id,
            details={"volunteer_id": profile.id, "points": points_to_award, "new_balance": profile.points},
        )
        return activity

    @staticmethod
    def reject(db: Session, activity_id: int, actor_id: int) -> ActivityLog:
        """
        Discard a pending activity.

        There is no rejected state in the data model, so rejection deletes
        the pending row. Approved rows are final and cannot be rejected.
        """
        activity = activity_crud.get_activity_for_update(db, activity_id)
        if activity is None:
            raise NotFound("activity", activity_id)

        actor = user_crud.get_user(db, actor_id)
        invariant_engine.validate(db, InvariantOperation.ACTIVITY_APPROVE, approver=actor, activity=activity)

        if activity.is_approved:
            raise InvalidValue(f"Activity {activity_id} is already approved", {"activity_id": activity_id})

        activity_crud.delete_activity(db, activity)
        queue_event(
            db,
            AuditEventType.ACTIVITY_REJECTED,
            user_id=actor_id,
            entity_type="activity",
            entity_id=activity_id,
            details={"volunteer_id": activity.volunteer_id},
        )
        return activity

    # ========================================
    # BALANCE AND RECONCILIATION
    # ========================================

    @staticmethod
    def list_activities(
        db: Session, volunteer_id: int, approved: Optional[bool] = None, limit: int = 100
    ) -> List[ActivityLog]:
        if volunteer_profile_crud.get_profile(db, volunteer_id) is None:
            raise NotFound("volunteer", volunteer_id)
        return activity_crud.get_volunteer_activities(db, volunteer_id, approved=approved, limit=limit)

    @staticmethod
    def points_summary(db: Session, volunteer_id: int) -> PointsSummary:
        profile = volunteer_profile_crud.get_profile(db, volunteer_id)
        if profile is None:
            raise NotFound("volunteer", volunteer_id)

        return PointsSummary(
            volunteer_id=volunteer_id,
            cached_points=profile.points,
            ledger_points=activity_crud.sum_approved_points(db, volunteer_id),
            pending_activities=activity_crud.count_pending(db, volunteer_id),
            last_activity=profile.last_activity,
        )

    @staticmethod
    def reconcile_points(db: Session, volunteer_id: int) -> Optional[PointsCorrection]:
        """Reset the cached balance to the ledger total if they differ."""
        profile = volunteer_profile_crud.get_profile_for_update(db, volunteer_id)
        if profile is None:
            raise NotFound("volunteer", volunteer_id)

        ledger_points = activity_crud.sum_approved_points(db, volunteer_id)
        if profile.points == ledger_points:
            return None

        correction = PointsCorrection(
            volunteer_id=volunteer_id,
            previous_points=profile.points,
            corrected_points=ledger_points,
        )
        logger.warning(
            f"Points drift for volunteer {volunteer_id}: cached {profile.points}, ledger {ledger_points}"
        )
        profile.points = ledger_points
        profile.updated_at = datetime.utcnow()
        db.add(profile)
        db.flush()

        queue_event(
            db,
            AuditEventType.POINTS_RECONCILED,
            entity_type="volunteer",
            entity_id=volunteer_id,
            details=correction.model_dump(),
        )
        return correction

    @staticmethod
    def reconcile_all(db: Session) -> ReconciliationReport:
        report = ReconciliationReport()
        for volunteer_id in volunteer_profile_crud.list_profile_ids(db):
            report.checked += 1
            correction = ActivityService.reconcile_points(db, volunteer_id)
            if correction is not None:
                report.corrections.append(correction)
        return report
