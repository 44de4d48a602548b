# volunteerhub/crud/activity.py
from sqlmodel import Session, select, func
from typing import List, Optional
from datetime import date, datetime

from volunteerhub.models.activity import ActivityLog, ActivityType

class ActivityLogCRUD:

    def create_activity(
        self,
        db: Session,
        volunteer_id: int,
        activity_type: ActivityType,
        duration_minutes: int,
        activity_date: date,
        project_id: Optional[int] = None,
        team_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> ActivityLog:
        """Insert a pending activity with no points."""
        activity = ActivityLog(
            volunteer_id=volunteer_id,
            project_id=project_id,
            team_id=team_id,
            activity_type=activity_type,
            duration_minutes=duration_minutes,
            activity_date=activity_date,
            description=description,
            points_awarded=0,
        )
        db.add(activity)
        db.flush()
        return activity

    def get_activity_for_update(self, db: Session, activity_id: int) -> Optional[ActivityLog]:
        """Get activity holding a row lock, so approval is check-then-set."""
        statement = (
            select(ActivityLog)
            .where(ActivityLog.id == activity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.exec(statement).first()

    def mark_approved(self, db: Session, activity: ActivityLog, approver_id: int, points: int) -> ActivityLog:
        activity.approved_by = approver_id
        activity.approved_at = datetime.utcnow()
        activity.points_awarded = points
        db.add(activity)
        db.flush()
        return activity

    def delete_activity(self, db: Session, activity: ActivityLog) -> None:
        db.delete(activity)
        db.flush()

    def get_volunteer_activities(
        self,
        db: Session,
        volunteer_id: int,
        approved: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[ActivityLog]:
        """Get a volunteer's activities, newest first."""
        query = select(ActivityLog).where(ActivityLog.volunteer_id == volunteer_id)
        if approved is True:
            query = query.where(ActivityLog.approved_by.is_not(None))
        elif approved is False:
            query = query.where(ActivityLog.approved_by.is_(None))
        query = query.order_by(ActivityLog.activity_date.desc(), ActivityLog.id.desc())
        return list(db.exec(query.offset(skip).limit(limit)).all())

    def sum_approved_points(self, db: Session, volunteer_id: int) -> int:
        """Ledger total: the source of truth for the cached balance."""
        statement = select(func.coalesce(func.sum(ActivityLog.points_awarded), 0)).where(
            ActivityLog.volunteer_id == volunteer_id,
            ActivityLog.approved_by.is_not(None),
        )
        return int(db.exec(statement).one())

    def count_pending(self, db: Session, volunteer_id: int) -> int:
        statement = select(func.count(ActivityLog.id)).where(
            ActivityLog.volunteer_id == volunteer_id,
            ActivityLog.approved_by.is_(None),
        )
        return db.exec(statement).one()

activity_crud = ActivityLogCRUD()
