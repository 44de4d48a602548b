# volunteerhub/models/activity.py
from sqlmodel import SQLModel, Field, Column, Text
from sqlalchemy import Integer, ForeignKey
from typing import Optional
from datetime import datetime, date
from enum import Enum

class ActivityType(str, Enum):
    hours_logged = "hours_logged"
    task_completed = "task_completed"
    training_attended = "training_attended"

class ActivityLog(SQLModel, table=True):
    """
    One volunteer contribution event.

    points_awarded only counts toward the volunteer's balance once
    approved_by is set; approval is one-way.
    """
    __tablename__ = "activity_logs"

    id: Optional[int] = Field(default=None, primary_key=True)
    volunteer_id: int = Field(foreign_key="volunteer_profiles.id", index=True)
    project_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True),
    )
    team_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True),
    )
    activity_type: ActivityType = Field(index=True)
    duration_minutes: int = Field(default=0, ge=0)
    activity_date: date = Field(..., index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    points_awarded: int = Field(default=0, ge=0)
    approved_by: Optional[int] = Field(default=None, foreign_key="users.id", index=True)
    approved_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_approved(self) -> bool:
        return self.approved_by is not None
