# volunteerhub/models/project.py
from sqlmodel import SQLModel, Field, Relationship, Column, Text
from sqlalchemy import Integer, ForeignKey, UniqueConstraint
from typing import Optional, List
from datetime import datetime
from enum import Enum

class ProjectStatus(str, Enum):
    pending = "pending"
    active = "active"
    completed = "completed"
    cancelled = "cancelled"

# Allowed status transitions; completed and cancelled are terminal.
PROJECT_STATUS_TRANSITIONS = {
    ProjectStatus.pending: {ProjectStatus.active, ProjectStatus.cancelled},
    ProjectStatus.active: {ProjectStatus.completed, ProjectStatus.cancelled},
    ProjectStatus.completed: set(),
    ProjectStatus.cancelled: set(),
}

class Project(SQLModel, table=True):
    __tablename__ = "projects"

    id: Optional[int] = Field(default=None, primary_key=True)
    charity_id: int = Field(foreign_key="charity_profiles.id", index=True)
    name: str = Field(max_length=200, index=True)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    status: ProjectStatus = Field(default=ProjectStatus.pending, index=True)
    required_volunteers: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    teams: List["Team"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
    required_skills: List["ProjectSkill"] = Relationship(
        back_populates="project",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

class ProjectSkill(SQLModel, table=True):
    __tablename__ = "project_skills"
    __table_args__ = (UniqueConstraint("project_id", "skill_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(
        sa_column=Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    skill_id: int = Field(foreign_key="skills.id", index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    project: Project = Relationship(back_populates="required_skills")

# Import references for relationships
from volunteerhub.models.team import Team
