# volunteerhub/models/team.py
from sqlmodel import SQLModel, Field, Relationship, Column, Text
from sqlalchemy import Integer, ForeignKey, UniqueConstraint
from typing import Optional, List
from datetime import datetime

class Team(SQLModel, table=True):
    __tablename__ = "teams"
    __table_args__ = (UniqueConstraint("project_id", "name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    project_id: int = Field(
        sa_column=Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    name: str = Field(max_length=100)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    max_members: int = Field(ge=1)
    team_leader_id: Optional[int] = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("volunteer_profiles.id", ondelete="SET NULL"), nullable=True),
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    project: "Project" = Relationship(back_populates="teams")
    memberships: List["TeamMembership"] = Relationship(
        back_populates="team",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )
    messages: List["Message"] = Relationship(
        back_populates="team",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )

class TeamMembership(SQLModel, table=True):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "volunteer_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(
        sa_column=Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    volunteer_id: int = Field(foreign_key="volunteer_profiles.id", index=True)
    is_active: bool = Field(default=True, index=True)
    joined_at: datetime = Field(default_factory=datetime.utcnow)
    left_at: Optional[datetime] = Field(default=None)

    # Relationships
    team: Team = Relationship(back_populates="memberships")

# Import references for relationships
from volunteerhub.models.project import Project
from volunteerhub.models.message import Message
