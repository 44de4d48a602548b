# volunteerhub/models/skill.py
from sqlmodel import SQLModel, Field, Column, Text
from sqlalchemy import UniqueConstraint
from typing import Optional
from datetime import datetime

MIN_PROFICIENCY = 1
MAX_PROFICIENCY = 5

class Skill(SQLModel, table=True):
    __tablename__ = "skills"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100, unique=True, index=True)
    category: Optional[str] = Field(default=None, max_length=50)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=datetime.utcnow)

class VolunteerSkill(SQLModel, table=True):
    __tablename__ = "volunteer_skills"
    __table_args__ = (UniqueConstraint("volunteer_id", "skill_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    volunteer_id: int = Field(foreign_key="volunteer_profiles.id", index=True)
    skill_id: int = Field(foreign_key="skills.id", index=True)
    proficiency: int = Field(default=MIN_PROFICIENCY, ge=MIN_PROFICIENCY, le=MAX_PROFICIENCY)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
