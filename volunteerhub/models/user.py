# volunteerhub/models/user.py
from sqlmodel import SQLModel, Field, Column, Text
from typing import Optional
from datetime import datetime
from enum import Enum

class UserRole(str, Enum):
    volunteer = "volunteer"
    charity = "charity"
    admin = "admin"

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=100)
    email: str = Field(unique=True, index=True, max_length=255)
    password_hash: str = Field(max_length=255)  # produced by the auth service
    role: UserRole = Field(index=True)
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class VolunteerProfile(SQLModel, table=True):
    __tablename__ = "volunteer_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    bio: Optional[str] = Field(default=None, sa_column=Column(Text))
    points: int = Field(default=0, ge=0)  # cached sum of approved activity points
    last_activity: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class CharityProfile(SQLModel, table=True):
    __tablename__ = "charity_profiles"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", unique=True, index=True)
    organization_name: str = Field(max_length=200)
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    license_number: str = Field(max_length=50, unique=True, index=True)
    is_verified: bool = Field(default=False, index=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
