# volunteerhub/schemas/account.py
"""
Account schemas.

An account is exactly one of volunteer, charity or admin. The stored rows
(a user plus at most one profile) cannot express that XOR, so it is
modelled here as a discriminated union built once and never mutated.
"""
from pydantic import BaseModel, EmailStr, Field, model_validator
from typing import Optional, Union, Literal, Annotated
from datetime import datetime

from volunteerhub.models.user import UserRole

class RegistrationRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password_hash: str = Field(..., min_length=1, max_length=255)
    role: UserRole = UserRole.volunteer
    bio: Optional[str] = None
    organization_name: Optional[str] = Field(None, max_length=200)
    license_number: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None

    @model_validator(mode="after")
    def check_profile_fields(self):
        if self.role == UserRole.charity:
            if not self.organization_name or not self.license_number:
                raise ValueError("Charity registration requires organization_name and license_number")
        elif self.organization_name or self.license_number:
            raise ValueError("organization_name and license_number are only valid for charities")
        return self

class UserSummary(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    is_active: bool

    class Config:
        from_attributes = True
        frozen = True

class VolunteerProfileSummary(BaseModel):
    id: int
    user_id: int
    points: int
    last_activity: Optional[datetime] = None

    class Config:
        from_attributes = True
        frozen = True

class CharityProfileSummary(BaseModel):
    id: int
    user_id: int
    organization_name: str
    license_number: str
    is_verified: bool

    class Config:
        from_attributes = True
        frozen = True

class VolunteerAccount(BaseModel):
    role: Literal[UserRole.volunteer] = UserRole.volunteer
    user: UserSummary
    profile: VolunteerProfileSummary

    class Config:
        frozen = True

class CharityAccount(BaseModel):
    role: Literal[UserRole.charity] = UserRole.charity
    user: UserSummary
    profile: CharityProfileSummary

    class Config:
        frozen = True

class AdminAccount(BaseModel):
    role: Literal[UserRole.admin] = UserRole.admin
    user: UserSummary

    class Config:
        frozen = True

Account = Annotated[
    Union[VolunteerAccount, CharityAccount, AdminAccount],
    Field(discriminator="role"),
]
