# volunteerhub/crud/user.py
from sqlmodel import Session, select
from typing import Optional
from datetime import datetime

from volunteerhub.models.user import User, UserRole, VolunteerProfile, CharityProfile

class UserCRUD:

    def create_user(
        self, db: Session, name: str, email: str, password_hash: str, role: UserRole
    ) -> User:
        """Insert a user row; the caller commits."""
        user = User(name=name, email=email.lower(), password_hash=password_hash, role=role)
        db.add(user)
        db.flush()
        return user

    def get_user(self, db: Session, user_id: int) -> Optional[User]:
        """Get user by ID."""
        return db.get(User, user_id)

    def get_user_by_email(self, db: Session, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        return db.exec(select(User).where(User.email == email.lower())).first()

    def set_active(self, db: Session, user: User, is_active: bool) -> User:
        """Toggle the soft-delete flag."""
        user.is_active = is_active
        user.updated_at = datetime.utcnow()
        db.add(user)
        db.flush()
        return user

class VolunteerProfileCRUD:

    def create_profile(self, db: Session, user_id: int, bio: Optional[str] = None) -> VolunteerProfile:
        profile = VolunteerProfile(user_id=user_id, bio=bio)
        db.add(profile)
        db.flush()
        return profile

    def get_profile(self, db: Session, volunteer_id: int) -> Optional[VolunteerProfile]:
        """Get volunteer profile by ID."""
        return db.get(VolunteerProfile, volunteer_id)

    def get_profile_for_update(self, db: Session, volunteer_id: int) -> Optional[VolunteerProfile]:
        """Get volunteer profile holding a row lock until commit."""
        statement = (
            select(VolunteerProfile)
            .where(VolunteerProfile.id == volunteer_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.exec(statement).first()

    def get_profile_by_user_id(self, db: Session, user_id: int) -> Optional[VolunteerProfile]:
        """Get volunteer profile by user ID."""
        return db.exec(select(VolunteerProfile).where(VolunteerProfile.user_id == user_id)).first()

    def list_profile_ids(self, db: Session) -> list:
        return list(db.exec(select(VolunteerProfile.id).order_by(VolunteerProfile.id)).all())

class CharityProfileCRUD:

    def create_profile(
        self,
        db: Session,
        user_id: int,
        organization_name: str,
        license_number: str,
        description: Optional[str] = None,
    ) -> CharityProfile:
        profile = CharityProfile(
            user_id=user_id,
            organization_name=organization_name,
            license_number=license_number,
            description=description,
        )
        db.add(profile)
        db.flush()
        return profile

    def get_profile(self, db: Session, charity_id: int) -> Optional[CharityProfile]:
        """Get charity profile by ID."""
        return db.get(CharityProfile, charity_id)

    def get_profile_by_user_id(self, db: Session, user_id: int) -> Optional[CharityProfile]:
        """Get charity profile by user ID."""
        return db.exec(select(CharityProfile).where(CharityProfile.user_id == user_id)).first()

    def get_profile_by_license(self, db: Session, license_number: str) -> Optional[CharityProfile]:
        return db.exec(
            select(CharityProfile).where(CharityProfile.license_number == license_number)
        ).first()

    def set_verified(self, db: Session, profile: CharityProfile, is_verified: bool) -> CharityProfile:
        profile.is_verified = is_verified
        profile.updated_at = datetime.utcnow()
        db.add(profile)
        db.flush()
        return profile

user_crud = UserCRUD()
volunteer_profile_crud = VolunteerProfileCRUD()
charity_profile_crud = CharityProfileCRUD()
