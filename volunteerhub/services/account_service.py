"""
Account Service - registration and the volunteer/charity/admin account union
"""

import logging
from typing import Optional, Union

from sqlmodel import Session

from volunteerhub.core.audit_log import AuditEventType, queue_event
from volunteerhub.core.exceptions import InvalidValue, NotFound, Unauthorized
from volunteerhub.core.identity import Principal
from volunteerhub.crud.user import charity_profile_crud, user_crud, volunteer_profile_crud
from volunteerhub.models.user import CharityProfile, User, UserRole, VolunteerProfile
from volunteerhub.schemas.account import (
    Account,
    AdminAccount,
    CharityAccount,
    CharityProfileSummary,
    RegistrationRequest,
    UserSummary,
    VolunteerAccount,
    VolunteerProfileSummary,
)

logger = logging.getLogger(__name__)


def build_account(
    user: User, profile: Optional[Union[VolunteerProfile, CharityProfile]] = None
) -> Account:
    """Snapshot a user and its profile as the matching account variant."""
    summary = UserSummary.model_validate(user)
    if user.role == UserRole.volunteer:
        return VolunteerAccount(user=summary, profile=VolunteerProfileSummary.model_validate(profile))
    if user.role == UserRole.charity:
        return CharityAccount(user=summary, profile=CharityProfileSummary.model_validate(profile))
    return AdminAccount(user=summary)


class AccountService:

    @staticmethod
    def register(db: Session, payload: RegistrationRequest) -> Account:
        """Create the user and exactly the profile its role requires."""
        if user_crud.get_user_by_email(db, payload.email) is not None:
            raise InvalidValue(f"Email {payload.email} is already registered", {"field": "email"})

        if payload.role == UserRole.charity and charity_profile_crud.get_profile_by_license(
            db, payload.license_number
        ):
            raise InvalidValue(
                f"License number {payload.license_number} is already registered",
                {"field": "license_number"},
            )

        user = user_crud.create_user(
            db,
            name=payload.name,
            email=payload.email,
            password_hash=payload.password_hash,
            role=payload.role,
        )

        profile = None
        if payload.role == UserRole.volunteer:
            profile = volunteer_profile_crud.create_profile(db, user.id, bio=payload.bio)
        elif payload.role == UserRole.charity:
            profile = charity_profile_crud.create_profile(
                db,
                user.id,
                organization_name=payload.organization_name,
                license_number=payload.license_number,
                description=payload.description,
            )

        logger.info(f"Registered {payload.role.value} account for user {user.id}")
        queue_event(db, AuditEventType.ACCOUNT_REGISTERED, user_id=user.id, details={"role": payload.role.value})
        return build_account(user, profile)

    @staticmethod
    def load_account(db: Session, user_id: int) -> Account:
        user = user_crud.get_user(db, user_id)
        if user is None:
            raise NotFound("user", user_id)

        volunteer = volunteer_profile_crud.get_profile_by_user_id(db, user_id)
        charity = charity_profile_crud.get_profile_by_user_id(db, user_id)

        expected = {
            UserRole.volunteer: (volunteer is not None, charity is None),
            UserRole.charity: (charity is not None, volunteer is None),
            UserRole.admin: (volunteer is None, charity is None),
        }[user.role]
        if not all(expected):
            logger.error(f"User {user_id} has profiles inconsistent with role {user.role.value}")
            raise InvalidValue(
                f"Account {user_id} does not match its role {user.role.value}",
                {"user_id": user_id, "role": user.role.value},
            )

        return build_account(user, volunteer or charity)

    @staticmethod
    def resolve_principal(db: Session, principal: Principal) -> Account:
        """
        Load the caller's account, re-checking the role the authentication
        layer asserted against the stored one.
        """
        try:
            account = AccountService.load_account(db, principal.user_id)
        except NotFound:
            raise Unauthorized(f"Unknown user {principal.user_id}", {"user_id": principal.user_id})

        if not account.user.is_active:
            raise Unauthorized(f"User {principal.user_id} is inactive", {"user_id": principal.user_id})

        if account.role != principal.role:
            logger.warning(
                f"User {principal.user_id} asserted role {principal.role.value} but is {account.role.value}"
            )
            raise Unauthorized(
                "Asserted role does not match account role",
                {"user_id": principal.user_id, "asserted": principal.role.value},
            )
        return account

    @staticmethod
    def set_user_active(db: Session, user_id: int, is_active: bool) -> User:
        """Soft-delete or restore a user. Rows are never removed."""
        user = user_crud.get_user(db, user_id)
        if user is None:
            raise NotFound("user", user_id)

        if user.is_active != is_active:
            user_crud.set_active(db, user, is_active)
            queue_event(
                db,
                AuditEventType.ACCOUNT_ACTIVATED if is_active else AuditEventType.ACCOUNT_DEACTIVATED,
                user_id=user_id,
            )
        return user

    @staticmethod
    def verify_charity(db: Session, charity_id: int, is_verified: bool = True) -> CharityProfile:
        profile = charity_profile_crud.get_profile(db, charity_id)
        if profile is None:
            raise NotFound("charity", charity_id)
        return charity_profile_crud.set_verified(db, profile, is_verified)
