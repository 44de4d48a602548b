"""
Coordinator - the single entry point for every request.

Each call runs its work in one database transaction. Any failure rolls the
whole transaction back; ValidationErrors come back as client errors,
conflicts are retried with exponential backoff, and storage failures are
retried a small bounded number of times before being reported.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Generic, List, Optional, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from volunteerhub.core.audit_log import (
    AuditLogger,
    discard_queued_events,
    flush_queued_events,
    get_audit_logger,
)
from volunteerhub.core.config import Settings, settings
from volunteerhub.core.exceptions import (
    ConflictError,
    CoordinationError,
    StorageError,
    Unauthorized,
    ValidationError,
    ViolationKind,
)
from volunteerhub.core.identity import Principal
from volunteerhub.crud.team import membership_crud
from volunteerhub.database.engine import get_engine
from volunteerhub.database.errors import translate_db_error
from volunteerhub.models.activity import ActivityLog, ActivityType
from volunteerhub.models.message import Message
from volunteerhub.models.project import Project, ProjectSkill, ProjectStatus
from volunteerhub.models.rating import Rating
from volunteerhub.models.skill import Skill, VolunteerSkill
from volunteerhub.models.team import Team, TeamMembership
from volunteerhub.models.user import CharityProfile, User, UserRole
from volunteerhub.schemas.account import Account, RegistrationRequest
from volunteerhub.schemas.points import PointsSummary
from volunteerhub.services.account_service import AccountService
from volunteerhub.services.activity_service import ActivityService
from volunteerhub.services.invariants import invariant_engine
from volunteerhub.services.membership_service import MembershipService
from volunteerhub.services.message_service import MessageService
from volunteerhub.services.project_service import ProjectService
from volunteerhub.services.rating_service import RatingService
from volunteerhub.services.skill_service import SkillService

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResultStatus(str, Enum):
    OK = "ok"
    CLIENT_ERROR = "client_error"  # validation failure, not retryable
    CONFLICT = "conflict"  # retries exhausted, safe to retry later
    SERVER_ERROR = "server_error"  # store unavailable


@dataclass
class CoordinatorResult(Generic[T]):
    """Uniform outcome of a coordinated request."""
    status: ResultStatus
    value: Optional[T] = None
    error: Optional[CoordinationError] = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def kind(self) -> Optional[ViolationKind]:
        """Violation kind for client errors."""
        if isinstance(self.error, ValidationError):
            return self.error.kind
        return None

    @property
    def retryable(self) -> bool:
        return self.status in (ResultStatus.CONFLICT, ResultStatus.SERVER_ERROR)

    def unwrap(self) -> T:
        """Return the value or raise the error."""
        if self.error is not None:
            raise self.error
        return self.value


class Coordinator:
    """Runs service calls under one transaction per request."""

    def __init__(
        self,
        engine: Optional[Engine] = None,
        config: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.engine = engine or get_engine()
        self.config = config or settings
        self.audit_logger = audit_logger or get_audit_logger()
        self._sleep = sleep

    # ========================================
    # TRANSACTION BOUNDARY
    # ========================================

    def execute(
        self,
        operation: str,
        work: Callable[[Session], T],
        principal: Optional[Principal] = None,
    ) -> CoordinatorResult[T]:
        """
        Run work(db) in a fresh transaction and commit it.

        work may call any number of services; they all commit or roll back
        together. The whole unit is re-run from scratch on conflict.
        """
        conflicts = 0
        storage_failures = 0
        attempt = 0
        user_id = principal.user_id if principal else None

        while True:
            attempt += 1
            with Session(self.engine, expire_on_commit=False) as db:
                try:
                    value = work(db)
                    db.commit()
                except ValidationError as e:
                    db.rollback()
                    discard_queued_events(db)
                    return self._rejected(operation, e, user_id, attempt)
                except (SQLAlchemyError, ConflictError, StorageError) as e:
                    db.rollback()
                    discard_queued_events(db)
                    error = translate_db_error(e) if isinstance(e, SQLAlchemyError) else e
                except Exception:
                    db.rollback()
                    discard_queued_events(db)
                    logger.exception(f"{operation} failed unexpectedly")
                    raise
                else:
                    flush_queued_events(db, self.audit_logger)
                    return CoordinatorResult(ResultStatus.OK, value=value, attempts=attempt)

            if isinstance(error, ValidationError):
                return self._rejected(operation, error, user_id, attempt)

            if isinstance(error, ConflictError):
                if conflicts >= self.config.CONFLICT_MAX_RETRIES:
                    logger.warning(f"{operation} gave up after {attempt} attempts: {error.message}")
                    return CoordinatorResult(ResultStatus.CONFLICT, error=error, attempts=attempt)
                delay = self.config.CONFLICT_BACKOFF_SECONDS * (2 ** conflicts)
                conflicts += 1
                logger.info(f"{operation} conflicted (attempt {attempt}), retrying in {delay:.3f}s")
            else:
                if storage_failures >= self.config.STORAGE_MAX_RETRIES:
                    logger.error(f"{operation} storage failure: {error.message}")
                    return CoordinatorResult(ResultStatus.SERVER_ERROR, error=error, attempts=attempt)
                delay = self.config.CONFLICT_BACKOFF_SECONDS
                storage_failures += 1
                logger.warning(f"{operation} storage failure (attempt {attempt}), retrying: {error.message}")
            self._sleep(delay)

    def _rejected(
        self, operation: str, error: ValidationError, user_id: Optional[int], attempt: int
    ) -> CoordinatorResult:
        logger.info(f"{operation} rejected: {error.kind.value}: {error.message}")
        self.audit_logger.log_violation(operation, error.kind.value, error.message, user_id=user_id)
        return CoordinatorResult(ResultStatus.CLIENT_ERROR, error=error, attempts=attempt)

    def _as(
        self,
        operation: str,
        principal: Principal,
        work: Callable[[Session, Account], T],
    ) -> CoordinatorResult[T]:
        """Run work with the caller's account resolved inside the transaction."""

        def run(db: Session) -> T:
            actor = AccountService.resolve_principal(db, principal)
            return work(db, actor)

        return self.execute(operation, run, principal=principal)

    @staticmethod
    def _volunteer_id(actor: Account, volunteer_id: Optional[int]) -> int:
        """Default to the caller's own volunteer profile."""
        if volunteer_id is not None:
            return volunteer_id
        if actor.role != UserRole.volunteer:
            raise Unauthorized("Only volunteers can act without naming a volunteer")
        return actor.profile.id

    # ========================================
    # ACCOUNTS
    # ========================================

    def register(self, payload: RegistrationRequest) -> CoordinatorResult[Account]:
        return self.execute("register", lambda db: AccountService.register(db, payload))

    def get_account(self, principal: Principal, user_id: Optional[int] = None) -> CoordinatorResult[Account]:
        def work(db: Session, actor: Account) -> Account:
            if user_id is None or user_id == actor.user.id:
                return actor
            return AccountService.load_account(db, user_id)

        return self._as("get_account", principal, work)

    def set_user_active(self, principal: Principal, user_id: int, is_active: bool) -> CoordinatorResult[User]:
        def work(db: Session, actor: Account) -> User:
            # Users may deactivate themselves; everything else is admin-only.
            if not (actor.user.id == user_id and not is_active):
                invariant_engine.require_admin(actor)
            return AccountService.set_user_active(db, user_id, is_active)

        return self._as("set_user_active", principal, work)

    def verify_charity(
        self, principal: Principal, charity_id: int, is_verified: bool = True
    ) -> CoordinatorResult[CharityProfile]:
        def work(db: Session, actor: Account) -> CharityProfile:
            invariant_engine.require_admin(actor)
            return AccountService.verify_charity(db, charity_id, is_verified)

        return self._as("verify_charity", principal, work)

    # ========================================
    # PROJECTS AND TEAMS
    # ========================================

    def create_project(
        self,
        principal: Principal,
        name: str,
        description: Optional[str] = None,
        required_volunteers: int = 0,
    ) -> CoordinatorResult[Project]:
        def work(db: Session, actor: Account) -> Project:
            if actor.role != UserRole.charity:
                raise Unauthorized("Only charities can create projects", {"user_id": actor.user.id})
            return ProjectService.create_project(db, actor.profile.id, name, description, required_volunteers)

        return self._as("create_project", principal, work)

    def change_project_status(
        self, principal: Principal, project_id: int, status: ProjectStatus
    ) -> CoordinatorResult[Project]:
        def work(db: Session, actor: Account) -> Project:
            invariant_engine.require_project_authority(actor, ProjectService.get_project(db, project_id))
            return ProjectService.change_status(db, project_id, status)

        return self._as("change_project_status", principal, work)

    def delete_project(self, principal: Principal, project_id: int) -> CoordinatorResult[None]:
        def work(db: Session, actor: Account) -> None:
            invariant_engine.require_project_authority(actor, ProjectService.get_project(db, project_id))
            ProjectService.delete_project(db, project_id)

        return self._as("delete_project", principal, work)

    def create_team(
        self,
        principal: Principal,
        project_id: int,
        name: str,
        max_members: int,
        description: Optional[str] = None,
    ) -> CoordinatorResult[Team]:
        def work(db: Session, actor: Account) -> Team:
            invariant_engine.require_project_authority(actor, ProjectService.get_project(db, project_id))
            return ProjectService.create_team(db, project_id, name, max_members, description)

        return self._as("create_team", principal, work)

    # ========================================
    # SKILLS
    # ========================================

    def create_skill(
        self, principal: Principal, name: str, category: Optional[str] = None
    ) -> CoordinatorResult[Skill]:
        def work(db: Session, actor: Account) -> Skill:
            invariant_engine.require_admin(actor)
            return SkillService.create_skill(db, name, category)

        return self._as("create_skill", principal, work)

    def set_volunteer_skill(
        self,
        principal: Principal,
        skill_id: int,
        proficiency: int,
        volunteer_id: Optional[int] = None,
    ) -> CoordinatorResult[VolunteerSkill]:
        def work(db: Session, actor: Account) -> VolunteerSkill:
            target = self._volunteer_id(actor, volunteer_id)
            invariant_engine.require_self_or_admin(actor, target)
            return SkillService.set_volunteer_skill(db, target, skill_id, proficiency)

        return self._as("set_volunteer_skill", principal, work)

    def list_volunteer_skills(
        self, principal: Principal, volunteer_id: Optional[int] = None
    ) -> CoordinatorResult[List[VolunteerSkill]]:
        def work(db: Session, actor: Account) -> List[VolunteerSkill]:
            return SkillService.list_volunteer_skills(db, self._volunteer_id(actor, volunteer_id))

        return self._as("list_volunteer_skills", principal, work)

    def require_project_skill(
        self, principal: Principal, project_id: int, skill_id: int
    ) -> CoordinatorResult[ProjectSkill]:
        def work(db: Session, actor: Account) -> ProjectSkill:
            invariant_engine.require_project_authority(actor, ProjectService.get_project(db, project_id))
            return ProjectService.require_skill(db, project_id, skill_id)

        return self._as("require_project_skill", principal, work)

    # ========================================
    # MEMBERSHIP
    # ========================================

    def join_team(
        self, principal: Principal, team_id: int, volunteer_id: Optional[int] = None
    ) -> CoordinatorResult[TeamMembership]:
        def work(db: Session, actor: Account) -> TeamMembership:
            target = self._volunteer_id(actor, volunteer_id)
            invariant_engine.require_self_or_admin(actor, target)
            return MembershipService.join(db, target, team_id)

        return self._as("join_team", principal, work)

    def leave_team(
        self, principal: Principal, team_id: int, volunteer_id: Optional[int] = None
    ) -> CoordinatorResult[TeamMembership]:
        def work(db: Session, actor: Account) -> TeamMembership:
            target = self._volunteer_id(actor, volunteer_id)
            is_self = actor.role == UserRole.volunteer and actor.profile.id == target
            if not is_self:
                # Owning charity (or an admin) may remove a member.
                invariant_engine.require_team_authority(db, actor, ProjectService.get_team(db, team_id))
            return MembershipService.leave(db, target, team_id)

        return self._as("leave_team", principal, work)

    def assign_leader(
        self, principal: Principal, team_id: int, volunteer_id: Optional[int]
    ) -> CoordinatorResult[Team]:
        def work(db: Session, actor: Account) -> Team:
            invariant_engine.require_team_authority(db, actor, ProjectService.get_team(db, team_id))
            return MembershipService.assign_leader(db, team_id, volunteer_id)

        return self._as("assign_leader", principal, work)

    def list_team_members(self, principal: Principal, team_id: int) -> CoordinatorResult[List[TeamMembership]]:
        return self._as(
            "list_team_members", principal, lambda db, actor: MembershipService.list_active_members(db, team_id)
        )

    # ========================================
    # ACTIVITY AND POINTS
    # ========================================

    def log_activity(
        self,
        principal: Principal,
        activity_type: ActivityType,
        duration_minutes: int,
        activity_date: date,
        project_id: Optional[int] = None,
        team_id: Optional[int] = None,
        description: Optional[str] = None,
        volunteer_id: Optional[int] = None,
    ) -> CoordinatorResult[ActivityLog]:
        def work(db: Session, actor: Account) -> ActivityLog:
            target = self._volunteer_id(actor, volunteer_id)
            invariant_engine.require_self_or_admin(actor, target)
            return ActivityService.log_activity(
                db,
                volunteer_id=target,
                activity_type=activity_type,
                duration_minutes=duration_minutes,
                activity_date=activity_date,
                project_id=project_id,
                team_id=team_id,
                description=description,
            )

        return self._as("log_activity", principal, work)

    def approve_activity(
        self, principal: Principal, activity_id: int, points_to_award: int
    ) -> CoordinatorResult[ActivityLog]:
        return self._as(
            "approve_activity",
            principal,
            lambda db, actor: ActivityService.approve(db, activity_id, actor.user.id, points_to_award),
        )

    def reject_activity(self, principal: Principal, activity_id: int) -> CoordinatorResult[ActivityLog]:
        return self._as(
            "reject_activity",
            principal,
            lambda db, actor: ActivityService.reject(db, activity_id, actor.user.id),
        )

    def list_activities(
        self,
        principal: Principal,
        volunteer_id: Optional[int] = None,
        approved: Optional[bool] = None,
        limit: int = 100,
    ) -> CoordinatorResult[List[ActivityLog]]:
        def work(db: Session, actor: Account) -> List[ActivityLog]:
            target = self._volunteer_id(actor, volunteer_id)
            invariant_engine.require_self_or_admin(actor, target)
            return ActivityService.list_activities(db, target, approved=approved, limit=limit)

        return self._as("list_activities", principal, work)

    def points_summary(
        self, principal: Principal, volunteer_id: Optional[int] = None
    ) -> CoordinatorResult[PointsSummary]:
        def work(db: Session, actor: Account) -> PointsSummary:
            return ActivityService.points_summary(db, self._volunteer_id(actor, volunteer_id))

        return self._as("points_summary", principal, work)

    def reconcile_points(
        self, principal: Principal, volunteer_id: Optional[int] = None
    ) -> CoordinatorResult[Any]:
        """Recompute one volunteer's balance, or everyone's when volunteer_id is None."""

        def work(db: Session, actor: Account) -> Any:
            invariant_engine.require_admin(actor)
            if volunteer_id is None:
                return ActivityService.reconcile_all(db)
            return ActivityService.reconcile_points(db, volunteer_id)

        return self._as("reconcile_points", principal, work)

    # ========================================
    # RATINGS
    # ========================================

    def rate(
        self,
        principal: Principal,
        target_type: str,
        target_id: int,
        value: int,
        comment: Optional[str] = None,
    ) -> CoordinatorResult[Rating]:
        return self._as(
            "rate",
            principal,
            lambda db, actor: RatingService.rate(db, actor.user.id, target_id, target_type, value, comment),
        )

    def list_ratings(
        self, principal: Principal, target_type: str, target_id: int
    ) -> CoordinatorResult[List[Rating]]:
        return self._as(
            "list_ratings",
            principal,
            lambda db, actor: RatingService.list_ratings(db, target_type, target_id),
        )

    def average_rating(
        self, principal: Principal, target_type: str, target_id: int
    ) -> CoordinatorResult[Optional[float]]:
        return self._as(
            "average_rating",
            principal,
            lambda db, actor: RatingService.average_rating(db, target_type, target_id),
        )

    # ========================================
    # MESSAGES
    # ========================================

    def _require_team_voice(self, db: Session, actor: Account, team_id: int) -> Team:
        """Active members, the owning charity and admins may read and write."""
        team = ProjectService.get_team(db, team_id)
        if actor.role == UserRole.volunteer:
            if membership_crud.is_active_member(db, team_id, actor.profile.id):
                return team
            raise Unauthorized(
                f"Volunteer {actor.profile.id} is not an active member of team {team_id}",
                {"team_id": team_id},
            )
        invariant_engine.require_team_authority(db, actor, team)
        return team

    def post_message(self, principal: Principal, team_id: int, content: str) -> CoordinatorResult[Message]:
        def work(db: Session, actor: Account) -> Message:
            self._require_team_voice(db, actor, team_id)
            return MessageService.post_message(db, team_id, actor.user.id, content)

        return self._as("post_message", principal, work)

    def list_messages(
        self, principal: Principal, team_id: int, limit: int = 100
    ) -> CoordinatorResult[List[Message]]:
        def work(db: Session, actor: Account) -> List[Message]:
            self._require_team_voice(db, actor, team_id)
            return MessageService.list_messages(db, team_id, limit=limit)

        return self._as("list_messages", principal, work)
