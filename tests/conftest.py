import pytest
from datetime import date
from sqlmodel import Session, select, func

from volunteerhub.core.audit_log import AuditLogger
from volunteerhub.core.config import Settings
from volunteerhub.core.identity import Principal
from volunteerhub.database.engine import build_engine, create_db_and_tables
from volunteerhub.models.team import TeamMembership
from volunteerhub.models.user import UserRole
from volunteerhub.schemas.account import RegistrationRequest
from volunteerhub.services.coordinator import Coordinator

# Test database setup. A file-backed SQLite database (not :memory:) so that
# every session gets its own connection, like production.

@pytest.fixture(name="test_settings")
def test_settings_fixture():
    return Settings(
        DATABASE_URL=None,
        CONFLICT_MAX_RETRIES=3,
        CONFLICT_BACKOFF_SECONDS=0.01,
        STORAGE_MAX_RETRIES=1,
        SQLITE_BUSY_TIMEOUT_SECONDS=30.0,
    )

@pytest.fixture(name="engine")
def engine_fixture(tmp_path, test_settings):
    engine = build_engine(f"sqlite:///{tmp_path / 'volunteerhub.db'}", config=test_settings)
    create_db_and_tables(engine)
    yield engine
    engine.dispose()

@pytest.fixture(name="session")
def session_fixture(engine):
    # Seed data through the coordinator before touching this session:
    # an open SQLite transaction blocks every other writer.
    with Session(engine, expire_on_commit=False) as session:
        yield session

@pytest.fixture(name="audit_logger")
def audit_logger_fixture():
    return AuditLogger(app_name="volunteerhub-test")

@pytest.fixture(name="sleeps")
def sleeps_fixture():
    return []

@pytest.fixture(name="coordinator")
def coordinator_fixture(engine, test_settings, audit_logger, sleeps):
    return Coordinator(engine=engine, config=test_settings, audit_logger=audit_logger, sleep=sleeps.append)

@pytest.fixture(name="fetch")
def fetch_fixture(engine):
    """Load a row in a short-lived session and return it detached."""
    def _fetch(model, row_id):
        with Session(engine) as session:
            return session.get(model, row_id)
    return _fetch

@pytest.fixture(name="active_member_count")
def active_member_count_fixture(engine):
    def _count(team_id):
        with Session(engine) as session:
            return session.exec(
                select(func.count(TeamMembership.id)).where(
                    TeamMembership.team_id == team_id,
                    TeamMembership.is_active == True,  # noqa: E712
                )
            ).one()
    return _count

def principal_of(account) -> Principal:
    return Principal.of(account.user.id, account.role.value)

@pytest.fixture(name="as_principal")
def as_principal_fixture():
    return principal_of

@pytest.fixture(name="register")
def register_fixture(coordinator):
    def _register(role="volunteer", name="Test User", email="test@example.com", **extra):
        payload = RegistrationRequest(
            name=name,
            email=email,
            password_hash="hashed_password",
            role=role,
            **extra,
        )
        return coordinator.register(payload).unwrap()
    return _register

@pytest.fixture(name="admin")
def admin_fixture(register):
    return register(role=UserRole.admin, name="Site Admin", email="admin@example.com")

@pytest.fixture(name="charity")
def charity_fixture(register):
    return register(
        role=UserRole.charity,
        name="Green Earth",
        email="charity@example.com",
        organization_name="Green Earth Trust",
        license_number="LIC-001",
    )

@pytest.fixture(name="other_charity")
def other_charity_fixture(register):
    return register(
        role=UserRole.charity,
        name="Blue Sea",
        email="bluesea@example.com",
        organization_name="Blue Sea Foundation",
        license_number="LIC-002",
    )

@pytest.fixture(name="volunteers")
def volunteers_fixture(register):
    return [
        register(role=UserRole.volunteer, name=f"Volunteer {i}", email=f"volunteer{i}@example.com")
        for i in range(1, 4)
    ]

@pytest.fixture(name="project")
def project_fixture(coordinator, charity):
    return coordinator.create_project(
        principal_of(charity), "Beach Cleanup", description="Weekly cleanup", required_volunteers=5
    ).unwrap()

@pytest.fixture(name="team")
def team_fixture(coordinator, charity, project):
    return coordinator.create_team(principal_of(charity), project.id, "North Shore", max_members=2).unwrap()

@pytest.fixture(name="activity_date")
def activity_date_fixture():
    return date(2024, 5, 1)
