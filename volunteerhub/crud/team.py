# volunteerhub/crud/team.py
from sqlmodel import Session, select, func
from typing import List, Optional
from datetime import datetime

from volunteerhub.models.team import Team, TeamMembership

# ============================================================
# TEAM CRUD
# ============================================================


class TeamCRUD:
    """CRUD operations for teams."""

    def create_team(
        self,
        db: Session,
        project_id: int,
        name: str,
        max_members: int,
        description: Optional[str] = None,
    ) -> Team:
        team = Team(project_id=project_id, name=name, max_members=max_members, description=description)
        db.add(team)
        db.flush()
        return team

    def get_team(self, db: Session, team_id: int) -> Optional[Team]:
        """Get team by ID."""
        return db.get(Team, team_id)

    def get_team_for_update(self, db: Session, team_id: int) -> Optional[Team]:
        """
        Get a team while holding its row lock until commit.

        Every capacity and leadership decision for a team is taken under
        this lock, so concurrent joins serialise on the team row.
        """
        statement = (
            select(Team)
            .where(Team.id == team_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.exec(statement).first()

    def get_team_by_name(self, db: Session, project_id: int, name: str) -> Optional[Team]:
        return db.exec(select(Team).where(Team.project_id == project_id, Team.name == name)).first()

    def set_leader(self, db: Session, team: Team, volunteer_id: Optional[int]) -> Team:
        team.team_leader_id = volunteer_id
        team.updated_at = datetime.utcnow()
        db.add(team)
        db.flush()
        return team


# ============================================================
# MEMBERSHIP CRUD
# ============================================================


class TeamMembershipCRUD:
    """CRUD operations for team memberships (soft-closed, never removed)."""

    def get_membership(self, db: Session, team_id: int, volunteer_id: int) -> Optional[TeamMembership]:
        """Get the membership row regardless of its active flag."""
        statement = select(TeamMembership).where(
            TeamMembership.team_id == team_id,
            TeamMembership.volunteer_id == volunteer_id,
        )
        return db.exec(statement).first()

    def is_active_member(self, db: Session, team_id: int, volunteer_id: int) -> bool:
        membership = self.get_membership(db, team_id, volunteer_id)
        return membership is not None and membership.is_active

    def count_active_members(self, db: Session, team_id: int) -> int:
        statement = select(func.count(TeamMembership.id)).where(
            TeamMembership.team_id == team_id,
            TeamMembership.is_active == True,  # noqa: E712
        )
        return db.exec(statement).one()

    def get_active_members(self, db: Session, team_id: int) -> List[TeamMembership]:
        statement = (
            select(TeamMembership)
            .where(TeamMembership.team_id == team_id, TeamMembership.is_active == True)  # noqa: E712
            .order_by(TeamMembership.joined_at, TeamMembership.id)
        )
        return list(db.exec(statement).all())

    def create_membership(self, db: Session, team_id: int, volunteer_id: int) -> TeamMembership:
        membership = TeamMembership(team_id=team_id, volunteer_id=volunteer_id)
        db.add(membership)
        db.flush()
        return membership

    def reactivate(self, db: Session, membership: TeamMembership) -> TeamMembership:
        membership.is_active = True
        membership.joined_at = datetime.utcnow()
        membership.left_at = None
        db.add(membership)
        db.flush()
        return membership

    def deactivate(self, db: Session, membership: TeamMembership) -> TeamMembership:
        membership.is_active = False
        membership.left_at = datetime.utcnow()
        db.add(membership)
        db.flush()
        return membership


team_crud = TeamCRUD()
membership_crud = TeamMembershipCRUD()
