"""
Project Service - projects, their teams and required skills
"""

import logging
from typing import Optional, Union

from sqlmodel import Session

from volunteerhub.core.exceptions import DanglingReference, InvalidValue, NotFound
from volunteerhub.crud.project import project_crud, project_skill_crud
from volunteerhub.crud.skill import skill_crud
from volunteerhub.crud.team import team_crud
from volunteerhub.crud.user import charity_profile_crud
from volunteerhub.models.project import PROJECT_STATUS_TRANSITIONS, Project, ProjectSkill, ProjectStatus
from volunteerhub.models.team import Team

logger = logging.getLogger(__name__)


class ProjectService:

    @staticmethod
    def get_project(db: Session, project_id: int) -> Project:
        project = project_crud.get_project(db, project_id)
        if project is None:
            raise NotFound("project", project_id)
        return project

    @staticmethod
    def create_project(
        db: Session,
        charity_id: int,
        name: str,
        description: Optional[str] = None,
        required_volunteers: int = 0,
    ) -> Project:
        if charity_profile_crud.get_profile(db, charity_id) is None:
            raise NotFound("charity", charity_id)
        if not name or not name.strip():
            raise InvalidValue("Project name is required")
        if required_volunteers < 0:
            raise InvalidValue("required_volunteers cannot be negative", {"required_volunteers": required_volunteers})

        project = project_crud.create_project(
            db,
            charity_id=charity_id,
            name=name.strip(),
            description=description,
            required_volunteers=required_volunteers,
        )
        logger.info(f"Charity {charity_id} created project {project.id}")
        return project

    @staticmethod
    def change_status(db: Session, project_id: int, new_status: Union[str, ProjectStatus]) -> Project:
        project = project_crud.get_project_for_update(db, project_id)
        if project is None:
            raise NotFound("project", project_id)

        try:
            new_status = ProjectStatus(new_status)
        except ValueError:
            raise InvalidValue(f"Unknown project status '{new_status}'")

        if new_status == project.status:
            return project
        if new_status not in PROJECT_STATUS_TRANSITIONS[project.status]:
            raise InvalidValue(
                f"Project {project_id} cannot move from {project.status.value} to {new_status.value}",
                {"from": project.status.value, "to": new_status.value},
            )

        logger.info(f"Project {project_id} status {project.status.value} -> {new_status.value}")
        return project_crud.set_status(db, project, new_status)

    @staticmethod
    def delete_project(db: Session, project_id: int) -> None:
        """Remove a project together with its teams, memberships and messages."""
        project = project_crud.get_project_for_update(db, project_id)
        if project is None:
            raise NotFound("project", project_id)
        project_crud.delete_project(db, project)
        logger.info(f"Deleted project {project_id} and its teams")

    # ========================================
    # TEAMS
    # ========================================

    @staticmethod
    def create_team(
        db: Session,
        project_id: int,
        name: str,
        max_members: int,
        description: Optional[str] = None,
    ) -> Team:
        if project_crud.get_project(db, project_id) is None:
            raise NotFound("project", project_id)
        if not name or not name.strip():
            raise InvalidValue("Team name is required")
        if isinstance(max_members, bool) or not isinstance(max_members, int) or max_members < 1:
            raise InvalidValue("max_members must be a positive integer", {"max_members": max_members})
        if team_crud.get_team_by_name(db, project_id, name.strip()) is not None:
            raise InvalidValue(
                f"Project {project_id} already has a team named '{name.strip()}'",
                {"field": "name"},
            )

        team = team_crud.create_team(
            db, project_id=project_id, name=name.strip(), max_members=max_members, description=description
        )
        logger.info(f"Created team {team.id} in project {project_id} (max {max_members})")
        return team

    @staticmethod
    def get_team(db: Session, team_id: int) -> Team:
        team = team_crud.get_team(db, team_id)
        if team is None:
            raise NotFound("team", team_id)
        return team

    # ========================================
    # REQUIRED SKILLS
    # ========================================

    @staticmethod
    def require_skill(db: Session, project_id: int, skill_id: int) -> ProjectSkill:
        """Add a required skill; adding it twice returns the existing row."""
        if project_crud.get_project(db, project_id) is None:
            raise NotFound("project", project_id)
        if skill_crud.get_skill(db, skill_id) is None:
            raise DanglingReference("skill", skill_id)

        existing = project_skill_crud.get_requirement(db, project_id, skill_id)
        if existing is not None:
            return existing
        return project_skill_crud.add_requirement(db, project_id, skill_id)
