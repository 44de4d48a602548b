# volunteerhub/crud/project.py
from sqlmodel import Session, select
from typing import Optional
from datetime import datetime

from volunteerhub.models.project import Project, ProjectSkill, ProjectStatus

class ProjectCRUD:

    def create_project(
        self,
        db: Session,
        charity_id: int,
        name: str,
        description: Optional[str] = None,
        required_volunteers: int = 0,
    ) -> Project:
        """Insert a project in pending status."""
        project = Project(
            charity_id=charity_id,
            name=name,
            description=description,
            required_volunteers=required_volunteers,
        )
        db.add(project)
        db.flush()
        return project

    def get_project(self, db: Session, project_id: int) -> Optional[Project]:
        """Get project by ID."""
        return db.get(Project, project_id)

    def get_project_for_update(self, db: Session, project_id: int) -> Optional[Project]:
        statement = (
            select(Project)
            .where(Project.id == project_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return db.exec(statement).first()

    def set_status(self, db: Session, project: Project, status: ProjectStatus) -> Project:
        project.status = status
        project.updated_at = datetime.utcnow()
        db.add(project)
        db.flush()
        return project

    def delete_project(self, db: Session, project: Project) -> None:
        """Hard delete; teams, memberships and messages cascade."""
        db.delete(project)
        db.flush()

class ProjectSkillCRUD:

    def get_requirement(self, db: Session, project_id: int, skill_id: int) -> Optional[ProjectSkill]:
        return db.exec(
            select(ProjectSkill).where(
                ProjectSkill.project_id == project_id,
                ProjectSkill.skill_id == skill_id,
            )
        ).first()

    def add_requirement(self, db: Session, project_id: int, skill_id: int) -> ProjectSkill:
        requirement = ProjectSkill(project_id=project_id, skill_id=skill_id)
        db.add(requirement)
        db.flush()
        return requirement

project_crud = ProjectCRUD()
project_skill_crud = ProjectSkillCRUD()
