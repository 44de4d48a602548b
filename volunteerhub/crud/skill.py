# volunteerhub/crud/skill.py
from sqlmodel import Session, select
from typing import List, Optional
from datetime import datetime

from volunteerhub.models.skill import Skill, VolunteerSkill

class SkillCRUD:

    def create_skill(
        self, db: Session, name: str, category: Optional[str] = None, description: Optional[str] = None
    ) -> Skill:
        skill = Skill(name=name, category=category, description=description)
        db.add(skill)
        db.flush()
        return skill

    def get_skill(self, db: Session, skill_id: int) -> Optional[Skill]:
        """Get skill by ID."""
        return db.get(Skill, skill_id)

    def get_skill_by_name(self, db: Session, name: str) -> Optional[Skill]:
        return db.exec(select(Skill).where(Skill.name == name)).first()

class VolunteerSkillCRUD:

    def get_volunteer_skill(self, db: Session, volunteer_id: int, skill_id: int) -> Optional[VolunteerSkill]:
        return db.exec(
            select(VolunteerSkill).where(
                VolunteerSkill.volunteer_id == volunteer_id,
                VolunteerSkill.skill_id == skill_id,
            )
        ).first()

    def upsert_volunteer_skill(
        self, db: Session, volunteer_id: int, skill_id: int, proficiency: int
    ) -> VolunteerSkill:
        """Create the assignment or update its proficiency."""
        assignment = self.get_volunteer_skill(db, volunteer_id, skill_id)
        if assignment is None:
            assignment = VolunteerSkill(volunteer_id=volunteer_id, skill_id=skill_id, proficiency=proficiency)
        else:
            assignment.proficiency = proficiency
            assignment.updated_at = datetime.utcnow()
        db.add(assignment)
        db.flush()
        return assignment

    def get_volunteer_skills(self, db: Session, volunteer_id: int) -> List[VolunteerSkill]:
        return list(db.exec(select(VolunteerSkill).where(VolunteerSkill.volunteer_id == volunteer_id)).all())

skill_crud = SkillCRUD()
volunteer_skill_crud = VolunteerSkillCRUD()
