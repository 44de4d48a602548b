"""
Skill Service - global skill catalogue and volunteer proficiencies
"""

import logging
from typing import List, Optional

from sqlmodel import Session

from volunteerhub.core.exceptions import DanglingReference, InvalidValue, NotFound
from volunteerhub.crud.skill import skill_crud, volunteer_skill_crud
from volunteerhub.crud.user import volunteer_profile_crud
from volunteerhub.models.skill import MAX_PROFICIENCY, MIN_PROFICIENCY, Skill, VolunteerSkill

logger = logging.getLogger(__name__)


class SkillService:

    @staticmethod
    def create_skill(
        db: Session, name: str, category: Optional[str] = None, description: Optional[str] = None
    ) -> Skill:
        if not name or not name.strip():
            raise InvalidValue("Skill name is required")
        if skill_crud.get_skill_by_name(db, name.strip()) is not None:
            raise InvalidValue(f"Skill '{name.strip()}' already exists", {"field": "name"})
        return skill_crud.create_skill(db, name=name.strip(), category=category, description=description)

    @staticmethod
    def set_volunteer_skill(db: Session, volunteer_id: int, skill_id: int, proficiency: int) -> VolunteerSkill:
        if isinstance(proficiency, bool) or not isinstance(proficiency, int) or not (
            MIN_PROFICIENCY <= proficiency <= MAX_PROFICIENCY
        ):
            raise InvalidValue(
                f"Proficiency must be between {MIN_PROFICIENCY} and {MAX_PROFICIENCY}",
                {"proficiency": proficiency},
            )
        if volunteer_profile_crud.get_profile(db, volunteer_id) is None:
            raise NotFound("volunteer", volunteer_id)
        if skill_crud.get_skill(db, skill_id) is None:
            raise DanglingReference("skill", skill_id)

        return volunteer_skill_crud.upsert_volunteer_skill(db, volunteer_id, skill_id, proficiency)

    @staticmethod
    def list_volunteer_skills(db: Session, volunteer_id: int) -> List[VolunteerSkill]:
        return volunteer_skill_crud.get_volunteer_skills(db, volunteer_id)
