# Import all models to ensure they are registered with SQLModel
from volunteerhub.models.user import User, UserRole, VolunteerProfile, CharityProfile
from volunteerhub.models.project import Project, ProjectStatus, ProjectSkill, PROJECT_STATUS_TRANSITIONS
from volunteerhub.models.team import Team, TeamMembership
from volunteerhub.models.skill import Skill, VolunteerSkill
from volunteerhub.models.activity import ActivityLog, ActivityType
from volunteerhub.models.rating import Rating, RatedEntityType
from volunteerhub.models.message import Message

__all__ = [
    "User",
    "UserRole",
    "VolunteerProfile",
    "CharityProfile",
    "Project",
    "ProjectStatus",
    "ProjectSkill",
    "PROJECT_STATUS_TRANSITIONS",
    "Team",
    "TeamMembership",
    "Skill",
    "VolunteerSkill",
    "ActivityLog",
    "ActivityType",
    "Rating",
    "RatedEntityType",
    "Message",
]
