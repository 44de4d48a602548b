# volunteerhub/models/rating.py
from sqlmodel import SQLModel, Field, Column, Text
from typing import Optional
from datetime import datetime
from enum import Enum

MIN_RATING = 1
MAX_RATING = 5

class RatedEntityType(str, Enum):
    volunteer = "volunteer"
    project = "project"
    team = "team"
    charity = "charity"

class Rating(SQLModel, table=True):
    """
    Feedback on a volunteer, project, team or charity.

    (rated_entity_id, rated_entity_type) is a polymorphic reference with no
    database foreign key; existence is checked by the rating service.
    """
    __tablename__ = "ratings"

    id: Optional[int] = Field(default=None, primary_key=True)
    rater_id: int = Field(foreign_key="users.id", index=True)
    rated_entity_id: int = Field(index=True)
    rated_entity_type: RatedEntityType = Field(index=True)
    value: int = Field(ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=datetime.utcnow)
