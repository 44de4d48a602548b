# volunteerhub/models/message.py
from sqlmodel import SQLModel, Field, Relationship, Column, Text
from sqlalchemy import Integer, ForeignKey
from typing import Optional
from datetime import datetime

class Message(SQLModel, table=True):
    """Team chat message. Append-only."""
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    team_id: int = Field(
        sa_column=Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    sender_id: int = Field(foreign_key="users.id", index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    sent_at: datetime = Field(default_factory=datetime.utcnow, index=True)

    # Relationships
    team: "Team" = Relationship(back_populates="messages")

# Import references for relationships
from volunteerhub.models.team import Team
