"""
Message Service - append-only team chat
"""

from typing import List

from sqlmodel import Session

from volunteerhub.core.exceptions import InvalidValue
from volunteerhub.crud.message import message_crud
from volunteerhub.models.message import Message

MAX_MESSAGE_LENGTH = 5000


class MessageService:

    @staticmethod
    def post_message(db: Session, team_id: int, sender_id: int, content: str) -> Message:
        """Callers check that the sender may write to the team."""
        if content is None or not content.strip():
            raise InvalidValue("Message content is required")
        if len(content) > MAX_MESSAGE_LENGTH:
            raise InvalidValue(
                f"Message exceeds {MAX_MESSAGE_LENGTH} characters", {"length": len(content)}
            )
        return message_crud.create_message(db, team_id=team_id, sender_id=sender_id, content=content)

    @staticmethod
    def list_messages(db: Session, team_id: int, limit: int = 100) -> List[Message]:
        return message_crud.get_team_messages(db, team_id, limit=limit)
