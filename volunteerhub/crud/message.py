# volunteerhub/crud/message.py
from sqlmodel import Session, select
from typing import List

from volunteerhub.models.message import Message

class MessageCRUD:

    def create_message(self, db: Session, team_id: int, sender_id: int, content: str) -> Message:
        message = Message(team_id=team_id, sender_id=sender_id, content=content)
        db.add(message)
        db.flush()
        return message

    def get_team_messages(self, db: Session, team_id: int, skip: int = 0, limit: int = 100) -> List[Message]:
        """Get team messages in the order they were sent."""
        query = (
            select(Message)
            .where(Message.team_id == team_id)
            .order_by(Message.sent_at, Message.id)
            .offset(skip)
            .limit(limit)
        )
        return list(db.exec(query).all())

message_crud = MessageCRUD()
