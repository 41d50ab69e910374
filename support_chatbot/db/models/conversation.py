import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, String, Text

from support_chatbot.db.session import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResponseOwner(str, Enum):
    AI = "ai"
    HUMAN = "human"


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Authenticated visitor, if any
    user_id = Column(String(64), nullable=True)
    session_id = Column(String(255), nullable=False, index=True)
    ip_address = Column(String(100), nullable=False, default="0.0.0.0")
    user_agent = Column(Text, nullable=False, default="")
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    # True while a human agent owns response duty
    is_human_takeover = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    @property
    def owner(self) -> ResponseOwner:
        return ResponseOwner.HUMAN if self.is_human_takeover else ResponseOwner.AI

    def __repr__(self):
        return f"<Conversation(id={self.id}, active={self.is_active}, owner={self.owner.value})>"
