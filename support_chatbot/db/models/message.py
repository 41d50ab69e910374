from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from support_chatbot.db.models.conversation import utcnow
from support_chatbot.db.session import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # Parent conversation row
    conversation_id = Column(String(36), ForeignKey("conversations.id"), nullable=False)
    # Visitor text; NULL for system continuation parts
    text = Column(Text, nullable=True)
    response_text = Column(Text, nullable=True)
    is_from_human = Column(Boolean, nullable=False, default=False)
    is_response_from_human = Column(Boolean, nullable=False, default=False)
    is_system_message = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    response_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_messages_conversation_created", "conversation_id", "created_at"),
    )

    def __repr__(self):
        return f"<Message(id={self.id}, convo_id={self.conversation_id}, system={self.is_system_message})>"
