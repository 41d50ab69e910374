import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Iterator, Optional

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy import exc as sa_exc
from sqlalchemy.orm import Session

from support_chatbot.db.models import Conversation, Message
from support_chatbot.db.models.conversation import utcnow
from support_chatbot.errors import NotFound, StoreError

logger = logging.getLogger(__name__)


class ConversationStore:
    """
    Persistence operations over conversations and their messages.

    Every write commits immediately and bumps the owning conversation's
    updated_at. SQLAlchemy failures are rolled back and re-raised as StoreError.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Writes ---

    def create_conversation(
        self,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
        ip_address: str = "0.0.0.0",
        user_agent: str = "",
    ) -> Conversation:
        conversation = Conversation(
            user_id=user_id,
            session_id=session_id or uuid.uuid4().hex,
            ip_address=ip_address or "0.0.0.0",
            user_agent=user_agent or "",
            is_active=True,
            is_human_takeover=False,
        )
        self.db.add(conversation)
        self._commit("create conversation")
        logger.info("Created conversation %s", conversation.id)
        return conversation

    def append_message(self, conversation_id: str, text: str, is_from_human: bool = False) -> Message:
        conversation = self._require_conversation(conversation_id)
        message = Message(conversation_id=conversation_id, text=text, is_from_human=is_from_human)
        self.db.add(message)
        conversation.updated_at = utcnow()
        self._commit(f"append message to {conversation_id}")
        logger.debug("Saved message %s for conversation %s", message.id, conversation_id)
        return message

    def append_response(self, message_id: int, response_text: str, from_human: bool = False) -> Message:
        message = self.db.get(Message, message_id)
        if message is None:
            raise NotFound(f"Message {message_id} not found")
        now = utcnow()
        message.response_text = response_text
        message.is_response_from_human = from_human
        message.response_at = now
        conversation = self.db.get(Conversation, message.conversation_id)
        if conversation is not None:
            conversation.updated_at = now
        self._commit(f"append response to message {message_id}")
        return message

    def append_system_message(self, conversation_id: str, response_text: str) -> Message:
        """Stores one continuation part of a multi-part answer; created already answered."""
        conversation = self._require_conversation(conversation_id)
        now = utcnow()
        message = Message(
            conversation_id=conversation_id,
            text=None,
            response_text=response_text,
            is_system_message=True,
            created_at=now,
            response_at=now,
        )
        self.db.add(message)
        conversation.updated_at = now
        self._commit(f"append system message to {conversation_id}")
        return message

    def set_human_takeover(self, conversation_id: str, takeover: bool) -> Conversation:
        conversation = self._require_conversation(conversation_id)
        conversation.is_human_takeover = takeover
        conversation.updated_at = utcnow()
        self._commit(f"set takeover={takeover} on {conversation_id}")
        return conversation

    def close_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._require_conversation(conversation_id)
        conversation.is_active = False
        conversation.updated_at = utcnow()
        self._commit(f"close conversation {conversation_id}")
        return conversation

    def delete_inactive_before(self, cutoff: datetime) -> int:
        """Deletes closed conversations last touched before cutoff, messages first."""
        stale_ids = select(Conversation.id).where(
            Conversation.is_active.is_(False),
            Conversation.updated_at < cutoff,
        )
        try:
            ids = list(self.db.scalars(stale_ids).all())
            if not ids:
                return 0
            # fetch drops the matching rows from the identity map too
            self.db.execute(
                delete(Message)
                .where(Message.conversation_id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self.db.execute(
                delete(Conversation)
                .where(Conversation.id.in_(ids))
                .execution_options(synchronize_session="fetch")
            )
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            logger.error("Database error deleting inactive conversations: %s", e, exc_info=True)
            self.db.rollback()
            raise StoreError("Failed to delete inactive conversations") from e
        return len(ids)

    # --- Reads ---

    def get_conversation(self, conversation_id: Optional[str]) -> Optional[Conversation]:
        if not conversation_id:
            return None
        with self._reading(f"load conversation {conversation_id}"):
            return self.db.get(Conversation, conversation_id)

    def get_messages(self, conversation_id: str) -> list[Message]:
        with self._reading(f"load messages of {conversation_id}"):
            return list(
                self.db.scalars(
                    select(Message)
                    .where(Message.conversation_id == conversation_id)
                    .order_by(Message.created_at.asc(), Message.id.asc())
                ).all()
            )

    def get_last_message(self, conversation_id: str) -> Optional[Message]:
        with self._reading(f"load last message of {conversation_id}"):
            return self.db.scalars(
                select(Message)
                .where(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(1)
            ).first()

    def list_active(self, limit: int = 50, offset: int = 0) -> list[tuple[Conversation, Optional[Message]]]:
        with self._reading("list active conversations"):
            conversations = self.db.scalars(
                select(Conversation)
                .where(Conversation.is_active.is_(True))
                .order_by(Conversation.updated_at.desc())
                .limit(limit)
                .offset(offset)
            ).all()
        return [(conversation, self.get_last_message(conversation.id)) for conversation in conversations]

    def count_active(self) -> int:
        with self._reading("count active conversations"):
            return self.db.scalar(
                select(func.count(Conversation.id)).where(Conversation.is_active.is_(True))
            ) or 0

    def list_needing_attention(self, limit: int = 50, offset: int = 0) -> list[tuple[Conversation, int]]:
        """Active conversations that are human-owned or still have an unanswered message."""
        unanswered = (
            select(
                Message.conversation_id.label("conversation_id"),
                func.count(Message.id).label("unanswered"),
            )
            .where(Message.response_text.is_(None))
            .group_by(Message.conversation_id)
            .subquery()
        )
        unanswered_count = func.coalesce(unanswered.c.unanswered, 0)
        with self._reading("list conversations needing attention"):
            rows = self.db.execute(
                select(Conversation, unanswered_count)
                .outerjoin(unanswered, unanswered.c.conversation_id == Conversation.id)
                .where(
                    Conversation.is_active.is_(True),
                    or_(Conversation.is_human_takeover.is_(True), unanswered_count > 0),
                )
                .order_by(desc(unanswered_count), Conversation.updated_at.desc())
                .limit(limit)
                .offset(offset)
            ).all()
        return [(conversation, int(count)) for conversation, count in rows]

    def search(self, term: str, limit: int = 50, offset: int = 0) -> list[Conversation]:
        needle = term.strip().lower()
        if not needle:
            return []
        matching_messages = select(Message.conversation_id).where(
            or_(
                func.lower(Message.text).contains(needle, autoescape=True),
                func.lower(Message.response_text).contains(needle, autoescape=True),
            )
        )
        with self._reading(f"search conversations for {needle!r}"):
            return list(
                self.db.scalars(
                    select(Conversation)
                    .where(
                        Conversation.is_active.is_(True),
                        or_(
                            Conversation.id.in_(matching_messages),
                            func.lower(Conversation.ip_address).contains(needle, autoescape=True),
                        ),
                    )
                    .order_by(Conversation.updated_at.desc())
                    .limit(limit)
                    .offset(offset)
                ).all()
            )

    def statistics(self, days: int = 7) -> dict[str, Any]:
        since = utcnow() - timedelta(days=days)
        day = func.date(Conversation.created_at)
        with self._reading("compute conversation statistics"):
            daily_rows = self.db.execute(
                select(day.label("day"), func.count(Conversation.id))
                .where(Conversation.created_at >= since)
                .group_by(day)
                .order_by(day)
            ).all()
            total_conversations = self.db.scalar(select(func.count(Conversation.id))) or 0
            human_takeover_count = self.db.scalar(
                select(func.count(Conversation.id)).where(
                    Conversation.is_active.is_(True),
                    Conversation.is_human_takeover.is_(True),
                )
            ) or 0
            total_messages = self.db.scalar(select(func.count(Message.id))) or 0
        return {
            "total_conversations": total_conversations,
            "active_conversations": self.count_active(),
            "human_takeover_count": human_takeover_count,
            "total_messages": total_messages,
            "daily_counts": [{"date": str(d), "count": int(c)} for d, c in daily_rows],
        }

    # --- Helpers ---

    def _require_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise NotFound(f"Conversation {conversation_id} not found")
        return conversation

    @contextmanager
    def _reading(self, action: str) -> Iterator[None]:
        try:
            yield
        except sa_exc.SQLAlchemyError as e:
            logger.error("Database error during %s: %s", action, e, exc_info=True)
            self.db.rollback()
            raise StoreError(f"Failed to {action}") from e

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except sa_exc.SQLAlchemyError as e:
            logger.error("Database error during %s: %s", action, e, exc_info=True)
            self.db.rollback()
            raise StoreError(f"Failed to {action}") from e
