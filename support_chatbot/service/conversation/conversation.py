import logging

from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.config.config import ChatbotSettings
from support_chatbot.db.models import Conversation, Message
from support_chatbot.errors import ConversationClosed, NotFound, TakeoverDisabled
from support_chatbot.model.conversation.conversation_response import (
    ConversationDetail,
    ConversationSummary,
    LastMessage,
    MessageItem,
    StatisticsResponse,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def _page_bounds(page: int, limit: int) -> tuple[int, int]:
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)
    return limit, (page - 1) * limit


def _get_or_raise(store: ConversationStore, conversation_id: str) -> Conversation:
    conversation = store.get_conversation(conversation_id)
    if conversation is None:
        raise NotFound(f"Conversation {conversation_id} not found")
    return conversation


def _get_active_or_raise(store: ConversationStore, conversation_id: str) -> Conversation:
    conversation = _get_or_raise(store, conversation_id)
    if not conversation.is_active:
        raise ConversationClosed(f"Conversation {conversation_id} is closed")
    return conversation


def _summary(conversation: Conversation, last_message: Message | None = None, unanswered: int | None = None) -> ConversationSummary:
    summary = ConversationSummary.model_validate(conversation)
    updates = {}
    if last_message is not None:
        updates["last_message"] = LastMessage(text=last_message.text or last_message.response_text, created_at=last_message.created_at)
    if unanswered is not None:
        updates["unanswered_count"] = unanswered
    return summary.model_copy(update=updates) if updates else summary


# --- Ownership and lifecycle ---

def takeover(store: ConversationStore, settings: ChatbotSettings, conversation_id: str) -> Conversation:
    """Hand the conversation to a human agent. A no-op if already human-owned."""
    conversation = _get_active_or_raise(store, conversation_id)
    if conversation.is_human_takeover:
        return conversation
    if not settings.human_takeover_enabled:
        raise TakeoverDisabled("Human takeover is disabled")
    conversation = store.set_human_takeover(conversation_id, True)
    logger.info("Conversation %s taken over by a human agent", conversation_id)
    return conversation


def return_to_ai(store: ConversationStore, conversation_id: str) -> Conversation:
    conversation = _get_active_or_raise(store, conversation_id)
    if not conversation.is_human_takeover:
        return conversation
    conversation = store.set_human_takeover(conversation_id, False)
    logger.info("Conversation %s returned to the assistant", conversation_id)
    return conversation


def close_conversation(store: ConversationStore, conversation_id: str) -> Conversation:
    conversation = _get_or_raise(store, conversation_id)
    if not conversation.is_active:
        return conversation
    conversation = store.close_conversation(conversation_id)
    logger.info("Conversation %s closed", conversation_id)
    return conversation


def submit_human_response(store: ConversationStore, conversation_id: str, text: str) -> Message:
    """
    Record an agent reply as the response of the conversation's most recent
    message, whatever that message is.
    """
    _get_active_or_raise(store, conversation_id)
    last_message = store.get_last_message(conversation_id)
    if last_message is None:
        raise NotFound(f"Conversation {conversation_id} has no messages")
    message = store.append_response(last_message.id, text, from_human=True)
    logger.info("Human response stored on message %s of conversation %s", message.id, conversation_id)
    return message


# --- Listing ---

def list_active(store: ConversationStore, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> list[ConversationSummary]:
    limit, offset = _page_bounds(page, limit)
    return [_summary(conversation, last) for conversation, last in store.list_active(limit=limit, offset=offset)]


def get_conversation(store: ConversationStore, conversation_id: str) -> ConversationDetail:
    conversation = _get_or_raise(store, conversation_id)
    messages = [MessageItem.model_validate(m) for m in store.get_messages(conversation_id)]
    return ConversationDetail.model_validate(
        {
            "id": conversation.id,
            "user_id": conversation.user_id,
            "session_id": conversation.session_id,
            "ip_address": conversation.ip_address,
            "user_agent": conversation.user_agent,
            "is_active": conversation.is_active,
            "is_human_takeover": conversation.is_human_takeover,
            "owner": conversation.owner,
            "created_at": conversation.created_at,
            "updated_at": conversation.updated_at,
            "messages": messages,
        }
    )


def list_needing_attention(store: ConversationStore, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> list[ConversationSummary]:
    limit, offset = _page_bounds(page, limit)
    return [
        _summary(conversation, store.get_last_message(conversation.id), unanswered)
        for conversation, unanswered in store.list_needing_attention(limit=limit, offset=offset)
    ]


def search_conversations(store: ConversationStore, term: str, page: int = 1, limit: int = DEFAULT_PAGE_SIZE) -> list[ConversationSummary]:
    limit, offset = _page_bounds(page, limit)
    return [
        _summary(conversation, store.get_last_message(conversation.id))
        for conversation in store.search(term, limit=limit, offset=offset)
    ]


def conversation_statistics(store: ConversationStore, days: int = 7) -> StatisticsResponse:
    return StatisticsResponse.model_validate(store.statistics(days=days))
