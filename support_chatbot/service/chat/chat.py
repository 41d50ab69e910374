import asyncio
import logging
from typing import Optional

from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.client.llm.chatgpt import ChatGPTClient, HistoryTurn
from support_chatbot.config.config import ChatbotSettings
from support_chatbot.db.models import Conversation
from support_chatbot.errors import (
    GENERIC_APOLOGY,
    ChatbotError,
    MissingCredential,
    TransportError,
    UpstreamError,
)
from support_chatbot.model.chat.chat_request import ChatRequest, VisitorOrigin, VisitorProfile
from support_chatbot.model.chat.chat_response import AdditionalResponse, ChatResponse, ChatStatus
from support_chatbot.service.chat.pacing import typing_delay_ms
from support_chatbot.service.chat.prompt import build_system_prompt
from support_chatbot.service.chat.splitter import split_response

logger = logging.getLogger(__name__)

CHAT_DISABLED_MESSAGE = "Chat is currently unavailable."


async def chat_service(
    req: ChatRequest,
    store: ConversationStore,
    completion: ChatGPTClient,
    settings: ChatbotSettings,
    origin: Optional[VisitorOrigin] = None,
) -> ChatResponse:
    if origin is None:
        origin = VisitorOrigin(user_id=req.user_id)
    elif req.user_id and not origin.user_id:
        origin = origin.model_copy(update={"user_id": req.user_id})

    return await handle_inbound_message(
        req.message,
        store=store,
        completion=completion,
        settings=settings,
        conversation_id=req.conversation_id,
        visitor=req.visitor,
        origin=origin,
    )


def _errored(conversation_id: Optional[str], message: str, message_id: Optional[int] = None) -> ChatResponse:
    return ChatResponse(
        conversation_id=conversation_id,
        message_id=message_id,
        status=ChatStatus.ERRORED,
        error_message=message,
    )


def _resolve_conversation(
    store: ConversationStore,
    conversation_id: Optional[str],
    origin: VisitorOrigin,
) -> Conversation:
    conversation = store.get_conversation(conversation_id)
    if conversation is not None and conversation.is_active:
        return conversation

    if conversation is not None:
        logger.info("Conversation %s is closed; starting a new one", conversation_id)
    return store.create_conversation(
        user_id=origin.user_id,
        session_id=origin.session_id,
        ip_address=origin.ip_address,
        user_agent=origin.user_agent,
    )


async def handle_inbound_message(
    text: str,
    *,
    store: ConversationStore,
    completion: ChatGPTClient,
    settings: ChatbotSettings,
    conversation_id: Optional[str] = None,
    visitor: Optional[VisitorProfile] = None,
    origin: Optional[VisitorOrigin] = None,
) -> ChatResponse:
    """
    Store a visitor message and answer it.

    Human-owned conversations only record the message. Otherwise the
    completion is split into parts: the first fills the visitor message's
    response, the rest are stored as system messages and returned as
    additional_responses with their typing delays. Failures come back as an
    errored result; the visitor message then keeps a null response.
    """
    if not settings.chat_enabled:
        logger.info("Chat disabled; ignoring inbound message")
        return _errored(conversation_id, CHAT_DISABLED_MESSAGE)

    try:
        conversation = _resolve_conversation(store, conversation_id, origin or VisitorOrigin())
        message = store.append_message(conversation.id, text)
    except ChatbotError:
        logger.exception("Could not store inbound message for conversation %s", conversation_id)
        return _errored(conversation_id, GENERIC_APOLOGY)

    if conversation.is_human_takeover:
        logger.info("Conversation %s is human-owned; message %s awaits an agent", conversation.id, message.id)
        return ChatResponse(
            conversation_id=conversation.id,
            message_id=message.id,
            status=ChatStatus.AWAITING_HUMAN,
            is_human=True,
        )

    try:
        history = [
            HistoryTurn(text=m.text, response_text=m.response_text)
            for m in store.get_messages(conversation.id)
            if m.id != message.id
        ]
    except ChatbotError:
        logger.exception("Could not load history for conversation %s", conversation.id)
        return _errored(conversation.id, GENERIC_APOLOGY, message.id)

    system_prompt = build_system_prompt(settings.system_prompt, visitor)

    try:
        full_text = await asyncio.to_thread(completion.complete, system_prompt, history, text)
    except MissingCredential:
        logger.error("OpenAI API key is not configured; message %s left unanswered", message.id)
        return _errored(conversation.id, GENERIC_APOLOGY, message.id)
    except TransportError as e:
        logger.warning("Completion transport failure for message %s: %s", message.id, e)
        return _errored(conversation.id, GENERIC_APOLOGY, message.id)
    except UpstreamError as e:
        logger.warning(
            "Completion rejected for message %s (kind=%s, status=%s): %s",
            message.id, e.kind, e.status_code, e.message,
        )
        return _errored(conversation.id, e.message, message.id)
    except Exception:
        logger.exception("Unexpected completion failure for message %s", message.id)
        return _errored(conversation.id, GENERIC_APOLOGY, message.id)

    parts = split_response(full_text, settings.split_max_words)

    additional: list[AdditionalResponse] = []
    try:
        store.append_response(message.id, parts[0])
        for part in parts[1:]:
            system_message = store.append_system_message(conversation.id, part)
            additional.append(
                AdditionalResponse(
                    message_id=system_message.id,
                    content=part,
                    delay_ms=typing_delay_ms(part),
                )
            )
    except ChatbotError:
        logger.exception("Could not store response for message %s", message.id)
        return _errored(conversation.id, GENERIC_APOLOGY, message.id)

    return ChatResponse(
        conversation_id=conversation.id,
        message_id=message.id,
        status=ChatStatus.ANSWERED,
        response=parts[0],
        additional_responses=additional,
        is_multiple=bool(additional),
    )
