import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from support_chatbot.api.dependencies import (
    get_completion_client,
    get_store,
    require_admin,
    visitor_origin,
)
from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.client.llm.chatgpt import ChatGPTClient
from support_chatbot.config.config import ChatbotSettings, get_settings
from support_chatbot.errors import (
    ChatbotError,
    ConversationClosed,
    NotFound,
    TakeoverDisabled,
    Unauthorized,
)
from support_chatbot.model.chat.chat_request import ChatRequest, VisitorOrigin
from support_chatbot.model.chat.chat_response import ChatResponse
from support_chatbot.model.conversation.conversation_request import HumanResponseRequest
from support_chatbot.model.conversation.conversation_response import (
    ActionResponse,
    CleanupResponse,
    ConversationDetail,
    ConversationSummary,
    StatisticsResponse,
)
from support_chatbot.model.widget.widget_response import WidgetResponse
from support_chatbot.service.chat.chat import chat_service
from support_chatbot.service.chat.prompt import welcome_message
from support_chatbot.service.conversation import conversation as conversations
from support_chatbot.service.retention.retention import sweep_inactive_conversations

logger = logging.getLogger(__name__)

api_router = APIRouter()
admin_router = APIRouter(dependencies=[Depends(require_admin)])


def _http_error(e: ChatbotError) -> HTTPException:
    if isinstance(e, NotFound):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, Unauthorized):
        return HTTPException(status_code=401, detail=str(e))
    if isinstance(e, (ConversationClosed, TakeoverDisabled)):
        return HTTPException(status_code=409, detail=str(e))
    logger.error("Admin request failed: %s", e)
    return HTTPException(status_code=500, detail=str(e) or "internal error")


# --- Visitor ---

@api_router.post("/chat", response_model=ChatResponse)
async def ai_request(
    req: ChatRequest,
    store: ConversationStore = Depends(get_store),
    completion: ChatGPTClient = Depends(get_completion_client),
    settings: ChatbotSettings = Depends(get_settings),
    origin: VisitorOrigin = Depends(visitor_origin),
):
    return await chat_service(req, store, completion, settings, origin)


@api_router.get("/widget", response_model=WidgetResponse)
def widget_config(
    display_name: Optional[str] = None,
    settings: ChatbotSettings = Depends(get_settings),
):
    return WidgetResponse(
        chat_enabled=settings.chat_enabled,
        human_takeover_enabled=settings.human_takeover_enabled,
        chat_title=settings.chat_title,
        welcome_message=welcome_message(settings, display_name),
        theme_color=settings.theme_color,
    )


# --- Admin ---

@admin_router.get("/conversations", response_model=List[ConversationSummary])
def list_active(
    page: int = Query(1, ge=1),
    limit: int = Query(conversations.DEFAULT_PAGE_SIZE, ge=1, le=conversations.MAX_PAGE_SIZE),
    store: ConversationStore = Depends(get_store),
):
    try:
        return conversations.list_active(store, page, limit)
    except ChatbotError as e:
        raise _http_error(e) from e


@admin_router.get("/conversations/attention", response_model=List[ConversationSummary])
def list_needing_attention(
    page: int = Query(1, ge=1),
    limit: int = Query(conversations.DEFAULT_PAGE_SIZE, ge=1, le=conversations.MAX_PAGE_SIZE),
    store: ConversationStore = Depends(get_store),
):
    try:
        return conversations.list_needing_attention(store, page, limit)
    except ChatbotError as e:
        raise _http_error(e) from e


@admin_router.get("/conversations/search", response_model=List[ConversationSummary])
def search_conversations(
    q: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    limit: int = Query(conversations.DEFAULT_PAGE_SIZE, ge=1, le=conversations.MAX_PAGE_SIZE),
    store: ConversationStore = Depends(get_store),
):
    try:
        return conversations.search_conversations(store, q, page, limit)
    except ChatbotError as e:
        raise _http_error(e) from e


@admin_router.get("/conversations/{conversation_id}", response_model=ConversationDetail)
def get_conversation(conversation_id: str, store: ConversationStore = Depends(get_store)):
    try:
        return conversations.get_conversation(store, conversation_id)
    except ChatbotError as e:
        raise _http_error(e) from e


@admin_router.post("/conversations/{conversation_id}/takeover", response_model=ActionResponse)
def takeover(
    conversation_id: str,
    store: ConversationStore = Depends(get_store),
    settings: ChatbotSettings = Depends(get_settings),
):
    try:
        conversation = conversations.takeover(store, settings, conversation_id)
    except ChatbotError as e:
        raise _http_error(e) from e
    return ActionResponse(conversation_id=conversation.id, owner=conversation.owner)


@admin_router.post("/conversations/{conversation_id}/return", response_model=ActionResponse)
def return_to_ai(conversation_id: str, store: ConversationStore = Depends(get_store)):
    try:
        conversation = conversations.return_to_ai(store, conversation_id)
    except ChatbotError as e:
        raise _http_error(e) from e
    return ActionResponse(conversation_id=conversation.id, owner=conversation.owner)


@admin_router.post("/conversations/{conversation_id}/respond", response_model=ActionResponse)
def human_respond(
    conversation_id: str,
    req: HumanResponseRequest,
    store: ConversationStore = Depends(get_store),
):
    try:
        message = conversations.submit_human_response(store, conversation_id, req.message)
    except ChatbotError as e:
        raise _http_error(e) from e
    return ActionResponse(conversation_id=conversation_id, message_id=message.id)


@admin_router.post("/conversations/{conversation_id}/close", response_model=ActionResponse)
def close_conversation(conversation_id: str, store: ConversationStore = Depends(get_store)):
    try:
        conversation = conversations.close_conversation(store, conversation_id)
    except ChatbotError as e:
        raise _http_error(e) from e
    return ActionResponse(conversation_id=conversation.id, owner=conversation.owner)


@admin_router.get("/stats", response_model=StatisticsResponse)
def statistics(store: ConversationStore = Depends(get_store)):
    try:
        return conversations.conversation_statistics(store)
    except ChatbotError as e:
        raise _http_error(e) from e


@admin_router.post("/maintenance/cleanup", response_model=CleanupResponse)
def cleanup(
    days: Optional[int] = Query(None, ge=1),
    store: ConversationStore = Depends(get_store),
    settings: ChatbotSettings = Depends(get_settings),
):
    days = days or settings.retention_days
    try:
        deleted = sweep_inactive_conversations(store, days)
    except ChatbotError as e:
        raise _http_error(e) from e
    return CleanupResponse(deleted=deleted, days=days)


api_router.include_router(admin_router)
