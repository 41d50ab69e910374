import hmac
import uuid

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.client.llm.chatgpt import ChatGPTClient
from support_chatbot.config.config import ChatbotSettings, get_settings
from support_chatbot.db.session import get_db
from support_chatbot.errors import Unauthorized
from support_chatbot.model.chat.chat_request import VisitorOrigin


def get_store(db: Session = Depends(get_db)) -> ConversationStore:
    return ConversationStore(db)


def get_completion_client(settings: ChatbotSettings = Depends(get_settings)) -> ChatGPTClient:
    return ChatGPTClient(settings)


def verify_admin_token(token: str, expected: str) -> None:
    # No configured token means every admin call is rejected
    if not expected or not token:
        raise Unauthorized("missing admin token")
    if not hmac.compare_digest(expected.encode(), token.strip().encode()):
        raise Unauthorized("invalid admin token")


def require_admin(
    x_admin_token: str = Header(default=""),
    settings: ChatbotSettings = Depends(get_settings),
) -> None:
    try:
        verify_admin_token(x_admin_token, settings.admin_token)
    except Unauthorized as e:
        raise HTTPException(status_code=401, detail=str(e)) from e


def visitor_origin(
    request: Request,
    x_forwarded_for: str = Header(default=""),
    user_agent: str = Header(default=""),
    x_session_id: str = Header(default=""),
) -> VisitorOrigin:
    ip_address = x_forwarded_for.split(",")[0].strip()
    if not ip_address and request.client is not None:
        ip_address = request.client.host
    return VisitorOrigin(
        session_id=x_session_id.strip() or uuid.uuid4().hex,
        ip_address=ip_address or "0.0.0.0",
        user_agent=user_agent,
    )
