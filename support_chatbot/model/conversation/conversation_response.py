from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

from support_chatbot.db.models import ResponseOwner


class MessageItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    text: Optional[str] = None
    response_text: Optional[str] = None
    is_from_human: bool = False
    is_response_from_human: bool = False
    is_system_message: bool = False
    created_at: datetime
    response_at: Optional[datetime] = None


class LastMessage(BaseModel):
    text: Optional[str] = None
    created_at: datetime


class ConversationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ip_address: str
    is_active: bool
    is_human_takeover: bool
    owner: ResponseOwner
    created_at: datetime
    updated_at: datetime
    last_message: Optional[LastMessage] = None
    unanswered_count: Optional[int] = None


class ConversationDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: Optional[str] = None
    session_id: str
    ip_address: str
    user_agent: str
    is_active: bool
    is_human_takeover: bool
    owner: ResponseOwner
    created_at: datetime
    updated_at: datetime
    messages: List[MessageItem]


class ActionResponse(BaseModel):
    success: bool = True
    conversation_id: str
    owner: Optional[ResponseOwner] = None
    message_id: Optional[int] = None


class DailyCount(BaseModel):
    date: str
    count: int


class StatisticsResponse(BaseModel):
    total_conversations: int
    active_conversations: int
    human_takeover_count: int
    total_messages: int
    daily_counts: List[DailyCount]


class CleanupResponse(BaseModel):
    deleted: int
    days: int
