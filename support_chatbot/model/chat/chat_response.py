from enum import Enum
from pydantic import BaseModel, Field
from typing import List, Optional


class ChatStatus(str, Enum):
    ANSWERED = "answered"
    AWAITING_HUMAN = "awaiting_human"
    ERRORED = "errored"


class AdditionalResponse(BaseModel):
    message_id: int
    content: str
    delay_ms: int = Field(..., description="Typing pause before this part is revealed")


class ChatResponse(BaseModel):
    conversation_id: Optional[str] = Field(None, description="Conversation the message was stored in")
    message_id: Optional[int] = None
    status: ChatStatus
    response: Optional[str] = Field(None, description="First part of the assistant's answer")
    additional_responses: List[AdditionalResponse] = Field(default_factory=list)
    error_message: Optional[str] = None
    is_human: bool = False
    is_multiple: bool = False
