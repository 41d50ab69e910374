from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class OrderItem(BaseModel):
    name: str
    quantity: int = 1


class OrderSummary(BaseModel):
    order_number: str = Field(..., description="Shop-facing order number")
    date_created: Optional[datetime] = None
    status: str = ""
    total: Optional[float] = None
    currency: str = ""
    items: List[OrderItem] = Field(default_factory=list)


class VisitorProfile(BaseModel):
    display_name: Optional[str] = Field(None, description="Name of the logged-in visitor")
    orders: List[OrderSummary] = Field(default_factory=list, description="Most recent orders, newest first")


class ChatRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    conversation_id: Optional[str] = Field(None, description="Omit to start a new conversation")
    message: str = Field(..., min_length=1, description="Visitor's message")
    user_id: Optional[str] = Field(None, description="Shop user id when the visitor is logged in")
    visitor: Optional[VisitorProfile] = None


class VisitorOrigin(BaseModel):
    """Provenance recorded on a conversation when it is created."""
    user_id: Optional[str] = None
    session_id: Optional[str] = None
    ip_address: str = "0.0.0.0"
    user_agent: str = ""
