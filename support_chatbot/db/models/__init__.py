from .conversation import Conversation, ResponseOwner
from .message import Message

__all__ = ["Conversation", "Message", "ResponseOwner"]
