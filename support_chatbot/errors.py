from typing import Optional


GENERIC_APOLOGY = "Sorry, there was an error. Please try again."


class ChatbotError(Exception):
    """Base class for every failure the chatbot core reports."""


class CompletionError(ChatbotError):
    pass


class MissingCredential(CompletionError):
    def __init__(self, message: str = "OpenAI API key is not configured"):
        super().__init__(message)


class UpstreamError(CompletionError):
    """
    The provider answered but the answer is unusable.
    kind is one of: auth, rate_limit, malformed, status.
    """

    def __init__(self, message: str, kind: str = "malformed", status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = status_code


class TransportError(CompletionError):
    pass


class NotFound(ChatbotError):
    pass


class Unauthorized(ChatbotError):
    pass


class ConversationClosed(ChatbotError):
    pass


class TakeoverDisabled(ChatbotError):
    pass


class StoreError(ChatbotError):
    pass
