import os

import pytest
from fastapi.testclient import TestClient

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("RETENTION_SWEEP_INTERVAL_SECONDS", "0")

from support_chatbot.api.dependencies import get_completion_client
from support_chatbot.client.db.conversation_store import ConversationStore
from support_chatbot.config.config import ChatbotSettings, get_settings
from support_chatbot.db.session import Base, SessionLocal, engine
from support_chatbot.errors import CompletionError
from support_chatbot.main import app

ADMIN_TOKEN = "test-admin-token"


class FakeCompletion:
    """Stands in for ChatGPTClient; replies from a queue and records every call."""

    def __init__(self, replies=None):
        self.replies = list(replies or ["Hi! How can I help?"])
        self.calls = []

    def complete(self, system_prompt, history, new_message):
        self.calls.append(
            {"system_prompt": system_prompt, "history": list(history), "new_message": new_message}
        )
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, CompletionError):
            raise reply
        return reply


#scope : function < class < module < package < session
@pytest.fixture(scope="function")
def settings():
    return ChatbotSettings(openai_api_key="sk-test", admin_token=ADMIN_TOKEN)


@pytest.fixture(scope="function")
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def store(db):
    return ConversationStore(db)


@pytest.fixture(scope="function")
def completion():
    return FakeCompletion()


@pytest.fixture(scope="function")
def client(db, settings, completion):
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_completion_client] = lambda: completion
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def admin_headers():
    return {"X-Admin-Token": ADMIN_TOKEN}
