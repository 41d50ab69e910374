import json

import pytest
from sqlalchemy import exc as sa_exc

import support_chatbot.service.chat.chat as chat_module
from conftest import FakeCompletion
from support_chatbot.config.config import ChatbotSettings
from support_chatbot.errors import (
    GENERIC_APOLOGY,
    MissingCredential,
    StoreError,
    TransportError,
    UpstreamError,
)
from support_chatbot.model.chat.chat_request import ChatRequest, VisitorOrigin, VisitorProfile
from support_chatbot.model.chat.chat_response import ChatStatus
from support_chatbot.service.chat.pacing import typing_delay_ms


@pytest.mark.asyncio
async def test_new_visitor_hello_is_answered(store, settings):
    completion = FakeCompletion(["Hi! How can I help?"])

    response = await chat_module.chat_service(
        ChatRequest(message="Hello"),
        store,
        completion,
        settings,
        VisitorOrigin(ip_address="203.0.113.5", user_agent="pytest", session_id="abc"),
    )

    data = json.loads(response.model_dump_json())
    assert data["status"] == "answered"
    assert data["response"] == "Hi! How can I help?"
    assert data["additional_responses"] == []
    assert data["is_multiple"] is False

    conversation = store.get_conversation(data["conversation_id"])
    assert conversation.ip_address == "203.0.113.5"
    assert conversation.session_id == "abc"
    messages = store.get_messages(conversation.id)
    assert len(messages) == 1
    assert messages[0].text == "Hello"
    assert messages[0].response_text == "Hi! How can I help?"


@pytest.mark.asyncio
async def test_two_paragraph_reply_adds_system_message(store, settings):
    completion = FakeCompletion(["We ship everywhere.\n\nDelivery takes 3 days."])

    response = await chat_module.handle_inbound_message(
        "Do you ship?", store=store, completion=completion, settings=settings
    )

    assert response.status == ChatStatus.ANSWERED
    assert response.response == "We ship everywhere."
    assert response.is_multiple is True
    assert len(response.additional_responses) == 1
    extra = response.additional_responses[0]
    assert extra.content == "Delivery takes 3 days."
    assert extra.delay_ms == typing_delay_ms("Delivery takes 3 days.")

    messages = store.get_messages(response.conversation_id)
    assert len(messages) == 2
    assert messages[0].response_text == "We ship everywhere."
    assert messages[1].id == extra.message_id
    assert messages[1].is_system_message is True
    assert messages[1].text is None


@pytest.mark.asyncio
async def test_human_owned_conversation_skips_completion(store, settings):
    conversation = store.create_conversation()
    store.set_human_takeover(conversation.id, True)
    completion = FakeCompletion()

    response = await chat_module.handle_inbound_message(
        "Is anyone there?",
        store=store,
        completion=completion,
        settings=settings,
        conversation_id=conversation.id,
    )

    assert response.status == ChatStatus.AWAITING_HUMAN
    assert response.is_human is True
    assert completion.calls == []
    messages = store.get_messages(conversation.id)
    assert [m.text for m in messages] == ["Is anyone there?"]
    assert messages[0].response_text is None


@pytest.mark.asyncio
async def test_history_excludes_new_message_and_keeps_order(store, settings):
    completion = FakeCompletion(["first answer", "second answer"])
    first = await chat_module.handle_inbound_message("one", store=store, completion=completion, settings=settings)

    await chat_module.handle_inbound_message(
        "two", store=store, completion=completion, settings=settings, conversation_id=first.conversation_id
    )

    second_call = completion.calls[1]
    assert [(h.text, h.response_text) for h in second_call["history"]] == [("one", "first answer")]
    assert second_call["new_message"] == "two"


@pytest.mark.asyncio
async def test_visitor_profile_personalizes_prompt(store, settings):
    completion = FakeCompletion()

    await chat_module.handle_inbound_message(
        "hi",
        store=store,
        completion=completion,
        settings=settings,
        visitor=VisitorProfile(display_name="Rina"),
    )

    assert completion.calls[0]["system_prompt"].startswith(settings.system_prompt)
    assert "Rina" in completion.calls[0]["system_prompt"]


@pytest.mark.asyncio
async def test_unknown_or_closed_conversation_starts_new_one(store, settings):
    closed = store.create_conversation()
    store.close_conversation(closed.id)

    unknown = await chat_module.handle_inbound_message(
        "hi", store=store, completion=FakeCompletion(), settings=settings, conversation_id="no-such-id"
    )
    reopened = await chat_module.handle_inbound_message(
        "hi again", store=store, completion=FakeCompletion(), settings=settings, conversation_id=closed.id
    )

    assert unknown.conversation_id != "no-such-id"
    assert reopened.conversation_id != closed.id
    assert store.get_messages(closed.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, expected",
    [
        (MissingCredential(), GENERIC_APOLOGY),
        (TransportError("timed out"), GENERIC_APOLOGY),
        (UpstreamError("Rate limit reached", kind="rate_limit", status_code=429), "Rate limit reached"),
    ],
)
async def test_completion_failure_is_errored_and_leaves_message_unanswered(store, settings, error, expected):
    response = await chat_module.handle_inbound_message(
        "hello", store=store, completion=FakeCompletion([error]), settings=settings
    )

    assert response.status == ChatStatus.ERRORED
    assert response.error_message == expected
    assert response.response is None
    messages = store.get_messages(response.conversation_id)
    assert len(messages) == 1
    assert messages[0].response_text is None


@pytest.mark.asyncio
async def test_missing_key_logs_operator_message(store, caplog):
    settings = ChatbotSettings(openai_api_key="")

    class KeyCheckingCompletion(FakeCompletion):
        def complete(self, system_prompt, history, new_message):
            raise MissingCredential()

    with caplog.at_level("ERROR"):
        response = await chat_module.handle_inbound_message(
            "hello", store=store, completion=KeyCheckingCompletion(), settings=settings
        )

    assert response.error_message == GENERIC_APOLOGY
    assert "API key is not configured" in caplog.text


@pytest.mark.asyncio
async def test_chat_disabled_persists_nothing(store):
    settings = ChatbotSettings(openai_api_key="sk-test", chat_enabled=False)
    completion = FakeCompletion()

    response = await chat_module.handle_inbound_message(
        "hello", store=store, completion=completion, settings=settings
    )

    assert response.status == ChatStatus.ERRORED
    assert completion.calls == []
    assert store.count_active() == 0


@pytest.mark.asyncio
async def test_store_failure_is_errored(store, settings, monkeypatch):
    def broken_append(*args, **kwargs):
        raise StoreError("Failed to append message")

    monkeypatch.setattr(store, "append_message", broken_append)

    response = await chat_module.handle_inbound_message(
        "hello", store=store, completion=FakeCompletion(), settings=settings
    )

    assert response.status == ChatStatus.ERRORED
    assert response.error_message == GENERIC_APOLOGY


@pytest.mark.asyncio
async def test_history_read_failure_is_errored(store, db, settings, monkeypatch):
    completion = FakeCompletion()

    def failing_scalars(*args, **kwargs):
        raise sa_exc.OperationalError("SELECT", {}, Exception("no such table: messages"))

    monkeypatch.setattr(db, "scalars", failing_scalars)

    response = await chat_module.handle_inbound_message(
        "hello", store=store, completion=completion, settings=settings
    )

    assert response.status == ChatStatus.ERRORED
    assert response.error_message == GENERIC_APOLOGY
    assert response.message_id is not None
    assert completion.calls == []
