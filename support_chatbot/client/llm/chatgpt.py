import logging
from typing import Any, Iterable, NamedTuple, Optional

import openai
from openai import OpenAI

from support_chatbot.config.config import ChatbotSettings
from support_chatbot.errors import MissingCredential, TransportError, UpstreamError

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
INVALID_RESPONSE_MESSAGE = "Invalid response from OpenAI"


class HistoryTurn(NamedTuple):
    text: Optional[str]
    response_text: Optional[str]


def build_messages(
    system_prompt: str,
    history: Iterable[Any],
    new_message: str,
    history_limit: int = HISTORY_LIMIT,
) -> list[dict[str, str]]:
    """
    Role-tagged prompt: system prompt, then the most recent history entries
    (user turn + assistant turn when answered), then the new user turn.
    History entries need `text` and `response_text` attributes.
    """
    messages = [{"role": "system", "content": system_prompt}]

    entries = list(history)
    recent = entries[-history_limit:] if history_limit > 0 else []
    for item in recent:
        # Continuation parts carry no visitor text
        if item.text:
            messages.append({"role": "user", "content": item.text})
        if item.response_text:
            messages.append({"role": "assistant", "content": item.response_text})

    messages.append({"role": "user", "content": new_message})
    return messages


def _provider_error_message(err: openai.APIStatusError) -> str:
    body = getattr(err, "body", None)
    if isinstance(body, dict):
        message = body.get("message")
        if not message and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
        if message:
            return str(message)
    return INVALID_RESPONSE_MESSAGE


def _extract_content(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, kind="malformed")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise UpstreamError(INVALID_RESPONSE_MESSAGE, kind="malformed")
    return content.strip()


class ChatGPTClient:
    """Completion client over the OpenAI chat completions API."""

    def __init__(self, settings: ChatbotSettings, client: Optional[OpenAI] = None):
        self.settings = settings
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.completion_timeout_seconds,
                max_retries=0,
            )
        return self._client

    def complete(self, system_prompt: str, history: Iterable[Any], new_message: str) -> str:
        if not self.settings.openai_api_key:
            raise MissingCredential()

        messages = build_messages(system_prompt, history, new_message, self.settings.history_limit)
        logger.debug("Requesting completion model=%s turns=%d", self.settings.model, len(messages))

        try:
            response = self._get_client().chat.completions.create(
                model=self.settings.model,
                messages=messages,
                max_tokens=self.settings.completion_max_tokens,
                temperature=self.settings.completion_temperature,
            )
        except openai.APITimeoutError as e:
            raise TransportError("Request to OpenAI timed out") from e
        except openai.APIConnectionError as e:
            raise TransportError(f"Could not reach OpenAI: {e}") from e
        except openai.AuthenticationError as e:
            raise UpstreamError(_provider_error_message(e), kind="auth", status_code=e.status_code) from e
        except openai.RateLimitError as e:
            raise UpstreamError(_provider_error_message(e), kind="rate_limit", status_code=e.status_code) from e
        except openai.APIStatusError as e:
            raise UpstreamError(_provider_error_message(e), kind="status", status_code=e.status_code) from e

        return _extract_content(response)
