from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_FILE = Path(__file__).resolve().parents[2] / ".env"

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful and friendly customer support assistant for our shop. "
    "Answer within 40 words. If the answer needs more than 40 words, "
    "reply in two separate paragraphs."
)


class ChatbotSettings(BaseSettings):
    model_config = SettingsConfigDict(frozen=True, env_file=ENV_FILE, extra="ignore")

    openai_api_key: str = ""
    model: str = "gpt-4o-mini"
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    completion_timeout_seconds: float = 30.0
    completion_max_tokens: int = 500
    completion_temperature: float = 0.7
    history_limit: int = 10
    split_max_words: int = 40

    admin_token: str = ""
    chat_enabled: bool = True
    human_takeover_enabled: bool = True

    chat_title: str = "Chat with us"
    welcome_message_logged_in: str = "Hello {name}, how can I help you today?"
    welcome_message_guest: str = "Hi, Do you need help?"
    theme_color: str = "#4a51bf"

    retention_days: int = 30
    # 0 disables the background sweep
    retention_sweep_interval_seconds: int = 0

    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("system_prompt")
    @classmethod
    def _default_when_blank(cls, value: str) -> str:
        return value if value.strip() else DEFAULT_SYSTEM_PROMPT

    @field_validator("log_file")
    @classmethod
    def _none_when_blank(cls, value: Optional[str]) -> Optional[str]:
        return value or None


def load_settings() -> ChatbotSettings:
    """Build the settings value from the process environment (and .env, if present)."""
    return ChatbotSettings()


@lru_cache(maxsize=1)
def get_settings() -> ChatbotSettings:
    return load_settings()
