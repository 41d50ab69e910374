from pydantic import BaseModel, Field


class WidgetResponse(BaseModel):
    chat_enabled: bool
    human_takeover_enabled: bool
    chat_title: str
    welcome_message: str = Field(..., description="Greeting shown when the widget opens")
    theme_color: str
