from pydantic import BaseModel, ConfigDict, Field


class HumanResponseRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(..., min_length=1, description="Agent's reply to the visitor")
