from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", json_schema_extra={"examples": [{"message": "hello"}]})

    message: str = Field(min_length=1, description="User message")
    use_llm: bool = Field(default=True, description="Forward the message to the LLM when one is configured")
    allow_web: bool = Field(default=False, description="Allow web-search grounding")


class ChatResponse(BaseModel):
    reply: str = Field(description="Bot reply")
    grounded: bool = False
    sources: list[str] = Field(default_factory=list)
    fallback: bool = Field(default=False, description="True when the canned reply was used")
