from typing import Any

from pydantic import Field

from storyloom.schemas.common import CamelModel


class ChatRequest(CamelModel):
    message: str | None = None
    language: str = "en"
    context: str | None = None


class GenerateRequest(CamelModel):
    prompt: str | None = None
    type: str = "general"
    language: str = "en"
    max_tokens: int | None = Field(default=None, ge=1, le=8192)
    temperature: float | None = Field(default=None, ge=0, le=2)
    title: str | None = None
    outline: str | None = None
    current_content: str | None = None
    new_thought: str | None = None


class BatchItem(CamelModel):
    type: str | None = None
    title: str | None = None
    content: str | None = None
    current_content: str | None = None
    new_thought: str | None = None
    context: dict[str, Any] = Field(default_factory=dict)


class BatchRequest(CamelModel):
    requests: list[BatchItem] | None = None
