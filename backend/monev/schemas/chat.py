"""Chat assistant schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    role: Literal["user", "assistant"]
    content: str = Field(max_length=4000)


class ChatRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=2000)
    history: list[ChatTurn] = Field(default_factory=list)


class ChatActionResult(BaseModel):
    tool: str
    ok: bool
    message: str
    result: dict | None = None
    error: str | None = None


class ChatResponse(BaseModel):
    reply: str
    actions: list[ChatActionResult] = Field(default_factory=list)
