"""AI categorization and provider configuration schemas."""

from typing import Literal

from pydantic import BaseModel, model_validator


class CategorizeRequest(BaseModel):
    merchant_name: str | None = None
    description: str | None = None

    @model_validator(mode="after")
    def require_input(self):
        if not (self.merchant_name or "").strip() and not (self.description or "").strip():
            raise ValueError("merchant_name or description is required")
        return self


class CategorizeResponse(BaseModel):
    category: str
    confidence: float
    reason: str
    search_used: bool = False


class AIStatusResponse(BaseModel):
    provider: str
    model: str
    available: bool
    override: bool


class AIConfigUpdate(BaseModel):
    # None clears the runtime override and falls back to AI_PROVIDER
    provider: Literal["openai", "ollama"] | None = None
