"""LLM provider abstraction.

Supports OpenAI and a local Ollama server behind one interface. A provider
receives a system prompt and message history and returns the assistant's
text. Failures are logged and come back as an empty string so callers can
fall back to their defaults.
"""

import json
from abc import ABC, abstractmethod

import httpx
import openai
import structlog
from openai import AsyncOpenAI

from monev.config import settings
from monev.services.ai_config import get_current_provider

logger = structlog.get_logger()


class LLMProviderBase(ABC):
    """Abstract base for LLM chat providers."""

    @abstractmethod
    async def chat(
        self,
        system_prompt: str,
        messages: list[dict],
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        """Send a chat request and return the assistant's text response.

        Args:
            system_prompt: System-level instructions.
            messages: List of {"role": "user"|"assistant", "content": ...}.
            temperature: Sampling temperature.
            json_mode: Ask the model for a single JSON object.

        Returns:
            The assistant's response text, or "" on any failure.
        """

    @abstractmethod
    async def is_available(self) -> bool:
        """Check if the provider is reachable."""

    def get_model_name(self) -> str:
        """Return the configured model name for this provider."""
        return getattr(self, "model", "?")


class OllamaChatProvider(LLMProviderBase):
    """Ollama-based provider using the /api/chat endpoint."""

    def __init__(self) -> None:
        self.base_url = settings.llm_base_url.rstrip("/")
        self.model = settings.llm_model

    async def is_available(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self.base_url}/api/tags")
                if resp.status_code != 200:
                    return False
                data = resp.json()
                model_names = [m.get("name", "") for m in data.get("models", [])]
                return any(
                    n == self.model or n.startswith(f"{self.model}:")
                    for n in model_names
                )
        except httpx.HTTPError:
            return False

    async def chat(
        self,
        system_prompt: str,
        messages: list[dict],
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        ollama_messages = [{"role": "system", "content": system_prompt}, *messages]
        payload = {
            "model": self.model,
            "messages": ollama_messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": 800},
        }
        if json_mode:
            payload["format"] = "json"

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(
                    connect=5.0,
                    read=settings.ai_timeout_seconds,
                    write=5.0,
                    pool=5.0,
                )
            ) as client:
                resp = await client.post(f"{self.base_url}/api/chat", json=payload)
                if resp.status_code != 200:
                    logger.warning("ollama_chat_error", status=resp.status_code)
                    return ""
                data = resp.json()
                return data.get("message", {}).get("content", "")
        except httpx.TimeoutException:
            logger.warning("ollama_chat_timeout")
            return ""
        except httpx.HTTPError as e:
            logger.warning("ollama_chat_unreachable", error=str(e))
            return ""


class OpenAIChatProvider(LLMProviderBase):
    """OpenAI-based provider using the chat completions API."""

    def __init__(self) -> None:
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model

    async def is_available(self) -> bool:
        return bool(self.api_key)

    async def chat(
        self,
        system_prompt: str,
        messages: list[dict],
        temperature: float = 0.3,
        json_mode: bool = False,
    ) -> str:
        if not self.api_key:
            logger.warning("openai_not_configured")
            return ""

        client = AsyncOpenAI(api_key=self.api_key, timeout=settings.ai_timeout_seconds)
        openai_messages = [{"role": "system", "content": system_prompt}, *messages]
        extra = {"response_format": {"type": "json_object"}} if json_mode else {}

        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=openai_messages,
                temperature=temperature,
                max_tokens=800,
                **extra,
            )
            return response.choices[0].message.content or ""
        except openai.OpenAIError as e:
            logger.error("openai_chat_error", error=str(e))
            return ""


def get_llm_provider() -> LLMProviderBase:
    """Factory: return the configured LLM provider."""
    if get_current_provider() == "ollama":
        return OllamaChatProvider()
    return OpenAIChatProvider()


def extract_json(text: str) -> dict | None:
    """Parse the first JSON object in a model reply, tolerating markdown fences."""
    if not text:
        return None
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except json.JSONDecodeError:
        logger.warning("llm_json_parse_failed", preview=text[:120])
        return None
    return data if isinstance(data, dict) else None
