"""Which LLM backend serves AI calls.

``AI_PROVIDER`` sets the default. ``PATCH /api/v1/ai/config`` can switch it at
runtime; the switch is process-local and is lost on restart.
"""

from monev.config import settings

PROVIDERS = ("openai", "ollama")


class ProviderSelection:
    def __init__(self, default: str):
        self.default = default
        self.override: str | None = None

    @property
    def current(self) -> str:
        return self.override or self.default

    def choose(self, provider: str) -> None:
        name = provider.strip().lower()
        if name not in PROVIDERS:
            raise ValueError(f"Unknown AI provider: {provider} (expected one of {', '.join(PROVIDERS)})")
        self.override = name

    def reset(self) -> None:
        self.override = None


_selection = ProviderSelection(settings.ai_provider)


def get_current_provider() -> str:
    return _selection.current


def has_override() -> bool:
    return _selection.override is not None


def set_provider(provider: str) -> None:
    """Raises ValueError for names outside PROVIDERS."""
    _selection.choose(provider)


def clear_override() -> None:
    _selection.reset()
