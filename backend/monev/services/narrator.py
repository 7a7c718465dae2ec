"""AI-written narrative on top of the computed monthly figures."""

import json
from abc import ABC, abstractmethod

import structlog

from monev.services.financial_advising import HealthMetrics
from monev.services.llm_provider import LLMProviderBase, get_llm_provider
from monev.services.monthly_aggregator import MonthlyReport

logger = structlog.get_logger()

_INSTRUCTIONS = {
    "id": (
        "Kamu adalah penasihat keuangan pribadi yang santai tapi jujur. Dari data JSON "
        "berikut, tulis 3-5 kalimat insight dalam Bahasa Indonesia: apa yang berjalan baik, "
        "apa yang perlu diwaspadai, dan satu saran konkret. Jangan mengarang angka."
    ),
    "en": (
        "You are a friendly but honest personal finance advisor. From the JSON data below, "
        "write 3-5 sentences of insight in English: what went well, what to watch, and one "
        "concrete suggestion. Do not invent numbers."
    ),
}


class InsightNarrator(ABC):
    @abstractmethod
    async def narrate(self, report: MonthlyReport, health: HealthMetrics | None, lang: str) -> str:
        """Short narrative, or "" when unavailable."""


class LLMInsightNarrator(InsightNarrator):
    def __init__(self, provider: LLMProviderBase):
        self.provider = provider

    async def narrate(self, report: MonthlyReport, health: HealthMetrics | None, lang: str) -> str:
        payload = report.to_dict()
        if health is not None:
            payload["health"] = health.to_dict()
        text = await self.provider.chat(
            _INSTRUCTIONS.get(lang, _INSTRUCTIONS["id"]),
            [{"role": "user", "content": json.dumps(payload, default=str)}],
            temperature=0.5,
        )
        if not text:
            logger.info("narrative_unavailable", year=report.year, month=report.month)
        return text.strip()


def get_narrator() -> InsightNarrator:
    return LLMInsightNarrator(get_llm_provider())
