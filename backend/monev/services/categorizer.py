"""AI transaction categorization.

Two passes: the model first answers from its own knowledge; when it is not
confident and a merchant name is known, a DuckDuckGo instant-answer lookup
adds context for a second attempt. Any failure degrades to "Lainnya".
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass

import httpx
import structlog

from monev.config import settings
from monev.services.llm_provider import LLMProviderBase, extract_json, get_llm_provider

logger = structlog.get_logger()

CATEGORIES = [
    "Makan & Minuman",
    "Transportasi",
    "Hiburan",
    "Belanja",
    "Kesehatan",
    "Pendidikan",
    "Tagihan",
    "Investasi",
    "Gaji",
    "Freelance",
    "Lainnya",
]
FALLBACK_CATEGORY = "Lainnya"

SYSTEM_PROMPT = f"""Kamu adalah asisten yang mengategorikan transaksi keuangan di Indonesia
berdasarkan nama merchant atau deskripsi.

Contoh: "Grab" dan "Gojek" -> Transportasi, "Netflix" dan "Spotify" -> Hiburan,
"Shell" dan "Pertamina" -> Transportasi. Untuk nama yang ambigu (misalnya
"CV. MAKMUR JAYA"), gunakan pengetahuanmu tentang bisnis di Indonesia dan
turunkan confidence jika ragu.

Kategori yang tersedia:
{chr(10).join(f"- {c}" for c in CATEGORIES)}

Jawab hanya dengan JSON:
{{"category": "Nama Kategori", "confidence": 0.95, "reason": "alasan singkat"}}"""


@dataclass(frozen=True)
class CategorizationResult:
    category: str
    confidence: float
    reason: str
    search_used: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def fallback_result(reason: str = "categorization unavailable") -> CategorizationResult:
    return CategorizationResult(category=FALLBACK_CATEGORY, confidence=0.0, reason=reason)


def parse_categorization(text: str, search_used: bool = False) -> CategorizationResult:
    """Validate a model reply; unknown categories and malformed output fall back."""
    data = extract_json(text)
    if data is None:
        return fallback_result("malformed model output")
    category = data.get("category")
    if category not in CATEGORIES:
        return fallback_result(f"unknown category: {category}")
    try:
        confidence = float(data.get("confidence", 0))
    except (TypeError, ValueError):
        confidence = 0.0
    return CategorizationResult(
        category=category,
        confidence=max(0.0, min(confidence, 1.0)),
        reason=str(data.get("reason") or ""),
        search_used=search_used,
    )


class MerchantLookup:
    """DuckDuckGo instant-answer lookup for unfamiliar merchant names."""

    url = "https://api.duckduckgo.com/"

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout or settings.ai_timeout_seconds

    async def describe(self, merchant_name: str) -> str:
        params = {"q": merchant_name, "format": "json", "no_html": 1, "skip_disambig": 1}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(self.url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("merchant_lookup_failed", merchant=merchant_name, error=str(e))
            return ""
        snippets = [data.get("AbstractText") or ""]
        for topic in data.get("RelatedTopics", [])[:3]:
            if isinstance(topic, dict) and topic.get("Text"):
                snippets.append(topic["Text"])
        return " ".join(s for s in snippets if s)[:1000]


class Categorizer(ABC):
    @abstractmethod
    async def categorize(
        self, merchant_name: str | None = None, description: str | None = None
    ) -> CategorizationResult:
        """Suggest a category. Never raises for provider failures."""


class LLMCategorizer(Categorizer):
    def __init__(
        self,
        provider: LLMProviderBase,
        lookup: MerchantLookup | None = None,
        threshold: float | None = None,
    ):
        self.provider = provider
        self.lookup = lookup
        self.threshold = settings.ai_confidence_threshold if threshold is None else threshold

    async def _ask(self, prompt: str, search_used: bool) -> CategorizationResult:
        reply = await self.provider.chat(
            SYSTEM_PROMPT,
            [{"role": "user", "content": prompt}],
            temperature=0.1,
            json_mode=True,
        )
        return parse_categorization(reply, search_used=search_used)

    async def categorize(
        self, merchant_name: str | None = None, description: str | None = None
    ) -> CategorizationResult:
        merchant_name = (merchant_name or "").strip() or None
        description = (description or "").strip() or None
        if merchant_name is None and description is None:
            raise ValueError("merchant_name or description is required")

        prompt = f"Merchant: {merchant_name or 'tidak ada'}\nDeskripsi: {description or 'tidak ada'}"
        result = await self._ask(prompt, search_used=False)
        if result.confidence >= self.threshold or merchant_name is None or self.lookup is None:
            logger.info("categorized", merchant=merchant_name, category=result.category, confidence=result.confidence)
            return result

        context = await self.lookup.describe(merchant_name)
        if not context:
            return result
        second = await self._ask(f"{prompt}\nInfo dari pencarian web: {context}", search_used=True)
        best = second if second.confidence >= result.confidence else result
        logger.info(
            "categorized_with_search",
            merchant=merchant_name,
            category=best.category,
            confidence=best.confidence,
        )
        return best


def get_categorizer() -> Categorizer:
    """Factory: categorizer backed by the current LLM provider."""
    lookup = MerchantLookup() if settings.ai_web_search_enabled else None
    return LLMCategorizer(get_llm_provider(), lookup=lookup)
