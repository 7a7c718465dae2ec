"""Chat assistant: answers questions about the user's month and can record data.

Flow:
  1. The client sends a message and the conversation so far (history is not
     stored server-side).
  2. The LLM receives a system prompt with a JSON snapshot of the current
     month: totals, budgets, goals, recent transactions and category names.
  3. The LLM answers in prose and may append ```action blocks holding
     {"tool": ..., "args": {...}}.
  4. Each action runs through the regular services, so the same validation
     and ownership checks apply as for the REST routes. The reply gets one
     confirmation line per action, built from what was actually stored.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Protocol

import pydantic
import structlog

from monev.core.exceptions import MonevError, ValidationError
from monev.models.user import User
from monev.schemas.budget import BudgetCreate
from monev.schemas.goal import GoalContribution, GoalCreate
from monev.schemas.transaction import TransactionCreate
from monev.services.analytics_service import AnalyticsService
from monev.services.categorizer import FALLBACK_CATEGORY
from monev.services.insight_formatter import format_currency, format_period
from monev.services.llm_provider import LLMProviderBase
from monev.services.monthly_aggregator import goal_progress
from monev.services.store import FinanceStore

logger = structlog.get_logger()

TOOLS = ("record_transaction", "create_budget", "create_goal", "add_goal_funds")
MAX_ACTIONS = 3
HISTORY_LIMIT = 20
RECENT_LIMIT = 30

UNAVAILABLE_REPLY = "Maaf, asisten sedang tidak bisa dihubungi. Coba lagi sebentar lagi ya."

_ACTION_RE = re.compile(r"```action\s*\n?([\s\S]*?)```", re.MULTILINE)

_SYSTEM_PROMPT_TEMPLATE = """\
Kamu adalah asisten keuangan pribadi di aplikasi Monev. Hari ini {today}.

Aturan:
- Jawab dalam bahasa Indonesia yang santai, singkat dan jelas.
- Gunakan angka dari DATA di bawah. Jangan mengarang transaksi atau saldo.
- Format uang sebagai Rupiah, contoh: Rp 50.000.
- Kalau data tidak cukup untuk menjawab, katakan terus terang.

=== AKSI ===

Kalau pengguna meminta mencatat sesuatu, tambahkan satu blok ```action per aksi
di akhir jawaban. Isinya JSON {{"tool": ..., "args": {{...}}}}. Alat yang tersedia:

- record_transaction: {{"amount": 50000, "description": "makan siang", "category": "Makan & Minuman", "type": "expense"}}
  type adalah "expense" atau "income". category diambil dari daftar KATEGORI.
- create_budget: {{"category": "Transportasi", "amount": 500000, "month": 3, "year": 2025}}
- create_goal: {{"name": "Dana darurat", "target_amount": 10000000, "deadline": "2025-12-31", "icon": "🎯"}}
- add_goal_funds: {{"goal_id": 1, "amount": 200000}}

Jangan menulis konfirmasi seolah aksi sudah berhasil. Sistem akan menambahkan
konfirmasi setelah aksi dijalankan.

=== DATA ===
{context}
"""


class TransactionRecorder(Protocol):
    async def create_transaction(self, data: TransactionCreate, user: User) -> dict: ...


class BudgetCreator(Protocol):
    async def create_budget(self, data: BudgetCreate, user: User) -> dict: ...


class GoalKeeper(Protocol):
    async def create_goal(self, data: GoalCreate, user: User) -> dict: ...

    async def contribute(self, goal_id: int, data: GoalContribution, user: User) -> dict: ...


@dataclass
class ChatActions:
    """The write services a chat action may go through."""

    transactions: TransactionRecorder
    budgets: BudgetCreator
    goals: GoalKeeper


@dataclass(frozen=True)
class ChatAction:
    tool: str
    args: dict = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Action block parsing
# ---------------------------------------------------------------------------


def parse_action_blocks(text: str) -> list[ChatAction]:
    """Extract the ```action blocks from a model reply. Malformed blocks are skipped."""
    actions = []
    for match in _ACTION_RE.finditer(text or ""):
        raw = match.group(1).strip()
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("chat_action_parse_failed", preview=raw[:120])
            continue
        if not isinstance(data, dict) or data.get("tool") not in TOOLS:
            logger.warning("chat_action_unknown", tool=data.get("tool") if isinstance(data, dict) else None)
            continue
        args = data.get("args")
        actions.append(ChatAction(tool=data["tool"], args=args if isinstance(args, dict) else {}))
    return actions


def strip_action_blocks(text: str) -> str:
    """Reply text with the action blocks removed."""
    cleaned = _ACTION_RE.sub("", text or "")
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()


def resolve_category(categories, name: str | None, type_: str = "expense"):
    """Case-insensitive name match, preferring categories of ``type_``.

    Unknown or missing names resolve to the fallback category; None only when
    that is missing too.
    """
    wanted = (name or "").strip().casefold()
    if wanted:
        same_type = [c for c in categories if c.type == type_]
        for pool in (same_type, categories):
            for category in pool:
                if category.name.casefold() == wanted:
                    return category
    return next((c for c in categories if c.name == FALLBACK_CATEGORY), None)


def _pick(args: dict, *names):
    for name in names:
        if args.get(name) is not None:
            return args[name]
    return None


def _first_error(exc: pydantic.ValidationError) -> str:
    error = exc.errors()[0]
    where = ".".join(str(part) for part in error.get("loc", ()))
    return f"{where}: {error['msg']}" if where else error["msg"]


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ChatService:
    def __init__(
        self,
        *,
        provider: LLMProviderBase,
        store: FinanceStore,
        analytics: AnalyticsService,
        actions: ChatActions,
    ):
        self.provider = provider
        self.store = store
        self.analytics = analytics
        self.actions = actions
        self.tz = analytics.tz

    async def reply(self, user: User, message: str, history: list[dict], today: date | None = None) -> dict:
        """Answer ``message`` and run any actions the model asked for."""
        today = today or datetime.now(self.tz).date()
        context, categories = await self._context(user.id, today)
        system_prompt = _SYSTEM_PROMPT_TEMPLATE.format(
            today=today.isoformat(),
            context=json.dumps(context, ensure_ascii=False, default=str),
        )
        messages = [
            {"role": turn["role"], "content": turn["content"]} for turn in history[-HISTORY_LIMIT:]
        ]
        messages.append({"role": "user", "content": message})

        text = await self.provider.chat(system_prompt, messages)
        if not text.strip():
            logger.warning("chat_llm_empty", user_id=user.id, model=self.provider.get_model_name())
            return {"reply": UNAVAILABLE_REPLY, "actions": []}

        requested = parse_action_blocks(text)
        if len(requested) > MAX_ACTIONS:
            logger.warning("chat_actions_truncated", requested=len(requested))
        results = [
            await self.run_action(user, action, categories, today) for action in requested[:MAX_ACTIONS]
        ]
        confirmations = [r["message"] for r in results]
        reply = "\n\n".join(part for part in (strip_action_blocks(text), *confirmations) if part)
        logger.info("chat_reply", user_id=user.id, actions=[r["tool"] for r in results])
        return {"reply": reply, "actions": results}

    async def _context(self, user_id: int, today: date) -> tuple[dict, list]:
        (report, degraded), categories, goals, recent = await asyncio.gather(
            self.analytics.monthly_report(user_id, today.year, today.month),
            self.store.list_categories(user_id),
            self.store.list_goals(user_id),
            self.store.list_recent_transactions(user_id, RECENT_LIMIT),
        )
        names = {c.id: c.name for c in categories}
        context = {
            "periode": format_period(today.year, today.month),
            "pemasukan": report.stats.income,
            "pengeluaran": report.stats.expense,
            "saldo": report.stats.balance,
            "anggaran": [
                {
                    "kategori": c.category_name,
                    "limit": c.limit,
                    "terpakai": c.spent,
                    "sisa": c.limit - c.spent,
                }
                for c in report.categories
                if c.limit is not None
            ],
            "target": [
                {
                    "id": g.id,
                    "nama": g.name,
                    "target": g.target_amount,
                    "terkumpul": g.current_amount,
                    "sisa": max(g.target_amount - g.current_amount, 0),
                    "persen": round(goal_progress(g.current_amount, g.target_amount) * 100, 1),
                    "deadline": g.deadline,
                }
                for g in goals
            ],
            "transaksi_terakhir": [
                {
                    "tanggal": t.occurred_at.astimezone(self.tz).date().isoformat(),
                    "jumlah": abs(t.amount),
                    "jenis": t.type,
                    "keterangan": t.description,
                    "kategori": names.get(t.category_id),
                }
                for t in recent
            ],
            "kategori": sorted({c.name for c in categories}),
        }
        if degraded:
            context["data_tidak_lengkap"] = degraded
        return context, categories

    async def run_action(self, user: User, action: ChatAction, categories, today: date) -> dict:
        """Execute one action. Rejections become a failed result, never an exception."""
        handler = getattr(self, f"_{action.tool}")
        try:
            result, message = await handler(user, action.args, categories, today)
        except pydantic.ValidationError as e:
            return self._failed(user, action, _first_error(e))
        except MonevError as e:
            return self._failed(user, action, str(e.detail))
        logger.info("chat_action_done", user_id=user.id, tool=action.tool)
        return {"tool": action.tool, "ok": True, "result": result, "message": message}

    def _failed(self, user: User, action: ChatAction, error: str) -> dict:
        logger.warning("chat_action_rejected", user_id=user.id, tool=action.tool, error=error)
        return {
            "tool": action.tool,
            "ok": False,
            "error": error,
            "message": f"❌ Gagal menjalankan {action.tool}: {error}",
        }

    async def _record_transaction(self, user, args, categories, today):
        type_ = args.get("type") if args.get("type") in ("expense", "income") else "expense"
        category = resolve_category(categories, args.get("category"), type_)
        description = args.get("description") or (category.name if category else "Transaksi")
        data = TransactionCreate(
            amount=args.get("amount"),
            description=description,
            type=type_,
            category_id=category.id if category else None,
            source="chat",
        )
        created = await self.actions.transactions.create_transaction(data, user)
        label = "Pemasukan" if type_ == "income" else "Pengeluaran"
        category_name = category.name if category else FALLBACK_CATEGORY
        message = f"✅ {label} {format_currency(data.amount)} ({data.description}) dicatat di {category_name}."
        return created, message

    async def _create_budget(self, user, args, categories, today):
        category = resolve_category(categories, args.get("category"), "expense")
        if category is None:
            raise ValidationError(f"Unknown category: {args.get('category')}")
        data = BudgetCreate(
            category_id=category.id,
            amount=args.get("amount"),
            month=today.month if args.get("month") is None else args["month"],
            year=today.year if args.get("year") is None else args["year"],
        )
        created = await self.actions.budgets.create_budget(data, user)
        message = (
            f"✅ Anggaran {category.name} {format_period(data.year, data.month)}: "
            f"{format_currency(data.amount)}."
        )
        return created, message

    async def _create_goal(self, user, args, categories, today):
        data = GoalCreate(
            name=args.get("name"),
            target_amount=_pick(args, "target_amount", "targetAmount"),
            deadline=args.get("deadline") or None,
            icon=args.get("icon") or None,
        )
        created = await self.actions.goals.create_goal(data, user)
        message = f"✅ Target {data.name} dibuat: {format_currency(data.target_amount)}."
        return created, message

    async def _add_goal_funds(self, user, args, categories, today):
        goal_id = _pick(args, "goal_id", "goalId")
        data = GoalContribution(amount=args.get("amount"))
        if not isinstance(goal_id, int):
            raise ValidationError("goal_id must be an integer")
        updated = await self.actions.goals.contribute(goal_id, data, user)
        message = f"✅ {format_currency(data.amount)} ditambahkan ke target {updated.get('name', goal_id)}."
        return updated, message
