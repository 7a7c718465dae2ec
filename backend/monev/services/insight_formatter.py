"""Human-readable insight text for the API and chat messages.

Pure formatting over aggregated numbers. Two languages are supported:
Indonesian (``id``, the default) and English (``en``). Output is plain text
so the same blocks can go into a JSON response or a Telegram message.
"""

from datetime import date
from typing import Iterable

from monev.services.financial_advising import HealthMetrics
from monev.services.monthly_aggregator import CategorySpend, DailyRecap, MonthlyStats
from monev.services.recurring_detector import RecurringChargeCandidate, total_monthly_cost

LANGUAGES = ("id", "en")
DEFAULT_LANGUAGE = "id"

_MONTHS = {
    "id": ["Januari", "Februari", "Maret", "April", "Mei", "Juni", "Juli",
           "Agustus", "September", "Oktober", "November", "Desember"],
    "en": ["January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"],
}

_SHORT_MONTHS = {
    "id": ["Jan", "Feb", "Mar", "Apr", "Mei", "Jun", "Jul", "Agu", "Sep", "Okt", "Nov", "Des"],
    "en": ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
}

_TEXT = {
    "id": {
        "summary_title": "📊 Ringkasan {period}",
        "income": "Pemasukan",
        "expense": "Pengeluaran",
        "balance": "Saldo",
        "surplus": "✅ Keuangan kamu sehat! Kamu berhasil menabung bulan ini.",
        "even": "⚖️ Break-even: pemasukan sama dengan pengeluaran.",
        "deficit": "⚠️ Pengeluaran melebihi pemasukan, perlu diperhatikan!",
        "subs_title": "🕵️ Subscription Hunter",
        "subs_intro": "Ditemukan {count} tagihan berulang yang mungkin bisa dievaluasi:",
        "subs_line": "• {merchant}: {amount} (x{frequency}, {cadence}, terakhir {last_date})",
        "subs_total": "💰 Total beban bulanan: {total}",
        "subs_nudge": "Masih rajin pakai semua ini? Kalau jarang, mending berhenti langganan dan alihkan ke tabungan.",
        "subs_none": "Tidak ada tagihan berulang yang terdeteksi.",
        "cadence_monthly": "bulanan",
        "cadence_weekly": "mingguan",
        "budget_title": "🚨 Anggaran terlampaui",
        "budget_line": "• {category}: {spent} dari {limit}",
        "uncategorized": "Tanpa kategori",
        "recap_title": "🌙 Rekap Harian",
        "recap_date": "Tanggal: {day}",
        "recap_safe": "✅ Aman! Kamu hemat {amount} hari ini.",
        "recap_over": "⚠️ Boros! Kamu melewati anggaran harian {amount}.",
        "idle_title": "💸 Idle Cash Optimizer",
        "idle_body": "Ada dana menganggur {amount} bulan ini. Pertimbangkan reksa dana pasar uang supaya tidak tergerus inflasi.",
        "burn_title": "🔥 Cash Burn Alert",
        "burn_body": "Hari ini uang tunai yang keluar {amount}. Uang tunai sering hilang tanpa jejak.",
        "inflation_title": "📉 Penyesuaian Inflasi",
        "inflation_body": "Target tabungan disesuaikan +{rate}% supaya nilainya tetap relevan.",
        "runway": "Dana cukup untuk {months} bulan ({status}).",
        "runway_unlimited": "Belum ada pengeluaran rutin, runway tidak terbatas.",
        "status_critical": "darurat, cashflow kritis",
        "status_warning": "hati-hati, dana darurat tipis",
        "status_safe": "aman terkendali",
        "status_wealthy": "cashflow sangat sehat",
        "saved_title": "Transaksi tercatat!",
        "draft_title": "Cek dulu sebelum disimpan:",
        "field_amount": "Jumlah",
        "field_description": "Deskripsi",
        "field_merchant": "Merchant",
        "field_category": "Kategori",
        "field_date": "Tanggal",
    },
    "en": {
        "summary_title": "📊 Summary for {period}",
        "income": "Income",
        "expense": "Expenses",
        "balance": "Balance",
        "surplus": "✅ Your finances are healthy! You saved money this month.",
        "even": "⚖️ Break-even: income equals expenses.",
        "deficit": "⚠️ Expenses exceed income, keep an eye on your spending!",
        "subs_title": "🕵️ Subscription Hunter",
        "subs_intro": "Found {count} recurring charges worth reviewing:",
        "subs_line": "• {merchant}: {amount} (x{frequency}, {cadence}, last {last_date})",
        "subs_total": "💰 Total monthly cost: {total}",
        "subs_nudge": "Still using all of these? If not, cancel and move the money to savings.",
        "subs_none": "No recurring charges detected.",
        "cadence_monthly": "monthly",
        "cadence_weekly": "weekly",
        "budget_title": "🚨 Over budget",
        "budget_line": "• {category}: {spent} of {limit}",
        "uncategorized": "Uncategorized",
        "recap_title": "🌙 Daily Recap",
        "recap_date": "Date: {day}",
        "recap_safe": "✅ On track! You saved {amount} today.",
        "recap_over": "⚠️ Overspent! You went {amount} over your daily budget.",
        "idle_title": "💸 Idle Cash Optimizer",
        "idle_body": "You have {amount} sitting idle this month. A money market fund keeps it ahead of inflation.",
        "burn_title": "🔥 Cash Burn Alert",
        "burn_body": "You spent {amount} in cash today. Cash tends to vanish without a trace.",
        "inflation_title": "📉 Inflation Adjustment",
        "inflation_body": "Savings targets were raised by {rate}% to keep their real value.",
        "runway": "Your money lasts {months} months ({status}).",
        "runway_unlimited": "No recurring spending yet, runway is unlimited.",
        "status_critical": "critical, cash flow is tight",
        "status_warning": "careful, thin emergency fund",
        "status_safe": "safe",
        "status_wealthy": "very healthy cash flow",
        "saved_title": "Transaction saved!",
        "draft_title": "Please check before saving:",
        "field_amount": "Amount",
        "field_description": "Description",
        "field_merchant": "Merchant",
        "field_category": "Category",
        "field_date": "Date",
    },
}


def resolve_language(lang: str | None) -> str:
    return lang if lang in LANGUAGES else DEFAULT_LANGUAGE


def _t(lang: str, key: str, **kwargs) -> str:
    template = _TEXT[resolve_language(lang)][key]
    return template.format(**kwargs) if kwargs else template


def format_currency(amount: int, lang: str = DEFAULT_LANGUAGE) -> str:
    """``Rp 120.000`` for Indonesian, ``Rp 120,000`` for English."""
    grouped = f"{abs(amount):,}"
    if resolve_language(lang) == "id":
        grouped = grouped.replace(",", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp {grouped}"


def format_period(year: int, month: int, lang: str = DEFAULT_LANGUAGE) -> str:
    return f"{_MONTHS[resolve_language(lang)][month - 1]} {year}"


def format_date(value: date, lang: str = DEFAULT_LANGUAGE) -> str:
    return f"{value.day} {_SHORT_MONTHS[resolve_language(lang)][value.month - 1]} {value.year}"


def monthly_summary_block(stats: MonthlyStats, year: int, month: int, lang: str = DEFAULT_LANGUAGE) -> str:
    if stats.balance > 0:
        verdict = _t(lang, "surplus")
    elif stats.balance == 0:
        verdict = _t(lang, "even")
    else:
        verdict = _t(lang, "deficit")
    return "\n".join([
        _t(lang, "summary_title", period=format_period(year, month, lang)),
        f"{_t(lang, 'income')}: {format_currency(stats.income, lang)}",
        f"{_t(lang, 'expense')}: {format_currency(stats.expense, lang)}",
        f"{_t(lang, 'balance')}: {format_currency(stats.balance, lang)}",
        verdict,
    ])


def subscription_block(candidates: list[RecurringChargeCandidate], lang: str = DEFAULT_LANGUAGE) -> str:
    if not candidates:
        return _t(lang, "subs_none")
    lines = [_t(lang, "subs_title"), _t(lang, "subs_intro", count=len(candidates))]
    for candidate in candidates:
        lines.append(_t(
            lang,
            "subs_line",
            merchant=candidate.merchant,
            amount=format_currency(candidate.amount, lang),
            frequency=candidate.frequency,
            cadence=_t(lang, f"cadence_{candidate.cadence}"),
            last_date=format_date(candidate.last_date, lang),
        ))
    lines.append(_t(lang, "subs_total", total=format_currency(total_monthly_cost(candidates), lang)))
    lines.append(_t(lang, "subs_nudge"))
    return "\n".join(lines)


def budget_alert_block(categories: Iterable[CategorySpend], lang: str = DEFAULT_LANGUAGE) -> str | None:
    over = [c for c in categories if c.over_budget]
    if not over:
        return None
    lines = [_t(lang, "budget_title")]
    for row in over:
        lines.append(_t(
            lang,
            "budget_line",
            category=row.category_name or _t(lang, "uncategorized"),
            spent=format_currency(row.spent, lang),
            limit=format_currency(row.limit or 0, lang),
        ))
    return "\n".join(lines)


def runway_line(health: HealthMetrics, lang: str = DEFAULT_LANGUAGE) -> str:
    if health.avg_monthly_expense <= 0:
        return _t(lang, "runway_unlimited")
    return _t(lang, "runway", months=health.runway_months, status=_t(lang, f"status_{health.status}"))


def build_insights(
    stats: MonthlyStats,
    candidates: list[RecurringChargeCandidate],
    *,
    year: int,
    month: int,
    lang: str = DEFAULT_LANGUAGE,
    categories: Iterable[CategorySpend] = (),
    health: HealthMetrics | None = None,
) -> list[str]:
    """Ordered insight blocks for a month: summary, budget alerts, runway, subscriptions."""
    blocks = [monthly_summary_block(stats, year, month, lang)]
    alerts = budget_alert_block(categories, lang)
    if alerts:
        blocks.append(alerts)
    if health is not None:
        blocks.append(runway_line(health, lang))
    if candidates:
        blocks.append(subscription_block(candidates, lang))
    return blocks


def render(blocks: Iterable[str]) -> str:
    return "\n\n".join(blocks)


def daily_recap_message(
    recap: DailyRecap,
    *,
    lang: str = DEFAULT_LANGUAGE,
    month_balance: int = 0,
    idle_cash_threshold: int | None = None,
    cash_burn_threshold: int | None = None,
    goal_adjustments: list[tuple[str, int, int]] | None = None,
    inflation_rate: float = 0.0,
) -> str:
    """End-of-day recap with optional idle-cash, cash-burn and inflation sections."""
    head = [
        _t(lang, "recap_title"),
        _t(lang, "recap_date", day=format_date(recap.day, lang)),
        f"{_t(lang, 'expense')}: {format_currency(recap.expense, lang)}",
        f"{_t(lang, 'income')}: {format_currency(recap.income, lang)}",
    ]
    if recap.saved >= 0:
        head.append(_t(lang, "recap_safe", amount=format_currency(recap.saved, lang)))
    else:
        head.append(_t(lang, "recap_over", amount=format_currency(-recap.saved, lang)))
    blocks = ["\n".join(head)]

    if idle_cash_threshold is not None and month_balance > idle_cash_threshold:
        blocks.append("\n".join([
            _t(lang, "idle_title"),
            _t(lang, "idle_body", amount=format_currency(month_balance, lang)),
        ]))
    if cash_burn_threshold is not None and recap.cash_expense > cash_burn_threshold:
        blocks.append("\n".join([
            _t(lang, "burn_title"),
            _t(lang, "burn_body", amount=format_currency(recap.cash_expense, lang)),
        ]))
    if goal_adjustments:
        lines = [
            _t(lang, "inflation_title"),
            _t(lang, "inflation_body", rate=f"{inflation_rate * 100:g}"),
        ]
        for name, old, new in goal_adjustments:
            lines.append(f"• {name}: {format_currency(old, lang)} → {format_currency(new, lang)}")
        blocks.append("\n".join(lines))
    return render(blocks)


def transaction_message(
    *,
    amount: int,
    description: str,
    category: str | None,
    merchant: str | None = None,
    occurred_on: date | None = None,
    draft: bool = False,
    lang: str = DEFAULT_LANGUAGE,
) -> str:
    """Bot text for a saved transaction, or for a draft awaiting confirmation."""
    lines = [_t(lang, "draft_title" if draft else "saved_title")]
    lines.append(f"{_t(lang, 'field_amount')}: {format_currency(amount, lang)}")
    lines.append(f"{_t(lang, 'field_description')}: {description}")
    if merchant:
        lines.append(f"{_t(lang, 'field_merchant')}: {merchant}")
    lines.append(f"{_t(lang, 'field_category')}: {category or _t(lang, 'uncategorized')}")
    if occurred_on:
        lines.append(f"{_t(lang, 'field_date')}: {format_date(occurred_on, lang)}")
    return "\n".join(lines)
