"""Recurring-charge (subscription) detection.

Works on already-fetched transaction records. Charges are grouped by a
normalized merchant key, each merchant is split into amount bands around its
modal amount, and every band gets a verdict based on the spacing of its
charge dates:

- ``Recurring``: at least two charges, every gap inside one cadence band
- ``NotEnoughData``: a single charge
- ``Irregular``: all charges on one day, or gaps that fit no cadence
"""

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from statistics import fmean
from typing import Iterable, Protocol

from monev.services.periods import local_date

DAYS_PER_MONTH = 30.4375
DEFAULT_AMOUNT_TOLERANCE = 0.05


class ChargeRecord(Protocol):
    amount: int
    type: str
    merchant_name: str | None
    occurred_at: datetime


@dataclass(frozen=True)
class Cadence:
    name: str
    min_gap_days: int
    max_gap_days: int

    def accepts(self, gaps: list[int]) -> bool:
        return all(self.min_gap_days <= gap <= self.max_gap_days for gap in gaps)


WEEKLY = Cadence("weekly", 5, 9)
MONTHLY = Cadence("monthly", 20, 40)
DEFAULT_CADENCES = (WEEKLY, MONTHLY)


@dataclass(frozen=True)
class RecurringChargeCandidate:
    merchant: str
    amount: int
    frequency: int  # distinct billing dates
    last_date: date
    cadence: str
    monthly_cost: int

    def to_dict(self) -> dict:
        return {
            "merchant": self.merchant,
            "amount": self.amount,
            "frequency": self.frequency,
            "last_date": self.last_date.isoformat(),
            "cadence": self.cadence,
            "monthly_cost": self.monthly_cost,
        }


@dataclass(frozen=True)
class Recurring:
    candidate: RecurringChargeCandidate

    @property
    def merchant(self) -> str:
        return self.candidate.merchant


@dataclass(frozen=True)
class NotEnoughData:
    merchant: str
    amount: int
    occurrences: int


@dataclass(frozen=True)
class Irregular:
    merchant: str
    amount: int
    occurrences: int  # charges in a same_day burst, distinct dates otherwise
    reason: str  # same_day | spacing


Verdict = Recurring | NotEnoughData | Irregular


@dataclass(frozen=True)
class _Charge:
    merchant: str
    amount: int
    day: date


def normalize_merchant(name: str | None) -> str | None:
    """Comparison key for a merchant name, or None when there is no usable name."""
    if not name:
        return None
    key = " ".join(name.split()).lower()
    return key or None


def modal_amount(amounts: Iterable[int]) -> int:
    """Most frequent amount; ties go to the larger amount."""
    counts = Counter(amounts)
    if not counts:
        raise ValueError("modal_amount() of an empty sequence")
    return max(counts, key=lambda amount: (counts[amount], amount))


def split_by_amount(
    charges: list[_Charge], tolerance: float = DEFAULT_AMOUNT_TOLERANCE
) -> list[tuple[int, list[_Charge]]]:
    """Peel off bands of charges within ``tolerance`` of the modal amount until none remain."""
    bands: list[tuple[int, list[_Charge]]] = []
    remaining = list(charges)
    while remaining:
        modal = modal_amount(c.amount for c in remaining)
        width = modal * tolerance
        members = [c for c in remaining if abs(c.amount - modal) <= width]
        remaining = [c for c in remaining if abs(c.amount - modal) > width]
        bands.append((modal, members))
    return bands


def _classify_band(
    merchant: str,
    modal: int,
    charges: list[_Charge],
    cadences: tuple[Cadence, ...],
) -> Verdict:
    occurrences = len(charges)
    if occurrences < 2:
        return NotEnoughData(merchant=merchant, amount=modal, occurrences=occurrences)

    days = sorted({c.day for c in charges})
    if len(days) < 2:
        return Irregular(merchant=merchant, amount=modal, occurrences=occurrences, reason="same_day")

    gaps = [(later - earlier).days for earlier, later in zip(days, days[1:])]
    cadence = next((c for c in cadences if c.accepts(gaps)), None)
    if cadence is None:
        return Irregular(merchant=merchant, amount=modal, occurrences=len(days), reason="spacing")

    return Recurring(
        RecurringChargeCandidate(
            merchant=merchant,
            amount=modal,
            frequency=len(days),
            last_date=days[-1],
            cadence=cadence.name,
            monthly_cost=round(modal * DAYS_PER_MONTH / fmean(gaps)),
        )
    )


def _collect_charges(transactions: Iterable[ChargeRecord], tz: tzinfo | None) -> dict[str, list[_Charge]]:
    """Expense charges with a merchant, grouped by merchant key.

    The display name of each group is the most recent spelling seen.
    """
    grouped: dict[str, list[tuple[datetime | date, str, int]]] = {}
    for txn in transactions:
        if txn.type != "expense" or not txn.amount:
            continue
        key = normalize_merchant(txn.merchant_name)
        if key is None:
            continue
        grouped.setdefault(key, []).append((txn.occurred_at, txn.merchant_name.strip(), abs(txn.amount)))

    charges: dict[str, list[_Charge]] = {}
    for key, rows in grouped.items():
        days = [(local_date(occurred_at, tz), name, amount) for occurred_at, name, amount in rows]
        display = max(days, key=lambda row: row[0])[1]
        charges[key] = [_Charge(merchant=display, amount=amount, day=day) for day, _, amount in days]
    return charges


def analyze_merchants(
    transactions: Iterable[ChargeRecord],
    *,
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
    cadences: tuple[Cadence, ...] = DEFAULT_CADENCES,
    tz: tzinfo | None = None,
) -> list[Verdict]:
    """Verdict for every (merchant, amount band) in ``transactions``."""
    verdicts: list[Verdict] = []
    for _, charges in sorted(_collect_charges(transactions, tz).items()):
        merchant = charges[0].merchant
        for modal, members in split_by_amount(charges, tolerance):
            verdicts.append(_classify_band(merchant, modal, members, cadences))
    return verdicts


def detect_recurring_charges(
    transactions: Iterable[ChargeRecord],
    *,
    tolerance: float = DEFAULT_AMOUNT_TOLERANCE,
    cadences: tuple[Cadence, ...] = DEFAULT_CADENCES,
    tz: tzinfo | None = None,
) -> list[RecurringChargeCandidate]:
    """Recurring charges, highest monthly cost first, ties by merchant name."""
    candidates = [
        verdict.candidate
        for verdict in analyze_merchants(transactions, tolerance=tolerance, cadences=cadences, tz=tz)
        if isinstance(verdict, Recurring)
    ]
    candidates.sort(key=lambda c: (-c.monthly_cost, c.merchant.lower()))
    return candidates


def total_monthly_cost(candidates: Iterable[RecurringChargeCandidate]) -> int:
    return sum(c.monthly_cost for c in candidates)
