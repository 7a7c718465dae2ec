"""Recurring-charge detection tests."""

from datetime import date, timezone

import pytest

from fakes import make_txn, utc
from monev.services.recurring_detector import (
    Irregular,
    NotEnoughData,
    Recurring,
    analyze_merchants,
    detect_recurring_charges,
    modal_amount,
    normalize_merchant,
    total_monthly_cost,
)

UTC = timezone.utc


def charges(merchant, amount, *days):
    return [make_txn(-amount, "expense", utc(*d), merchant=merchant) for d in days]


def test_monthly_subscription_detected():
    txns = charges("Netflix", 120000, (2025, 1, 5), (2025, 2, 4), (2025, 3, 6))

    result = detect_recurring_charges(txns, tz=UTC)

    assert len(result) == 1
    netflix = result[0]
    assert netflix.merchant == "Netflix"
    assert netflix.amount == 120000
    assert netflix.frequency == 3
    assert netflix.cadence == "monthly"
    assert netflix.last_date == date(2025, 3, 6)
    # both gaps are 30 days
    assert netflix.monthly_cost == round(120000 * 30.4375 / 30)


def test_weekly_charges_detected_and_ordered_by_monthly_cost():
    txns = charges("Netflix", 120000, (2025, 1, 5), (2025, 2, 4), (2025, 3, 6))
    txns += charges("Gym Harian", 50000, (2025, 3, 1), (2025, 3, 8), (2025, 3, 15), (2025, 3, 22))

    result = detect_recurring_charges(txns, tz=UTC)

    assert [c.merchant for c in result] == ["Gym Harian", "Netflix"]
    assert result[0].cadence == "weekly"
    assert result[0].monthly_cost == round(50000 * 30.4375 / 7)
    assert total_monthly_cost(result) == result[0].monthly_cost + result[1].monthly_cost


def test_ties_ordered_by_merchant_name():
    txns = charges("spotify", 55000, (2025, 1, 10), (2025, 2, 10))
    txns += charges("Apple Music", 55000, (2025, 1, 10), (2025, 2, 10))

    result = detect_recurring_charges(txns, tz=UTC)

    assert [c.merchant for c in result] == ["Apple Music", "spotify"]


def test_single_charge_is_not_enough_data():
    verdicts = analyze_merchants(charges("Netflix", 120000, (2025, 3, 6)), tz=UTC)

    assert verdicts == [NotEnoughData(merchant="Netflix", amount=120000, occurrences=1)]
    assert detect_recurring_charges(charges("Netflix", 120000, (2025, 3, 6)), tz=UTC) == []


def test_same_day_duplicates_are_irregular():
    txns = charges("Warung Bu Sri", 30000, (2025, 3, 6), (2025, 3, 6))

    verdicts = analyze_merchants(txns, tz=UTC)

    assert len(verdicts) == 1
    assert isinstance(verdicts[0], Irregular)
    assert verdicts[0].reason == "same_day"
    assert verdicts[0].occurrences == 2


def test_frequency_counts_billing_dates_not_duplicate_rows():
    txns = charges("Netflix", 120000, (2025, 1, 5), (2025, 1, 5), (2025, 2, 4))

    result = detect_recurring_charges(txns, tz=UTC)

    assert len(result) == 1
    assert result[0].frequency == 2
    assert result[0].cadence == "monthly"


def test_uneven_spacing_is_irregular():
    txns = charges("Tokopedia", 80000, (2025, 1, 1), (2025, 1, 4), (2025, 3, 5))

    verdicts = analyze_merchants(txns, tz=UTC)

    assert isinstance(verdicts[0], Irregular)
    assert verdicts[0].reason == "spacing"


def test_amounts_split_into_bands():
    txns = charges("Spotify", 55000, (2025, 1, 10), (2025, 2, 10), (2025, 3, 10))
    txns += charges("Spotify", 110000, (2025, 2, 20))

    verdicts = analyze_merchants(txns, tz=UTC)

    assert len(verdicts) == 2
    recurring = [v for v in verdicts if isinstance(v, Recurring)]
    assert len(recurring) == 1
    assert recurring[0].candidate.amount == 55000
    assert recurring[0].candidate.frequency == 3
    assert NotEnoughData(merchant="Spotify", amount=110000, occurrences=1) in verdicts


def test_small_price_changes_stay_in_one_band():
    txns = charges("PLN", 120000, (2025, 1, 5), (2025, 2, 5))
    txns += charges("PLN", 121000, (2025, 3, 5))

    result = detect_recurring_charges(txns, tz=UTC)

    assert len(result) == 1
    assert result[0].amount == 120000
    assert result[0].frequency == 3


def test_merchant_names_grouped_case_insensitively():
    txns = [
        make_txn(-120000, "expense", utc(2025, 1, 5), merchant="NETFLIX"),
        make_txn(-120000, "expense", utc(2025, 2, 4), merchant="netflix "),
        make_txn(-120000, "expense", utc(2025, 3, 6), merchant="Netflix"),
    ]

    result = detect_recurring_charges(txns, tz=UTC)

    assert len(result) == 1
    assert result[0].merchant == "Netflix"


def test_income_and_unnamed_charges_ignored():
    txns = [
        make_txn(5000000, "income", utc(2025, 1, 25), merchant="PT Maju"),
        make_txn(5000000, "income", utc(2025, 2, 25), merchant="PT Maju"),
        make_txn(-20000, "expense", utc(2025, 1, 3)),
        make_txn(-20000, "expense", utc(2025, 2, 3)),
    ]

    assert detect_recurring_charges(txns, tz=UTC) == []


def test_empty_input():
    assert detect_recurring_charges([], tz=UTC) == []
    assert analyze_merchants([], tz=UTC) == []


def test_dates_use_local_timezone():
    from zoneinfo import ZoneInfo

    # 20:00 UTC on Jan 31 is already Feb 1 in Jakarta
    txns = [
        make_txn(-99000, "expense", utc(2025, 1, 31, 20), merchant="YouTube Premium"),
        make_txn(-99000, "expense", utc(2025, 3, 1, 3), merchant="YouTube Premium"),
    ]

    result = detect_recurring_charges(txns, tz=ZoneInfo("Asia/Jakarta"))

    assert result[0].last_date == date(2025, 3, 1)
    assert result[0].monthly_cost == round(99000 * 30.4375 / 28)


def test_modal_amount_prefers_larger_on_tie():
    assert modal_amount([100, 200, 100, 200]) == 200
    assert modal_amount([100, 100, 200]) == 100
    with pytest.raises(ValueError):
        modal_amount([])


def test_normalize_merchant():
    assert normalize_merchant("  Kopi   Kenangan ") == "kopi kenangan"
    assert normalize_merchant("") is None
    assert normalize_merchant(None) is None
    assert normalize_merchant("   ") is None


def test_candidate_to_dict():
    candidate = detect_recurring_charges(
        charges("Netflix", 120000, (2025, 1, 5), (2025, 2, 4)), tz=UTC
    )[0]

    assert candidate.to_dict()["last_date"] == "2025-02-04"
    assert candidate.to_dict()["cadence"] == "monthly"
