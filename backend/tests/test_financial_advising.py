"""Financial health heuristic tests."""

from monev.services.financial_advising import (
    calculate_future_value,
    calculate_idle_cash,
    calculate_runway,
    health_metrics,
    runway_status,
)


def test_runway():
    assert calculate_runway(10000000, 4000000) == 2.5
    assert calculate_runway(10000000, 0) == 999.0
    assert calculate_runway(-500000, 4000000) == 0.0
    assert calculate_runway(0, 4000000) == 0.0


def test_idle_cash_keeps_buffer():
    assert calculate_idle_cash(20000000, 4000000) == 8000000
    assert calculate_idle_cash(10000000, 4000000) == 0
    assert calculate_idle_cash(20000000, 4000000, buffer_months=6) == 0


def test_future_value():
    assert calculate_future_value(10000000, 0) == 10000000
    assert calculate_future_value(10000000, 1) == 10500000
    assert calculate_future_value(10000000, 2, inflation=0.1) == 12100000


def test_runway_status_bands():
    assert runway_status(0.5) == "critical"
    assert runway_status(1) == "warning"
    assert runway_status(2.9) == "warning"
    assert runway_status(3) == "safe"
    assert runway_status(6) == "wealthy"
    assert runway_status(999.0) == "wealthy"


def test_health_metrics():
    metrics = health_metrics(24000000, [3000000, 5000000, 4000000, 4000000])

    assert metrics.avg_monthly_expense == 4000000
    assert metrics.runway_months == 6.0
    assert metrics.idle_cash == 12000000
    assert metrics.status == "wealthy"
    assert metrics.to_dict()["balance"] == 24000000


def test_health_metrics_without_history():
    metrics = health_metrics(1000000, [])

    assert metrics.avg_monthly_expense == 0
    assert metrics.runway_months == 999.0
    assert metrics.idle_cash == 1000000
