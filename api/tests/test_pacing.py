"""
Budget pacing: jours inclusifs, daysElapsed borné à [0, daysTotal]
"""
from datetime import date

import pytest

from linkedin_dashboard.schemas import DateRange
from linkedin_dashboard.services.aggregator import Counters, PeriodTotals
from linkedin_dashboard.services.pacing import calculate_budget_pacing

JANUARY = DateRange(start=date(2025, 1, 1), end=date(2025, 1, 31))


def _spent(amount: float) -> PeriodTotals:
    return PeriodTotals(counters=Counters(spend=amount))


def test_range_fully_elapsed():
    pacing = calculate_budget_pacing(_spent(100.0), JANUARY, today=date(2025, 2, 15))
    assert pacing["daysTotal"] == 31
    assert pacing["daysElapsed"] == 31
    assert pacing["timeProgressPercent"] == pytest.approx(100.0)


def test_range_in_the_future():
    pacing = calculate_budget_pacing(_spent(0), JANUARY, today=date(2024, 12, 1))
    assert pacing["daysTotal"] == 31
    assert pacing["daysElapsed"] == 0
    assert pacing["timeProgressPercent"] == 0


def test_range_in_progress():
    pacing = calculate_budget_pacing(_spent(0), JANUARY, today=date(2025, 1, 10))
    assert pacing["daysElapsed"] == 10

    pacing = calculate_budget_pacing(_spent(0), JANUARY, today=date(2025, 1, 1))
    assert pacing["daysElapsed"] == 1


def test_budget_and_spend():
    pacing = calculate_budget_pacing(_spent(250.0), JANUARY, budget=1000, today=date(2025, 1, 31))
    assert pacing["budget"] == 1000
    assert pacing["spent"] == 250.0
    assert pacing["pacingPercent"] == pytest.approx(25.0)


def test_unknown_budget_is_zero_not_guessed():
    pacing = calculate_budget_pacing(_spent(250.0), JANUARY, today=date(2025, 1, 31))
    assert pacing["budget"] == 0
    assert pacing["pacingPercent"] == 0


def test_single_day_range():
    one_day = DateRange(start=date(2025, 3, 5), end=date(2025, 3, 5))
    pacing = calculate_budget_pacing(_spent(0), one_day, today=date(2025, 3, 5))
    assert pacing["daysTotal"] == 1
    assert pacing["daysElapsed"] == 1


def test_date_range_rejects_inverted_bounds():
    with pytest.raises(ValueError):
        DateRange(start=date(2025, 2, 1), end=date(2025, 1, 1))
