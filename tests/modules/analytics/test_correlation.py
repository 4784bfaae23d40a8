# tests/modules/analytics/test_correlation.py
from datetime import date

import pytest

from agencyos.modules.analytics.correlation import (
    calculate_change,
    correlation_strength,
    get_correlations,
    pearson_correlation,
)
from agencyos.modules.analytics.models import MonthlyAnalytics


def test_pearson_correlation():
    assert pearson_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert pearson_correlation([1, 2, 3], [6, 4, 2]) == pytest.approx(-1.0)
    assert pearson_correlation([1, 2, 3], [5, 5, 5]) == 0.0
    assert pearson_correlation([], []) == 0.0
    assert pearson_correlation([1, 2], [1]) == 0.0


def test_calculate_change():
    assert calculate_change(150, 100) == 50.0
    assert calculate_change(50, 100) == -50.0
    assert calculate_change(5, 0) == 100.0
    assert calculate_change(0, 0) == 0.0


def test_correlation_strength():
    assert correlation_strength(0.8) == "strong"
    assert correlation_strength(-0.5) == "medium"
    assert correlation_strength(0.4) == "weak"


def test_correlations_need_two_months():
    assert get_correlations([MonthlyAnalytics(month=date(2026, 1, 1), income=10)]) == []


def test_correlations_cover_every_pair():
    rows = [
        MonthlyAnalytics(month=date(2026, 1, 1), new_clients=2, new_projects=1, publications=4, income=100, team_size=3, active_projects=2),
        MonthlyAnalytics(month=date(2026, 2, 1), new_clients=4, new_projects=2, publications=8, income=200, team_size=4, active_projects=3),
        MonthlyAnalytics(month=date(2026, 3, 1), new_clients=6, new_projects=3, publications=2, income=300, team_size=5, active_projects=4),
    ]

    result = {(c.metric1, c.metric2): c for c in get_correlations(rows)}

    assert len(result) == 4
    assert result[("new_clients", "new_projects")].correlation == pytest.approx(1.0)
    assert result[("new_clients", "new_projects")].strength == "strong"
    assert result[("new_projects", "income")].insight == "New projects vs. revenue"
