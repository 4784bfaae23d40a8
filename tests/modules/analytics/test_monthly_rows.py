# tests/modules/analytics/test_monthly_rows.py
from datetime import date, datetime
from types import SimpleNamespace

import pytest

from agencyos.modules.analytics.services import aggregate_rows, compute_monthly_rows, get_months_list

JAN, FEB = date(2026, 1, 1), date(2026, 2, 1)


def _client(created_at, status="New Lead", status_changed_at=None):
    return SimpleNamespace(created_at=created_at, status=status, status_changed_at=status_changed_at)


def _project(created_at, budget, status="In Work", end_date=None):
    return SimpleNamespace(
        created_at=created_at, start_date=created_at, end_date=end_date, status=status,
        updated_at=created_at, budget=budget, is_archived=False,
    )


def _task(completed_at, type_="Task", status="Done"):
    return SimpleNamespace(status=status, completed_at=completed_at, type=type_)


def _transaction(day, amount):
    return SimpleNamespace(date=day, amount=amount)


def _user(created_at, is_active=True):
    return SimpleNamespace(created_at=created_at, is_active=is_active)


@pytest.fixture
def rows():
    return compute_monthly_rows(
        [JAN, FEB],
        clients=[
            _client(datetime(2026, 1, 10)),
            _client(datetime(2026, 1, 20), status="Won", status_changed_at=datetime(2026, 2, 5)),
        ],
        projects=[
            _project(datetime(2026, 1, 5), 100_000),
            _project(datetime(2026, 2, 3), 300_000),
        ],
        tasks=[
            _task(datetime(2026, 1, 15), type_="Post"),
            _task(datetime(2026, 2, 2)),
            _task(None, status="To Do"),
        ],
        transactions=[
            _transaction(datetime(2026, 1, 12), 500_000),
            _transaction(datetime(2026, 1, 25), -120_000),
            _transaction(datetime(2026, 2, 10), 250_000),
        ],
        users=[
            _user(datetime(2025, 12, 1)),
            _user(datetime(2026, 2, 1, 10, 0)),
            _user(datetime(2025, 12, 1), is_active=False),
        ],
    )


def test_get_months_list():
    assert get_months_list(date(2025, 11, 15), date(2026, 2, 1)) == [
        date(2025, 11, 1), date(2025, 12, 1), JAN, FEB,
    ]
    assert get_months_list(date(2026, 3, 1), date(2026, 2, 1)) == []


def test_compute_monthly_rows(rows):
    jan, feb = rows

    assert (jan.new_clients, jan.won_clients) == (2, 0)
    assert (feb.new_clients, feb.won_clients) == (0, 1)
    assert (jan.new_projects, jan.active_projects, jan.avg_project_budget) == (1, 1, 100_000)
    assert (feb.new_projects, feb.active_projects, feb.avg_project_budget) == (1, 2, 300_000)
    assert (jan.tasks_completed, jan.publications) == (1, 1)
    assert (feb.tasks_completed, feb.publications) == (1, 0)
    assert (jan.income, jan.expenses) == (500_000, 120_000)
    assert (feb.income, feb.expenses) == (250_000, 0)
    assert (jan.team_size, feb.team_size) == (1, 2)


def test_aggregate_rows(rows):
    total = aggregate_rows(rows, JAN, FEB)

    assert total.month == JAN
    assert total.income == 750_000
    assert total.expenses == 120_000
    assert total.profit == 630_000
    assert total.margin == pytest.approx(84.0)
    assert total.cac == 120_000
    assert total.ltv == 750_000
    assert total.team_size == 2
    assert total.revenue_per_employee == 375_000
    assert total.avg_project_budget == 200_000


def test_aggregate_of_nothing_is_zero(rows):
    total = aggregate_rows(rows, date(2025, 1, 1), date(2025, 6, 1))

    assert total.month == date(2025, 1, 1)
    assert total.income == 0
    assert total.margin == 0
