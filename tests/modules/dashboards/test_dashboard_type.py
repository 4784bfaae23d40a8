# tests/modules/dashboards/test_dashboard_type.py
import pytest

from agencyos.modules.dashboards.config import get_dashboard_title, get_dashboard_type


@pytest.mark.parametrize("job_title, expected", [
    ("CEO", "director"),
    ("Владелец агентства", "director"),
    ("Project Manager", "pm"),
    ("SMM-специалист", "smm"),
    ("Таргетолог", "targetologist"),
    ("Мобилограф", "mobilograph"),
    ("Senior Designer", "creative"),
    ("Стажер", "intern"),
    ("Главный бухгалтер", "accountant"),
    ("Sales Manager", "sales"),
    ("Менеджер по продажам", "sales"),
    ("Stylist", "creative"),
    ("", "creative"),
    (None, "creative"),
])
def test_dashboard_type_from_job_title(job_title, expected):
    assert get_dashboard_type(job_title) == expected


def test_unknown_type_falls_back_to_creative_title():
    assert get_dashboard_title("accountant") == "Панель бухгалтера"
    assert get_dashboard_title("astronaut") == get_dashboard_title("creative")
