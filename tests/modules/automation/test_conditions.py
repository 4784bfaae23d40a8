# tests/modules/automation/test_conditions.py
from datetime import datetime

from agencyos.modules.automation.engine import (
    evaluate_conditions,
    parse_datetime,
    replace_variables,
    replace_variables_in_object,
)


def test_empty_conditions_always_hold():
    assert evaluate_conditions({}, {"status": "Won"}) is True
    assert evaluate_conditions(None, {}) is True


def test_every_condition_must_hold():
    conditions = {
        "status": {"operator": "equals", "value": "Won"},
        "budget": {"operator": "greater_than", "value": 100000},
    }
    assert evaluate_conditions(conditions, {"status": "Won", "budget": 250000}) is True
    assert evaluate_conditions(conditions, {"status": "Won", "budget": 50000}) is False
    assert evaluate_conditions(conditions, {"status": "Lost", "budget": 250000}) is False


def test_ordering_against_missing_value_is_false():
    conditions = {"budget": {"operator": "less_than", "value": 10}}
    assert evaluate_conditions(conditions, {}) is False
    assert evaluate_conditions(conditions, {"budget": "cheap"}) is False


def test_contains_and_not_equals():
    assert evaluate_conditions({"source": {"operator": "contains", "value": "App"}}, {"source": "WhatsApp"}) is True
    assert evaluate_conditions({"source": {"operator": "not_equals", "value": "Referral"}}, {"source": "Referral"}) is False


def test_in_operator_requires_a_list():
    assert evaluate_conditions({"status": {"operator": "in", "value": ["Won", "In Work"]}}, {"status": "In Work"}) is True
    assert evaluate_conditions({"status": {"operator": "in", "value": "Won"}}, {"status": "Won"}) is False


def test_replace_variables_keeps_unknown_placeholders():
    text = replace_variables("Hi {{ client_name }}, budget {{budget}} {{unknown}}", {"client_name": "Acme", "budget": 5000})
    assert text == "Hi Acme, budget 5000 {{unknown}}"


def test_replace_variables_renders_none_as_empty():
    assert replace_variables("Manager: {{manager_id}}.", {"manager_id": None}) == "Manager: ."
    assert replace_variables(None, {"a": 1}) == ""


def test_replace_variables_in_nested_object():
    payload = {"text": "Deal {{amount}}", "meta": {"client": "{{client_name}}"}, "count": 3}
    result = replace_variables_in_object(payload, {"amount": 900, "client_name": "Acme"})
    assert result == {"text": "Deal 900", "meta": {"client": "Acme"}, "count": 3}


def test_parse_datetime_normalizes_to_naive_utc():
    assert parse_datetime("2026-05-01T15:00:00+05:00") == datetime(2026, 5, 1, 10, 0)
    assert parse_datetime("2026-05-01T10:00:00Z") == datetime(2026, 5, 1, 10, 0)
    assert parse_datetime("next friday") is None
    assert parse_datetime(None) is None
