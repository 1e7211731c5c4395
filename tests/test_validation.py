from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from moneywise.errors import ValidationError
from moneywise.validation import (
    goal_fields,
    parse_amount,
    parse_date,
    parse_period,
    transaction_fields,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("42.50", Decimal("42.50")), ("12,30", Decimal("12.30")), (15, Decimal("15")), (" 7 ", Decimal("7"))],
)
def test_parse_amount_accepts_numbers(raw, expected: Decimal) -> None:
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "abc", "0", "-5", "NaN", "Infinity", True])
def test_parse_amount_rejects(raw) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_amount(raw)
    assert excinfo.value.field == "amount"


@pytest.mark.parametrize("raw", ["9e999999", "1e999999", "-9e999999", "1000000000000.01"])
def test_parse_amount_rejects_oversized(raw: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_amount(raw)
    assert excinfo.value.message == "Amount is too large."


def test_parse_amount_rounds_to_cents() -> None:
    assert parse_amount("10.005") == Decimal("10.01")
    assert str(parse_amount("1e2")) == "100.00"
    assert parse_amount("1000000000000") == Decimal("1000000000000.00")
    with pytest.raises(ValidationError):
        parse_amount("0.001")


def test_parse_amount_allows_zero_when_asked() -> None:
    assert parse_amount("0", allow_zero=True) == Decimal("0")


def test_parse_date_variants() -> None:
    default = datetime.date(2024, 3, 15)
    assert parse_date("2024-02-29") == datetime.date(2024, 2, 29)
    assert parse_date("2024-02-29T12:00:00") == datetime.date(2024, 2, 29)
    assert parse_date(None, default=default) == default
    with pytest.raises(ValidationError):
        parse_date("29/02/2024")
    with pytest.raises(ValidationError):
        parse_date("")


def test_parse_period_defaults_to_month() -> None:
    assert parse_period(None) == "month"
    assert parse_period("year") == "year"
    with pytest.raises(ValidationError):
        parse_period("week")


def test_transaction_fields_normalizes_form() -> None:
    fields = transaction_fields(
        {
            "title": "  Spesa  ",
            "amount": "42.50",
            "category": "Alimentari",
            "expense_type": "household",
            "recurring_period": "weekly",
        },
        today=datetime.date(2024, 3, 15),
    )
    assert fields["title"] == "Spesa"
    assert fields["transaction_type"] == "expense"
    assert fields["date"] == datetime.date(2024, 3, 15)
    assert fields["expense_type"] == "household"
    # Period is ignored when the entry is not recurring
    assert fields["recurring_period"] is None


def test_transaction_fields_income_has_no_expense_type() -> None:
    fields = transaction_fields(
        {"title": "Stipendio", "amount": 2000, "category": "Altro",
         "transaction_type": "income", "expense_type": "household"},
    )
    assert fields["expense_type"] is None


def test_transaction_fields_recurring_defaults_to_monthly() -> None:
    fields = transaction_fields(
        {"title": "Palestra", "amount": "45", "category": "Salute", "is_recurring": "true"},
    )
    assert fields["is_recurring"] is True
    assert fields["recurring_period"] == "monthly"


@pytest.mark.parametrize(
    ("data", "field"),
    [
        ({"amount": "10", "category": "Altro"}, "title"),
        ({"title": "x", "amount": "10", "category": "Altro", "transaction_type": "transfer"}, "transaction_type"),
        ({"title": "x", "amount": "10", "category": "Altro", "expense_type": "business"}, "expense_type"),
        ({"title": "x", "amount": "10", "category": "Altro", "is_recurring": True,
          "recurring_period": "daily"}, "recurring_period"),
    ],
)
def test_transaction_fields_reports_field(data: dict, field: str) -> None:
    with pytest.raises(ValidationError) as excinfo:
        transaction_fields(data)
    assert excinfo.value.field == field


def test_goal_fields_partial_only_checks_given_keys() -> None:
    assert goal_fields({"title": "Nuovo titolo"}, partial=True) == {"title": "Nuovo titolo"}
    full = goal_fields({"title": "Casa", "target_amount": "5000", "target_date": "2025-01-01", "category": "Casa"})
    assert full["current_amount"] == Decimal("0.00")
    with pytest.raises(ValidationError):
        goal_fields({"title": "Casa"})
