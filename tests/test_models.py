from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from moneywise.models import (
    Goal,
    PeriodFilter,
    Transaction,
    clone_as_one_off,
    normalize_expense_type,
    to_decimal,
)


def _tx(**overrides) -> Transaction:
    values = dict(
        id=7,
        user_id=1,
        title="Affitto",
        amount="750.00",
        category="Casa",
        transaction_type="expense",
        date=datetime.date(2024, 1, 1),
        is_recurring=True,
        recurring_period="monthly",
        expense_type="household",
    )
    values.update(overrides)
    return Transaction(**values)


@pytest.mark.parametrize(
    ("transaction_type", "stored", "expected"),
    [
        ("expense", None, "personal"),
        ("expense", "", "personal"),
        ("expense", "household", "household"),
        ("income", None, None),
        ("income", "household", None),
    ],
)
def test_normalize_expense_type(transaction_type: str, stored, expected) -> None:
    assert normalize_expense_type(transaction_type, stored) == expected


def test_to_decimal_avoids_float_artefacts() -> None:
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal(None) == Decimal("0.00")
    assert to_decimal("12.50") == Decimal("12.50")


def test_transaction_drops_period_when_not_recurring() -> None:
    tx = _tx(is_recurring=False)
    assert tx.recurring_period is None
    assert tx.amount == Decimal("750.00")


def test_goal_completion_is_derived_from_amounts() -> None:
    goal = Goal(
        id=1, user_id=1, title="Vacanza", target_amount="1000", current_amount="1000",
        target_date=datetime.date(2024, 8, 1), category="Vacanze", is_completed=False,
    )
    assert goal.is_completed
    assert goal.progress == 100.0

    halfway = Goal(
        id=2, user_id=1, title="Auto", target_amount="1000", current_amount="250",
        target_date=datetime.date(2024, 8, 1), category="Auto", is_completed=True,
    )
    assert not halfway.is_completed
    assert halfway.progress == 25.0


def test_clone_as_one_off_leaves_template_untouched() -> None:
    template = _tx()
    clone = clone_as_one_off(template, on_date=datetime.date(2024, 3, 1), amount=Decimal("760.00"))

    assert clone.id is None
    assert not clone.is_recurring
    assert clone.recurring_period is None
    assert clone.date == datetime.date(2024, 3, 1)
    assert clone.amount == Decimal("760.00")
    assert clone.expense_type == "household"

    assert template.id == 7
    assert template.is_recurring
    assert template.amount == Decimal("750.00")


def test_period_filter_matches_every_given_field() -> None:
    tx = _tx(is_recurring=False)
    assert PeriodFilter().matches(tx)
    assert PeriodFilter(transaction_type="expense", category="Casa", is_recurring=False).matches(tx)
    assert not PeriodFilter(category="Alimentari").matches(tx)
    assert not PeriodFilter(is_recurring=True).matches(tx)
