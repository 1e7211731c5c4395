from __future__ import annotations

import datetime
from decimal import Decimal

import pytest

from moneywise.models import Goal, SpendingLimit, Transaction
from moneywise.statistics import (
    aggregate,
    category_breakdown,
    daily_series,
    dashboard_summary,
    expense_type_split,
    filter_period,
    goals_budget,
    limit_status,
    limit_usage,
    month_bounds,
    percentage_of,
    project_month_end,
    year_bounds,
)

TODAY = datetime.date(2024, 3, 15)


def _expense(amount, category="Alimentari", day=TODAY, **extra) -> Transaction:
    values = dict(
        id=None, user_id=1, title=category, amount=amount, category=category,
        transaction_type="expense", date=day,
    )
    values.update(extra)
    return Transaction(**values)


def _limit(category, amount) -> SpendingLimit:
    return SpendingLimit(id=1, user_id=1, category=category, monthly_limit=amount)


def _goal(target, current="0", goal_id=1, month=6) -> Goal:
    return Goal(
        id=goal_id, user_id=1, title=f"Goal {goal_id}", target_amount=target, current_amount=current,
        target_date=datetime.date(2024, month, 1), category="Risparmio",
    )


@pytest.mark.parametrize(
    ("percentage", "expected"),
    [(0.0, "ok"), (79.99, "ok"), (80.0, "near"), (99.99, "near"), (100.0, "exceeded"), (250.0, "exceeded")],
)
def test_limit_status_boundaries(percentage: float, expected: str) -> None:
    assert limit_status(percentage) == expected


def test_percentage_of_zero_denominator() -> None:
    assert percentage_of(Decimal("10"), Decimal("0")) == 0.0
    assert percentage_of(Decimal("25"), Decimal("200")) == 12.5


def test_month_bounds_are_half_open() -> None:
    assert month_bounds(datetime.date(2024, 2, 29)) == (datetime.date(2024, 2, 1), datetime.date(2024, 3, 1))
    assert month_bounds(datetime.date(2024, 12, 31)) == (datetime.date(2024, 12, 1), datetime.date(2025, 1, 1))
    assert year_bounds(TODAY) == (datetime.date(2024, 1, 1), datetime.date(2025, 1, 1))


def test_single_category_over_its_limit() -> None:
    stats = category_breakdown([_expense("120")], [_limit("Alimentari", "100")])

    assert len(stats) == 1
    stat = stats[0]
    assert stat.total == Decimal("120")
    assert stat.percentage == 100.0
    assert stat.limit_percentage == 120.0
    assert stat.limit_status == "exceeded"


def test_breakdown_sorted_largest_first() -> None:
    stats = category_breakdown([
        _expense("30", "Trasporti"),
        _expense("50", "Alimentari"),
        _expense("20", "Alimentari"),
    ])
    assert [stat.category for stat in stats] == ["Alimentari", "Trasporti"]
    assert stats[0].count == 2
    assert stats[0].percentage == 70.0
    assert stats[1].limit is None


def test_filter_period_drops_income_templates_and_other_months() -> None:
    transactions = [
        _expense("10"),
        _expense("20", transaction_type="income"),
        _expense("50", is_recurring=True, recurring_period="monthly"),
        _expense("40", day=datetime.date(2024, 2, 29)),
        _expense("5", day=datetime.date(2024, 3, 31)),
    ]
    kept = filter_period(transactions, "month", TODAY)
    assert [tx.amount for tx in kept] == [Decimal("10"), Decimal("5")]
    assert len(filter_period(transactions, "year", TODAY)) == 3


def test_limit_usage_counts_only_realized_expenses() -> None:
    usages = limit_usage(
        [_limit("Alimentari", "100")],
        [
            _expense("60"),
            _expense("25"),
            _expense("500", transaction_type="income"),
            _expense("50", is_recurring=True, recurring_period="monthly"),
        ],
    )
    assert usages[0].current_spent == Decimal("85")
    assert usages[0].percentage == 85.0
    assert usages[0].status == "near"
    assert usages[0].remaining == Decimal("15")


def test_daily_series_zero_fills_gaps() -> None:
    series = daily_series([
        _expense("10", day=datetime.date(2024, 3, 1)),
        _expense("5", day=datetime.date(2024, 3, 4)),
        _expense("7", day=datetime.date(2024, 3, 4)),
    ])
    assert [point.date.day for point in series] == [1, 2, 3, 4]
    assert [point.amount for point in series] == [Decimal("10"), Decimal("0.00"), Decimal("0.00"), Decimal("12")]
    assert daily_series([]) == []


def test_expense_type_split_treats_missing_type_as_personal() -> None:
    legacy = _expense("30")
    legacy.expense_type = None
    split = expense_type_split([legacy, _expense("10", expense_type="personal"), _expense("60", expense_type="household")])

    assert split.personal == Decimal("40")
    assert split.household == Decimal("60")
    assert split.total == Decimal("100")
    assert split.personal_percentage == 40.0
    assert split.household_percentage == 60.0


def test_projection_extends_daily_rate_to_month_length() -> None:
    projection = project_month_end(Decimal("150"), Decimal("300"), TODAY)
    assert projection.daily_rate == Decimal("10")
    assert projection.days_in_month == 31
    assert projection.projected == Decimal("310")
    assert projection.over_budget

    assert not project_month_end(Decimal("150"), Decimal("400"), TODAY).over_budget


def test_projection_with_zero_budget() -> None:
    assert project_month_end(Decimal("1"), Decimal("0"), TODAY).over_budget
    assert not project_month_end(Decimal("0"), Decimal("0"), TODAY).over_budget


def test_goals_budget_skips_completed_goals() -> None:
    goals = [_goal("1000"), _goal("500", current="500", goal_id=2), _goal("250", goal_id=3)]
    assert goals_budget(goals) == Decimal("1250")


def test_aggregate_month_view() -> None:
    view = aggregate(
        [
            _expense("120"),
            _expense("30", "Trasporti", day=datetime.date(2024, 3, 10)),
            _expense("50", is_recurring=True, recurring_period="monthly"),
        ],
        [_limit("Alimentari", "100")],
        period="month",
        today=TODAY,
    )
    assert view.start == datetime.date(2024, 3, 1)
    assert view.end == datetime.date(2024, 4, 1)
    assert view.total_spent == Decimal("150")
    assert view.transaction_count == 2
    assert view.categories[0].limit_status == "exceeded"
    assert len(view.daily) == 6
    assert view.to_dict()["split"]["total"] == Decimal("150")


def test_dashboard_summary_alerts_and_budget() -> None:
    goals = [_goal("300", goal_id=i, month=i) for i in range(1, 8)]
    goals.append(_goal("900", current="900", goal_id=99))
    limits = [
        SpendingLimit(id=1, user_id=1, category="Alimentari", monthly_limit="100"),
        SpendingLimit(id=2, user_id=1, category="Trasporti", monthly_limit="50"),
        SpendingLimit(id=3, user_id=1, category="Svago", monthly_limit="500"),
    ]
    expenses = [_expense("85"), _expense("75", "Trasporti")]

    view = dashboard_summary([], expenses, goals, limits, today=TODAY)

    assert view.monthly_spent == Decimal("160")
    assert view.monthly_budget == Decimal("2100")
    assert view.remaining_budget == Decimal("1940")
    assert len(view.active_goals) == 5
    assert all(not goal.is_completed for goal in view.active_goals)
    assert [usage.category for usage in view.limit_alerts] == ["Trasporti", "Alimentari"]
    assert [usage.status for usage in view.limit_alerts] == ["exceeded", "near"]
