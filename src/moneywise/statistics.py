"""
MoneyWise - Statistics Aggregator

Pure functions that turn an already-loaded slice of transactions (plus the
user's spending limits and goals) into the figures shown on the dashboard
and the statistics page. Nothing here touches storage, so every view is
recomputed from scratch on each fetch.

Spend always means realized spend: expenses that are not recurring
templates. Income never counts towards any expense figure.
"""

import calendar
import datetime
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import List, Optional

from .models import EXPENSE, HOUSEHOLD, PERIOD_MONTH, PERIOD_YEAR, PERSONAL

ZERO = Decimal('0.00')

# Threshold policy shared by limit cards, entry-form warnings and alerts
LIMIT_NEAR = 80.0
LIMIT_EXCEEDED = 100.0

STATUS_OK = 'ok'
STATUS_NEAR = 'near'
STATUS_EXCEEDED = 'exceeded'


# =============================================================================
# SHARED HELPERS
# =============================================================================

def percentage_of(part, whole):
    """``part / whole * 100`` as a float, 0 when the denominator is 0."""
    if not whole:
        return 0.0
    return float(Decimal(part) / Decimal(whole) * 100)


def limit_status(percentage):
    """Classify a spent-vs-limit percentage: exceeded, near or ok."""
    if percentage >= LIMIT_EXCEEDED:
        return STATUS_EXCEEDED
    if percentage >= LIMIT_NEAR:
        return STATUS_NEAR
    return STATUS_OK


def month_bounds(today):
    """Half-open ``[first_of_month, first_of_next_month)`` around ``today``."""
    start = today.replace(day=1)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


def year_bounds(today):
    return datetime.date(today.year, 1, 1), datetime.date(today.year + 1, 1, 1)


def period_bounds(period, today):
    if period == PERIOD_YEAR:
        return year_bounds(today)
    return month_bounds(today)


def is_realized_expense(tx):
    return tx.transaction_type == EXPENSE and not tx.is_recurring


def total_amount(transactions):
    return sum((tx.amount for tx in transactions), ZERO)


# =============================================================================
# VIEW RECORDS
# =============================================================================

@dataclass
class LimitUsage:
    """A spending limit with this month's realized spend attached."""

    id: Optional[int]
    category: str
    monthly_limit: Decimal
    current_spent: Decimal
    percentage: float
    status: str

    @property
    def remaining(self):
        return self.monthly_limit - self.current_spent

    def to_dict(self):
        data = asdict(self)
        data['remaining'] = self.remaining
        return data


@dataclass
class CategoryStat:
    category: str
    total: Decimal
    percentage: float
    count: int = 0
    limit: Optional[Decimal] = None
    limit_percentage: Optional[float] = None
    limit_status: Optional[str] = None


@dataclass
class DailyPoint:
    date: datetime.date
    amount: Decimal


@dataclass
class ExpenseTypeSplit:
    personal: Decimal
    household: Decimal
    personal_percentage: float
    household_percentage: float

    @property
    def total(self):
        return self.personal + self.household


@dataclass
class Projection:
    daily_rate: Decimal
    projected: Decimal
    days_in_month: int
    over_budget: bool


@dataclass
class StatisticsView:
    period: str
    start: datetime.date
    end: datetime.date
    total_spent: Decimal
    transaction_count: int
    categories: List[CategoryStat] = field(default_factory=list)
    daily: List[DailyPoint] = field(default_factory=list)
    split: Optional[ExpenseTypeSplit] = None

    def to_dict(self):
        data = asdict(self)
        if self.split is not None:
            data['split']['total'] = self.split.total
        return data


@dataclass
class DashboardView:
    monthly_spent: Decimal
    monthly_budget: Decimal
    remaining_budget: Decimal
    budget_percentage: float
    projection: Projection
    recent_transactions: list = field(default_factory=list)
    active_goals: list = field(default_factory=list)
    limit_alerts: List[LimitUsage] = field(default_factory=list)

    def to_dict(self):
        return {
            'monthly_spent': self.monthly_spent,
            'monthly_budget': self.monthly_budget,
            'remaining_budget': self.remaining_budget,
            'budget_percentage': self.budget_percentage,
            'projection': asdict(self.projection),
            'recent_transactions': [tx.to_dict() for tx in self.recent_transactions],
            'active_goals': [goal.to_dict() for goal in self.active_goals],
            'limit_alerts': [usage.to_dict() for usage in self.limit_alerts],
        }


# =============================================================================
# AGGREGATIONS
# =============================================================================

def filter_period(transactions, period, today):
    """Realized expenses dated in the month or year containing ``today``."""
    start, end = period_bounds(period, today)
    return [tx for tx in transactions if is_realized_expense(tx) and start <= tx.date < end]


def limit_usage(limits, month_expenses):
    """
    Attach current-month spend to every limit.

    ``month_expenses`` is the month's transaction slice; anything that is
    not a realized expense is ignored.
    """
    spent = defaultdict(lambda: ZERO)
    for tx in month_expenses:
        if is_realized_expense(tx):
            spent[tx.category] += tx.amount

    usages = []
    for spending_limit in limits:
        current = spent[spending_limit.category]
        percentage = percentage_of(current, spending_limit.monthly_limit)
        usages.append(LimitUsage(
            id=spending_limit.id,
            category=spending_limit.category,
            monthly_limit=spending_limit.monthly_limit,
            current_spent=current,
            percentage=percentage,
            status=limit_status(percentage),
        ))
    return usages


def category_breakdown(expenses, limits=()):
    """Per-category totals, largest first, with limit usage where a limit exists."""
    totals = defaultdict(lambda: ZERO)
    counts = defaultdict(int)
    for tx in expenses:
        totals[tx.category] += tx.amount
        counts[tx.category] += 1

    grand_total = sum(totals.values(), ZERO)
    limits_by_category = {item.category: item.monthly_limit for item in limits}

    stats = []
    for category, total in totals.items():
        stat = CategoryStat(
            category=category,
            total=total,
            percentage=percentage_of(total, grand_total),
            count=counts[category],
        )
        monthly_limit = limits_by_category.get(category)
        if monthly_limit is not None:
            stat.limit = monthly_limit
            stat.limit_percentage = percentage_of(total, monthly_limit)
            stat.limit_status = limit_status(stat.limit_percentage)
        stats.append(stat)

    stats.sort(key=lambda s: (-s.total, s.category))
    return stats


def daily_series(expenses):
    """One point per calendar day from the first to the last expense, zero-filled."""
    if not expenses:
        return []

    per_day = defaultdict(lambda: ZERO)
    for tx in expenses:
        per_day[tx.date] += tx.amount

    first, last = min(per_day), max(per_day)
    points = []
    day = first
    while day <= last:
        points.append(DailyPoint(date=day, amount=per_day.get(day, ZERO)))
        day += datetime.timedelta(days=1)
    return points


def expense_type_split(expenses):
    """Personal vs household totals; an expense without a type counts as personal."""
    personal = sum((tx.amount for tx in expenses if (tx.expense_type or PERSONAL) == PERSONAL), ZERO)
    household = sum((tx.amount for tx in expenses if tx.expense_type == HOUSEHOLD), ZERO)
    total = personal + household
    return ExpenseTypeSplit(
        personal=personal,
        household=household,
        personal_percentage=percentage_of(personal, total),
        household_percentage=percentage_of(household, total),
    )


def project_month_end(monthly_spent, monthly_budget, today):
    """
    Linear end-of-month projection.

    The month's spend is spread evenly over the days elapsed so far and
    extended to the length of the month. A budget of 0 with any spend at
    all is reported as over budget.
    """
    days_in_month = calendar.monthrange(today.year, today.month)[1]
    daily_rate = Decimal(monthly_spent) / today.day
    projected = daily_rate * days_in_month
    return Projection(
        daily_rate=daily_rate,
        projected=projected,
        days_in_month=days_in_month,
        over_budget=projected > monthly_budget,
    )


def aggregate(transactions, limits, period=PERIOD_MONTH, today=None):
    """Build the statistics page for ``period`` (month or year) of ``today``."""
    today = today or datetime.date.today()
    start, end = period_bounds(period, today)
    expenses = filter_period(transactions, period, today)
    return StatisticsView(
        period=period,
        start=start,
        end=end,
        total_spent=total_amount(expenses),
        transaction_count=len(expenses),
        categories=category_breakdown(expenses, limits),
        daily=daily_series(expenses),
        split=expense_type_split(expenses),
    )


def goals_budget(goals):
    """Sum of target amounts over goals that are not completed yet."""
    return sum((goal.target_amount for goal in goals if not goal.is_completed), ZERO)


def dashboard_summary(recent, month_expenses, goals, limits, today=None, active_goal_count=5):
    """Figures for the dashboard: spend, goal budget, projection and limit alerts."""
    today = today or datetime.date.today()
    month_only = filter_period(month_expenses, PERIOD_MONTH, today)
    monthly_spent = total_amount(month_only)
    monthly_budget = goals_budget(goals)

    alerts = [usage for usage in limit_usage(limits, month_only) if usage.status != STATUS_OK]
    alerts.sort(key=lambda usage: -usage.percentage)

    return DashboardView(
        monthly_spent=monthly_spent,
        monthly_budget=monthly_budget,
        remaining_budget=monthly_budget - monthly_spent,
        budget_percentage=percentage_of(monthly_spent, monthly_budget),
        projection=project_month_end(monthly_spent, monthly_budget, today),
        recent_transactions=list(recent),
        active_goals=[goal for goal in goals if not goal.is_completed][:active_goal_count],
        limit_alerts=alerts,
    )
