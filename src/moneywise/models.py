"""
MoneyWise - Domain Records

Plain data holders shared by the repositories, the engine, the statistics
aggregator and the presentation layer. Every record is owned by exactly one
user (``user_id``); there is no sharing between users.

Monetary values are ``Decimal`` so that sums match what the user typed.
Percentages derived from them are plain floats.
"""

import datetime
from dataclasses import asdict, dataclass, replace
from decimal import Decimal
from typing import Optional


# =============================================================================
# ENUMERATIONS
# =============================================================================

EXPENSE = 'expense'
INCOME = 'income'
TRANSACTION_TYPES = (EXPENSE, INCOME)

PERSONAL = 'personal'
HOUSEHOLD = 'household'
EXPENSE_TYPES = (PERSONAL, HOUSEHOLD)

RECURRING_PERIODS = ('weekly', 'monthly', 'quarterly', 'yearly')
DEFAULT_RECURRING_PERIOD = 'monthly'

PERIOD_MONTH = 'month'
PERIOD_YEAR = 'year'
STATISTICS_PERIODS = (PERIOD_MONTH, PERIOD_YEAR)

# Quick-contribution buttons shown next to every goal
CONTRIBUTION_PRESETS = (Decimal('10'), Decimal('50'), Decimal('100'))


# =============================================================================
# DEFAULT CATALOGS
# =============================================================================

# Format: (name, icon, color)
DEFAULT_CATEGORIES = (
    ('Alimentari', 'ShoppingCart', '#10B981'),
    ('Trasporti', 'Car', '#3B82F6'),
    ('Intrattenimento', 'Gamepad2', '#8B5CF6'),
    ('Bollette', 'Zap', '#F59E0B'),
    ('Salute', 'Heart', '#EF4444'),
    ('Shopping', 'CreditCard', '#EC4899'),
    ('Ristoranti', 'Utensils', '#F97316'),
    ('Casa', 'Home', '#06B6D4'),
    ('Viaggi', 'Plane', '#84CC16'),
    ('Altro', 'Tag', '#6B7280'),
)

DEFAULT_CATEGORY_NAMES = tuple(name for name, _icon, _color in DEFAULT_CATEGORIES)

DEFAULT_GOAL_CATEGORY_NAMES = (
    'Risparmio',
    'Emergenza',
    'Vacanze',
    'Casa',
    'Auto',
    'Investimenti',
    'Educazione',
    'Pensione',
    'Altro',
)

DEFAULT_CATEGORY_COLOR = '#3B82F6'
DEFAULT_CATEGORY_ICON = 'Tag'


# =============================================================================
# LEGACY FIELD MAPPING
# =============================================================================

def normalize_expense_type(transaction_type, expense_type):
    """
    Resolve the stored ``expense_type`` of a transaction.

    Rows written before the personal/household split carry no expense type.
    Those expenses are treated as personal. Income never has an expense type.
    """
    if transaction_type != EXPENSE:
        return None
    return expense_type or PERSONAL


def to_decimal(value):
    """Convert a float/int/str amount to Decimal without float artefacts."""
    if value is None or value == '':
        return Decimal('0.00')
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


# =============================================================================
# RECORDS
# =============================================================================

@dataclass
class UserSession:
    """The authenticated user every repository call is scoped to."""

    user_id: int
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    @property
    def display_name(self):
        return self.first_name or self.email


@dataclass
class Category:
    id: Optional[int]
    user_id: int
    name: str
    color: str = DEFAULT_CATEGORY_COLOR
    icon: str = DEFAULT_CATEGORY_ICON
    is_default: bool = False

    def to_dict(self):
        return asdict(self)


@dataclass
class Transaction:
    id: Optional[int]
    user_id: int
    title: str
    amount: Decimal
    category: str
    transaction_type: str
    date: datetime.date
    description: Optional[str] = None
    is_recurring: bool = False
    recurring_period: Optional[str] = None
    expense_type: Optional[str] = None

    def __post_init__(self):
        self.amount = to_decimal(self.amount)
        self.expense_type = normalize_expense_type(self.transaction_type, self.expense_type)
        if not self.is_recurring:
            self.recurring_period = None

    @property
    def is_expense(self):
        return self.transaction_type == EXPENSE

    def to_dict(self):
        return asdict(self)


@dataclass
class Goal:
    id: Optional[int]
    user_id: int
    title: str
    target_amount: Decimal
    target_date: datetime.date
    category: str
    current_amount: Decimal = Decimal('0.00')
    description: Optional[str] = None
    is_completed: bool = False

    def __post_init__(self):
        self.target_amount = to_decimal(self.target_amount)
        self.current_amount = to_decimal(self.current_amount)
        self.is_completed = self.current_amount >= self.target_amount

    @property
    def progress(self):
        """Completion percentage, capped at 100 for progress bars."""
        if self.target_amount <= 0:
            return 0.0
        return min(float(self.current_amount / self.target_amount * 100), 100.0)

    def to_dict(self):
        data = asdict(self)
        data['progress'] = self.progress
        return data


@dataclass
class SpendingLimit:
    id: Optional[int]
    user_id: int
    category: str
    monthly_limit: Decimal
    current_spent: Optional[Decimal] = None

    def __post_init__(self):
        self.monthly_limit = to_decimal(self.monthly_limit)
        if self.current_spent is not None:
            self.current_spent = to_decimal(self.current_spent)

    def to_dict(self):
        return asdict(self)


@dataclass
class PeriodFilter:
    """Optional equality filters for ``TransactionRepository.list_for_period``."""

    transaction_type: Optional[str] = None
    category: Optional[str] = None
    is_recurring: Optional[bool] = None

    def matches(self, tx):
        if self.transaction_type is not None and tx.transaction_type != self.transaction_type:
            return False
        if self.category is not None and tx.category != self.category:
            return False
        if self.is_recurring is not None and tx.is_recurring != self.is_recurring:
            return False
        return True


# Realized expense spend: the filter every spend calculation goes through
REALIZED_EXPENSES = PeriodFilter(transaction_type=EXPENSE, is_recurring=False)


def clone_as_one_off(template, on_date=None, **overrides):
    """
    Build the realized, one-off copy of a recurring template.

    The copy has no id, is not recurring and is dated ``on_date`` (today by
    default). ``overrides`` lets the caller apply the user's edits before
    the copy is saved. The template itself is not modified.
    """
    values = dict(
        id=None,
        date=on_date or datetime.date.today(),
        is_recurring=False,
        recurring_period=None,
    )
    values.update({key: value for key, value in overrides.items() if value is not None})
    return replace(template, **values)


__all__ = [
    'EXPENSE', 'INCOME', 'TRANSACTION_TYPES',
    'PERSONAL', 'HOUSEHOLD', 'EXPENSE_TYPES',
    'RECURRING_PERIODS', 'DEFAULT_RECURRING_PERIOD',
    'PERIOD_MONTH', 'PERIOD_YEAR', 'STATISTICS_PERIODS',
    'CONTRIBUTION_PRESETS', 'DEFAULT_CATEGORIES', 'DEFAULT_CATEGORY_NAMES',
    'DEFAULT_GOAL_CATEGORY_NAMES', 'normalize_expense_type', 'to_decimal',
    'UserSession', 'Category', 'Transaction', 'Goal', 'SpendingLimit',
    'PeriodFilter', 'REALIZED_EXPENSES', 'clone_as_one_off',
]
