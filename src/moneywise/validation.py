"""
MoneyWise - Input Validation

Form payloads arrive as loosely typed dicts (JSON bodies, terminal input).
These helpers turn them into typed values or raise ``ValidationError``
before anything touches storage.
"""

import datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from .errors import ValidationError
from .models import (
    DEFAULT_RECURRING_PERIOD,
    EXPENSE,
    EXPENSE_TYPES,
    RECURRING_PERIODS,
    STATISTICS_PERIODS,
    TRANSACTION_TYPES,
)

CENT = Decimal('0.01')
MAX_AMOUNT = Decimal('1e12')


def require_text(data, field, label=None):
    """Return the stripped string at ``data[field]`` or raise if blank."""
    value = data.get(field)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label or field.replace('_', ' ').capitalize()} is required.", field)
    return value.strip()


def optional_text(data, field):
    value = data.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        value = str(value)
    return value.strip() or None


def parse_amount(value, field='amount', allow_zero=False):
    """
    Parse a monetary amount.

    Accepts numbers and numeric strings (a comma decimal separator is
    tolerated) and rounds them to cents. Rejects missing, non-numeric,
    non-finite, oversized and non-positive values; ``allow_zero`` relaxes
    the last rule for starting balances.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Amount is required.", field)
    if isinstance(value, bool):
        raise ValidationError("Amount must be a number.", field)
    try:
        if isinstance(value, str):
            value = value.strip().replace(',', '.')
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be a number.", field)
    if not amount.is_finite():
        raise ValidationError("Amount must be a number.", field)
    if abs(amount) > MAX_AMOUNT:
        raise ValidationError("Amount is too large.", field)
    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError("Amount must be greater than zero.", field)
    return amount


def parse_date(value, field='date', default=None):
    """Parse an ISO ``YYYY-MM-DD`` date (a datetime prefix is accepted)."""
    if value is None or value == '':
        if default is not None:
            return default
        raise ValidationError("Date is required.", field)
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    try:
        return datetime.date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError("Date must be an ISO string in the form YYYY-MM-DD.", field)


def parse_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes', 'on')
    return bool(value)


def parse_choice(value, choices, field):
    if value not in choices:
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} must be one of: {', '.join(choices)}.", field)
    return value


def parse_period(value):
    return parse_choice(value or STATISTICS_PERIODS[0], STATISTICS_PERIODS, 'period')


def transaction_fields(data, today=None):
    """
    Validate a transaction form and return the normalized field dict.

    ``expense_type`` only survives for expenses; ``recurring_period`` only
    for recurring transactions, where it defaults to monthly.
    """
    transaction_type = parse_choice(data.get('transaction_type', EXPENSE), TRANSACTION_TYPES, 'transaction_type')
    is_recurring = parse_bool(data.get('is_recurring', False))

    expense_type = None
    if transaction_type == EXPENSE and data.get('expense_type'):
        expense_type = parse_choice(data['expense_type'], EXPENSE_TYPES, 'expense_type')

    recurring_period = None
    if is_recurring:
        recurring_period = parse_choice(
            data.get('recurring_period') or DEFAULT_RECURRING_PERIOD, RECURRING_PERIODS, 'recurring_period'
        )

    return {
        'title': require_text(data, 'title'),
        'amount': parse_amount(data.get('amount')),
        'category': require_text(data, 'category'),
        'transaction_type': transaction_type,
        'date': parse_date(data.get('date'), default=today or datetime.date.today()),
        'description': optional_text(data, 'description'),
        'is_recurring': is_recurring,
        'recurring_period': recurring_period,
        'expense_type': expense_type,
    }


def goal_fields(data, partial=False):
    """Validate a goal form. With ``partial`` only the supplied keys are checked."""
    fields = {}
    if not partial or 'title' in data:
        fields['title'] = require_text(data, 'title')
    if not partial or 'target_amount' in data:
        fields['target_amount'] = parse_amount(data.get('target_amount'), field='target_amount')
    if not partial or 'target_date' in data:
        fields['target_date'] = parse_date(data.get('target_date'), field='target_date')
    if not partial or 'category' in data:
        fields['category'] = require_text(data, 'category')
    if 'current_amount' in data and data.get('current_amount') not in (None, ''):
        fields['current_amount'] = parse_amount(data.get('current_amount'), field='current_amount', allow_zero=True)
    elif not partial:
        fields['current_amount'] = Decimal('0.00')
    if 'description' in data:
        fields['description'] = optional_text(data, 'description')
    return fields
