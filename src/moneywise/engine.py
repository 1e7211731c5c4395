"""
MoneyWise - Personal Finance Engine

This module contains the MoneyWiseEngine class, the single operation
boundary between the presentation layers (JSON API, terminal client) and
storage. It groups four components:

- Category Registry: user categories plus the default catalog
- Transaction Store: income/expense entries and recurring templates
- Goal Tracker: savings goals with capped contributions
- Spending Limit Engine: monthly caps per category with usage status

Key Design Principles:
- **Stateless**: every figure is reloaded and recomputed on each call
- **Explicit session**: each operation takes the ``UserSession`` it acts for;
  without one nothing is read or written
- **Owner scoping**: repositories filter by the session's user id, so
  foreign or unknown ids silently affect nothing
- **Uniform results**: mutations return ``(success, message[, payload])``;
  reads return records and raise ``StorageError`` on backend failure

Example:
    engine = MoneyWiseEngine.from_sqlite("data/moneywise.db")
    ok, msg, tx = engine.create_transaction(session, {
        "title": "Spesa", "amount": "42.50", "category": "Alimentari",
    })
"""

import datetime
import logging
from dataclasses import replace

from . import statistics
from .errors import NotAuthenticatedError, StorageError, ValidationError
from .memory import memory_repositories
from .models import (
    DEFAULT_CATEGORIES,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    DEFAULT_CATEGORY_NAMES,
    DEFAULT_GOAL_CATEGORY_NAMES,
    EXPENSE,
    EXPENSE_TYPES,
    PERIOD_MONTH,
    REALIZED_EXPENSES,
    Category,
    Goal,
    PeriodFilter,
    SpendingLimit,
    Transaction,
    clone_as_one_off,
)
from .repositories import sqlite_repositories
from .validation import (
    goal_fields,
    optional_text,
    parse_amount,
    parse_choice,
    parse_date,
    parse_period,
    require_text,
    transaction_fields,
)

LOG = logging.getLogger(__name__)


class MoneyWiseEngine:
    """
    Stateless personal finance engine.

    The engine holds only its repositories and a clock. Swap the
    repositories to change storage: ``from_sqlite`` for the real database,
    ``in_memory`` for tests and throwaway demos.
    """

    def __init__(self, categories, transactions, goals, limits, clock=None):
        self.categories = categories
        self.transactions = transactions
        self.goals = goals
        self.limits = limits
        self.clock = clock or datetime.date.today

    @classmethod
    def from_sqlite(cls, db_path, clock=None):
        return cls(clock=clock, **sqlite_repositories(db_path))

    @classmethod
    def in_memory(cls, clock=None):
        return cls(clock=clock, **memory_repositories())

    # =============================================================================
    # HELPERS
    # =============================================================================

    @staticmethod
    def _require(session):
        """Return the owner id of ``session`` or refuse the operation."""
        if session is None:
            raise NotAuthenticatedError()
        return session.user_id

    def _today(self, today=None):
        return today or self.clock()

    # =============================================================================
    # CATEGORY REGISTRY
    # =============================================================================

    def list_categories(self, session):
        """All categories of the user, ordered by name."""
        return self.categories.list(self._require(session))

    def get_category(self, session, category_id):
        return self.categories.get(self._require(session), category_id)

    def add_category(self, session, data):
        """
        Add a category. Duplicate names are allowed.

        Returns:
            tuple: (success, message, Category or None)
        """
        user_id = self._require(session)
        try:
            category = Category(
                id=None,
                user_id=user_id,
                name=require_text(data, 'name', 'Category name'),
                color=optional_text(data, 'color') or DEFAULT_CATEGORY_COLOR,
                icon=optional_text(data, 'icon') or DEFAULT_CATEGORY_ICON,
            )
            self.categories.add(category)
            return True, "Category added.", category
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to add category.", None

    def update_category(self, session, category_id, data):
        """Change name, color or icon of an owned category. Returns (success, message)."""
        user_id = self._require(session)
        try:
            category = self.categories.get(user_id, category_id)
            if category is None:
                LOG.debug("Category %s not found for user %s", category_id, user_id)
                return True, "Category updated."
            if 'name' in data:
                category.name = require_text(data, 'name', 'Category name')
            if data.get('color'):
                category.color = optional_text(data, 'color')
            if data.get('icon'):
                category.icon = optional_text(data, 'icon')
            self.categories.update(category)
            return True, "Category updated."
        except ValidationError as err:
            return False, err.message
        except StorageError:
            return False, "Failed to update category."

    def delete_category(self, session, category_id):
        user_id = self._require(session)
        try:
            self.categories.delete(user_id, category_id)
            return True, "Category deleted."
        except StorageError:
            return False, "Failed to delete category."

    def initialize_default_categories(self, session):
        """
        Seed the default catalog for a user who has no categories yet.

        A user with at least one category is left untouched.

        Returns:
            tuple: (success, message, number of categories created)
        """
        user_id = self._require(session)
        try:
            if self.categories.count(user_id) > 0:
                return True, "Categories already initialized.", 0
            defaults = [
                Category(id=None, user_id=user_id, name=name, icon=icon, color=color, is_default=True)
                for name, icon, color in DEFAULT_CATEGORIES
            ]
            self.categories.add_many(defaults)
            LOG.info("Initialized %d default categories for user %s", len(defaults), user_id)
            return True, "Default categories created.", len(defaults)
        except StorageError:
            return False, "Failed to create default categories.", 0

    def _names_or(self, session, fallback):
        user_id = self._require(session)
        try:
            names = [category.name for category in self.categories.list(user_id)]
        except StorageError:
            LOG.warning("Category registry unavailable for user %s, using defaults", user_id)
            return list(fallback)
        return names or list(fallback)

    def category_names(self, session):
        """Names for a transaction category picker; never empty."""
        return self._names_or(session, DEFAULT_CATEGORY_NAMES)

    def goal_category_names(self, session):
        """Names for a goal category picker; never empty."""
        return self._names_or(session, DEFAULT_GOAL_CATEGORY_NAMES)

    # =============================================================================
    # TRANSACTION STORE
    # =============================================================================

    def create_transaction(self, session, data):
        """
        Validate and save a transaction.

        Returns:
            tuple: (success, message, Transaction or None)
        """
        user_id = self._require(session)
        try:
            transaction = Transaction(id=None, user_id=user_id, **transaction_fields(data, today=self._today()))
            self.transactions.add(transaction)
            return True, "Transaction saved.", transaction
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to save transaction.", None

    def update_transaction(self, session, transaction_id, data):
        """Replace every field of an owned transaction. Returns (success, message)."""
        user_id = self._require(session)
        try:
            transaction = Transaction(
                id=transaction_id, user_id=user_id, **transaction_fields(data, today=self._today())
            )
            self.transactions.update(transaction)
            return True, "Transaction updated."
        except ValidationError as err:
            return False, err.message
        except StorageError:
            return False, "Failed to update transaction."

    def delete_transaction(self, session, transaction_id):
        user_id = self._require(session)
        try:
            self.transactions.delete(user_id, transaction_id)
            return True, "Transaction deleted."
        except StorageError:
            return False, "Failed to delete transaction."

    def recent_transactions(self, session, limit=10):
        return self.transactions.list_recent(self._require(session), limit)

    def transactions_for_period(self, session, start, end, filters=None):
        """Transactions dated in ``[start, end)`` matching ``filters``."""
        return self.transactions.list_for_period(self._require(session), start, end, filters)

    def recurring_transactions(self, session):
        return self.transactions.list_recurring(self._require(session))

    def clone_recurring(self, session, template_id, overrides=None):
        """
        Record a one-off copy of a recurring template.

        The copy keeps the template's fields unless ``overrides`` changes
        them, is not recurring, and is dated today unless a date is given.
        The template itself is never modified.

        Returns:
            tuple: (success, message, Transaction or None)
        """
        user_id = self._require(session)
        overrides = overrides or {}
        try:
            template = self.transactions.get(user_id, template_id)
            if template is None:
                return False, "Transaction not found.", None
            if not template.is_recurring:
                raise ValidationError("Only recurring transactions can be cloned.", 'is_recurring')

            edits = {}
            if 'title' in overrides:
                edits['title'] = require_text(overrides, 'title')
            if overrides.get('amount') not in (None, ''):
                edits['amount'] = parse_amount(overrides.get('amount'))
            if 'category' in overrides:
                edits['category'] = require_text(overrides, 'category')
            if 'description' in overrides:
                edits['description'] = optional_text(overrides, 'description')
            if overrides.get('expense_type'):
                edits['expense_type'] = parse_choice(overrides['expense_type'], EXPENSE_TYPES, 'expense_type')
            on_date = parse_date(overrides.get('date'), default=self._today())

            clone = clone_as_one_off(template, on_date=on_date, **edits)
            self.transactions.add(clone)
            return True, "Transaction recorded.", clone
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to record transaction.", None

    def _month_spend(self, user_id, category, today):
        start, end = statistics.month_bounds(today)
        filters = PeriodFilter(transaction_type=EXPENSE, category=category, is_recurring=False)
        return statistics.total_amount(self.transactions.list_for_period(user_id, start, end, filters))

    def limit_warning(self, session, category, amount, transaction_type=EXPENSE, today=None):
        """
        Warning for the entry form before an expense is saved.

        Computes what this month's spend in ``category`` would be with
        ``amount`` added and classifies it against the category limit.

        Returns:
            LimitUsage or None: None when there is no limit, the entry is
            not an expense, or the result stays under the warning threshold
        """
        user_id = self._require(session)
        if transaction_type != EXPENSE or not category:
            return None
        amount = parse_amount(amount)
        spending_limit = self.limits.get_for_category(user_id, category)
        if spending_limit is None:
            return None

        would_spend = self._month_spend(user_id, category, self._today(today)) + amount
        percentage = statistics.percentage_of(would_spend, spending_limit.monthly_limit)
        status = statistics.limit_status(percentage)
        if status == statistics.STATUS_OK:
            return None
        return statistics.LimitUsage(
            id=spending_limit.id,
            category=category,
            monthly_limit=spending_limit.monthly_limit,
            current_spent=would_spend,
            percentage=percentage,
            status=status,
        )

    # =============================================================================
    # GOAL TRACKER
    # =============================================================================

    def list_goals(self, session):
        """Goals ordered by target date; each carries its progress percentage."""
        return self.goals.list(self._require(session))

    def create_goal(self, session, data):
        """
        Returns:
            tuple: (success, message, Goal or None)
        """
        user_id = self._require(session)
        try:
            goal = Goal(id=None, user_id=user_id, **goal_fields(data))
            self.goals.add(goal)
            return True, "Goal created.", goal
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to create goal.", None

    def update_goal(self, session, goal_id, data):
        """Apply the supplied fields to an owned goal and recompute completion."""
        user_id = self._require(session)
        try:
            fields = goal_fields(data, partial=True)
            goal = self.goals.get(user_id, goal_id)
            if goal is None:
                LOG.debug("Goal %s not found for user %s", goal_id, user_id)
                return True, "Goal updated."
            # Rebuilding the record recomputes is_completed
            self.goals.update(replace(goal, **fields))
            return True, "Goal updated."
        except ValidationError as err:
            return False, err.message
        except StorageError:
            return False, "Failed to update goal."

    def delete_goal(self, session, goal_id):
        user_id = self._require(session)
        try:
            self.goals.delete(user_id, goal_id)
            return True, "Goal deleted."
        except StorageError:
            return False, "Failed to delete goal."

    def contribute_to_goal(self, session, goal_id, amount):
        """
        Add money to a goal, never past its target.

        Read-modify-write without locking: two concurrent contributions
        can overwrite each other and the last write wins.

        Returns:
            tuple: (success, message, Goal or None)
        """
        user_id = self._require(session)
        try:
            delta = parse_amount(amount)
            goal = self.goals.get(user_id, goal_id)
            if goal is None:
                return False, "Goal not found.", None
            updated = replace(goal, current_amount=min(goal.current_amount + delta, goal.target_amount))
            self.goals.update(updated)
            message = "Goal completed!" if updated.is_completed else "Contribution added."
            return True, message, updated
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to add contribution.", None

    def monthly_budget(self, session):
        """Sum of the target amounts of all goals that are not completed."""
        return statistics.goals_budget(self.goals.list(self._require(session)))

    # =============================================================================
    # SPENDING LIMIT ENGINE
    # =============================================================================

    def set_spending_limit(self, session, category, monthly_limit):
        """
        Create the limit for ``category`` or replace its amount.

        Returns:
            tuple: (success, message, SpendingLimit or None)
        """
        user_id = self._require(session)
        try:
            spending_limit = SpendingLimit(
                id=None,
                user_id=user_id,
                category=require_text({'category': category}, 'category'),
                monthly_limit=parse_amount(monthly_limit, field='monthly_limit'),
            )
            self.limits.upsert(spending_limit)
            return True, "Spending limit saved.", spending_limit
        except ValidationError as err:
            return False, err.message, None
        except StorageError:
            return False, "Failed to save spending limit.", None

    def delete_spending_limit(self, session, limit_id):
        user_id = self._require(session)
        try:
            self.limits.delete(user_id, limit_id)
            return True, "Spending limit deleted."
        except StorageError:
            return False, "Failed to delete spending limit."

    def spending_limits(self, session, today=None):
        """Every limit with this month's realized spend, percentage and status."""
        user_id = self._require(session)
        start, end = statistics.month_bounds(self._today(today))
        month_expenses = self.transactions.list_for_period(user_id, start, end, REALIZED_EXPENSES)
        return statistics.limit_usage(self.limits.list(user_id), month_expenses)

    # =============================================================================
    # VIEWS
    # =============================================================================

    def dashboard(self, session, today=None):
        user_id = self._require(session)
        today = self._today(today)
        start, end = statistics.month_bounds(today)
        return statistics.dashboard_summary(
            recent=self.transactions.list_recent(user_id, 10),
            month_expenses=self.transactions.list_for_period(user_id, start, end, REALIZED_EXPENSES),
            goals=self.goals.list(user_id),
            limits=self.limits.list(user_id),
            today=today,
        )

    def statistics(self, session, period=PERIOD_MONTH, today=None):
        """Statistics for the current month or year. Raises ValidationError on a bad period."""
        user_id = self._require(session)
        period = parse_period(period)
        today = self._today(today)
        start, end = statistics.period_bounds(period, today)
        expenses = self.transactions.list_for_period(user_id, start, end, REALIZED_EXPENSES)
        return statistics.aggregate(expenses, self.limits.list(user_id), period, today)
