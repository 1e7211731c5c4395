"""In-memory repositories with the same owner-scoping as the SQLite ones."""

import itertools
from dataclasses import replace

from .models import PeriodFilter
from .repositories import (
    CategoryRepository,
    GoalRepository,
    SpendingLimitRepository,
    TransactionRepository,
)


class _MemoryStore:

    def __init__(self):
        self.rows = {}
        self._ids = itertools.count(1)

    def insert(self, record):
        record.id = next(self._ids)
        self.rows[record.id] = replace(record)
        return record

    def owned(self, user_id):
        return [replace(row) for row in self.rows.values() if row.user_id == user_id]

    def get(self, user_id, record_id):
        row = self.rows.get(record_id)
        if row is None or row.user_id != user_id:
            return None
        return replace(row)

    def update(self, record):
        current = self.rows.get(record.id)
        if current is None or current.user_id != record.user_id:
            return 0
        self.rows[record.id] = replace(record)
        return 1

    def delete(self, user_id, record_id):
        if self.get(user_id, record_id) is None:
            return 0
        del self.rows[record_id]
        return 1


class MemoryCategoryRepository(CategoryRepository):

    def __init__(self):
        self.store = _MemoryStore()

    def list(self, user_id):
        return sorted(self.store.owned(user_id), key=lambda c: (c.name, c.id))

    def get(self, user_id, category_id):
        return self.store.get(user_id, category_id)

    def count(self, user_id):
        return len(self.store.owned(user_id))

    def add(self, category):
        return self.store.insert(category)

    def add_many(self, categories):
        return [self.store.insert(category) for category in categories]

    def update(self, category):
        current = self.store.get(category.user_id, category.id)
        if current is None:
            return 0
        # is_default is fixed at creation
        return self.store.update(replace(category, is_default=current.is_default))

    def delete(self, user_id, category_id):
        return self.store.delete(user_id, category_id)


class MemoryTransactionRepository(TransactionRepository):

    def __init__(self):
        self.store = _MemoryStore()

    def add(self, transaction):
        return self.store.insert(transaction)

    def get(self, user_id, transaction_id):
        return self.store.get(user_id, transaction_id)

    def update(self, transaction):
        return self.store.update(transaction)

    def delete(self, user_id, transaction_id):
        return self.store.delete(user_id, transaction_id)

    def list_recent(self, user_id, limit=10):
        rows = sorted(self.store.owned(user_id), key=lambda t: (t.date, t.id), reverse=True)
        return rows[:limit]

    def list_for_period(self, user_id, start, end, filters=None):
        filters = filters or PeriodFilter()
        rows = [
            tx for tx in self.store.owned(user_id)
            if start <= tx.date < end and filters.matches(tx)
        ]
        return sorted(rows, key=lambda t: (t.date, t.id))

    def list_recurring(self, user_id):
        rows = [tx for tx in self.store.owned(user_id) if tx.is_recurring]
        return sorted(rows, key=lambda t: (t.date, t.id), reverse=True)


class MemoryGoalRepository(GoalRepository):

    def __init__(self):
        self.store = _MemoryStore()

    def list(self, user_id):
        return sorted(self.store.owned(user_id), key=lambda g: (g.target_date, g.id))

    def get(self, user_id, goal_id):
        return self.store.get(user_id, goal_id)

    def add(self, goal):
        return self.store.insert(goal)

    def update(self, goal):
        return self.store.update(goal)

    def delete(self, user_id, goal_id):
        return self.store.delete(user_id, goal_id)


class MemorySpendingLimitRepository(SpendingLimitRepository):

    def __init__(self):
        self.store = _MemoryStore()

    def list(self, user_id):
        return sorted(self.store.owned(user_id), key=lambda item: item.category)

    def get_for_category(self, user_id, category):
        for row in self.store.owned(user_id):
            if row.category == category:
                return row
        return None

    def upsert(self, spending_limit):
        existing = self.get_for_category(spending_limit.user_id, spending_limit.category)
        if existing is None:
            return self.store.insert(spending_limit)
        spending_limit.id = existing.id
        self.store.update(spending_limit)
        return spending_limit

    def delete(self, user_id, limit_id):
        return self.store.delete(user_id, limit_id)


def memory_repositories():
    """Build a fresh, empty set of in-memory repositories."""
    return {
        'categories': MemoryCategoryRepository(),
        'transactions': MemoryTransactionRepository(),
        'goals': MemoryGoalRepository(),
        'limits': MemorySpendingLimitRepository(),
    }
