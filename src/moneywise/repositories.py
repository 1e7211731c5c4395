"""
MoneyWise - Owner-Scoped Repositories

Each entity has one repository interface and one SQLite implementation.
Every read and write is filtered by the owning ``user_id``: a record that
belongs to someone else is simply invisible, so updates and deletes of
foreign or unknown ids affect zero rows without raising.

SQLite conventions:
- One connection per call, opened by ``_get_db_connection`` and closed in
  ``finally``
- ``PRAGMA foreign_keys = ON`` and ``sqlite3.Row`` on every connection
- Money is stored as TEXT and read back as Decimal
- Any ``sqlite3.Error`` is rolled back and re-raised as ``StorageError``
"""

import datetime
import logging
import sqlite3
from abc import ABC, abstractmethod
from decimal import Decimal
from pathlib import Path

from .errors import StorageError
from .models import Category, Goal, PeriodFilter, SpendingLimit, Transaction

LOG = logging.getLogger(__name__)


# =============================================================================
# REPOSITORY INTERFACES
# =============================================================================

class CategoryRepository(ABC):

    @abstractmethod
    def list(self, user_id):
        """All categories of the owner, ordered by name."""

    @abstractmethod
    def get(self, user_id, category_id):
        """The category, or None when unknown or not owned."""

    @abstractmethod
    def count(self, user_id):
        pass

    @abstractmethod
    def add(self, category):
        """Insert and return the category with its new id."""

    @abstractmethod
    def add_many(self, categories):
        """Insert several categories in one atomic write."""

    @abstractmethod
    def update(self, category):
        """Rewrite name/color/icon. Returns the number of rows changed."""

    @abstractmethod
    def delete(self, user_id, category_id):
        """Returns the number of rows deleted."""


class TransactionRepository(ABC):

    @abstractmethod
    def add(self, transaction):
        """Insert and return the transaction with its new id."""

    @abstractmethod
    def get(self, user_id, transaction_id):
        pass

    @abstractmethod
    def update(self, transaction):
        """Rewrite every field of an existing transaction. Returns rows changed."""

    @abstractmethod
    def delete(self, user_id, transaction_id):
        pass

    @abstractmethod
    def list_recent(self, user_id, limit=10):
        """Newest first by date."""

    @abstractmethod
    def list_for_period(self, user_id, start, end, filters=None):
        """Transactions dated in ``[start, end)`` matching the optional ``PeriodFilter``."""

    @abstractmethod
    def list_recurring(self, user_id):
        """Recurring templates, newest first."""


class GoalRepository(ABC):

    @abstractmethod
    def list(self, user_id):
        """All goals of the owner, nearest target date first."""

    @abstractmethod
    def get(self, user_id, goal_id):
        pass

    @abstractmethod
    def add(self, goal):
        pass

    @abstractmethod
    def update(self, goal):
        """Rewrite every field of an existing goal. Returns rows changed."""

    @abstractmethod
    def delete(self, user_id, goal_id):
        pass


class SpendingLimitRepository(ABC):

    @abstractmethod
    def list(self, user_id):
        """All limits of the owner, ordered by category."""

    @abstractmethod
    def get_for_category(self, user_id, category):
        pass

    @abstractmethod
    def upsert(self, spending_limit):
        """Insert, or replace the amount of the owner's limit for that category."""

    @abstractmethod
    def delete(self, user_id, limit_id):
        pass


# =============================================================================
# SQLITE BASE
# =============================================================================

class SQLiteRepository:
    """Connection handling and column conversions shared by the SQLite repositories."""

    def __init__(self, db_path):
        self.db_path = Path(db_path)

    @staticmethod
    def _to_money_str(value):
        """Convert Decimal or float to string for SQLite storage"""
        if value is None:
            return None
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, (int, float)):
            return f"{value:.2f}"
        return str(value)

    @staticmethod
    def _from_money_str(value):
        """Convert string from SQLite to Decimal for calculations"""
        if value is None or value == '':
            return Decimal('0.00')
        return Decimal(str(value))

    @staticmethod
    def _to_bool_int(value):
        return 1 if value else 0

    @staticmethod
    def _to_date_str(value):
        if value is None:
            return None
        if isinstance(value, (datetime.date, datetime.datetime)):
            return value.strftime('%Y-%m-%d')
        return str(value)[:10]

    @staticmethod
    def _from_date_str(value):
        if value is None or value == '':
            return None
        return datetime.date.fromisoformat(str(value)[:10])

    def _get_db_connection(self):
        """
        Establish a new database connection.

        Returns:
            tuple: (connection, cursor) - SQLite connection and cursor

        Note:
            Callers are responsible for closing the connection and cursor.
        """
        try:
            conn = sqlite3.connect(str(self.db_path))
            # Enable foreign key constraints (CRITICAL for data integrity)
            conn.execute("PRAGMA foreign_keys = ON;")
            conn.row_factory = sqlite3.Row
            return conn, conn.cursor()
        except sqlite3.Error as err:
            LOG.error("Could not open database %s: %s", self.db_path, err)
            raise StorageError(f"Could not open database: {err}") from err

    def _fail(self, conn, action, err):
        conn.rollback()
        LOG.error("Failed to %s: %s", action, err)
        return StorageError(f"Failed to {action}: {err}")


# =============================================================================
# SQLITE IMPLEMENTATIONS
# =============================================================================

class SQLiteCategoryRepository(SQLiteRepository, CategoryRepository):

    def _row_to_category(self, row):
        return Category(
            id=row['category_id'],
            user_id=row['user_id'],
            name=row['name'],
            color=row['color'],
            icon=row['icon'],
            is_default=bool(row['is_default']),
        )

    def list(self, user_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT category_id, user_id, name, color, icon, is_default
                FROM user_categories
                WHERE user_id = ?
                ORDER BY name, category_id
            """, (user_id,))
            return [self._row_to_category(row) for row in cursor.fetchall()]
        except sqlite3.Error as err:
            raise self._fail(conn, "load categories", err) from err
        finally:
            cursor.close()
            conn.close()

    def get(self, user_id, category_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT category_id, user_id, name, color, icon, is_default
                FROM user_categories
                WHERE category_id = ? AND user_id = ?
            """, (category_id, user_id))
            row = cursor.fetchone()
            return self._row_to_category(row) if row else None
        except sqlite3.Error as err:
            raise self._fail(conn, "load category", err) from err
        finally:
            cursor.close()
            conn.close()

    def count(self, user_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("SELECT COUNT(*) FROM user_categories WHERE user_id = ?", (user_id,))
            return cursor.fetchone()[0]
        except sqlite3.Error as err:
            raise self._fail(conn, "count categories", err) from err
        finally:
            cursor.close()
            conn.close()

    def _insert(self, cursor, category):
        cursor.execute("""
            INSERT INTO user_categories (user_id, name, color, icon, is_default)
            VALUES (?, ?, ?, ?, ?)
        """, (category.user_id, category.name, category.color, category.icon,
              self._to_bool_int(category.is_default)))
        category.id = cursor.lastrowid
        return category

    def add(self, category):
        conn, cursor = self._get_db_connection()
        try:
            self._insert(cursor, category)
            conn.commit()
            return category
        except sqlite3.Error as err:
            raise self._fail(conn, "add category", err) from err
        finally:
            cursor.close()
            conn.close()

    def add_many(self, categories):
        conn, cursor = self._get_db_connection()
        try:
            for category in categories:
                self._insert(cursor, category)
            conn.commit()
            return categories
        except sqlite3.Error as err:
            raise self._fail(conn, "add categories", err) from err
        finally:
            cursor.close()
            conn.close()

    def update(self, category):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                UPDATE user_categories
                SET name = ?, color = ?, icon = ?
                WHERE category_id = ? AND user_id = ?
            """, (category.name, category.color, category.icon, category.id, category.user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "update category", err) from err
        finally:
            cursor.close()
            conn.close()

    def delete(self, user_id, category_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("DELETE FROM user_categories WHERE category_id = ? AND user_id = ?", (category_id, user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "delete category", err) from err
        finally:
            cursor.close()
            conn.close()


class SQLiteTransactionRepository(SQLiteRepository, TransactionRepository):

    COLUMNS = """
        transaction_id, user_id, title, amount, category, transaction_type, date,
        description, is_recurring, recurring_period, expense_type
    """

    def _row_to_transaction(self, row):
        return Transaction(
            id=row['transaction_id'],
            user_id=row['user_id'],
            title=row['title'],
            amount=self._from_money_str(row['amount']),
            category=row['category'],
            transaction_type=row['transaction_type'],
            date=self._from_date_str(row['date']),
            description=row['description'],
            is_recurring=bool(row['is_recurring']),
            recurring_period=row['recurring_period'],
            # NULL on legacy rows; the record maps it to 'personal'
            expense_type=row['expense_type'],
        )

    def _values(self, tx):
        return (
            tx.title,
            self._to_money_str(tx.amount),
            tx.category,
            tx.transaction_type,
            self._to_date_str(tx.date),
            tx.description,
            self._to_bool_int(tx.is_recurring),
            tx.recurring_period if tx.is_recurring else None,
            tx.expense_type if tx.is_expense else None,
        )

    def _select(self, where, params, suffix="", action="load transactions"):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute(f"SELECT {self.COLUMNS} FROM transactions WHERE {where} {suffix}", params)
            return [self._row_to_transaction(row) for row in cursor.fetchall()]
        except sqlite3.Error as err:
            raise self._fail(conn, action, err) from err
        finally:
            cursor.close()
            conn.close()

    def add(self, transaction):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                INSERT INTO transactions (
                    user_id, title, amount, category, transaction_type, date,
                    description, is_recurring, recurring_period, expense_type
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (transaction.user_id,) + self._values(transaction))
            transaction.id = cursor.lastrowid
            conn.commit()
            return transaction
        except sqlite3.Error as err:
            raise self._fail(conn, "save transaction", err) from err
        finally:
            cursor.close()
            conn.close()

    def get(self, user_id, transaction_id):
        rows = self._select("transaction_id = ? AND user_id = ?", (transaction_id, user_id), action="load transaction")
        return rows[0] if rows else None

    def update(self, transaction):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                UPDATE transactions
                SET title = ?, amount = ?, category = ?, transaction_type = ?, date = ?,
                    description = ?, is_recurring = ?, recurring_period = ?, expense_type = ?,
                    updated_at = CURRENT_TIMESTAMP
                WHERE transaction_id = ? AND user_id = ?
            """, self._values(transaction) + (transaction.id, transaction.user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "update transaction", err) from err
        finally:
            cursor.close()
            conn.close()

    def delete(self, user_id, transaction_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("DELETE FROM transactions WHERE transaction_id = ? AND user_id = ?", (transaction_id, user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "delete transaction", err) from err
        finally:
            cursor.close()
            conn.close()

    def list_recent(self, user_id, limit=10):
        return self._select(
            "user_id = ?", (user_id, limit),
            suffix="ORDER BY date DESC, transaction_id DESC LIMIT ?",
        )

    def list_for_period(self, user_id, start, end, filters=None):
        filters = filters or PeriodFilter()
        # ISO dates compare correctly as text
        where = ["user_id = ?", "date >= ?", "date < ?"]
        params = [user_id, self._to_date_str(start), self._to_date_str(end)]
        if filters.transaction_type is not None:
            where.append("transaction_type = ?")
            params.append(filters.transaction_type)
        if filters.category is not None:
            where.append("category = ?")
            params.append(filters.category)
        if filters.is_recurring is not None:
            where.append("is_recurring = ?")
            params.append(self._to_bool_int(filters.is_recurring))
        return self._select(" AND ".join(where), tuple(params), suffix="ORDER BY date, transaction_id")

    def list_recurring(self, user_id):
        return self._select(
            "user_id = ? AND is_recurring = 1", (user_id,),
            suffix="ORDER BY date DESC, transaction_id DESC",
            action="load recurring transactions",
        )


class SQLiteGoalRepository(SQLiteRepository, GoalRepository):

    def _row_to_goal(self, row):
        return Goal(
            id=row['goal_id'],
            user_id=row['user_id'],
            title=row['title'],
            description=row['description'],
            target_amount=self._from_money_str(row['target_amount']),
            current_amount=self._from_money_str(row['current_amount']),
            target_date=self._from_date_str(row['target_date']),
            category=row['category'],
            is_completed=bool(row['is_completed']),
        )

    def _values(self, goal):
        return (
            goal.title,
            goal.description,
            self._to_money_str(goal.target_amount),
            self._to_money_str(goal.current_amount),
            self._to_date_str(goal.target_date),
            goal.category,
            self._to_bool_int(goal.is_completed),
        )

    def list(self, user_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT goal_id, user_id, title, description, target_amount, current_amount,
                       target_date, category, is_completed
                FROM financial_goals
                WHERE user_id = ?
                ORDER BY target_date, goal_id
            """, (user_id,))
            return [self._row_to_goal(row) for row in cursor.fetchall()]
        except sqlite3.Error as err:
            raise self._fail(conn, "load goals", err) from err
        finally:
            cursor.close()
            conn.close()

    def get(self, user_id, goal_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT goal_id, user_id, title, description, target_amount, current_amount,
                       target_date, category, is_completed
                FROM financial_goals
                WHERE goal_id = ? AND user_id = ?
            """, (goal_id, user_id))
            row = cursor.fetchone()
            return self._row_to_goal(row) if row else None
        except sqlite3.Error as err:
            raise self._fail(conn, "load goal", err) from err
        finally:
            cursor.close()
            conn.close()

    def add(self, goal):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                INSERT INTO financial_goals (
                    user_id, title, description, target_amount, current_amount,
                    target_date, category, is_completed
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (goal.user_id,) + self._values(goal))
            goal.id = cursor.lastrowid
            conn.commit()
            return goal
        except sqlite3.Error as err:
            raise self._fail(conn, "save goal", err) from err
        finally:
            cursor.close()
            conn.close()

    def update(self, goal):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                UPDATE financial_goals
                SET title = ?, description = ?, target_amount = ?, current_amount = ?,
                    target_date = ?, category = ?, is_completed = ?, updated_at = CURRENT_TIMESTAMP
                WHERE goal_id = ? AND user_id = ?
            """, self._values(goal) + (goal.id, goal.user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "update goal", err) from err
        finally:
            cursor.close()
            conn.close()

    def delete(self, user_id, goal_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("DELETE FROM financial_goals WHERE goal_id = ? AND user_id = ?", (goal_id, user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "delete goal", err) from err
        finally:
            cursor.close()
            conn.close()


class SQLiteSpendingLimitRepository(SQLiteRepository, SpendingLimitRepository):

    def _row_to_limit(self, row):
        return SpendingLimit(
            id=row['limit_id'],
            user_id=row['user_id'],
            category=row['category'],
            monthly_limit=self._from_money_str(row['monthly_limit']),
        )

    def list(self, user_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT limit_id, user_id, category, monthly_limit
                FROM spending_limits
                WHERE user_id = ?
                ORDER BY category
            """, (user_id,))
            return [self._row_to_limit(row) for row in cursor.fetchall()]
        except sqlite3.Error as err:
            raise self._fail(conn, "load spending limits", err) from err
        finally:
            cursor.close()
            conn.close()

    def get_for_category(self, user_id, category):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("""
                SELECT limit_id, user_id, category, monthly_limit
                FROM spending_limits
                WHERE user_id = ? AND category = ?
            """, (user_id, category))
            row = cursor.fetchone()
            return self._row_to_limit(row) if row else None
        except sqlite3.Error as err:
            raise self._fail(conn, "load spending limit", err) from err
        finally:
            cursor.close()
            conn.close()

    def upsert(self, spending_limit):
        conn, cursor = self._get_db_connection()
        try:
            # Keeps the row id stable, unlike INSERT OR REPLACE
            cursor.execute("""
                INSERT INTO spending_limits (user_id, category, monthly_limit)
                VALUES (?, ?, ?)
                ON CONFLICT(user_id, category) DO UPDATE SET
                    monthly_limit = excluded.monthly_limit,
                    updated_at = CURRENT_TIMESTAMP
            """, (spending_limit.user_id, spending_limit.category, self._to_money_str(spending_limit.monthly_limit)))
            cursor.execute(
                "SELECT limit_id FROM spending_limits WHERE user_id = ? AND category = ?",
                (spending_limit.user_id, spending_limit.category)
            )
            spending_limit.id = cursor.fetchone()[0]
            conn.commit()
            return spending_limit
        except sqlite3.Error as err:
            raise self._fail(conn, "save spending limit", err) from err
        finally:
            cursor.close()
            conn.close()

    def delete(self, user_id, limit_id):
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("DELETE FROM spending_limits WHERE limit_id = ? AND user_id = ?", (limit_id, user_id))
            conn.commit()
            return cursor.rowcount
        except sqlite3.Error as err:
            raise self._fail(conn, "delete spending limit", err) from err
        finally:
            cursor.close()
            conn.close()


def sqlite_repositories(db_path):
    """Build the four SQLite repositories over one database file."""
    return {
        'categories': SQLiteCategoryRepository(db_path),
        'transactions': SQLiteTransactionRepository(db_path),
        'goals': SQLiteGoalRepository(db_path),
        'limits': SQLiteSpendingLimitRepository(db_path),
    }
