"""
MoneyWise - SQLite Database Setup & Initialization

This module creates and initializes the MoneyWise SQLite database schema.
It creates all tables with their foreign key relationships and indexes,
then brings the file up to date with the numbered migrations.

Database Schema Overview:
------------------------
- users: Login credentials and profile names
- user_categories: Per-user expense categories (name, color, icon)
- transactions: Income and expense entries, including recurring templates
- financial_goals: Savings goals with progress tracking
- spending_limits: Monthly spending caps, one per (user, category)
- schema_version: Track applied database migrations

Key Design Features:
- Foreign key constraints for referential integrity
- Cascade deletes for user data (complete user removal)
- TEXT storage for monetary values (preserves exact precision)
- Category names are stored on the rows that use them, so renaming or
  deleting a category never rewrites history
"""

import sqlite3
from pathlib import Path

from .config import Config
from . import migration_runner

EXPECTED_TABLES = (
    'users',
    'user_categories',
    'transactions',
    'financial_goals',
    'spending_limits',
    'schema_version',
)


def get_db_path():
    """Return the path to the SQLite database file"""
    return Path(Config.from_env().DB_PATH)


def create_database(db_path=None, apply_migrations=True, verbose=True):
    """
    Create a MoneyWise SQLite database with all tables.

    [WARNING]  If the database already exists, this will NOT drop it.
    Use reset_database() if you want to start fresh.

    Returns:
        bool: True if the schema was created (or already existed) and every
        pending migration applied
    """
    db_path = Path(db_path) if db_path else get_db_path()
    say = print if verbose else (lambda *args, **kwargs: None)

    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()

    # Enable foreign key constraints (CRITICAL for data integrity)
    cursor.execute("PRAGMA foreign_keys = ON;")

    say("--- Creating MoneyWise Database ---")
    say(f"Location: {db_path}")
    say()

    try:
        # =================================================================
        # TABLE 1: users - Authentication and profile
        # =================================================================
        say("Creating table 'users'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS users (
                user_id INTEGER PRIMARY KEY AUTOINCREMENT,
                email TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                first_name TEXT DEFAULT NULL,
                last_name TEXT DEFAULT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        say("OK")

        # =================================================================
        # TABLE 2: user_categories - Expense categories per user
        # =================================================================
        # No UNIQUE on name: duplicate names are allowed
        say("Creating table 'user_categories'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS user_categories (
                category_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                name TEXT NOT NULL,
                color TEXT NOT NULL DEFAULT '#3B82F6',
                icon TEXT NOT NULL DEFAULT 'Tag',
                is_default INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_user_categories_user_id ON user_categories(user_id);")
        say("OK")

        # =================================================================
        # TABLE 3: transactions - Income and expense entries
        # =================================================================
        say("Creating table 'transactions'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS transactions (
                transaction_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                title TEXT NOT NULL,
                amount TEXT NOT NULL,
                category TEXT NOT NULL,
                transaction_type TEXT CHECK(transaction_type IN ('expense', 'income')) NOT NULL,
                date TEXT NOT NULL,
                description TEXT DEFAULT NULL,
                is_recurring INTEGER NOT NULL DEFAULT 0,
                recurring_period TEXT DEFAULT NULL
                    CHECK(recurring_period IS NULL OR recurring_period IN ('weekly', 'monthly', 'quarterly', 'yearly')),
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_transactions_user_id ON transactions(user_id);")
        say("OK")

        # =================================================================
        # TABLE 4: financial_goals - Savings goals
        # =================================================================
        say("Creating table 'financial_goals'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS financial_goals (
                goal_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                title TEXT NOT NULL,
                description TEXT DEFAULT NULL,
                target_amount TEXT NOT NULL,
                current_amount TEXT NOT NULL DEFAULT '0.00',
                target_date TEXT NOT NULL,
                category TEXT NOT NULL,
                is_completed INTEGER NOT NULL DEFAULT 0,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_financial_goals_user_id ON financial_goals(user_id);")
        say("OK")

        # =================================================================
        # TABLE 5: spending_limits - Monthly caps per category
        # =================================================================
        say("Creating table 'spending_limits'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS spending_limits (
                limit_id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id INTEGER NOT NULL,
                category TEXT NOT NULL,
                monthly_limit TEXT NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
                UNIQUE(user_id, category),
                FOREIGN KEY (user_id) REFERENCES users(user_id) ON DELETE CASCADE
            )
        """)
        say("OK")

        # =================================================================
        # TABLE 6: schema_version - Migration tracking
        # =================================================================
        say("Creating table 'schema_version'...", end=" ")
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                description TEXT NOT NULL,
                applied_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)
        say("OK")

        conn.commit()
        say()
        say("[OK] Database schema created successfully!")
        say(f"[OK] Database file: {db_path}")

    except sqlite3.Error as err:
        say(f"\n[ERROR] Error creating database: {err}")
        conn.rollback()
        return False

    finally:
        cursor.close()
        conn.close()

    if apply_migrations and migration_runner.run_all_pending(db_path) < 0:
        say("[ERROR] A migration failed, see the log for details")
        return False

    return True


def reset_database(db_path=None, verbose=True):
    """
    [WARNING]  DANGER: Delete the existing database and create a fresh one.
    All data will be permanently lost!
    """
    db_path = Path(db_path) if db_path else get_db_path()

    if db_path.exists():
        if verbose:
            print(f"[WARNING]  WARNING: Deleting existing database at {db_path}")
        db_path.unlink()
        if verbose:
            print("[OK] Old database deleted")

    return create_database(db_path, verbose=verbose)


def verify_schema(db_path=None, verbose=True):
    """Verify that all tables exist and foreign keys can be enforced"""
    db_path = Path(db_path) if db_path else get_db_path()
    say = print if verbose else (lambda *args, **kwargs: None)

    if not db_path.exists():
        say("[ERROR] Database does not exist")
        return False

    conn = sqlite3.connect(str(db_path))
    cursor = conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON;")

    try:
        say("Verifying database schema...")
        say()

        for table in EXPECTED_TABLES:
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
            if cursor.fetchone():
                say(f"[OK] Table '{table}' exists")
            else:
                say(f"[ERROR] Table '{table}' MISSING")
                return False

        cursor.execute("PRAGMA foreign_keys;")
        fk_status = cursor.fetchone()[0]
        say()
        say(f"Foreign key enforcement: {'[OK] ENABLED' if fk_status else '[ERROR] DISABLED (WARNING!)'}")
        say()
        say("[OK] Schema verification complete")
        return True

    finally:
        cursor.close()
        conn.close()


if __name__ == "__main__":
    print("=" * 80)
    print("MoneyWise - SQLite Database Setup")
    print("=" * 80)
    print()

    db_path = get_db_path()

    if db_path.exists():
        print(f"Database already exists at: {db_path}")
        print()
        choice = input("Choose an option:\n  1. Verify existing schema\n  2. Reset database ([WARNING]  DELETES ALL DATA)\n  3. Cancel\n\nChoice: ")

        if choice == '1':
            verify_schema(db_path)
        elif choice == '2':
            confirm = input("\n[WARNING]  WARNING: This will DELETE ALL DATA. Type 'DELETE' to confirm: ")
            if confirm == 'DELETE':
                reset_database(db_path)
                verify_schema(db_path)
            else:
                print("Reset cancelled.")
        else:
            print("Cancelled.")
    else:
        print("No existing database found. Creating new database...")
        print()
        create_database(db_path)
        verify_schema(db_path)
