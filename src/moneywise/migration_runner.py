"""
MoneyWise - Database Migration Runner

This module handles automatic schema migrations for the SQLite database.
Migrations are SQL files in migrations/schema/ that are applied in order.

Migration files should be named: 001_description.sql, 002_description.sql, etc.

The schema_version table tracks which migrations have been applied.
"""

import logging
import re
import sqlite3
from pathlib import Path

from .config import Config

LOG = logging.getLogger(__name__)

MIGRATION_PATTERN = re.compile(r'^(\d{3})_(.+)\.sql$')


def get_db_path():
    """Return the path to the SQLite database file"""
    return Path(Config.from_env().DB_PATH)


def get_migrations_path():
    """Return the path to the migrations folder"""
    return Path(__file__).parent / "migrations" / "schema"


def get_current_version(conn):
    """
    Get the current schema version from the database.

    Returns:
        int: The highest migration version applied, or 0 if no migrations
    """
    cursor = conn.cursor()
    try:
        cursor.execute("SELECT MAX(version) FROM schema_version")
        result = cursor.fetchone()
        return result[0] if result[0] is not None else 0
    except sqlite3.OperationalError:
        # schema_version table doesn't exist yet (fresh database)
        return 0
    finally:
        cursor.close()


def get_all_migrations(migrations_path=None):
    """
    List every migration file, in version order.

    Returns:
        list: List of tuples (version, filepath, description)
    """
    migrations_path = Path(migrations_path) if migrations_path else get_migrations_path()

    migrations = []
    if migrations_path.exists():
        for file in sorted(migrations_path.glob('*.sql')):
            match = MIGRATION_PATTERN.match(file.name)
            if match:
                version = int(match.group(1))
                description = match.group(2).replace('_', ' ')
                migrations.append((version, file, description))

    return migrations


def apply_migration(conn, version, filepath, description):
    """
    Apply a single migration file to the database.

    Returns:
        bool: True if successful, False otherwise
    """
    cursor = conn.cursor()

    try:
        LOG.info("Applying migration %03d: %s", version, description)

        with open(filepath, 'r', encoding='utf-8') as f:
            sql = f.read()

        # A migration may contain multiple statements
        cursor.executescript(sql)

        cursor.execute("""
            INSERT INTO schema_version (version, description)
            VALUES (?, ?)
        """, (version, description))

        conn.commit()
        return True

    except sqlite3.Error:
        LOG.exception("Migration %03d (%s) failed", version, description)
        conn.rollback()
        return False

    finally:
        cursor.close()


def run_all_pending(db_path=None, migrations_path=None):
    """
    Run all pending migrations.

    Returns:
        int: Number of migrations applied, or -1 if one failed
    """
    db_path = Path(db_path) if db_path else get_db_path()

    if not db_path.exists():
        LOG.warning("Database %s does not exist. Run setup_sqlite.py first.", db_path)
        return 0

    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA foreign_keys = ON;")

    try:
        current_version = get_current_version(conn)
        pending = [m for m in get_all_migrations(migrations_path) if m[0] > current_version]

        if not pending:
            return 0

        LOG.info("Found %d pending migration(s)", len(pending))

        applied = 0
        for version, filepath, description in pending:
            if not apply_migration(conn, version, filepath, description):
                LOG.error("Migration %03d failed. Stopping.", version)
                return -1
            applied += 1

        return applied

    finally:
        conn.close()


def list_migrations(db_path=None):
    """Print a list of all migrations and their status"""
    db_path = Path(db_path) if db_path else get_db_path()

    if not db_path.exists():
        print("Database does not exist yet.")
        return

    conn = sqlite3.connect(str(db_path))
    try:
        current_version = get_current_version(conn)
    finally:
        conn.close()

    all_migrations = get_all_migrations()

    if not all_migrations:
        print("No migrations found in migrations/schema/")
        return

    print()
    print("Migration Status:")
    print("=" * 60)

    for version, filepath, description in all_migrations:
        status = "[APPLIED]" if version <= current_version else "[PENDING]"
        print(f"{version:03d}. {description:<40} {status}")

    print()
    print(f"Current schema version: {current_version}")


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1 and sys.argv[1] == 'list':
        list_migrations()
    else:
        print("=" * 60)
        print("MoneyWise - Migration Runner")
        print("=" * 60)
        print()

        applied = run_all_pending()

        if applied > 0:
            print(f"[OK] Applied {applied} migration(s) successfully!")
        elif applied == 0:
            print("[OK] No pending migrations.")
        else:
            print("[ERROR] Migration failed.")
