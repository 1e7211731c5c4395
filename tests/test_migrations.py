from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from moneywise import migration_runner
from moneywise.api import create_app
from moneywise.config import TestConfig
from moneywise.errors import StorageError
from moneywise.migration_runner import get_all_migrations, get_current_version, run_all_pending
from moneywise.setup_sqlite import EXPECTED_TABLES, create_database, reset_database, verify_schema


def _columns(db_path: Path, table: str) -> list[str]:
    with sqlite3.connect(db_path) as conn:
        return [row[1] for row in conn.execute(f"PRAGMA table_info({table})")]


def test_bundled_migrations_are_ordered() -> None:
    migrations = get_all_migrations()
    versions = [version for version, _path, _description in migrations]
    assert versions == sorted(versions)
    assert versions[0] == 1
    assert migrations[0][2] == "add expense type"


def test_fresh_database_is_fully_migrated(db_path: Path) -> None:
    assert verify_schema(db_path, verbose=False)
    assert "expense_type" in _columns(db_path, "transactions")

    conn = sqlite3.connect(db_path)
    try:
        assert get_current_version(conn) == len(get_all_migrations())
        tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")}
    finally:
        conn.close()
    assert set(EXPECTED_TABLES) <= tables

    assert run_all_pending(db_path) == 0


def test_base_schema_upgrades_in_place(tmp_path: Path) -> None:
    db_path = tmp_path / "legacy.db"
    assert create_database(db_path, apply_migrations=False, verbose=False)
    assert "expense_type" not in _columns(db_path, "transactions")

    assert run_all_pending(db_path) == len(get_all_migrations())
    assert "expense_type" in _columns(db_path, "transactions")


def test_failed_migration_stops_the_run(db_path: Path, tmp_path: Path) -> None:
    broken = tmp_path / "schema"
    broken.mkdir()
    (broken / "999_broken.sql").write_text("ALTER TABLE no_such_table ADD COLUMN x TEXT;", encoding="utf-8")

    assert run_all_pending(db_path, migrations_path=broken) == -1

    conn = sqlite3.connect(db_path)
    try:
        assert get_current_version(conn) == len(get_all_migrations())
    finally:
        conn.close()


def test_missing_database_is_not_created(tmp_path: Path) -> None:
    db_path = tmp_path / "nothing.db"
    assert run_all_pending(db_path) == 0
    assert not db_path.exists()


def test_reset_database_drops_data(db_path: Path, auth, db_user) -> None:
    assert reset_database(db_path, verbose=False)
    assert auth.get_user(db_user.user_id) is None


def test_create_database_reports_failed_migration(tmp_path: Path, monkeypatch) -> None:
    broken = tmp_path / "schema"
    broken.mkdir()
    (broken / "001_broken.sql").write_text("ALTER TABLE nope ADD COLUMN x TEXT;", encoding="utf-8")
    monkeypatch.setattr(migration_runner, "get_migrations_path", lambda: broken)

    db_path = tmp_path / "moneywise.db"
    assert create_database(db_path, verbose=False) is False
    assert "expense_type" not in _columns(db_path, "transactions")


def test_app_refuses_to_start_on_failed_migration(tmp_path: Path, monkeypatch) -> None:
    broken = tmp_path / "schema"
    broken.mkdir()
    (broken / "001_broken.sql").write_text("ALTER TABLE nope ADD COLUMN x TEXT;", encoding="utf-8")
    monkeypatch.setattr(migration_runner, "get_migrations_path", lambda: broken)

    with pytest.raises(StorageError):
        create_app(TestConfig(db_path=tmp_path / "moneywise.db"))
