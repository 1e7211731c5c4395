"""
MoneyWise - Server Launcher

This module handles:
1. Python version check
2. Dependency verification
3. Database setup (creates if missing, restores from backup if available)
4. Automatic backup to Documents/MoneyWise_Data
5. Migration runner (applies pending migrations)
6. Flask server startup

Usage:
    moneywise-server
    python start.py
"""

import logging
import os
import shutil
import sys
from datetime import datetime, timedelta
from pathlib import Path

from .config import Config

LOG = logging.getLogger(__name__)

MIN_PYTHON = (3, 11)
BACKUP_NAME = 'moneywise'


# =============================================================================
# BACKUP AND RESTORE FUNCTIONS
# =============================================================================

def get_backup_dir():
    """Get cross-platform Documents/MoneyWise_Data path"""
    if sys.platform == 'win32':
        docs = Path(os.environ.get('USERPROFILE', str(Path.home()))) / 'Documents'
    else:  # macOS/Linux
        docs = Path.home() / 'Documents'

    backup_dir = docs / 'MoneyWise_Data'
    backup_dir.mkdir(parents=True, exist_ok=True)
    return backup_dir


def backup_database(db_path, backup_dir=None, now=None):
    """
    Backup the database file.
    - Always copy to moneywise.db (latest)
    - Daily: moneywise_YYYY-MM-DD.db (keep 3)
    - Weekly: moneywise_week-NN.db on Sundays (keep 4)

    Returns:
        tuple: (success bool, backup directory or reason)
    """
    db_path = Path(db_path)
    if not db_path.exists():
        return False, "No database to backup"

    backup_dir = Path(backup_dir) if backup_dir else get_backup_dir()
    daily_dir = backup_dir / 'daily'
    weekly_dir = backup_dir / 'weekly'
    daily_dir.mkdir(parents=True, exist_ok=True)
    weekly_dir.mkdir(parents=True, exist_ok=True)

    now = now or datetime.now()

    shutil.copy2(db_path, backup_dir / f'{BACKUP_NAME}.db')

    daily_file = daily_dir / f"{BACKUP_NAME}_{now.strftime('%Y-%m-%d')}.db"
    if not daily_file.exists():
        shutil.copy2(db_path, daily_file)

    if now.weekday() == 6:  # Sunday
        week_num = now.isocalendar()[1]
        weekly_file = weekly_dir / f"{BACKUP_NAME}_week-{week_num:02d}.db"
        if not weekly_file.exists():
            shutil.copy2(db_path, weekly_file)

    cleanup_old_daily_backups(daily_dir, days=3, now=now)
    cleanup_old_weekly_backups(weekly_dir, weeks=4)

    return True, str(backup_dir)


def cleanup_old_daily_backups(daily_dir, days=3, now=None):
    """Delete daily backups older than N days"""
    cutoff = (now or datetime.now()) - timedelta(days=days)
    for f in Path(daily_dir).glob(f'{BACKUP_NAME}_*.db'):
        try:
            file_date = datetime.strptime(f.stem.replace(f'{BACKUP_NAME}_', ''), '%Y-%m-%d')
        except ValueError:
            # Not a dated backup
            continue
        if file_date < cutoff:
            f.unlink()


def cleanup_old_weekly_backups(weekly_dir, weeks=4):
    """Keep only the most recent N weekly backups"""
    files = sorted(Path(weekly_dir).glob(f'{BACKUP_NAME}_week-*.db'), reverse=True)
    for f in files[weeks:]:
        f.unlink()


def find_latest_backup(backup_dir=None):
    """Find the most recent backup for restore"""
    backup_dir = Path(backup_dir) if backup_dir else get_backup_dir()
    latest = backup_dir / f'{BACKUP_NAME}.db'
    if latest.exists():
        return latest, datetime.fromtimestamp(latest.stat().st_mtime)
    return None, None


def restore_database(db_path, backup_dir=None):
    """Restore database from backup if available"""
    backup_file, backup_date = find_latest_backup(backup_dir)
    if backup_file is None:
        return False, None

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(backup_file, db_path)
    return True, backup_date


# =============================================================================
# STARTUP CHECKS
# =============================================================================

def check_python_version():
    """Verify the interpreter is recent enough"""
    print("[1/6] Checking Python version...", end=" ")

    if sys.version_info < MIN_PYTHON:
        print("[ERROR]")
        print()
        print("=" * 60)
        print(f"ERROR: Python {MIN_PYTHON[0]}.{MIN_PYTHON[1]} or higher is required")
        print("=" * 60)
        print(f"You are using Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")
        print()
        sys.exit(1)

    print(f"[OK] Python {sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}")


def check_dependencies():
    """Verify required packages are installed"""
    print("[2/6] Checking dependencies...", end=" ")

    missing = []
    required = {
        'flask': 'Flask',
        'flask_cors': 'Flask-CORS',
        'flask_login': 'Flask-Login',
        'bcrypt': 'bcrypt',
        'dotenv': 'python-dotenv',
        'faker': 'Faker',
    }

    for module, package in required.items():
        try:
            __import__(module)
        except ImportError:
            missing.append(package)

    if missing:
        print("[ERROR]")
        print()
        print("Missing packages:")
        for pkg in missing:
            print(f"  - {pkg}")
        print()
        print("To install all dependencies, run:")
        print("  pip install -e .")
        print()
        sys.exit(1)

    print("[OK]")


def setup_database(config, backup_dir=None):
    """Initialize database if first run, restore from backup, back up and migrate"""
    from .migration_runner import run_all_pending
    from .setup_sqlite import create_database

    db_path = Path(config.DB_PATH)

    if not db_path.exists():
        print("[3/6] Database not found...", end="")

        restored, backup_date = restore_database(db_path, backup_dir)

        if restored:
            print()
            print(f"      Found backup from {backup_date.strftime('%B %d, %Y')}")
            print("      Restoring your data... [OK] Welcome back!")
        else:
            print()
            print("      Creating new database...", end=" ")
            if create_database(db_path, verbose=False):
                print("[OK]")
            else:
                print("[ERROR]")
                print()
                print("Failed to create database. Check the log for details.")
                sys.exit(1)
    else:
        print("[3/6] Database found... [OK]")

    print("[4/6] Backing up your data...", end=" ")
    success, location = backup_database(db_path, backup_dir)
    if success:
        print(f"[OK] Saved to {location}")
    else:
        print("[SKIP] No data yet")

    print("[5/6] Checking for migrations...", end=" ")
    applied = run_all_pending(db_path)
    if applied > 0:
        print(f"[OK] Applied {applied} migration(s)")
    elif applied == 0:
        print("[OK] No pending migrations")
    else:
        print("[ERROR] Migration failed, see the log")
        sys.exit(1)


def start_flask_server(config):
    """Launch the Flask API server"""
    from .api import create_app

    url = f"http://127.0.0.1:{config.PORT}"
    print("[6/6] Starting MoneyWise server...")
    print()
    print("=" * 60)
    print("MoneyWise is running!")
    print("=" * 60)
    print()
    print(f"  Server: {url}")
    print("  Press Ctrl+C to stop the server")
    print()

    LOG.info("Serving MoneyWise API at %s", url)
    app = create_app(config)
    app.run(debug=False, port=config.PORT, use_reloader=False)


def main():
    """Main entry point"""
    print()
    print("=" * 60)
    print("MoneyWise - Personal Finance Manager")
    print("=" * 60)
    print()

    config = Config.from_env()
    try:
        check_python_version()
        check_dependencies()
        setup_database(config)
        start_flask_server(config)
    except KeyboardInterrupt:
        print()
        print()
        print("=" * 60)
        print("Server stopped. Thank you for using MoneyWise!")
        print("=" * 60)
        print()


if __name__ == "__main__":
    main()
