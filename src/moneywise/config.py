"""
MoneyWise - Configuration

Settings are read from the environment. A ``.env`` file in the working
directory is loaded first so local development needs no exported
variables.

Environment variables:
    MONEYWISE_DB_PATH       SQLite database file
    SECRET_KEY              Flask session signing key
    MONEYWISE_LOG_LEVEL     DEBUG / INFO / WARNING / ERROR
    MONEYWISE_LOG_DIR       Directory for rotating log files
    MONEYWISE_PORT          Port used by the launcher
    SESSION_COOKIE_SECURE   "true" when served over HTTPS
    SESSION_COOKIE_SAMESITE Cookie SameSite policy
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).parent
DEFAULT_DB_PATH = PACKAGE_DIR / "data" / "moneywise.db"
DEFAULT_LOG_DIR = PACKAGE_DIR / "data" / "logs"


def _env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = 'dev-secret-key-change-in-production'
    DB_PATH = DEFAULT_DB_PATH
    LOG_LEVEL = 'INFO'
    LOG_DIR = DEFAULT_LOG_DIR
    PORT = 5001
    BCRYPT_ROUNDS = 12
    SESSION_COOKIE_SECURE = False
    SESSION_COOKIE_SAMESITE = 'Lax'
    SESSION_COOKIE_HTTPONLY = True
    TESTING = False

    @classmethod
    def from_env(cls):
        """Return a Config instance with environment overrides applied."""
        config = cls()
        config.SECRET_KEY = os.getenv('SECRET_KEY', cls.SECRET_KEY)
        config.DB_PATH = Path(os.getenv('MONEYWISE_DB_PATH', str(cls.DB_PATH)))
        config.LOG_LEVEL = os.getenv('MONEYWISE_LOG_LEVEL', cls.LOG_LEVEL)
        config.LOG_DIR = Path(os.getenv('MONEYWISE_LOG_DIR', str(cls.LOG_DIR)))
        config.PORT = int(os.getenv('MONEYWISE_PORT', cls.PORT))
        config.SESSION_COOKIE_SECURE = _env_flag('SESSION_COOKIE_SECURE', cls.SESSION_COOKIE_SECURE)
        config.SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', cls.SESSION_COOKIE_SAMESITE)
        return config

    def flask_settings(self):
        """Settings copied onto ``app.config``."""
        return {
            'SECRET_KEY': self.SECRET_KEY,
            'SESSION_COOKIE_SECURE': self.SESSION_COOKIE_SECURE,
            'SESSION_COOKIE_SAMESITE': self.SESSION_COOKIE_SAMESITE,
            'SESSION_COOKIE_HTTPONLY': self.SESSION_COOKIE_HTTPONLY,
            'TESTING': self.TESTING,
        }


class TestConfig(Config):
    __test__ = False

    SECRET_KEY = 'test-secret-key'
    TESTING = True
    LOG_LEVEL = 'DEBUG'
    LOG_DIR = None
    BCRYPT_ROUNDS = 4

    def __init__(self, db_path=None, log_dir=None):
        if db_path is not None:
            self.DB_PATH = Path(db_path)
        if log_dir is not None:
            self.LOG_DIR = Path(log_dir)
