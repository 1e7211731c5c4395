from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from moneywise.config import Config, TestConfig
from moneywise.log import setup_logging


def test_config_reads_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("MONEYWISE_DB_PATH", str(tmp_path / "custom.db"))
    monkeypatch.setenv("MONEYWISE_PORT", "6001")
    monkeypatch.setenv("SESSION_COOKIE_SECURE", "true")
    monkeypatch.setenv("SECRET_KEY", "from-env")

    config = Config.from_env()

    assert config.DB_PATH == tmp_path / "custom.db"
    assert config.PORT == 6001
    assert config.SESSION_COOKIE_SECURE is True
    assert config.flask_settings()["SECRET_KEY"] == "from-env"


def test_test_config_overrides(tmp_path: Path) -> None:
    config = TestConfig(db_path=str(tmp_path / "t.db"))
    assert config.DB_PATH == tmp_path / "t.db"
    assert config.TESTING
    assert config.LOG_DIR is None
    assert config.flask_settings()["TESTING"] is True


def test_setup_logging_does_not_stack_handlers(tmp_path: Path) -> None:
    first = setup_logging("DEBUG", log_dir=tmp_path, console=True)
    second = setup_logging("info", log_dir=tmp_path, console=True)

    assert first is second
    assert len(second.handlers) == 2
    assert second.level == logging.INFO


def test_child_loggers_write_to_rotating_file(tmp_path: Path) -> None:
    logger = setup_logging("INFO", log_dir=tmp_path, console=False)
    assert [type(handler) for handler in logger.handlers] == [RotatingFileHandler]

    logging.getLogger("moneywise.engine").info("category seeded")
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "moneywise.log").read_text(encoding="utf-8")
    assert "moneywise.engine" in content
    assert "category seeded" in content
