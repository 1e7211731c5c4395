from __future__ import annotations

import datetime
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from moneywise.api import create_app
from moneywise.auth import AuthService
from moneywise.config import TestConfig
from moneywise.engine import MoneyWiseEngine
from moneywise.models import UserSession
from moneywise.setup_sqlite import create_database

# Mid-month so projections have elapsed days on both sides
TODAY = datetime.date(2024, 3, 15)


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Keep handlers installed by ``create_app`` from leaking between tests."""
    yield
    logger = logging.getLogger("moneywise")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture()
def today() -> datetime.date:
    return TODAY


@pytest.fixture()
def session() -> UserSession:
    return UserSession(user_id=1, email="anna@example.com", first_name="Anna")


@pytest.fixture()
def other_session() -> UserSession:
    return UserSession(user_id=2, email="marco@example.com")


@pytest.fixture()
def engine() -> MoneyWiseEngine:
    """In-memory engine pinned to ``TODAY``."""
    return MoneyWiseEngine.in_memory(clock=lambda: TODAY)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "moneywise.db"
    assert create_database(path, verbose=False)
    return path


@pytest.fixture()
def auth(db_path: Path) -> AuthService:
    return AuthService(db_path, bcrypt_rounds=4)


@pytest.fixture()
def db_user(auth: AuthService) -> UserSession:
    ok, message, user_session = auth.sign_up("anna@example.com", "secret-pass", first_name="Anna")
    assert ok, message
    return user_session


@pytest.fixture()
def db_other_user(auth: AuthService) -> UserSession:
    ok, message, user_session = auth.sign_up("marco@example.com", "secret-pass")
    assert ok, message
    return user_session


@pytest.fixture()
def sqlite_engine(db_path: Path) -> MoneyWiseEngine:
    return MoneyWiseEngine.from_sqlite(db_path, clock=lambda: TODAY)


@pytest.fixture()
def app(db_path: Path):
    return create_app(TestConfig(db_path=db_path))


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def logged_in_client(client):
    response = client.post(
        "/api/register",
        json={"email": "anna@example.com", "password": "secret-pass", "first_name": "Anna"},
    )
    assert response.status_code == 200, response.get_json()
    return client
