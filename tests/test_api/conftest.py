"""
Fixtures для API тестов: приложение на in-memory SQLite

Данные создаются отдельной session (seed) и закрываются до запросов:
все session'ы делят одно соединение StaticPool.
"""
from decimal import Decimal
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_current_user_id, get_db, get_publisher
from app.domain.account import AccountType
from app.infrastructure.db.models import Account, User
from app.main import create_app


@pytest.fixture
def app(session_factory):
    application = create_app()

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    application.dependency_overrides[get_db] = _get_db
    return application


@pytest.fixture
def client(app):
    """Test client для FastAPI"""
    return TestClient(app)


@pytest.fixture
def seed(session_factory):
    """Сохранить объекты и вернуть их id"""
    def _seed(*objects):
        with session_factory() as db:
            db.add_all(objects)
            db.commit()
            return [obj.id for obj in objects]
    return _seed


@pytest.fixture
def user_id(seed) -> int:
    return seed(User(email="api@example.com", name="Иван", surname="Тестов"))[0]


@pytest.fixture
def other_user_id(seed) -> int:
    return seed(User(email="other@example.com", name="Пётр", surname="Тестов"))[0]


@pytest.fixture
def make_account(seed):
    def _make(owner_id: int, balance: str = "0", name: str = "Карта") -> int:
        return seed(Account(user_id=owner_id, account_type=AccountType.CARD, balance=Decimal(balance), name=name))[0]
    return _make


@pytest.fixture
def auth_client(app, client, user_id):
    """Client, залогиненный как user_id"""
    app.dependency_overrides[get_current_user_id] = lambda: user_id
    return client


@pytest.fixture
def publisher(app):
    mock = Mock()
    app.dependency_overrides[get_publisher] = lambda: mock
    return mock
