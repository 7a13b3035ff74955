"""
Pytest fixtures for testing
"""
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.domain.account import AccountType, Currency
from app.domain.category import CategoryType
from app.infrastructure.db.models import Account, Category, User
from app.infrastructure.db.session import Base


@pytest.fixture
def db_engine():
    """
    In-memory SQLite engine для тестов.

    StaticPool: одно соединение на весь тест (его видят и TestClient, и consumer'ы).
    pysqlite сам управляет BEGIN и ломает SAVEPOINT, поэтому BEGIN выдаём сами.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        dbapi_conn.isolation_level = None
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Session:
    """Create database session for tests"""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


def _create_user(db: Session, email: str, name: str, user_id: int | None = None) -> User:
    user = User(id=user_id, email=email, name=name, surname="Тестов")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def user(db_session) -> User:
    return _create_user(db_session, "user@example.com", "Иван")


@pytest.fixture
def other_user(db_session) -> User:
    return _create_user(db_session, "other@example.com", "Пётр")


@pytest.fixture
def make_user(db_session):
    def _make(email: str, name: str = "Тест", user_id: int | None = None) -> User:
        return _create_user(db_session, email, name, user_id)
    return _make


@pytest.fixture
def make_account(db_session):
    """Счёт с заданным начальным балансом (в обход ledger, как при создании)"""
    def _make(
        user_id: int,
        balance: str = "0",
        name: str = "Карта",
        account_type: AccountType = AccountType.CARD,
        currency: Currency = Currency.RUB,
        account_id: int | None = None,
        **kwargs,
    ) -> Account:
        account = Account(
            id=account_id,
            user_id=user_id,
            account_type=account_type,
            currency=currency,
            balance=Decimal(balance),
            name=name,
            **kwargs,
        )
        db_session.add(account)
        db_session.commit()
        return account
    return _make


@pytest.fixture
def make_category(db_session):
    """Категория: без user_id системная"""
    def _make(name: str, user_id: int | None = None, category_type: CategoryType = CategoryType.BOTH) -> Category:
        category = Category(
            user_id=user_id,
            name=name,
            category_type=category_type,
            is_default=user_id is None,
        )
        db_session.add(category)
        db_session.commit()
        return category
    return _make
