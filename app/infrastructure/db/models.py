"""
SQLAlchemy ORM models
"""
import uuid
from decimal import Decimal
from datetime import date as date_type, datetime

from sqlalchemy import (
    BigInteger, Boolean, CheckConstraint, Date, Enum, ForeignKey, Index, Integer, Numeric, String, Text,
    TIMESTAMP, Uuid, func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.domain.account import AccountType, Currency
from app.domain.category import CategoryType
from app.domain.reminder import DayOfWeek, RecurrenceType
from app.domain.transaction import TransactionType
from app.infrastructure.db.session import Base

# BIGINT в PostgreSQL, INTEGER в SQLite (иначе не работает autoincrement)
BigId = BigInteger().with_variant(Integer(), "sqlite")

MONEY = Numeric(precision=19, scale=2)


def _enum(enum_cls) -> Enum:
    return Enum(enum_cls, native_enum=False, length=20, validate_strings=True)


class User(Base):
    """
    Пользователь. Создаётся при первом OAuth2-входе или явной регистрации.
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    surname: Mapped[str] = mapped_column(String(255), nullable=False)
    birthday: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # External identity (OAuth2 provider + subject)
    provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    provider_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_premium: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("ix_users_provider_identity", "provider", "provider_id"),
    )


class Account(Base):
    """
    Счёт пользователя. balance меняется только через ledger (app.application.transactions).
    """
    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    account_type: Mapped[AccountType] = mapped_column(_enum(AccountType), nullable=False)
    currency: Mapped[Currency] = mapped_column(_enum(Currency), nullable=False, default=Currency.RUB)
    balance: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"), server_default="0")
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    credit_limit: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=Decimal("0"), server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    include_in_total: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class Category(Base):
    """
    Категория. user_id = NULL и is_default = True: системная категория, видна всем.
    """
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True
    )

    category_type: Mapped[CategoryType] = mapped_column(
        _enum(CategoryType), nullable=False, default=CategoryType.BOTH
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    icon: Mapped[str | None] = mapped_column(String(255), nullable=True)
    color: Mapped[str | None] = mapped_column(String(32), nullable=True)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class Transaction(Base):
    """
    Операция (INCOME / EXPENSE / TRANSFER).

    transfer_account_id заполнен тогда и только тогда, когда type = TRANSFER.
    """
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    type: Mapped[TransactionType] = mapped_column(_enum(TransactionType), nullable=False, index=True)
    category_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    account_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    transfer_account_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=True, index=True
    )

    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    category: Mapped[Category | None] = relationship(lazy="joined")

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "date"),
        CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),
    )


class Reminder(Base):
    """
    Напоминание о регулярном платеже
    """
    __tablename__ = "reminders"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int | None] = mapped_column(
        BigId, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    recurrence_type: Mapped[RecurrenceType] = mapped_column(_enum(RecurrenceType), nullable=False)
    weekly_day_of_week: Mapped[DayOfWeek | None] = mapped_column(_enum(DayOfWeek), nullable=True)
    monthly_day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    monthly_use_last_day: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


class OcrTask(Base):
    """
    Корреляция OCR-задачи: task_id -> (пользователь, счёт для создаваемых операций)
    """
    __tablename__ = "ocr_tasks"

    task_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class AdviceTask(Base):
    """
    Корреляция запроса совета: живёт от отправки задачи до получения результата
    """
    __tablename__ = "advice_tasks"

    task_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal: Mapped[str] = mapped_column(String(500), nullable=False)
    target_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )


class Advice(Base):
    """
    Финансовый совет, полученный от LLM-воркера
    """
    __tablename__ = "advices"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    goal: Mapped[str] = mapped_column(String(500), nullable=False)
    target_date: Mapped[date_type | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    items: Mapped[list["AdviceItem"]] = relationship(
        back_populates="advice",
        cascade="all, delete-orphan",
        order_by="AdviceItem.item_order",
        lazy="selectin",
    )


class AdviceItem(Base):
    """Пункт совета (порядок задаётся item_order)"""
    __tablename__ = "advice_items"

    id: Mapped[int] = mapped_column(BigId, primary_key=True, autoincrement=True)
    advice_id: Mapped[int] = mapped_column(
        BigId, ForeignKey("advices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_order: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    description: Mapped[str] = mapped_column(String(2000), nullable=False)

    advice: Mapped[Advice] = relationship(back_populates="items")
