"""
Reminder use cases - напоминания о регулярных платежах
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation

from sqlalchemy.orm import Session

from app.application.errors import BadRequestError, not_found
from app.application.users import require_user
from app.domain.reminder import DayOfWeek, RecurrenceType, next_occurrence, recurrence_error
from app.infrastructure.db.models import Account, Reminder
from app.utils.clock import today as current_date
from app.utils.money import fits_money_column, quantize_money

logger = logging.getLogger(__name__)


class ReminderValidationError(BadRequestError):
    """Ошибка валидации напоминания"""
    pass


@dataclass
class ReminderDraft:
    title: str
    amount: Decimal
    recurrence_type: RecurrenceType
    description: str | None = None
    account_id: int | None = None
    weekly_day_of_week: DayOfWeek | None = None
    monthly_day_of_month: int | None = None
    monthly_use_last_day: bool | None = None
    is_active: bool | None = None


@dataclass
class UpcomingReminder:
    reminder: Reminder
    next_date: date


def _require_account(db: Session, user_id: int, account_id: int) -> Account:
    account = db.query(Account).filter(Account.id == account_id, Account.user_id == user_id).first()
    if account is None:
        raise not_found("Account", account_id, user_id)
    return account


def _clean_amount(amount) -> Decimal:
    if amount is None:
        raise ReminderValidationError("Сумма обязательна")
    try:
        amount = quantize_money(amount)
    except (InvalidOperation, ValueError):
        raise ReminderValidationError("Некорректная сумма")
    if not fits_money_column(amount):
        raise ReminderValidationError("Некорректная сумма")
    if amount <= 0:
        raise ReminderValidationError("Сумма должна быть больше нуля")
    return amount


def _clean_title(title: str | None) -> str:
    title = (title or "").strip()
    if not title:
        raise ReminderValidationError("Название не может быть пустым")
    return title[:255]


def _validate_recurrence(reminder: Reminder) -> None:
    error = recurrence_error(
        reminder.recurrence_type,
        reminder.weekly_day_of_week,
        reminder.monthly_day_of_month,
        reminder.monthly_use_last_day,
    )
    if error:
        raise ReminderValidationError(error)


class ReminderQueryService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, user_id: int) -> list[Reminder]:
        require_user(self.db, user_id)
        return self.db.query(Reminder).filter(Reminder.user_id == user_id).order_by(Reminder.id).all()

    def get(self, user_id: int, reminder_id: int) -> Reminder:
        require_user(self.db, user_id)
        reminder = self.db.query(Reminder).filter(
            Reminder.id == reminder_id,
            Reminder.user_id == user_id,
        ).first()
        if reminder is None:
            raise not_found("Reminder", reminder_id, user_id)
        return reminder

    def upcoming(self, user_id: int, days: int = 5, today: date | None = None) -> list[UpcomingReminder]:
        """
        Активные напоминания, срабатывающие в [today, today + days]

        Returns:
            список, отсортированный по ближайшей дате
        """
        if days < 0:
            raise ReminderValidationError("days не может быть отрицательным")
        require_user(self.db, user_id)

        start = today or current_date()
        end = start + timedelta(days=days)

        active = self.db.query(Reminder).filter(
            Reminder.user_id == user_id,
            Reminder.is_active == True,  # noqa: E712
        ).order_by(Reminder.id).all()

        result = []
        for reminder in active:
            next_date = next_occurrence(
                reminder.recurrence_type,
                reminder.weekly_day_of_week,
                reminder.monthly_day_of_month,
                reminder.monthly_use_last_day,
                start,
                end,
            )
            if next_date is not None:
                result.append(UpcomingReminder(reminder=reminder, next_date=next_date))

        result.sort(key=lambda item: (item.next_date, item.reminder.id))
        return result


class CreateReminderUseCase:
    """Use case: Создать напоминание"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, draft: ReminderDraft) -> Reminder:
        require_user(self.db, user_id)
        if draft.account_id is not None:
            _require_account(self.db, user_id, draft.account_id)
        if draft.recurrence_type is None:
            raise ReminderValidationError("Периодичность обязательна")

        reminder = Reminder(
            user_id=user_id,
            account_id=draft.account_id,
            title=_clean_title(draft.title),
            description=draft.description,
            amount=_clean_amount(draft.amount),
            recurrence_type=draft.recurrence_type,
            weekly_day_of_week=draft.weekly_day_of_week,
            monthly_day_of_month=draft.monthly_day_of_month,
            monthly_use_last_day=bool(draft.monthly_use_last_day),
            is_active=True if draft.is_active is None else draft.is_active,
        )
        _validate_recurrence(reminder)

        self.db.add(reminder)
        self.db.commit()
        self.db.refresh(reminder)
        return reminder


class UpdateReminderUseCase:
    """
    Use case: Изменить напоминание

    Переданные поля применяются, затем периодичность проверяется целиком.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, reminder_id: int, changes: dict) -> Reminder:
        reminder = ReminderQueryService(self.db).get(user_id, reminder_id)
        try:
            if changes.get("title") is not None:
                reminder.title = _clean_title(changes["title"])
            if changes.get("description") is not None:
                reminder.description = changes["description"]
            if changes.get("amount") is not None:
                reminder.amount = _clean_amount(changes["amount"])
            if changes.get("is_active") is not None:
                reminder.is_active = changes["is_active"]
            if changes.get("account_id") is not None:
                reminder.account_id = _require_account(self.db, user_id, changes["account_id"]).id

            for field_name in ("recurrence_type", "weekly_day_of_week", "monthly_day_of_month", "monthly_use_last_day"):
                if changes.get(field_name) is not None:
                    setattr(reminder, field_name, changes[field_name])

            _validate_recurrence(reminder)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(reminder)
        return reminder


class DeleteReminderUseCase:
    """Use case: Удалить напоминание"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, reminder_id: int) -> None:
        reminder = ReminderQueryService(self.db).get(user_id, reminder_id)
        self.db.delete(reminder)
        self.db.commit()
        logger.info("Reminder %s deleted by user %s", reminder_id, user_id)
