"""
Reminder API endpoints
"""
from datetime import date as date_type, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_db
from app.application.reminders import (
    CreateReminderUseCase,
    DeleteReminderUseCase,
    ReminderDraft,
    ReminderQueryService,
    UpdateReminderUseCase,
)
from app.config import get_settings
from app.domain.reminder import DayOfWeek, RecurrenceType
from app.infrastructure.db.models import Reminder
from app.utils.validation import parse_positive_amount


router = APIRouter(prefix="/api/v1/users/{user_id}/reminders", tags=["reminders"])


# === Request/Response models ===

class ReminderCreateRequest(ApiModel):
    title: str
    description: str | None = None
    amount: str
    account_id: int | None = None
    recurrence_type: RecurrenceType
    weekly_day_of_week: DayOfWeek | None = None
    monthly_day_of_month: int | None = None
    monthly_use_last_day: bool | None = None
    is_active: bool | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        return str(parse_positive_amount(v))


class ReminderUpdateRequest(ApiModel):
    title: str | None = None
    description: str | None = None
    amount: str | None = None
    account_id: int | None = None
    recurrence_type: RecurrenceType | None = None
    weekly_day_of_week: DayOfWeek | None = None
    monthly_day_of_month: int | None = None
    monthly_use_last_day: bool | None = None
    is_active: bool | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        if v is None:
            return None
        return str(parse_positive_amount(v))


class ReminderResponse(ApiModel):
    id: int
    account_id: int | None
    title: str
    description: str | None
    amount: str
    recurrence_type: RecurrenceType
    weekly_day_of_week: DayOfWeek | None
    monthly_day_of_month: int | None
    monthly_use_last_day: bool
    is_active: bool
    next_date: date_type | None = None
    created_at: datetime | None
    updated_at: datetime | None


def _to_response(reminder: Reminder, next_date: date_type | None = None) -> ReminderResponse:
    return ReminderResponse(
        id=reminder.id,
        account_id=reminder.account_id,
        title=reminder.title,
        description=reminder.description,
        amount=str(reminder.amount),
        recurrence_type=reminder.recurrence_type,
        weekly_day_of_week=reminder.weekly_day_of_week,
        monthly_day_of_month=reminder.monthly_day_of_month,
        monthly_use_last_day=reminder.monthly_use_last_day,
        is_active=reminder.is_active,
        next_date=next_date,
        created_at=reminder.created_at,
        updated_at=reminder.updated_at,
    )


# === Endpoints ===

@router.get("", response_model=list[ReminderResponse])
def list_reminders(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return [_to_response(r) for r in ReminderQueryService(db).list(user_id)]


@router.get("/upcoming", response_model=list[ReminderResponse])
def list_upcoming_reminders(
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
    days: int | None = Query(None, ge=0, le=366),
):
    """Напоминания, срабатывающие в ближайшие days дней"""
    horizon = days if days is not None else get_settings().UPCOMING_REMINDER_DAYS
    upcoming = ReminderQueryService(db).upcoming(user_id, horizon)
    return [_to_response(item.reminder, item.next_date) for item in upcoming]


@router.get("/{reminder_id}", response_model=ReminderResponse)
def get_reminder(reminder_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return _to_response(ReminderQueryService(db).get(user_id, reminder_id))


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
def create_reminder(
    req: ReminderCreateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    draft = ReminderDraft(
        title=req.title,
        description=req.description,
        amount=Decimal(req.amount),
        account_id=req.account_id,
        recurrence_type=req.recurrence_type,
        weekly_day_of_week=req.weekly_day_of_week,
        monthly_day_of_month=req.monthly_day_of_month,
        monthly_use_last_day=req.monthly_use_last_day,
        is_active=req.is_active,
    )
    return _to_response(CreateReminderUseCase(db).execute(user_id, draft))


@router.put("/{reminder_id}", response_model=ReminderResponse)
def update_reminder(
    reminder_id: int,
    req: ReminderUpdateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("amount") is not None:
        changes["amount"] = Decimal(changes["amount"])
    return _to_response(UpdateReminderUseCase(db).execute(user_id, reminder_id, changes))


@router.delete("/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_reminder(reminder_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    DeleteReminderUseCase(db).execute(user_id, reminder_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
