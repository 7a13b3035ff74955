"""
Transaction API endpoints
"""
from datetime import date as date_type, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_db, get_publisher
from app.application.ocr import SendImageUseCase
from app.application.statistics import TransactionStatisticsService
from app.application.transactions import (
    CreateTransactionUseCase,
    DeleteTransactionUseCase,
    TransactionQueryService,
    UpdateTransactionUseCase,
)
from app.config import get_settings
from app.domain.statistics import StatisticsReport
from app.domain.transaction import TransactionDraft, TransactionPatch, TransactionType
from app.infrastructure.db.models import Transaction
from app.infrastructure.messaging.publisher import MessagePublisher
from app.utils.validation import parse_positive_amount


router = APIRouter(prefix="/api/v1/users/{user_id}/transactions", tags=["transactions"])


# === Request/Response models ===

class TransactionCreateRequest(ApiModel):
    type: TransactionType
    account_id: int
    transfer_account_id: int | None = None
    category_id: int | None = None
    amount: str
    description: str | None = None
    date: date_type

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v) -> str:
        """Сумма > 0, точка/запятая, макс 2 знака"""
        return str(parse_positive_amount(v))


class TransactionUpdateRequest(ApiModel):
    """Все поля опциональны; применяются только переданные"""
    type: TransactionType | None = None
    account_id: int | None = None
    transfer_account_id: int | None = None
    category_id: int | None = None
    amount: str | None = None
    description: str | None = None
    date: date_type | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def validate_amount(cls, v):
        if v is None:
            return None
        return str(parse_positive_amount(v))


class TransactionResponse(ApiModel):
    id: int
    type: TransactionType
    account_id: int
    transfer_account_id: int | None
    category_id: int | None
    category_name: str | None
    amount: str
    description: str | None
    date: date_type
    created_at: datetime | None
    updated_at: datetime | None


class CategoryTimeSeriesResponse(ApiModel):
    category_name: str
    time_series: dict[str, str]


class MaxExpensePerDayResponse(ApiModel):
    date: date_type
    amount: str


class MaxExpensePerCategoryResponse(ApiModel):
    category_name: str
    amount: str


class StatisticsResponse(ApiModel):
    expenses_by_category: dict[str, str]
    income_by_category: dict[str, str]
    monthly_expenses: dict[str, str]
    monthly_income: dict[str, str]
    avg_expenses_by_category: list[CategoryTimeSeriesResponse]
    avg_income_by_category: list[CategoryTimeSeriesResponse]
    max_expense_per_day: MaxExpensePerDayResponse | None
    max_expense_per_category: MaxExpensePerCategoryResponse | None
    average_expense: str
    average_income: str
    start_date: date_type
    end_date: date_type


class PhotoAcceptedResponse(ApiModel):
    task_id: str
    message: str


# === Helper functions ===

def _to_response(txn: Transaction) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        type=txn.type,
        account_id=txn.account_id,
        transfer_account_id=txn.transfer_account_id,
        category_id=txn.category_id,
        category_name=txn.category.name if txn.category is not None else None,
        amount=str(txn.amount),
        description=txn.description,
        date=txn.date,
        created_at=txn.created_at,
        updated_at=txn.updated_at,
    )


def _money_map(values: dict[str, Decimal]) -> dict[str, str]:
    return {key: str(amount) for key, amount in values.items()}


def _statistics_response(report: StatisticsReport) -> StatisticsResponse:
    def series(items):
        return [
            CategoryTimeSeriesResponse(category_name=s.category_name, time_series=_money_map(s.time_series))
            for s in items
        ]

    max_day = report.max_expense_per_day
    max_category = report.max_expense_per_category
    return StatisticsResponse(
        expenses_by_category=_money_map(report.expenses_by_category),
        income_by_category=_money_map(report.income_by_category),
        monthly_expenses=_money_map(report.monthly_expenses),
        monthly_income=_money_map(report.monthly_income),
        avg_expenses_by_category=series(report.avg_expenses_by_category),
        avg_income_by_category=series(report.avg_income_by_category),
        max_expense_per_day=(
            MaxExpensePerDayResponse(date=max_day.date, amount=str(max_day.amount)) if max_day else None
        ),
        max_expense_per_category=(
            MaxExpensePerCategoryResponse(category_name=max_category.category_name, amount=str(max_category.amount))
            if max_category else None
        ),
        average_expense=str(report.average_expense),
        average_income=str(report.average_income),
        start_date=report.start_date,
        end_date=report.end_date,
    )


# === Endpoints ===

@router.get("", response_model=list[TransactionResponse])
def list_transactions(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Все операции пользователя (новые первыми)"""
    transactions = TransactionQueryService(db).list(user_id)
    return [_to_response(t) for t in transactions]


@router.get("/filter", response_model=list[TransactionResponse])
def filter_transactions(
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
    transaction_type: TransactionType | None = Query(None, alias="type"),
    account_id: int | None = Query(None, alias="accountId"),
    category_id: int | None = Query(None, alias="categoryId"),
    date_from: date_type | None = Query(None, alias="dateFrom"),
    date_to: date_type | None = Query(None, alias="dateTo"),
):
    """Фильтр операций (границы дат включительно)"""
    transactions = TransactionQueryService(db).filter(
        user_id,
        transaction_type=transaction_type,
        account_id=account_id,
        category_id=category_id,
        date_from=date_from,
        date_to=date_to,
    )
    return [_to_response(t) for t in transactions]


@router.get("/statistics", response_model=StatisticsResponse)
def get_statistics(
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
    months: int = Query(1),
):
    """Статистика за 1/3/6/12 месяцев"""
    report = TransactionStatisticsService(db).execute(user_id, months)
    return _statistics_response(report)


@router.post("/photo", response_model=PhotoAcceptedResponse)
def upload_photo(
    user_id: int = Depends(authorize_user),
    account_id: int = Query(..., alias="accountId"),
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    publisher: MessagePublisher = Depends(get_publisher),
):
    """Фото чека: операции будут созданы после распознавания"""
    data = file.file.read()
    use_case = SendImageUseCase(db, publisher, get_settings().RABBIT_QUEUE_IMAGE)
    task_id = use_case.execute(
        user_id=user_id,
        account_id=account_id,
        filename=file.filename,
        content_type=file.content_type,
        data=data,
    )
    return PhotoAcceptedResponse(task_id=str(task_id), message="Image accepted for processing")


@router.get("/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return _to_response(TransactionQueryService(db).get(user_id, transaction_id))


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
def create_transaction(
    req: TransactionCreateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    """Создать операцию (INCOME/EXPENSE/TRANSFER)"""
    draft = TransactionDraft(
        type=req.type,
        account_id=req.account_id,
        transfer_account_id=req.transfer_account_id,
        category_id=req.category_id,
        amount=Decimal(req.amount),
        description=req.description,
        date=req.date,
    )
    txn = CreateTransactionUseCase(db).execute(user_id, draft)
    return _to_response(txn)


@router.put("/{transaction_id}", response_model=TransactionResponse)
def update_transaction(
    transaction_id: int,
    req: TransactionUpdateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    """Изменить операцию (только переданные поля)"""
    values = req.model_dump(exclude_unset=True)
    if values.get("amount") is not None:
        values["amount"] = Decimal(values["amount"])
    txn = UpdateTransactionUseCase(db).execute(user_id, transaction_id, TransactionPatch(values))
    return _to_response(txn)


@router.delete("/{transaction_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_transaction(transaction_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    DeleteTransactionUseCase(db).execute(user_id, transaction_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
