"""
Account API endpoints
"""
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Response, status
from pydantic import field_validator
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_db
from app.application.accounts import (
    AccountDraft,
    AccountQueryService,
    CreateAccountUseCase,
    DeleteAccountUseCase,
    UpdateAccountUseCase,
)
from app.domain.account import AccountType, Currency
from app.infrastructure.db.models import Account
from app.utils.validation import parse_amount


router = APIRouter(prefix="/api/v1/users/{user_id}/accounts", tags=["accounts"])


# === Request/Response models ===

class AccountCreateRequest(ApiModel):
    account_type: AccountType
    name: str
    currency: Currency = Currency.RUB
    balance: str = "0"  # Начальный баланс (отрицательный только для CREDIT)
    icon_url: str | None = None
    credit_limit: str = "0"
    is_active: bool = True
    include_in_total: bool = True

    @field_validator("balance", mode="before")
    @classmethod
    def validate_balance(cls, v) -> str:
        return str(parse_amount(v, allow_negative=True))

    @field_validator("credit_limit", mode="before")
    @classmethod
    def validate_credit_limit(cls, v) -> str:
        return str(parse_amount(v))


class AccountUpdateRequest(ApiModel):
    """Баланс здесь не меняется: только через операции"""
    account_type: AccountType | None = None
    name: str | None = None
    currency: Currency | None = None
    icon_url: str | None = None
    credit_limit: str | None = None
    is_active: bool | None = None
    include_in_total: bool | None = None

    @field_validator("credit_limit", mode="before")
    @classmethod
    def validate_credit_limit(cls, v):
        if v is None:
            return None
        return str(parse_amount(v))


class AccountResponse(ApiModel):
    id: int
    account_type: AccountType
    currency: Currency
    balance: str  # Decimal as string
    name: str
    icon_url: str | None
    credit_limit: str
    is_active: bool
    include_in_total: bool
    created_at: datetime | None
    updated_at: datetime | None


class AccountBalanceResponse(ApiModel):
    total_accounts: int
    balances_by_currency: dict[Currency, str]


def _to_response(account: Account) -> AccountResponse:
    return AccountResponse(
        id=account.id,
        account_type=account.account_type,
        currency=account.currency,
        balance=str(account.balance),
        name=account.name,
        icon_url=account.icon_url,
        credit_limit=str(account.credit_limit),
        is_active=account.is_active,
        include_in_total=account.include_in_total,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


# === Endpoints ===

@router.get("", response_model=list[AccountResponse])
def list_accounts(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Список счетов пользователя"""
    return [_to_response(a) for a in AccountQueryService(db).list(user_id)]


@router.get("/balance", response_model=AccountBalanceResponse)
def get_total_balance(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Сумма балансов по валютам (без конвертации)"""
    summary = AccountQueryService(db).total_balance(user_id)
    return AccountBalanceResponse(
        total_accounts=summary.total_accounts,
        balances_by_currency={c: str(v) for c, v in summary.balances_by_currency.items()},
    )


@router.get("/{account_id}", response_model=AccountResponse)
def get_account(account_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return _to_response(AccountQueryService(db).get(user_id, account_id))


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    req: AccountCreateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    """Создать счёт"""
    draft = AccountDraft(
        account_type=req.account_type,
        name=req.name,
        currency=req.currency,
        balance=Decimal(req.balance),
        icon_url=req.icon_url,
        credit_limit=Decimal(req.credit_limit),
        is_active=req.is_active,
        include_in_total=req.include_in_total,
    )
    return _to_response(CreateAccountUseCase(db).execute(user_id, draft))


@router.put("/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    req: AccountUpdateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    changes = req.model_dump(exclude_unset=True)
    if changes.get("credit_limit") is not None:
        changes["credit_limit"] = Decimal(changes["credit_limit"])
    return _to_response(UpdateAccountUseCase(db).execute(user_id, account_id, changes))


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(account_id: int, user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    """Удалить счёт вместе с его операциями"""
    DeleteAccountUseCase(db).execute(user_id, account_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
