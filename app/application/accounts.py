"""
Account use cases - счета пользователя

Баланс задаётся только при создании (начальный остаток); дальше его меняет ledger.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.application.errors import BadRequestError, not_found
from app.application.transactions import apply_delta, lock_accounts
from app.application.users import require_user
from app.domain.account import AccountType, Currency, opening_balance_allowed, total_by_currency
from app.domain.transaction import balance_effect, merge_effects, negate_effect
from app.infrastructure.db.models import Account, Transaction
from app.utils.money import fits_money_column, quantize_money

logger = logging.getLogger(__name__)

_MAX_LOCK_ATTEMPTS = 3


class AccountValidationError(BadRequestError):
    """Ошибка валидации счёта"""
    pass


@dataclass
class AccountDraft:
    account_type: AccountType
    name: str
    currency: Currency | None = None
    balance: Decimal | None = None
    icon_url: str | None = None
    credit_limit: Decimal | None = None
    is_active: bool | None = None
    include_in_total: bool | None = None


@dataclass
class BalanceSummary:
    total_accounts: int
    balances_by_currency: dict[Currency, Decimal]


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise AccountValidationError("Название счёта не может быть пустым")
    if len(name) > 255:
        raise AccountValidationError("Название счёта слишком длинное")
    return name


def _clean_credit_limit(value) -> Decimal:
    limit = quantize_money(value if value is not None else Decimal("0"))
    if not fits_money_column(limit):
        raise AccountValidationError("Некорректный кредитный лимит")
    if limit < 0:
        raise AccountValidationError("Кредитный лимит не может быть отрицательным")
    return limit


class AccountQueryService:
    def __init__(self, db: Session):
        self.db = db

    def list(self, user_id: int) -> list[Account]:
        require_user(self.db, user_id)
        return self.db.query(Account).filter(Account.user_id == user_id).order_by(Account.id).all()

    def get(self, user_id: int, account_id: int) -> Account:
        require_user(self.db, user_id)
        account = self.db.query(Account).filter(
            Account.id == account_id,
            Account.user_id == user_id,
        ).first()
        if account is None:
            raise not_found("Account", account_id, user_id)
        return account

    def total_balance(self, user_id: int) -> BalanceSummary:
        """Сумма балансов по валютам (активные счета с include_in_total)"""
        accounts = self.list(user_id)
        counted = [a for a in accounts if a.is_active and a.include_in_total]
        return BalanceSummary(
            total_accounts=len(counted),
            balances_by_currency=total_by_currency(counted),
        )


class CreateAccountUseCase:
    """Use case: Создать счёт"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, draft: AccountDraft) -> Account:
        """
        Создать счёт

        Отрицательный начальный баланс разрешён только для CREDIT.
        """
        require_user(self.db, user_id)
        if draft.account_type is None:
            raise AccountValidationError("Тип счёта обязателен")

        balance = quantize_money(draft.balance if draft.balance is not None else Decimal("0"))
        if not fits_money_column(balance):
            raise AccountValidationError("Некорректный начальный баланс")
        if not opening_balance_allowed(draft.account_type, balance):
            raise AccountValidationError("Начальный баланс не может быть отрицательным")

        account = Account(
            user_id=user_id,
            account_type=draft.account_type,
            currency=draft.currency or Currency.RUB,
            balance=balance,
            name=_clean_name(draft.name),
            icon_url=draft.icon_url,
            credit_limit=_clean_credit_limit(draft.credit_limit),
            is_active=True if draft.is_active is None else draft.is_active,
            include_in_total=True if draft.include_in_total is None else draft.include_in_total,
        )
        self.db.add(account)
        self.db.commit()
        self.db.refresh(account)

        logger.info("Account %s created for user %s (%s)", account.id, user_id, account.currency.value)
        return account


class UpdateAccountUseCase:
    """Use case: Изменить атрибуты счёта (кроме баланса)"""

    UPDATABLE = ("account_type", "currency", "name", "icon_url", "credit_limit", "is_active", "include_in_total")

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, account_id: int, changes: dict) -> Account:
        if "balance" in changes:
            raise AccountValidationError("Баланс меняется только операциями")

        account = AccountQueryService(self.db).get(user_id, account_id)
        for field_name in self.UPDATABLE:
            if changes.get(field_name) is None:
                continue
            value = changes[field_name]
            if field_name == "name":
                value = _clean_name(value)
            elif field_name == "credit_limit":
                value = _clean_credit_limit(value)
            setattr(account, field_name, value)

        self.db.commit()
        self.db.refresh(account)
        return account


class DeleteAccountUseCase:
    """
    Use case: Удалить счёт

    Все операции, где счёт основной или transfer, удаляются; их эффект
    откатывается на оставшихся счетах-контрагентах (переводы).
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, account_id: int) -> None:
        try:
            removed = self._delete(user_id, account_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Account %s deleted by user %s (%d transactions removed)", account_id, user_id, removed)

    def _referencing(self, user_id: int, account_id: int) -> list[Transaction]:
        return self.db.query(Transaction).filter(
            Transaction.user_id == user_id,
            or_(Transaction.account_id == account_id, Transaction.transfer_account_id == account_id),
        ).all()

    def _delete(self, user_id: int, account_id: int) -> int:
        require_user(self.db, user_id)

        for _ in range(_MAX_LOCK_ATTEMPTS):
            transactions = self._referencing(user_id, account_id)
            wanted = {account_id}
            for txn in transactions:
                wanted.update({txn.account_id, txn.transfer_account_id})
            accounts = lock_accounts(self.db, user_id, wanted)

            # после блокировки набор операций мог измениться
            transactions = self._referencing(user_id, account_id)
            touched = {account_id}
            for txn in transactions:
                touched.update({txn.account_id, txn.transfer_account_id} - {None})
            if touched <= accounts.keys():
                break
        else:
            raise AccountValidationError(f"Account {account_id} is being modified concurrently")

        revert = merge_effects(*(
            negate_effect(balance_effect(t.type, t.amount, t.account_id, t.transfer_account_id))
            for t in transactions
        ))
        revert.pop(account_id, None)
        apply_delta(accounts, revert)

        for txn in transactions:
            self.db.delete(txn)
        self.db.flush()
        self.db.delete(accounts[account_id])
        self.db.flush()
        return len(transactions)
