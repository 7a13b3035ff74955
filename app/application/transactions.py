"""
Transaction use cases - ledger: операции и балансы счетов

Ledger: единственное место, где меняется Account.balance после создания счёта.
Каждая операция create/update/delete выполняется в одной транзакции БД:
1. блокируем строки затронутых счетов (SELECT ... FOR UPDATE) по возрастанию id
2. считаем откат старого эффекта и новый эффект (Decimal)
3. проверяем достаточность средств на балансе после отката
4. применяем суммарную дельту и пишем строку операции
"""
from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.application.categories import get_visible_category
from app.application.errors import BadRequestError, not_found
from app.application.users import require_user
from app.domain.transaction import (
    TransactionDraft,
    TransactionPatch,
    TransactionType,
    balance_effect,
    merge_effects,
    negate_effect,
    requires_funds,
    transfer_error,
)
from app.infrastructure.db.models import Account, Transaction
from app.utils.money import MAX_AMOUNT, fits_money_column, format_money, quantize_money

logger = logging.getLogger(__name__)

# Сколько раз перечитываем операцию, если её счета сменились, пока мы ждали блокировку
_MAX_LOCK_ATTEMPTS = 3


class TransactionValidationError(BadRequestError):
    """Ошибка валидации транзакции"""
    pass


def account_lock_query(db: Session, user_id: int, ids: list[int]):
    """SELECT ... FOR UPDATE по счетам пользователя, строки блокируются по возрастанию id"""
    return (
        db.query(Account)
        .filter(Account.id.in_(ids), Account.user_id == user_id)
        .order_by(Account.id)
        .with_for_update()
        .populate_existing()
    )


def lock_accounts(db: Session, user_id: int, account_ids) -> dict[int, Account]:
    """
    Заблокировать счета пользователя в порядке возрастания id

    populate_existing: балансы перечитываются из БД после получения блокировки.

    Raises:
        NotFoundError: какого-то счёта нет или он чужой
    """
    ids = sorted({account_id for account_id in account_ids if account_id is not None})
    if not ids:
        return {}

    rows = account_lock_query(db, user_id, ids).all()
    accounts = {account.id: account for account in rows}
    for account_id in ids:
        if account_id not in accounts:
            raise not_found("Account", account_id, user_id)
    return accounts


def apply_delta(accounts: dict[int, Account], delta: dict[int, Decimal]) -> None:
    """
    Прибавить delta к балансам

    Raises:
        TransactionValidationError: баланс вышел бы за MAX_AMOUNT (счета не меняются)
    """
    balances = {
        account_id: accounts[account_id].balance + change
        for account_id, change in delta.items()
        if change
    }
    for account_id, balance in balances.items():
        if not fits_money_column(balance):
            raise TransactionValidationError(
                f"Balance of account {account_id} would exceed {MAX_AMOUNT}"
            )
    for account_id, balance in balances.items():
        accounts[account_id].balance = balance


def _effect_of(txn: Transaction) -> dict[int, Decimal]:
    return balance_effect(txn.type, txn.amount, txn.account_id, txn.transfer_account_id)


def _clean_amount(amount) -> Decimal:
    if amount is None:
        raise TransactionValidationError("Сумма операции обязательна")
    try:
        amount = quantize_money(amount)
    except (InvalidOperation, ValueError):
        raise TransactionValidationError(f"Некорректная сумма операции: {amount}")
    if not fits_money_column(amount):
        raise TransactionValidationError(f"Сумма операции вне допустимого диапазона (max {MAX_AMOUNT})")
    if amount <= 0:
        raise TransactionValidationError("Сумма операции должна быть больше нуля")
    return amount


def _check_funds(
    accounts: dict[int, Account],
    revert: dict[int, Decimal],
    transaction_type: TransactionType,
    account_id: int,
    amount: Decimal,
) -> None:
    """Достаточно ли средств на основном счёте после отката старого эффекта"""
    if not requires_funds(transaction_type):
        return
    available = accounts[account_id].balance + revert.get(account_id, Decimal("0"))
    if available < amount:
        raise TransactionValidationError(
            f"Insufficient funds on account {account_id}: "
            f"available {available}, required {amount}"
        )


def _check_transfer(transaction_type: TransactionType, account_id: int, transfer_account_id: int | None) -> None:
    error = transfer_error(transaction_type, account_id, transfer_account_id)
    if error:
        raise TransactionValidationError(error)


class _LedgerUseCase:
    def __init__(self, db: Session):
        self.db = db

    def _finish(self, commit: bool) -> None:
        if commit:
            self.db.commit()
        else:
            self.db.flush()

    def _load(self, user_id: int, transaction_id: int) -> Transaction:
        txn = self.db.query(Transaction).filter(
            Transaction.id == transaction_id,
            Transaction.user_id == user_id,
        ).first()
        if txn is None:
            raise not_found("Transaction", transaction_id, user_id)
        return txn

    def _load_locked(self, user_id: int, transaction_id: int, extra_account_ids=()) -> tuple[Transaction, dict[int, Account]]:
        """
        Операция + заблокированные счета (её собственные и extra_account_ids)

        Счета операции могли смениться, пока мы ждали блокировку: тогда повторяем.
        """
        for _ in range(_MAX_LOCK_ATTEMPTS):
            txn = self._load(user_id, transaction_id)
            own_ids = {txn.account_id, txn.transfer_account_id}
            accounts = lock_accounts(self.db, user_id, own_ids | set(extra_account_ids))

            self.db.refresh(txn)
            if {txn.account_id, txn.transfer_account_id} - {None} <= accounts.keys():
                return txn, accounts
            logger.warning("Transaction %s changed accounts while locking, retrying", transaction_id)

        raise TransactionValidationError(f"Transaction {transaction_id} is being modified concurrently")


class CreateTransactionUseCase(_LedgerUseCase):
    """
    Use case: Создать операцию (INCOME/EXPENSE/TRANSFER) и применить её к балансам
    """

    def execute(self, user_id: int, draft: TransactionDraft, commit: bool = True) -> Transaction:
        """
        Args:
            user_id: владелец
            draft: данные операции
            commit: False: только flush (вызывающий управляет транзакцией/savepoint'ом)

        Returns:
            созданная операция

        Raises:
            NotFoundError: пользователь, счёт или категория не найдены
            TransactionValidationError: сумма, TRANSFER, недостаточно средств
        """
        try:
            txn = self._create(user_id, draft)
            self._finish(commit)
        except Exception:
            if commit:
                self.db.rollback()
            raise

        logger.info(
            "Transaction %s created: %s %s account=%s transfer=%s user=%s",
            txn.id, txn.type.value, format_money(txn.amount), txn.account_id,
            txn.transfer_account_id, user_id,
        )
        return txn

    def _create(self, user_id: int, draft: TransactionDraft) -> Transaction:
        require_user(self.db, user_id)
        if draft.type is None:
            raise TransactionValidationError("Тип операции обязателен")
        if draft.account_id is None:
            raise TransactionValidationError("account_id обязателен")
        if draft.date is None:
            raise TransactionValidationError("Дата операции обязательна")
        amount = _clean_amount(draft.amount)

        transfer_account_id = draft.transfer_account_id if draft.type == TransactionType.TRANSFER else None
        _check_transfer(draft.type, draft.account_id, transfer_account_id)

        accounts = lock_accounts(self.db, user_id, [draft.account_id, transfer_account_id])
        if draft.category_id is not None:
            get_visible_category(self.db, user_id, draft.category_id)

        _check_funds(accounts, {}, draft.type, draft.account_id, amount)

        txn = Transaction(
            user_id=user_id,
            type=draft.type,
            account_id=draft.account_id,
            transfer_account_id=transfer_account_id,
            category_id=draft.category_id,
            amount=amount,
            description=draft.description,
            date=draft.date,
        )
        self.db.add(txn)
        apply_delta(accounts, balance_effect(draft.type, amount, draft.account_id, transfer_account_id))
        self.db.flush()
        return txn


class UpdateTransactionUseCase(_LedgerUseCase):
    """
    Use case: Изменить операцию

    Старый эффект откатывается по старым полям (в т.ч. старому типу),
    новый применяется по полям после патча. TRANSFER -> не-TRANSFER
    неявно очищает transfer_account_id.
    """

    def execute(self, user_id: int, transaction_id: int, patch: TransactionPatch, commit: bool = True) -> Transaction:
        try:
            txn = self._update(user_id, transaction_id, patch)
            self._finish(commit)
        except Exception:
            if commit:
                self.db.rollback()
            raise

        logger.info("Transaction %s updated (%s)", transaction_id, ", ".join(sorted(patch.fields_set)) or "no changes")
        return txn

    def _update(self, user_id: int, transaction_id: int, patch: TransactionPatch) -> Transaction:
        extra_ids = [patch.values.get("account_id"), patch.values.get("transfer_account_id")]
        txn, accounts = self._load_locked(user_id, transaction_id, extra_ids)

        new_type = patch.get("type", txn.type)
        new_account_id = patch.get("account_id", txn.account_id)
        new_transfer_id = patch.get("transfer_account_id", txn.transfer_account_id)
        new_date: date = patch.get("date", txn.date)

        if new_type is None:
            raise TransactionValidationError("Тип операции обязателен")
        if new_account_id is None:
            raise TransactionValidationError("account_id обязателен")
        if new_date is None:
            raise TransactionValidationError("Дата операции обязательна")
        new_amount = _clean_amount(patch.get("amount", txn.amount))

        if new_type != TransactionType.TRANSFER:
            new_transfer_id = None
        _check_transfer(new_type, new_account_id, new_transfer_id)

        if "category_id" in patch.fields_set and patch.values["category_id"] is not None:
            get_visible_category(self.db, user_id, patch.values["category_id"])

        old_effect = _effect_of(txn)
        new_effect = balance_effect(new_type, new_amount, new_account_id, new_transfer_id)
        revert = negate_effect(old_effect)

        # Изменение только даты/описания/категории балансы не трогает
        if new_effect != old_effect:
            _check_funds(accounts, revert, new_type, new_account_id, new_amount)
            apply_delta(accounts, merge_effects(revert, new_effect))

        txn.type = new_type
        txn.account_id = new_account_id
        txn.transfer_account_id = new_transfer_id
        txn.amount = new_amount
        txn.date = new_date
        if "category_id" in patch.fields_set:
            txn.category_id = patch.values["category_id"]
        if "description" in patch.fields_set:
            txn.description = patch.values["description"]

        self.db.flush()
        # category (lazy="joined") должна соответствовать новому category_id
        self.db.refresh(txn)
        return txn


class DeleteTransactionUseCase(_LedgerUseCase):
    """Use case: Удалить операцию и откатить её эффект"""

    def execute(self, user_id: int, transaction_id: int, commit: bool = True) -> None:
        try:
            txn, accounts = self._load_locked(user_id, transaction_id)
            apply_delta(accounts, negate_effect(_effect_of(txn)))
            self.db.delete(txn)
            self._finish(commit)
        except Exception:
            if commit:
                self.db.rollback()
            raise

        logger.info("Transaction %s deleted by user %s", transaction_id, user_id)


class TransactionQueryService:
    """
    Чтение операций

    Порядок: date DESC, created_at DESC, id DESC.
    """

    def __init__(self, db: Session):
        self.db = db

    def _ordered(self, query):
        return query.order_by(Transaction.date.desc(), Transaction.created_at.desc(), Transaction.id.desc())

    def list(self, user_id: int) -> list[Transaction]:
        require_user(self.db, user_id)
        return self._ordered(self.db.query(Transaction).filter(Transaction.user_id == user_id)).all()

    def get(self, user_id: int, transaction_id: int) -> Transaction:
        txn = self.db.query(Transaction).filter(
            Transaction.id == transaction_id,
            Transaction.user_id == user_id,
        ).first()
        if txn is None:
            raise not_found("Transaction", transaction_id, user_id)
        return txn

    def filter(
        self,
        user_id: int,
        transaction_type: TransactionType | None = None,
        account_id: int | None = None,
        category_id: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Transaction]:
        """
        Фильтр операций; отсутствующий параметр не ограничивает выборку.

        account_id совпадает и с основным, и с transfer-счётом.
        date_from / date_to включительно.
        """
        require_user(self.db, user_id)
        query = self.db.query(Transaction).filter(Transaction.user_id == user_id)
        if transaction_type is not None:
            query = query.filter(Transaction.type == transaction_type)
        if account_id is not None:
            query = query.filter(or_(
                Transaction.account_id == account_id,
                Transaction.transfer_account_id == account_id,
            ))
        if category_id is not None:
            query = query.filter(Transaction.category_id == category_id)
        if date_from is not None:
            query = query.filter(Transaction.date >= date_from)
        if date_to is not None:
            query = query.filter(Transaction.date <= date_to)
        return self._ordered(query).all()
