"""
Transaction domain: типы операций и их влияние на балансы счетов

Операции:
- INCOME: доход, +amount на основной счёт
- EXPENSE: расход, -amount с основного счёта
- TRANSFER: перевод, -amount с основного счёта и +amount на transfer-счёт

Эффект операции: словарь {account_id: delta}. Применение прибавляет delta
к балансам, откат вычитает. Вся арифметика в Decimal.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum


class TransactionType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


def parse_transaction_type(value: str | None, default: TransactionType) -> TransactionType:
    """Разобрать тип без учёта регистра; пустое или неизвестное значение -> default."""
    if not value or not value.strip():
        return default
    try:
        return TransactionType(value.strip().upper())
    except ValueError:
        return default


def balance_effect(
    transaction_type: TransactionType,
    amount: Decimal,
    account_id: int,
    transfer_account_id: int | None,
) -> dict[int, Decimal]:
    """
    Влияние операции на балансы.

    Returns:
        {account_id: delta}
    """
    if transaction_type == TransactionType.INCOME:
        return {account_id: amount}
    if transaction_type == TransactionType.EXPENSE:
        return {account_id: -amount}
    if transaction_type == TransactionType.TRANSFER:
        if transfer_account_id is None:
            raise ValueError("TRANSFER requires transfer_account_id")
        return {account_id: -amount, transfer_account_id: amount}
    raise ValueError(f"Unknown transaction type: {transaction_type}")


def merge_effects(*effects: dict[int, Decimal]) -> dict[int, Decimal]:
    """Сложить несколько эффектов в один (по account_id)."""
    total: dict[int, Decimal] = {}
    for effect in effects:
        for account_id, delta in effect.items():
            total[account_id] = total.get(account_id, Decimal("0")) + delta
    return total


def negate_effect(effect: dict[int, Decimal]) -> dict[int, Decimal]:
    return {account_id: -delta for account_id, delta in effect.items()}


def requires_funds(transaction_type: TransactionType) -> bool:
    """EXPENSE и TRANSFER списывают с основного счёта; INCOME никогда не отклоняется."""
    return transaction_type in (TransactionType.EXPENSE, TransactionType.TRANSFER)


def transfer_error(
    transaction_type: TransactionType,
    account_id: int,
    transfer_account_id: int | None,
) -> str | None:
    """Проверка связки type/transfer_account_id. None если всё корректно."""
    if transaction_type == TransactionType.TRANSFER:
        if transfer_account_id is None:
            return "transfer_account_id is required for TRANSFER"
        if transfer_account_id == account_id:
            return "Source and target accounts must be different"
    return None


@dataclass
class TransactionDraft:
    """Данные для создания операции"""
    type: TransactionType
    account_id: int
    amount: Decimal
    date: date
    category_id: int | None = None
    transfer_account_id: int | None = None
    description: str | None = None


# Поля, которые можно передать в TransactionPatch
PATCHABLE_FIELDS = (
    "type", "account_id", "transfer_account_id", "category_id", "amount", "description", "date",
)


@dataclass
class TransactionPatch:
    """
    Частичное обновление операции.

    Применяются только поля, перечисленные в fields_set
    (это позволяет отличить "не передано" от явного None).
    """
    values: dict = field(default_factory=dict)

    def __post_init__(self):
        unknown = set(self.values) - set(PATCHABLE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown patch fields: {sorted(unknown)}")

    @property
    def fields_set(self) -> set[str]:
        return set(self.values)

    def get(self, name: str, current):
        return self.values[name] if name in self.values else current

    @classmethod
    def from_draft(cls, draft: TransactionDraft) -> "TransactionPatch":
        return cls({name: getattr(draft, name) for name in PATCHABLE_FIELDS})
