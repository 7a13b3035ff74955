"""
Account domain: типы счетов и валюты
"""
from decimal import Decimal
from enum import Enum


class AccountType(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    SAVINGS = "SAVINGS"
    CREDIT = "CREDIT"
    INVESTMENT = "INVESTMENT"
    OTHER = "OTHER"


class Currency(str, Enum):
    RUB = "RUB"
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CNY = "CNY"
    JPY = "JPY"
    KZT = "KZT"
    BYN = "BYN"
    UAH = "UAH"


def opening_balance_allowed(account_type: AccountType, balance: Decimal) -> bool:
    """Отрицательный начальный баланс допустим только для кредитного счёта."""
    return balance >= 0 or account_type == AccountType.CREDIT


def total_by_currency(accounts) -> dict[Currency, Decimal]:
    """
    Суммировать балансы по валютам (без конвертации).

    Учитываются только активные счета с include_in_total.
    """
    totals: dict[Currency, Decimal] = {}
    for account in accounts:
        if not account.is_active or not account.include_in_total:
            continue
        totals[account.currency] = totals.get(account.currency, Decimal("0")) + account.balance
    return totals
