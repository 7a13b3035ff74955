"""
Unified money arithmetic for the whole project.

Все суммы: Decimal с 2 знаками после запятой, округление ROUND_HALF_UP.

Usage:
    from app.utils.money import quantize_money, mean_money

    quantize_money(Decimal("10.005"))              -> Decimal("10.01")
    mean_money([Decimal("100"), Decimal("150")])   -> Decimal("125.00")
    mean_money([])                                 -> Decimal("0.00")
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Numeric(19, 2): 17 знаков до запятой
MAX_AMOUNT = Decimal("99999999999999999.99")


def quantize_money(amount) -> Decimal:
    """Привести сумму к 2 знакам после запятой (half-up)."""
    if not isinstance(amount, Decimal):
        amount = Decimal(str(amount))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def fits_money_column(amount: Decimal) -> bool:
    """Конечная сумма, по модулю не больше MAX_AMOUNT"""
    return amount.is_finite() and abs(amount) <= MAX_AMOUNT


def sum_money(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, Decimal("0"))


def mean_money(amounts: Iterable[Decimal]) -> Decimal:
    """
    Среднее арифметическое, half-up до копеек.

    Returns:
        0.00 для пустого набора
    """
    values = list(amounts)
    if not values:
        return ZERO
    return quantize_money(sum_money(values) / len(values))


def format_money(amount, currency: str = "RUB") -> str:
    """
    Отформатировать сумму с пробелами-разделителями тысяч и кодом валюты
    (для логов и текстов уведомлений).

        format_money(Decimal("15000"), "RUB") -> "15 000.00 RUB"
    """
    formatted = "{:,.2f}".format(quantize_money(amount)).replace(",", " ")
    return f"{formatted} {currency}"
