"""
Validation utilities для денежных сумм во входящих запросах

Суммы приходят строкой (или числом) с точкой либо запятой, максимум 2 знака
после запятой. Дальше по коду они идут только как Decimal.
"""
import re
from decimal import Decimal, InvalidOperation

from app.utils.money import fits_money_column


def normalize_decimal_input(value) -> str:
    """
    "100,50" -> "100.50", 100.5 -> "100.5"
    """
    return str(value).strip().replace(",", ".")


def parse_amount(value, max_decimal_places: int = 2, allow_negative: bool = False) -> Decimal:
    """
    Разобрать сумму в Decimal

    Raises:
        ValueError: не число, слишком много знаков после запятой, отрицательная сумма

    Example:
        >>> parse_amount("100,50")
        Decimal('100.50')
        >>> parse_amount("100.505")
        ValueError: Максимум 2 знака после запятой
    """
    normalized = normalize_decimal_input(value)
    try:
        amount = Decimal(normalized)
    except (InvalidOperation, ValueError):
        raise ValueError("Некорректная сумма")
    if not amount.is_finite():
        raise ValueError("Некорректная сумма")

    pattern = rf"^-?\d+(\.\d{{1,{max_decimal_places}}})?$"
    if not re.match(pattern, normalized):
        raise ValueError(f"Максимум {max_decimal_places} знака после запятой")

    if amount < 0 and not allow_negative:
        raise ValueError("Сумма не может быть отрицательной")
    if not fits_money_column(amount):
        raise ValueError("Слишком большая сумма")
    return amount


def parse_positive_amount(value, max_decimal_places: int = 2) -> Decimal:
    """Сумма операции/напоминания: строго больше нуля"""
    amount = parse_amount(value, max_decimal_places)
    if amount <= 0:
        raise ValueError("Сумма должна быть больше нуля")
    return amount
