"""
Statistics engine: агрегация операций пользователя за окно

Чистая функция от набора операций: никаких обращений к БД и мутаций.
TRANSFER в статистике не участвует.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from app.domain.recurrence import month_key
from app.domain.transaction import TransactionType
from app.utils.money import mean_money, quantize_money

ALLOWED_MONTHS = (1, 3, 6, 12)


@dataclass(frozen=True)
class StatRow:
    """Срез операции, достаточный для статистики"""
    type: TransactionType
    amount: Decimal
    date: date
    category_name: str | None


@dataclass
class CategoryTimeSeries:
    category_name: str
    time_series: dict[str, Decimal]


@dataclass
class MaxExpensePerDay:
    date: date
    amount: Decimal


@dataclass
class MaxExpensePerCategory:
    category_name: str
    amount: Decimal


@dataclass
class StatisticsReport:
    expenses_by_category: dict[str, Decimal]
    income_by_category: dict[str, Decimal]
    monthly_expenses: dict[str, Decimal]
    monthly_income: dict[str, Decimal]
    avg_expenses_by_category: list[CategoryTimeSeries]
    avg_income_by_category: list[CategoryTimeSeries]
    max_expense_per_day: MaxExpensePerDay | None
    max_expense_per_category: MaxExpensePerCategory | None
    average_expense: Decimal
    average_income: Decimal
    start_date: date
    end_date: date


def sum_by_category(rows: Iterable[StatRow]) -> dict[str, Decimal]:
    """Σ amount по имени категории (операции без категории пропускаются), ключи по имени."""
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for row in rows:
        if row.category_name is not None:
            totals[row.category_name] += row.amount
    return {name: totals[name] for name in sorted(totals)}


def sum_by_month(rows: Iterable[StatRow]) -> dict[str, Decimal]:
    """Σ amount по "YYYY-MM", ключи по возрастанию."""
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for row in rows:
        totals[month_key(row.date)] += row.amount
    return {key: totals[key] for key in sorted(totals)}


def avg_by_category(rows: Iterable[StatRow]) -> list[CategoryTimeSeries]:
    """
    Среднее по категории за каждый месяц, где есть данные.

    Пустые месяцы не дополняются нулями.
    """
    buckets: dict[str, dict[str, list[Decimal]]] = defaultdict(lambda: defaultdict(list))
    for row in rows:
        if row.category_name is not None:
            buckets[row.category_name][month_key(row.date)].append(row.amount)

    result = []
    for name in sorted(buckets):
        months = buckets[name]
        series = {key: mean_money(months[key]) for key in sorted(months)}
        result.append(CategoryTimeSeries(category_name=name, time_series=series))
    return result


def max_expense_per_day(expenses: Iterable[StatRow]) -> MaxExpensePerDay | None:
    """День с наибольшей суммой расходов; при равенстве самый поздний."""
    per_day: dict[date, Decimal] = defaultdict(Decimal)
    for row in expenses:
        per_day[row.date] += row.amount
    if not per_day:
        return None
    best_day = max(per_day, key=lambda d: (per_day[d], d))
    return MaxExpensePerDay(date=best_day, amount=per_day[best_day])


def max_expense_per_category(expenses: Iterable[StatRow]) -> MaxExpensePerCategory | None:
    """Категория с наибольшей суммой расходов; при равенстве первая по имени."""
    by_category = sum_by_category(expenses)
    best_name = None
    for name, amount in by_category.items():
        if best_name is None or amount > by_category[best_name]:
            best_name = name
    if best_name is None:
        return None
    return MaxExpensePerCategory(category_name=best_name, amount=by_category[best_name])


def build_report(rows: Iterable[StatRow], start_date: date, end_date: date) -> StatisticsReport:
    """
    Собрать отчёт по операциям окна [start_date, end_date].

    Args:
        rows: операции пользователя за окно (любые типы)
        start_date: начало окна (включительно)
        end_date: конец окна (включительно)
    """
    rows = list(rows)
    expenses = [r for r in rows if r.type == TransactionType.EXPENSE]
    incomes = [r for r in rows if r.type == TransactionType.INCOME]

    return StatisticsReport(
        expenses_by_category=sum_by_category(expenses),
        income_by_category=sum_by_category(incomes),
        monthly_expenses=sum_by_month(expenses),
        monthly_income=sum_by_month(incomes),
        avg_expenses_by_category=avg_by_category(expenses),
        avg_income_by_category=avg_by_category(incomes),
        max_expense_per_day=max_expense_per_day(expenses),
        max_expense_per_category=max_expense_per_category(expenses),
        average_expense=mean_money(r.amount for r in expenses),
        average_income=mean_money(r.amount for r in incomes),
        start_date=start_date,
        end_date=end_date,
    )


@dataclass
class MonthlyAdviceStats:
    """Месячная сводка для запроса совета"""
    expenses_by_category: dict[str, Decimal]
    income_by_source: dict[str, Decimal]
    average_by_category: dict[str, Decimal]


def monthly_advice_stats(rows: Iterable[StatRow], month_keys: list[str]) -> dict[str, MonthlyAdviceStats]:
    """
    Сводка по каждому месяцу из month_keys (в порядке month_keys).

    Месяц без операций даёт пустые словари.
    """
    by_month: dict[str, list[StatRow]] = defaultdict(list)
    for row in rows:
        by_month[month_key(row.date)].append(row)

    result: dict[str, MonthlyAdviceStats] = {}
    for key in month_keys:
        month_rows = by_month.get(key, [])
        expenses = [r for r in month_rows if r.type == TransactionType.EXPENSE]
        incomes = [r for r in month_rows if r.type == TransactionType.INCOME]
        averages = {
            series.category_name: series.time_series[key]
            for series in avg_by_category(expenses)
        }
        result[key] = MonthlyAdviceStats(
            expenses_by_category={k: quantize_money(v) for k, v in sum_by_category(expenses).items()},
            income_by_source={k: quantize_money(v) for k, v in sum_by_category(incomes).items()},
            average_by_category=averages,
        )
    return result
