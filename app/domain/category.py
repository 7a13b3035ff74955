"""
Category domain

Статьи (категории) для классификации доходов и расходов.
Системные (default) категории не принадлежат пользователю и видны всем.
"""
from enum import Enum


class CategoryType(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    BOTH = "BOTH"


# System categories: (name, type, icon, color)
DEFAULT_CATEGORIES = [
    ("Продукты", CategoryType.EXPENSE, "cart", "#4CAF50"),
    ("Кафе и рестораны", CategoryType.EXPENSE, "restaurant", "#FF9800"),
    ("Транспорт", CategoryType.EXPENSE, "bus", "#2196F3"),
    ("Жильё", CategoryType.EXPENSE, "home", "#795548"),
    ("Коммунальные услуги", CategoryType.EXPENSE, "bolt", "#607D8B"),
    ("Здоровье", CategoryType.EXPENSE, "heart", "#E91E63"),
    ("Одежда", CategoryType.EXPENSE, "shirt", "#9C27B0"),
    ("Развлечения", CategoryType.EXPENSE, "film", "#FFC107"),
    ("Зарплата", CategoryType.INCOME, "wallet", "#009688"),
    ("Подарки", CategoryType.BOTH, "gift", "#F44336"),
    ("Прочее", CategoryType.BOTH, "dots", "#9E9E9E"),
]


def build_name_index(categories) -> dict[str, int]:
    """
    Индекс name.lower() -> category id.

    При совпадении имён побеждает первая встреченная категория.
    """
    index: dict[str, int] = {}
    for category in categories:
        index.setdefault(category.name.lower(), category.id)
    return index
