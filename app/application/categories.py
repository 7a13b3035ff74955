"""
Category use cases - business logic for category operations

Статьи (категории) для доходов и расходов.
Системные категории (user_id = NULL, is_default = True) видны всем и не изменяются.
"""
import logging

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.application.errors import BadRequestError, not_found
from app.application.users import require_user
from app.domain.category import DEFAULT_CATEGORIES, CategoryType
from app.infrastructure.db.models import Category

logger = logging.getLogger(__name__)


class CategoryValidationError(BadRequestError):
    """Ошибка валидации категории"""
    pass


def visible_categories_query(db: Session, user_id: int):
    """Системные категории + категории пользователя"""
    return db.query(Category).filter(
        or_(Category.user_id.is_(None), Category.user_id == user_id)
    )


def get_visible_category(db: Session, user_id: int, category_id: int) -> Category:
    """
    Категория, которую пользователь может указать в операции

    Raises:
        NotFoundError: категории нет или она принадлежит другому пользователю
    """
    category = visible_categories_query(db, user_id).filter(Category.id == category_id).first()
    if category is None:
        raise not_found("Category", category_id, user_id)
    return category


class EnsureDefaultCategoriesUseCase:
    """
    Use case: Создать системные категории если их нет

    Идемпотентен: повторный запуск ничего не меняет.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self) -> int:
        """Returns: сколько категорий создано"""
        created = 0
        for name, category_type, icon, color in DEFAULT_CATEGORIES:
            existing = self.db.query(Category).filter(
                Category.user_id.is_(None),
                Category.is_default == True,  # noqa: E712
                Category.name == name,
            ).first()
            if existing:
                continue
            self.db.add(Category(
                user_id=None,
                name=name,
                category_type=category_type,
                icon=icon,
                color=color,
                is_default=True,
            ))
            created += 1

        self.db.commit()
        if created:
            logger.info("Seeded %d default categories", created)
        return created


class ListCategoriesService:
    """Чтение категорий"""

    def __init__(self, db: Session):
        self.db = db

    def visible(self, user_id: int) -> list[Category]:
        """Системные первыми, затем по имени"""
        require_user(self.db, user_id)
        return visible_categories_query(self.db, user_id).order_by(
            Category.is_default.desc(), Category.name, Category.id
        ).all()

    def custom(self, user_id: int) -> list[Category]:
        require_user(self.db, user_id)
        return self.db.query(Category).filter(
            Category.user_id == user_id,
            Category.is_default == False,  # noqa: E712
        ).order_by(Category.name, Category.id).all()

    def defaults(self) -> list[Category]:
        return self.db.query(Category).filter(
            Category.user_id.is_(None),
            Category.is_default == True,  # noqa: E712
        ).order_by(Category.name, Category.id).all()

    def visible_names(self, user_id: int) -> list[str]:
        return [c.name for c in visible_categories_query(self.db, user_id).order_by(Category.id).all()]


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise CategoryValidationError("Название категории не может быть пустым")
    if len(name) > 255:
        raise CategoryValidationError("Название категории слишком длинное")
    return name


class CreateCategoryUseCase:
    """Use case: Создать пользовательскую категорию"""

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        name: str,
        icon: str | None = None,
        color: str | None = None,
        category_type: CategoryType | None = None,
    ) -> Category:
        require_user(self.db, user_id)
        category = Category(
            user_id=user_id,
            name=_clean_name(name),
            icon=icon,
            color=color,
            category_type=category_type or CategoryType.BOTH,
            is_default=False,
        )
        self.db.add(category)
        self.db.commit()
        self.db.refresh(category)
        return category


def _get_custom(db: Session, user_id: int, category_id: int) -> Category:
    category = db.query(Category).filter(
        Category.id == category_id,
        Category.user_id == user_id,
        Category.is_default == False,  # noqa: E712
    ).first()
    if category is None:
        raise not_found("Category", category_id, user_id)
    return category


class UpdateCategoryUseCase:
    """Use case: Обновить пользовательскую категорию (системные не трогаем)"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, category_id: int, changes: dict) -> Category:
        category = _get_custom(self.db, user_id, category_id)

        if "name" in changes:
            category.name = _clean_name(changes["name"])
        if "icon" in changes:
            category.icon = changes["icon"]
        if "color" in changes:
            category.color = changes["color"]
        if changes.get("category_type") is not None:
            category.category_type = changes["category_type"]

        self.db.commit()
        self.db.refresh(category)
        return category


class DeleteCategoryUseCase:
    """
    Use case: Удалить пользовательскую категорию

    Операции с этой категорией остаются, category_id обнуляется (FK ON DELETE SET NULL).
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, category_id: int) -> None:
        category = _get_custom(self.db, user_id, category_id)
        self.db.delete(category)
        self.db.commit()
        logger.info("Category %s deleted by user %s", category_id, user_id)
