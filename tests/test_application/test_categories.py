"""
Tests for Category use cases
"""
import pytest
from datetime import date
from decimal import Decimal

from app.application.categories import (
    CategoryValidationError,
    CreateCategoryUseCase,
    DeleteCategoryUseCase,
    EnsureDefaultCategoriesUseCase,
    ListCategoriesService,
    UpdateCategoryUseCase,
)
from app.application.errors import NotFoundError
from app.application.transactions import CreateTransactionUseCase
from app.domain.category import DEFAULT_CATEGORIES, CategoryType
from app.domain.transaction import TransactionDraft, TransactionType
from app.infrastructure.db.models import Category, Transaction


def test_ensure_default_categories_is_idempotent(db_session):
    use_case = EnsureDefaultCategoriesUseCase(db_session)

    assert use_case.execute() == len(DEFAULT_CATEGORIES)
    assert use_case.execute() == 0
    assert db_session.query(Category).count() == len(DEFAULT_CATEGORIES)


def test_visible_categories_defaults_first(db_session, user, other_user, make_category):
    make_category("Продукты")
    make_category("Аптека", user_id=user.id)
    make_category("Чужая", user_id=other_user.id)

    names = [c.name for c in ListCategoriesService(db_session).visible(user.id)]

    assert names == ["Продукты", "Аптека"]


def test_custom_and_defaults_lists(db_session, user, make_category):
    make_category("Продукты")
    make_category("Аптека", user_id=user.id)
    service = ListCategoriesService(db_session)

    assert [c.name for c in service.custom(user.id)] == ["Аптека"]
    assert [c.name for c in service.defaults()] == ["Продукты"]


def test_create_category_defaults_to_both(db_session, user):
    category = CreateCategoryUseCase(db_session).execute(user.id, "  Спорт  ", icon="ball")

    assert category.name == "Спорт"
    assert category.category_type == CategoryType.BOTH
    assert category.is_default is False
    assert category.user_id == user.id


def test_create_category_empty_name(db_session, user):
    with pytest.raises(CategoryValidationError):
        CreateCategoryUseCase(db_session).execute(user.id, "")


def test_update_custom_category(db_session, user, make_category):
    category = make_category("Аптека", user_id=user.id)

    updated = UpdateCategoryUseCase(db_session).execute(
        user.id, category.id, {"name": "Лекарства", "category_type": CategoryType.EXPENSE}
    )

    assert updated.name == "Лекарства"
    assert updated.category_type == CategoryType.EXPENSE


def test_default_category_cannot_be_changed(db_session, user, make_category):
    category = make_category("Продукты")
    with pytest.raises(NotFoundError):
        UpdateCategoryUseCase(db_session).execute(user.id, category.id, {"name": "Еда"})
    with pytest.raises(NotFoundError):
        DeleteCategoryUseCase(db_session).execute(user.id, category.id)


def test_foreign_category_cannot_be_deleted(db_session, user, other_user, make_category):
    category = make_category("Чужая", user_id=other_user.id)
    with pytest.raises(NotFoundError):
        DeleteCategoryUseCase(db_session).execute(user.id, category.id)


def test_delete_category_keeps_transactions(db_session, user, make_account, make_category):
    """Операции остаются без категории"""
    account = make_account(user.id, "1000")
    category = make_category("Аптека", user_id=user.id)
    txn = CreateTransactionUseCase(db_session).execute(user.id, TransactionDraft(
        TransactionType.EXPENSE, account.id, Decimal("10"), date(2025, 10, 1), category_id=category.id,
    ))
    txn_id = txn.id

    DeleteCategoryUseCase(db_session).execute(user.id, category.id)

    db_session.expire_all()
    remaining = db_session.query(Transaction).filter(Transaction.id == txn_id).one()
    assert remaining.category_id is None
