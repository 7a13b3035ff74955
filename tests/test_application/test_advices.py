"""
Tests for advice pipeline: запрос совета и приём результата от воркера
"""
import base64
from datetime import date
from decimal import Decimal
from unittest.mock import Mock

import pytest

from app.application.advices import (
    AdviceValidationError,
    IngestAdviceResultUseCase,
    RecentAdvicesService,
    RequestAdviceUseCase,
)
from app.application.transactions import CreateTransactionUseCase
from app.domain.advice import encode_task_id
from app.domain.transaction import TransactionDraft, TransactionType
from app.infrastructure.db.models import Advice, AdviceTask
from app.infrastructure.messaging.messages import AdviceResultMessage

TODAY = date(2025, 10, 15)


@pytest.fixture
def publisher():
    return Mock()


@pytest.fixture
def advice_user(make_user):
    return make_user("car@example.com", name="Анна", user_id=7).id


def _request(db_session, publisher, user_id, goal="Buy a car", target_date=date(2026, 6, 1), millis=1760000000000):
    return RequestAdviceUseCase(db_session, publisher, "advice-tasks").execute(
        user_id, goal, target_date, today=TODAY, now_millis=millis
    )


def _result(task_id, goal="Buy a car", status="SUCCESS", items=None) -> AdviceResultMessage:
    if items is None:
        items = [
            {"id": 1, "title": "Spend less", "priority": "High", "description": "Cut cafe spending"},
            {"id": 2, "title": "Save more", "priority": "Medium", "description": "Put 20% aside"},
        ]
    return AdviceResultMessage.model_validate({
        "task_id": task_id,
        "status": status,
        "goal": goal,
        "advice": items,
    })


def test_advice_round_trip(db_session, publisher, advice_user):
    """Запрос -> task_id с user_7 -> результат -> совет с двумя пунктами по порядку"""
    task_id = _request(db_session, publisher, advice_user)

    queue, payload = publisher.publish.call_args.args
    assert queue == "advice-tasks"
    assert payload["task_id"] == task_id
    assert payload["goal"] == {"name": "Buy a car", "target_date": "2026-06-01"}
    decoded = base64.urlsafe_b64decode(task_id + "=" * (-len(task_id) % 4)).decode("utf-8")
    assert decoded.split("_")[:2] == ["user", "7"]

    IngestAdviceResultUseCase(db_session).execute(_result(task_id))

    advices = RecentAdvicesService(db_session).execute(advice_user)
    assert len(advices) == 1
    assert advices[0].goal == "Buy a car"
    assert advices[0].target_date == date(2026, 6, 1)
    assert [i.title for i in advices[0].items] == ["Spend less", "Save more"]
    assert [i.priority for i in advices[0].items] == ["High", "Medium"]
    assert db_session.query(AdviceTask).count() == 0


def test_request_carries_three_months_of_stats(db_session, publisher, advice_user, make_account, make_category):
    account = make_account(advice_user, "100000")
    cafe = make_category("Кафе", user_id=advice_user)
    salary = make_category("Зарплата", user_id=advice_user)
    create = CreateTransactionUseCase(db_session)
    for t, amount, d, category in [
        (TransactionType.EXPENSE, "300", date(2025, 10, 2), cafe),
        (TransactionType.EXPENSE, "100", date(2025, 10, 9), cafe),
        (TransactionType.INCOME, "50000", date(2025, 9, 5), salary),
        (TransactionType.EXPENSE, "999", date(2025, 7, 31), cafe),
    ]:
        create.execute(advice_user, TransactionDraft(
            type=t, account_id=account.id, amount=Decimal(amount), date=d, category_id=category.id,
        ))

    _request(db_session, publisher, advice_user)

    stats = publisher.publish.call_args.args[1]["monthly_stats"]
    assert list(stats) == ["2025-10", "2025-09", "2025-08"]
    assert Decimal(stats["2025-10"]["expenses_by_category"]["Кафе"]) == Decimal("400.00")
    assert Decimal(stats["2025-10"]["average_by_category"]["Кафе"]) == Decimal("200.00")
    assert Decimal(stats["2025-09"]["income_by_source"]["Зарплата"]) == Decimal("50000.00")
    assert stats["2025-08"] == {"expenses_by_category": {}, "income_by_source": {}, "average_by_category": {}}


def test_request_rejects_empty_goal(db_session, publisher, advice_user):
    with pytest.raises(AdviceValidationError):
        _request(db_session, publisher, advice_user, goal="   ")
    publisher.publish.assert_not_called()


def test_request_rejects_long_goal(db_session, publisher, advice_user):
    with pytest.raises(AdviceValidationError):
        _request(db_session, publisher, advice_user, goal="x" * 501)


def test_request_publish_failure_drops_task(db_session, publisher, advice_user):
    publisher.publish.side_effect = RuntimeError("broker down")

    with pytest.raises(RuntimeError):
        _request(db_session, publisher, advice_user)

    assert db_session.query(AdviceTask).count() == 0


def test_duplicate_result_stores_once(db_session, publisher, advice_user):
    task_id = _request(db_session, publisher, advice_user)

    first = IngestAdviceResultUseCase(db_session).execute(_result(task_id))
    second = IngestAdviceResultUseCase(db_session).execute(_result(task_id))

    assert first is not None
    assert second is None
    assert db_session.query(Advice).count() == 1


def test_result_for_unknown_user_is_dropped(db_session):
    task_id = encode_task_id(999, 1)
    assert IngestAdviceResultUseCase(db_session).execute(_result(task_id)) is None
    assert db_session.query(Advice).count() == 0


def test_result_without_request_is_dropped(db_session, advice_user):
    """Пользователь существует, но такой задачи не отправляли"""
    task_id = encode_task_id(advice_user, 12345)
    assert IngestAdviceResultUseCase(db_session).execute(_result(task_id)) is None
    assert db_session.query(Advice).count() == 0


def test_result_with_foreign_task_row_is_dropped(db_session, advice_user, other_user):
    """task_id кодирует одного пользователя, а запрос записан на другого"""
    task_id = encode_task_id(advice_user, 1)
    db_session.add(AdviceTask(task_id=task_id, user_id=other_user.id, goal="Чужая цель"))
    db_session.commit()

    assert IngestAdviceResultUseCase(db_session).execute(_result(task_id)) is None
    assert db_session.query(Advice).count() == 0


def test_result_with_garbage_task_id(db_session, advice_user):
    assert IngestAdviceResultUseCase(db_session).execute(_result("%%%")) is None


@pytest.mark.parametrize("status,items", [("FAILED", None), ("SUCCESS", [])])
def test_result_without_items_or_success(db_session, publisher, advice_user, status, items):
    task_id = _request(db_session, publisher, advice_user)
    assert IngestAdviceResultUseCase(db_session).execute(_result(task_id, status=status, items=items)) is None
    assert db_session.query(Advice).count() == 0


def test_result_fields_are_normalized(db_session, publisher, advice_user):
    """Приоритет нормализуется, длинные тексты обрезаются, goal берётся из запроса"""
    task_id = _request(db_session, publisher, advice_user, goal="Накопить на отпуск")

    advice = IngestAdviceResultUseCase(db_session).execute(_result(task_id, goal=None, items=[
        {"id": 2, "title": "t" * 300, "priority": "low", "description": "d" * 2500},
        {"id": 1, "title": "Первый", "priority": "HIGH", "description": "..."},
    ]))

    assert advice.goal == "Накопить на отпуск"
    assert [i.item_order for i in advice.items] == [1, 2]
    first, second = advice.items
    assert first.priority == "High"
    assert second.priority == "Low"
    assert len(second.title) == 200
    assert len(second.description) == 2000


def test_recent_advices_isolated_between_users(db_session, publisher, advice_user, other_user):
    task_id = _request(db_session, publisher, advice_user)
    IngestAdviceResultUseCase(db_session).execute(_result(task_id))

    assert RecentAdvicesService(db_session).execute(other_user.id) == []
