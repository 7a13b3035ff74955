"""
Advice pipeline: запрос совета -> очередь advice-tasks -> LLM-воркер -> очередь advice-results

task_id кодирует user_id (см. app.domain.advice), дополнительно запрос
записывается в advice_tasks. Результат принимается только при наличии
строки advice_tasks того же пользователя; строка удаляется вместе с
сохранением совета.
"""
import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.application.errors import BadRequestError
from app.application.statistics import to_stat_rows
from app.application.transactions import TransactionQueryService
from app.application.users import require_user
from app.domain.advice import (
    DESCRIPTION_MAX_LENGTH,
    GOAL_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TaskIdDecodeError,
    clip,
    decode_user_id,
    encode_task_id,
    normalize_priority,
)
from app.domain.recurrence import add_months, first_day_of_month, month_key
from app.domain.statistics import monthly_advice_stats
from app.infrastructure.db.models import Advice, AdviceItem, AdviceTask, User
from app.infrastructure.messaging.messages import (
    AdviceGoal,
    AdviceResultMessage,
    AdviceTaskMessage,
    MonthlyStats,
    is_success,
)
from app.infrastructure.messaging.publisher import MessagePublisher
from app.utils import clock

logger = logging.getLogger(__name__)

# Сколько календарных месяцев (включая текущий) уходит воркеру
STATS_MONTHS = 3


class AdviceValidationError(BadRequestError):
    """Некорректный запрос совета"""
    pass


class RequestAdviceUseCase:
    """
    Use case: Запросить финансовый совет
    """

    def __init__(self, db: Session, publisher: MessagePublisher, queue: str):
        self.db = db
        self.publisher = publisher
        self.queue = queue

    def execute(
        self,
        user_id: int,
        goal: str,
        target_date: date | None = None,
        today: date | None = None,
        now_millis: int | None = None,
    ) -> str:
        """
        Returns:
            task_id отправленной задачи
        """
        require_user(self.db, user_id)
        goal = (goal or "").strip()
        if not goal:
            raise AdviceValidationError("Цель не может быть пустой")
        if len(goal) > GOAL_MAX_LENGTH:
            raise AdviceValidationError(f"Цель длиннее {GOAL_MAX_LENGTH} символов")

        today = today or clock.today()
        task_id = encode_task_id(user_id, now_millis if now_millis is not None else clock.now_millis())

        message = AdviceTaskMessage(
            task_id=task_id,
            goal=AdviceGoal(name=goal, target_date=target_date),
            monthly_stats=self._monthly_stats(user_id, today),
        )

        self.db.add(AdviceTask(task_id=task_id, user_id=user_id, goal=goal, target_date=target_date))
        self.db.commit()

        try:
            self.publisher.publish(self.queue, message.to_payload())
        except Exception:
            logger.error("Failed to publish advice task %s, dropping correlation row", task_id)
            self.db.query(AdviceTask).filter(AdviceTask.task_id == task_id).delete()
            self.db.commit()
            raise

        logger.info("Advice task %s sent to %s for user %s", task_id, self.queue, user_id)
        return task_id

    def _monthly_stats(self, user_id: int, today: date) -> dict[str, MonthlyStats]:
        """Статистика за текущий и два предыдущих месяца, текущий первым"""
        current = first_day_of_month(today)
        keys = [month_key(add_months(current, -i)) for i in range(STATS_MONTHS)]
        window_start = add_months(current, -(STATS_MONTHS - 1))

        transactions = TransactionQueryService(self.db).filter(user_id, date_from=window_start, date_to=today)
        stats = monthly_advice_stats(to_stat_rows(transactions), keys)
        return {
            key: MonthlyStats(
                expenses_by_category=month.expenses_by_category,
                income_by_source=month.income_by_source,
                average_by_category=month.average_by_category,
            )
            for key, month in stats.items()
        }


class IngestAdviceResultUseCase:
    """
    Use case: Сохранить совет из advice-results

    Ничего не сохраняется, если статус не SUCCESS, пунктов нет, task_id не
    декодируется, пользователя нет или запрос не найден в advice_tasks.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, message: AdviceResultMessage) -> Advice | None:
        if not is_success(message.status):
            logger.warning("Advice task %s finished with status %s", message.task_id, message.status)
            return None
        if not message.advice:
            logger.warning("Advice task %s returned no items", message.task_id)
            return None

        try:
            user_id = decode_user_id(message.task_id)
        except TaskIdDecodeError as e:
            logger.error("Advice result with undecodable task_id: %s", e)
            return None

        if self.db.query(User).filter(User.id == user_id).first() is None:
            logger.warning("Advice task %s: user %s not found", message.task_id, user_id)
            return None

        request = self.db.query(AdviceTask).filter(AdviceTask.task_id == message.task_id).first()
        if request is None:
            logger.warning("Advice task %s unknown or already processed", message.task_id)
            return None
        if request.user_id != user_id:
            logger.error(
                "Advice task %s belongs to user %s, task id decodes to %s",
                message.task_id, request.user_id, user_id,
            )
            return None

        advice = Advice(
            user_id=user_id,
            task_id=message.task_id,
            goal=clip(message.goal or request.goal, GOAL_MAX_LENGTH),
            target_date=request.target_date,
        )
        for item in message.advice:
            advice.items.append(AdviceItem(
                item_order=item.id,
                title=clip(item.title, TITLE_MAX_LENGTH),
                priority=normalize_priority(item.priority),
                description=clip(item.description, DESCRIPTION_MAX_LENGTH),
            ))

        self.db.add(advice)
        self.db.delete(request)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.info("Advice task %s already stored, duplicate result ignored", message.task_id)
            return None

        logger.info("Advice %s stored for user %s (%d items)", advice.id, user_id, len(message.advice))
        return advice


class RecentAdvicesService:
    """Советы пользователя за последние N дней, новые первыми"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, days: int = 30, now: datetime | None = None) -> list[Advice]:
        require_user(self.db, user_id)
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)
        return self.db.query(Advice).filter(
            Advice.user_id == user_id,
            Advice.created_at >= cutoff,
        ).order_by(Advice.created_at.desc(), Advice.id.desc()).all()
