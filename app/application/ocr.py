"""
OCR pipeline: фото чека -> очередь image -> OCR-воркер -> очередь parsed -> операции

Корреляция через строку ocr_tasks (task_id -> пользователь, счёт).
Строка удаляется в той же транзакции, что и созданные операции, поэтому
повторная доставка результата ничего не создаёт.
"""
import base64
import logging
import uuid
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from app.application.categories import ListCategoriesService, visible_categories_query
from app.application.errors import BadRequestError, NotFoundError, not_found
from app.application.transactions import CreateTransactionUseCase
from app.application.users import require_user
from app.domain.category import build_name_index
from app.domain.transaction import TransactionDraft, TransactionType, parse_transaction_type
from app.infrastructure.db.models import Account, Category, OcrTask
from app.infrastructure.messaging.messages import OcrResultItem, OcrResultMessage, OcrTaskMessage, is_success
from app.infrastructure.messaging.publisher import MessagePublisher
from app.utils.clock import today as current_date

logger = logging.getLogger(__name__)


class OcrValidationError(BadRequestError):
    """Некорректное изображение"""
    pass


@dataclass
class OcrIngestResult:
    task_id: uuid.UUID
    processed: int
    skipped: int


class SendImageUseCase:
    """
    Use case: Принять фото чека и отправить задачу OCR-воркеру
    """

    def __init__(self, db: Session, publisher: MessagePublisher, queue: str):
        self.db = db
        self.publisher = publisher
        self.queue = queue

    def execute(
        self,
        user_id: int,
        account_id: int,
        filename: str | None,
        content_type: str | None,
        data: bytes,
    ) -> uuid.UUID:
        """
        Returns:
            task_id задачи

        Raises:
            NotFoundError: пользователь или счёт не найдены
            OcrValidationError: пустой файл
            pika.exceptions.AMQPError: задачу не удалось отправить
        """
        require_user(self.db, user_id)
        account = self.db.query(Account).filter(Account.id == account_id, Account.user_id == user_id).first()
        if account is None:
            raise not_found("Account", account_id, user_id)
        if not data:
            raise OcrValidationError("Файл пустой")

        task_id = uuid.uuid4()
        self.db.add(OcrTask(task_id=task_id, user_id=user_id, account_id=account_id))
        categories = ListCategoriesService(self.db).visible_names(user_id)
        # коммитим до отправки: результат может прийти раньше, чем завершится запрос
        self.db.commit()

        message = OcrTaskMessage(
            task_id=task_id,
            image_b64=base64.b64encode(data).decode("ascii"),
            categories=categories,
        )
        try:
            self.publisher.publish(self.queue, message.to_payload())
        except Exception:
            logger.error("Failed to publish OCR task %s, dropping correlation row", task_id)
            self.db.query(OcrTask).filter(OcrTask.task_id == task_id).delete()
            self.db.commit()
            raise

        logger.info(
            "OCR task %s sent to %s: user=%s account=%s file=%s (%s, %d bytes)",
            task_id, self.queue, user_id, account_id, filename, content_type, len(data),
        )
        return task_id


class IngestOcrResultUseCase:
    """
    Use case: Обработать результат OCR

    Каждый пункт создаётся в своём SAVEPOINT: ошибка одного пункта
    (нет средств, чужая категория, нулевая сумма) откатывает только его.
    """

    def __init__(self, db: Session):
        self.db = db
        self.create_transaction = CreateTransactionUseCase(db)

    def execute(self, message: OcrResultMessage, today: date | None = None) -> OcrIngestResult | None:
        if not is_success(message.status):
            logger.warning("OCR task %s finished with status %s: %s", message.task_id, message.status, message.error)
            return None

        items = message.data.items if message.data is not None else None
        if not items:
            logger.warning("OCR task %s returned no items", message.task_id)
            return None

        try:
            task_id = uuid.UUID(message.task_id)
        except (TypeError, ValueError):
            logger.error("OCR result has invalid task_id %r", message.task_id)
            return None

        task = self.db.query(OcrTask).filter(OcrTask.task_id == task_id).first()
        if task is None:
            logger.warning("OCR task %s not found (already processed or never issued)", task_id)
            return None

        categories = visible_categories_query(self.db, task.user_id).order_by(Category.id).all()
        category_index = build_name_index(categories)
        default_date = today or current_date()

        processed = skipped = 0
        for position, item in enumerate(items):
            savepoint = self.db.begin_nested()
            try:
                draft = self._to_draft(item, task.account_id, category_index, default_date)
                self.create_transaction.execute(task.user_id, draft, commit=False)
                savepoint.commit()
                processed += 1
            except (BadRequestError, NotFoundError) as e:
                savepoint.rollback()
                skipped += 1
                logger.warning("OCR task %s: item #%d (%s) skipped: %s", task_id, position, item.name, e)
            except Exception:
                savepoint.rollback()
                skipped += 1
                logger.exception("OCR task %s: item #%d (%s) failed", task_id, position, item.name)

        self.db.delete(task)
        self.db.commit()

        logger.info("OCR task %s ingested: processed=%d skipped=%d", task_id, processed, skipped)
        return OcrIngestResult(task_id=task_id, processed=processed, skipped=skipped)

    @staticmethod
    def _to_draft(
        item: OcrResultItem,
        account_id: int,
        category_index: dict[str, int],
        default_date: date,
    ) -> TransactionDraft:
        category_id = category_index.get(item.category.lower()) if item.category else None

        transaction_type = parse_transaction_type(item.transaction_type, TransactionType.EXPENSE)
        if transaction_type == TransactionType.TRANSFER:
            # у пункта чека нет второго счёта
            transaction_type = TransactionType.EXPENSE

        return TransactionDraft(
            type=transaction_type,
            account_id=account_id,
            amount=abs(item.price),
            date=item.transaction_date or default_date,
            category_id=category_id,
            description=item.description if item.description is not None else item.name,
        )
