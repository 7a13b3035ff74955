"""
Обработчики входящих очередей (parsed, advice-results)

Каждое сообщение обрабатывается в своей session. Сообщение, не прошедшее
валидацию схемы, логируется и подтверждается (повтор ничего не изменит).
"""
import logging

from pydantic import ValidationError

from app.application.advices import IngestAdviceResultUseCase
from app.application.ocr import IngestOcrResultUseCase
from app.infrastructure.db.session import session_scope
from app.infrastructure.messaging.messages import AdviceResultMessage, OcrResultMessage

logger = logging.getLogger(__name__)


class ParsedTransactionsListener:
    """parsed -> операции ledger'а"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def __call__(self, payload: dict) -> None:
        try:
            message = OcrResultMessage.model_validate(payload)
        except ValidationError as e:
            logger.error("Malformed OCR result dropped: %s", e)
            return

        logger.info("OCR result received: task=%s status=%s", message.task_id, message.status)
        with session_scope(self.session_factory) as db:
            IngestOcrResultUseCase(db).execute(message)


class AdviceResultsListener:
    """advice-results -> advices"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def __call__(self, payload: dict) -> None:
        try:
            message = AdviceResultMessage.model_validate(payload)
        except ValidationError as e:
            logger.error("Malformed advice result dropped: %s", e)
            return

        logger.info("Advice result received: task=%s status=%s", message.task_id, message.status)
        with session_scope(self.session_factory) as db:
            IngestAdviceResultUseCase(db).execute(message)
