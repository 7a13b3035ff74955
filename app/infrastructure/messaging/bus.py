"""
Message bus: publisher + consumer'ы входящих очередей как единое целое

Включается настройкой RABBIT_ENABLED; при выключенной шине конвейеры OCR
и советов недоступны (MessagingDisabledError -> 503).
"""
import logging

from app.config import Settings, get_settings
from app.infrastructure.messaging.consumer import QueueConsumer
from app.infrastructure.messaging.listeners import AdviceResultsListener, ParsedTransactionsListener
from app.infrastructure.messaging.publisher import MessagePublisher, RabbitPublisher

logger = logging.getLogger(__name__)


class MessageBus:
    def __init__(self, settings: Settings, publisher: MessagePublisher, consumers: list[QueueConsumer]):
        self.settings = settings
        self.publisher = publisher
        self.consumers = consumers

    @classmethod
    def from_settings(cls, settings: Settings, session_factory=None) -> "MessageBus":
        publisher = RabbitPublisher(
            settings.RABBIT_URL,
            queues=[settings.RABBIT_QUEUE_IMAGE, settings.RABBIT_QUEUE_ADVICE_TASKS],
        )
        consumers = [
            QueueConsumer(
                settings.RABBIT_URL,
                settings.RABBIT_QUEUE_PARSED,
                ParsedTransactionsListener(session_factory),
                reconnect_delay=settings.RABBIT_RECONNECT_DELAY,
            ),
            QueueConsumer(
                settings.RABBIT_URL,
                settings.RABBIT_QUEUE_ADVICE_RESULTS,
                AdviceResultsListener(session_factory),
                reconnect_delay=settings.RABBIT_RECONNECT_DELAY,
            ),
        ]
        return cls(settings, publisher, consumers)

    def start(self) -> None:
        for consumer in self.consumers:
            consumer.start()
        logger.info("Message bus started (%d consumers)", len(self.consumers))

    def stop(self, timeout: float = 5.0) -> None:
        for consumer in self.consumers:
            consumer.stop()
        for consumer in self.consumers:
            if consumer.is_alive():
                consumer.join(timeout)
        self.publisher.close()
        logger.info("Message bus stopped")


# Singleton, создаётся в lifespan приложения
_bus: MessageBus | None = None


def get_message_bus() -> MessageBus | None:
    return _bus


def start_message_bus(settings: Settings | None = None) -> MessageBus | None:
    global _bus
    settings = settings or get_settings()
    if not settings.RABBIT_ENABLED:
        logger.info("RABBIT_ENABLED is false, message bus disabled")
        return None
    if _bus is None:
        _bus = MessageBus.from_settings(settings)
        _bus.start()
    return _bus


def stop_message_bus() -> None:
    global _bus
    if _bus is not None:
        _bus.stop()
        _bus = None
