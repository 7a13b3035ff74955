"""
Consumer входящей очереди: отдельный поток, одно сообщение за раз
"""
import json
import logging
import threading
from typing import Callable

import pika
from pika.exceptions import AMQPError

logger = logging.getLogger(__name__)

# Как часто цикл consume проверяет флаг остановки (секунды)
_POLL_INTERVAL = 1.0


class QueueConsumer(threading.Thread):
    """
    Поток-потребитель одной очереди

    - собственное соединение и канал, prefetch_count=1
    - ack после того, как handler вернул управление
    - невалидный JSON: лог + ack
    - исключение handler'а: лог + nack без requeue
    - при обрыве соединения переподключается через reconnect_delay
    """

    def __init__(
        self,
        url: str,
        queue: str,
        handler: Callable[[dict], None],
        reconnect_delay: float = 5.0,
    ):
        super().__init__(name=f"consumer-{queue}", daemon=True)
        self.parameters = pika.URLParameters(url)
        self.queue = queue
        self.handler = handler
        self.reconnect_delay = reconnect_delay
        self._stop_event = threading.Event()

    def stop(self) -> None:
        """Потокобезопасная остановка: цикл заметит флаг в течение _POLL_INTERVAL"""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def run(self) -> None:
        logger.info("Consumer for queue %s started", self.queue)
        while not self.stopped:
            try:
                self._consume()
            except AMQPError:
                logger.warning(
                    "Consumer for queue %s lost connection, retrying in %.1fs",
                    self.queue, self.reconnect_delay, exc_info=True,
                )
            except Exception:
                logger.exception("Consumer for queue %s crashed, restarting", self.queue)
            if not self.stopped:
                self._stop_event.wait(self.reconnect_delay)
        logger.info("Consumer for queue %s stopped", self.queue)

    def _consume(self) -> None:
        connection = pika.BlockingConnection(self.parameters)
        try:
            channel = connection.channel()
            channel.queue_declare(queue=self.queue, durable=True)
            channel.basic_qos(prefetch_count=1)

            for method, _properties, body in channel.consume(self.queue, inactivity_timeout=_POLL_INTERVAL):
                if self.stopped:
                    break
                if method is None:
                    continue
                self.handle_delivery(channel, method.delivery_tag, body)

            channel.cancel()
        finally:
            if connection.is_open:
                connection.close()

    def handle_delivery(self, channel, delivery_tag: int, body: bytes) -> None:
        """Разобрать JSON, вызвать handler, подтвердить сообщение"""
        try:
            payload = json.loads(body)
        except (UnicodeDecodeError, ValueError):
            logger.error("Invalid JSON in queue %s, dropping message: %r", self.queue, body[:200])
            channel.basic_ack(delivery_tag=delivery_tag)
            return

        try:
            self.handler(payload)
        except Exception:
            logger.exception("Handler for queue %s failed, message rejected", self.queue)
            channel.basic_nack(delivery_tag=delivery_tag, requeue=False)
            return

        channel.basic_ack(delivery_tag=delivery_tag)
