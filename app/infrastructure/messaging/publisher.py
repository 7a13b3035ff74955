"""
Публикация задач в очереди брокера (RabbitMQ, pika)
"""
import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Iterable

import pika
from pika.exceptions import AMQPError

logger = logging.getLogger(__name__)


class MessagePublisher(ABC):
    """Отправка JSON-сообщения в именованную очередь"""

    @abstractmethod
    def publish(self, queue: str, payload: dict) -> None:
        ...

    def close(self) -> None:
        pass


class RabbitPublisher(MessagePublisher):
    """
    Один BlockingConnection на процесс.

    pika не потокобезопасна, поэтому publish сериализуется lock'ом.
    Оборванное соединение переоткрывается один раз на сообщение; повторная
    ошибка пробрасывается вызывающему (инфраструктурная ошибка).
    """

    def __init__(self, url: str, queues: Iterable[str]):
        self.parameters = pika.URLParameters(url)
        self.queues = list(queues)
        self._lock = threading.Lock()
        self._connection = None
        self._channel = None

    def _ensure_channel(self):
        if self._connection is None or self._connection.is_closed:
            self._connection = pika.BlockingConnection(self.parameters)
            self._channel = None
        if self._channel is None or self._channel.is_closed:
            self._channel = self._connection.channel()
            for queue in self.queues:
                self._channel.queue_declare(queue=queue, durable=True)
        return self._channel

    def _reset(self) -> None:
        connection, self._connection, self._channel = self._connection, None, None
        if connection is not None and connection.is_open:
            try:
                connection.close()
            except AMQPError:
                logger.warning("Failed to close broken publisher connection", exc_info=True)

    def publish(self, queue: str, payload: dict) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        properties = pika.BasicProperties(
            content_type="application/json",
            delivery_mode=pika.DeliveryMode.Persistent,
        )

        with self._lock:
            try:
                self._ensure_channel().basic_publish(
                    exchange="", routing_key=queue, body=body, properties=properties
                )
            except AMQPError:
                logger.warning("Publish to %s failed, reconnecting", queue)
                self._reset()
                self._ensure_channel().basic_publish(
                    exchange="", routing_key=queue, body=body, properties=properties
                )

        logger.debug("Published %d bytes to %s", len(body), queue)

    def close(self) -> None:
        with self._lock:
            self._reset()
