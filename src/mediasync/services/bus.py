"""RabbitMQ event bus."""

import logging
from typing import Protocol

import pika
from pika.adapters.blocking_connection import BlockingChannel
from pika.exceptions import AMQPError

from mediasync.config import MediaSyncConfig
from mediasync.error_handling import PublishError

logger = logging.getLogger(__name__)


class EventBus(Protocol):
    def publish(self, routing_key: str, body: bytes) -> None:
        """Publish one message; raise PublishError on failure."""
        ...


class RabbitMQBus:
    """Publishes persistent messages to durable queues on the default exchange."""

    def __init__(self, config: MediaSyncConfig):
        self.config = config
        self.parameters = pika.URLParameters(config.amqp_url)
        self.parameters.socket_timeout = config.amqp_connection_timeout
        self.parameters.blocked_connection_timeout = config.amqp_connection_timeout
        self._connection: pika.BlockingConnection | None = None
        self._channel: BlockingChannel | None = None
        self._declared: set[str] = set()

    def _get_channel(self) -> BlockingChannel:
        if self._channel is None or self._channel.is_closed:
            if self._connection is None or self._connection.is_closed:
                self._connection = pika.BlockingConnection(self.parameters)
                self._declared.clear()
                logger.info("connected to rabbitmq")
            self._channel = self._connection.channel()
            self._channel.confirm_delivery()
        return self._channel

    def publish(self, routing_key: str, body: bytes) -> None:
        try:
            channel = self._get_channel()
            if routing_key not in self._declared:
                channel.queue_declare(queue=routing_key, durable=True)
                self._declared.add(routing_key)

            channel.basic_publish(
                exchange="",
                routing_key=routing_key,
                body=body,
                properties=pika.BasicProperties(
                    content_type="application/x-protobuf",
                    delivery_mode=pika.DeliveryMode.Persistent,
                ),
            )
        except AMQPError as e:
            msg = f"failed to publish message to '{routing_key}': {e!r}"
            raise PublishError(msg, original_error=e) from e

    def close(self) -> None:
        if self._connection is not None and self._connection.is_open:
            self._connection.close()
        self._connection = None
        self._channel = None
