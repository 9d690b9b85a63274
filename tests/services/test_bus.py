"""Tests for the RabbitMQ event bus."""

from unittest.mock import MagicMock, patch

import pika
import pytest
from pika.exceptions import AMQPChannelError, AMQPConnectionError

from mediasync.error_handling import PublishError
from mediasync.services.bus import RabbitMQBus


@pytest.fixture
def connection():
    conn = MagicMock()
    conn.is_closed = False
    conn.is_open = True
    conn.channel.return_value.is_closed = False
    return conn


@pytest.fixture
def bus(config, connection):
    with patch(
        "mediasync.services.bus.pika.BlockingConnection",
        return_value=connection,
    ) as mock_connect:
        bus = RabbitMQBus(config)
        bus.mock_connect = mock_connect
        yield bus


class TestRabbitMQBus:
    """Test RabbitMQBus publishing."""

    def test_connection_parameters(self, config):
        bus = RabbitMQBus(config)

        assert bus.parameters.host == "localhost"
        assert bus.parameters.port == 5672
        assert bus.parameters.socket_timeout == config.amqp_connection_timeout

    def test_publish(self, bus, connection):
        bus.publish("v1.identify.newfile", b"payload")

        channel = connection.channel.return_value
        channel.confirm_delivery.assert_called_once()
        channel.queue_declare.assert_called_once_with(
            queue="v1.identify.newfile",
            durable=True,
        )
        kwargs = channel.basic_publish.call_args.kwargs
        assert kwargs["exchange"] == ""
        assert kwargs["routing_key"] == "v1.identify.newfile"
        assert kwargs["body"] == b"payload"
        assert kwargs["properties"].delivery_mode == pika.DeliveryMode.Persistent.value
        assert kwargs["properties"].content_type == "application/x-protobuf"

    def test_connection_is_reused(self, bus, connection):
        bus.publish("v1.identify.newfile", b"one")
        bus.publish("v1.identify.newfile", b"two")

        bus.mock_connect.assert_called_once()
        channel = connection.channel.return_value
        assert channel.queue_declare.call_count == 1
        assert channel.basic_publish.call_count == 2

    def test_connection_failure(self, bus):
        bus.mock_connect.side_effect = AMQPConnectionError("refused")

        with pytest.raises(PublishError) as exc_info:
            bus.publish("v1.identify.newfile", b"payload")

        assert isinstance(exc_info.value.original_error, AMQPConnectionError)

    def test_publish_failure(self, bus, connection):
        channel = connection.channel.return_value
        channel.basic_publish.side_effect = AMQPChannelError("channel closed")

        with pytest.raises(PublishError):
            bus.publish("v1.identify.newfile", b"payload")

    def test_close(self, bus, connection):
        bus.publish("v1.identify.newfile", b"payload")

        bus.close()

        connection.close.assert_called_once()
        assert bus._connection is None
