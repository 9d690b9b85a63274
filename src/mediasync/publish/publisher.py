"""Publishing of discovery events to the identification service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from google.protobuf.message import EncodeError

from mediasync.error_handling import PublishError
from mediasync.publish.wire import NEW_FILE_ROUTING_KEY, encode_discovery_event

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mediasync.media import DiscoveryEvent
    from mediasync.services.bus import EventBus

logger = logging.getLogger(__name__)


@dataclass
class PublishOutcome:
    event: DiscoveryEvent
    error: PublishError | None = None

    @property
    def published(self) -> bool:
        return self.error is None


class EventPublisher:
    """Best-effort publisher: one failed event never stops the rest."""

    def __init__(self, bus: EventBus, routing_key: str = NEW_FILE_ROUTING_KEY):
        self.bus = bus
        self.routing_key = routing_key

    def publish(self, events: Iterable[DiscoveryEvent]) -> list[PublishOutcome]:
        return [self.publish_event(event) for event in events]

    def publish_event(self, event: DiscoveryEvent) -> PublishOutcome:
        try:
            payload = encode_discovery_event(event)
        except (EncodeError, TypeError, ValueError) as e:
            error = PublishError(
                f"failed to create protobuf encoded message for {event.object_key}",
                original_error=e,
            )
            error.log()
            return PublishOutcome(event, error)

        try:
            self.bus.publish(self.routing_key, payload)
        except PublishError as e:
            e.log()
            return PublishOutcome(event, e)
        except Exception as e:
            error = PublishError(
                f"unexpected error publishing {event.object_key}: {e}",
                original_error=e,
            )
            error.log()
            return PublishOutcome(event, error)

        logger.debug("published %s to %s", event, self.routing_key)
        return PublishOutcome(event)
