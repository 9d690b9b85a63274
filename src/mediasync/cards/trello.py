"""Trello list reader."""

import logging
from typing import Any

import httpx

from mediasync.cards.card import Card
from mediasync.config import MediaSyncConfig
from mediasync.error_handling import CardSourceError

logger = logging.getLogger(__name__)


class TrelloCardSource:
    """Reads the cards of one Trello list, attachments included."""

    _BASE_URL = "https://api.trello.com/1"

    def __init__(self, config: MediaSyncConfig):
        self.config = config
        self.list_id = config.trello_list_id
        self.client = httpx.Client(
            base_url=self._BASE_URL,
            timeout=config.trello_request_timeout,
            headers={"User-Agent": "mediasync/0.1.0"},
        )

    def fetch_cards(self) -> list[Card]:
        """Return every card on the configured list.

        Raises:
            CardSourceError: If the list or its cards can't be read.
        """
        trello_list = self._request(f"/lists/{self.list_id}")
        logger.info(
            "listing cards in list '%s' (id: %s)",
            trello_list.get("name", ""),
            self.list_id,
        )

        payload = self._request(
            f"/lists/{self.list_id}/cards",
            {"attachments": "true"},
        )
        return [Card.from_api(card) for card in payload]

    def _request(self, endpoint: str, params: dict[str, str] | None = None) -> Any:
        query = {
            "key": self.config.trello_app_key or "",
            "token": self.config.trello_token or "",
        }
        if params:
            query.update(params)

        try:
            response = self.client.get(endpoint, params=query)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            msg = f"failed to read trello list '{self.list_id}': {e}"
            raise CardSourceError(msg, original_error=e) from e
        except ValueError as e:
            msg = f"trello returned invalid JSON for '{endpoint}'"
            raise CardSourceError(msg, original_error=e) from e

    def close(self) -> None:
        self.client.close()
