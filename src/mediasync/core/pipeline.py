"""Card-by-card reconciliation and discovery run."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from mediasync.cards.parser import parse
from mediasync.error_handling import (
    ErrorCategory,
    NoFilesFoundError,
    RedundantCardSkipped,
    SyncError,
)

if TYPE_CHECKING:
    from mediasync.cards.card import Card
    from mediasync.catalog.reconciler import CatalogReconciler
    from mediasync.discover.scanner import FileDiscoveryScanner
    from mediasync.media import MediaDescriptor
    from mediasync.publish.publisher import EventPublisher

logger = logging.getLogger(__name__)


class CardSource(Protocol):
    def fetch_cards(self) -> list[Card]:
        """Return all cards; raise CardSourceError if the list can't be read."""
        ...


class CardStage(Enum):
    """Furthest stage a card reached during a run."""

    FETCHED = "fetched"
    PARSED = "parsed"
    RECONCILED = "reconciled"
    SCANNED = "scanned"
    PUBLISHED = "published"
    SKIPPED = "skipped"


@dataclass
class CardOutcome:
    """Result of processing one card."""

    card: Card
    stage: CardStage = CardStage.FETCHED
    descriptor: MediaDescriptor | None = None
    media_id: str | None = None
    reason: str | None = None
    failed_stage: CardStage | None = None
    error: SyncError | None = None
    files_found: int = 0
    events_published: int = 0

    @property
    def skipped(self) -> bool:
        return self.stage is CardStage.SKIPPED

    def skip(self, error: SyncError) -> CardOutcome:
        self.failed_stage = self.stage
        self.stage = CardStage.SKIPPED
        self.reason = error.message
        self.error = error
        return self


@dataclass
class RunSummary:
    outcomes: list[CardOutcome] = field(default_factory=list)

    @property
    def stage_counts(self) -> dict[CardStage, int]:
        return dict(Counter(outcome.stage for outcome in self.outcomes))

    @property
    def skipped(self) -> list[CardOutcome]:
        return [outcome for outcome in self.outcomes if outcome.skipped]

    @property
    def events_published(self) -> int:
        return sum(outcome.events_published for outcome in self.outcomes)


class PipelineDriver:
    """Runs parse → reconcile → discover → publish for each card in turn."""

    def __init__(
        self,
        card_source: CardSource,
        reconciler: CatalogReconciler,
        scanner: FileDiscoveryScanner,
        publisher: EventPublisher,
    ):
        self.card_source = card_source
        self.reconciler = reconciler
        self.scanner = scanner
        self.publisher = publisher

    def run(self) -> RunSummary:
        """Process every card on the list.

        Raises:
            CardSourceError: If the card list can't be fetched.
        """
        cards = self.card_source.fetch_cards()
        logger.info("processing %d cards", len(cards))

        summary = RunSummary()
        for card in cards:
            summary.outcomes.append(self.process_card(card))

        logger.info(
            "run complete: %d cards, %d skipped, %d events published",
            len(summary.outcomes),
            len(summary.skipped),
            summary.events_published,
        )
        return summary

    def process_card(self, card: Card) -> CardOutcome:
        """Process one card; failures are recorded on the outcome, not raised."""
        outcome = CardOutcome(card=card)
        try:
            return self._advance(outcome)
        except SyncError as e:
            e.log()
            return outcome.skip(e)
        except Exception as e:
            logger.exception("unexpected error processing card %s", card)
            return outcome.skip(
                SyncError(
                    f"unexpected error: {e}",
                    ErrorCategory.SYSTEM,
                    original_error=e,
                ),
            )

    def _advance(self, outcome: CardOutcome) -> CardOutcome:
        card = outcome.card

        try:
            outcome.descriptor = parse(card)
        except RedundantCardSkipped as e:
            logger.info("skipping redundant season card '%s'", card.name)
            return outcome.skip(e)
        outcome.stage = CardStage.PARSED

        descriptor = outcome.descriptor
        outcome.media_id = self.reconciler.reconcile(card.id, descriptor)
        outcome.stage = CardStage.RECONCILED

        try:
            events = self.scanner.discover(
                descriptor.media_kind,
                outcome.media_id,
                descriptor.name,
            )
        except NoFilesFoundError as e:
            # The catalog upsert above stays in place
            logger.error(
                "failed to find existing episodes for '%s': %s",
                descriptor.name,
                e.message,
            )
            return outcome.skip(e)
        outcome.files_found = len(events)
        outcome.stage = CardStage.SCANNED

        results = self.publisher.publish(events)
        outcome.events_published = sum(1 for result in results if result.published)
        if outcome.events_published < len(results):
            logger.warning(
                "published %d of %d events for '%s'",
                outcome.events_published,
                len(results),
                descriptor.name,
            )
        outcome.stage = CardStage.PUBLISHED
        return outcome
