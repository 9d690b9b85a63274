"""Turn card text and attachments into a media descriptor.

Everything here is pure; the pattern contracts are:

* ``SOURCE_LINK_PATTERN`` matches ``[label](uri)``. Group 1 (the label, word
  characters, ASCII only) is ignored, group 2 is the raw source URI. ``.+`` is
  greedy and stops at the end of the line, so the URI runs to the last ``)``
  on that line.
* Metadata ids are the fifth ``/``-separated segment of the attachment URL,
  e.g. ``https://thetvdb.com/series/12345/episodes`` -> ``12345``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from mediasync.error_handling import (
    MalformedDescriptionError,
    RedundantCardSkipped,
    UnknownSourceSchemeError,
)
from mediasync.media import MediaDescriptor, MediaKind, MetadataProvider, SourceType

if TYPE_CHECKING:
    from mediasync.cards.card import Attachment, Card

logger = logging.getLogger(__name__)

SOURCE_LINK_PATTERN = re.compile(r"\[(\w+)\]\((.+)\)", re.ASCII)

REDUNDANT_CARD_TOKEN = "Season"
MOVIE_LABEL = "Movie"

PROVIDER_ATTACHMENTS = {
    "TVDB": MetadataProvider.TVDB,
    "TMDB": MetadataProvider.TMDB,
    "IMDB": MetadataProvider.IMDB,
}

SCHEME_ALIASES = {
    "magnet": "torrent",
    "https": "http",
}


def extract_metadata_id(url: str) -> str | None:
    """Return the id segment of a metadata provider URL, or None if too short."""
    parts = url.split("/")
    if len(parts) < 5:
        return None
    return parts[4]


def extract_source_uri(description: str) -> str | None:
    """Return the URI of the first ``[label](uri)`` link in a description."""
    match = SOURCE_LINK_PATTERN.search(description)
    if not match:
        return None
    return match.group(2)


def resolve_source_type(uri: str) -> SourceType:
    """Map a source URI's scheme to a SourceType.

    Raises:
        UnknownSourceSchemeError: If the scheme is missing or unknown.
    """
    try:
        scheme = urlsplit(uri).scheme
    except ValueError as e:
        raise UnknownSourceSchemeError(
            "",
            details=f"could not parse source uri: {e}",
            original_error=e,
        ) from e

    scheme = SCHEME_ALIASES.get(scheme, scheme)
    try:
        return SourceType[scheme.upper()]
    except KeyError:
        raise UnknownSourceSchemeError(scheme) from None


def scan_attachments(
    attachments: Iterable[Attachment],
) -> tuple[MetadataProvider, str]:
    """Find the metadata provider and id among a card's attachments.

    Attachments are scanned in order; a later provider attachment replaces an
    earlier one.
    """
    provider = MetadataProvider.NONE
    metadata_id = ""
    for attachment in attachments:
        logger.debug("scanning attachment '%s'", attachment.name)
        matched = PROVIDER_ATTACHMENTS.get(attachment.name)
        if matched is None:
            continue

        extracted = extract_metadata_id(attachment.url)
        if extracted is None:
            logger.warning(
                "ignoring %s attachment with unexpected url '%s'",
                attachment.name,
                attachment.url,
            )
            continue

        provider = matched
        metadata_id = extracted
    return provider, metadata_id


def media_kind_from_labels(labels: Iterable[str]) -> MediaKind:
    if MOVIE_LABEL in labels:
        logger.info("setting media type to Movie")
        return MediaKind.MOVIE
    return MediaKind.TV


def parse_card(
    name: str,
    description: str,
    attachments: Iterable[Attachment],
    labels: Iterable[str],
) -> MediaDescriptor:
    """Parse one card into a valid MediaDescriptor.

    Raises:
        RedundantCardSkipped: The card is a season sub-card.
        MalformedDescriptionError: No source link, or no provider attachment.
        UnknownSourceSchemeError: The source link's scheme is not supported.
    """
    if REDUNDANT_CARD_TOKEN in name:
        raise RedundantCardSkipped(name)

    provider, metadata_id = scan_attachments(attachments)
    media_kind = media_kind_from_labels(labels)

    source_uri = extract_source_uri(description)
    if source_uri is None:
        raise MalformedDescriptionError(
            f"skipping invalid card '{name}' (desc)",
            card_name=name,
        )

    try:
        source_type = resolve_source_type(source_uri)
    except UnknownSourceSchemeError as e:
        e.card_name = name
        raise

    descriptor = MediaDescriptor(
        name=name,
        media_kind=media_kind,
        metadata_provider=provider,
        metadata_id=metadata_id,
        source_type=source_type,
        source_uri=source_uri,
    )
    logger.info("processing card: %s", descriptor)

    if not descriptor.is_valid:
        raise MalformedDescriptionError(
            f"skipping invalid card '{name}' (no metadata provider)",
            card_name=name,
        )
    return descriptor


def parse(card: Card) -> MediaDescriptor:
    """Parse a Card fetched from the card source."""
    return parse_card(card.name, card.description, card.attachments, card.labels)
