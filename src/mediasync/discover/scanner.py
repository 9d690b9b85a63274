"""Discovery of already-downloaded media files in object storage."""

from __future__ import annotations

import logging
import posixpath
import re
from typing import TYPE_CHECKING

from mediasync.error_handling import NoFilesFoundError, ObjectStoreError
from mediasync.media import DiscoveryEvent, MediaKind

if TYPE_CHECKING:
    from mediasync.services.objectstore import ObjectStore

logger = logging.getLogger(__name__)

# Group 1 is the season number, group 2 the episode number; ASCII digits only
EPISODE_PATTERN = re.compile(r"S(\d+)E(\d+)", re.ASCII)

MEDIA_FILE_EXTENSION = ".mkv"


def library_prefix(media_kind: MediaKind, display_name: str) -> str:
    """Object key prefix holding a title's files, e.g. ``tv/Example Show``."""
    return f"{media_kind.library_dir}/{display_name}"


def parse_episode_key(key: str) -> tuple[int, int] | None:
    """Return (season, episode) from the first ``S<n>E<n>`` in a key."""
    match = EPISODE_PATTERN.search(key)
    if not match:
        return None

    try:
        season = int(match.group(1))
        episode = int(match.group(2))
    except ValueError:
        return None
    return season, episode


class FileDiscoveryScanner:
    """Finds the media files stored for a catalog record."""

    def __init__(self, object_store: ObjectStore):
        self.object_store = object_store

    def discover(
        self,
        media_kind: MediaKind,
        media_id: str,
        display_name: str,
    ) -> list[DiscoveryEvent]:
        """Build one discovery event per media file stored for a title.

        Movies stop at the first media file found. TV keys without an
        ``S<n>E<n>`` marker (extras and the like) are skipped.

        Raises:
            NoFilesFoundError: If no qualifying file exists under the prefix.
        """
        prefix = library_prefix(media_kind, display_name)
        logger.info("searching for media files for '%s' in '%s'", display_name, prefix)

        events: list[DiscoveryEvent] = []
        try:
            for key in self.object_store.list_keys(prefix):
                event = self._event_for_key(media_kind, media_id, key)
                if event is None:
                    continue

                events.append(event)
                if media_kind is MediaKind.MOVIE:
                    break
        except ObjectStoreError as e:
            # Keep whatever was listed before the failure
            e.log()

        if not events:
            raise NoFilesFoundError(prefix)
        return events

    def _event_for_key(
        self,
        media_kind: MediaKind,
        media_id: str,
        key: str,
    ) -> DiscoveryEvent | None:
        if not key.endswith(MEDIA_FILE_EXTENSION):
            return None

        season = episode = 0
        if media_kind is not MediaKind.MOVIE:
            parsed = parse_episode_key(key)
            if parsed is None:
                logger.debug("skipping non-episode file '%s'", key)
                return None
            season, episode = parsed

        logger.info(
            "found season %d episode %d in '%s'",
            season,
            episode,
            posixpath.basename(key),
        )
        return DiscoveryEvent(
            media_id=media_id,
            media_kind=media_kind,
            object_key=key,
            season=season,
            episode=episode,
        )
