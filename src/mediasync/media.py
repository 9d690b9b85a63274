"""Media types shared by the card parser, catalog and discovery scanner."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum

# Ordinals are shared with the catalog columns and the discovery wire format.


class MediaKind(IntEnum):
    TV = 0
    MOVIE = 1

    @property
    def library_dir(self) -> str:
        """Top-level object store directory for this kind."""
        if self is MediaKind.MOVIE:
            # Movies live under "movies/" in the storage library layout
            return "movies"
        return self.name.lower()


class MetadataProvider(IntEnum):
    NONE = 0
    TVDB = 1
    TMDB = 2
    IMDB = 3


class SourceType(IntEnum):
    HTTP = 0
    TORRENT = 1
    FILE = 2


class CreatorKind(IntEnum):
    EXTERNAL_BOARD = 1


class CatalogStatus(IntEnum):
    PENDING_IDENTIFICATION = 5


@dataclass(frozen=True)
class MediaDescriptor:
    """Canonical acquisition request parsed from one card."""

    name: str
    media_kind: MediaKind
    metadata_provider: MetadataProvider
    metadata_id: str
    source_type: SourceType
    source_uri: str

    @property
    def is_valid(self) -> bool:
        return self.metadata_provider != MetadataProvider.NONE and bool(
            self.metadata_id,
        )

    def __str__(self) -> str:
        return (
            f"name='{self.name}',type={self.media_kind.name},"
            f"provider='{self.metadata_provider.name}',"
            f"provider_id={self.metadata_id},source={self.source_type.name},"
            f"source_uri={self.source_uri[:20]}"
        )


@dataclass
class DiscoveryEvent:
    """A media file found in storage for a catalog record."""

    media_id: str
    media_kind: MediaKind
    object_key: str
    season: int = 0
    episode: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __str__(self) -> str:
        if self.media_kind is MediaKind.MOVIE:
            return f"{self.object_key} (movie)"
        return f"{self.object_key} (S{self.season:02d}E{self.episode:02d})"
