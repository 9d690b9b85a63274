"""Card records as delivered by the card source."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Attachment:
    name: str
    url: str


@dataclass
class Card:
    """One requested title on the board."""

    id: str
    name: str
    description: str = ""
    attachments: list[Attachment] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Card":
        """Build a card from a Trello card payload fetched with attachments."""
        return cls(
            id=payload["id"],
            name=payload.get("name", ""),
            description=payload.get("desc") or "",
            attachments=[
                Attachment(name=a.get("name", ""), url=a.get("url", ""))
                for a in payload.get("attachments") or []
            ],
            labels=[
                label.get("name", "")
                for label in payload.get("labels") or []
                if label.get("name")
            ],
        )

    def __str__(self) -> str:
        return f"{self.name} ({self.id})"
