"""Record shapes persisted in the content store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .release import parse_iso


@dataclass
class GeneratedItem:
    """A sermon or blog post, keyed by ``id`` in its namespace."""

    id: str
    title: str
    text: str
    created_at: str
    topic: Optional[str] = None
    audio_data: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    generated: bool = True
    slug: Optional[str] = None
    image_key: Optional[str] = None

    @property
    def created(self) -> datetime:
        return parse_iso(self.created_at)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "topic": self.topic,
            "text": self.text,
            "audioData": self.audio_data,
            "tags": list(self.tags),
            "createdAt": self.created_at,
            "generated": self.generated,
        }
        if self.slug is not None:
            data["slug"] = self.slug
        if self.image_key is not None:
            data["imageKey"] = self.image_key
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: Optional[str] = None) -> "GeneratedItem":
        # Older blog records stored the body under ``content``
        return cls(
            id=str(data.get("id") or key or ""),
            title=str(data.get("title") or ""),
            text=str(data.get("text") or data.get("content") or ""),
            created_at=str(data.get("createdAt") or ""),
            topic=data.get("topic"),
            audio_data=data.get("audioData"),
            tags=[str(t) for t in data.get("tags") or []],
            generated=bool(data.get("generated", True)),
            slug=data.get("slug"),
            image_key=data.get("imageKey"),
        )


def newest_first(items: List[GeneratedItem]) -> List[GeneratedItem]:
    """Sort by ``createdAt`` descending; unparseable timestamps sink to the end."""

    def _key(item: GeneratedItem) -> float:
        try:
            return item.created.timestamp()
        except ValueError:
            return float("-inf")

    return sorted(items, key=_key, reverse=True)
