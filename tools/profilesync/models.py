"""Simplified records written to the output documents."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class MediaImage:
    url: str
    width: int = 0
    height: int = 0


@dataclass(frozen=True)
class MediaItem:
    """One Instagram post reduced to its images, caption and time."""

    id: str
    timestamp: str
    text: str
    image: MediaImage
    carousel_media: list[MediaImage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GalleryImage:
    src: str
    width: str
    height: str
    alt: str
    date: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VSCOPhoto:
    width: int
    height: int
    id: str
    date: Any
    description: str
    location: dict[str, float] | None
    src: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CatalogEntry:
    """A NeoDB shelf mark flattened with the time it was marked."""

    title: str
    description: str
    category: str
    type: str
    uuid: str
    rating: float | None
    rating_count: int | None
    cover_image_url: str
    external_resources: Any
    created_time: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_category_dict(self) -> dict[str, Any]:
        data = asdict(self)
        del data["created_time"]
        return data
