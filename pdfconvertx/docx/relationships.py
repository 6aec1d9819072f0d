"""Relationship and media bookkeeping for the document part."""

from __future__ import annotations

from hashlib import sha256
from typing import Iterator

from ..types import ExtractedImage
from .namespaces import REL_TYPES

__all__ = ["RelationshipManager", "image_extension"]

_EXTENSIONS = {
    "image/png": ".png",
    "image/jpeg": ".jpeg",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
}

# rId1 and rId2 belong to styles.xml and numbering.xml.
_FIRST_FREE_ID = 3


def image_extension(mime_type: str) -> str:
    return _EXTENSIONS.get(mime_type, ".png")


class RelationshipManager:
    """Allocates ``rId`` values and deduplicates identical image payloads."""

    def __init__(self) -> None:
        self._next_id = _FIRST_FREE_ID
        self._media: dict[str, tuple[str, str, bytes, str]] = {}
        self._relationships: list[tuple[str, str, str]] = []
        self._drawing_ids = 0

    def _allocate_id(self) -> str:
        rid = f"rId{self._next_id}"
        self._next_id += 1
        return rid

    def next_drawing_id(self) -> int:
        self._drawing_ids += 1
        return self._drawing_ids

    def register_image(self, image: ExtractedImage) -> str:
        digest = sha256(image.data).hexdigest()
        if digest in self._media:
            return self._media[digest][0]
        part_name = f"media/image{len(self._media) + 1}{image_extension(image.mime_type)}"
        rid = self._allocate_id()
        self._media[digest] = (rid, part_name, image.data, image.mime_type)
        self._relationships.append((rid, REL_TYPES["image"], part_name))
        return rid

    @property
    def image_count(self) -> int:
        return len(self._media)

    def iter_media(self) -> Iterator[tuple[str, bytes, str]]:
        for _, part_name, data, mime in sorted(self._media.values(), key=lambda item: item[1]):
            yield part_name, data, mime

    def iter_relationships(self) -> Iterator[tuple[str, str, str]]:
        yield from self._relationships
