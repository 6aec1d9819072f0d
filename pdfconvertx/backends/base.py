"""Source parser protocol consumed by the content extractor."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping, Protocol

from ..types import PageRange


@dataclass(frozen=True)
class RawImage:
    """Image payload as found in the source document, before inspection."""

    page_number: int
    name: str
    data: bytes


@dataclass
class ParsedDocument(ABC):
    """A parsed source document with backend-specific page access."""

    page_count: int
    metadata: Mapping[str, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @abstractmethod
    def page_text(self, index: int) -> str:
        """Return the raw text of the zero-based page ``index``."""

    @abstractmethod
    def iter_images(self, indices: Iterable[int]) -> Iterable[RawImage]:
        """Yield the raw images found on the zero-based pages ``indices``."""


class SourceParser(Protocol):
    """Protocol for the collaborator that reads the binary source format."""

    def probe(self, path: Path) -> None:
        """Raise :class:`InvalidInputError` unless ``path`` looks like a readable PDF."""

    def parse(
        self,
        path: Path,
        *,
        extract_text: bool = True,
        extract_images: bool = False,
        extract_metadata: bool = True,
        page_range: PageRange | None = None,
    ) -> ParsedDocument:
        """Parse ``path`` and return a :class:`ParsedDocument`."""
