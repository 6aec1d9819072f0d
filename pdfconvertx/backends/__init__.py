"""Source parser backends for pdfconvertx."""

from .base import ParsedDocument, RawImage, SourceParser
from .pypdf_backend import PypdfParsedDocument, PypdfSourceParser

__all__ = [
    "ParsedDocument",
    "PypdfParsedDocument",
    "PypdfSourceParser",
    "RawImage",
    "SourceParser",
]
