"""pypdf implementation of the source parser."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..exceptions import ContentExtractionError, InvalidInputError
from ..types import PageRange
from .base import ParsedDocument, RawImage, SourceParser

LOGGER = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF-"
_SIGNATURE_WINDOW = 1024


def normalise_metadata(raw: Mapping[str, object] | None) -> dict[str, str]:
    cleaned: dict[str, str] = {}
    for key, value in (raw or {}).items():
        if not value:
            continue
        normalized_key = key[1:] if key.startswith("/") else key
        cleaned[normalized_key] = str(value)
    return cleaned


@dataclass
class PypdfParsedDocument(ParsedDocument):
    reader: PdfReader | None = None

    def page_text(self, index: int) -> str:
        page = self.reader.pages[index]
        return page.extract_text() or ""

    def iter_images(self, indices: Iterable[int]) -> Iterable[RawImage]:
        for index in indices:
            try:
                images = list(self.reader.pages[index].images)
            except Exception as exc:  # pypdf raises a variety of decoder errors
                LOGGER.warning("Unable to enumerate images on page %d: %s", index + 1, exc)
                self.warnings.append(f"page {index + 1}: {exc}")
                continue
            for image in images:
                yield RawImage(page_number=index + 1, name=Path(image.name).stem, data=image.data)


class PypdfSourceParser(SourceParser):
    """Source parser that uses `pypdf` under the hood."""

    def probe(self, path: Path) -> None:
        if not path.exists() or not path.is_file():
            raise InvalidInputError(f"Input file not found: {path}")
        try:
            with path.open("rb") as handle:
                head = handle.read(_SIGNATURE_WINDOW)
        except OSError as exc:
            raise InvalidInputError(f"Unable to read input file: {path}. Error: {exc}") from exc
        if PDF_SIGNATURE not in head:
            raise InvalidInputError(f"Not a PDF document (missing %PDF signature): {path}")
        reader = self._open(path, InvalidInputError)
        if len(reader.pages) == 0:
            raise InvalidInputError(f"PDF has no pages: {path}")

    def parse(
        self,
        path: Path,
        *,
        extract_text: bool = True,
        extract_images: bool = False,
        extract_metadata: bool = True,
        page_range: PageRange | None = None,
    ) -> PypdfParsedDocument:
        reader = self._open(path, ContentExtractionError)
        metadata = normalise_metadata(reader.metadata) if extract_metadata else {}
        LOGGER.debug(
            "Parsed %s: %d pages (text=%s, images=%s, range=%s)",
            path,
            len(reader.pages),
            extract_text,
            extract_images,
            page_range,
        )
        return PypdfParsedDocument(page_count=len(reader.pages), metadata=metadata, reader=reader)

    def _open(self, path: Path, error_cls: type[InvalidInputError] | type[ContentExtractionError]) -> PdfReader:
        try:
            reader = PdfReader(io.BytesIO(path.read_bytes()))
        except PdfReadError as exc:
            raise error_cls(f"Corrupted or invalid PDF file: {path}. Error: {exc}") from exc
        except OSError as exc:
            raise error_cls(f"Unable to read PDF file: {path}. Error: {exc}") from exc
        except Exception as exc:
            raise error_cls(f"Unexpected error reading PDF: {path}. Error: {exc}") from exc

        if reader.is_encrypted:
            try:
                decrypted = reader.decrypt("")
            except Exception as exc:
                raise InvalidInputError(f"Unable to decrypt PDF: {path}. Error: {exc}") from exc
            if decrypted == 0:
                raise InvalidInputError(f"PDF is encrypted and cannot be processed: {path}")
        return reader
