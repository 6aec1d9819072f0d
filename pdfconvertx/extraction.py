"""Content extraction: drives the source parser page by page."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, Optional, Sequence

from .backends.base import SourceParser
from .exceptions import FileSizeLimitError, ImageEmbeddingError, InvalidInputError
from .images import ImageInspector
from .structure import analyze_page
from .types import ConversionOptions, DocumentContent, ExtractedImage, PageContent, PageStructure
from .utils import Deadline, strip_xml_illegal

LOGGER = logging.getLogger(__name__)


def _chunks(indices: Sequence[int], size: int) -> Iterator[Sequence[int]]:
    for offset in range(0, len(indices), size):
        yield indices[offset : offset + size]


class ContentExtractor:
    """Validates the input and produces a :class:`DocumentContent` snapshot."""

    def __init__(self, parser: SourceParser, image_inspector: Optional[ImageInspector] = None) -> None:
        self.parser = parser
        self.image_inspector = image_inspector or ImageInspector()

    def validate(self, input_path: Path, options: ConversionOptions) -> int:
        """Check existence, size limit and format signature. Returns the file size."""

        if not input_path.exists() or not input_path.is_file():
            raise InvalidInputError(f"Input file not found: {input_path}")
        file_size = input_path.stat().st_size
        if options.max_file_size_bytes and file_size > options.max_file_size_bytes:
            raise FileSizeLimitError(
                f"File size {file_size} bytes exceeds the limit of "
                f"{options.max_file_size_bytes} bytes: {input_path}",
                file_size=file_size,
                limit=options.max_file_size_bytes,
            )
        self.parser.probe(input_path)
        return file_size

    def extract(
        self,
        input_path: Path,
        options: ConversionOptions,
        deadline: Optional[Deadline] = None,
    ) -> DocumentContent:
        parsed = self.parser.parse(
            input_path,
            extract_text=True,
            extract_images=options.extract_images,
            extract_metadata=options.preserve_metadata,
            page_range=options.page_range,
        )

        if options.page_range is not None:
            if options.page_range.start > parsed.page_count:
                raise InvalidInputError(
                    f"Page range {options.page_range} is outside the document "
                    f"({parsed.page_count} pages)"
                )
            indices = list(options.page_range.clamp(parsed.page_count))
        else:
            indices = list(range(parsed.page_count))

        batch_size = options.page_batch_size or max(len(indices), 1)
        pages: list[PageContent] = []
        warnings: list[str] = []
        for chunk in _chunks(indices, batch_size):
            if deadline is not None:
                deadline.check("content_extraction")
            for index in chunk:
                pages.append(self._extract_page(parsed, index, warnings))
            LOGGER.debug("Extracted pages %d-%d of %s", chunk[0] + 1, chunk[-1] + 1, input_path.name)

        images: list[ExtractedImage] = []
        if options.extract_images:
            images = self._extract_images(parsed, indices, warnings)
        warnings.extend(parsed.warnings)

        return DocumentContent(
            page_count=parsed.page_count,
            pages=tuple(pages),
            images=tuple(images),
            metadata=(
                {key: strip_xml_illegal(str(value)) for key, value in parsed.metadata.items()}
                if options.preserve_metadata
                else {}
            ),
            warnings=tuple(warnings),
        )

    @staticmethod
    def _extract_page(parsed, index: int, warnings: list[str]) -> PageContent:
        page_number = index + 1
        try:
            raw_text = strip_xml_illegal(parsed.page_text(index))
        except Exception as exc:  # collaborator failures stay local to the page
            LOGGER.warning("Text extraction failed on page %d: %s", page_number, exc)
            warnings.append(f"Page {page_number}: text extraction failed ({exc})")
            return PageContent(page_number, "", PageStructure(), error=str(exc) or type(exc).__name__)
        return PageContent(page_number, raw_text, analyze_page(raw_text))

    def _extract_images(self, parsed, indices: Sequence[int], warnings: list[str]) -> list[ExtractedImage]:
        images: list[ExtractedImage] = []
        for raw in parsed.iter_images(indices):
            try:
                images.append(self.image_inspector.inspect(raw))
            except ImageEmbeddingError as exc:
                LOGGER.warning("Dropping image %s on page %d: %s", raw.name, raw.page_number, exc)
                warnings.append(f"Page {raw.page_number}: image {raw.name} dropped ({exc.message})")
        return images


__all__ = ["ContentExtractor"]
