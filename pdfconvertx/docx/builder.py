"""Alternative container pipeline built on python-docx."""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any, Sequence

from docx import Document
from docx.image.exceptions import UnrecognizedImageError
from docx.shared import Pt

from ..exceptions import ContainerGenerationError, ImageEmbeddingError
from ..intermediate import Block
from ..types import BlockKind, DocumentContent
from .elements import image_extent_points
from .parts import CoreProperties

LOGGER = logging.getLogger(__name__)

__all__ = ["build_with_python_docx"]


def _apply_core_properties(document, properties: CoreProperties) -> dict[str, Any]:
    core = document.core_properties
    applied: dict[str, Any] = {}
    for attribute, value in (
        ("title", properties.title),
        ("author", properties.creator),
        ("subject", properties.subject),
        ("keywords", properties.keywords),
    ):
        if value:
            setattr(core, attribute, value)
            applied[attribute] = value
    core.created = properties.created
    core.modified = properties.modified or properties.created
    core.revision = 1
    return applied


def build_with_python_docx(
    blocks: Sequence[Block],
    output_path: Path,
    content: DocumentContent,
    *,
    preserve_formatting: bool = True,
    embed_images: bool = True,
    preserve_metadata: bool = True,
) -> tuple[int, int, dict[str, Any]]:
    """Write ``blocks`` with python-docx. Returns paragraph count, image count and metadata."""

    document = Document()
    paragraphs = 0
    for block in blocks:
        if block.kind is BlockKind.HEADING and preserve_formatting:
            document.add_heading(block.text, level=min(max(block.level, 1), 3))
            paragraphs += 1
        elif block.kind is BlockKind.LIST:
            style = ("List Number" if block.ordered else "List Bullet") if preserve_formatting else None
            for item in block.items:
                document.add_paragraph(item, style=style)
                paragraphs += 1
        else:
            document.add_paragraph(block.text)
            paragraphs += 1

    image_count = 0
    if embed_images:
        for image in content.images:
            width, _height = image_extent_points(image)
            try:
                document.add_picture(io.BytesIO(image.data), width=Pt(width))
            except (UnrecognizedImageError, ValueError, ZeroDivisionError) as exc:
                raise ImageEmbeddingError(
                    f"Unable to embed image {image.name} from page {image.page_number}: {exc}"
                ) from exc
            image_count += 1

    metadata: dict[str, Any] = {}
    if preserve_metadata:
        metadata = _apply_core_properties(document, CoreProperties.from_metadata(content.metadata))

    try:
        document.save(str(output_path))
    except OSError as exc:
        raise ContainerGenerationError(f"Unable to save DOCX document {output_path}: {exc}") from exc
    LOGGER.debug("python-docx wrote %d paragraphs and %d images to %s", paragraphs, image_count, output_path)
    return paragraphs, image_count, metadata
