"""DOCX container generation from an intermediate representation."""

from __future__ import annotations

import logging
import os
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from zipfile import ZIP_DEFLATED, ZipFile, ZipInfo

from ..exceptions import ContainerGenerationError
from ..intermediate import read_blocks, strip_markup
from ..types import ConversionOptions, DocumentContent, ExtractedImage, IntermediateFormat
from .builder import build_with_python_docx
from .elements import build_document_xml
from .parts import (
    CoreProperties,
    PackageStatistics,
    build_app_properties_xml,
    build_content_types_xml,
    build_core_properties_xml,
    build_document_relationships_xml,
    build_numbering_xml,
    build_root_relationships_xml,
    build_styles_xml,
)
from .relationships import RelationshipManager
from .validation import ZIP_TIMESTAMP, validate_content_types, validate_relationships, validate_xml_parts

LOGGER = logging.getLogger(__name__)

__all__ = ["ContainerGenerator", "ContainerSummary", "estimate_word_count", "write_docx"]


@dataclass
class ContainerSummary:
    file_size: int
    word_count: int
    metadata: dict[str, Any] = field(default_factory=dict)
    paragraph_count: int = 0
    image_count: int = 0


def estimate_word_count(intermediate: str, fmt: IntermediateFormat | str) -> int:
    return len(strip_markup(intermediate, fmt).split())


def _zipinfo(name: str) -> ZipInfo:
    info = ZipInfo(name, date_time=ZIP_TIMESTAMP)
    info.compress_type = ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    return info


def _images_by_page(images: tuple[ExtractedImage, ...]) -> dict[int, list[ExtractedImage]]:
    grouped: dict[int, list[ExtractedImage]] = defaultdict(list)
    for image in images:
        grouped[image.page_number].append(image)
    return grouped


def _core_properties(content: DocumentContent, preserve_metadata: bool) -> CoreProperties:
    if preserve_metadata:
        return CoreProperties.from_metadata(content.metadata)
    return CoreProperties()


def write_docx(
    intermediate: str,
    fmt: IntermediateFormat | str,
    output_path: Path,
    content: DocumentContent,
    *,
    preserve_formatting: bool = True,
    embed_images: bool = True,
    preserve_metadata: bool = True,
) -> ContainerSummary:
    """Assemble a DOCX package for ``intermediate`` and write it to ``output_path``.

    The archive is deterministic: fixed member timestamps and ordering, so
    identical inputs produce identical bytes.
    """

    blocks = read_blocks(intermediate, fmt)
    relationships = RelationshipManager()
    stats = PackageStatistics(pages=content.page_count)
    images = _images_by_page(content.images) if embed_images else {}
    document_xml = build_document_xml(
        blocks,
        relationships,
        stats,
        images_by_page=images,
        preserve_formatting=preserve_formatting,
    )
    core = _core_properties(content, preserve_metadata)

    media_parts = list(relationships.iter_media())
    media_defaults = sorted({(Path(name).suffix.lstrip("."), mime) for name, _, mime in media_parts})
    validate_relationships(relationships, media_parts)
    content_types = build_content_types_xml(media_defaults)
    validate_content_types(content_types, media_defaults)

    xml_payloads = [
        ("[Content_Types].xml", content_types),
        ("_rels/.rels", build_root_relationships_xml()),
        ("word/document.xml", document_xml),
        ("word/_rels/document.xml.rels", build_document_relationships_xml(relationships)),
        ("word/styles.xml", build_styles_xml()),
        ("word/numbering.xml", build_numbering_xml()),
        ("docProps/core.xml", build_core_properties_xml(core)),
        ("docProps/app.xml", build_app_properties_xml(stats)),
    ]
    validate_xml_parts(xml_payloads)

    staging = output_path.with_name(f".{output_path.name}.part")
    try:
        with ZipFile(staging, "w", compression=ZIP_DEFLATED) as archive:
            for name, data in xml_payloads:
                archive.writestr(_zipinfo(name), data)
            for part_name, data, _ in media_parts:
                archive.writestr(_zipinfo(f"word/{part_name}"), data)
        os.replace(staging, output_path)
    except OSError as exc:
        staging.unlink(missing_ok=True)
        raise ContainerGenerationError(f"Unable to write DOCX archive {output_path}: {exc}") from exc

    return ContainerSummary(
        file_size=output_path.stat().st_size,
        word_count=estimate_word_count(intermediate, fmt),
        metadata={key: value for key, value in vars(core).items() if value is not None},
        paragraph_count=stats.paragraphs,
        image_count=relationships.image_count,
    )


class ContainerGenerator:
    """Chooses between the package writer and the python-docx builder."""

    def generate(
        self,
        intermediate: str,
        output_path: Path,
        content: DocumentContent,
        options: ConversionOptions,
    ) -> ContainerSummary:
        fmt = options.intermediate_format
        embed_images = options.extract_images and options.quality_level != "low"
        if options.alternative_pipeline:
            LOGGER.info("Building %s with the python-docx pipeline", output_path.name)
            blocks = read_blocks(intermediate, fmt)
            paragraphs, image_count, metadata = build_with_python_docx(
                blocks,
                output_path,
                content,
                preserve_formatting=options.preserve_formatting,
                embed_images=embed_images,
                preserve_metadata=options.preserve_metadata,
            )
            return ContainerSummary(
                file_size=output_path.stat().st_size,
                word_count=estimate_word_count(intermediate, fmt),
                metadata=metadata,
                paragraph_count=paragraphs,
                image_count=image_count,
            )
        return write_docx(
            intermediate,
            fmt,
            output_path,
            content,
            preserve_formatting=options.preserve_formatting,
            embed_images=embed_images,
            preserve_metadata=options.preserve_metadata,
        )
