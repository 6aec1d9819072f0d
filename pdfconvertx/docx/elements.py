"""WordprocessingML element builders for the document body."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence
from xml.etree.ElementTree import Element, SubElement

from ..intermediate import Block
from ..types import BlockKind, ExtractedImage
from .namespaces import emus, qn, serialize, twips
from .parts import BULLET_NUM_ID, DECIMAL_NUM_ID, PackageStatistics
from .relationships import RelationshipManager

__all__ = [
    "CONTENT_WIDTH_PT",
    "build_document_xml",
    "build_paragraph",
    "build_picture_paragraph",
    "build_section_properties",
    "image_extent_points",
]

# US Letter with one inch margins.
PAGE_WIDTH_PT = 612.0
PAGE_HEIGHT_PT = 792.0
MARGIN_PT = 72.0
CONTENT_WIDTH_PT = PAGE_WIDTH_PT - 2 * MARGIN_PT

_PICTURE_URI = "http://schemas.openxmlformats.org/drawingml/2006/picture"
_XML_SPACE = qn("xml:space")


def build_paragraph(
    text: str,
    *,
    style: str | None = None,
    num_id: int | None = None,
    level: int = 0,
) -> Element:
    p = Element(qn("w:p"))
    if style or num_id is not None:
        p_pr = SubElement(p, qn("w:pPr"))
        if style:
            SubElement(p_pr, qn("w:pStyle"), {qn("w:val"): style})
        if num_id is not None:
            num_pr = SubElement(p_pr, qn("w:numPr"))
            SubElement(num_pr, qn("w:ilvl"), {qn("w:val"): str(max(0, min(level, 8)))})
            SubElement(num_pr, qn("w:numId"), {qn("w:val"): str(num_id)})
    run = SubElement(p, qn("w:r"))
    SubElement(run, qn("w:t"), {_XML_SPACE: "preserve"}).text = text
    return p


def image_extent_points(image: ExtractedImage, max_width: float = CONTENT_WIDTH_PT) -> tuple[float, float]:
    """Size of ``image`` in points, scaled down to fit ``max_width``."""
    dpi = image.metadata.get("dpi") if image.metadata else None
    horizontal_dpi = float(dpi[0]) if dpi else 72.0
    vertical_dpi = float(dpi[1]) if dpi and len(dpi) > 1 else horizontal_dpi
    width = max(image.width, 1) * 72.0 / (horizontal_dpi or 72.0)
    height = max(image.height, 1) * 72.0 / (vertical_dpi or 72.0)
    if width > max_width:
        height *= max_width / width
        width = max_width
    return width, height


def build_picture_paragraph(image: ExtractedImage, relationships: RelationshipManager) -> Element:
    rid = relationships.register_image(image)
    drawing_id = relationships.next_drawing_id()
    width, height = image_extent_points(image)
    cx, cy = str(emus(width)), str(emus(height))
    name = f"{image.name or 'Picture'} {drawing_id}"

    p = Element(qn("w:p"))
    SubElement(SubElement(p, qn("w:pPr")), qn("w:jc"), {qn("w:val"): "center"})
    run = SubElement(p, qn("w:r"))
    inline = SubElement(
        SubElement(run, qn("w:drawing")),
        qn("wp:inline"),
        {"distT": "0", "distB": "0", "distL": "0", "distR": "0"},
    )
    SubElement(inline, qn("wp:extent"), {"cx": cx, "cy": cy})
    SubElement(inline, qn("wp:effectExtent"), {"l": "0", "t": "0", "r": "0", "b": "0"})
    SubElement(inline, qn("wp:docPr"), {"id": str(drawing_id), "name": name})
    SubElement(inline, qn("wp:cNvGraphicFramePr"))

    graphic_data = SubElement(SubElement(inline, qn("a:graphic")), qn("a:graphicData"), {"uri": _PICTURE_URI})
    pic = SubElement(graphic_data, qn("pic:pic"))
    nv_pic_pr = SubElement(pic, qn("pic:nvPicPr"))
    SubElement(nv_pic_pr, qn("pic:cNvPr"), {"id": "0", "name": name})
    SubElement(nv_pic_pr, qn("pic:cNvPicPr"))
    blip_fill = SubElement(pic, qn("pic:blipFill"))
    SubElement(blip_fill, qn("a:blip"), {qn("r:embed"): rid})
    SubElement(SubElement(blip_fill, qn("a:stretch")), qn("a:fillRect"))
    sp_pr = SubElement(pic, qn("pic:spPr"))
    xfrm = SubElement(sp_pr, qn("a:xfrm"))
    SubElement(xfrm, qn("a:off"), {"x": "0", "y": "0"})
    SubElement(xfrm, qn("a:ext"), {"cx": cx, "cy": cy})
    SubElement(SubElement(sp_pr, qn("a:prstGeom"), {"prst": "rect"}), qn("a:avLst"))
    return p


def build_section_properties() -> Element:
    sect_pr = Element(qn("w:sectPr"))
    SubElement(sect_pr, qn("w:pgSz"), {qn("w:w"): str(twips(PAGE_WIDTH_PT)), qn("w:h"): str(twips(PAGE_HEIGHT_PT))})
    margin = str(twips(MARGIN_PT))
    SubElement(
        sect_pr,
        qn("w:pgMar"),
        {
            qn("w:top"): margin,
            qn("w:bottom"): margin,
            qn("w:left"): margin,
            qn("w:right"): margin,
            qn("w:header"): str(twips(36)),
            qn("w:footer"): str(twips(36)),
            qn("w:gutter"): "0",
        },
    )
    return sect_pr


def _block_paragraphs(block: Block, preserve_formatting: bool) -> Iterable[Element]:
    if block.kind is BlockKind.HEADING:
        style = f"Heading{min(max(block.level, 1), 3)}" if preserve_formatting else None
        yield build_paragraph(block.text, style=style)
    elif block.kind is BlockKind.LIST:
        num_id = DECIMAL_NUM_ID if block.ordered else BULLET_NUM_ID
        for item in block.items:
            if preserve_formatting:
                yield build_paragraph(item, style="ListParagraph", num_id=num_id)
            else:
                yield build_paragraph(item)
    else:
        yield build_paragraph(block.text)


def build_document_xml(
    blocks: Sequence[Block],
    relationships: RelationshipManager,
    stats: PackageStatistics,
    *,
    images_by_page: Mapping[int, Sequence[ExtractedImage]] | None = None,
    preserve_formatting: bool = True,
) -> bytes:
    """Render ``blocks`` into ``word/document.xml``.

    Images follow the text of the page they were found on.
    """

    body = Element(qn("w:body"))
    pending = dict(images_by_page or {})

    def flush_images(page_number: int) -> None:
        for image in pending.pop(page_number, ()):
            body.append(build_picture_paragraph(image, relationships))

    current_page: int | None = None
    for block in blocks:
        if current_page is not None and block.page_number != current_page:
            flush_images(current_page)
        current_page = block.page_number
        for paragraph in _block_paragraphs(block, preserve_formatting):
            body.append(paragraph)
        for text in block.iter_text():
            stats.add_text(text)
    if current_page is not None:
        flush_images(current_page)
    for page_number in sorted(pending):
        flush_images(page_number)

    body.append(build_section_properties())
    root = Element(qn("w:document"))
    root.append(body)
    return serialize(root)
