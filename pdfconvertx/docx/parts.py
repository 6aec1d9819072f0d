"""Builders for the fixed XML parts of a DOCX package."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Mapping
from xml.etree.ElementTree import Element, SubElement

from ..utils import parse_pdf_date, strip_xml_illegal
from .namespaces import CONTENT_TYPES, DEFAULT_TIMESTAMP, REL_TYPES, XML_NS, qn, serialize
from .relationships import RelationshipManager

__all__ = [
    "BULLET_NUM_ID",
    "CoreProperties",
    "DECIMAL_NUM_ID",
    "PackageStatistics",
    "build_app_properties_xml",
    "build_content_types_xml",
    "build_core_properties_xml",
    "build_document_relationships_xml",
    "build_numbering_xml",
    "build_root_relationships_xml",
    "build_styles_xml",
]

APPLICATION_NAME = "pdfconvertx"

BULLET_NUM_ID = 1
DECIMAL_NUM_ID = 2
_BULLET_GLYPHS = ("•", "◦", "▪")

# style id -> (display name, run size in half points, bold, italic, spacing before, spacing after)
_PARAGRAPH_STYLES: dict[str, tuple[str, int | None, bool, bool, int, int]] = {
    "Title": ("Title", 48, True, False, 0, 240),
    "Heading1": ("heading 1", 32, True, False, 240, 120),
    "Heading2": ("heading 2", 26, True, False, 200, 100),
    "Heading3": ("heading 3", 22, True, True, 160, 80),
    "ListParagraph": ("List Paragraph", None, False, False, 0, 80),
    "Caption": ("caption", 18, False, True, 80, 160),
}


@dataclass
class CoreProperties:
    """Values written to ``docProps/core.xml``."""

    title: str | None = None
    creator: str | None = None
    subject: str | None = None
    keywords: str | None = None
    description: str | None = None
    created: datetime = DEFAULT_TIMESTAMP
    modified: datetime | None = None
    revision: str = "1"

    @classmethod
    def from_metadata(cls, metadata: Mapping[str, str]) -> "CoreProperties":
        """Map a normalised PDF info dictionary onto core properties."""
        created = parse_pdf_date(metadata.get("CreationDate")) or DEFAULT_TIMESTAMP

        def text(key: str) -> str | None:
            value = metadata.get(key)
            if not value:
                return None
            return strip_xml_illegal(str(value)) or None

        return cls(
            title=text("Title"),
            creator=text("Author"),
            subject=text("Subject"),
            keywords=text("Keywords"),
            created=created,
            modified=parse_pdf_date(metadata.get("ModDate")) or created,
        )


@dataclass
class PackageStatistics:
    pages: int = 0
    paragraphs: int = 0
    words: int = 0
    characters: int = 0
    characters_with_spaces: int = 0

    def add_text(self, text: str) -> None:
        self.paragraphs += 1
        self.characters_with_spaces += len(text)
        self.words += len(text.split())
        self.characters += len("".join(text.split()))


def _w(name: str) -> str:
    return qn(f"w:{name}")


def _val(value: object) -> dict[str, str]:
    return {_w("val"): str(value)}


def build_styles_xml() -> bytes:
    root = Element(_w("styles"))
    defaults = SubElement(root, _w("docDefaults"))
    run_defaults = SubElement(SubElement(defaults, _w("rPrDefault")), _w("rPr"))
    SubElement(run_defaults, _w("rFonts"), {_w("ascii"): "Calibri", _w("hAnsi"): "Calibri", _w("cs"): "Calibri"})
    SubElement(run_defaults, _w("sz"), _val(22))
    SubElement(run_defaults, _w("lang"), _val("en-US"))
    para_defaults = SubElement(SubElement(defaults, _w("pPrDefault")), _w("pPr"))
    SubElement(para_defaults, _w("spacing"), {_w("after"): "160", _w("line"): "259", _w("lineRule"): "auto"})

    normal = SubElement(root, _w("style"), {_w("type"): "paragraph", _w("styleId"): "Normal", _w("default"): "1"})
    SubElement(normal, _w("name"), _val("Normal"))
    SubElement(normal, _w("qFormat"))

    for style_id, (name, size, bold, italic, before, after) in _PARAGRAPH_STYLES.items():
        style = SubElement(root, _w("style"), {_w("type"): "paragraph", _w("styleId"): style_id})
        SubElement(style, _w("name"), _val(name))
        SubElement(style, _w("basedOn"), _val("Normal"))
        SubElement(style, _w("next"), _val("Normal"))
        SubElement(style, _w("qFormat"))
        p_pr = SubElement(style, _w("pPr"))
        if style_id.startswith("Heading") or style_id == "Title":
            SubElement(p_pr, _w("keepNext"))
            SubElement(p_pr, _w("keepLines"))
        SubElement(p_pr, _w("spacing"), {_w("before"): str(before), _w("after"): str(after)})
        if style_id == "ListParagraph":
            SubElement(p_pr, _w("ind"), {_w("left"): "720"})
        if style_id.startswith("Heading"):
            SubElement(p_pr, _w("outlineLvl"), _val(int(style_id[-1]) - 1))
        r_pr = SubElement(style, _w("rPr"))
        if bold:
            SubElement(r_pr, _w("b"))
        if italic:
            SubElement(r_pr, _w("i"))
        if size:
            SubElement(r_pr, _w("sz"), _val(size))
    return serialize(root)


def _numbering_level(abstract: Element, level: int, fmt: str, text: str) -> None:
    lvl = SubElement(abstract, _w("lvl"), {_w("ilvl"): str(level)})
    SubElement(lvl, _w("start"), _val(1))
    SubElement(lvl, _w("numFmt"), _val(fmt))
    SubElement(lvl, _w("lvlText"), _val(text))
    SubElement(lvl, _w("lvlJc"), _val("left"))
    indent = 720 + level * 360
    SubElement(SubElement(lvl, _w("pPr")), _w("ind"), {_w("left"): str(indent), _w("hanging"): "360"})


def build_numbering_xml() -> bytes:
    root = Element(_w("numbering"))
    bullets = SubElement(root, _w("abstractNum"), {_w("abstractNumId"): str(BULLET_NUM_ID)})
    for level in range(9):
        _numbering_level(bullets, level, "bullet", _BULLET_GLYPHS[level % len(_BULLET_GLYPHS)])
    decimal = SubElement(root, _w("abstractNum"), {_w("abstractNumId"): str(DECIMAL_NUM_ID)})
    for level in range(9):
        _numbering_level(decimal, level, "decimal", f"%{level + 1}.")
    for num_id in (BULLET_NUM_ID, DECIMAL_NUM_ID):
        num = SubElement(root, _w("num"), {_w("numId"): str(num_id)})
        SubElement(num, _w("abstractNumId"), _val(num_id))
    return serialize(root)


def _w3cdtf(value: datetime) -> str:
    return value.astimezone(timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


def build_core_properties_xml(properties: CoreProperties) -> bytes:
    root = Element(qn("cp:coreProperties"))
    for tag, value in (
        ("dc:title", properties.title),
        ("dc:subject", properties.subject),
        ("dc:creator", properties.creator),
        ("cp:keywords", properties.keywords),
        ("dc:description", properties.description),
        ("cp:lastModifiedBy", properties.creator),
    ):
        if value:
            SubElement(root, qn(tag)).text = value
    SubElement(root, qn("cp:revision")).text = properties.revision
    w3cdtf = {qn("xsi:type"): "dcterms:W3CDTF"}
    SubElement(root, qn("dcterms:created"), w3cdtf).text = _w3cdtf(properties.created)
    SubElement(root, qn("dcterms:modified"), w3cdtf).text = _w3cdtf(
        properties.modified or properties.created
    )
    return serialize(root)


def build_app_properties_xml(stats: PackageStatistics) -> bytes:
    root = Element(qn("ep:Properties"))
    for tag, value in (
        ("Application", APPLICATION_NAME),
        ("DocSecurity", 0),
        ("Pages", stats.pages),
        ("Words", stats.words),
        ("Paragraphs", stats.paragraphs),
        ("Characters", stats.characters),
        ("CharactersWithSpaces", stats.characters_with_spaces),
    ):
        SubElement(root, qn(f"ep:{tag}")).text = str(value)
    return serialize(root)


def build_content_types_xml(media_defaults: Iterable[tuple[str, str]] = ()) -> bytes:
    root = Element("Types", {"xmlns": XML_NS["ct"]})
    defaults = {"rels": "application/vnd.openxmlformats-package.relationships+xml", "xml": "application/xml"}
    for extension, mime in media_defaults:
        existing = defaults.setdefault(extension.lower(), mime)
        if existing != mime:
            raise ValueError(f"Conflicting content type for extension '{extension}': {existing} vs {mime}")
    for extension, mime in defaults.items():
        SubElement(root, "Default", {"Extension": extension, "ContentType": mime})
    for part_name, content_type in CONTENT_TYPES.items():
        SubElement(root, "Override", {"PartName": part_name, "ContentType": content_type})
    return serialize(root)


def _relationships_root(entries: Iterable[tuple[str, str, str]]) -> bytes:
    root = Element("Relationships", {"xmlns": XML_NS["rel"]})
    for rid, rel_type, target in entries:
        SubElement(root, "Relationship", {"Id": rid, "Type": rel_type, "Target": target})
    return serialize(root)


def build_root_relationships_xml() -> bytes:
    return _relationships_root(
        [
            ("rId1", REL_TYPES["document"], "word/document.xml"),
            ("rId2", REL_TYPES["core"], "docProps/core.xml"),
            ("rId3", REL_TYPES["app"], "docProps/app.xml"),
        ]
    )


def build_document_relationships_xml(relationships: RelationshipManager) -> bytes:
    fixed = [
        ("rId1", REL_TYPES["styles"], "styles.xml"),
        ("rId2", REL_TYPES["numbering"], "numbering.xml"),
    ]
    return _relationships_root([*fixed, *relationships.iter_relationships()])
