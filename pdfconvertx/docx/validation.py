"""Consistency checks run on a DOCX package before it is written."""

from __future__ import annotations

from typing import Iterable, Sequence
from xml.etree.ElementTree import ParseError, fromstring

from ..exceptions import ContainerGenerationError
from .namespaces import CONTENT_TYPES, DEFAULT_TIMESTAMP, XML_NS
from .relationships import RelationshipManager

__all__ = [
    "ZIP_TIMESTAMP",
    "validate_content_types",
    "validate_relationships",
    "validate_xml_parts",
]

ZIP_TIMESTAMP = DEFAULT_TIMESTAMP.timetuple()[:6]


def validate_xml_parts(parts: Iterable[tuple[str, bytes]]) -> None:
    """Ensure each XML payload is well-formed."""

    for name, payload in parts:
        try:
            fromstring(payload)
        except ParseError as exc:
            raise ContainerGenerationError(f"Generated XML for {name!r} is not well-formed: {exc}.") from exc


def validate_relationships(
    relationships: RelationshipManager, media_parts: Sequence[tuple[str, bytes, str]]
) -> None:
    """Verify relationship ids are unique and sequential, and targets exist."""

    targets = {part_name for part_name, *_ in media_parts}
    numbers = [1, 2]
    for rid, _type, target in relationships.iter_relationships():
        if target not in targets:
            raise ContainerGenerationError(f"Relationship {rid} references missing part {target!r}.")
        numbers.append(int(rid[3:]))
    if numbers != list(range(1, len(numbers) + 1)):
        raise ContainerGenerationError("Relationship identifiers are not unique and sequential.")


def validate_content_types(content_types_xml: bytes, media_defaults: Sequence[tuple[str, str]]) -> None:
    """Ensure ``[Content_Types].xml`` declares every part in the package."""

    root = fromstring(content_types_xml)
    ns = {"ct": XML_NS["ct"]}
    defaults = {
        (elem.attrib["Extension"].lower(), elem.attrib["ContentType"])
        for elem in root.findall("ct:Default", ns)
    }
    required = {("rels", "application/vnd.openxmlformats-package.relationships+xml"), ("xml", "application/xml")}
    required.update((ext.lower(), mime) for ext, mime in media_defaults)
    missing = required - defaults
    if missing:
        raise ContainerGenerationError(f"[Content_Types].xml is missing defaults: {sorted(missing)}.")

    overrides = {
        (elem.attrib["PartName"], elem.attrib["ContentType"])
        for elem in root.findall("ct:Override", ns)
    }
    if overrides != set(CONTENT_TYPES.items()):
        raise ContainerGenerationError("[Content_Types].xml overrides do not match the package parts.")
