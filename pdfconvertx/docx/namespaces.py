"""XML namespaces, part content types and unit constants for DOCX output."""

from __future__ import annotations

from datetime import datetime, timezone
from xml.etree.ElementTree import Element, register_namespace, tostring

__all__ = [
    "CONTENT_TYPES",
    "DEFAULT_TIMESTAMP",
    "EMU_PER_POINT",
    "REL_TYPES",
    "TWIPS_PER_POINT",
    "XML_NS",
    "emus",
    "qn",
    "serialize",
    "twips",
]

XML_NS = {
    "w": "http://schemas.openxmlformats.org/wordprocessingml/2006/main",
    "r": "http://schemas.openxmlformats.org/officeDocument/2006/relationships",
    "cp": "http://schemas.openxmlformats.org/package/2006/metadata/core-properties",
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcterms": "http://purl.org/dc/terms/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
    "ep": "http://schemas.openxmlformats.org/officeDocument/2006/extended-properties",
    "vt": "http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes",
    "wp": "http://schemas.openxmlformats.org/drawingml/2006/wordprocessingDrawing",
    "a": "http://schemas.openxmlformats.org/drawingml/2006/main",
    "pic": "http://schemas.openxmlformats.org/drawingml/2006/picture",
    "ct": "http://schemas.openxmlformats.org/package/2006/content-types",
    "rel": "http://schemas.openxmlformats.org/package/2006/relationships",
    "xml": "http://www.w3.org/XML/1998/namespace",
}

for prefix, uri in XML_NS.items():
    if prefix not in {"ct", "rel", "xml"}:
        register_namespace(prefix, uri)

_OFFICE_REL = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"

REL_TYPES = {
    "document": f"{_OFFICE_REL}/officeDocument",
    "core": "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties",
    "app": f"{_OFFICE_REL}/extended-properties",
    "styles": f"{_OFFICE_REL}/styles",
    "numbering": f"{_OFFICE_REL}/numbering",
    "image": f"{_OFFICE_REL}/image",
}

_WML = "application/vnd.openxmlformats-officedocument.wordprocessingml"

CONTENT_TYPES = {
    "/word/document.xml": f"{_WML}.document.main+xml",
    "/word/styles.xml": f"{_WML}.styles+xml",
    "/word/numbering.xml": f"{_WML}.numbering+xml",
    "/docProps/core.xml": "application/vnd.openxmlformats-package.core-properties+xml",
    "/docProps/app.xml": "application/vnd.openxmlformats-officedocument.extended-properties+xml",
}

DEFAULT_TIMESTAMP = datetime(2023, 1, 1, tzinfo=timezone.utc)
EMU_PER_POINT = 12700
TWIPS_PER_POINT = 20


def qn(tag: str) -> str:
    """Expand a ``prefix:local`` name into ElementTree's ``{uri}local`` form."""
    prefix, local = tag.split(":", 1)
    return f"{{{XML_NS[prefix]}}}{local}"


def serialize(element: Element) -> bytes:
    return tostring(element, encoding="utf-8", xml_declaration=True)


def twips(points: float) -> int:
    return int(round(points * TWIPS_PER_POINT))


def emus(points: float) -> int:
    return int(round(points * EMU_PER_POINT))
