"""Intermediate representations sitting between extraction and DOCX generation.

Three renderings are supported: XHTML-compatible markup, Markdown-style
lightweight markup and plain text. Each one can be read back into a flat
list of :class:`Block` values, which is what the container generator
consumes.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterable, Iterator
from xml.etree.ElementTree import Element, ParseError, fromstring

from .exceptions import ContainerGenerationError, IntermediateGenerationError
from .structure import is_ordered_item, strip_list_marker
from .types import BlockKind, DocumentContent, IntermediateFormat, PageContent

__all__ = [
    "Block",
    "generate_intermediate",
    "read_blocks",
    "strip_markup",
]

XHTML_NS = "http://www.w3.org/1999/xhtml"
PAGE_BREAK = "\f"

_MD_SPECIAL = re.compile(r"([\\`*_\[\]<>|#])")
_MD_LEADING = re.compile(r"^(\d+)\.|^([-+])")
_MD_UNESCAPE = re.compile(r"\\([\\`*_\[\]<>|#.+\-])")
_MD_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_MD_UNORDERED = re.compile(r"^[-*+]\s+(.*)$")
_MD_ORDERED = re.compile(r"^\d+\.\s+(.*)$")
_MD_PAGE = re.compile(r"^<!--\s*page\s+(\d+)\s*-->$")
_TAG = re.compile(r"<[^>]+>")


@dataclass(frozen=True)
class Block:
    """One renderable unit read back from an intermediate representation."""

    kind: BlockKind
    page_number: int
    text: str = ""
    level: int = 0
    items: tuple[str, ...] = ()
    ordered: bool = False

    def iter_text(self) -> Iterator[str]:
        if self.kind is BlockKind.LIST:
            yield from self.items
        else:
            yield self.text


def _iter_page_blocks(page: PageContent) -> Iterator[tuple[BlockKind, object]]:
    structure = page.structure
    for kind, index in structure.blocks:
        if kind is BlockKind.HEADING:
            yield kind, structure.headings[index]
        elif kind is BlockKind.PARAGRAPH:
            yield kind, structure.paragraphs[index]
        else:
            yield kind, structure.lists[index]


def _usable_pages(content: DocumentContent) -> Iterable[PageContent]:
    return (page for page in content.pages if page.error is None)


# -- generation ------------------------------------------------------------


def _escape_markdown(text: str) -> str:
    escaped = _MD_SPECIAL.sub(r"\\\1", text)
    return _MD_LEADING.sub(lambda m: f"{m.group(1)}\\." if m.group(1) else f"\\{m.group(2)}", escaped)


def _render_markup(content: DocumentContent) -> str:
    title = html.escape(str(content.metadata.get("Title") or "Converted Document"))
    lines = [
        "<!DOCTYPE html>",
        f'<html xmlns="{XHTML_NS}">',
        f'<head><meta charset="UTF-8"/><title>{title}</title></head>',
        "<body>",
    ]
    for page in _usable_pages(content):
        lines.append(f'<section data-page="{page.page_number}">')
        for kind, value in _iter_page_blocks(page):
            if kind is BlockKind.HEADING:
                lines.append(f"<h{value.level}>{html.escape(value.text)}</h{value.level}>")
            elif kind is BlockKind.PARAGRAPH:
                lines.append(f"<p>{html.escape(value)}</p>")
            else:
                tag = "ol" if is_ordered_item(value[0]) else "ul"
                lines.append(f"<{tag}>")
                lines.extend(f"<li>{html.escape(strip_list_marker(item))}</li>" for item in value)
                lines.append(f"</{tag}>")
        lines.append("</section>")
    lines.extend(["</body>", "</html>"])
    return "\n".join(lines) + "\n"


def _render_lightweight(content: DocumentContent) -> str:
    chunks: list[str] = []
    for page in _usable_pages(content):
        chunks.append(f"<!-- page {page.page_number} -->")
        for kind, value in _iter_page_blocks(page):
            if kind is BlockKind.HEADING:
                chunks.append(f"{'#' * value.level} {_escape_markdown(value.text)}")
            elif kind is BlockKind.PARAGRAPH:
                chunks.append(_escape_markdown(value))
            else:
                ordered = is_ordered_item(value[0])
                chunks.append(
                    "\n".join(
                        f"{position}. {_escape_markdown(strip_list_marker(item))}"
                        if ordered
                        else f"- {_escape_markdown(strip_list_marker(item))}"
                        for position, item in enumerate(value, start=1)
                    )
                )
    return "\n\n".join(chunks) + "\n" if chunks else ""


def _render_plain(content: DocumentContent) -> str:
    pages: list[str] = []
    for page in _usable_pages(content):
        chunks = []
        for kind, value in _iter_page_blocks(page):
            if kind is BlockKind.HEADING:
                chunks.append(value.text)
            elif kind is BlockKind.PARAGRAPH:
                chunks.append(value)
            else:
                chunks.append("\n".join(value))
        pages.append("\n\n".join(chunks))
    return f"\n{PAGE_BREAK}\n".join(pages) + "\n" if pages else ""


def generate_intermediate(content: DocumentContent, fmt: IntermediateFormat | str) -> str:
    """Render ``content`` as a single intermediate string. Errored pages are left out."""

    fmt = IntermediateFormat.coerce(fmt)
    try:
        if fmt is IntermediateFormat.MARKUP:
            return _render_markup(content)
        if fmt is IntermediateFormat.LIGHTWEIGHT_MARKUP:
            return _render_lightweight(content)
        return _render_plain(content)
    except (IndexError, AttributeError, TypeError) as exc:
        raise IntermediateGenerationError(f"Unable to render {fmt.value} intermediate: {exc}") from exc


# -- reading back ----------------------------------------------------------


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _element_text(element: Element) -> str:
    return " ".join("".join(element.itertext()).split())


def _read_markup(text: str) -> list[Block]:
    try:
        root = fromstring(text)
    except ParseError as exc:
        raise ContainerGenerationError(f"Intermediate markup is not well-formed: {exc}") from exc
    blocks: list[Block] = []
    body = next((child for child in root if _local(child.tag) == "body"), root)
    for section in body:
        page_number = int(section.get("data-page", "1"))
        for element in section:
            tag = _local(element.tag)
            if len(tag) == 2 and tag[0] == "h" and tag[1].isdigit():
                blocks.append(Block(BlockKind.HEADING, page_number, _element_text(element), level=int(tag[1])))
            elif tag == "p":
                blocks.append(Block(BlockKind.PARAGRAPH, page_number, _element_text(element)))
            elif tag in {"ul", "ol"}:
                items = tuple(_element_text(item) for item in element if _local(item.tag) == "li")
                blocks.append(Block(BlockKind.LIST, page_number, items=items, ordered=tag == "ol"))
    return blocks


def _unescape_markdown(text: str) -> str:
    return _MD_UNESCAPE.sub(r"\1", text)


def _read_lightweight(text: str) -> list[Block]:
    blocks: list[Block] = []
    page_number = 1
    for chunk in re.split(r"\n\s*\n", text):
        lines = [line.strip() for line in chunk.strip().splitlines() if line.strip()]
        if not lines:
            continue
        page_marker = _MD_PAGE.match(lines[0])
        if page_marker:
            page_number = int(page_marker.group(1))
            lines = lines[1:]
            if not lines:
                continue
        heading = _MD_HEADING.match(lines[0])
        if heading and len(lines) == 1:
            level = min(len(heading.group(1)), 3)
            blocks.append(Block(BlockKind.HEADING, page_number, _unescape_markdown(heading.group(2)), level=level))
            continue
        unordered = [_MD_UNORDERED.match(line) for line in lines]
        ordered = [_MD_ORDERED.match(line) for line in lines]
        if all(unordered):
            items = tuple(_unescape_markdown(match.group(1)) for match in unordered)
            blocks.append(Block(BlockKind.LIST, page_number, items=items, ordered=False))
        elif all(ordered):
            items = tuple(_unescape_markdown(match.group(1)) for match in ordered)
            blocks.append(Block(BlockKind.LIST, page_number, items=items, ordered=True))
        else:
            blocks.append(Block(BlockKind.PARAGRAPH, page_number, _unescape_markdown(" ".join(lines))))
    return blocks


def _read_plain(text: str) -> list[Block]:
    blocks: list[Block] = []
    for page_number, page in enumerate(text.split(PAGE_BREAK), start=1):
        for chunk in re.split(r"\n\s*\n", page):
            for line in chunk.splitlines():
                if line.strip():
                    blocks.append(Block(BlockKind.PARAGRAPH, page_number, line.strip()))
    return blocks


def read_blocks(intermediate: str, fmt: IntermediateFormat | str) -> list[Block]:
    """Parse an intermediate string back into renderable blocks."""

    fmt = IntermediateFormat.coerce(fmt)
    if fmt is IntermediateFormat.MARKUP:
        return _read_markup(intermediate)
    if fmt is IntermediateFormat.LIGHTWEIGHT_MARKUP:
        return _read_lightweight(intermediate)
    return _read_plain(intermediate)


def strip_markup(intermediate: str, fmt: IntermediateFormat | str) -> str:
    """Drop markup syntax, leaving only the user-visible text."""

    fmt = IntermediateFormat.coerce(fmt)
    if fmt is IntermediateFormat.MARKUP:
        body = intermediate.split("<body>", 1)[-1]
        return html.unescape(_TAG.sub(" ", body))
    if fmt is IntermediateFormat.LIGHTWEIGHT_MARKUP:
        kept = []
        for line in intermediate.splitlines():
            stripped = line.strip()
            if _MD_PAGE.match(stripped):
                continue
            stripped = re.sub(r"^(#{1,6}|[-*+]|\d+\.)\s+", "", stripped)
            kept.append(_unescape_markdown(stripped))
        return "\n".join(kept)
    return intermediate.replace(PAGE_BREAK, "\n")