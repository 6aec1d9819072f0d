"""Heuristic segmentation of raw page text into headings, paragraphs and lists.

The rules are deliberately simple and lossy: a short all-caps sentence is
read as a heading, and a short numbered line is read as a section heading
rather than as an item of a numbered list. Only structure is reconstructed,
never layout.
"""

from __future__ import annotations

import re

from .types import BlockKind, Heading, PageStructure

__all__ = [
    "HEADING_MAX_LENGTH",
    "analyze_page",
    "heading_level",
    "is_heading",
    "is_list_item",
    "is_ordered_item",
    "strip_list_marker",
]

HEADING_MAX_LENGTH = 100

_NUMBERED_SECTION = re.compile(r"^((?:\d+\.)+)\s")
_TITLE_WITH_COLON = re.compile(r"^[A-Z][a-z]+:")
_BULLET_ITEM = re.compile(r"^[•·▪▫◦‣\-*–]\s")
_NUMBERED_ITEM = re.compile(r"^\d+[.)]\s")
_LETTERED_ITEM = re.compile(r"^[a-zA-Z]\)\s")
_LIST_MARKER = re.compile(r"^(?:[•·▪▫◦‣\-*–]|\d+[.)]|[a-zA-Z]\))\s+")


def is_heading(line: str) -> bool:
    if len(line) >= HEADING_MAX_LENGTH:
        return False
    return bool(
        line.isupper() or _NUMBERED_SECTION.match(line) or _TITLE_WITH_COLON.match(line)
    )


def heading_level(line: str) -> int:
    match = _NUMBERED_SECTION.match(line)
    if match:
        return min(match.group(1).count("."), 3)
    if line.isupper():
        return 1
    return 2


def is_list_item(line: str) -> bool:
    return bool(
        _BULLET_ITEM.match(line) or _NUMBERED_ITEM.match(line) or _LETTERED_ITEM.match(line)
    )


def is_ordered_item(line: str) -> bool:
    return bool(_NUMBERED_ITEM.match(line) or _LETTERED_ITEM.match(line))


def strip_list_marker(line: str) -> str:
    return _LIST_MARKER.sub("", line, count=1)


def analyze_page(raw_text: str) -> PageStructure:
    """Segment ``raw_text`` into a :class:`PageStructure`.

    Every non-blank line ends up in exactly one heading, paragraph or list
    item. Blank lines close the open paragraph and the open list; headings
    close both as well.
    """

    paragraphs: list[str] = []
    headings: list[Heading] = []
    lists: list[tuple[str, ...]] = []
    blocks: list[tuple[BlockKind, int]] = []

    paragraph_lines: list[str] = []
    list_items: list[str] = []

    def flush_paragraph() -> None:
        if paragraph_lines:
            blocks.append((BlockKind.PARAGRAPH, len(paragraphs)))
            paragraphs.append(" ".join(paragraph_lines))
            paragraph_lines.clear()

    def flush_list() -> None:
        if list_items:
            blocks.append((BlockKind.LIST, len(lists)))
            lists.append(tuple(list_items))
            list_items.clear()

    for raw_line in raw_text.splitlines():
        line = raw_line.strip()
        if not line:
            flush_paragraph()
            flush_list()
            continue

        if is_heading(line):
            flush_paragraph()
            flush_list()
            blocks.append((BlockKind.HEADING, len(headings)))
            headings.append(Heading(text=line, level=heading_level(line)))
            continue

        if is_list_item(line):
            flush_paragraph()
            list_items.append(line)
            continue

        flush_list()
        paragraph_lines.append(line)

    flush_paragraph()
    flush_list()

    return PageStructure(
        paragraphs=tuple(paragraphs),
        headings=tuple(headings),
        lists=tuple(lists),
        tables=(),
        blocks=tuple(blocks),
    )
