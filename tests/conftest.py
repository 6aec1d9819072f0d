from __future__ import annotations

import dataclasses
import io
import time
from pathlib import Path
from typing import Callable, Iterable, Sequence
import sys

import pytest
from PIL import Image
from pypdf import PdfWriter
from pypdf.generic import DictionaryObject, NameObject, NumberObject, StreamObject

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdfconvertx.backends.base import ParsedDocument, RawImage  # noqa: E402
from pdfconvertx.config import PipelineSettings  # noqa: E402
from pdfconvertx.context import PipelineContext  # noqa: E402
from pdfconvertx.converter import PdfToDocxConverter  # noqa: E402
from pdfconvertx.exceptions import InvalidInputError  # noqa: E402


SAMPLE_PAGE = "INTRODUCTION\n\nThis is a test document.\nIt has multiple paragraphs.\n\n• First bullet point\n• Second bullet point\n\n1. First numbered item\n2. Second numbered item"


def write_blank_pdf(path: Path, pages: int = 1, title: str | None = None) -> Path:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    if title is not None:
        writer.add_metadata({"/Title": title})
    with path.open("wb") as handle:
        writer.write(handle)
    return path


def write_text_pdf(path: Path, lines: Sequence[str], metadata: dict[str, str] | None = None) -> Path:
    writer = PdfWriter()
    page = writer.add_blank_page(width=400, height=400)

    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    font_ref = writer._add_object(font_dict)
    resources = DictionaryObject({NameObject("/Font"): DictionaryObject({NameObject("/F1"): font_ref})})
    page[NameObject("/Resources")] = resources

    operators = ["BT", "/F1 12 Tf", "14 TL", "40 360 Td"]
    for line in lines:
        operators.append(f"({line}) Tj T*")
    operators.append("ET")
    content_bytes = "\n".join(operators).encode("latin-1")
    stream = StreamObject()
    stream[NameObject("/Length")] = NumberObject(len(content_bytes))
    stream._data = content_bytes
    page[NameObject("/Contents")] = writer._add_object(stream)

    if metadata:
        writer.add_metadata(metadata)
    with path.open("wb") as handle:
        writer.write(handle)
    return path


def png_bytes(width: int = 32, height: int = 16, color: tuple[int, ...] = (200, 30, 30, 255)) -> bytes:
    image = Image.new("RGBA", (width, height), color)
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


class FakeParsedDocument(ParsedDocument):
    def __init__(self, parser: "FakeSourceParser") -> None:
        super().__init__(page_count=len(parser.pages), metadata=dict(parser.metadata))
        self.parser = parser

    def page_text(self, index: int) -> str:
        if index in self.parser.broken_pages:
            raise ValueError(f"cannot decode page {index + 1}")
        return self.parser.pages[index]

    def iter_images(self, indices: Iterable[int]) -> Iterable[RawImage]:
        wanted = {index + 1 for index in indices}
        for image in self.parser.images:
            if image.page_number in wanted:
                yield image


class FakeSourceParser:
    """Source parser serving canned page text; optionally fails ``parse``."""

    def __init__(
        self,
        pages: Sequence[str],
        *,
        metadata: dict[str, str] | None = None,
        images: Sequence[RawImage] = (),
        broken_pages: Iterable[int] = (),
        failures: Sequence[BaseException] = (),
        delay: float = 0.0,
    ) -> None:
        self.pages = list(pages)
        self.metadata = metadata or {}
        self.images = list(images)
        self.broken_pages = set(broken_pages)
        self.failures = list(failures)
        self.delay = delay
        self.parse_calls = 0

    def probe(self, path: Path) -> None:
        if not path.exists():
            raise InvalidInputError(f"Input file not found: {path}")
        if not path.read_bytes().startswith(b"%PDF-"):
            raise InvalidInputError(f"Not a PDF document: {path}")

    def parse(self, path: Path, **_: object) -> FakeParsedDocument:
        self.parse_calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.failures:
            raise self.failures.pop(0)
        return FakeParsedDocument(self)


@pytest.fixture()
def sample_pdf(tmp_path: Path) -> Path:
    return write_blank_pdf(tmp_path / "sample.pdf", pages=3, title="Sample")


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    def _create(filename: str, pages: int = 1, title: str | None = None) -> Path:
        return write_blank_pdf(tmp_path / filename, pages=pages, title=title)

    return _create


@pytest.fixture()
def settings() -> PipelineSettings:
    return PipelineSettings(retry_delay_seconds=0)


@pytest.fixture()
def make_converter(settings: PipelineSettings) -> Callable[..., PdfToDocxConverter]:
    def _create(parser=None, **overrides) -> PdfToDocxConverter:
        effective = dataclasses.replace(settings, **overrides)
        return PdfToDocxConverter(PipelineContext.create(effective, parser=parser))

    return _create
