from __future__ import annotations

from pathlib import Path

import pytest

from pdfconvertx.backends import PypdfSourceParser, RawImage
from pdfconvertx.backends.base import ParsedDocument
from pdfconvertx.exceptions import (
    ContentExtractionError,
    ConversionTimeoutError,
    FileSizeLimitError,
    InvalidInputError,
)
from pdfconvertx.extraction import ContentExtractor
from pdfconvertx.types import ConversionOptions, PageRange
from pdfconvertx.utils import Deadline

from conftest import SAMPLE_PAGE, FakeSourceParser, png_bytes, write_text_pdf


def test_validate_returns_file_size(sample_pdf: Path) -> None:
    extractor = ContentExtractor(PypdfSourceParser())

    assert extractor.validate(sample_pdf, ConversionOptions()) == sample_pdf.stat().st_size


def test_validate_rejects_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError):
        ContentExtractor(PypdfSourceParser()).validate(tmp_path / "missing.pdf", ConversionOptions())


def test_validate_rejects_non_pdf(tmp_path: Path) -> None:
    bogus = tmp_path / "notes.pdf"
    bogus.write_text("just some text", encoding="utf-8")

    with pytest.raises(InvalidInputError):
        ContentExtractor(PypdfSourceParser()).validate(bogus, ConversionOptions())


def test_validate_enforces_size_limit(sample_pdf: Path) -> None:
    options = ConversionOptions(max_file_size_bytes=10)

    with pytest.raises(FileSizeLimitError) as excinfo:
        ContentExtractor(PypdfSourceParser()).validate(sample_pdf, options)
    assert excinfo.value.details["limit"] == 10


def test_extract_segments_every_page(sample_pdf: Path) -> None:
    parser = FakeSourceParser([SAMPLE_PAGE, "plain body"], metadata={"Title": "Fake"})
    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions())

    assert content.page_count == 2
    assert [page.page_number for page in content.pages] == [1, 2]
    assert content.pages[0].structure.headings[0].text == "INTRODUCTION"
    assert content.pages[1].structure.paragraphs == ("plain body",)
    assert content.metadata == {"Title": "Fake"}


def test_extract_honours_page_range(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["one", "two", "three", "four"])
    options = ConversionOptions(page_range=PageRange(2, 3))

    content = ContentExtractor(parser).extract(sample_pdf, options)

    assert [page.raw_text for page in content.pages] == ["two", "three"]


def test_page_range_past_the_end_is_invalid(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["only page"])

    with pytest.raises(InvalidInputError):
        ContentExtractor(parser).extract(sample_pdf, ConversionOptions(page_range="3-4"))


def test_failing_page_is_recorded_not_raised(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["good", "bad", "fine"], broken_pages={1})
    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions())

    assert content.pages[1].error == "cannot decode page 2"
    assert content.pages[1].structure.is_empty
    assert content.pages[2].raw_text == "fine"
    assert any("Page 2" in warning for warning in content.warnings)


def test_images_are_inspected_and_bad_ones_dropped(sample_pdf: Path) -> None:
    images = [RawImage(1, "ok", png_bytes()), RawImage(1, "broken", b"garbage")]
    parser = FakeSourceParser(["text"], images=images)

    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions())

    assert [image.name for image in content.images] == ["ok"]
    assert content.images[0].mime_type == "image/png"
    assert any("broken" in warning for warning in content.warnings)


def test_images_skipped_when_not_requested(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["text"], images=[RawImage(1, "ok", png_bytes())])

    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions(extract_images=False))

    assert content.images == ()


def test_metadata_dropped_when_not_preserved(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["text"], metadata={"Title": "Secret"})

    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions(preserve_metadata=False))

    assert content.metadata == {}


def test_expired_deadline_stops_extraction(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["a", "b"])
    deadline = Deadline(1)
    deadline._started -= 1.0

    with pytest.raises(ConversionTimeoutError):
        ContentExtractor(parser).extract(sample_pdf, ConversionOptions(), deadline)


def test_pypdf_backend_reads_text_and_metadata(tmp_path: Path) -> None:
    path = write_text_pdf(tmp_path / "text.pdf", ["Hello World"], metadata={"/Title": "Greeting"})

    content = ContentExtractor(PypdfSourceParser()).extract(path, ConversionOptions())

    assert "Hello World" in content.pages[0].raw_text
    assert content.metadata["Title"] == "Greeting"


def test_pypdf_backend_reports_corrupt_files(tmp_path: Path) -> None:
    corrupt = tmp_path / "corrupt.pdf"
    corrupt.write_bytes(b"%PDF-1.4\nthis is not really a pdf")

    with pytest.raises((ContentExtractionError, InvalidInputError)):
        PypdfSourceParser().parse(corrupt)


def test_control_characters_are_removed_from_text_and_metadata(sample_pdf: Path) -> None:
    parser = FakeSourceParser(["Intro\x02 text\x0b here."], metadata={"Title": "Re\x01port"})

    content = ContentExtractor(parser).extract(sample_pdf, ConversionOptions())

    assert content.pages[0].raw_text == "Intro text here."
    assert content.pages[0].structure.paragraphs == ("Intro text here.",)
    assert content.metadata["Title"] == "Report"


def test_parsed_document_requires_page_access() -> None:
    with pytest.raises(TypeError):
        ParsedDocument(page_count=1)
