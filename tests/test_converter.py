from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import patch

import pytest
from docx import Document

from pdfconvertx import ConversionOptions, ErrorType, PdfToDocxConverter, ProgressChannel, convert_pdf_to_docx
from pdfconvertx.exceptions import FormattingError
from pdfconvertx.pipeline import STEPS
from pdfconvertx.types import ProgressEvent, StepCompletedEvent

from conftest import SAMPLE_PAGE, FakeSourceParser, write_text_pdf


def test_successful_conversion(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser([SAMPLE_PAGE, "Closing remarks."], metadata={"Title": "Sample"})
    converter = make_converter(parser)
    output = tmp_path / "out" / "sample.docx"

    result = converter.convert(sample_pdf, output)

    assert result.success, result.errors
    assert [record.step for record in result.steps] == list(STEPS)
    assert all(record.success for record in result.steps)
    assert output.exists()
    assert result.statistics.page_count == 2
    assert result.statistics.word_count > 10
    assert result.statistics.input_size == sample_pdf.stat().st_size
    assert result.statistics.output_size == output.stat().st_size
    assert result.statistics.compression_ratio > 0
    assert result.metadata["intermediate_format"] == "markup"
    assert result.processing_time_ms > 0

    document = Document(str(output))
    assert document.core_properties.title == "Sample"
    texts = [paragraph.text for paragraph in document.paragraphs]
    assert "INTRODUCTION" in texts
    assert "Closing remarks." in texts


def test_progress_channel_reports_milestones(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    channel = ProgressChannel()

    converter.convert(sample_pdf, tmp_path / "out.docx", channel=channel)

    events = list(channel)
    percentages = [event.percentage for event in events if isinstance(event, ProgressEvent)]
    steps = [event.record.step for event in events if isinstance(event, StepCompletedEvent)]
    assert percentages == [25, 50, 75, 100]
    assert steps == list(STEPS)
    assert channel.closed


def test_second_conversion_is_served_from_cache(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser([SAMPLE_PAGE])
    converter = make_converter(parser)
    options = ConversionOptions()

    first = converter.convert(sample_pdf, tmp_path / "first.docx", options)
    second = converter.convert(sample_pdf, tmp_path / "second.docx", options)

    assert first.success and second.success
    assert not first.from_cache
    assert second.from_cache
    assert parser.parse_calls == 1
    assert (tmp_path / "first.docx").read_bytes() == (tmp_path / "second.docx").read_bytes()
    assert second.statistics.page_count == first.statistics.page_count
    assert [record.step for record in second.steps] == ["validation", "cache_lookup"]

    snapshot = converter.statistics()
    assert snapshot.cache_hits == 1
    assert snapshot.cache_misses == 1
    assert snapshot.total_conversions == 2


def test_repeated_conversion_to_same_path_is_idempotent(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    output = tmp_path / "same.docx"

    converter.convert(sample_pdf, output)
    first_bytes = output.read_bytes()
    again = converter.convert(sample_pdf, output)

    assert again.from_cache
    assert output.read_bytes() == first_bytes


def test_cached_conversion_is_faster(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE], delay=0.2))

    first = converter.convert(sample_pdf, tmp_path / "first.docx")
    second = converter.convert(sample_pdf, tmp_path / "second.docx")

    assert second.from_cache
    assert second.processing_time_ms < first.processing_time_ms


def test_overwritten_output_does_not_change_cached_document(
    sample_pdf: Path, tmp_path: Path, make_converter
) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    report = tmp_path / "report.docx"

    converter.convert(sample_pdf, report)
    first_bytes = report.read_bytes()
    converter.convert(
        sample_pdf,
        report,
        ConversionOptions(intermediate_format="plain-text", preserve_formatting=False),
    )
    assert report.read_bytes() != first_bytes
    again = converter.convert(sample_pdf, tmp_path / "again.docx")

    assert again.from_cache
    assert (tmp_path / "again.docx").read_bytes() == first_bytes


@pytest.mark.parametrize(
    "options",
    [
        ConversionOptions(intermediate_format="markup"),
        ConversionOptions(intermediate_format="lightweight-markup"),
        ConversionOptions(intermediate_format="plain-text"),
        ConversionOptions(intermediate_format="lightweight-markup", alternative_pipeline=True),
    ],
)
def test_control_characters_in_page_text_are_dropped(
    options: ConversionOptions, sample_pdf: Path, tmp_path: Path, make_converter
) -> None:
    parser = FakeSourceParser(
        ["Intro\x02 text\x00 with a stray\x1b control char."],
        metadata={"Title": "Bad\x07 title"},
    )
    output = tmp_path / "control.docx"

    result = make_converter(parser).convert(sample_pdf, output, options)

    assert result.success, result.errors
    assert result.recovery_attempts == 0
    document = Document(str(output))
    assert [paragraph.text for paragraph in document.paragraphs if paragraph.text] == [
        "Intro text with a stray control char."
    ]
    assert document.core_properties.title == "Bad title"


def test_closed_progress_channel_is_rejected(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    channel = ProgressChannel()
    channel.close()

    with pytest.raises(ValueError, match="already closed"):
        converter.convert(sample_pdf, tmp_path / "out.docx", channel=channel)
    assert not (tmp_path / "out.docx").exists()


def test_cache_bypass_and_clear(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser(["text"])
    converter = make_converter(parser)

    converter.convert(sample_pdf, tmp_path / "a.docx")
    bypassed = converter.convert(sample_pdf, tmp_path / "b.docx", ConversionOptions(bypass_cache=True))
    converter.clear_cache()
    cleared = converter.convert(sample_pdf, tmp_path / "c.docx")

    assert not bypassed.from_cache
    assert not cleared.from_cache
    assert parser.parse_calls == 3


def test_different_options_do_not_share_cache(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser([SAMPLE_PAGE])
    converter = make_converter(parser)

    converter.convert(sample_pdf, tmp_path / "a.docx")
    other = converter.convert(sample_pdf, tmp_path / "b.docx", ConversionOptions(intermediate_format="plain-text"))

    assert not other.from_cache
    assert parser.parse_calls == 2


def test_file_size_guard_fails_at_validation(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser(["text"])
    converter = make_converter(parser)
    output = tmp_path / "never.docx"

    result = converter.convert(sample_pdf, output, ConversionOptions(max_file_size_bytes=10))

    assert not result.success
    assert [record.step for record in result.steps] == ["validation"]
    assert not result.steps[0].success
    assert result.errors[0].type is ErrorType.FILE_SIZE_LIMIT_EXCEEDED
    assert result.recovery_attempts == 0
    assert parser.parse_calls == 0
    assert not output.exists()


def test_retry_ceiling_is_respected(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser(["text"], failures=[ValueError("xref table broken") for _ in range(10)])
    converter = make_converter(parser)

    result = converter.convert(sample_pdf, tmp_path / "out.docx")

    assert not result.success
    assert result.recovery_attempts == 3
    assert parser.parse_calls == 4
    assert result.errors[-1].type is ErrorType.CONTENT_EXTRACTION_FAILED
    assert result.errors[-1].conversion_step == "content_extraction"
    assert converter.error_statistics().total_errors == 4


def test_transient_failure_is_recovered(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    parser = FakeSourceParser([SAMPLE_PAGE], failures=[OSError("temporary read failure")])
    converter = make_converter(parser)

    result = converter.convert(sample_pdf, tmp_path / "out.docx")

    assert result.success
    assert result.recovery_attempts == 1
    assert any("Recovery attempt 1" in warning for warning in result.warnings)
    assert converter.statistics().successful_conversions == 1


def test_timeout_is_reported(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser(["text"], delay=0.3))
    options = ConversionOptions(timeout_ms=100, enable_recovery=False)

    result = converter.convert(sample_pdf, tmp_path / "slow.docx", options)

    assert not result.success
    assert result.errors[0].type is ErrorType.TIMEOUT
    assert result.errors[0].conversion_step == "content_extraction"


def test_failing_page_becomes_warning(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser(["kept", "lost"], broken_pages={1}))

    result = converter.convert(sample_pdf, tmp_path / "out.docx")

    assert result.success
    assert any("Page 2" in warning for warning in result.warnings)
    texts = [paragraph.text for paragraph in Document(str(tmp_path / "out.docx")).paragraphs]
    assert texts == ["kept"]


def test_batch_with_one_malformed_file(pdf_factory, tmp_path: Path, make_converter) -> None:
    good_one = pdf_factory("one.pdf")
    good_two = pdf_factory("two.pdf")
    malformed = tmp_path / "broken.pdf"
    malformed.write_text("not a pdf", encoding="utf-8")
    converter = make_converter(FakeSourceParser(["text"]))
    seen: list[tuple[int, int]] = []

    batch = converter.batch_convert(
        [good_one, malformed, good_two],
        tmp_path / "converted",
        progress_callback=lambda current, total: seen.append((current, total)),
    )

    assert batch.total_files == 3
    assert batch.successful_conversions == 2
    assert batch.failed_conversions == 1
    assert [result.success for result in batch.results] == [True, False, True]
    assert batch.results[1].errors[0].type is ErrorType.INVALID_INPUT
    assert (tmp_path / "converted" / "one.docx").exists()
    assert (tmp_path / "converted" / "two.docx").exists()
    assert seen == [(1, 3), (2, 3), (3, 3)]


def test_statistics_reset(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser(["text"]))
    converter.convert(sample_pdf, tmp_path / "a.docx")
    converter.convert(tmp_path / "missing.pdf", tmp_path / "b.docx")

    snapshot = converter.statistics()
    assert snapshot.total_conversions == 2
    assert snapshot.successful_conversions == 1
    assert snapshot.failed_conversions == 1
    assert snapshot.success_rate == 0.5

    converter.reset_statistics()
    assert converter.statistics().total_conversions == 0


def test_concurrent_conversions_share_one_converter(pdf_factory, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    sources = [pdf_factory(f"doc{index}.pdf") for index in range(4)]
    results = []

    def run(source: Path) -> None:
        results.append(converter.convert(source, tmp_path / "out" / f"{source.stem}.docx"))

    threads = [threading.Thread(target=run, args=(source,)) for source in sources]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(results) == 4
    assert all(result.success for result in results)
    assert converter.statistics().total_conversions == 4


def test_end_to_end_with_pypdf(tmp_path: Path) -> None:
    source = write_text_pdf(tmp_path / "hello.pdf", ["Hello World"], metadata={"/Title": "Greeting"})
    output = tmp_path / "hello.docx"

    result = convert_pdf_to_docx(source, output, intermediate_format="lightweight-markup")

    assert result.success, result.errors
    document = Document(str(output))
    assert any("Hello World" in paragraph.text for paragraph in document.paragraphs)
    assert document.core_properties.title == "Greeting"


def test_persistent_formatting_failure_is_skipped(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))

    with patch("pdfconvertx.pipeline.validate_output", side_effect=FormattingError("styles lost")) as validate:
        result = converter.convert(sample_pdf, tmp_path / "out.docx")

    assert validate.call_count == 2
    assert result.success
    assert result.skipped
    assert result.recovery_attempts == 2
    assert any("Content skipped" in warning for warning in result.warnings)
    assert converter.error_statistics().by_type == {"formatting_preservation_failed": 2}


def test_alternative_pipeline_after_container_failure(sample_pdf: Path, tmp_path: Path, make_converter) -> None:
    converter = make_converter(FakeSourceParser([SAMPLE_PAGE]))
    output = tmp_path / "out.docx"

    with patch("pdfconvertx.docx.writer.write_docx", side_effect=OSError("archive writer crashed")):
        result = converter.convert(sample_pdf, output)

    assert result.success, result.errors
    assert result.recovery_attempts == 2
    assert result.metadata["intermediate_format"] == "lightweight-markup"
    assert any(paragraph.text == "INTRODUCTION" for paragraph in Document(str(output)).paragraphs)
