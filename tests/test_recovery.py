from __future__ import annotations

from pathlib import Path

import pytest

from pdfconvertx.config import PipelineSettings
from pdfconvertx.exceptions import (
    ContainerGenerationError,
    FileSizeLimitError,
    FormattingError,
    PipelineStepError,
)
from pdfconvertx.recovery import RecoveryEngine, build_conversion_error, classify
from pdfconvertx.taxonomy import (
    NON_RECOVERABLE_TYPES,
    STRATEGY_TABLE,
    ErrorType,
    RecoveryStrategy,
    Severity,
    severity_for,
    strategies_for,
)
from pdfconvertx.types import ConversionOptions, ConversionResult, IntermediateFormat

SOURCE = Path("/tmp/input.pdf")
TARGET = Path("/tmp/output.docx")


def _failure(exc: BaseException, step: str) -> PipelineStepError:
    result = ConversionResult(input_path=SOURCE, output_path=TARGET)
    result.add_step(step, 1.0, success=False)
    error = build_conversion_error(exc, step, SOURCE, TARGET)
    result.add_error(error)
    return PipelineStepError(error, result)


class ScriptedRunner:
    """Raises the scripted failures in order, then succeeds."""

    def __init__(self, *failures: PipelineStepError) -> None:
        self.failures = list(failures)
        self.seen: list[ConversionOptions] = []

    def __call__(self, options: ConversionOptions) -> ConversionResult:
        self.seen.append(options)
        if self.failures:
            raise self.failures.pop(0)
        result = ConversionResult(input_path=SOURCE, output_path=TARGET, success=True)
        result.add_step("post_processing", 1.0)
        return result


@pytest.fixture()
def engine() -> RecoveryEngine:
    return RecoveryEngine(PipelineSettings(retry_delay_seconds=0))


@pytest.mark.parametrize(
    "exc, step, expected",
    [
        (RuntimeError("operation timed out"), "content_extraction", ErrorType.TIMEOUT),
        (RuntimeError("cannot allocate memory"), None, ErrorType.MEMORY_LIMIT_EXCEEDED),
        (MemoryError(), "content_extraction", ErrorType.MEMORY_LIMIT_EXCEEDED),
        (RuntimeError("File too large"), None, ErrorType.FILE_SIZE_LIMIT_EXCEEDED),
        (ValueError("bad xref"), "content_extraction", ErrorType.CONTENT_EXTRACTION_FAILED),
        (KeyError("x"), "intermediate_generation", ErrorType.INTERMEDIATE_GENERATION_FAILED),
        (OSError("disk full"), "container_generation", ErrorType.CONTAINER_GENERATION_FAILED),
        (ValueError("style"), "post_processing", ErrorType.FORMATTING_PRESERVATION_FAILED),
        (ValueError("corrupt stream"), None, ErrorType.VALIDATION_FAILED),
        (ValueError("something"), None, ErrorType.CONVERSION_FAILED),
        (ContainerGenerationError("bad rels"), "post_processing", ErrorType.CONTAINER_GENERATION_FAILED),
    ],
)
def test_classify(exc: BaseException, step: str | None, expected: ErrorType) -> None:
    assert classify(exc, step) is expected


def test_every_error_type_has_severity_and_strategies() -> None:
    for error_type in ErrorType:
        assert isinstance(severity_for(error_type), Severity)
        assert strategies_for(error_type)
    assert STRATEGY_TABLE[ErrorType.TIMEOUT] == (
        RecoveryStrategy.SPLIT_DOCUMENT,
        RecoveryStrategy.REDUCE_QUALITY,
        RecoveryStrategy.RETRY,
    )
    assert severity_for(ErrorType.FILE_SIZE_LIMIT_EXCEEDED) is Severity.CRITICAL
    assert ErrorType.VALIDATION_FAILED in NON_RECOVERABLE_TYPES


def test_built_error_carries_context() -> None:
    error = build_conversion_error(FileSizeLimitError("too big", limit=10), "validation", SOURCE, TARGET)

    assert error.type is ErrorType.FILE_SIZE_LIMIT_EXCEEDED
    assert error.severity is Severity.CRITICAL
    assert error.recovery_strategies == (RecoveryStrategy.ABORT,)
    assert error.conversion_step == "validation"
    assert error.input_file == str(SOURCE)
    assert error.details["limit"] == 10
    assert not error.recoverable
    assert error.as_dict()["type"] == "file_size_limit_exceeded"


def test_success_needs_no_recovery(engine: RecoveryEngine) -> None:
    result = engine.run(SOURCE, ConversionOptions(), ScriptedRunner())

    assert result.success
    assert result.recovery_attempts == 0


def test_retry_recovers_transient_failure(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(_failure(OSError("disk hiccup"), "container_generation"))

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert result.success
    assert result.recovery_attempts == 1
    assert runner.seen[0] == runner.seen[1]
    assert engine.statistics().successful_recoveries == 1


def test_retry_waits_between_attempts() -> None:
    delays: list[float] = []
    engine = RecoveryEngine(PipelineSettings(retry_delay_seconds=0.5), sleep=delays.append)

    engine.run(SOURCE, ConversionOptions(), ScriptedRunner(_failure(OSError("x"), "container_generation")))

    assert delays == [0.5]


def test_strategies_escalate_per_attempt(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(
        _failure(ValueError("broken font"), "content_extraction"),
        _failure(ValueError("broken font"), "content_extraction"),
        _failure(ValueError("broken font"), "content_extraction"),
    )

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert result.success
    assert result.recovery_attempts == 3
    retry, alternative, fallback = runner.seen[1:]
    assert retry == runner.seen[0]
    assert alternative.alternative_pipeline is True
    assert alternative.intermediate_format is IntermediateFormat.LIGHTWEIGHT_MARKUP
    assert fallback.intermediate_format is IntermediateFormat.PLAIN_TEXT
    assert fallback.extract_images is False
    assert fallback.preserve_formatting is False


def test_retry_ceiling(engine: RecoveryEngine) -> None:
    failures = [_failure(OSError("still broken"), "container_generation") for _ in range(10)]
    runner = ScriptedRunner(*failures)

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert not result.success
    assert result.recovery_attempts == 3
    assert len(runner.seen) == 4
    assert result.errors[-1].type is ErrorType.CONTAINER_GENERATION_FAILED
    assert any("Maximum recovery attempts" in warning for warning in result.warnings)
    assert engine.statistics().failed_recoveries == 1


def test_non_recoverable_errors_surface_immediately(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(_failure(FileSizeLimitError("too big"), "validation"))

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert not result.success
    assert result.recovery_attempts == 0
    assert len(runner.seen) == 1


def test_recovery_can_be_disabled(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(_failure(OSError("x"), "container_generation"))

    result = engine.run(SOURCE, ConversionOptions(enable_recovery=False), runner)

    assert not result.success
    assert len(runner.seen) == 1


def test_timeout_splits_the_document(engine: RecoveryEngine) -> None:
    failure = _failure(RuntimeError("Step timed out"), "content_extraction")
    failure.result.statistics.page_count = 8
    runner = ScriptedRunner(failure, _failure(RuntimeError("Step timed out"), "content_extraction"))

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert result.success
    assert runner.seen[1].page_batch_size == 4
    assert runner.seen[2].quality_level == "low"


def test_memory_errors_abort_after_two_strategies(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(*[_failure(MemoryError(), "content_extraction") for _ in range(3)])

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert not result.success
    assert result.recovery_attempts == 2
    assert runner.seen[1].page_batch_size == 1
    assert runner.seen[2].quality_level == "low"


def test_skip_content_returns_placeholder(engine: RecoveryEngine) -> None:
    runner = ScriptedRunner(
        _failure(FormattingError("lost styles"), "post_processing"),
        _failure(FormattingError("lost styles"), "post_processing"),
    )

    result = engine.run(SOURCE, ConversionOptions(), runner)

    assert result.success
    assert result.skipped
    assert result.errors == []
    assert result.steps
    assert any("Content skipped" in warning for warning in result.warnings)
    assert len(runner.seen) == 2


def test_error_history_is_bounded() -> None:
    engine = RecoveryEngine(PipelineSettings(retry_delay_seconds=0, error_history_limit=2, max_retries=0))
    for message in ("one", "two", "three"):
        engine.run(SOURCE, ConversionOptions(), ScriptedRunner(_failure(OSError(message), "container_generation")))

    assert [error.message for error in engine.recent_errors()] == ["two", "three"]
    assert engine.statistics().total_errors == 3
    assert engine.statistics().by_type == {"container_generation_failed": 3}
    engine.clear_history()
    assert engine.recent_errors() == []
