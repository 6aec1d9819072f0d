"""Data structures shared across the pdfconvertx pipeline."""

from __future__ import annotations

import dataclasses
import re
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Mapping

from .taxonomy import NON_RECOVERABLE_TYPES, ErrorType, RecoveryStrategy, Severity

QualityLevel = Literal["low", "medium", "high"]
QUALITY_LEVELS: tuple[str, ...] = ("low", "medium", "high")

DEFAULT_TIMEOUT_MS = 300_000
DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024

_RANGE_PATTERN = re.compile(r"^\s*(\d+)\s*(?:-\s*(\d+)\s*)?$")


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class IntermediateFormat(str, Enum):
    MARKUP = "markup"
    LIGHTWEIGHT_MARKUP = "lightweight-markup"
    PLAIN_TEXT = "plain-text"

    @classmethod
    def coerce(cls, value: "IntermediateFormat | str") -> "IntermediateFormat":
        if isinstance(value, cls):
            return value
        aliases = {"html": cls.MARKUP, "markdown": cls.LIGHTWEIGHT_MARKUP, "text": cls.PLAIN_TEXT}
        key = str(value).strip().lower()
        if key in aliases:
            return aliases[key]
        try:
            return cls(key)
        except ValueError as exc:
            raise ValueError(f"Unsupported intermediate format: {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class PageRange:
    """Inclusive, 1-based page range."""

    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 1 or self.end < self.start:
            raise ValueError(f"Invalid page range: {self.start}-{self.end}")

    @classmethod
    def parse(cls, spec: str) -> "PageRange":
        match = _RANGE_PATTERN.match(spec)
        if not match:
            raise ValueError(f"Invalid page range specification: {spec!r}")
        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) else start
        return cls(start, end)

    def clamp(self, page_count: int) -> range:
        """Return the zero-based page indices covered within ``page_count`` pages."""
        last = min(self.end, page_count)
        return range(self.start - 1, last)

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclasses.dataclass(frozen=True)
class ConversionOptions:
    """Options controlling a single PDF to DOCX conversion."""

    preserve_formatting: bool = True
    extract_images: bool = True
    preserve_metadata: bool = True
    intermediate_format: IntermediateFormat = IntermediateFormat.MARKUP
    quality_level: QualityLevel = "medium"
    page_range: PageRange | None = None
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE
    bypass_cache: bool = False
    enable_recovery: bool = True
    alternative_pipeline: bool = False
    page_batch_size: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "intermediate_format", IntermediateFormat.coerce(self.intermediate_format)
        )
        if self.quality_level not in QUALITY_LEVELS:
            raise ValueError(f"Unsupported quality level: {self.quality_level!r}")
        if isinstance(self.page_range, str):
            object.__setattr__(self, "page_range", PageRange.parse(self.page_range))
        if self.page_batch_size is not None and self.page_batch_size < 1:
            raise ValueError("page_batch_size must be a positive integer")

    def with_updates(self, **changes: Any) -> "ConversionOptions":
        return dataclasses.replace(self, **changes)

    def cache_fields(self) -> dict[str, Any]:
        """Options that influence the produced output, in a JSON friendly form."""
        return {
            "preserve_formatting": self.preserve_formatting,
            "extract_images": self.extract_images,
            "preserve_metadata": self.preserve_metadata,
            "intermediate_format": self.intermediate_format.value,
            "quality_level": self.quality_level,
            "page_range": str(self.page_range) if self.page_range else None,
            "alternative_pipeline": self.alternative_pipeline,
        }


@dataclasses.dataclass(frozen=True)
class Heading:
    text: str
    level: int


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"


@dataclasses.dataclass(frozen=True)
class PageStructure:
    """Segmented content of a single page.

    ``blocks`` records document order as ``(kind, index)`` pairs pointing into
    the per-kind sequences.
    """

    paragraphs: tuple[str, ...] = ()
    headings: tuple[Heading, ...] = ()
    lists: tuple[tuple[str, ...], ...] = ()
    tables: tuple[Any, ...] = ()
    blocks: tuple[tuple[BlockKind, int], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.paragraphs or self.headings or self.lists)


@dataclasses.dataclass(frozen=True)
class PageContent:
    page_number: int
    raw_text: str
    structure: PageStructure
    error: str | None = None


@dataclasses.dataclass(frozen=True)
class ExtractedImage:
    page_number: int
    name: str
    data: bytes
    mime_type: str
    width: int = 0
    height: int = 0
    has_transparency: bool = False
    metadata: Mapping[str, Any] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class DocumentContent:
    page_count: int
    pages: tuple[PageContent, ...]
    images: tuple[ExtractedImage, ...] = ()
    metadata: Mapping[str, str] = dataclasses.field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def images_for_page(self, page_number: int) -> list[ExtractedImage]:
        return [image for image in self.images if image.page_number == page_number]


@dataclasses.dataclass(frozen=True)
class StepRecord:
    step: str
    duration_ms: float
    success: bool
    details: Mapping[str, Any] = dataclasses.field(default_factory=dict)
    timestamp: datetime = dataclasses.field(default_factory=_utcnow)


@dataclasses.dataclass
class ConversionStatistics:
    input_size: int = 0
    output_size: int = 0
    page_count: int = 0
    word_count: int = 0
    image_count: int = 0

    @property
    def compression_ratio(self) -> float:
        if self.input_size == 0:
            return 0.0
        return self.output_size / self.input_size

    def as_dict(self) -> dict[str, Any]:
        data = dataclasses.asdict(self)
        data["compression_ratio"] = self.compression_ratio
        return data


@dataclasses.dataclass(frozen=True)
class ConversionError:
    """Classified, immutable description of a failed conversion step."""

    type: ErrorType
    severity: Severity
    recovery_strategies: tuple[RecoveryStrategy, ...]
    conversion_step: str | None
    input_file: str | None
    output_file: str | None
    message: str
    timestamp: datetime = dataclasses.field(default_factory=_utcnow)
    details: Mapping[str, Any] = dataclasses.field(default_factory=dict)

    @property
    def recoverable(self) -> bool:
        return self.type not in NON_RECOVERABLE_TYPES and bool(self.recovery_strategies)

    def as_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "recovery_strategies": [strategy.value for strategy in self.recovery_strategies],
            "conversion_step": self.conversion_step,
            "input_file": self.input_file,
            "output_file": self.output_file,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
            "details": dict(self.details),
        }


@dataclasses.dataclass
class ConversionResult:
    """Outcome of one conversion. Only the orchestrator mutates it during a run."""

    input_path: Path
    output_path: Path
    success: bool = False
    metadata: dict[str, Any] = dataclasses.field(default_factory=dict)
    statistics: ConversionStatistics = dataclasses.field(default_factory=ConversionStatistics)
    warnings: list[str] = dataclasses.field(default_factory=list)
    errors: list[ConversionError] = dataclasses.field(default_factory=list)
    steps: list[StepRecord] = dataclasses.field(default_factory=list)
    processing_time_ms: float = 0.0
    from_cache: bool = False
    skipped: bool = False
    recovery_attempts: int = 0

    def add_step(
        self, step: str, duration_ms: float, success: bool = True, **details: Any
    ) -> StepRecord:
        record = StepRecord(step=step, duration_ms=max(duration_ms, 0.0), success=success, details=details)
        self.steps.append(record)
        return record

    def add_warning(self, warning: str) -> None:
        self.warnings.append(warning)

    def add_error(self, error: ConversionError) -> None:
        self.errors.append(error)

    def summary(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "input_path": str(self.input_path),
            "output_path": str(self.output_path),
            "processing_time_ms": self.processing_time_ms,
            "statistics": self.statistics.as_dict(),
            "steps": [
                {"step": record.step, "duration_ms": record.duration_ms, "success": record.success}
                for record in self.steps
            ],
            "warnings": list(self.warnings),
            "errors": [error.as_dict() for error in self.errors],
            "from_cache": self.from_cache,
            "skipped": self.skipped,
        }


@dataclasses.dataclass
class BatchResult:
    total_files: int
    successful_conversions: int
    failed_conversions: int
    results: list[ConversionResult]


@dataclasses.dataclass(frozen=True)
class ProgressEvent:
    percentage: int
    message: str
    timestamp: datetime = dataclasses.field(default_factory=_utcnow)


@dataclasses.dataclass(frozen=True)
class StepCompletedEvent:
    record: StepRecord


__all__ = [
    "BatchResult",
    "BlockKind",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "ConversionStatistics",
    "DEFAULT_MAX_FILE_SIZE",
    "DEFAULT_TIMEOUT_MS",
    "DocumentContent",
    "ExtractedImage",
    "Heading",
    "IntermediateFormat",
    "PageContent",
    "PageRange",
    "PageStructure",
    "ProgressEvent",
    "QUALITY_LEVELS",
    "QualityLevel",
    "StepCompletedEvent",
    "StepRecord",
]
