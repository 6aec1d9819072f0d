"""Closed error taxonomy and recovery dispatch tables."""

from __future__ import annotations

from enum import Enum

__all__ = [
    "ErrorType",
    "NON_RECOVERABLE_TYPES",
    "RecoveryStrategy",
    "SEVERITY_TABLE",
    "STRATEGY_TABLE",
    "Severity",
    "severity_for",
    "strategies_for",
]


class ErrorType(str, Enum):
    TIMEOUT = "timeout"
    MEMORY_LIMIT_EXCEEDED = "memory_limit_exceeded"
    FILE_SIZE_LIMIT_EXCEEDED = "file_size_limit_exceeded"
    CONTENT_EXTRACTION_FAILED = "content_extraction_failed"
    INTERMEDIATE_GENERATION_FAILED = "intermediate_generation_failed"
    CONTAINER_GENERATION_FAILED = "container_generation_failed"
    FORMATTING_PRESERVATION_FAILED = "formatting_preservation_failed"
    IMAGE_EMBEDDING_FAILED = "image_embedding_failed"
    VALIDATION_FAILED = "validation_failed"
    INVALID_INPUT = "invalid_input"
    CACHE_ERROR = "cache_error"
    CONVERSION_FAILED = "conversion_failed"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryStrategy(str, Enum):
    RETRY = "retry"
    FALLBACK_FORMAT = "fallback_format"
    REDUCE_QUALITY = "reduce_quality"
    SKIP_CONTENT = "skip_content"
    SPLIT_DOCUMENT = "split_document"
    ALTERNATIVE_PIPELINE = "alternative_pipeline"
    MANUAL_INTERVENTION = "manual_intervention"
    ABORT = "abort"


SEVERITY_TABLE: dict[ErrorType, Severity] = {
    ErrorType.TIMEOUT: Severity.CRITICAL,
    ErrorType.MEMORY_LIMIT_EXCEEDED: Severity.CRITICAL,
    ErrorType.FILE_SIZE_LIMIT_EXCEEDED: Severity.CRITICAL,
    ErrorType.CONTENT_EXTRACTION_FAILED: Severity.HIGH,
    ErrorType.CONTAINER_GENERATION_FAILED: Severity.HIGH,
    ErrorType.CONVERSION_FAILED: Severity.HIGH,
    ErrorType.INVALID_INPUT: Severity.HIGH,
    ErrorType.INTERMEDIATE_GENERATION_FAILED: Severity.MEDIUM,
    ErrorType.FORMATTING_PRESERVATION_FAILED: Severity.MEDIUM,
    ErrorType.IMAGE_EMBEDDING_FAILED: Severity.MEDIUM,
    ErrorType.VALIDATION_FAILED: Severity.LOW,
    ErrorType.CACHE_ERROR: Severity.LOW,
}

STRATEGY_TABLE: dict[ErrorType, tuple[RecoveryStrategy, ...]] = {
    ErrorType.TIMEOUT: (
        RecoveryStrategy.SPLIT_DOCUMENT,
        RecoveryStrategy.REDUCE_QUALITY,
        RecoveryStrategy.RETRY,
    ),
    ErrorType.MEMORY_LIMIT_EXCEEDED: (
        RecoveryStrategy.SPLIT_DOCUMENT,
        RecoveryStrategy.REDUCE_QUALITY,
        RecoveryStrategy.ABORT,
    ),
    ErrorType.FILE_SIZE_LIMIT_EXCEEDED: (RecoveryStrategy.ABORT,),
    ErrorType.CONTENT_EXTRACTION_FAILED: (
        RecoveryStrategy.RETRY,
        RecoveryStrategy.ALTERNATIVE_PIPELINE,
        RecoveryStrategy.FALLBACK_FORMAT,
    ),
    ErrorType.INTERMEDIATE_GENERATION_FAILED: (
        RecoveryStrategy.RETRY,
        RecoveryStrategy.FALLBACK_FORMAT,
    ),
    ErrorType.CONTAINER_GENERATION_FAILED: (
        RecoveryStrategy.RETRY,
        RecoveryStrategy.ALTERNATIVE_PIPELINE,
    ),
    ErrorType.FORMATTING_PRESERVATION_FAILED: (
        RecoveryStrategy.REDUCE_QUALITY,
        RecoveryStrategy.SKIP_CONTENT,
        RecoveryStrategy.FALLBACK_FORMAT,
    ),
    ErrorType.IMAGE_EMBEDDING_FAILED: (
        RecoveryStrategy.SKIP_CONTENT,
        RecoveryStrategy.RETRY,
    ),
    ErrorType.VALIDATION_FAILED: (RecoveryStrategy.MANUAL_INTERVENTION,),
    ErrorType.INVALID_INPUT: (RecoveryStrategy.MANUAL_INTERVENTION,),
    ErrorType.CACHE_ERROR: (RecoveryStrategy.RETRY,),
    ErrorType.CONVERSION_FAILED: (
        RecoveryStrategy.RETRY,
        RecoveryStrategy.ALTERNATIVE_PIPELINE,
        RecoveryStrategy.FALLBACK_FORMAT,
    ),
}

NON_RECOVERABLE_TYPES = frozenset(
    {
        ErrorType.FILE_SIZE_LIMIT_EXCEEDED,
        ErrorType.VALIDATION_FAILED,
        ErrorType.INVALID_INPUT,
    }
)


def severity_for(error_type: ErrorType) -> Severity:
    return SEVERITY_TABLE.get(error_type, Severity.HIGH)


def strategies_for(error_type: ErrorType) -> tuple[RecoveryStrategy, ...]:
    return STRATEGY_TABLE.get(error_type, (RecoveryStrategy.RETRY,))
