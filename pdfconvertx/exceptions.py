"""
Custom exceptions for pdfconvertx.

Every exception raised inside the pipeline carries the :class:`ErrorType`
it belongs to, so the recovery engine never has to guess at errors that
originate in this package.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .taxonomy import ErrorType

if TYPE_CHECKING:  # pragma: no cover
    from .types import ConversionError, ConversionResult


class PdfConvertXError(RuntimeError):
    """Base exception for all pdfconvertx errors."""

    error_type: ErrorType = ErrorType.CONVERSION_FAILED

    def __init__(self, message: str = "", **details: Any) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    @property
    def default_message(self) -> str:
        return "An unknown conversion error occurred."


class InvalidInputError(PdfConvertXError):
    """Raised when the input file is missing or not a readable PDF."""

    error_type = ErrorType.INVALID_INPUT

    @property
    def default_message(self) -> str:
        return "Invalid or unreadable input document."


class FileSizeLimitError(PdfConvertXError):
    """Raised when the input exceeds the configured maximum size."""

    error_type = ErrorType.FILE_SIZE_LIMIT_EXCEEDED

    @property
    def default_message(self) -> str:
        return "Input file size exceeds the configured limit."


class ConversionTimeoutError(PdfConvertXError):
    """Raised by a step that has overrun the conversion deadline."""

    error_type = ErrorType.TIMEOUT

    @property
    def default_message(self) -> str:
        return "Conversion timed out."


class ContentExtractionError(PdfConvertXError):
    error_type = ErrorType.CONTENT_EXTRACTION_FAILED

    @property
    def default_message(self) -> str:
        return "Failed to extract content from the source document."


class IntermediateGenerationError(PdfConvertXError):
    error_type = ErrorType.INTERMEDIATE_GENERATION_FAILED

    @property
    def default_message(self) -> str:
        return "Failed to generate the intermediate representation."


class ContainerGenerationError(PdfConvertXError):
    error_type = ErrorType.CONTAINER_GENERATION_FAILED

    @property
    def default_message(self) -> str:
        return "Failed to generate the DOCX container."


class FormattingError(PdfConvertXError):
    error_type = ErrorType.FORMATTING_PRESERVATION_FAILED

    @property
    def default_message(self) -> str:
        return "Failed to preserve document formatting."


class ImageEmbeddingError(PdfConvertXError):
    error_type = ErrorType.IMAGE_EMBEDDING_FAILED

    @property
    def default_message(self) -> str:
        return "Failed to embed images into the DOCX container."


class OutputValidationError(PdfConvertXError):
    """Raised when the produced DOCX cannot be opened or verified."""

    error_type = ErrorType.VALIDATION_FAILED

    @property
    def default_message(self) -> str:
        return "The generated DOCX failed validation."


class CacheError(PdfConvertXError):
    error_type = ErrorType.CACHE_ERROR

    @property
    def default_message(self) -> str:
        return "Conversion cache operation failed."


class OutputConflictError(PdfConvertXError):
    """Raised when no free output path could be allocated."""

    error_type = ErrorType.VALIDATION_FAILED

    @property
    def default_message(self) -> str:
        return "Unable to resolve a non-conflicting output path."


class PipelineStepError(PdfConvertXError):
    """Carries a classified failure and the partial result out of a pipeline run."""

    def __init__(self, error: "ConversionError", result: "ConversionResult") -> None:
        super().__init__(error.message)
        self.error = error
        self.result = result
        self.error_type = error.type

    @property
    def default_message(self) -> str:
        return "A pipeline step failed."


__all__ = [
    "CacheError",
    "ContainerGenerationError",
    "ContentExtractionError",
    "ConversionTimeoutError",
    "FileSizeLimitError",
    "FormattingError",
    "ImageEmbeddingError",
    "IntermediateGenerationError",
    "InvalidInputError",
    "OutputConflictError",
    "OutputValidationError",
    "PdfConvertXError",
    "PipelineStepError",
]
