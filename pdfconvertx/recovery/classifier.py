"""Maps raised exceptions onto the closed error taxonomy."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from ..exceptions import PdfConvertXError
from ..taxonomy import ErrorType, severity_for, strategies_for
from ..types import ConversionError

__all__ = ["build_conversion_error", "classify"]

# (keywords searched in the step name, resulting type), checked in order.
_STEP_KEYWORDS: tuple[tuple[tuple[str, ...], ErrorType], ...] = (
    (("validation",), ErrorType.INVALID_INPUT),
    (("cache",), ErrorType.CACHE_ERROR),
    (("extraction", "pdf"), ErrorType.CONTENT_EXTRACTION_FAILED),
    (("intermediate", "html", "markdown"), ErrorType.INTERMEDIATE_GENERATION_FAILED),
    (("container", "docx", "generation"), ErrorType.CONTAINER_GENERATION_FAILED),
    (("formatting", "style", "post_processing"), ErrorType.FORMATTING_PRESERVATION_FAILED),
    (("image", "media"), ErrorType.IMAGE_EMBEDDING_FAILED),
)


def classify(raw_error: BaseException, step: Optional[str] = None) -> ErrorType:
    """Return the :class:`ErrorType` for ``raw_error`` raised during ``step``.

    Errors raised by this package carry their type. Anything else comes from
    a collaborator (pypdf, Pillow, python-docx, the OS) and is classified
    from its kind, its message and the failing step.
    """

    if isinstance(raw_error, PdfConvertXError):
        return raw_error.error_type
    if isinstance(raw_error, MemoryError):
        return ErrorType.MEMORY_LIMIT_EXCEEDED
    if isinstance(raw_error, TimeoutError):
        return ErrorType.TIMEOUT

    message = str(raw_error).lower()
    step_name = (step or "").lower()

    if "timeout" in message or "timed out" in message:
        return ErrorType.TIMEOUT
    if "memory" in message or "heap" in message:
        return ErrorType.MEMORY_LIMIT_EXCEEDED
    if "file size" in message or "too large" in message:
        return ErrorType.FILE_SIZE_LIMIT_EXCEEDED
    for keywords, error_type in _STEP_KEYWORDS:
        if any(keyword in step_name for keyword in keywords):
            return error_type
    if any(keyword in message for keyword in ("invalid", "corrupt", "malformed")):
        return ErrorType.VALIDATION_FAILED
    if "cache" in message:
        return ErrorType.CACHE_ERROR
    return ErrorType.CONVERSION_FAILED


def build_conversion_error(
    raw_error: BaseException,
    step: Optional[str] = None,
    input_file: Optional[Path] = None,
    output_file: Optional[Path] = None,
    **details: Any,
) -> ConversionError:
    error_type = classify(raw_error, step)
    if isinstance(raw_error, PdfConvertXError):
        details = {**raw_error.details, **details}
    details.setdefault("exception", type(raw_error).__name__)
    return ConversionError(
        type=error_type,
        severity=severity_for(error_type),
        recovery_strategies=strategies_for(error_type),
        conversion_step=step,
        input_file=str(input_file) if input_file else None,
        output_file=str(output_file) if output_file else None,
        message=str(raw_error) or type(raw_error).__name__,
        details=details,
    )
