"""Top-level package for pdfconvertx.

Converts PDF documents to DOCX through a staged pipeline: content
extraction, an intermediate representation, and a DOCX container, with
caching, progress reporting and automatic error recovery.
"""
from .config import PipelineSettings
from .context import PipelineContext
from .converter import PdfToDocxConverter, convert_pdf_to_docx
from .exceptions import PdfConvertXError
from .output import ConflictStrategy, OutputPathResolver
from .progress import ProgressChannel
from .taxonomy import ErrorType, RecoveryStrategy, Severity
from .types import (
    BatchResult,
    ConversionError,
    ConversionOptions,
    ConversionResult,
    IntermediateFormat,
    PageRange,
)

__all__ = [
    "BatchResult",
    "ConflictStrategy",
    "ConversionError",
    "ConversionOptions",
    "ConversionResult",
    "ErrorType",
    "IntermediateFormat",
    "OutputPathResolver",
    "PageRange",
    "PdfConvertXError",
    "PdfToDocxConverter",
    "PipelineContext",
    "PipelineSettings",
    "ProgressChannel",
    "RecoveryStrategy",
    "Severity",
    "convert_pdf_to_docx",
]

__version__ = "0.1.0"
