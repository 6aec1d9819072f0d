"""Conversion entry points for pdfconvertx."""
from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from .context import PipelineContext
from .exceptions import PdfConvertXError
from .output import ConflictStrategy, OutputPathResolver
from .pipeline import ConversionPipeline
from .progress import ProgressChannel
from .recovery import ErrorStatistics, build_conversion_error
from .statistics import StatisticsSnapshot
from .types import BatchResult, ConversionError, ConversionOptions, ConversionResult
from .utils import PathLike, elapsed_ms, time_block, to_path

LOGGER = logging.getLogger(__name__)

BatchProgressCallback = Callable[[int, int], None]


class PdfToDocxConverter:
    """Orchestrates conversions through one :class:`PipelineContext`.

    Instances are safe to share between threads; every call of
    :meth:`convert` owns its own result and progress channel.
    """

    def __init__(self, context: Optional[PipelineContext] = None) -> None:
        self.context = context or PipelineContext.create()
        self.pipeline = ConversionPipeline(self.context)

    def convert(
        self,
        input_path: PathLike,
        output_path: PathLike,
        options: Optional[ConversionOptions] = None,
        channel: Optional[ProgressChannel] = None,
    ) -> ConversionResult:
        """Convert one PDF. Failures are reported in the result, never raised.

        A ``channel`` must be fresh: passing a closed one is a caller error.
        """

        if channel is not None and channel.closed:
            raise ValueError("Progress channel is already closed; pass a new ProgressChannel")
        source = to_path(input_path)
        destination = to_path(output_path)
        options = options or self.context.settings.default_options
        started = time.perf_counter()

        LOGGER.info("Starting conversion: %s -> %s", source, destination)
        try:
            with time_block(LOGGER, f"Conversion of {source.name}"):
                result = self.context.recovery.run(
                    source,
                    options,
                    lambda attempt_options: self.pipeline.run(source, destination, attempt_options, channel),
                )
        finally:
            if channel is not None:
                channel.close()

        result.processing_time_ms = elapsed_ms(started)
        self.context.statistics.record_conversion(result.success, result.processing_time_ms)
        if result.success:
            LOGGER.info("Conversion completed: %s", destination)
        else:
            LOGGER.error("Conversion failed: %s (%d errors)", source, len(result.errors))
        return result

    def batch_convert(
        self,
        input_paths: Iterable[PathLike],
        output_dir: PathLike,
        options: Optional[ConversionOptions] = None,
        *,
        resolver: Optional[OutputPathResolver] = None,
        progress_callback: Optional[BatchProgressCallback] = None,
    ) -> BatchResult:
        """Convert files one after another into ``output_dir``.

        Each input becomes ``<stem>.docx``. A failing input is recorded and
        the batch moves on.
        """

        sources = [to_path(path) for path in input_paths]
        directory = to_path(output_dir)
        resolver = resolver or OutputPathResolver(ConflictStrategy.OVERWRITE)
        results: list[ConversionResult] = []

        LOGGER.info("Batch converting %d files into %s", len(sources), directory)
        for index, source in enumerate(sources, start=1):
            results.append(self._convert_one(source, directory, options, resolver))
            if progress_callback is not None:
                progress_callback(index, len(sources))

        successful = sum(1 for result in results if result.success)
        batch = BatchResult(
            total_files=len(sources),
            successful_conversions=successful,
            failed_conversions=len(sources) - successful,
            results=results,
        )
        LOGGER.info(
            "Batch finished: %d succeeded, %d failed", batch.successful_conversions, batch.failed_conversions
        )
        return batch

    def _convert_one(
        self,
        source: Path,
        directory: Path,
        options: Optional[ConversionOptions],
        resolver: OutputPathResolver,
    ) -> ConversionResult:
        started = time.perf_counter()
        try:
            resolved = resolver.resolve(source, directory)
        except (PdfConvertXError, OSError) as exc:
            failed = ConversionResult(input_path=source, output_path=directory / f"{source.stem}.docx")
            failed.add_step("output_resolution", elapsed_ms(started), success=False, error=str(exc))
            failed.add_error(build_conversion_error(exc, "output_resolution", source))
            failed.processing_time_ms = elapsed_ms(started)
            self.context.statistics.record_conversion(False, failed.processing_time_ms)
            return failed

        if resolved.skipped:
            skipped = ConversionResult(input_path=source, output_path=resolved.path, success=True, skipped=True)
            skipped.add_step("output_resolution", elapsed_ms(started), skipped=True)
            skipped.add_warning(f"Output exists, skipped: {resolved.path}")
            return skipped
        return self.convert(source, resolved.path, options)

    def statistics(self) -> StatisticsSnapshot:
        return self.context.statistics.snapshot()

    def error_statistics(self) -> ErrorStatistics:
        return self.context.recovery.statistics()

    def recent_errors(self, limit: Optional[int] = None) -> list[ConversionError]:
        return self.context.recovery.recent_errors(limit)

    def clear_cache(self) -> None:
        self.context.cache.clear()
        LOGGER.info("Conversion cache cleared")

    def reset_statistics(self) -> None:
        self.context.statistics.reset()


def convert_pdf_to_docx(
    input_path: PathLike,
    output_path: PathLike,
    **option_overrides: Any,
) -> ConversionResult:
    """Convert a single PDF with a fresh converter."""
    options = ConversionOptions(**option_overrides)
    return PdfToDocxConverter().convert(input_path, output_path, options)


__all__ = ["BatchProgressCallback", "PdfToDocxConverter", "convert_pdf_to_docx"]
