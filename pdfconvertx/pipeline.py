"""Single pass of the PDF to DOCX pipeline.

A run walks the fixed step sequence below, timing every step into a
:class:`~pdfconvertx.types.StepRecord`. The first failing step is
classified and raised as :class:`~pdfconvertx.exceptions.PipelineStepError`
carrying the partial result; recovery is the caller's concern.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional, TypeVar

from .cache import ConversionCache, fingerprint
from .docx import ContainerGenerator, ContainerSummary
from .exceptions import CacheError, PipelineStepError
from .extraction import ContentExtractor
from .intermediate import generate_intermediate
from .postprocess import validate_output
from .progress import MILESTONES, ProgressChannel
from .recovery import build_conversion_error
from .types import ConversionOptions, ConversionResult, DocumentContent
from .utils import Deadline, elapsed_ms, ensure_output_directory

if TYPE_CHECKING:  # pragma: no cover
    from .context import PipelineContext

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")

STEPS = (
    "validation",
    "cache_lookup",
    "content_extraction",
    "intermediate_generation",
    "container_generation",
    "post_processing",
)


class ConversionPipeline:
    def __init__(self, context: "PipelineContext") -> None:
        self.context = context
        self.extractor = ContentExtractor(context.parser, context.image_inspector)
        self.generator = ContainerGenerator()

    @property
    def cache(self) -> ConversionCache:
        return self.context.cache

    def run(
        self,
        input_path: Path,
        output_path: Path,
        options: ConversionOptions,
        channel: Optional[ProgressChannel] = None,
    ) -> ConversionResult:
        """Convert ``input_path`` into ``output_path`` once.

        Returns a successful result or raises :class:`PipelineStepError`.
        """

        started = time.perf_counter()
        deadline = Deadline(options.timeout_ms)
        result = ConversionResult(input_path=input_path, output_path=output_path)

        def step(name: str, action: Callable[[], tuple[T, dict[str, Any]]]) -> T:
            return self._run_step(result, name, action, deadline, channel, started)

        input_size = step("validation", lambda: self._validate(input_path, options))
        result.statistics.input_size = input_size

        cache_key = step("cache_lookup", lambda: self._lookup(input_path, output_path, options, result))
        if result.from_cache:
            result.success = True
            result.processing_time_ms = elapsed_ms(started)
            if channel is not None:
                channel.progress(100, "Loaded from cache")
            LOGGER.info("Served %s from cache", input_path.name)
            return result

        content = step("content_extraction", lambda: self._extract(input_path, options, deadline, result))
        intermediate = step("intermediate_generation", lambda: self._intermediate(content, options))
        summary = step(
            "container_generation",
            lambda: self._container(intermediate, output_path, content, options),
        )
        step("post_processing", lambda: self._post_process(output_path, summary, options))

        statistics = result.statistics
        statistics.output_size = summary.file_size
        statistics.page_count = len(content.pages)
        statistics.word_count = summary.word_count
        statistics.image_count = summary.image_count
        result.metadata = {
            "source": dict(content.metadata),
            "core_properties": {key: str(value) for key, value in summary.metadata.items()},
            "intermediate_format": options.intermediate_format.value,
            "page_count": content.page_count,
        }
        result.success = True
        result.processing_time_ms = elapsed_ms(started)

        if cache_key is not None:
            try:
                self.cache.put(
                    cache_key,
                    output_path,
                    {"statistics": statistics.as_dict(), "metadata": result.metadata},
                )
            except CacheError as exc:
                LOGGER.warning("Conversion of %s not cached: %s", input_path.name, exc)
                result.add_warning(f"Output not cached: {exc.message}")
        LOGGER.info(
            "Converted %s -> %s (%d pages, %d words, %d images) in %.0f ms",
            input_path.name,
            output_path.name,
            statistics.page_count,
            statistics.word_count,
            statistics.image_count,
            result.processing_time_ms,
        )
        return result

    def _run_step(
        self,
        result: ConversionResult,
        name: str,
        action: Callable[[], tuple[T, dict[str, Any]]],
        deadline: Deadline,
        channel: Optional[ProgressChannel],
        started: float,
    ) -> T:
        step_started = time.perf_counter()
        LOGGER.debug("Step %s started for %s", name, result.input_path.name)
        try:
            deadline.check(name)
            value, details = action()
            deadline.check(name)
        except Exception as exc:  # every step failure is classified, never propagated raw
            record = result.add_step(name, elapsed_ms(step_started), success=False, error=str(exc))
            if channel is not None:
                channel.step_completed(record)
            error = build_conversion_error(exc, name, result.input_path, result.output_path)
            result.add_error(error)
            result.processing_time_ms = elapsed_ms(started)
            raise PipelineStepError(error, result) from exc

        record = result.add_step(name, elapsed_ms(step_started), success=True, **details)
        if channel is not None:
            channel.step_completed(record)
            milestone = MILESTONES.get(name)
            if milestone is not None:
                channel.progress(*milestone)
        return value

    # ----------------------------------------------------------------- steps
    def _validate(self, input_path: Path, options: ConversionOptions) -> tuple[int, dict[str, Any]]:
        file_size = self.extractor.validate(input_path, options)
        return file_size, {"file_size": file_size}

    def _lookup(
        self,
        input_path: Path,
        output_path: Path,
        options: ConversionOptions,
        result: ConversionResult,
    ) -> tuple[Optional[str], dict[str, Any]]:
        if options.bypass_cache:
            return None, {"bypassed": True}
        key = fingerprint(input_path, options)
        entry = self.cache.get(key)
        self.context.statistics.record_cache_lookup(entry is not None)
        if entry is None:
            return key, {"hit": False}

        self.cache.materialize(entry, output_path)
        cached = entry.metadata.get("statistics", {})
        statistics = result.statistics
        statistics.page_count = cached.get("page_count", 0)
        statistics.word_count = cached.get("word_count", 0)
        statistics.image_count = cached.get("image_count", 0)
        statistics.output_size = output_path.stat().st_size
        result.metadata = dict(entry.metadata.get("metadata", {}))
        result.from_cache = True
        return key, {"hit": True}

    def _extract(
        self,
        input_path: Path,
        options: ConversionOptions,
        deadline: Deadline,
        result: ConversionResult,
    ) -> tuple[DocumentContent, dict[str, Any]]:
        content = self.extractor.extract(input_path, options, deadline)
        result.statistics.page_count = len(content.pages)
        for warning in content.warnings:
            result.add_warning(warning)
        errored = [page.page_number for page in content.pages if page.error]
        return content, {
            "pages": len(content.pages),
            "images": len(content.images),
            "errored_pages": errored,
        }

    @staticmethod
    def _intermediate(content: DocumentContent, options: ConversionOptions) -> tuple[str, dict[str, Any]]:
        intermediate = generate_intermediate(content, options.intermediate_format)
        return intermediate, {"format": options.intermediate_format.value, "length": len(intermediate)}

    def _container(
        self,
        intermediate: str,
        output_path: Path,
        content: DocumentContent,
        options: ConversionOptions,
    ) -> tuple[ContainerSummary, dict[str, Any]]:
        ensure_output_directory(output_path)
        summary = self.generator.generate(intermediate, output_path, content, options)
        return summary, {
            "file_size": summary.file_size,
            "paragraphs": summary.paragraph_count,
            "images": summary.image_count,
        }

    @staticmethod
    def _post_process(
        output_path: Path, summary: ContainerSummary, options: ConversionOptions
    ) -> tuple[None, dict[str, Any]]:
        expected = summary.metadata if options.preserve_metadata else None
        return None, validate_output(output_path, expected)


__all__ = ["ConversionPipeline", "STEPS"]
