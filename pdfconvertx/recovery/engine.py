"""Recovery engine: turns classified step failures into new attempts."""

from __future__ import annotations

import logging
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Optional

from ..config import PipelineSettings
from ..exceptions import PipelineStepError
from ..taxonomy import RecoveryStrategy, Severity
from ..types import ConversionError, ConversionOptions, ConversionResult, IntermediateFormat

LOGGER = logging.getLogger(__name__)

Runner = Callable[[ConversionOptions], ConversionResult]

_LOG_LEVELS = {
    Severity.CRITICAL: logging.ERROR,
    Severity.HIGH: logging.ERROR,
    Severity.MEDIUM: logging.WARNING,
    Severity.LOW: logging.INFO,
}


@dataclass
class RecoveryAction:
    """What to do after a strategy has been applied.

    Either ``options`` for the next attempt, a finished ``result`` that ends
    the conversion, or neither when the failure must be surfaced.
    """

    strategy: RecoveryStrategy
    options: Optional[ConversionOptions] = None
    result: Optional[ConversionResult] = None


@dataclass
class ErrorStatistics:
    total_errors: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)
    recovery_attempts: int = 0
    successful_recoveries: int = 0
    failed_recoveries: int = 0

    @property
    def recovery_success_rate(self) -> float:
        finished = self.successful_recoveries + self.failed_recoveries
        return self.successful_recoveries / finished if finished else 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "total_errors": self.total_errors,
            "by_type": dict(self.by_type),
            "by_severity": dict(self.by_severity),
            "recovery_attempts": self.recovery_attempts,
            "successful_recoveries": self.successful_recoveries,
            "failed_recoveries": self.failed_recoveries,
            "recovery_success_rate": self.recovery_success_rate,
        }


class RecoveryEngine:
    """Runs a conversion attempt and recovers from classified failures.

    Attempts are counted per call of :meth:`run`, keyed by error type, input
    file and failing step, so concurrent conversions never share a budget.
    """

    def __init__(self, settings: Optional[PipelineSettings] = None, sleep: Callable[[float], None] = time.sleep) -> None:
        self.settings = settings or PipelineSettings()
        self._sleep = sleep
        self._lock = Lock()
        self._history: deque[ConversionError] = deque(maxlen=self.settings.error_history_limit)
        self._by_type: Counter[str] = Counter()
        self._by_severity: Counter[str] = Counter()
        self._recovery_attempts = 0
        self._successful_recoveries = 0
        self._failed_recoveries = 0
        self._handlers: dict[RecoveryStrategy, Callable[[ConversionOptions, PipelineStepError], RecoveryAction]] = {
            RecoveryStrategy.RETRY: self._retry,
            RecoveryStrategy.FALLBACK_FORMAT: self._fallback_format,
            RecoveryStrategy.REDUCE_QUALITY: self._reduce_quality,
            RecoveryStrategy.SKIP_CONTENT: self._skip_content,
            RecoveryStrategy.SPLIT_DOCUMENT: self._split_document,
            RecoveryStrategy.ALTERNATIVE_PIPELINE: self._alternative_pipeline,
        }

    # ------------------------------------------------------------------ run
    def run(self, input_path: Path, options: ConversionOptions, runner: Runner) -> ConversionResult:
        """Call ``runner`` until it succeeds or recovery is exhausted.

        ``runner`` raises :class:`PipelineStepError` on failure. The returned
        result is never raised: failures come back with ``success=False``.
        """

        attempts: dict[tuple[str, str, Optional[str]], int] = {}
        current = options
        recovered = 0
        history: list[str] = []
        while True:
            try:
                result = runner(current)
            except PipelineStepError as failure:
                error = failure.error
                self.record_error(error)
                action = self._next_action(input_path, current, failure, attempts)
                if action.options is None and action.result is None:
                    return self._finish(failure.result, recovered, history, recovered_ok=False)
                recovered += 1
                history.append(f"Recovery attempt {recovered}: {action.strategy.value} after {error.type.value}")
                if action.result is not None:
                    return self._finish(action.result, recovered, history, recovered_ok=True)
                current = action.options
            else:
                return self._finish(result, recovered, history, recovered_ok=True)

    def _next_action(
        self,
        input_path: Path,
        options: ConversionOptions,
        failure: PipelineStepError,
        attempts: dict[tuple[str, str, Optional[str]], int],
    ) -> RecoveryAction:
        error = failure.error
        if not options.enable_recovery:
            return RecoveryAction(RecoveryStrategy.ABORT)
        if not error.recoverable:
            LOGGER.info("Error %s is not recoverable", error.type.value)
            return RecoveryAction(RecoveryStrategy.ABORT)

        key = (error.type.value, str(input_path), error.conversion_step)
        count = attempts.get(key, 0)
        if count >= self.settings.max_retries:
            LOGGER.warning(
                "Maximum recovery attempts (%d) exceeded for %s at %s",
                self.settings.max_retries,
                error.type.value,
                error.conversion_step,
            )
            failure.result.add_warning(
                f"Maximum recovery attempts ({self.settings.max_retries}) exceeded for {error.type.value}"
            )
            return RecoveryAction(RecoveryStrategy.ABORT)

        strategies = error.recovery_strategies
        strategy = strategies[min(count, len(strategies) - 1)]
        if strategy not in self._handlers:
            LOGGER.info("Strategy %s for %s requires the caller", strategy.value, error.type.value)
            return RecoveryAction(strategy)
        attempts[key] = count + 1
        with self._lock:
            self._recovery_attempts += 1
        LOGGER.info(
            "Recovering from %s at %s with %s (attempt %d/%d)",
            error.type.value,
            error.conversion_step,
            strategy.value,
            count + 1,
            self.settings.max_retries,
        )
        return self._handlers[strategy](options, failure)

    def _finish(
        self, result: ConversionResult, recovered: int, history: list[str], *, recovered_ok: bool
    ) -> ConversionResult:
        result.recovery_attempts = recovered
        for note in history:
            result.add_warning(note)
        if recovered:
            with self._lock:
                if recovered_ok and result.success:
                    self._successful_recoveries += 1
                else:
                    self._failed_recoveries += 1
        return result

    # ------------------------------------------------------------ strategies
    def _retry(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        if self.settings.retry_delay_seconds:
            self._sleep(self.settings.retry_delay_seconds)
        return RecoveryAction(RecoveryStrategy.RETRY, options=options)

    def _fallback_format(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        return RecoveryAction(
            RecoveryStrategy.FALLBACK_FORMAT,
            options=options.with_updates(
                intermediate_format=IntermediateFormat.PLAIN_TEXT,
                preserve_formatting=False,
                extract_images=False,
            ),
        )

    def _reduce_quality(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        return RecoveryAction(
            RecoveryStrategy.REDUCE_QUALITY,
            options=options.with_updates(quality_level="low", preserve_formatting=False),
        )

    def _split_document(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        base = options.page_batch_size or failure.result.statistics.page_count or 2
        return RecoveryAction(
            RecoveryStrategy.SPLIT_DOCUMENT,
            options=options.with_updates(page_batch_size=max(1, base // 2)),
        )

    def _alternative_pipeline(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        return RecoveryAction(
            RecoveryStrategy.ALTERNATIVE_PIPELINE,
            options=options.with_updates(
                intermediate_format=IntermediateFormat.LIGHTWEIGHT_MARKUP,
                alternative_pipeline=True,
            ),
        )

    def _skip_content(self, options: ConversionOptions, failure: PipelineStepError) -> RecoveryAction:
        failed = failure.result
        error = failure.error
        placeholder = ConversionResult(
            input_path=failed.input_path,
            output_path=failed.output_path,
            success=True,
            skipped=True,
            statistics=failed.statistics,
            steps=list(failed.steps),
            warnings=list(failed.warnings),
            processing_time_ms=failed.processing_time_ms,
        )
        placeholder.add_warning(
            f"Content skipped after {error.type.value} at {error.conversion_step}: {error.message}"
        )
        return RecoveryAction(RecoveryStrategy.SKIP_CONTENT, result=placeholder)

    # --------------------------------------------------------------- history
    def record_error(self, error: ConversionError) -> None:
        LOGGER.log(
            _LOG_LEVELS.get(error.severity, logging.ERROR),
            "[%s] %s at step %s: %s",
            error.severity.value.upper(),
            error.type.value,
            error.conversion_step,
            error.message,
        )
        with self._lock:
            self._history.append(error)
            self._by_type[error.type.value] += 1
            self._by_severity[error.severity.value] += 1

    def recent_errors(self, limit: Optional[int] = None) -> list[ConversionError]:
        with self._lock:
            errors = list(self._history)
        return errors[-limit:] if limit else errors

    def statistics(self) -> ErrorStatistics:
        with self._lock:
            return ErrorStatistics(
                total_errors=sum(self._by_type.values()),
                by_type=dict(self._by_type),
                by_severity=dict(self._by_severity),
                recovery_attempts=self._recovery_attempts,
                successful_recoveries=self._successful_recoveries,
                failed_recoveries=self._failed_recoveries,
            )

    def clear_history(self) -> None:
        with self._lock:
            self._history.clear()
            self._by_type.clear()
            self._by_severity.clear()
            self._recovery_attempts = 0
            self._successful_recoveries = 0
            self._failed_recoveries = 0


__all__ = ["ErrorStatistics", "RecoveryAction", "RecoveryEngine"]
