"""Cumulative conversion statistics shared by concurrent conversions."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any


@dataclass(frozen=True)
class StatisticsSnapshot:
    total_conversions: int = 0
    successful_conversions: int = 0
    failed_conversions: int = 0
    average_processing_time: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0

    @property
    def cache_hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    @property
    def success_rate(self) -> float:
        return self.successful_conversions / self.total_conversions if self.total_conversions else 0.0

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["cache_hit_rate"] = self.cache_hit_rate
        data["success_rate"] = self.success_rate
        return data


class PipelineStatistics:
    """Lock-protected counters; :meth:`snapshot` returns an immutable view."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._reset()

    def _reset(self) -> None:
        self._total = 0
        self._successful = 0
        self._failed = 0
        self._total_time_ms = 0.0
        self._cache_hits = 0
        self._cache_misses = 0

    def record_conversion(self, success: bool, processing_time_ms: float) -> None:
        with self._lock:
            self._total += 1
            if success:
                self._successful += 1
            else:
                self._failed += 1
            self._total_time_ms += processing_time_ms

    def record_cache_lookup(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1

    def reset(self) -> None:
        with self._lock:
            self._reset()

    def snapshot(self) -> StatisticsSnapshot:
        with self._lock:
            average = self._total_time_ms / self._total if self._total else 0.0
            return StatisticsSnapshot(
                total_conversions=self._total,
                successful_conversions=self._successful,
                failed_conversions=self._failed,
                average_processing_time=average,
                cache_hits=self._cache_hits,
                cache_misses=self._cache_misses,
            )


__all__ = ["PipelineStatistics", "StatisticsSnapshot"]
