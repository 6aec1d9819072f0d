"""Process-wide settings for the conversion pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field

from .types import ConversionOptions

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_SECONDS = 1.0
DEFAULT_ERROR_HISTORY_LIMIT = 100


@dataclass(frozen=True)
class PipelineSettings:
    """Settings shared by every conversion run through one context."""

    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS
    error_history_limit: int = DEFAULT_ERROR_HISTORY_LIMIT
    default_options: ConversionOptions = field(default_factory=ConversionOptions)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must not be negative")


__all__ = ["DEFAULT_MAX_RETRIES", "PipelineSettings"]
