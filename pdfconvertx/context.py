"""Explicit owner of the state shared by conversions."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .backends import PypdfSourceParser, SourceParser
from .cache import ConversionCache
from .config import PipelineSettings
from .images import ImageInspector
from .recovery import RecoveryEngine
from .statistics import PipelineStatistics


@dataclass
class PipelineContext:
    """Settings, cache, statistics and collaborators for one converter.

    Every conversion run through the same context shares its cache and
    statistics; separate contexts never see each other's state.
    """

    settings: PipelineSettings = field(default_factory=PipelineSettings)
    parser: SourceParser = field(default_factory=PypdfSourceParser)
    image_inspector: ImageInspector = field(default_factory=ImageInspector)
    cache: ConversionCache = field(default_factory=ConversionCache)
    statistics: PipelineStatistics = field(default_factory=PipelineStatistics)
    recovery: Optional[RecoveryEngine] = None

    def __post_init__(self) -> None:
        if self.recovery is None:
            self.recovery = RecoveryEngine(self.settings)

    @classmethod
    def create(
        cls,
        settings: Optional[PipelineSettings] = None,
        parser: Optional[SourceParser] = None,
    ) -> "PipelineContext":
        settings = settings or PipelineSettings()
        return cls(settings=settings, parser=parser or PypdfSourceParser())


__all__ = ["PipelineContext"]
