"""Output naming and conflict resolution for converted documents."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .exceptions import OutputConflictError

LOGGER = logging.getLogger(__name__)

NAMING_PATTERNS: dict[str, str] = {
    "original": "{name}",
    "timestamp": "{name}_{timestamp}",
    "date": "{name}_{date}",
    "sequence": "{name}_{sequence}",
    "custom": "{name}_{custom}",
}

_PLACEHOLDER = re.compile(r"\{(\w+)\}")


class ConflictStrategy(str, Enum):
    AUTO_RENAME = "auto-rename"
    OVERWRITE = "overwrite"
    SKIP = "skip"
    PROMPT = "prompt"


# Receives the conflicting path; returns the strategy to apply to it.
ConflictPrompt = Callable[[Path], ConflictStrategy]


@dataclass(frozen=True)
class ResolvedOutput:
    path: Path
    skipped: bool = False
    renamed: bool = False


class OutputPathResolver:
    """Derives output paths from input names and resolves existing-file conflicts."""

    def __init__(
        self,
        conflict_strategy: ConflictStrategy | str = ConflictStrategy.AUTO_RENAME,
        *,
        max_attempts: int = 100,
        prompt: Optional[ConflictPrompt] = None,
    ) -> None:
        self.conflict_strategy = ConflictStrategy(conflict_strategy)
        self.max_attempts = max_attempts
        self.prompt = prompt

    def build_filename(
        self,
        input_path: Path,
        *,
        pattern: str = "original",
        extension: str = ".docx",
        custom_suffix: str = "",
        sequence: int = 1,
    ) -> str:
        template = NAMING_PATTERNS.get(pattern, pattern)
        variables = {
            "name": input_path.stem,
            "timestamp": str(int(time.time() * 1000)),
            "date": datetime.now().strftime("%Y%m%d"),
            "sequence": f"{sequence:03d}",
            "custom": custom_suffix,
        }
        filename = _PLACEHOLDER.sub(lambda match: variables.get(match.group(1)) or match.group(0), template)
        if not filename.endswith(extension):
            filename += extension
        return filename

    def resolve(
        self,
        input_path: Path,
        output_dir: Path,
        *,
        pattern: str = "original",
        extension: str = ".docx",
        custom_suffix: str = "",
        sequence: int = 1,
        strategy: ConflictStrategy | str | None = None,
    ) -> ResolvedOutput:
        """Return a usable output path for ``input_path`` inside ``output_dir``.

        The directory is created if needed. When the strategy is ``skip`` and
        the target exists, the result is flagged as skipped.
        """

        output_dir.mkdir(parents=True, exist_ok=True)
        filename = self.build_filename(
            input_path,
            pattern=pattern,
            extension=extension,
            custom_suffix=custom_suffix,
            sequence=sequence,
        )
        return self.resolve_conflict(output_dir / filename, strategy)

    def resolve_conflict(
        self, candidate: Path, strategy: ConflictStrategy | str | None = None
    ) -> ResolvedOutput:
        if not candidate.exists():
            return ResolvedOutput(candidate)

        chosen = ConflictStrategy(strategy) if strategy else self.conflict_strategy
        if chosen is ConflictStrategy.PROMPT:
            chosen = self.prompt(candidate) if self.prompt else ConflictStrategy.AUTO_RENAME
            if chosen is ConflictStrategy.PROMPT:
                chosen = ConflictStrategy.AUTO_RENAME

        LOGGER.debug("Output %s exists; applying %s", candidate, chosen.value)
        if chosen is ConflictStrategy.OVERWRITE:
            return ResolvedOutput(candidate)
        if chosen is ConflictStrategy.SKIP:
            return ResolvedOutput(candidate, skipped=True)
        return ResolvedOutput(self._auto_rename(candidate), renamed=True)

    def _auto_rename(self, candidate: Path) -> Path:
        for counter in range(1, self.max_attempts + 1):
            renamed = candidate.with_name(f"{candidate.stem} ({counter}){candidate.suffix}")
            if not renamed.exists():
                return renamed
        raise OutputConflictError(
            f"Could not find an available filename for {candidate} after {self.max_attempts} attempts"
        )


__all__ = [
    "ConflictPrompt",
    "ConflictStrategy",
    "NAMING_PATTERNS",
    "OutputPathResolver",
    "ResolvedOutput",
]
