"""Utility helpers for pdfconvertx."""
from __future__ import annotations

import logging
import os
import re
import time
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterator, Union

from .exceptions import ConversionTimeoutError

PathLike = Union[str, os.PathLike[str]]

# Characters XML 1.0 cannot carry, even escaped.
_XML_ILLEGAL = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def configure_logging(verbose: bool = False) -> None:
    """Configure package-wide logging."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def to_path(path: PathLike) -> Path:
    """Normalize an input path to :class:`Path`."""
    return Path(path).expanduser().resolve()


def strip_xml_illegal(text: str) -> str:
    """Drop control characters and unpaired surrogates from extracted text."""
    return _XML_ILLEGAL.sub("", text)


def ensure_output_directory(path: Path) -> None:
    """Ensure the parent directory of ``path`` exists."""
    path.parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def time_block(logger: logging.Logger, message: str) -> Iterator[None]:
    """Context manager that logs the execution time of a code block."""
    start = time.perf_counter()
    logger.debug("Starting %s", message)
    try:
        yield
    finally:
        logger.info("%s completed in %.2fs", message, time.perf_counter() - start)


def elapsed_ms(start: float) -> float:
    """Milliseconds elapsed since a :func:`time.perf_counter` reading."""
    return (time.perf_counter() - start) * 1000.0


class Deadline:
    """Cooperative timeout shared by the steps of one pipeline run.

    Steps call :meth:`check` at safe points; nothing is interrupted
    forcibly.
    """

    def __init__(self, timeout_ms: int | None) -> None:
        self.timeout_ms = timeout_ms
        self._started = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        return elapsed_ms(self._started)

    @property
    def expired(self) -> bool:
        return bool(self.timeout_ms) and self.elapsed_ms > self.timeout_ms

    def check(self, step: str) -> None:
        if self.expired:
            raise ConversionTimeoutError(
                f"Step '{step}' timed out after {self.elapsed_ms:.0f} ms "
                f"(limit {self.timeout_ms} ms)",
                step=step,
            )


def parse_pdf_date(raw: str | None) -> datetime | None:
    """Parse a PDF date string into a timezone-aware :class:`datetime`."""
    if not raw:
        return None
    text = raw.strip()
    if text.startswith("D:"):
        text = text[2:]
    try:
        base = datetime.strptime(text[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None
    tz_sign = text[14:15]
    if tz_sign in {"+", "-"}:
        try:
            hours = int(text[15:17])
            minutes = int(text[18:20]) if len(text) >= 20 else 0
        except ValueError:
            hours = minutes = 0
        delta = timedelta(hours=hours, minutes=minutes)
        if tz_sign == "-":
            delta = -delta
        tz = timezone(delta)
    else:
        tz = timezone.utc
    return base.replace(tzinfo=tz)


def format_file_size(size_bytes: float) -> str:
    """Format a byte count as a human readable string (e.g. ``"1.5 MB"``)."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f} PB"


__all__ = [
    "Deadline",
    "configure_logging",
    "elapsed_ms",
    "ensure_output_directory",
    "format_file_size",
    "parse_pdf_date",
    "time_block",
    "to_path",
]
