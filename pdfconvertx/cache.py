"""Process-local, content-addressable cache of finished conversions."""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
import weakref
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock, get_ident
from typing import Any, Dict, Optional

from .exceptions import CacheError
from .types import ConversionOptions

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    key: str
    output_path: Path
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=timezone.utc))
    metadata: Dict[str, Any] = field(default_factory=dict)


def fingerprint(input_path: Path, options: ConversionOptions) -> str:
    """Deterministic cache key for an input path and its output-affecting options."""
    payload = json.dumps(
        {"input": str(input_path), "options": options.cache_fields()},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ConversionCache:
    """Keeps at most one finished output per fingerprint.

    Outputs are copied into a directory owned by the cache, so later writes
    to the caller's output path never change what a key serves. Reads and
    writes are serialised by a lock.
    """

    def __init__(self, directory: Optional[Path] = None) -> None:
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()
        if directory is None:
            directory = Path(tempfile.mkdtemp(prefix="pdfconvertx-cache-"))
            weakref.finalize(self, shutil.rmtree, str(directory), True)
        self.directory = directory

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for ``key``; entries whose stored copy vanished are evicted."""

        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.output_path.exists():
                LOGGER.debug("Evicting cache entry %s: %s is gone", key[:12], entry.output_path)
                self._entries.pop(key, None)
                return None
            return entry

    def put(self, key: str, output_path: Path, metadata: Optional[Dict[str, Any]] = None) -> CacheEntry:
        """Store a copy of ``output_path`` under ``key``."""

        stored = self.directory / f"{key}{output_path.suffix}"
        staging = self.directory / f".{key}.{get_ident()}.part"
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(output_path, staging)
            os.replace(staging, stored)
        except OSError as exc:
            staging.unlink(missing_ok=True)
            raise CacheError(f"Unable to store {output_path} in the conversion cache: {exc}") from exc
        entry = CacheEntry(key=key, output_path=stored, metadata=dict(metadata or {}))
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            entry.output_path.unlink(missing_ok=True)

    @staticmethod
    def materialize(entry: CacheEntry, destination: Path) -> None:
        """Copy a cached output to ``destination``."""

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(entry.output_path, destination)
        except OSError as exc:
            raise CacheError(f"Unable to copy cached output {entry.output_path} to {destination}: {exc}") from exc


__all__ = ["CacheEntry", "ConversionCache", "fingerprint"]
