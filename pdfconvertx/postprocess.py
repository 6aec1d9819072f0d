"""Post-processing checks applied to a freshly written DOCX."""
from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, Mapping

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from .exceptions import FormattingError, OutputValidationError

LOGGER = logging.getLogger(__name__)

_METADATA_FIELDS = (("title", "title"), ("creator", "author"), ("subject", "subject"), ("keywords", "keywords"))


def validate_output(output_path: Path, metadata: Mapping[str, Any] | None = None) -> dict[str, Any]:
    """Open ``output_path`` with python-docx and check it against ``metadata``.

    Returns a few facts about the document for the step record.
    """
    LOGGER.debug("Validating DOCX output %s", output_path)
    try:
        with zipfile.ZipFile(output_path) as archive:
            broken = archive.testzip()
    except (zipfile.BadZipFile, OSError) as exc:
        raise OutputValidationError(f"DOCX archive is unreadable: {output_path}") from exc
    if broken is not None:
        raise OutputValidationError(f"DOCX archive member {broken!r} is corrupt: {output_path}")

    try:
        document = Document(str(output_path))
    except (PackageNotFoundError, KeyError, ValueError) as exc:
        raise OutputValidationError(f"DOCX validation failed: {output_path}") from exc

    core = document.core_properties
    for source_key, core_attribute in _METADATA_FIELDS:
        expected = (metadata or {}).get(source_key) or (metadata or {}).get(core_attribute)
        if expected and getattr(core, core_attribute) != expected:
            raise FormattingError(f"DOCX {core_attribute} metadata mismatch in {output_path}")

    return {
        "paragraphs": len(document.paragraphs),
        "inline_shapes": len(document.inline_shapes),
        "title": core.title or None,
    }


__all__ = ["validate_output"]
