"""Image metadata and transparency inspection backed by Pillow."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from typing import Any

from PIL import Image, UnidentifiedImageError

from .backends.base import RawImage
from .exceptions import ImageEmbeddingError
from .types import ExtractedImage

LOGGER = logging.getLogger(__name__)

# Formats Word renders natively; anything else is re-encoded as PNG.
EMBEDDABLE_FORMATS: dict[str, str] = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


@dataclass(frozen=True)
class TransparencyInfo:
    has_alpha: bool
    channels: int
    transparent_ratio: float = 0.0

    @property
    def is_transparent(self) -> bool:
        return self.has_alpha and self.transparent_ratio > 0.0


def _open(data: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ImageEmbeddingError(f"Unreadable image data: {exc}") from exc
    return image


def _has_alpha(image: Image.Image) -> bool:
    if image.mode in {"RGBA", "LA", "PA"}:
        return True
    return image.mode == "P" and "transparency" in image.info


class ImageInspector:
    """Derives metadata and alpha information for images pulled from a PDF."""

    def extract_metadata(self, data: bytes) -> dict[str, Any]:
        image = _open(data)
        image_format = (image.format or "").upper()
        return {
            "format": image_format,
            "mode": image.mode,
            "width": image.width,
            "height": image.height,
            "dpi": image.info.get("dpi"),
            "mime_type": EMBEDDABLE_FORMATS.get(image_format, "image/png"),
            "has_alpha": _has_alpha(image),
        }

    def analyze_transparency(self, data: bytes) -> TransparencyInfo:
        image = _open(data)
        has_alpha = _has_alpha(image)
        channels = len(image.getbands())
        if not has_alpha:
            return TransparencyInfo(has_alpha=False, channels=channels)
        alpha = image.convert("RGBA").getchannel("A")
        histogram = alpha.histogram()
        total = sum(histogram) or 1
        transparent = total - histogram[255]
        return TransparencyInfo(
            has_alpha=True,
            channels=channels,
            transparent_ratio=round(transparent / total, 4),
        )

    def inspect(self, raw: RawImage) -> ExtractedImage:
        """Turn a raw payload into an :class:`ExtractedImage` ready for embedding."""

        metadata = self.extract_metadata(raw.data)
        transparency = self.analyze_transparency(raw.data)
        data = raw.data
        if metadata["format"] not in EMBEDDABLE_FORMATS:
            data = self._reencode_png(raw.data)
            LOGGER.debug("Re-encoded %s image %s as PNG", metadata["format"] or "unknown", raw.name)
        metadata["transparent_ratio"] = transparency.transparent_ratio
        return ExtractedImage(
            page_number=raw.page_number,
            name=raw.name or "image",
            data=data,
            mime_type=metadata["mime_type"],
            width=metadata["width"],
            height=metadata["height"],
            has_transparency=transparency.is_transparent,
            metadata=metadata,
        )

    @staticmethod
    def _reencode_png(data: bytes) -> bytes:
        image = _open(data)
        if image.mode not in {"RGB", "RGBA", "L", "LA", "P"}:
            image = image.convert("RGBA" if _has_alpha(image) else "RGB")
        buffer = io.BytesIO()
        try:
            image.save(buffer, format="PNG")
        except (OSError, ValueError) as exc:
            raise ImageEmbeddingError(f"Unable to re-encode image as PNG: {exc}") from exc
        return buffer.getvalue()


__all__ = ["EMBEDDABLE_FORMATS", "ImageInspector", "TransparencyInfo"]
