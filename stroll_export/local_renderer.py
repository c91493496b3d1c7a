"""
Local Fallback Renderer
=======================
Used when the compositing service is unavailable or failed. The local image
primitive (Pillow) only covers a bounding resize and a JPEG quality pass; the
colour terms of the descriptor are left to render-time emulation, so the full
descriptor is persisted as post metadata regardless of what happens here.

Videos are never transformed locally.

Returns None for "nothing to export, use the session asset as-is".
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from .descriptor import TransformDescriptor
from .errors import LocalRenderError
from .models import Adjustments, ExportedMedia, MediaAsset, MediaKind

logger = logging.getLogger("stroll.export.local_renderer")


class LocalFallbackRenderer:
    """Pillow-backed resize/quality pass for photos."""

    def __init__(self, documents_dir: Path, max_width: int = 2000, jpeg_quality: int = 90):
        self.documents_dir = Path(documents_dir)
        self.max_width = max_width
        self.jpeg_quality = jpeg_quality

    def _output_path(self) -> Path:
        stamp = int(time.time() * 1000)
        return self.documents_dir / f"processed_photo_{stamp}_{uuid.uuid4().hex[:8]}.jpg"

    def _resize_and_encode(self, source: Path, destination: Path) -> int:
        destination.parent.mkdir(parents=True, exist_ok=True)
        with Image.open(source) as image:
            image = ImageOps.exif_transpose(image).convert("RGB")
            if image.width > self.max_width:
                height = max(1, round(image.height * self.max_width / image.width))
                image = image.resize((self.max_width, height), Image.Resampling.LANCZOS)
            image.save(destination, format="JPEG", quality=self.jpeg_quality)
        return destination.stat().st_size

    async def render(
        self,
        asset: MediaAsset,
        descriptor: TransformDescriptor,
        adjustments: Optional[Adjustments] = None,
    ) -> Optional[ExportedMedia]:
        """
        Apply the locally expressible subset of the descriptor.

        Args:
            asset: The session's current asset
            descriptor: Full descriptor, kept as metadata by the caller
            adjustments: Adjustment values; defaults to the descriptor's own

        Returns:
            ExportedMedia for a re-encoded photo, or None when nothing was done

        Raises:
            LocalRenderError: If Pillow cannot read or write the image
        """
        adjustments = adjustments or descriptor.adjustments

        if asset.kind != MediaKind.PHOTO:
            logger.info(f"[LocalRenderer] {asset.kind.value} passes through, descriptor kept as metadata")
            return None

        if not adjustments.has_local_terms:
            logger.info(f"[LocalRenderer] Nothing locally expressible for '{descriptor.as_css()}'")
            return None

        destination = self._output_path()
        loop = asyncio.get_event_loop()
        try:
            size = await loop.run_in_executor(None, self._resize_and_encode, asset.local_path, destination)
        except (OSError, UnidentifiedImageError, ValueError) as e:
            destination.unlink(missing_ok=True)
            raise LocalRenderError(f"Local photo pass failed for {asset.uri}: {e}") from e

        logger.info(f"[LocalRenderer] ✅ Photo processed locally -> {destination}")
        return ExportedMedia(
            uri=str(destination),
            name="processed_photo.jpg",
            mime_type="image/jpeg",
            byte_size=size,
        )


__all__ = ["LocalFallbackRenderer"]
