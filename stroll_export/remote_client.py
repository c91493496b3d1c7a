"""
Remote Compositing Client
═══════════════════════════════════════════════════════════════════════════════
Packages the asset, descriptor, overlays, trim and optional audio track into a
single multipart request to the compositing service and writes the baked bytes
into app-owned storage.

Endpoints:
- POST /api/process-video  (field "video", optional "music")
- POST /api/process-photo  (field "photo")

The response is either the complete baked media or a JSON body with an
"error" field. Every failure raises RemoteCompositingError; a partial artifact
is never returned.
═══════════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import asyncio
import io
import json
import logging
import time
import uuid
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx
from PIL import Image, UnidentifiedImageError

from .descriptor import TransformDescriptor
from .errors import RemoteCompositingError
from .metrics import REMOTE_FAILURES
from .models import DEFAULT_MIME_TYPES, ExportedMedia, MediaAsset, MediaKind, Overlay, Sticker, TextLayer, Trim

logger = logging.getLogger("stroll.export.remote")

VIDEO_ENDPOINT = "/api/process-video"
PHOTO_ENDPOINT = "/api/process-photo"


def split_overlays(overlays: Sequence[Overlay]) -> Dict[str, List[Dict[str, Any]]]:
    stickers = [o.to_wire() for o in overlays if isinstance(o, Sticker)]
    texts = [o.to_wire() for o in overlays if isinstance(o, TextLayer)]
    return {"stickers": stickers, "texts": texts}


class RemoteCompositingClient:
    """Async client for the compositing service."""

    def __init__(
        self,
        base_url: str,
        documents_dir: Path,
        timeout: float = 300.0,
        music_volume: float = 0.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.documents_dir = Path(documents_dir)
        self.timeout = timeout
        self.music_volume = music_volume
        self._transport = transport

    # -------------------------------------------------------------------------
    # Request building
    # -------------------------------------------------------------------------

    def build_fields(
        self,
        asset: MediaAsset,
        descriptor: TransformDescriptor,
        overlays: Sequence[Overlay] = (),
        trim: Optional[Trim] = None,
    ) -> Dict[str, str]:
        """String-encoded form fields for the multipart body."""
        fields = {
            "filter": descriptor.filter_id,
            "musicVolume": str(self.music_volume),
            "descriptor": json.dumps(descriptor.as_list()),
        }

        layers = split_overlays(overlays)
        if layers["stickers"]:
            fields["stickers"] = json.dumps(layers["stickers"])
        if layers["texts"]:
            fields["texts"] = json.dumps(layers["texts"])
        if trim is not None:
            fields["trim"] = json.dumps({"start": trim.start, "end": trim.end})

        if asset.kind == MediaKind.PHOTO:
            adjustments = descriptor.adjustments
            fields["brightness"] = str(adjustments.brightness)
            fields["contrast"] = str(adjustments.contrast)
            fields["saturation"] = str(adjustments.saturation)
            fields["hue"] = str(adjustments.hue)

        return fields

    # -------------------------------------------------------------------------
    # Response handling
    # -------------------------------------------------------------------------

    @staticmethod
    def _error_message(response: httpx.Response, default: str) -> str:
        try:
            body = response.json()
        except ValueError:
            return default
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return default

    @staticmethod
    def _verify_photo(content: bytes) -> None:
        try:
            with Image.open(io.BytesIO(content)) as image:
                image.verify()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise RemoteCompositingError(
                f"Returned photo could not be decoded: {e}",
                reason=RemoteCompositingError.DECODE,
            ) from e

    def _validate_payload(self, response: httpx.Response, kind: MediaKind) -> bytes:
        content = response.content
        if not content:
            raise RemoteCompositingError("Empty response body", response.status_code, RemoteCompositingError.DECODE)

        content_type = response.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            raise RemoteCompositingError(
                "Expected media bytes, got JSON",
                response.status_code,
                RemoteCompositingError.DECODE,
            )

        if kind == MediaKind.PHOTO:
            self._verify_photo(content)
        return content

    def _output_path(self, kind: MediaKind) -> Path:
        ext = "mp4" if kind == MediaKind.VIDEO else "jpg"
        stamp = int(time.time() * 1000)
        return self.documents_dir / f"processed_{kind.value}_{stamp}_{uuid.uuid4().hex[:8]}.{ext}"

    @staticmethod
    def _write(destination: Path, content: bytes) -> int:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(content)
        return destination.stat().st_size

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def composite(
        self,
        asset: MediaAsset,
        descriptor: TransformDescriptor,
        overlays: Sequence[Overlay] = (),
        trim: Optional[Trim] = None,
        audio: Optional[MediaAsset] = None,
    ) -> ExportedMedia:
        """
        Bake the full edit on the compositing service.

        Returns:
            ExportedMedia pointing at the baked file in app-owned storage

        Raises:
            RemoteCompositingError: non-success status, undecodable body,
                transport failure or local write failure
        """
        if asset.kind == MediaKind.VIDEO:
            endpoint, field_name = VIDEO_ENDPOINT, "video"
            default_name, out_name = "video.mp4", "processed_video.mp4"
        elif asset.kind == MediaKind.PHOTO:
            endpoint, field_name = PHOTO_ENDPOINT, "photo"
            default_name, out_name = "photo.jpg", "processed_photo.jpg"
        else:
            raise RemoteCompositingError(f"Cannot composite {asset.kind.value} assets", reason=RemoteCompositingError.STATUS)

        fields = self.build_fields(asset, descriptor, overlays, trim)
        url = f"{self.base_url}{endpoint}"
        logger.info(f"[Remote] Processing {asset.kind.value} with filter: {descriptor.filter_id}")

        try:
            with ExitStack() as stack:
                files = {
                    field_name: (
                        asset.name or default_name,
                        stack.enter_context(open(asset.local_path, "rb")),
                        asset.mime_type,
                    )
                }
                if audio is not None and asset.kind == MediaKind.VIDEO:
                    files["music"] = (
                        audio.name or "music.mp3",
                        stack.enter_context(open(audio.local_path, "rb")),
                        audio.mime_type,
                    )

                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(url, data=fields, files=files)
        except httpx.HTTPError as e:
            REMOTE_FAILURES.labels(reason=RemoteCompositingError.TRANSPORT).inc()
            raise RemoteCompositingError(f"Transport failure: {e!r}", reason=RemoteCompositingError.TRANSPORT) from e
        except OSError as e:
            REMOTE_FAILURES.labels(reason=RemoteCompositingError.TRANSPORT).inc()
            raise RemoteCompositingError(f"Could not read source media: {e}", reason=RemoteCompositingError.TRANSPORT) from e

        if not response.is_success:
            message = self._error_message(response, f"{asset.kind.value.capitalize()} processing failed")
            REMOTE_FAILURES.labels(reason=RemoteCompositingError.STATUS).inc()
            raise RemoteCompositingError(message, response.status_code, RemoteCompositingError.STATUS)

        try:
            content = self._validate_payload(response, asset.kind)
        except RemoteCompositingError:
            REMOTE_FAILURES.labels(reason=RemoteCompositingError.DECODE).inc()
            raise

        destination = self._output_path(asset.kind)
        loop = asyncio.get_event_loop()
        try:
            size = await loop.run_in_executor(None, self._write, destination, content)
        except OSError as e:
            destination.unlink(missing_ok=True)
            REMOTE_FAILURES.labels(reason=RemoteCompositingError.WRITE).inc()
            raise RemoteCompositingError(f"Could not store result: {e}", reason=RemoteCompositingError.WRITE) from e
        except asyncio.CancelledError:
            destination.unlink(missing_ok=True)
            raise

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith(("image/", "video/")):
            content_type = DEFAULT_MIME_TYPES[asset.kind]
        logger.info(f"[Remote] ✅ {asset.kind.value.capitalize()} processed -> {destination} ({size} bytes)")
        return ExportedMedia(
            uri=str(destination),
            name=out_name,
            mime_type=content_type,
            byte_size=size,
        )


__all__ = ["RemoteCompositingClient", "VIDEO_ENDPOINT", "PHOTO_ENDPOINT", "split_overlays"]
