"""
Shared fixtures for the export pipeline tests.
Run with: python -m pytest tests/ -v
"""
import asyncio
import io
import re
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest
from PIL import Image

from stroll_export.config import ExportConfig
from stroll_export.errors import LocalRenderError, RemoteCompositingError
from stroll_export.models import ExportedMedia, MediaAsset, MediaKind

SERVER_URL = "http://compositor.test"


def make_jpeg_bytes(width: int = 64, height: int = 48, color=(200, 120, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format="JPEG")
    return buffer.getvalue()


def multipart_fields(request: httpx.Request) -> Dict[str, bytes]:
    """Split a multipart request body into {field name: raw value}."""
    boundary = request.headers["content-type"].split("boundary=")[1].encode()
    fields = {}
    for part in request.content.split(b"--" + boundary):
        head, sep, body = part.partition(b"\r\n\r\n")
        if not sep:
            continue
        match = re.search(rb'name="([^"]+)"', head)
        if match:
            fields[match.group(1).decode()] = body[:-2] if body.endswith(b"\r\n") else body
    return fields


# =============================================================================
# FILES
# =============================================================================

@pytest.fixture
def documents_dir(tmp_path) -> Path:
    path = tmp_path / "documents"
    path.mkdir()
    return path


@pytest.fixture
def picker_dir(tmp_path) -> Path:
    path = tmp_path / "picker-cache"
    path.mkdir()
    return path


@pytest.fixture
def photo_file(picker_dir) -> Path:
    path = picker_dir / "IMG_0001.jpg"
    Image.new("RGB", (2400, 1200), (90, 140, 200)).save(path, format="JPEG")
    return path


@pytest.fixture
def video_file(picker_dir) -> Path:
    path = picker_dir / "clip.mov"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x01" * 4096)
    return path


@pytest.fixture
def audio_file(picker_dir) -> Path:
    path = picker_dir / "song.mp3"
    path.write_bytes(b"ID3" + b"\x02" * 1024)
    return path


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg_bytes()


# =============================================================================
# MODELS / CONFIG
# =============================================================================

@pytest.fixture
def config(documents_dir) -> ExportConfig:
    return ExportConfig(processing_server_url=SERVER_URL, documents_dir=documents_dir)


@pytest.fixture
def photo_asset(photo_file) -> MediaAsset:
    return MediaAsset.from_picker(str(photo_file), MediaKind.PHOTO)


@pytest.fixture
def video_asset(video_file) -> MediaAsset:
    return MediaAsset.from_picker(str(video_file), MediaKind.VIDEO)


@pytest.fixture
def audio_asset(audio_file) -> MediaAsset:
    return MediaAsset.from_picker(str(audio_file), MediaKind.AUDIO)


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class FakeProbe:
    def __init__(self, available: bool = True):
        self.available = available
        self.calls = 0

    async def check(self, force: bool = False) -> bool:
        self.calls += 1
        return self.available


class FakeRemote:
    """Records composite() calls; returns a written artifact or raises."""

    def __init__(self, documents_dir: Path, error: Optional[Exception] = None, hang: bool = False):
        self.documents_dir = documents_dir
        self.error = error
        self.hang = hang
        self.calls: List[dict] = []

    async def composite(self, asset, descriptor, overlays=(), trim=None, audio=None) -> ExportedMedia:
        self.calls.append({
            "asset": asset,
            "descriptor": descriptor,
            "overlays": tuple(overlays),
            "trim": trim,
            "audio": audio,
        })
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        ext = "mp4" if asset.kind == MediaKind.VIDEO else "jpg"
        path = self.documents_dir / f"processed_{asset.kind.value}_{len(self.calls)}.{ext}"
        path.write_bytes(b"baked")
        return ExportedMedia(uri=str(path), name=f"processed_{asset.kind.value}.{ext}",
                             mime_type=asset.mime_type, byte_size=5)


class FakeLocal:
    def __init__(self, documents_dir: Path, produce: bool = False, error: bool = False):
        self.documents_dir = documents_dir
        self.produce = produce
        self.error = error
        self.calls = 0

    async def render(self, asset, descriptor, adjustments=None) -> Optional[ExportedMedia]:
        self.calls += 1
        if self.error:
            raise LocalRenderError("decoder exploded")
        if not self.produce:
            return None
        path = self.documents_dir / "processed_photo_local.jpg"
        path.write_bytes(b"local")
        return ExportedMedia(uri=str(path), name="processed_photo.jpg", mime_type="image/jpeg", byte_size=5)


@pytest.fixture
def remote_error() -> RemoteCompositingError:
    return RemoteCompositingError("Video processing failed", 500)
