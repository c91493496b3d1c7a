"""
Tests for the local fallback renderer
"""
import asyncio

import pytest
from PIL import Image

from stroll_export.descriptor import describe
from stroll_export.errors import LocalRenderError
from stroll_export.local_renderer import LocalFallbackRenderer
from stroll_export.models import Adjustments, MediaAsset, MediaKind


class TestLocalRenderer:

    def test_adjusted_photo_is_resized_and_reencoded(self, photo_asset, documents_dir):
        renderer = LocalFallbackRenderer(documents_dir, max_width=2000, jpeg_quality=90)
        adjustments = Adjustments(brightness=20)

        result = asyncio.run(renderer.render(photo_asset, describe("none", adjustments), adjustments))

        assert result is not None
        assert result.local_path.parent == documents_dir
        assert result.name == "processed_photo.jpg"
        assert result.mime_type == "image/jpeg"
        assert result.byte_size == result.local_path.stat().st_size
        with Image.open(result.local_path) as image:
            assert image.size == (2000, 1000)
            assert image.format == "JPEG"

    def test_small_photo_is_not_upscaled(self, picker_dir, documents_dir):
        path = picker_dir / "small.png"
        Image.new("RGBA", (800, 600), (10, 20, 30, 255)).save(path)
        asset = MediaAsset.from_picker(str(path), MediaKind.PHOTO)
        adjustments = Adjustments(contrast=1.3)

        result = asyncio.run(LocalFallbackRenderer(documents_dir).render(asset, describe("none", adjustments)))

        with Image.open(result.local_path) as image:
            assert image.size == (800, 600)
            assert image.mode == "RGB"

    def test_source_is_untouched(self, photo_asset, photo_file, documents_dir):
        before = photo_file.read_bytes()
        adjustments = Adjustments(saturation=0.4)

        asyncio.run(LocalFallbackRenderer(documents_dir).render(photo_asset, describe("none", adjustments)))

        assert photo_file.read_bytes() == before

    @pytest.mark.parametrize("filter_id,adjustments", [
        ("none", Adjustments()),
        ("sepia", Adjustments()),
        ("none", Adjustments(hue=120)),
    ])
    def test_nothing_local_returns_none(self, photo_asset, documents_dir, filter_id, adjustments):
        result = asyncio.run(LocalFallbackRenderer(documents_dir).render(photo_asset, describe(filter_id, adjustments)))

        assert result is None
        assert list(documents_dir.iterdir()) == []

    def test_video_passes_through(self, video_asset, documents_dir):
        adjustments = Adjustments(brightness=40)

        assert asyncio.run(LocalFallbackRenderer(documents_dir).render(video_asset, describe("warm", adjustments))) is None

    def test_undecodable_photo_raises(self, picker_dir, documents_dir):
        path = picker_dir / "broken.jpg"
        path.write_bytes(b"definitely not a jpeg")
        asset = MediaAsset.from_picker(str(path), MediaKind.PHOTO)
        adjustments = Adjustments(brightness=-20)

        with pytest.raises(LocalRenderError):
            asyncio.run(LocalFallbackRenderer(documents_dir).render(asset, describe("none", adjustments)))

        assert list(documents_dir.iterdir()) == []
