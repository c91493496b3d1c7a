"""
Tests for media value types and configuration
"""
import pytest
from pydantic import ValidationError

from stroll_export.config import ExportConfig
from stroll_export.models import (
    Adjustments,
    ExportedMedia,
    MediaAsset,
    MediaKind,
    PickedFile,
    Sticker,
    TextLayer,
    Trim,
    path_from_uri,
)


class TestMediaAsset:
    """Single constructor for picked media"""

    def test_video_is_normalised_to_mp4(self, video_file):
        asset = MediaAsset.from_picker(str(video_file), "video")

        assert asset.kind == MediaKind.VIDEO
        assert asset.name == "clip.mp4"
        assert asset.mime_type == "video/mp4"
        assert asset.byte_size == video_file.stat().st_size
        assert asset.durable is False

    def test_photo_is_normalised_to_jpg(self, photo_file):
        asset = MediaAsset.from_picker(str(photo_file), MediaKind.PHOTO, name="holiday.heic")

        assert asset.name == "holiday.jpg"
        assert asset.mime_type == "image/jpeg"

    def test_audio_keeps_extension(self, audio_file):
        asset = MediaAsset.from_picker(str(audio_file), MediaKind.AUDIO)

        assert asset.name == "song.mp3"
        assert asset.mime_type == "audio/mpeg"

    def test_file_uri_resolves_to_path(self, video_file):
        asset = MediaAsset.from_picker(video_file.as_uri(), MediaKind.VIDEO)

        assert asset.local_path == video_file
        assert asset.byte_size > 0

    def test_missing_file_has_zero_size(self, tmp_path):
        asset = MediaAsset.from_picker(str(tmp_path / "gone.mov"), MediaKind.VIDEO)

        assert asset.byte_size == 0

    def test_is_an_exported_media(self, photo_asset):
        assert isinstance(photo_asset, ExportedMedia)
        assert photo_asset.to_dict() == {
            "uri": photo_asset.uri,
            "name": "IMG_0001.jpg",
            "mimeType": "image/jpeg",
            "byteSize": photo_asset.byte_size,
        }

    def test_as_durable_returns_new_asset(self, video_asset, documents_dir):
        durable = video_asset.as_durable(documents_dir / "copy.mov", 42)

        assert durable.durable is True
        assert durable.byte_size == 42
        assert video_asset.durable is False

    def test_picked_file_to_asset(self, video_file):
        picked = PickedFile(uri=str(video_file), file_name="VID_2025.MOV", file_size=10)
        asset = picked.to_asset("video")

        assert asset.name == "VID_2025.mp4"
        assert asset.byte_size == 10

    def test_picked_file_rejects_blank_uri(self):
        with pytest.raises(ValidationError):
            PickedFile(uri="   ")


class TestAdjustments:

    def test_defaults_are_identity(self):
        assert Adjustments().is_identity
        assert Adjustments().changed_fields() == []

    @pytest.mark.parametrize("field,value", [
        ("brightness", 101),
        ("brightness", -101),
        ("contrast", 2.5),
        ("saturation", -0.1),
        ("hue", 400),
    ])
    def test_out_of_range_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Adjustments(**{field: value})

    def test_local_terms_ignore_hue(self):
        assert not Adjustments(hue=90).has_local_terms
        assert Adjustments(contrast=1.2).has_local_terms

    def test_frozen(self):
        with pytest.raises(ValidationError):
            Adjustments().brightness = 10


class TestOverlays:

    def test_text_layer_wire_shape_uses_camel_case(self):
        layer = TextLayer(id=1, text="Hi", font_size=32)
        wire = layer.to_wire()

        assert wire["fontSize"] == 32
        assert wire["fontFamily"] == "Poppins-Bold"
        assert wire["color"] == "#FFFFFF"
        assert "font_size" not in wire

    def test_text_layer_accepts_wire_names(self):
        assert TextLayer(id=1, fontSize=18).font_size == 18

    def test_sticker_wire_shape(self):
        assert Sticker(id=5, emoji="🔥", x=10, y=20).to_wire() == {
            "id": 5, "emoji": "🔥", "x": 10.0, "y": 20.0, "scale": 1.0, "rotation": 0.0,
        }

    def test_trim_bounds(self):
        assert Trim(start=1.5, end=4).duration == 2.5
        with pytest.raises(ValidationError):
            Trim(start=3, end=3)
        with pytest.raises(ValidationError):
            Trim(start=-1, end=3)


class TestPathFromUri:

    def test_plain_path(self, tmp_path):
        assert path_from_uri(str(tmp_path / "a.jpg")) == tmp_path / "a.jpg"

    def test_percent_encoded_file_uri(self):
        assert str(path_from_uri("file:///tmp/my%20clip.mp4")) == "/tmp/my clip.mp4"


class TestExportConfig:

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("STROLL_PROCESSING_SERVER_URL", "http://media.internal:9000/")
        monkeypatch.setenv("STROLL_DOCUMENTS_DIR", str(tmp_path))
        monkeypatch.setenv("STROLL_PROBE_TIMEOUT", "1.5")
        monkeypatch.setenv("STROLL_JPEG_QUALITY", "80")

        config = ExportConfig.from_env()

        assert config.processing_server_url == "http://media.internal:9000"
        assert config.documents_dir == tmp_path
        assert config.probe_timeout_seconds == 1.5
        assert config.jpeg_quality == 80
        assert config.remote_enabled

    def test_empty_url_disables_remote(self, monkeypatch):
        monkeypatch.setenv("STROLL_PROCESSING_SERVER_URL", "")

        config = ExportConfig.from_env()

        assert config.processing_server_url is None
        assert not config.remote_enabled

    def test_size_limits(self):
        config = ExportConfig()

        assert config.size_limit_bytes("video") == 100 * 1024 * 1024
        assert config.size_limit_bytes("audio") == 50 * 1024 * 1024
        assert config.size_limit_bytes("photo") == 10 * 1024 * 1024
