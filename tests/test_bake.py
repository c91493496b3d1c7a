"""
Tests for the advanced editor manual bake
"""
import asyncio

from PIL import Image

from stroll_export.bake import AdvancedEditorExporter
from stroll_export.orchestrator import ExportOrchestrator, ExportPath
from stroll_export.session import EditSession

from conftest import FakeLocal, FakeProbe, FakeRemote


def make_capture(path):
    async def capture():
        Image.new("RGB", (320, 240), (255, 255, 255)).save(path, format="JPEG")
        return str(path)
    return capture


class TestPhotoWithOverlays:

    def test_capture_then_remote_filter(self, photo_asset, documents_dir):
        remote = FakeRemote(documents_dir)
        exporter = AdvancedEditorExporter(remote, FakeProbe(True))
        session = EditSession(asset=photo_asset)
        session.add_text("Hello")
        session.select_filter("vintage")

        result = asyncio.run(exporter.bake(session, capture=make_capture(documents_dir / "capture.jpg")))

        assert result.committed
        assert session.edited
        assert session.asset is result.media
        assert remote.calls[0]["asset"].uri == str(documents_dir / "capture.jpg")
        assert remote.calls[0]["overlays"] == ()
        assert not (documents_dir / "capture.jpg").exists()

    def test_capture_kept_when_filter_pass_fails(self, photo_asset, documents_dir, remote_error):
        remote = FakeRemote(documents_dir, error=remote_error)
        exporter = AdvancedEditorExporter(remote, FakeProbe(True))
        session = EditSession(asset=photo_asset)
        session.add_sticker("🔥")
        session.select_filter("sepia")

        result = asyncio.run(exporter.bake(session, capture=make_capture(documents_dir / "capture.jpg")))

        assert result.committed
        assert session.asset.uri == str(documents_dir / "capture.jpg")

    def test_capture_without_filter_skips_remote(self, photo_asset, documents_dir):
        remote = FakeRemote(documents_dir)
        exporter = AdvancedEditorExporter(remote, FakeProbe(True))
        session = EditSession(asset=photo_asset)
        session.add_sticker("⭐")

        result = asyncio.run(exporter.bake(session, capture=make_capture(documents_dir / "capture.jpg")))

        assert result.committed
        assert remote.calls == []

    def test_failed_capture_does_not_commit(self, photo_asset, documents_dir):
        async def capture():
            return None

        exporter = AdvancedEditorExporter(FakeRemote(documents_dir), FakeProbe(True))
        session = EditSession(asset=photo_asset)
        session.add_sticker("⭐")

        result = asyncio.run(exporter.bake(session, capture=capture))

        assert not result.committed
        assert result.reason == "capture_failed"
        assert not session.edited
        assert session.asset is photo_asset


class TestRemoteBake:

    def test_video_bake_commits(self, video_asset, audio_asset, documents_dir):
        remote = FakeRemote(documents_dir)
        session = EditSession(asset=video_asset)
        session.add_text("Stroll")
        session.set_audio(audio_asset)

        result = asyncio.run(AdvancedEditorExporter(remote, FakeProbe(True)).bake(session))

        assert result.committed
        assert session.edited
        assert remote.calls[0]["audio"] is audio_asset
        assert len(remote.calls[0]["overlays"]) == 1

    def test_unavailable_does_not_commit(self, video_asset, documents_dir):
        session = EditSession(asset=video_asset)
        session.select_filter("cool")

        result = asyncio.run(AdvancedEditorExporter(FakeRemote(documents_dir), FakeProbe(False)).bake(session))

        assert result.reason == "unavailable"
        assert not session.edited

    def test_remote_failure_does_not_commit(self, video_asset, documents_dir, remote_error):
        session = EditSession(asset=video_asset)
        session.select_filter("cool")
        remote = FakeRemote(documents_dir, error=remote_error)

        result = asyncio.run(AdvancedEditorExporter(remote, FakeProbe(True)).bake(session))

        assert result.reason == "remote_failed"
        assert not session.edited

    def test_nothing_to_bake(self, photo_asset, documents_dir):
        remote = FakeRemote(documents_dir)

        result = asyncio.run(AdvancedEditorExporter(remote, FakeProbe(True)).bake(EditSession(asset=photo_asset)))

        assert result.reason == "nothing_to_bake"
        assert remote.calls == []

    def test_audio_session_is_unsupported(self, audio_asset, documents_dir):
        exporter = AdvancedEditorExporter(FakeRemote(documents_dir), FakeProbe(True))

        result = asyncio.run(exporter.bake(EditSession(asset=audio_asset)))

        assert result.reason == "unsupported"


class TestBakeThenSubmit:

    def test_submit_after_bake_passes_through(self, config, video_asset, documents_dir):
        remote = FakeRemote(documents_dir)
        probe = FakeProbe(True)
        local = FakeLocal(documents_dir)
        session = EditSession(asset=video_asset)
        session.add_sticker("🎬")
        asyncio.run(AdvancedEditorExporter(remote, probe).bake(session))

        orchestrator = ExportOrchestrator(config, probe=probe, remote=remote, local=local)
        result = asyncio.run(orchestrator.submit(session))

        assert result.path == ExportPath.PASS_THROUGH
        assert result.media is session.asset
        assert len(remote.calls) == 1
        assert local.calls == 0
