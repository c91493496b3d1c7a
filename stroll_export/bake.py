"""
Advanced Editor Bake
====================
The full-screen editor's "Done" action. Unlike a submit, a bake is explicit:
the user asked for the edits to be burned into the media before returning to
the post form.

- Photo with overlays: the caller captures the editor view (overlays drawn in),
  then the capture is optionally run through the remote filter pass.
- Photo without overlays: remote filter/adjustment bake.
- Video: remote composite of filter, overlays, trim and audio.

Only a produced artifact is committed to the session. A bake that produced
nothing leaves `edited` untouched so the next submit still runs the
orchestrator.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .availability import ProcessingAvailabilityProbe
from .errors import RemoteCompositingError
from .metrics import BAKE_RESULTS
from .models import ExportedMedia, MediaAsset, MediaKind
from .remote_client import RemoteCompositingClient
from .session import EditSession

logger = logging.getLogger("stroll.export.bake")

# Returns the URI of a captured view snapshot, or None when capture failed
ViewCapture = Callable[[], Awaitable[Optional[str]]]


@dataclass
class BakeResult:
    committed: bool
    media: Optional[ExportedMedia] = None
    reason: str = "committed"


class AdvancedEditorExporter:
    """Manual bake from the advanced editor."""

    def __init__(self, remote: Optional[RemoteCompositingClient], probe: ProcessingAvailabilityProbe):
        self.remote = remote
        self.probe = probe

    async def _remote_available(self) -> bool:
        return self.remote is not None and await self.probe.check()

    def _finish(self, session: EditSession, artifact: Optional[ExportedMedia], reason: str) -> BakeResult:
        if artifact is None:
            logger.info(f"[Bake] Nothing committed: {reason}")
            BAKE_RESULTS.labels(result=reason).inc()
            return BakeResult(committed=False, reason=reason)

        baked = session.commit_bake(artifact)
        BAKE_RESULTS.labels(result="committed").inc()
        logger.info(f"[Bake] ✅ Edits committed -> {baked.uri}")
        return BakeResult(committed=True, media=baked)

    async def _bake_photo_with_overlays(self, session: EditSession, capture: Optional[ViewCapture]) -> BakeResult:
        captured_uri = await capture() if capture is not None else None
        if not captured_uri:
            return self._finish(session, None, "capture_failed")

        captured = MediaAsset.from_picker(captured_uri, MediaKind.PHOTO, name="edited_photo.jpg")
        descriptor = session.descriptor()
        if descriptor.is_identity or not await self._remote_available():
            return self._finish(session, captured, "committed")

        try:
            filtered = await self.remote.composite(captured, descriptor)
        except RemoteCompositingError as e:
            logger.warning(f"[Bake] Filter pass failed, keeping captured image: {e}")
            return self._finish(session, captured, "committed")

        result = self._finish(session, filtered, "committed")
        # the capture is superseded by the filtered artifact
        captured.local_path.unlink(missing_ok=True)
        return result

    async def _bake_remote(self, session: EditSession) -> BakeResult:
        snapshot = session.snapshot()
        if not snapshot.needs_processing:
            return self._finish(session, None, "nothing_to_bake")
        if not await self._remote_available():
            return self._finish(session, None, "unavailable")

        try:
            artifact = await self.remote.composite(
                snapshot.asset,
                snapshot.descriptor,
                snapshot.overlays,
                snapshot.trim,
                snapshot.audio,
            )
        except RemoteCompositingError as e:
            logger.warning(f"[Bake] ⚠️ Remote bake failed: {e}")
            return self._finish(session, None, "remote_failed")
        return self._finish(session, artifact, "committed")

    async def bake(self, session: EditSession, capture: Optional[ViewCapture] = None) -> BakeResult:
        """
        Burn the session's edits into a new asset.

        Args:
            session: The edit session; updated in place on success
            capture: Coroutine function returning a snapshot URI of the editor
                view, required for photos with overlays

        Returns:
            BakeResult with committed=True only when an artifact was produced
        """
        if session.kind == MediaKind.AUDIO:
            return self._finish(session, None, "unsupported")

        if session.kind == MediaKind.PHOTO and session.overlays:
            return await self._bake_photo_with_overlays(session, capture)

        return await self._bake_remote(session)


__all__ = ["AdvancedEditorExporter", "BakeResult", "ViewCapture"]
