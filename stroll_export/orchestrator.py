"""
════════════════════════════════════════════════════════════════════════════════
STROLL Export Orchestrator
State Machine + Remote/Local Fallback Routing + Progress Reporting
════════════════════════════════════════════════════════════════════════════════

    Idle ──submit──► DecidingPath ──┬──► PassThrough ─────────────┐
                                    ├──► RemoteAttempt ──ok──────►├──► Done
                                    │         │ fail              │
                                    └──► LocalFallback ◄──────────┘

Transition rules, evaluated in order:
  1. session.edited           → PassThrough (the baked asset IS the artifact)
  2. identity + no layers     → PassThrough (avoid lossy recompression)
  3. service available        → RemoteAttempt; any failure falls through to 4
  4. LocalFallback            → its result, or the session asset when None

Exactly one ExportedMedia per submit. Progress state is reset on every exit
path, including raised errors.
════════════════════════════════════════════════════════════════════════════════
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Optional

from .availability import ProcessingAvailabilityProbe
from .config import ExportConfig
from .descriptor import TransformDescriptor
from .errors import (
    ExportCancelledError,
    ExportInProgressError,
    LocalRenderError,
)
from .local_renderer import LocalFallbackRenderer
from .metrics import EXPORT_LATENCY, EXPORT_PATHS
from .models import ExportedMedia
from .remote_client import RemoteCompositingClient
from .session import EditSession, SessionSnapshot

# =============================================================================
# LOGGING SETUP
# =============================================================================

logger = logging.getLogger("stroll.export.orchestrator")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    logger.addHandler(handler)


# =============================================================================
# ENUMS
# =============================================================================

class ExportState(str, Enum):
    IDLE = "idle"
    DECIDING_PATH = "deciding_path"
    REMOTE_ATTEMPT = "remote_attempt"
    LOCAL_FALLBACK = "local_fallback"
    PASS_THROUGH = "pass_through"
    DONE = "done"


class ExportPath(str, Enum):
    PASS_THROUGH = "pass_through"
    REMOTE = "remote"
    LOCAL_FALLBACK = "local_fallback"


# =============================================================================
# DATA MODELS
# =============================================================================

@dataclass
class StepOutcome:
    """Uniform result of one fallible pipeline step."""
    artifact: Optional[ExportedMedia] = None
    failed: bool = False
    error: Optional[str] = None

    @classmethod
    def success(cls, artifact: Optional[ExportedMedia]) -> "StepOutcome":
        return cls(artifact=artifact)

    @classmethod
    def skipped(cls) -> "StepOutcome":
        return cls()

    @classmethod
    def failure(cls, error: Exception) -> "StepOutcome":
        return cls(failed=True, error=str(error) or repr(error))

    @property
    def produced(self) -> bool:
        return self.artifact is not None and not self.failed


@dataclass
class ExportResult:
    media: ExportedMedia
    path: ExportPath
    descriptor: TransformDescriptor
    states: List[ExportState] = field(default_factory=list)
    remote_error: Optional[str] = None
    local_error: Optional[str] = None
    metadata_only: bool = False
    stale_edits_ignored: bool = False
    duration_ms: int = 0

    @property
    def produced_new_file(self) -> bool:
        return self.path != ExportPath.PASS_THROUGH and not self.metadata_only

    def to_dict(self) -> dict:
        return {
            "media": self.media.to_dict(),
            "path": self.path.value,
            "descriptor": self.descriptor.as_list(),
            "states": [s.value for s in self.states],
            "remote_error": self.remote_error,
            "local_error": self.local_error,
            "metadata_only": self.metadata_only,
            "stale_edits_ignored": self.stale_edits_ignored,
            "duration_ms": self.duration_ms,
        }


ProgressListener = Callable[["ExportProgress"], Any]


@dataclass
class ExportProgress:
    """Auxiliary UI state: progress percentage and processing/submitting flags."""
    percent: int = 0
    processing: bool = False
    submitting: bool = False
    listeners: List[ProgressListener] = field(default_factory=list, repr=False)

    def update(self, **changes: Any) -> None:
        for name, value in changes.items():
            setattr(self, name, value)
        for listener in list(self.listeners):
            listener(self)

    def reset(self) -> None:
        self.update(percent=0, processing=False, submitting=False)


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class ExportOrchestrator:
    """
    Decides, per submit, whether baking is needed and which path produces the
    artifact. One instance per editor screen; at most one export in flight.
    """

    def __init__(
        self,
        config: ExportConfig,
        probe: Optional[ProcessingAvailabilityProbe] = None,
        remote: Optional[RemoteCompositingClient] = None,
        local: Optional[LocalFallbackRenderer] = None,
    ):
        self.config = config
        self.probe = probe or ProcessingAvailabilityProbe(
            config.processing_server_url,
            timeout=config.probe_timeout_seconds,
            ttl_seconds=config.availability_ttl_seconds,
        )
        if remote is None and config.remote_enabled:
            remote = RemoteCompositingClient(
                config.processing_server_url,
                config.documents_dir,
                timeout=config.remote_timeout_seconds,
                music_volume=config.music_volume,
            )
        self.remote = remote
        self.local = local or LocalFallbackRenderer(
            config.documents_dir,
            max_width=config.max_photo_width,
            jpeg_quality=config.jpeg_quality,
        )

        self.progress = ExportProgress()
        self._state = ExportState.IDLE
        self._states: List[ExportState] = []
        self._submitting = False
        self._cancelled = False
        self._remote_task: Optional[asyncio.Future] = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> ExportState:
        return self._state

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    def _transition(self, new_state: ExportState) -> None:
        old_state = self._state
        self._state = new_state
        self._states.append(new_state)
        logger.debug(f"[Orchestrator] {old_state.value} → {new_state.value}")

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def prepare(self) -> bool:
        """Probe the compositing service once when the editor mounts."""
        available = await self.probe.check()
        if available:
            logger.info("[Orchestrator] Processing server is available")
        else:
            logger.info("[Orchestrator] Processing server not available - filters stored as metadata")
        return available

    def cancel(self) -> bool:
        """
        Abort the in-flight remote request, e.g. when the user leaves the screen.

        The pending submit raises ExportCancelledError; no fallback runs.
        """
        if not self._submitting:
            return False
        self._cancelled = True
        if self._remote_task is not None and not self._remote_task.done():
            self._remote_task.cancel()
        logger.info("[Orchestrator] Export cancelled")
        return True

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _attempt_remote(self, snapshot: SessionSnapshot) -> StepOutcome:
        self._transition(ExportState.REMOTE_ATTEMPT)
        self.progress.update(processing=True, percent=10)
        self._remote_task = asyncio.ensure_future(self.remote.composite(
            snapshot.asset,
            snapshot.descriptor,
            snapshot.overlays,
            snapshot.trim,
            snapshot.audio,
        ))
        try:
            artifact = await self._remote_task
        except asyncio.CancelledError:
            if self._cancelled:
                raise ExportCancelledError("Export cancelled while compositing") from None
            raise
        except Exception as e:
            logger.warning(f"[Orchestrator] ⚠️ Server processing failed, falling back: {e}")
            return StepOutcome.failure(e)
        finally:
            self._remote_task = None
        self.progress.update(percent=50)
        return StepOutcome.success(artifact)

    async def _attempt_local(self, snapshot: SessionSnapshot) -> StepOutcome:
        self._transition(ExportState.LOCAL_FALLBACK)
        self.progress.update(processing=True, percent=30)
        try:
            artifact = await self.local.render(snapshot.asset, snapshot.descriptor, snapshot.adjustments)
        except LocalRenderError as e:
            logger.warning(f"[Orchestrator] ⚠️ Local processing failed, using original: {e}")
            return StepOutcome.failure(e)
        if artifact is None:
            return StepOutcome.skipped()
        self.progress.update(percent=80)
        return StepOutcome.success(artifact)

    def _check_cancelled(self) -> None:
        if self._cancelled:
            raise ExportCancelledError("Export cancelled")

    # -------------------------------------------------------------------------
    # Submit
    # -------------------------------------------------------------------------

    async def submit(self, session: EditSession) -> ExportResult:
        """
        Produce exactly one ExportedMedia for the session.

        Raises:
            ExportInProgressError: another submit is still running
            ExportCancelledError: cancel() was called during this submit
        """
        if self._submitting:
            raise ExportInProgressError("An export is already in progress")
        self._submitting = True
        self._cancelled = False
        self._states = []
        started = time.perf_counter()

        try:
            self.progress.update(submitting=True, percent=0)
            self._transition(ExportState.DECIDING_PATH)
            snapshot = session.snapshot()
            result = await self._run(snapshot)
            if self._cancelled and result.produced_new_file:
                result.media.local_path.unlink(missing_ok=True)
            self._check_cancelled()
            self._transition(ExportState.DONE)
            self.progress.update(percent=100)

            result.states = list(self._states)
            result.duration_ms = int((time.perf_counter() - started) * 1000)
            EXPORT_PATHS.labels(path=result.path.value, kind=snapshot.asset.kind.value).inc()
            EXPORT_LATENCY.labels(path=result.path.value).observe(time.perf_counter() - started)
            logger.info(
                f"[Orchestrator] Export done via {result.path.value} "
                f"({result.duration_ms}ms): {result.media.uri}"
            )
            return result
        except BaseException:
            self._state = ExportState.IDLE
            raise
        finally:
            self._submitting = False
            self._cancelled = False
            self.progress.reset()

    async def _run(self, snapshot: SessionSnapshot) -> ExportResult:
        descriptor = snapshot.descriptor

        # Rule 1: a committed manual bake is final
        if snapshot.edited:
            self._transition(ExportState.PASS_THROUGH)
            if snapshot.stale_after_bake:
                logger.warning(
                    "[Orchestrator] Edits made after the manual bake are not applied; "
                    "exporting the baked asset"
                )
            return ExportResult(
                media=snapshot.asset,
                path=ExportPath.PASS_THROUGH,
                descriptor=descriptor,
                stale_edits_ignored=snapshot.stale_after_bake,
            )

        # Rule 2: nothing to do
        if not snapshot.needs_processing:
            self._transition(ExportState.PASS_THROUGH)
            return ExportResult(media=snapshot.asset, path=ExportPath.PASS_THROUGH, descriptor=descriptor)

        # Rule 3: remote when available
        remote_error = None
        if self.remote is not None and await self.probe.check():
            self._check_cancelled()
            outcome = await self._attempt_remote(snapshot)
            if outcome.produced:
                return ExportResult(media=outcome.artifact, path=ExportPath.REMOTE, descriptor=descriptor)
            remote_error = outcome.error
        else:
            logger.info("[Orchestrator] ℹ️ Processing server not available, filter will be applied on display")

        # Rule 4: local fallback, None means metadata only
        self._check_cancelled()
        outcome = await self._attempt_local(snapshot)
        if outcome.produced:
            return ExportResult(
                media=outcome.artifact,
                path=ExportPath.LOCAL_FALLBACK,
                descriptor=descriptor,
                remote_error=remote_error,
            )
        logger.info("[Orchestrator] ℹ️ Using original media, filters will be applied on display")
        return ExportResult(
            media=snapshot.asset,
            path=ExportPath.LOCAL_FALLBACK,
            descriptor=descriptor,
            remote_error=remote_error,
            local_error=outcome.error,
            metadata_only=True,
        )


def create_export_orchestrator(config: Optional[ExportConfig] = None, **kwargs: Any) -> ExportOrchestrator:
    """Factory: orchestrator wired from the environment unless a config is given."""
    return ExportOrchestrator(config or ExportConfig.from_env(), **kwargs)


__all__ = [
    "ExportOrchestrator",
    "ExportState",
    "ExportPath",
    "ExportResult",
    "ExportProgress",
    "StepOutcome",
    "create_export_orchestrator",
]
