"""
════════════════════════════════════════════════════════════════════════════════
STROLL Post Publisher
Export → Post Metadata → Size Check → Upload Collaborator
════════════════════════════════════════════════════════════════════════════════

The only failure class that reaches the user. Everything before the hand-off
(persistence, availability, remote processing) recovers silently; a failure
in the hand-off itself becomes a TerminalUploadError carrying a classified,
user-facing message.

The full descriptor is written into the post document regardless of the export
path, so feed renderers can re-derive it when the file was not baked.
════════════════════════════════════════════════════════════════════════════════
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from pydantic import BaseModel, Field

from .config import ExportConfig
from .descriptor import IDENTITY
from .errors import TerminalUploadError, UploadTooLargeError
from .metrics import UPLOAD_FAILURES
from .models import Adjustments, ExportedMedia, MediaKind
from .orchestrator import ExportOrchestrator, ExportResult
from .session import EditSession

logger = logging.getLogger("stroll.export.upload")


# =============================================================================
# FAILURE CLASSIFICATION
# =============================================================================

class UploadFailureKind(str, Enum):
    NETWORK = "network"
    TOO_LARGE = "too_large"
    SERVER_BUSY = "server_busy"
    OTHER = "other"


NETWORK_MARKERS = (
    "Network",
    "network",
    "timeout",
    "Network request failed",
    "503",
    "client read error",
    "Service Unavailable",
)
TOO_LARGE_MARKERS = ("too large", "File is too large")
SERVER_BUSY_MARKERS = ("Server is temporarily unavailable",)

USER_MESSAGES = {
    UploadFailureKind.NETWORK: "Network Error!\n\nPlease check your internet connection and try again.",
    UploadFailureKind.TOO_LARGE: "File Too Large!\n\nPlease select a smaller file or compress it.",
    UploadFailureKind.SERVER_BUSY: "Server Busy!\n\nPlease wait a moment and try again.",
}


@dataclass
class UploadFailure:
    kind: UploadFailureKind
    user_message: str
    detail: str = ""


def classify_upload_error(error: BaseException) -> UploadFailure:
    """Map an upload error onto a user-facing message by its type, then its text."""
    detail = str(error)
    if isinstance(error, UploadTooLargeError):
        kind = UploadFailureKind.TOO_LARGE
    elif any(marker in detail for marker in NETWORK_MARKERS):
        kind = UploadFailureKind.NETWORK
    elif any(marker in detail for marker in TOO_LARGE_MARKERS):
        kind = UploadFailureKind.TOO_LARGE
    elif any(marker in detail for marker in SERVER_BUSY_MARKERS):
        kind = UploadFailureKind.SERVER_BUSY
    else:
        return UploadFailure(UploadFailureKind.OTHER, detail or "Failed to upload", detail)
    return UploadFailure(kind, USER_MESSAGES[kind], detail)


def enforce_size_limit(media: ExportedMedia, kind: MediaKind, config: ExportConfig) -> None:
    """Raise UploadTooLargeError when the artifact exceeds its kind's limit."""
    size = media.byte_size or media.local_path.stat().st_size
    limit = config.size_limit_bytes(kind.value)
    if size > limit:
        raise UploadTooLargeError(size / (1024 * 1024), limit // (1024 * 1024))


# =============================================================================
# POST METADATA
# =============================================================================

class PostMetadata(BaseModel):
    """Post fields that travel alongside the artifact."""
    title: str = ""
    caption: str = ""
    prompt: str = ""
    link: str = ""
    filter: str = IDENTITY
    adjustments: Adjustments = Field(default_factory=Adjustments)
    descriptor: List[str] = Field(default_factory=lambda: [IDENTITY])
    edits: Optional[Dict[str, Any]] = None
    media_kind: MediaKind = MediaKind.PHOTO

    @classmethod
    def from_session(cls, session: EditSession, **fields: Any) -> "PostMetadata":
        return cls(
            filter=session.filter_id,
            adjustments=session.adjustments,
            descriptor=session.descriptor().as_list(),
            edits=session.edits_blob(),
            media_kind=session.kind,
            **fields,
        )

    def to_document(self) -> Dict[str, Any]:
        """Backend document shape: no identity filter, trimmed link, edits as JSON text."""
        document: Dict[str, Any] = {
            "title": self.title,
            "media_kind": self.media_kind.value,
            "descriptor": self.descriptor,
        }
        if self.caption:
            document["caption"] = self.caption
        if self.prompt:
            document["prompt"] = self.prompt
        if self.filter and self.filter != IDENTITY:
            document["filter"] = self.filter
        if self.link.strip():
            document["link"] = self.link.strip()
        if self.edits is not None:
            document["edits"] = json.dumps(self.edits)
        return document


# =============================================================================
# PUBLISHER
# =============================================================================

class UploadCollaborator(Protocol):
    async def create_post(self, media: ExportedMedia, metadata: PostMetadata) -> Any:
        ...


@dataclass
class PublishResult:
    post: Any
    export: ExportResult


class PostPublisher:
    """Runs one export and hands the artifact to the upload collaborator."""

    def __init__(self, orchestrator: ExportOrchestrator, uploader: UploadCollaborator):
        self.orchestrator = orchestrator
        self.uploader = uploader

    @property
    def config(self) -> ExportConfig:
        return self.orchestrator.config

    @staticmethod
    def _remove_artifact(export: ExportResult) -> None:
        if export.produced_new_file:
            export.media.local_path.unlink(missing_ok=True)

    async def publish(self, session: EditSession, title: str = "", **fields: Any) -> PublishResult:
        """
        Export the session and create the post.

        Raises:
            TerminalUploadError: the hand-off failed; the session is left intact
                so the user can retry
        """
        export = await self.orchestrator.submit(session)
        metadata = PostMetadata.from_session(session, title=title, **fields)

        try:
            if not export.media.local_path.is_file():
                raise FileNotFoundError(f"Exported file is not readable: {export.media.uri}")
            enforce_size_limit(export.media, session.kind, self.config)
            logger.info(f"[Publish] Uploading {session.kind.value} {export.media.name} ({export.path.value})")
            post = await self.uploader.create_post(export.media, metadata)
        except Exception as e:
            failure = classify_upload_error(e)
            UPLOAD_FAILURES.labels(kind=failure.kind.value).inc()
            logger.error(f"[Publish] ❌ Upload failed ({failure.kind.value}): {failure.detail}")
            self._remove_artifact(export)
            raise TerminalUploadError(failure) from e

        self._remove_artifact(export)
        removed = session.discard()
        logger.info(f"[Publish] ✅ Post created, cleaned up {len(removed)} durable file(s)")
        return PublishResult(post=post, export=export)


__all__ = [
    "UploadFailureKind",
    "UploadFailure",
    "classify_upload_error",
    "enforce_size_limit",
    "PostMetadata",
    "UploadCollaborator",
    "PublishResult",
    "PostPublisher",
]
