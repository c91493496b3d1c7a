"""
================================================================================
STROLL EXPORT PIPELINE v1.0
================================================================================
Edit-and-export for user media before upload: quick filters, adjustments,
overlays, trim and background audio, baked remotely when the compositing
service is up and recorded as metadata when it is not.

Package Exports:
- ExportOrchestrator: Per-submit path selection and progress state
- EditSession: Mutable editing state for one screen
- AssetPersistenceGuard: Copies picked videos into app-owned storage
- ProcessingAvailabilityProbe: Cached compositing-service health check
- RemoteCompositingClient / LocalFallbackRenderer: The two baking paths
- AdvancedEditorExporter: Manual bake from the full editor
- PostPublisher: Export + upload hand-off with classified errors

================================================================================
"""

__version__ = "1.0.0"

from .availability import ProcessingAvailability, ProcessingAvailabilityProbe
from .bake import AdvancedEditorExporter, BakeResult
from .config import ExportConfig
from .descriptor import IDENTITY, TransformDescriptor, describe, describe_post
from .errors import (
    ExportCancelledError,
    ExportInProgressError,
    LocalRenderError,
    RemoteCompositingError,
    StrollExportError,
    TerminalUploadError,
    UploadTooLargeError,
)
from .local_renderer import LocalFallbackRenderer
from .models import (
    Adjustments,
    ExportedMedia,
    MediaAsset,
    MediaKind,
    PickedFile,
    Sticker,
    TextLayer,
    Trim,
)
from .orchestrator import (
    ExportOrchestrator,
    ExportPath,
    ExportProgress,
    ExportResult,
    ExportState,
    create_export_orchestrator,
)
from .persistence import AssetPersistenceGuard
from .remote_client import RemoteCompositingClient
from .session import EditSession, SessionSnapshot
from .upload import (
    PostMetadata,
    PostPublisher,
    UploadFailure,
    UploadFailureKind,
    classify_upload_error,
    enforce_size_limit,
)

__all__ = [
    "__version__",

    # Config / errors
    "ExportConfig",
    "StrollExportError",
    "RemoteCompositingError",
    "LocalRenderError",
    "ExportInProgressError",
    "ExportCancelledError",
    "UploadTooLargeError",
    "TerminalUploadError",

    # Models
    "MediaKind",
    "ExportedMedia",
    "MediaAsset",
    "PickedFile",
    "Adjustments",
    "Sticker",
    "TextLayer",
    "Trim",

    # Descriptor
    "IDENTITY",
    "TransformDescriptor",
    "describe",
    "describe_post",

    # Pipeline
    "AssetPersistenceGuard",
    "ProcessingAvailability",
    "ProcessingAvailabilityProbe",
    "LocalFallbackRenderer",
    "RemoteCompositingClient",
    "EditSession",
    "SessionSnapshot",
    "ExportOrchestrator",
    "ExportPath",
    "ExportProgress",
    "ExportResult",
    "ExportState",
    "create_export_orchestrator",
    "AdvancedEditorExporter",
    "BakeResult",

    # Publish
    "PostMetadata",
    "PostPublisher",
    "UploadFailure",
    "UploadFailureKind",
    "classify_upload_error",
    "enforce_size_limit",
]


def get_version():
    """Return package version"""
    return __version__


def get_info():
    """Return package information"""
    return {
        "name": "STROLL EXPORT PIPELINE",
        "version": __version__,
        "components": [
            "ExportOrchestrator",
            "AssetPersistenceGuard",
            "ProcessingAvailabilityProbe",
            "RemoteCompositingClient",
            "LocalFallbackRenderer",
            "AdvancedEditorExporter",
            "PostPublisher",
        ],
        "capabilities": [
            "Remote compositing with local fallback",
            "Render-time filter descriptors",
            "Durable copies of picked videos",
            "Prometheus metrics",
        ],
    }
