"""
Exception taxonomy for the export pipeline.

Persistence risk, availability negatives and remote processing failures are
recovered inside the pipeline. Only TerminalUploadError reaches the user.
"""

from typing import Optional


class StrollExportError(Exception):
    """Base class for export pipeline errors."""


class RemoteCompositingError(StrollExportError):
    """Raised when the compositing service does not return a complete artifact."""

    STATUS = "status"
    DECODE = "decode"
    TRANSPORT = "transport"
    WRITE = "write"

    def __init__(self, message: str, status_code: Optional[int] = None, reason: str = STATUS):
        self.message = message
        self.status_code = status_code
        self.reason = reason
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"RemoteCompositingError(reason={self.reason}, status={self.status_code}, message={self.message!r})"


class LocalRenderError(StrollExportError):
    """Raised when the local Pillow pass cannot produce an image."""


class ExportInProgressError(StrollExportError):
    """Raised when submit is called while another export is in flight."""


class ExportCancelledError(StrollExportError):
    """Raised when the in-flight export was cancelled."""


class UploadTooLargeError(StrollExportError):
    """Raised when an artifact exceeds the upload size limit for its kind."""

    def __init__(self, size_mb: float, limit_mb: int):
        self.size_mb = size_mb
        self.limit_mb = limit_mb
        super().__init__(
            f"File is too large ({size_mb:.2f}MB). Maximum size allowed: {limit_mb}MB. "
            f"Please compress or select a smaller file."
        )


class TerminalUploadError(StrollExportError):
    """The artifact could not be handed to the upload collaborator."""

    def __init__(self, failure):
        self.failure = failure
        super().__init__(failure.user_message)


__all__ = [
    "StrollExportError",
    "RemoteCompositingError",
    "LocalRenderError",
    "ExportInProgressError",
    "ExportCancelledError",
    "UploadTooLargeError",
    "TerminalUploadError",
]
