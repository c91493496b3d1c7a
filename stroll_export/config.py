"""
Export pipeline configuration.

Every component receives an ExportConfig through its constructor. Nothing in
this package reads the processing-server URL or the availability cache from
module-level state.

Environment Variables:
- STROLL_PROCESSING_SERVER_URL: compositing service base URL (empty disables it)
- STROLL_DOCUMENTS_DIR: app-owned durable storage directory
- STROLL_PROBE_TIMEOUT: health probe timeout in seconds
- STROLL_AVAILABILITY_TTL: how long a probe result stays valid, in seconds
- STROLL_REMOTE_TIMEOUT: compositing request timeout in seconds
- STROLL_MUSIC_VOLUME: background music volume, 0-1
- STROLL_MAX_PHOTO_WIDTH: bounding width for the local resize pass
- STROLL_JPEG_QUALITY: JPEG quality for local re-encodes
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

DEFAULT_PROCESSING_SERVER_URL = "http://localhost:3001"
DEFAULT_DOCUMENTS_DIR = Path.home() / ".stroll" / "documents"

# Per-kind upload limits in MB, enforced before handing off to the backend
DEFAULT_SIZE_LIMITS_MB: Dict[str, int] = {
    "video": 100,
    "audio": 50,
    "photo": 10,
}


@dataclass
class ExportConfig:
    """Configuration for the edit-and-export pipeline"""
    processing_server_url: Optional[str] = DEFAULT_PROCESSING_SERVER_URL
    documents_dir: Path = DEFAULT_DOCUMENTS_DIR
    probe_timeout_seconds: float = 3.0
    availability_ttl_seconds: float = 300.0
    remote_timeout_seconds: float = 300.0
    music_volume: float = 0.5
    max_photo_width: int = 2000
    jpeg_quality: int = 90
    size_limits_mb: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_SIZE_LIMITS_MB))

    def __post_init__(self):
        self.documents_dir = Path(self.documents_dir).expanduser()
        if self.processing_server_url is not None:
            self.processing_server_url = self.processing_server_url.strip().rstrip("/") or None

    @property
    def remote_enabled(self) -> bool:
        return bool(self.processing_server_url)

    def ensure_documents_dir(self) -> Path:
        self.documents_dir.mkdir(parents=True, exist_ok=True)
        return self.documents_dir

    def size_limit_bytes(self, kind: str) -> int:
        return self.size_limits_mb.get(kind, self.size_limits_mb["photo"]) * 1024 * 1024

    @classmethod
    def from_env(cls) -> "ExportConfig":
        """Build a config from STROLL_* environment variables."""
        return cls(
            processing_server_url=os.getenv("STROLL_PROCESSING_SERVER_URL", DEFAULT_PROCESSING_SERVER_URL),
            documents_dir=Path(os.getenv("STROLL_DOCUMENTS_DIR", str(DEFAULT_DOCUMENTS_DIR))),
            probe_timeout_seconds=float(os.getenv("STROLL_PROBE_TIMEOUT", "3.0")),
            availability_ttl_seconds=float(os.getenv("STROLL_AVAILABILITY_TTL", "300")),
            remote_timeout_seconds=float(os.getenv("STROLL_REMOTE_TIMEOUT", "300")),
            music_volume=float(os.getenv("STROLL_MUSIC_VOLUME", "0.5")),
            max_photo_width=int(os.getenv("STROLL_MAX_PHOTO_WIDTH", "2000")),
            jpeg_quality=int(os.getenv("STROLL_JPEG_QUALITY", "90")),
        )


__all__ = ["ExportConfig", "DEFAULT_PROCESSING_SERVER_URL", "DEFAULT_SIZE_LIMITS_MB"]
