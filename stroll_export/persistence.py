"""
Asset Persistence Guard
=======================
Copies a freshly picked video out of the picker-managed temporary location into
app-owned document storage before anything else reads it. The picker's trimmed
output can be reclaimed by the OS as soon as the picker UI closes.

Failure is a best-effort degrade, never an error: if the copy throws or the
copied file is missing or empty, the original URI is kept with durable=False.
"""

import asyncio
import logging
import shutil
import time
import uuid
from pathlib import Path
from typing import Optional

from .metrics import PERSIST_RESULTS
from .models import MediaAsset, MediaKind

logger = logging.getLogger("stroll.export.persistence")


class AssetPersistenceGuard:
    """Moves picked media into durable, process-owned storage."""

    def __init__(self, documents_dir: Path, prefix: str = "trimmed_video"):
        self.documents_dir = Path(documents_dir)
        self.prefix = prefix

    def _allocate_path(self, source: Path) -> Path:
        suffix = source.suffix or ".mp4"
        stamp = int(time.time() * 1000)
        return self.documents_dir / f"{self.prefix}_{stamp}_{uuid.uuid4().hex[:8]}{suffix}"

    @staticmethod
    def _copy_and_stat(source: Path, destination: Path) -> Optional[int]:
        """Synchronous copy for the executor. Returns the copied size, or None."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
        if not destination.is_file():
            return None
        size = destination.stat().st_size
        if size <= 0:
            destination.unlink()
            return None
        return size

    async def persist(self, picked: MediaAsset) -> MediaAsset:
        """
        Copy a picked asset into durable storage.

        Args:
            picked: Asset whose uri points at the picker's output

        Returns:
            A new MediaAsset with durable=True pointing at the copy, or the
            original asset with durable=False when the copy could not be verified.
        """
        if picked.durable:
            return picked

        source = picked.local_path
        destination = self._allocate_path(source)

        loop = asyncio.get_event_loop()
        try:
            size = await loop.run_in_executor(None, self._copy_and_stat, source, destination)
        except Exception as e:
            logger.warning(f"[PersistenceGuard] Copy failed for {picked.uri}, keeping original: {e}")
            PERSIST_RESULTS.labels(result="copy_failed").inc()
            destination.unlink(missing_ok=True)
            return picked.model_copy(update={"durable": False})

        if size is None:
            logger.warning(f"[PersistenceGuard] Copy verification failed for {picked.uri}, keeping original")
            PERSIST_RESULTS.labels(result="verify_failed").inc()
            return picked.model_copy(update={"durable": False})

        logger.info(f"[PersistenceGuard] Persisted {picked.name} -> {destination} ({size} bytes)")
        PERSIST_RESULTS.labels(result="durable").inc()
        return picked.as_durable(destination, size)

    async def intake(self, picked: MediaAsset) -> MediaAsset:
        """Persist videos; photos and audio pass through unchanged."""
        if picked.kind == MediaKind.VIDEO:
            return await self.persist(picked)
        return picked


__all__ = ["AssetPersistenceGuard"]
