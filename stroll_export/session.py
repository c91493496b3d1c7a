"""
Edit Session
============
Mutable state of one editing screen: the current asset, the quick filter,
adjustments, overlays, trim bounds, background audio and the `edited` flag.

`edited` flips to True only through commit_bake(), i.e. after a full manual
bake produced a committed artifact. The orchestrator reads it from the session
passed into submit(), never from scattered screen state.

The session is owned by the screen that created it. The orchestrator works on
an immutable SessionSnapshot taken at submit time, so edits made while an
export is in flight do not change the artifact being produced.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from .descriptor import IDENTITY, TransformDescriptor, describe
from .models import (
    Adjustments,
    ExportedMedia,
    MediaAsset,
    MediaKind,
    Overlay,
    Sticker,
    TextLayer,
    Trim,
)

logger = logging.getLogger("stroll.export.session")


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of an EditSession at submit time."""
    asset: MediaAsset
    descriptor: TransformDescriptor
    overlays: Tuple[Overlay, ...]
    trim: Optional[Trim]
    audio: Optional[MediaAsset]
    edited: bool
    stale_after_bake: bool = False

    @property
    def filter_id(self) -> str:
        return self.descriptor.filter_id

    @property
    def adjustments(self) -> Adjustments:
        return self.descriptor.adjustments

    @property
    def needs_processing(self) -> bool:
        """False when the descriptor is identity and no overlays/trim/audio are set."""
        return not (
            self.descriptor.is_identity
            and not self.overlays
            and self.trim is None
            and self.audio is None
        )


@dataclass
class BakeRecord:
    """What the session looked like when the manual bake was committed."""
    descriptor: TransformDescriptor
    overlays: Tuple[Overlay, ...]
    trim: Optional[Trim]
    audio_uri: Optional[str]
    committed_at: float = field(default_factory=time.time)


@dataclass
class EditSession:
    asset: MediaAsset
    filter_id: str = IDENTITY
    adjustments: Adjustments = field(default_factory=Adjustments)
    overlays: List[Overlay] = field(default_factory=list)
    trim: Optional[Trim] = None
    audio: Optional[MediaAsset] = None
    edited: bool = False
    bake: Optional[BakeRecord] = None
    owned_paths: Set[Path] = field(default_factory=set)

    def __post_init__(self):
        if self.asset.durable:
            self.owned_paths.add(self.asset.local_path)

    # -------------------------------------------------------------------------
    # Quick filter / adjustments
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> MediaKind:
        return self.asset.kind

    def descriptor(self) -> TransformDescriptor:
        return describe(self.filter_id, self.adjustments)

    def select_filter(self, filter_id: str) -> TransformDescriptor:
        self.filter_id = filter_id or IDENTITY
        return self.descriptor()

    def adjust(self, **changes: Any) -> Adjustments:
        """Change one or more adjustment fields; validation errors propagate."""
        self.adjustments = Adjustments(**{**self.adjustments.model_dump(), **changes})
        return self.adjustments

    def reset_adjustments(self) -> None:
        self.adjustments = Adjustments()

    # -------------------------------------------------------------------------
    # Overlays
    # -------------------------------------------------------------------------

    def _next_overlay_id(self) -> int:
        stamp = int(time.time() * 1000)
        taken = {o.id for o in self.overlays}
        while stamp in taken:
            stamp += 1
        return stamp

    def add_sticker(self, emoji: str, x: float = 0.0, y: float = 0.0) -> Sticker:
        sticker = Sticker(id=self._next_overlay_id(), emoji=emoji, x=x, y=y)
        self.overlays.append(sticker)
        return sticker

    def add_text(self, text: str = "Tap to edit", x: float = 0.0, y: float = 0.0, **style: Any) -> TextLayer:
        layer = TextLayer(id=self._next_overlay_id(), text=text, x=x, y=y, **style)
        self.overlays.append(layer)
        return layer

    def update_overlay(self, overlay_id: Union[int, str], **updates: Any) -> Overlay:
        for index, overlay in enumerate(self.overlays):
            if overlay.id == overlay_id:
                data = overlay.model_dump()
                data.update(updates)
                updated = type(overlay)(**data)
                self.overlays[index] = updated
                return updated
        raise KeyError(f"No overlay with id {overlay_id}")

    def remove_overlay(self, overlay_id: Union[int, str]) -> None:
        remaining = [o for o in self.overlays if o.id != overlay_id]
        if len(remaining) == len(self.overlays):
            raise KeyError(f"No overlay with id {overlay_id}")
        self.overlays = remaining

    @property
    def stickers(self) -> List[Sticker]:
        return [o for o in self.overlays if isinstance(o, Sticker)]

    @property
    def texts(self) -> List[TextLayer]:
        return [o for o in self.overlays if isinstance(o, TextLayer)]

    # -------------------------------------------------------------------------
    # Trim / audio
    # -------------------------------------------------------------------------

    def set_trim(self, start: float, end: float) -> Trim:
        if self.kind != MediaKind.VIDEO:
            raise ValueError("Only videos can be trimmed")
        self.trim = Trim(start=start, end=end)
        return self.trim

    def clear_trim(self) -> None:
        self.trim = None

    def set_audio(self, audio: MediaAsset) -> None:
        if audio.kind != MediaKind.AUDIO:
            raise ValueError(f"Expected an audio asset, got {audio.kind.value}")
        self.audio = audio

    def clear_audio(self) -> None:
        self.audio = None

    # -------------------------------------------------------------------------
    # Asset lifecycle
    # -------------------------------------------------------------------------

    def replace_asset(self, asset: MediaAsset) -> None:
        """A new selection starts over: the previous bake no longer applies."""
        self.asset = asset
        self.edited = False
        self.bake = None
        if asset.durable:
            self.owned_paths.add(asset.local_path)

    def commit_bake(self, artifact: ExportedMedia) -> MediaAsset:
        """
        Record a completed manual bake.

        The artifact becomes the session asset and `edited` is set, which makes
        the next submit a pass-through.
        """
        baked = MediaAsset(
            uri=artifact.uri,
            name=artifact.name,
            mime_type=artifact.mime_type,
            byte_size=artifact.byte_size,
            kind=self.asset.kind,
            durable=True,
        )
        self.asset = baked
        self.owned_paths.add(baked.local_path)
        self.edited = True
        self.bake = BakeRecord(
            descriptor=self.descriptor(),
            overlays=tuple(self.overlays),
            trim=self.trim,
            audio_uri=self.audio.uri if self.audio else None,
        )
        logger.info(f"[Session] Bake committed: {baked.uri}")
        return baked

    @property
    def stale_after_bake(self) -> bool:
        """True when edits were made after the committed bake."""
        if not self.edited or self.bake is None:
            return False
        return (
            self.descriptor() != self.bake.descriptor
            or tuple(self.overlays) != self.bake.overlays
            or self.trim != self.bake.trim
            or (self.audio.uri if self.audio else None) != self.bake.audio_uri
        )

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            asset=self.asset,
            descriptor=self.descriptor(),
            overlays=tuple(self.overlays),
            trim=self.trim,
            audio=self.audio,
            edited=self.edited,
            stale_after_bake=self.stale_after_bake,
        )

    def edits_blob(self) -> Dict[str, Any]:
        """Serializable record of every edit, stored with the post."""
        return {
            "adjustments": self.adjustments.model_dump(),
            "stickers": [s.to_wire() for s in self.stickers],
            "texts": [t.to_wire() for t in self.texts],
            "trim": self.trim.model_dump() if self.trim else None,
            "descriptor": self.descriptor().as_list(),
        }

    def discard(self) -> List[Path]:
        """Unlink every durable file this session created."""
        removed = []
        for path in sorted(self.owned_paths):
            try:
                path.unlink()
                removed.append(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"[Session] Could not remove {path}: {e}")
        self.owned_paths.clear()
        return removed


__all__ = ["EditSession", "SessionSnapshot", "BakeRecord"]
