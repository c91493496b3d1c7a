"""
Value types that cross component boundaries in the export pipeline.

MediaAsset is the one shape used for picked media, durable copies, audio tracks
and baked artifacts. ExportedMedia is the terminal artifact handed to the
upload collaborator; a MediaAsset is an ExportedMedia, so a pass-through export
returns the session asset object itself.
"""

from __future__ import annotations

import mimetypes
import os
import time
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
from urllib.parse import unquote, urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class MediaKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"
    AUDIO = "audio"


DEFAULT_MIME_TYPES = {
    MediaKind.PHOTO: "image/jpeg",
    MediaKind.VIDEO: "video/mp4",
    MediaKind.AUDIO: "audio/mpeg",
}


def path_from_uri(uri: str) -> Path:
    """Resolve a file:// URI or a plain filesystem path."""
    if uri.startswith("file://"):
        return Path(unquote(urlparse(uri).path))
    return Path(uri)


# =============================================================================
# MEDIA
# =============================================================================

class ExportedMedia(BaseModel):
    """Terminal artifact: a real, readable local file."""
    uri: str = Field(min_length=1)
    name: str = Field(min_length=1)
    mime_type: str = Field(min_length=1)
    byte_size: int = Field(default=0, ge=0)

    @property
    def local_path(self) -> Path:
        return path_from_uri(self.uri)

    def to_dict(self) -> Dict[str, Any]:
        """Shape expected by the upload collaborator."""
        return {
            "uri": self.uri,
            "name": self.name,
            "mimeType": self.mime_type,
            "byteSize": self.byte_size,
        }


class MediaAsset(ExportedMedia):
    """
    A picked or produced media file.

    `durable` is true only once the file lives in app-owned storage. A
    non-durable asset points at a picker-managed location the OS may reclaim.
    """
    kind: MediaKind
    durable: bool = False

    @classmethod
    def from_picker(
        cls,
        uri: str,
        kind: Union[MediaKind, str],
        name: Optional[str] = None,
        mime_type: Optional[str] = None,
        byte_size: Optional[int] = None,
        durable: bool = False,
    ) -> "MediaAsset":
        """
        Build an asset from a picker result.

        Videos are renamed to .mp4 and photos to .jpg so the backend accepts
        them; audio keeps its own extension. A missing size is read from disk.
        """
        kind = MediaKind(kind)
        path = path_from_uri(uri)
        file_name = name or path.name or f"file_{int(time.time() * 1000)}"
        base_name = file_name.split(".")[0] or "file"

        if kind == MediaKind.VIDEO:
            file_name = f"{base_name}.mp4"
            mime = DEFAULT_MIME_TYPES[kind]
        elif kind == MediaKind.PHOTO:
            file_name = f"{base_name}.jpg"
            mime = DEFAULT_MIME_TYPES[kind]
        else:
            if "." not in file_name:
                file_name = f"{file_name}.mp3"
            mime = mime_type or mimetypes.guess_type(file_name)[0] or DEFAULT_MIME_TYPES[kind]

        if byte_size is None:
            byte_size = path.stat().st_size if path.is_file() else 0

        return cls(
            uri=uri,
            name=file_name,
            mime_type=mime,
            byte_size=byte_size,
            kind=kind,
            durable=durable,
        )

    def as_durable(self, path: Union[str, os.PathLike], byte_size: int) -> "MediaAsset":
        return self.model_copy(update={"uri": str(path), "byte_size": byte_size, "durable": True})


# =============================================================================
# ADJUSTMENTS
# =============================================================================

class Adjustments(BaseModel):
    """Manual colour adjustments. Defaults are the identity transform."""
    model_config = ConfigDict(frozen=True)

    brightness: int = Field(default=0, ge=-100, le=100)
    contrast: float = Field(default=1.0, ge=0.0, le=2.0)
    saturation: float = Field(default=1.0, ge=0.0, le=2.0)
    hue: float = Field(default=0.0, ge=-360.0, le=360.0)

    @property
    def is_identity(self) -> bool:
        return not self.changed_fields()

    def changed_fields(self) -> List[str]:
        """Fields that differ from their identity default, in descriptor order."""
        changed = []
        for name in ("brightness", "contrast", "saturation", "hue"):
            if getattr(self, name) != type(self).model_fields[name].default:
                changed.append(name)
        return changed

    @property
    def has_local_terms(self) -> bool:
        """True when brightness, contrast or saturation is off its default."""
        return any(name != "hue" for name in self.changed_fields())


def default_adjustments() -> Adjustments:
    return Adjustments()


# =============================================================================
# OVERLAYS
# =============================================================================

class Sticker(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    emoji: str
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    rotation: float = 0.0

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class TextLayer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Union[int, str]
    text: str = "Tap to edit"
    x: float = 0.0
    y: float = 0.0
    font_size: int = Field(default=24, alias="fontSize", gt=0)
    color: str = "#FFFFFF"
    font_family: str = Field(default="Poppins-Bold", alias="fontFamily")
    rotation: float = 0.0
    scale: float = 1.0

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


Overlay = Union[Sticker, TextLayer]


class Trim(BaseModel):
    """Trim bounds in seconds."""
    model_config = ConfigDict(frozen=True)

    start: float = Field(ge=0.0)
    end: float

    @model_validator(mode="after")
    def end_after_start(self) -> "Trim":
        if self.end <= self.start:
            raise ValueError("trim end must be greater than trim start")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class PickedFile(BaseModel):
    """Raw picker output before it becomes a MediaAsset."""
    uri: str
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    mime_type: Optional[str] = None

    @field_validator("uri")
    @classmethod
    def uri_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("picker returned an empty uri")
        return v

    def to_asset(self, kind: Union[MediaKind, str]) -> MediaAsset:
        return MediaAsset.from_picker(
            self.uri,
            kind,
            name=self.file_name,
            mime_type=self.mime_type,
            byte_size=self.file_size,
        )


__all__ = [
    "MediaKind",
    "ExportedMedia",
    "MediaAsset",
    "Adjustments",
    "default_adjustments",
    "Sticker",
    "TextLayer",
    "Overlay",
    "Trim",
    "PickedFile",
    "path_from_uri",
]
