#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Data structures for gallery records in the AI Media Gallery.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from ..config import DEFAULT_THUMBNAIL_X, DEFAULT_THUMBNAIL_Y

# Export (camelCase) key -> attribute name
_EXPORT_KEYS = {
    "dateAdded": "date_added",
    "mediaType": "media_type",
    "imageData": "image_data",
    "thumbnailData": "thumbnail_data",
    "serverPath": "server_path",
    "thumbnailPosition": "thumbnail_position",
    "fileSize": "file_size",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


def attribute_name(key: str) -> str:
    """Map an API/export key (camelCase or snake_case) to the attribute name."""
    return _EXPORT_KEYS.get(key, key)


def _clamp_percent(value: Any, default: int) -> int:
    try:
        number = int(round(float(value)))
    except (TypeError, ValueError):
        return default
    return max(0, min(100, number))


@dataclass
class ThumbnailPosition:
    """Focal point of the cropped preview, in percent of width/height."""
    x: int = DEFAULT_THUMBNAIL_X
    y: int = DEFAULT_THUMBNAIL_Y

    def clamped(self) -> "ThumbnailPosition":
        return ThumbnailPosition(
            _clamp_percent(self.x, DEFAULT_THUMBNAIL_X),
            _clamp_percent(self.y, DEFAULT_THUMBNAIL_Y),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_value(cls, value: Any) -> "ThumbnailPosition":
        """Build from a dict, another position, or None (defaults)."""
        if isinstance(value, ThumbnailPosition):
            return value.clamped()
        if isinstance(value, dict):
            # 0 is a legal coordinate, only missing/None falls back
            x = value.get("x")
            y = value.get("y")
            return cls(
                DEFAULT_THUMBNAIL_X if x is None else x,
                DEFAULT_THUMBNAIL_Y if y is None else y,
            ).clamped()
        return cls()


@dataclass
class MediaRecord:
    """A catalogued image or video.

    Exactly one of ``server_path`` (a blob on disk) or ``image_data`` (an
    inline data URL) is the authoritative byte source. ``thumbnail_data`` is
    a small preview that can always be dropped and regenerated.
    """
    title: str = ""
    prompt: str = ""
    model: str = ""
    tags: str = ""
    notes: str = ""
    date_added: str = ""
    media_type: str = "image"
    image_data: str = ""
    thumbnail_data: str = ""
    server_path: Optional[str] = None
    thumbnail_position: ThumbnailPosition = field(default_factory=ThumbnailPosition)
    metadata: Dict[str, Any] = field(default_factory=dict)
    file_size: int = 0
    phash: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def has_blob(self) -> bool:
        return bool(self.server_path and self.server_path.strip())

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the export/API shape (camelCase keys)."""
        return {
            "id": self.id,
            "title": self.title,
            "prompt": self.prompt,
            "model": self.model,
            "tags": self.tags,
            "notes": self.notes,
            "dateAdded": self.date_added,
            "mediaType": self.media_type,
            "imageData": self.image_data,
            "thumbnailData": self.thumbnail_data,
            "serverPath": self.server_path,
            "thumbnailPosition": self.thumbnail_position.to_dict(),
            "metadata": self.metadata,
            "fileSize": self.file_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaRecord":
        """Create a record from an export item (camelCase or snake_case keys)."""
        kwargs: Dict[str, Any] = {}
        names = set(cls.__dataclass_fields__)
        for key, value in data.items():
            name = attribute_name(key)
            if name in names:
                kwargs[name] = value

        kwargs["thumbnail_position"] = ThumbnailPosition.from_value(kwargs.get("thumbnail_position"))
        if not isinstance(kwargs.get("metadata"), dict):
            kwargs["metadata"] = {}
        for text_field in ("title", "prompt", "model", "tags", "notes", "image_data", "thumbnail_data"):
            if kwargs.get(text_field) is None:
                kwargs.pop(text_field, None)
        kwargs["media_type"] = kwargs.get("media_type") or "image"
        kwargs["file_size"] = int(kwargs.get("file_size") or 0)
        return cls(**kwargs)
