#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Upload and blob listing data structures for the AI Media Gallery.
"""

import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import IMAGE_EXT, VIDEO_EXT


@dataclass
class UploadedFile:
    """Raw upload as handed over by a transport (HTTP form, CLI, ...)."""
    filename: str
    data: bytes
    content_type: Optional[str] = None
    last_modified: Optional[str] = None

    def __post_init__(self):
        if not self.content_type:
            self.content_type = mimetypes.guess_type(self.filename)[0] or "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def stem(self) -> str:
        return Path(self.filename).stem

    @property
    def media_kind(self) -> Optional[str]:
        """'image', 'video', or None when the upload is neither."""
        if self.content_type.startswith("video/"):
            return "video"
        if self.content_type.startswith("image/"):
            return "image"
        ext = Path(self.filename).suffix.lower()
        if ext in VIDEO_EXT:
            return "video"
        if ext in IMAGE_EXT:
            return "image"
        return None

    @classmethod
    def from_path(cls, path: Path) -> "UploadedFile":
        path = Path(path)
        return cls(filename=path.name, data=path.read_bytes())


@dataclass
class BlobInfo:
    """A stored media file as seen by a listing."""
    path: str          # canonical relative path
    filename: str
    size: int
    modified: float    # POSIX mtime
    media_type: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "filename": self.filename,
            "size": self.size,
            "modified": self.modified,
            "mediaType": self.media_type,
        }
