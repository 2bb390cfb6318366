#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Filesystem blob storage for the AI Media Gallery.

Layout under the media root::

    images/<YYYY-MM-DD>/<unixMillis>_<sanitized name>
    videos/<YYYY-MM-DD>/<unixMillis>_<sanitized name>

This is the only component that touches media bytes on disk.
"""

import logging
import os
from collections import OrderedDict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from ..config import MEDIA_FOLDERS
from ..errors import BlobStoreError, InvalidBlobPathError
from ..models.upload import BlobInfo
from ..utils.path import ensure_dir, is_within
from ..utils.time import local_date_str, unix_millis
from .paths import media_folder, normalize_path, sanitize_filename

logger = logging.getLogger(__name__)


def _is_partial_write(name: str) -> bool:
    return name.startswith(".") and name.endswith(".part")


class BlobStore:
    """Date-partitioned media file store rooted at ``root``."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def ensure_layout(self) -> None:
        """Create the media folders if they do not exist yet."""
        for folder in MEDIA_FOLDERS.values():
            ensure_dir(self.root / folder)

    def _resolve(self, relative_path: str) -> Path:
        path = normalize_path(relative_path) or ""
        parts = path.split("/")
        if (len(parts) != 3 or parts[0] not in MEDIA_FOLDERS.values()
                or any(p in ("", ".", "..") for p in parts)):
            raise InvalidBlobPathError(
                f"Invalid path format: {relative_path!r}. Expected: folder/date/filename"
            )
        full = self.root.joinpath(*parts)
        if not is_within(full, self.root):
            raise InvalidBlobPathError(f"Path escapes the media root: {relative_path!r}")
        return full

    def absolute_path(self, relative_path: str) -> Path:
        return self._resolve(relative_path)

    def write(self, media_kind: str, data: bytes, original_name: str,
              now: Optional[datetime] = None) -> str:
        """Store ``data`` and return its canonical relative path.

        Raises:
            BlobStoreError: if the file cannot be written.
        """
        folder = media_folder(media_kind)
        date_dir = local_date_str(now)
        safe_name = sanitize_filename(original_name)
        millis = unix_millis(now)

        target_dir = self.root / folder / date_dir
        try:
            ensure_dir(target_dir)
            target = target_dir / f"{millis}_{safe_name}"
            while target.exists():
                millis += 1
                target = target_dir / f"{millis}_{safe_name}"

            tmp = target.with_name(f".{target.name}.part")
            try:
                with tmp.open("wb") as f:
                    f.write(data)
                os.replace(tmp, target)
            finally:
                if tmp.exists():
                    tmp.unlink()
        except OSError as e:
            raise BlobStoreError(f"Upload failed: {e}") from e

        relative = f"{folder}/{date_dir}/{target.name}"
        logger.info("Saved %s (%d bytes) in %s/", relative, len(data), folder)
        return relative

    def delete(self, relative_path: str) -> bool:
        """Delete a blob. Returns False if it did not exist.

        Raises:
            InvalidBlobPathError: for malformed or escaping paths.
            BlobStoreError: if the file exists but cannot be removed.
        """
        full = self._resolve(relative_path)
        if not full.is_file():
            return False
        try:
            full.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise BlobStoreError(f"Delete failed: {e}") from e
        logger.info("Deleted file: %s", normalize_path(relative_path))
        return True

    def exists(self, relative_path: str) -> bool:
        return self._resolve(relative_path).is_file()

    def read(self, relative_path: str) -> bytes:
        full = self._resolve(relative_path)
        try:
            return full.read_bytes()
        except OSError as e:
            raise BlobStoreError(f"Read failed: {e}") from e

    def list(self, media_kind: Optional[str] = None) -> List[BlobInfo]:
        """List stored media, newest date first, newest file first within a date.

        Raises:
            BlobStoreError: if a media directory cannot be read. Callers get
            the whole listing or nothing.
        """
        kinds = [media_kind] if media_kind else list(MEDIA_FOLDERS)
        found: List[BlobInfo] = []
        for kind in kinds:
            base = self.root / media_folder(kind)
            if not base.is_dir():
                continue
            try:
                found.extend(self._list_folder(base, kind))
            except OSError as e:
                raise BlobStoreError(f"Failed to list media files: {e}") from e

        found.sort(key=lambda b: (b.path.split("/")[1], b.modified), reverse=True)
        return found

    def _list_folder(self, base: Path, kind: str) -> List[BlobInfo]:
        folder = base.name
        items = []
        for date_entry in sorted(os.scandir(base), key=lambda e: e.name):
            if not date_entry.is_dir():
                continue
            for entry in os.scandir(date_entry.path):
                # any extension counts; in-flight temp files from write() do not
                if not entry.is_file() or _is_partial_write(entry.name):
                    continue
                st = entry.stat()
                items.append(BlobInfo(
                    path=f"{folder}/{date_entry.name}/{entry.name}",
                    filename=entry.name,
                    size=st.st_size,
                    modified=st.st_mtime,
                    media_type=kind,
                ))
        return items

    def list_by_date(self) -> Dict[str, List[BlobInfo]]:
        """Group the listing by date folder, most recent date first."""
        grouped: Dict[str, List[BlobInfo]] = OrderedDict()
        for blob in self.list():
            grouped.setdefault(blob.path.split("/")[1], []).append(blob)
        return grouped
