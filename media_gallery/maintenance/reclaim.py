#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Storage reclamation: drop inline payloads that are already stored as blobs.

A record whose file is safely on disk (``server_path`` set) does not need
its full data URL in ``image_data`` too. Reclaiming clears it and keeps only
a small JPEG preview in ``thumbnail_data``.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Dict

from ..config import RECLAIM_MIN_INLINE_CHARS, RECLAIM_YIELD_EVERY, RECLAIM_YIELD_SECONDS
from ..errors import ThumbnailError
from ..ingest.thumbnails import thumbnail_from_data_url
from ..models.media_record import MediaRecord

logger = logging.getLogger(__name__)


@dataclass
class ReclaimResult:
    cleaned_count: int = 0
    space_saved_bytes: int = 0
    error_count: int = 0

    @property
    def space_saved_mb(self) -> int:
        return round(self.space_saved_bytes / (1024 * 1024))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cleanedCount": self.cleaned_count,
            "spaceSavedBytes": self.space_saved_bytes,
            "spaceSavedMB": self.space_saved_mb,
            "errorCount": self.error_count,
            "message": f"Cleaned {self.cleaned_count} items and freed {self.space_saved_mb}MB of storage space",
        }


def is_reclaim_candidate(record: MediaRecord) -> bool:
    return record.has_blob and len(record.image_data or "") > RECLAIM_MIN_INLINE_CHARS


class StorageReclaimer:
    """Strips redundant inline payloads from the metadata store."""

    def __init__(self, metadata_store, yield_every: int = RECLAIM_YIELD_EVERY,
                 yield_seconds: float = RECLAIM_YIELD_SECONDS):
        self.metadata_store = metadata_store
        self.yield_every = yield_every
        self.yield_seconds = yield_seconds

    async def reclaim(self) -> ReclaimResult:
        """Reclaim every candidate record, one at a time.

        A record whose thumbnail cannot be made or whose update fails is left
        as it was and counted in ``error_count``.
        """
        logger.info("Starting storage reclaim...")
        records = await asyncio.to_thread(self.metadata_store.list_all)
        logger.info("Found %d total items in database", len(records))

        result = ReclaimResult()
        for record in records:
            if not is_reclaim_candidate(record):
                continue
            original_size = len(record.image_data)
            try:
                thumbnail = record.thumbnail_data
                if not thumbnail or thumbnail == record.image_data:
                    logger.debug("Creating small thumbnail for item %s: %s", record.id, record.title)
                    thumbnail = await asyncio.to_thread(thumbnail_from_data_url, record.image_data)
                await asyncio.to_thread(
                    self.metadata_store.update, record.id,
                    {"image_data": "", "thumbnail_data": thumbnail},
                )
            except (ThumbnailError, sqlite3.Error) as e:
                logger.error("Error cleaning item %s: %s", record.id, e)
                result.error_count += 1
                continue

            result.cleaned_count += 1
            result.space_saved_bytes += original_size
            logger.info("Cleaned item %s: %r (saved %dKB)", record.id, record.title, round(original_size / 1024))

            if self.yield_every and result.cleaned_count % self.yield_every == 0:
                logger.info("Progress: %d items cleaned, %dMB saved",
                            result.cleaned_count, result.space_saved_mb)
                await asyncio.sleep(self.yield_seconds)

        logger.info("Storage reclaim completed: %d items cleaned, %dMB freed, %d errors",
                    result.cleaned_count, result.space_saved_mb, result.error_count)
        return result
