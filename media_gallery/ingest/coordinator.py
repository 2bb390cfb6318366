#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Upload ingestion: the blob store / metadata store dual write.

Each ingest writes the file to the BlobStore first and the record to the
metadata store second. The record's shape depends on the blob outcome:

- blob written: the record points at it (``server_path``) and carries no
  inline payload. If the record insert then fails, the blob is deleted again
  (compensating action) and the insert error is raised as ``IngestError``.
  A failed compensating delete is only logged; the leftover file is an orphan
  that the reconciliation scan reports.
- blob write failed: the record carries the full payload inline
  (``image_data``) and ``server_path`` is None; the result is flagged
  ``degraded``.

So a successful ingest leaves exactly one durable copy of the bytes, and a
failed one leaves no record.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from ..config import DEFAULT_PHASH_THRESHOLD
from ..errors import BlobStoreError, IngestError, MediaGalleryError, ThumbnailError
from ..metadata import extract_metadata
from ..models.ai_info import Extraction
from ..models.media_record import MediaRecord, ThumbnailPosition
from ..models.upload import UploadedFile
from ..utils.time import now_iso
from .thumbnails import hash_distance, make_thumbnail, perceptual_hash, to_data_url

logger = logging.getLogger(__name__)


@dataclass
class IngestResult:
    record: MediaRecord
    degraded: bool = False          # True when no server-side blob exists
    blob_error: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def record_id(self) -> Optional[int]:
        return self.record.id

    def to_dict(self):
        return {
            "success": True,
            "imageId": self.record.id,
            "serverPath": self.record.server_path,
            "degraded": self.degraded,
            "blobError": self.blob_error,
            "warnings": self.warnings,
        }


@dataclass
class BatchResult:
    succeeded: List[IngestResult] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)   # (filename, error)

    @property
    def degraded_count(self) -> int:
        return sum(1 for r in self.succeeded if r.degraded)


class IngestCoordinator:
    """Coordinates parsing, blob write and metadata write for uploads."""

    def __init__(self, blob_store, metadata_store, phash_threshold: int = DEFAULT_PHASH_THRESHOLD):
        self.blob_store = blob_store
        self.metadata_store = metadata_store
        self.phash_threshold = phash_threshold

    async def ingest_upload(self, upload: UploadedFile, source_hint: Optional[str] = None) -> IngestResult:
        """Extract metadata from ``upload`` and ingest it."""
        extraction = extract_metadata(upload, source_hint)
        return await self.ingest(upload, extraction)

    async def ingest(self, upload: UploadedFile, extraction: Extraction) -> IngestResult:
        """Store ``upload`` in both stores.

        Raises:
            IngestError: no record was created. If a blob had been written it
                was deleted again, or is left as a detectable orphan.
        """
        warnings = list(extraction.warnings)
        thumbnail, phash = await asyncio.to_thread(self._preview, upload, extraction.media_type, warnings)
        if phash:
            warnings.extend(await self._duplicate_warnings(phash))

        record = self._build_record(upload, extraction, thumbnail, phash)

        try:
            server_path = await asyncio.to_thread(
                self.blob_store.write, extraction.media_type, upload.data, upload.filename
            )
        except (BlobStoreError, OSError) as e:
            return await self._ingest_inline(upload, record, e, warnings)

        record.server_path = server_path
        record.image_data = ""
        try:
            record.id = await asyncio.to_thread(self.metadata_store.insert, record)
        except Exception as e:
            logger.error("Database operation failed, rolling back server file %s: %s", server_path, e)
            cleaned = await self._compensate(server_path)
            suffix = ("Server file has been cleaned up." if cleaned
                      else f"Server file {server_path} could not be removed.")
            raise IngestError(f"Database operation failed: {e}. {suffix}") from e

        logger.info("Ingested %s as #%s (%s)", upload.filename, record.id, server_path)
        return IngestResult(record, warnings=warnings)

    async def _ingest_inline(self, upload: UploadedFile, record: MediaRecord,
                             blob_error: Exception, warnings: List[str]) -> IngestResult:
        logger.warning("Server upload failed for %s, storing payload inline: %s", upload.filename, blob_error)
        record.server_path = None
        record.image_data = to_data_url(upload.data, upload.content_type)
        try:
            record.id = await asyncio.to_thread(self.metadata_store.insert, record)
        except Exception as e:
            raise IngestError(
                f"Upload failed ({blob_error}) and database operation failed: {e}"
            ) from e
        warnings.append(f"Server backup failed: {blob_error}")
        return IngestResult(record, degraded=True, blob_error=str(blob_error), warnings=warnings)

    async def _compensate(self, server_path: str) -> bool:
        """Delete a just-written blob. Failures are logged, never raised."""
        try:
            deleted = await asyncio.to_thread(self.blob_store.delete, server_path)
        except (BlobStoreError, OSError) as e:
            logger.error("Failed to rollback server file %s: %s", server_path, e)
            return False
        if not deleted:
            logger.warning("Rollback found no server file at %s", server_path)
        else:
            logger.info("Server file rolled back: %s", server_path)
        return True

    def _preview(self, upload: UploadedFile, media_type: str, warnings: List[str]):
        if media_type != "image":
            return "", None
        try:
            thumbnail = make_thumbnail(upload.data)
        except ThumbnailError as e:
            warnings.append(f"No thumbnail: {e}")
            thumbnail = ""
        return thumbnail, perceptual_hash(upload.data)

    async def _duplicate_warnings(self, phash: str) -> List[str]:
        try:
            index = await asyncio.to_thread(self.metadata_store.phash_index)
        except Exception as e:
            raise IngestError(f"Database operation failed: {e}") from e
        matches = []
        for record_id, other in index:
            try:
                if hash_distance(phash, other) <= self.phash_threshold:
                    matches.append(record_id)
            except ValueError:
                continue
        if not matches:
            return []
        return [f"Possible duplicate of #{', #'.join(str(m) for m in matches)}"]

    @staticmethod
    def _build_record(upload: UploadedFile, extraction: Extraction,
                      thumbnail: str, phash: Optional[str]) -> MediaRecord:
        info = extraction.ai_info
        return MediaRecord(
            title=info.title or upload.stem,
            prompt=info.prompt,
            model=info.model,
            tags=info.tags,
            notes=info.notes,
            date_added=now_iso(),
            media_type=extraction.media_type,
            thumbnail_data=thumbnail,
            thumbnail_position=ThumbnailPosition(),
            metadata=extraction.metadata,
            file_size=upload.size,
            phash=phash,
        )

    async def ingest_batch(self, uploads: Iterable[UploadedFile],
                           on_progress: Optional[Callable[[UploadedFile, bool], None]] = None,
                           source_hint: Optional[str] = None) -> BatchResult:
        """Ingest uploads one at a time; a failing file does not stop the batch."""
        result = BatchResult()
        for upload in uploads:
            ok = True
            try:
                result.succeeded.append(await self.ingest_upload(upload, source_hint))
            except MediaGalleryError as e:
                logger.error("Error processing %s: %s", upload.filename, e)
                result.failed.append((upload.filename, str(e)))
                ok = False
            if on_progress is not None:
                on_progress(upload, ok)

        logger.info("Completed: %d successful, %d failed", len(result.succeeded), len(result.failed))
        return result

    async def remove(self, record_id: int) -> bool:
        """Delete a record and then its blob. Returns False if there was no record.

        A blob that cannot be deleted is logged and left as an orphan.
        """
        record = await asyncio.to_thread(self.metadata_store.get_by_id, record_id)
        if record is None:
            return False
        await asyncio.to_thread(self.metadata_store.delete, record_id)
        if record.has_blob:
            try:
                deleted = await asyncio.to_thread(self.blob_store.delete, record.server_path)
            except (BlobStoreError, OSError) as e:
                logger.error("Record #%s deleted but its file %s was not: %s",
                             record_id, record.server_path, e)
            else:
                if not deleted:
                    logger.warning("Record #%s pointed at missing file %s", record_id, record.server_path)
        return True
