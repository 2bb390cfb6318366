#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Blob store / metadata store reconciliation.

Finds the two kinds of inconsistency the dual write can leave behind:

- orphan files: blobs on disk that no record's ``server_path`` points at
  (typically a failed compensating delete, or a record deleted while its
  file could not be);
- missing (dangling) records: records whose ``server_path`` file is gone.

Both sides are compared in canonical path form (see ``storage.paths``).
Scans are all-or-nothing: a listing or query failure propagates instead of
producing a partial report.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from ..errors import BlobStoreError
from ..models.media_record import MediaRecord
from ..models.upload import BlobInfo
from ..storage.paths import normalize_path
from ..utils.time import now_iso

logger = logging.getLogger(__name__)


@dataclass
class OrphanScan:
    orphan_files: List[BlobInfo]
    server_files: List[BlobInfo]
    db_records: List[MediaRecord]

    @property
    def orphan_count(self) -> int:
        return len(self.orphan_files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalServerFiles": len(self.server_files),
            "totalDbRecords": len(self.db_records),
            "orphanFiles": [f.to_dict() for f in self.orphan_files],
            "orphanCount": self.orphan_count,
        }


@dataclass
class MissingRecord:
    record: MediaRecord
    server_path: str
    error: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.record.id,
            "title": self.record.title,
            "serverPath": self.server_path,
            "error": self.error,
        }


@dataclass
class IntegrityReport:
    timestamp: str
    server_files: int
    database_records: int
    orphan_files: List[BlobInfo]
    missing_records: List[MissingRecord]
    integrity_score: int

    @property
    def orphan_count(self) -> int:
        return len(self.orphan_files)

    @property
    def missing_count(self) -> int:
        return len(self.missing_records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "serverFiles": self.server_files,
            "databaseRecords": self.database_records,
            "orphanFiles": [f.to_dict() for f in self.orphan_files],
            "orphanCount": self.orphan_count,
            "missingFiles": [m.to_dict() for m in self.missing_records],
            "missingCount": self.missing_count,
            "integrityScore": self.integrity_score,
        }


OrphanItem = Union[BlobInfo, Dict[str, Any], str]


def orphan_path(item: OrphanItem) -> Optional[str]:
    """The path named by a cleanup item: a ``BlobInfo``, a ``{"path": ...}`` dict or a string."""
    if isinstance(item, BlobInfo):
        return item.path
    if isinstance(item, dict):
        return item.get("path")
    return item


def _describe(item: OrphanItem) -> Dict[str, Any]:
    if isinstance(item, BlobInfo):
        return item.to_dict()
    if isinstance(item, dict):
        return dict(item)
    return {"path": item}


@dataclass
class CleanupResult:
    """Outcome per cleanup item; entries are the items exactly as they were passed in."""
    success: List[OrphanItem] = field(default_factory=list)
    failed: List[Tuple[OrphanItem, str]] = field(default_factory=list)   # (item, error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": [_describe(item) for item in self.success],
            "failed": [{"file": _describe(item), "error": e} for item, e in self.failed],
        }


@dataclass
class RepairResult:
    dry_run: bool
    orphans_deleted: int = 0
    records_removed: int = 0
    would_delete: int = 0
    would_remove: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dryRun": self.dry_run,
            "orphansDeleted": self.orphans_deleted,
            "recordsRemoved": self.records_removed,
            "wouldDelete": self.would_delete,
            "wouldRemove": self.would_remove,
            "errors": self.errors,
        }


def compute_integrity_score(server_count: int, record_count: int,
                            orphan_count: int, missing_count: int) -> int:
    """Percentage of items without issues, 0..100 (100 for an empty gallery)."""
    total = max(server_count, record_count)
    if total == 0:
        return 100
    issues = orphan_count + missing_count
    return max(0, round(((total - issues) / total) * 100))


class ReconciliationEngine:
    """Compares the blob listing against the metadata records."""

    def __init__(self, blob_store, metadata_store):
        self.blob_store = blob_store
        self.metadata_store = metadata_store

    async def scan_orphans(self) -> OrphanScan:
        logger.info("Scanning for orphan files...")
        server_files = await asyncio.to_thread(self.blob_store.list)
        records = await asyncio.to_thread(self.metadata_store.list_all)

        referenced = {normalize_path(r.server_path) for r in records if r.has_blob}
        orphans = [f for f in server_files if normalize_path(f.path) not in referenced]

        logger.info("Found %d files on server, %d records, %d orphan files",
                    len(server_files), len(records), len(orphans))
        return OrphanScan(orphan_files=orphans, server_files=server_files, db_records=records)

    async def scan_missing(self) -> List[MissingRecord]:
        """Records whose blob is absent. A failing check counts as missing."""
        logger.info("Scanning for database records with missing server files...")
        records = await asyncio.to_thread(self.metadata_store.list_all)
        missing = []
        for record in records:
            if not record.has_blob:
                continue
            path = normalize_path(record.server_path)
            try:
                found = await asyncio.to_thread(self.blob_store.exists, path)
                error = "File not found"
            except (BlobStoreError, ValueError, OSError) as e:
                found = False
                error = str(e)
            if not found:
                logger.info("Missing server file for record %s: %s", record.id, path)
                missing.append(MissingRecord(record=record, server_path=path, error=error))

        logger.info("Found %d database records with missing server files", len(missing))
        return missing

    async def integrity_report(self) -> IntegrityReport:
        orphan_scan = await self.scan_orphans()
        missing = await self.scan_missing()
        score = compute_integrity_score(
            len(orphan_scan.server_files), len(orphan_scan.db_records),
            orphan_scan.orphan_count, len(missing),
        )
        report = IntegrityReport(
            timestamp=now_iso(),
            server_files=len(orphan_scan.server_files),
            database_records=len(orphan_scan.db_records),
            orphan_files=orphan_scan.orphan_files,
            missing_records=missing,
            integrity_score=score,
        )
        logger.info("Integrity report: %d files, %d records, %d orphans, %d missing, score %d%%",
                    report.server_files, report.database_records,
                    report.orphan_count, report.missing_count, score)
        return report

    async def integrity_score(self) -> int:
        return (await self.integrity_report()).integrity_score

    async def cleanup_orphans(self, files: Iterable[OrphanItem]) -> CleanupResult:
        """Delete each given blob independently. Not-found counts as a failure."""
        result = CleanupResult()
        for item in files:
            path = normalize_path(orphan_path(item))
            try:
                deleted = await asyncio.to_thread(self.blob_store.delete, path)
            except (BlobStoreError, ValueError, OSError) as e:
                logger.error("Failed to delete orphan file %s: %s", path, e)
                result.failed.append((item, str(e)))
                continue
            if deleted:
                result.success.append(item)
            else:
                result.failed.append((item, "File not found"))

        logger.info("Orphan cleanup complete: %d deleted, %d failed",
                    len(result.success), len(result.failed))
        return result

    async def repair(self, cleanup_orphans: bool = False, remove_missing_records: bool = False,
                     dry_run: bool = True) -> RepairResult:
        """Fix what a fresh integrity report finds.

        With ``dry_run`` (the default) only the would-be counts are filled in.
        """
        report = await self.integrity_report()
        result = RepairResult(dry_run=dry_run)

        if cleanup_orphans and report.orphan_files:
            result.would_delete = report.orphan_count
            if not dry_run:
                cleaned = await self.cleanup_orphans(report.orphan_files)
                result.orphans_deleted = len(cleaned.success)
                result.errors.extend(f"{orphan_path(item)}: {error}" for item, error in cleaned.failed)

        if remove_missing_records and report.missing_records:
            result.would_remove = report.missing_count
            if not dry_run:
                for missing in report.missing_records:
                    try:
                        await asyncio.to_thread(self.metadata_store.delete, missing.record.id)
                    except sqlite3.Error as e:
                        result.errors.append(f"Record removal failed for #{missing.record.id}: {e}")
                        continue
                    result.records_removed += 1

        logger.info("Repair complete (dry run: %s): %d orphans deleted, %d records removed, %d errors",
                    dry_run, result.orphans_deleted, result.records_removed, len(result.errors))
        return result
