#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Maintenance command implementations: integrity report, orphan cleanup, repair, reclaim.
"""

import asyncio

from ..database.manager import DatabaseManager
from ..jsonio import success
from ..maintenance.reclaim import StorageReclaimer
from ..maintenance.reconcile import ReconciliationEngine
from ..storage.blob_store import BlobStore


def cmd_integrity(db_manager: DatabaseManager, blob_store: BlobStore, as_json: bool = False):
    """Report orphan files, records with missing files, and the integrity score."""
    engine = ReconciliationEngine(blob_store, db_manager)
    report = asyncio.run(engine.integrity_report())

    if as_json:
        return success("integrity", report.to_dict())

    print(f"Server files:     {report.server_files}")
    print(f"Database records: {report.database_records}")
    print(f"Orphan files:     {report.orphan_count}")
    for f in report.orphan_files:
        print(f"  {f.path} ({f.size:,} bytes)")
    print(f"Missing files:    {report.missing_count}")
    for m in report.missing_records:
        print(f"  #{m.record.id} {m.server_path}: {m.error}")
    print(f"Integrity score:  {report.integrity_score}%")
    return 0


def cmd_cleanup_orphans(db_manager: DatabaseManager, blob_store: BlobStore,
                        dry_run: bool = False, as_json: bool = False):
    """Delete every file that no record references."""
    engine = ReconciliationEngine(blob_store, db_manager)
    scan = asyncio.run(engine.scan_orphans())

    if dry_run:
        if as_json:
            return success("cleanup-orphans", scan.to_dict(), meta={"dryRun": True})
        print(f"Would delete {scan.orphan_count} orphan files:")
        for f in scan.orphan_files:
            print(f"  {f.path}")
        return 0

    result = asyncio.run(engine.cleanup_orphans(scan.orphan_files))
    if as_json:
        return success("cleanup-orphans", result.to_dict(), code=1 if result.failed else 0)

    print(f"Deleted {len(result.success)} orphan files")
    for item, err in result.failed:
        print(f"  failed {item.path}: {err}")
    return 1 if result.failed else 0


def cmd_repair(db_manager: DatabaseManager, blob_store: BlobStore, cleanup_orphans: bool = False,
               remove_missing_records: bool = False, dry_run: bool = True, as_json: bool = False):
    """Fix integrity issues (dry run unless told otherwise)."""
    engine = ReconciliationEngine(blob_store, db_manager)
    result = asyncio.run(engine.repair(cleanup_orphans=cleanup_orphans,
                                       remove_missing_records=remove_missing_records,
                                       dry_run=dry_run))
    if as_json:
        return success("repair", result.to_dict())

    if dry_run:
        print(f"Dry run: would delete {result.would_delete} orphan files "
              f"and remove {result.would_remove} records")
    else:
        print(f"Deleted {result.orphans_deleted} orphan files, removed {result.records_removed} records")
    for err in result.errors:
        print(f"  error: {err}")
    return 1 if result.errors else 0


def cmd_reclaim(db_manager: DatabaseManager, as_json: bool = False):
    """Clear inline payloads for records whose file is stored on disk."""
    before = db_manager.storage_stats()
    result = asyncio.run(StorageReclaimer(db_manager).reclaim())

    if as_json:
        return success("reclaim", result.to_dict(), meta={"before": before})

    print(result.to_dict()["message"])
    if result.error_count:
        print(f"{result.error_count} items could not be cleaned")
    return 0
