#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for orphan / missing file detection, integrity scoring and repair.
"""

import asyncio
from datetime import datetime

import pytest

from media_gallery.errors import BlobStoreError
from media_gallery.maintenance.reconcile import ReconciliationEngine, compute_integrity_score, orphan_path
from media_gallery.models.media_record import MediaRecord

from .fixtures.builders import InMemoryBlobStore, InMemoryMetadataStore

BLOB_PATHS = [
    "images/2025-07-20/1_a.png",
    "images/2025-07-21/2_b.png",
    "images/2025-07-22/3_c.png",
    "videos/2025-07-22/4_d.mp4",
    "videos/2025-07-23/5_e.mp4",
]


def run(coro):
    return asyncio.run(coro)


def record(server_path=None, title="item"):
    return MediaRecord(title=title, date_added="2025-07-23T00:00:00.000Z", server_path=server_path)


@pytest.fixture
def fixture_stores():
    """5 blobs and 3 records, two of which point at a blob (one in web form)."""
    blobs = InMemoryBlobStore()
    for path in BLOB_PATHS:
        blobs.add(path)
    records = InMemoryMetadataStore()
    records.insert(record(BLOB_PATHS[0]))
    records.insert(record("/" + BLOB_PATHS[3].replace("/", "\\")))
    records.insert(record(None))
    return blobs, records


class TestScoreFormula:

    @pytest.mark.parametrize("server,records,orphans,missing,expected", [
        (0, 0, 0, 0, 100),
        (5, 3, 3, 0, 40),
        (4, 4, 0, 0, 100),
        (10, 2, 8, 5, 0),
        (3, 3, 0, 1, 67),
    ])
    def test_compute(self, server, records, orphans, missing, expected):
        assert compute_integrity_score(server, records, orphans, missing) == expected


class TestScans:

    def test_orphans_are_the_unmatched_paths(self, fixture_stores):
        blobs, records = fixture_stores
        scan = run(ReconciliationEngine(blobs, records).scan_orphans())
        assert sorted(f.path for f in scan.orphan_files) == sorted(
            [BLOB_PATHS[1], BLOB_PATHS[2], BLOB_PATHS[4]])
        assert len(scan.server_files) == 5
        assert len(scan.db_records) == 3

    def test_integrity_score_40(self, fixture_stores):
        blobs, records = fixture_stores
        assert run(ReconciliationEngine(blobs, records).integrity_score()) == 40

    def test_missing_records(self, fixture_stores):
        blobs, records = fixture_stores
        gone = records.insert(record("images/2025-07-01/9_gone.png", title="gone"))
        missing = run(ReconciliationEngine(blobs, records).scan_missing())
        assert [m.record.id for m in missing] == [gone]
        assert missing[0].server_path == "images/2025-07-01/9_gone.png"

    def test_failing_check_counts_as_missing(self, fixture_stores):
        blobs, records = fixture_stores

        def broken_exists(path):
            raise BlobStoreError("stat failed")

        blobs.exists = broken_exists
        missing = run(ReconciliationEngine(blobs, records).scan_missing())
        assert len(missing) == 2
        assert all(m.error == "stat failed" for m in missing)

    def test_listing_failure_propagates(self):
        engine = ReconciliationEngine(InMemoryBlobStore(fail_list=True), InMemoryMetadataStore())
        with pytest.raises(BlobStoreError):
            run(engine.integrity_report())

    def test_report(self, fixture_stores):
        blobs, records = fixture_stores
        records.insert(record("images/2025-07-01/9_gone.png"))
        report = run(ReconciliationEngine(blobs, records).integrity_report())
        data = report.to_dict()
        assert data["serverFiles"] == 5
        assert data["databaseRecords"] == 4
        assert data["orphanCount"] == 3
        assert data["missingCount"] == 1
        assert data["integrityScore"] == 20
        assert data["timestamp"].endswith("Z")

    def test_empty_gallery(self):
        engine = ReconciliationEngine(InMemoryBlobStore(), InMemoryMetadataStore())
        assert run(engine.integrity_score()) == 100


class TestCleanupAndRepair:

    def test_cleanup_orphans(self, fixture_stores):
        blobs, records = fixture_stores
        engine = ReconciliationEngine(blobs, records)
        scan = run(engine.scan_orphans())
        result = run(engine.cleanup_orphans(scan.orphan_files + ["images/2025-07-01/never.png", "bad"]))

        assert result.success == scan.orphan_files
        assert sorted(orphan_path(f) for f in result.success) == sorted(
            [BLOB_PATHS[1], BLOB_PATHS[2], BLOB_PATHS[4]])
        failed = dict(result.failed)
        assert failed["images/2025-07-01/never.png"] == "File not found"
        assert failed["bad"] == "File not found"
        assert sorted(blobs.files) == sorted([BLOB_PATHS[0], BLOB_PATHS[3]])

    def test_cleanup_reports_the_descriptors_it_was_given(self, fixture_stores):
        blobs, records = fixture_stores
        sent = [
            {"path": "/" + BLOB_PATHS[1], "filename": "2_b.png", "size": 4},
            {"path": "images/2025-07-01/never.png", "filename": "never.png"},
            BLOB_PATHS[2],
        ]
        result = run(ReconciliationEngine(blobs, records).cleanup_orphans(sent))

        assert result.to_dict() == {
            "success": [sent[0], {"path": BLOB_PATHS[2]}],
            "failed": [{"file": sent[1], "error": "File not found"}],
        }
        assert BLOB_PATHS[1] not in blobs.files

    def test_cleanup_failure_is_per_item(self, fixture_stores):
        blobs, records = fixture_stores
        blobs.fail_delete = True
        result = run(ReconciliationEngine(blobs, records).cleanup_orphans(BLOB_PATHS[1:3]))
        assert result.success == []
        assert len(result.failed) == 2

    def test_repair_dry_run_changes_nothing(self, fixture_stores):
        blobs, records = fixture_stores
        records.insert(record("images/2025-07-01/9_gone.png"))
        result = run(ReconciliationEngine(blobs, records).repair(
            cleanup_orphans=True, remove_missing_records=True))
        assert result.dry_run
        assert result.would_delete == 3
        assert result.would_remove == 1
        assert result.orphans_deleted == 0
        assert len(blobs.files) == 5
        assert len(records.records) == 4

    def test_repair_apply(self, fixture_stores):
        blobs, records = fixture_stores
        gone = records.insert(record("images/2025-07-01/9_gone.png"))
        engine = ReconciliationEngine(blobs, records)
        result = run(engine.repair(cleanup_orphans=True, remove_missing_records=True, dry_run=False))
        assert result.orphans_deleted == 3
        assert result.records_removed == 1
        assert result.errors == []
        assert gone not in records.records
        assert run(engine.integrity_score()) == 100


class TestRealStores:

    def test_against_disk_and_sqlite(self, blob_store, db_manager):
        kept = blob_store.write("image", b"kept", "kept.png", now=datetime(2025, 7, 23, 12))
        blob_store.write("image", b"orphan", "orphan.png", now=datetime(2025, 7, 23, 12))
        db_manager.insert(record(kept))
        db_manager.insert(record("images/2025-07-23/0_missing.png"))

        report = run(ReconciliationEngine(blob_store, db_manager).integrity_report())
        assert [f.filename.split("_", 1)[1] for f in report.orphan_files] == ["orphan.png"]
        assert [m.server_path for m in report.missing_records] == ["images/2025-07-23/0_missing.png"]
        assert report.integrity_score == 0

    def test_unusual_extensions_are_orphans_too(self, blob_store, db_manager):
        written = sorted([
            blob_store.write("image", b"bmp", "render.bmp", now=datetime(2025, 7, 23, 12)),
            blob_store.write("image", b"raw", "render", now=datetime(2025, 7, 23, 12)),
        ])
        scan = run(ReconciliationEngine(blob_store, db_manager).scan_orphans())
        assert sorted(f.path for f in scan.orphan_files) == written
