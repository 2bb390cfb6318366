#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Gallery record command implementations: ingest, list, search, show, update, delete.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from tqdm import tqdm

from ..config import SUPPORTED_EXT
from ..database.manager import DatabaseManager, check_user_fields
from ..ingest.coordinator import IngestCoordinator
from ..jsonio import success, error
from ..models.media_record import MediaRecord
from ..models.upload import UploadedFile
from ..storage.blob_store import BlobStore

logger = logging.getLogger(__name__)


def record_summary(record: MediaRecord) -> Dict[str, Any]:
    """Record without its (possibly huge) inline payloads."""
    data = record.to_dict()
    data.pop("imageData")
    data.pop("thumbnailData")
    data["hasInlineData"] = bool(record.image_data)
    data["hasThumbnail"] = bool(record.thumbnail_data)
    return data


def collect_media_files(paths: Iterable[Path]) -> List[Path]:
    """Expand directories into the supported media files they contain."""
    files: List[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*")
                                if p.is_file() and p.suffix.lower() in SUPPORTED_EXT))
        else:
            files.append(path)
    return files


def _print_records(records: List[MediaRecord]) -> None:
    if not records:
        print("No media found.")
        return
    for r in records:
        where = r.server_path or "(inline)"
        print(f"#{r.id:<5} {r.media_type:<5} {r.date_added[:10]}  {r.title[:50]:<50}  {where}")


def cmd_ingest(db_manager: DatabaseManager, blob_store: BlobStore, paths: List[Path],
               source_hint: Optional[str] = None, as_json: bool = False):
    """Ingest files (or directories of files) into the gallery, one at a time."""
    files = collect_media_files(paths)
    if not files:
        if as_json:
            return error("ingest", "No media files found")
        print("No media files found.")
        return 1

    uploads = []
    unreadable = []
    for path in files:
        try:
            uploads.append(UploadedFile.from_path(path))
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            unreadable.append((path.name, str(e)))

    blob_store.ensure_layout()
    coordinator = IngestCoordinator(blob_store, db_manager)

    with tqdm(total=len(uploads), desc="Ingesting", unit="file", disable=as_json) as pbar:
        def on_progress(upload, ok):
            if not ok:
                tqdm.write(f"✗ {upload.filename}")
            pbar.update(1)

        batch = asyncio.run(coordinator.ingest_batch(uploads, on_progress=on_progress,
                                                     source_hint=source_hint))

    failed = unreadable + batch.failed
    data = {
        "ingested": [r.to_dict() for r in batch.succeeded],
        "failed": [{"filename": name, "error": msg} for name, msg in failed],
        "degraded": batch.degraded_count,
    }
    if as_json:
        return success("ingest", data)

    for r in batch.succeeded:
        flag = " (inline, server copy failed)" if r.degraded else ""
        print(f"Added #{r.record.id}: {r.record.title}{flag}")
        for w in r.warnings:
            print(f"  warning: {w}")
    for name, msg in failed:
        print(f"Failed {name}: {msg}")
    print(f"Completed: {len(batch.succeeded)} successful, {len(failed)} failed")
    return 1 if failed and not batch.succeeded else 0


def cmd_list(db_manager: DatabaseManager, limit: Optional[int] = None, as_json: bool = False):
    """List gallery records, newest first."""
    records = db_manager.list_all()
    if limit:
        records = records[:limit]
    if as_json:
        return success("list", [record_summary(r) for r in records], meta={"count": len(records)})
    _print_records(records)
    return 0


def cmd_search(db_manager: DatabaseManager, term: str, as_json: bool = False):
    """Case-insensitive search over title, prompt, tags, model and notes."""
    records = db_manager.search(term)
    if as_json:
        return success("search", [record_summary(r) for r in records],
                       meta={"term": term, "count": len(records)})
    _print_records(records)
    return 0


def cmd_show(db_manager: DatabaseManager, record_id: int, include_data: bool = False,
             as_json: bool = False):
    """Show a single record."""
    record = db_manager.get_by_id(record_id)
    if record is None:
        if as_json:
            return error("show", f"Media item {record_id} not found")
        print("Media item not found")
        return 1

    data = record.to_dict() if include_data else record_summary(record)
    if as_json:
        return success("show", data)

    for key in ("id", "title", "mediaType", "dateAdded", "model", "tags", "serverPath", "fileSize"):
        print(f"{key:>12}: {data.get(key)}")
    if record.prompt:
        print(f"{'prompt':>12}: {record.prompt}")
    if record.notes:
        print(f"{'notes':>12}:\n{record.notes}")
    return 0


def cmd_update(db_manager: DatabaseManager, record_id: int, fields: Dict[str, Any],
               as_json: bool = False):
    """Partially update a record's editable fields."""
    if db_manager.get_by_id(record_id) is None:
        if as_json:
            return error("update", f"Media item {record_id} not found")
        print("Media item not found")
        return 1
    try:
        check_user_fields(fields)
        changes = db_manager.update(record_id, fields)
    except ValueError as e:
        if as_json:
            return error("update", str(e))
        print(f"Update rejected: {e}")
        return 1

    if as_json:
        return success("update", {"id": record_id, "changes": changes, "fields": sorted(fields)})
    print(f"Updated media item {record_id} ({', '.join(sorted(fields)) or 'no fields'})")
    return 0


def cmd_delete(db_manager: DatabaseManager, blob_store: BlobStore, record_id: int,
               as_json: bool = False):
    """Delete a record and its stored file."""
    coordinator = IngestCoordinator(blob_store, db_manager)
    removed = asyncio.run(coordinator.remove(record_id))
    if not removed:
        if as_json:
            return error("delete", f"Media item {record_id} not found")
        print("Media item not found")
        return 1
    if as_json:
        return success("delete", {"id": record_id})
    print(f"Deleted media item {record_id}")
    return 0
