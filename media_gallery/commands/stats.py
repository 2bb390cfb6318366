#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Statistics command implementation for the AI Media Gallery.

- Uses Python logging for the human-readable report.
- as_json=True emits the same numbers as a single JSON payload.
"""

import logging
from typing import Any, Dict

from ..database.manager import DatabaseManager
from ..jsonio import success
from ..storage.blob_store import BlobStore


def cmd_show_stats(
    db_manager: DatabaseManager,
    blob_store: BlobStore,
    detailed: bool = False,
    as_json: bool = False,
) -> Dict[str, Any]:
    """Show gallery statistics.

    Args:
        db_manager: DatabaseManager instance.
        blob_store: BlobStore for the media root.
        detailed: If True, include the per-date file breakdown.
        as_json: If True, emit a single JSON object to stdout instead of logs.

    Returns:
        A dict of computed statistics (returned regardless of output mode).
    """
    logger = logging.getLogger(__name__)

    results: Dict[str, Any] = {
        "media": db_manager.stats(),
        "storage": db_manager.storage_stats(),
    }

    if detailed or as_json:
        by_date = blob_store.list_by_date()
        results["files"] = {
            "total": sum(len(files) for files in by_date.values()),
            "totalBytes": sum(f.size for files in by_date.values() for f in files),
            "byDate": {day: len(files) for day, files in by_date.items()},
        }

    if as_json:
        success("stats", results)
        return results

    media = results["media"]
    storage = results["storage"]
    logger.info("=== Gallery Statistics ===")
    logger.info("Items: %s (%s images, %s videos)",
                f"{media['total']:,}", f"{media['images']:,}", f"{media['videos']:,}")
    logger.info("Media size: %s MB", f"{media['totalSizeMB']:,}")
    logger.info("Items with server file: %s", f"{storage['itemsWithServerPath']:,}")
    redundant_mb = storage["redundantDataSizeBytes"] / (1024 ** 2)
    logger.info("Redundant inline data: %s items, %.1f MB", f"{storage['itemsWithLargeData']:,}", redundant_mb)
    if storage["canCleanup"]:
        logger.info("Run 'reclaim' to free the redundant inline data.")

    if detailed:
        logger.info("=== Files on disk ===")
        logger.info("Total: %s files, %.1f MB",
                    f"{results['files']['total']:,}", results["files"]["totalBytes"] / (1024 ** 2))
        for day, count in results["files"]["byDate"].items():
            logger.info("  %s: %s", day, f"{count:,}")

    return results
