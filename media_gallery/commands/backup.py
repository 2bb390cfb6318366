#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Export / import of the gallery's metadata as a JSON document.

The export carries every record in its camelCase API shape; files on disk
are not included (records keep their ``serverPath``).
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from tqdm import tqdm

from ..database.manager import DatabaseManager
from ..jsonio import success, error
from ..utils.path import ensure_dir
from ..utils.time import local_date_str

logger = logging.getLogger(__name__)


def default_export_name() -> str:
    return f"ai-gallery-backup-{local_date_str()}.json"


def cmd_export(db_manager: DatabaseManager, out: Path = None, as_json: bool = False):
    """Write all records to ``out`` (default: dated file in the current directory)."""
    out = Path(out) if out else Path(default_export_name())
    export = db_manager.export_all()

    ensure_dir(out.parent)
    with out.open("w", encoding="utf-8") as f:
        json.dump(export, f, ensure_ascii=False, indent=2)
    logger.info("Exported %d items to %s", export["totalItems"], out)

    if as_json:
        return success("export", {"out": str(out), "totalItems": export["totalItems"],
                                  "version": export["version"]})
    print(f"Exported {export['totalItems']} items to {out}")
    return 0


def load_export(path: Path) -> Dict[str, Any]:
    """Read an export document.

    Raises:
        ValueError: if the file is not JSON.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        return json.load(f)


def cmd_import(db_manager: DatabaseManager, path: Path, as_json: bool = False):
    """Add every record of an export document (ids are reassigned)."""
    try:
        export = load_export(path)
    except (OSError, ValueError) as e:
        if as_json:
            return error("import", f"Cannot read {path}: {e}")
        print(f"Cannot read {path}: {e}")
        return 1

    items = export.get("images") if isinstance(export, dict) else None
    total = len(items) if isinstance(items, list) else 0
    try:
        with tqdm(total=total, desc="Importing", unit="item", disable=as_json) as pbar:
            result = db_manager.import_data(export, on_item=lambda ok: pbar.update(1))
    except ValueError as e:
        if as_json:
            return error("import", str(e))
        print(f"Import failed: {e}")
        return 1

    if as_json:
        return success("import", result, meta={"source": str(path), "version": export.get("version")})
    print(f"Imported {result['imported']} items ({result['errors']} errors)")
    return 0
