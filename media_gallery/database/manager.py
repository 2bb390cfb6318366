# media_gallery/database/manager.py
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import (
    EXPORT_VERSION, FIELD_LIMITS, METADATA_OBJECT_LIMIT, METADATA_STRING_LIMIT,
    METADATA_TOTAL_LIMIT, RECLAIM_MIN_INLINE_CHARS, THUMBNAIL_DATA_MAX_CHARS,
    THUMBNAIL_DATA_MIN_CHARS,
)
from ..models.media_record import MediaRecord, ThumbnailPosition
from ..utils.time import now_iso
from .init import apply_schema

logger = logging.getLogger(__name__)

# Updatable record fields -> column. thumbnail_position and metadata are
# special-cased below; id and date_added are immutable.
UPDATABLE_COLUMNS = {
    "title": "title",
    "prompt": "prompt",
    "model": "model",
    "tags": "tags",
    "notes": "notes",
    "media_type": "media_type",
    "image_data": "image_data",
    "thumbnail_data": "thumbnail_data",
    "server_path": "server_path",
    "phash": "phash",
}
SEARCH_COLUMNS = ("title", "prompt", "tags", "model", "notes")
# What a user may edit; payload, path, hash and type belong to ingest and reclaim.
USER_EDITABLE_FIELDS = frozenset(["title", "prompt", "model", "tags", "notes", "thumbnail_position"])


def check_user_fields(fields: Dict[str, Any]) -> None:
    """Raise ValueError if ``fields`` names anything a user may not edit."""
    rejected = sorted(set(fields) - USER_EDITABLE_FIELDS)
    if rejected:
        raise ValueError(f"Field cannot be updated: {', '.join(rejected)}")


def estimate_data_size(data_url: Optional[str]) -> int:
    """Approximate decoded size in bytes of a (data URL or bare) base64 string."""
    if not data_url or not isinstance(data_url, str):
        return 0
    payload = data_url.split(",", 1)[1] if "," in data_url else data_url
    return round(len(payload) * 3 / 4)


def _truncate(value: Any, limit: int) -> str:
    return str(value or "")[:limit]


def validate_thumbnail_data(thumbnail_data: Optional[str]) -> str:
    """Return the thumbnail data URL if it looks sane, otherwise ''."""
    if not thumbnail_data or not isinstance(thumbnail_data, str):
        return ""
    if not thumbnail_data.startswith("data:"):
        logger.warning("Thumbnail data is not a data URL, clearing")
        return ""
    head, sep, payload = thumbnail_data.partition(",")
    if not sep:
        logger.warning("Invalid thumbnail data URL format, clearing")
        return ""
    if len(payload) < THUMBNAIL_DATA_MIN_CHARS:
        logger.warning("Thumbnail data URL appears truncated, clearing")
        return ""
    if len(thumbnail_data) > THUMBNAIL_DATA_MAX_CHARS:
        logger.warning("Thumbnail data is very large (%d chars), clearing", len(thumbnail_data))
        return ""
    return thumbnail_data


def cap_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    """Serialize metadata to JSON with per-field and total size caps."""
    if not isinstance(metadata, dict):
        return None

    safe: Dict[str, Any] = {}
    for key, value in metadata.items():
        if isinstance(value, str):
            if len(value) > METADATA_STRING_LIMIT:
                logger.warning("Truncated large metadata field: %s (%d -> %d chars)",
                               key, len(value), METADATA_STRING_LIMIT)
                value = value[:METADATA_STRING_LIMIT] + "... (truncated)"
            safe[str(key)] = value
        elif value is None or isinstance(value, (bool, int, float)):
            safe[str(key)] = value
        else:
            text = json.dumps(value, ensure_ascii=False, default=str)
            if len(text) > METADATA_OBJECT_LIMIT:
                logger.warning("Truncated large metadata object field: %s", key)
                text = text[:METADATA_OBJECT_LIMIT] + "... (truncated)"
            safe[str(key)] = text

    encoded = json.dumps(safe, ensure_ascii=False)
    if len(encoded) > METADATA_TOTAL_LIMIT:
        logger.warning("Metadata JSON is very large (%d chars), storing a minimal version", len(encoded))
        encoded = json.dumps({
            "originalSize": len(metadata),
            "truncated": True,
            "error": "Metadata too large for database storage",
        })
    return encoded


class DatabaseManager:
    """SQLite metadata store for gallery records.

    One connection per manager, shared across threads behind a lock so the
    async coordinators can hand calls to worker threads.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._lock = threading.RLock()
        self.conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        # Pragmas for performance & integrity
        self.conn.execute("PRAGMA journal_mode=WAL;")
        self.conn.execute("PRAGMA synchronous=NORMAL;")
        apply_schema(self.conn)

    def close(self) -> None:
        try:
            self.conn.close()
        except sqlite3.Error:
            pass

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_record(row: Optional[sqlite3.Row]) -> Optional[MediaRecord]:
        if row is None:
            return None
        metadata: Dict[str, Any] = {}
        if row["metadata_json"]:
            try:
                metadata = json.loads(row["metadata_json"])
            except ValueError:
                logger.warning("Failed to parse metadata for item %s", row["id"])
        return MediaRecord(
            id=row["id"],
            title=row["title"] or "",
            prompt=row["prompt"] or "",
            model=row["model"] or "",
            tags=row["tags"] or "",
            notes=row["notes"] or "",
            date_added=row["date_added"],
            media_type=row["media_type"] or "image",
            image_data=row["image_data"] or "",
            thumbnail_data=row["thumbnail_data"] or "",
            server_path=row["server_path"],
            thumbnail_position=ThumbnailPosition.from_value(
                {"x": row["thumbnail_position_x"], "y": row["thumbnail_position_y"]}
            ),
            metadata=metadata if isinstance(metadata, dict) else {},
            file_size=row["file_size"] or 0,
            phash=row["phash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _query(self, sql: str, params: Tuple = ()) -> List[MediaRecord]:
        with self._lock:
            rows = self.conn.execute(sql, params).fetchall()
        return [self._row_to_record(r) for r in rows]

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def insert(self, record: MediaRecord) -> int:
        """Insert ``record`` and return its new id. Any ``record.id`` is ignored."""
        position = record.thumbnail_position.clamped()
        file_size = record.file_size or estimate_data_size(record.image_data)
        params = (
            _truncate(record.title, FIELD_LIMITS["title"]),
            _truncate(record.prompt, FIELD_LIMITS["prompt"]),
            _truncate(record.model, FIELD_LIMITS["model"]),
            _truncate(record.tags, FIELD_LIMITS["tags"]),
            _truncate(record.notes, FIELD_LIMITS["notes"]),
            record.date_added or now_iso(),
            record.media_type or "image",
            record.image_data or "",
            validate_thumbnail_data(record.thumbnail_data),
            position.x,
            position.y,
            cap_metadata(record.metadata),
            record.server_path or None,
            max(0, int(file_size)),
            record.phash,
        )
        with self._lock:
            try:
                cursor = self.conn.execute("""
                    INSERT INTO media (
                        title, prompt, model, tags, notes, date_added, media_type,
                        image_data, thumbnail_data, thumbnail_position_x, thumbnail_position_y,
                        metadata_json, server_path, file_size, phash
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """, params)
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise
        logger.debug("Added media item with ID: %d", cursor.lastrowid)
        return cursor.lastrowid

    def update(self, record_id: int, fields: Dict[str, Any]) -> int:
        """Apply a partial update. Returns the number of rows changed.

        Raises:
            ValueError: for unknown or immutable field names.
        """
        set_parts: List[str] = []
        values: List[Any] = []
        for key, value in fields.items():
            if key == "thumbnail_position":
                position = ThumbnailPosition.from_value(value)
                set_parts += ["thumbnail_position_x = ?", "thumbnail_position_y = ?"]
                values += [position.x, position.y]
            elif key == "metadata":
                set_parts.append("metadata_json = ?")
                values.append(cap_metadata(value))
            elif key in UPDATABLE_COLUMNS:
                column = UPDATABLE_COLUMNS[key]
                if key in FIELD_LIMITS:
                    value = _truncate(value, FIELD_LIMITS[key])
                elif key == "thumbnail_data":
                    value = validate_thumbnail_data(value)
                elif key == "server_path":
                    value = value or None
                set_parts.append(f"{column} = ?")
                values.append(value)
                # clearing the inline copy (reclaim) keeps the recorded size
                if key == "image_data" and value:
                    set_parts.append("file_size = ?")
                    values.append(estimate_data_size(value))
            else:
                raise ValueError(f"Field cannot be updated: {key!r}")

        if not set_parts:
            return 0

        values.append(record_id)
        with self._lock:
            try:
                cursor = self.conn.execute(
                    f"UPDATE media SET {', '.join(set_parts)} WHERE id = ?", values
                )
                self.conn.commit()
            except sqlite3.Error:
                self.conn.rollback()
                raise
        logger.debug("Updated media item ID: %s (%d changes)", record_id, cursor.rowcount)
        return cursor.rowcount

    def delete(self, record_id: int) -> int:
        with self._lock:
            cursor = self.conn.execute("DELETE FROM media WHERE id = ?", (record_id,))
            self.conn.commit()
        logger.debug("Deleted media item ID: %s (%d changes)", record_id, cursor.rowcount)
        return cursor.rowcount

    def get_by_id(self, record_id: int) -> Optional[MediaRecord]:
        with self._lock:
            row = self.conn.execute("SELECT * FROM media WHERE id = ?", (record_id,)).fetchone()
        return self._row_to_record(row)

    def list_all(self) -> List[MediaRecord]:
        """All records, newest ``date_added`` first (ties: newest id first)."""
        return self._query("SELECT * FROM media ORDER BY date_added DESC, id DESC")

    def search(self, term: Optional[str]) -> List[MediaRecord]:
        """Case-insensitive substring match over the descriptive fields."""
        if not term or not term.strip():
            return self.list_all()
        needle = term.lower()
        where = " OR ".join(f"instr(lower(coalesce({c}, '')), ?) > 0" for c in SEARCH_COLUMNS)
        results = self._query(
            f"SELECT * FROM media WHERE {where} ORDER BY date_added DESC, id DESC",
            (needle,) * len(SEARCH_COLUMNS),
        )
        logger.debug("Search for %r returned %d results", term, len(results))
        return results

    def phash_index(self) -> List[Tuple[int, str]]:
        """(id, phash) for every record with a perceptual hash."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT id, phash FROM media WHERE phash IS NOT NULL AND phash != ''"
            ).fetchall()
        return [(r["id"], r["phash"]) for r in rows]

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def stats(self) -> Dict[str, int]:
        with self._lock:
            row = self.conn.execute("""
                SELECT
                    COUNT(*) AS total,
                    SUM(CASE WHEN media_type = 'image' THEN 1 ELSE 0 END) AS images,
                    SUM(CASE WHEN media_type = 'video' THEN 1 ELSE 0 END) AS videos,
                    SUM(file_size) AS total_size
                FROM media
            """).fetchone()
        total_size = int(row["total_size"] or 0)
        return {
            "total": int(row["total"] or 0),
            "images": int(row["images"] or 0),
            "videos": int(row["videos"] or 0),
            "totalSizeBytes": total_size,
            "totalSizeMB": round(total_size / (1024 * 1024)),
        }

    def storage_stats(self) -> Dict[str, Any]:
        """How much inline payload the table holds, and how much of it is redundant."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT server_path, length(image_data) AS inline_len FROM media"
            ).fetchall()
        with_server_path = with_large_data = 0
        total_data = redundant = 0
        for row in rows:
            has_blob = bool(row["server_path"] and row["server_path"].strip())
            inline_len = row["inline_len"] or 0
            if has_blob:
                with_server_path += 1
            if inline_len > RECLAIM_MIN_INLINE_CHARS:
                total_data += inline_len
                if has_blob:
                    redundant += inline_len
                    with_large_data += 1
        return {
            "totalItems": len(rows),
            "itemsWithServerPath": with_server_path,
            "itemsWithLargeData": with_large_data,
            "totalDataSizeBytes": total_data,
            "redundantDataSizeBytes": redundant,
            "canCleanup": with_large_data > 0,
        }

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_all(self) -> Dict[str, Any]:
        records = self.list_all()
        return {
            "version": EXPORT_VERSION,
            "exportDate": now_iso(),
            "totalItems": len(records),
            "images": [r.to_dict() for r in records],
        }

    def import_data(self, export: Dict[str, Any],
                    on_item: Optional[Callable[[bool], None]] = None) -> Dict[str, int]:
        """Re-insert every exported item with a fresh id.

        Items are processed one at a time; a failing item is counted and
        skipped. ``on_item`` is called after each item with its outcome.

        Raises:
            ValueError: if ``export`` is not an export document.
        """
        items = export.get("images") if isinstance(export, dict) else None
        if not isinstance(items, list):
            raise ValueError("Invalid export data format")

        logger.info("Starting import of %d items...", len(items))
        imported = errors = 0
        for index, item in enumerate(items):
            ok = False
            try:
                if not isinstance(item, dict):
                    raise ValueError(f"item is a {type(item).__name__}, not an object")
                data = dict(item)
                data.pop("id", None)
                self.insert(MediaRecord.from_dict(data))
                imported += 1
                ok = True
                if imported % 10 == 0:
                    logger.info("Import progress: %d/%d", imported, len(items))
            except (ValueError, TypeError, sqlite3.Error) as e:
                logger.warning("Failed to import item %d: %s", index, e)
                errors += 1
            if on_item is not None:
                on_item(ok)

        logger.info("Import completed: %d items imported, %d errors", imported, errors)
        return {"imported": imported, "errors": errors}
