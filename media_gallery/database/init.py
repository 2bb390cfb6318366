import sqlite3
from pathlib import Path

from .schema import MAIN_SCHEMA


def apply_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(MAIN_SCHEMA)
    conn.commit()


def init_db_if_needed(db_path: Path):
    db_path = Path(db_path)
    if db_path.parent and not db_path.parent.exists():
        db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    try:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
        apply_schema(conn)
    finally:
        conn.close()
