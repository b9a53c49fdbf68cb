# core/storage.py
import datetime
import json
import os
import sqlite3
from typing import Dict, Optional, Set

import pytz

from .logger import get_logger
from .models import ReportRow

logger = get_logger(__name__)


def now_utc_iso() -> str:
    return datetime.datetime.now(tz=pytz.UTC).isoformat()


def thumbnail_path(images_dir: str, release_id: int) -> str:
    """Location of a release thumbnail in the image cache."""
    return os.path.join(images_dir, f"{release_id}.jpg")


def has_thumbnail(images_dir: str, release_id: int) -> bool:
    return os.path.exists(thumbnail_path(images_dir, release_id))


class ReleaseCache:
    """
    Release id -> finished ReportRow, persisted in SQLite.

    All rows are read into memory by load(); set() only marks an entry
    dirty and save() writes dirty entries in one transaction. A cached
    row never expires. No locking: one process at a time.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._rows: Dict[int, ReportRow] = {}
        self._dirty: Set[int] = set()

    def _connect(self):
        db_dir = os.path.dirname(self.db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def ensure_db(self):
        with self._connect() as con:
            cur = con.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS releases (
                    release_id INTEGER PRIMARY KEY,
                    row_json TEXT NOT NULL,
                    cached_at TEXT
                )
            """
            )
            con.commit()

    def load(self) -> "ReleaseCache":
        self.ensure_db()
        with self._connect() as con:
            cur = con.cursor()
            cur.execute("SELECT release_id, row_json FROM releases")
            rows = cur.fetchall()

        self._rows.clear()
        self._dirty.clear()
        for release_id, row_json in rows:
            try:
                self._rows[int(release_id)] = ReportRow.from_dict(json.loads(row_json))
            except (ValueError, TypeError) as e:
                logger.warning("Ignoring unreadable cache entry %s: %s", release_id, e)
        logger.info("Loaded %d cached releases from %s", len(self._rows), self.db_path)
        return self

    def get(self, release_id: int) -> Optional[ReportRow]:
        return self._rows.get(int(release_id))

    def set(self, release_id: int, row: ReportRow) -> None:
        self._rows[int(release_id)] = row
        self._dirty.add(int(release_id))

    def __contains__(self, release_id) -> bool:
        return int(release_id) in self._rows

    def __len__(self) -> int:
        return len(self._rows)

    @property
    def dirty_count(self) -> int:
        return len(self._dirty)

    def save(self) -> int:
        """Write dirty entries; returns how many were written."""
        if not self._dirty:
            return 0
        ts = now_utc_iso()
        with self._connect() as con:
            cur = con.cursor()
            for release_id in sorted(self._dirty):
                cur.execute(
                    """
                    INSERT INTO releases (release_id, row_json, cached_at)
                    VALUES (?,?,?)
                    ON CONFLICT(release_id) DO UPDATE SET
                        row_json=excluded.row_json,
                        cached_at=excluded.cached_at
                """,
                    (release_id, json.dumps(self._rows[release_id].to_dict()), ts),
                )
            con.commit()
        written = len(self._dirty)
        self._dirty.clear()
        logger.debug("Saved %d cache entries to %s", written, self.db_path)
        return written

    def clear(self) -> None:
        self.ensure_db()
        with self._connect() as con:
            con.execute("DELETE FROM releases")
            con.commit()
        self._rows.clear()
        self._dirty.clear()
