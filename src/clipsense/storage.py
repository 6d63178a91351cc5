import json
import logging
import sqlite3
import threading
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from clipsense.config import DATABASE_VERSION, DB_PATH, DEFAULT_SETTINGS, HISTORY_LIMIT, SEARCH_PAGE_SIZE
from clipsense.models import ClipEntry, ContentType, DetectedType, SearchFilters, Template

logger = logging.getLogger(__name__)


SCHEMA = """
CREATE TABLE IF NOT EXISTS clips (
    id             TEXT PRIMARY KEY,
    content        TEXT NOT NULL,
    content_type   TEXT NOT NULL,
    detected_types TEXT,
    metadata       TEXT,
    created_at     TEXT NOT NULL,
    updated_at     TEXT NOT NULL,
    is_favorite    INTEGER NOT NULL DEFAULT 0,
    is_deleted     INTEGER NOT NULL DEFAULT 0,
    tags           TEXT
);

CREATE INDEX IF NOT EXISTS idx_clips_created_at ON clips(created_at DESC);
CREATE INDEX IF NOT EXISTS idx_clips_content_type ON clips(content_type);
CREATE INDEX IF NOT EXISTS idx_clips_is_favorite ON clips(is_favorite);
CREATE INDEX IF NOT EXISTS idx_clips_is_deleted ON clips(is_deleted);

CREATE TABLE IF NOT EXISTS settings (
    key        TEXT PRIMARY KEY,
    value      TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS templates (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL,
    template   TEXT NOT NULL,
    variables  TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);
"""


def _contains_ci(haystack: str | None, needle: str | None) -> int:
    if haystack is None or needle is None:
        return 0
    return int(needle.casefold() in haystack.casefold())


class StorageManager:
    """SQLite-backed ledger of clips plus settings and templates.

    Every public method runs inside its own transaction under a lock, so the
    watcher thread and the UI never observe a half-written row.
    """

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = str(db_path) if db_path else str(DB_PATH)
        self._lock = threading.RLock()
        self._last_timestamp: datetime | None = None
        self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.create_function("contains_ci", 2, _contains_ci, deterministic=True)
        self.init_db()

    def init_db(self) -> None:
        with self._transaction() as conn:
            conn.executescript(SCHEMA)
        with self._transaction() as conn:
            self._migrate_schema(conn)
            self._init_default_settings(conn)

    def _migrate_schema(self, conn: sqlite3.Connection) -> None:
        current = self._read_version(conn)
        if current >= DATABASE_VERSION:
            return
        logger.info("Migrating database from version %d to %d", current, DATABASE_VERSION)
        if current == 0:
            conn.execute("INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (DATABASE_VERSION,))

    @staticmethod
    def _read_version(conn: sqlite3.Connection) -> int:
        row = conn.execute("SELECT MAX(version) AS version FROM schema_version").fetchone()
        return row["version"] or 0

    def _init_default_settings(self, conn: sqlite3.Connection) -> None:
        row = conn.execute("SELECT COUNT(*) AS cnt FROM settings").fetchone()
        if row["cnt"]:
            return
        now = _isoformat(self._now())
        conn.executemany(
            "INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
            [(key, json.dumps(value), now) for key, value in DEFAULT_SETTINGS.items()],
        )

    def schema_version(self) -> int:
        with self._lock:
            return self._read_version(self._conn)

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            with self._conn:
                yield self._conn

    def _now(self) -> datetime:
        # Strictly increasing, so updated_at never lags created_at and
        # inserts in the same microsecond keep their order.
        with self._lock:
            now = datetime.now()
            if self._last_timestamp is not None and now <= self._last_timestamp:
                now = self._last_timestamp + timedelta(microseconds=1)
            self._last_timestamp = now
            return now

    # -- clips -----------------------------------------------------------

    def add_entry(self, entry: ClipEntry) -> str:
        if not entry.content:
            raise ValueError("clip content must not be empty")
        entry_id = str(uuid.uuid4())
        now = self._now()
        with self._transaction() as conn:
            conn.execute(
                """INSERT INTO clips
                   (id, content, content_type, detected_types, metadata, created_at, updated_at, is_favorite, is_deleted, tags)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    entry_id,
                    entry.content,
                    entry.content_type.value,
                    json.dumps([d.to_dict() for d in entry.detected_types]),
                    json.dumps(entry.metadata),
                    _isoformat(now),
                    _isoformat(now),
                    int(entry.is_favorite),
                    int(entry.is_deleted),
                    json.dumps(_unique(entry.tags)),
                ),
            )
        entry.id = entry_id
        entry.created_at = entry.updated_at = now
        return entry_id

    def get_recent(self, limit: int = HISTORY_LIMIT) -> list[ClipEntry]:
        if limit < 0:
            raise ValueError("limit must not be negative")
        with self._lock:
            rows = self._conn.execute(
                "SELECT * FROM clips WHERE is_deleted = 0 ORDER BY created_at DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_entry(r) for r in rows]

    def get_entry(self, entry_id: str, include_deleted: bool = False) -> ClipEntry | None:
        """Fetch one clip; soft-deleted rows are only visible with ``include_deleted``."""
        query = "SELECT * FROM clips WHERE id = ?"
        if not include_deleted:
            query += " AND is_deleted = 0"
        with self._lock:
            row = self._conn.execute(query, (entry_id,)).fetchone()
        return self._row_to_entry(row) if row else None

    def delete_entry(self, entry_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE clips SET is_deleted = 1, updated_at = ? WHERE id = ? AND is_deleted = 0",
                (_isoformat(self._now()), entry_id),
            )
        return cursor.rowcount > 0

    def delete_all(self) -> int:
        with self._transaction() as conn:
            cursor = conn.execute(
                "UPDATE clips SET is_deleted = 1, updated_at = ? WHERE is_deleted = 0",
                (_isoformat(self._now()),),
            )
        return cursor.rowcount

    def toggle_favorite(self, entry_id: str) -> bool | None:
        """Flip the favorite flag. Returns the new state, or None if not found."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT is_favorite FROM clips WHERE id = ? AND is_deleted = 0", (entry_id,)
            ).fetchone()
            if row is None:
                return None
            new_favorite = not row["is_favorite"]
            conn.execute(
                "UPDATE clips SET is_favorite = ?, updated_at = ? WHERE id = ?",
                (int(new_favorite), _isoformat(self._now()), entry_id),
            )
        return new_favorite

    def add_tags(self, entry_id: str, tags: list[str]) -> bool:
        return self._update_tags(entry_id, lambda existing: _unique(existing + list(tags)))

    def remove_tags(self, entry_id: str, tags: list[str]) -> bool:
        removed = set(tags)
        return self._update_tags(entry_id, lambda existing: [t for t in existing if t not in removed])

    def _update_tags(self, entry_id: str, change) -> bool:
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT tags FROM clips WHERE id = ? AND is_deleted = 0", (entry_id,)
            ).fetchone()
            if row is None:
                return False
            existing = _decode_json(row["tags"], [], "tags", entry_id)
            conn.execute(
                "UPDATE clips SET tags = ?, updated_at = ? WHERE id = ?",
                (json.dumps(change(existing)), _isoformat(self._now()), entry_id),
            )
        return True

    def search(self, query: str = "", filters: SearchFilters | None = None, limit: int = SEARCH_PAGE_SIZE) -> list[ClipEntry]:
        filters = filters or SearchFilters()
        sql = "SELECT * FROM clips WHERE is_deleted = 0"
        params: list[Any] = []

        if query:
            sql += " AND contains_ci(content, ?)"
            params.append(query)

        if filters.content_types:
            placeholders = ", ".join("?" for _ in filters.content_types)
            sql += f" AND content_type IN ({placeholders})"
            params.extend(getattr(ct, "value", ct) for ct in filters.content_types)

        if filters.is_favorite is not None:
            sql += " AND is_favorite = ?"
            params.append(int(filters.is_favorite))

        if filters.date_range is not None:
            sql += " AND created_at BETWEEN ? AND ?"
            start, end = filters.date_range.start, filters.date_range.end
            params.extend([_isoformat(_as_local(start)), _isoformat(_as_local(end))])

        sql += " ORDER BY created_at DESC, rowid DESC"

        # Tag and detected-type filters look inside JSON columns, so they
        # run on decoded rows where a corrupt blob just fails to match.
        post_filter = bool(filters.tags or filters.detected_types)
        if not post_filter:
            sql += " LIMIT ?"
            params.append(limit)

        with self._lock:
            rows = self._conn.execute(sql, params).fetchall()

        results: list[ClipEntry] = []
        for row in rows:
            entry = self._row_to_entry(row)
            if filters.tags and not set(filters.tags).intersection(entry.tags):
                continue
            if filters.detected_types and not {d.type for d in entry.detected_types}.intersection(filters.detected_types):
                continue
            results.append(entry)
            if len(results) >= limit:
                break
        return results

    def expire_sensitive(self, ttl: timedelta) -> int:
        """Soft-delete sensitive clips created more than ``ttl`` ago."""
        cutoff = _isoformat(self._now() - ttl)
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT id, metadata FROM clips WHERE is_deleted = 0 AND created_at < ?",
                (cutoff,),
            ).fetchall()
            expired = [
                row["id"] for row in rows
                if _decode_json(row["metadata"], {}, "metadata", row["id"]).get("isSensitive")
            ]
            now = _isoformat(self._now())
            conn.executemany(
                "UPDATE clips SET is_deleted = 1, updated_at = ? WHERE id = ?",
                [(now, entry_id) for entry_id in expired],
            )
        if expired:
            logger.info("Expired %d sensitive clip(s)", len(expired))
        return len(expired)

    def count(self, include_deleted: bool = False) -> int:
        query = "SELECT COUNT(*) AS cnt FROM clips"
        if not include_deleted:
            query += " WHERE is_deleted = 0"
        with self._lock:
            row = self._conn.execute(query).fetchone()
        return row["cnt"]

    # -- settings --------------------------------------------------------

    def get_settings(self) -> dict[str, Any]:
        with self._lock:
            rows = self._conn.execute("SELECT key, value FROM settings").fetchall()
        settings = dict(DEFAULT_SETTINGS)
        for row in rows:
            try:
                settings[row["key"]] = json.loads(row["value"])
            except ValueError:
                logger.warning("Ignoring corrupt value for setting %r", row["key"])
        return settings

    def update_settings(self, partial: dict[str, Any]) -> None:
        now = _isoformat(self._now())
        with self._transaction() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO settings (key, value, updated_at) VALUES (?, ?, ?)",
                [(key, json.dumps(value), now) for key, value in partial.items()],
            )

    # -- templates -------------------------------------------------------

    def get_templates(self) -> list[Template]:
        with self._lock:
            rows = self._conn.execute("SELECT * FROM templates ORDER BY created_at DESC, rowid DESC").fetchall()
        return [self._row_to_template(r) for r in rows]

    def get_template(self, template_id: str) -> Template | None:
        with self._lock:
            row = self._conn.execute("SELECT * FROM templates WHERE id = ?", (template_id,)).fetchone()
        return self._row_to_template(row) if row else None

    def create_template(self, name: str, template: str, variables: list[str] | None = None) -> Template:
        if not name or not template:
            raise ValueError("template name and body are required")
        created = Template(
            id=str(uuid.uuid4()),
            name=name,
            template=template,
            variables=list(variables or []),
            created_at=self._now(),
        )
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO templates (id, name, template, variables, created_at) VALUES (?, ?, ?, ?, ?)",
                (created.id, created.name, created.template, json.dumps(created.variables), _isoformat(created.created_at)),
            )
        return created

    def update_template(
        self,
        template_id: str,
        name: str | None = None,
        template: str | None = None,
        variables: list[str] | None = None,
    ) -> bool:
        updates: list[str] = []
        params: list[Any] = []
        if name:
            updates.append("name = ?")
            params.append(name)
        if template:
            updates.append("template = ?")
            params.append(template)
        if variables is not None:
            updates.append("variables = ?")
            params.append(json.dumps(list(variables)))
        if not updates:
            return False

        params.append(template_id)
        with self._transaction() as conn:
            cursor = conn.execute(f"UPDATE templates SET {', '.join(updates)} WHERE id = ?", params)
        return cursor.rowcount > 0

    def delete_template(self, template_id: str) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute("DELETE FROM templates WHERE id = ?", (template_id,))
        return cursor.rowcount > 0

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _row_to_entry(self, row: sqlite3.Row) -> ClipEntry:
        entry_id = row["id"]
        detected_types: list[DetectedType] = []
        for item in _decode_json(row["detected_types"], [], "detected_types", entry_id):
            try:
                detected_types.append(DetectedType.from_dict(item))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed detected type on clip %s", entry_id)

        tags = _decode_json(row["tags"], [], "tags", entry_id)
        return ClipEntry(
            id=entry_id,
            content=row["content"],
            content_type=ContentType(row["content_type"]),
            detected_types=detected_types,
            metadata=_decode_json(row["metadata"], {}, "metadata", entry_id),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
            is_favorite=bool(row["is_favorite"]),
            is_deleted=bool(row["is_deleted"]),
            tags=[str(t) for t in tags],
        )

    @staticmethod
    def _row_to_template(row: sqlite3.Row) -> Template:
        return Template(
            id=row["id"],
            name=row["name"],
            template=row["template"],
            variables=_decode_json(row["variables"], [], "variables", row["id"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )


def _isoformat(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _as_local(value: datetime) -> datetime:
    # Stored timestamps are naive local time.
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _decode_json(raw: str | None, default, column: str, row_id: str):
    """Decode a JSON column, falling back to ``default`` on corruption."""
    if raw is None:
        return default
    try:
        value = json.loads(raw)
    except ValueError:
        logger.warning("Corrupt %s on row %s, using empty default", column, row_id)
        return default
    if not isinstance(value, type(default)):
        logger.warning("Unexpected %s shape on row %s, using empty default", column, row_id)
        return default
    return value
