from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from pathlib import Path
from threading import Lock
from typing import Any, Optional

from .core.matching import Record

BOOK_COLUMNS = (
    ("author", "TEXT"),
    ("created_at", "TEXT"),
    ("is_duplicate", "INTEGER NOT NULL DEFAULT 0"),
    ("duplicate_of", "TEXT"),
)


class CatalogStore:
    """SQLite-backed book catalog carrying duplicate flags and a run log."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()
        self._conn = sqlite3.connect(self.path, check_same_thread=False)
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS books (
                id TEXT PRIMARY KEY,
                title TEXT,
                author TEXT,
                created_at TEXT,
                is_duplicate INTEGER NOT NULL DEFAULT 0,
                duplicate_of TEXT
            )
            """
        )
        # Catalogs created elsewhere may have a bare books(id, title) table.
        columns = {row[1] for row in self._conn.execute("PRAGMA table_info(books)")}
        for name, ddl in BOOK_COLUMNS:
            if name not in columns:
                self._conn.execute(f"ALTER TABLE books ADD COLUMN {name} {ddl}")
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS audit_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event TEXT NOT NULL,
                payload TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def upsert_records(self, records: Iterable[Record]) -> int:
        rows = [
            (
                str(record.id),
                record.title,
                record.author,
                None if record.order_key is None else str(record.order_key),
            )
            for record in records
        ]
        with self._lock:
            self._conn.executemany(
                """
                INSERT INTO books(id, title, author, created_at)
                VALUES(?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title=excluded.title,
                    author=excluded.author,
                    created_at=excluded.created_at
                """,
                rows,
            )
            self._conn.commit()
        return len(rows)

    def list_books(self) -> list[dict[str, Any]]:
        """All books, oldest first (books without created_at last)."""
        with self._lock:
            cursor = self._conn.execute(
                """
                SELECT id, title, author, created_at, is_duplicate, duplicate_of
                FROM books
                ORDER BY created_at IS NULL, created_at, rowid
                """
            )
            rows = cursor.fetchall()
        return [
            {
                "id": row[0],
                "title": row[1],
                "author": row[2],
                "created_at": row[3],
                "is_duplicate": bool(row[4]),
                "duplicate_of": row[5],
            }
            for row in rows
        ]

    def count_books(self) -> int:
        with self._lock:
            row = self._conn.execute("SELECT COUNT(*) FROM books").fetchone()
        return int(row[0])

    def mark_duplicate(self, book_id: str, canonical_id: str) -> bool:
        with self._lock:
            cursor = self._conn.execute(
                "UPDATE books SET is_duplicate = 1, duplicate_of = ? WHERE id = ?",
                (str(canonical_id), str(book_id)),
            )
            self._conn.commit()
        return cursor.rowcount > 0

    def apply_duplicate_marks(
        self, marks: Iterable[tuple[str, str]]
    ) -> tuple[int, int, list[str]]:
        """
        Replace every duplicate flag with ``marks`` in one transaction.

        Args:
            marks: (book_id, canonical_id) pairs

        Returns:
            (flags reset, books marked, ids not found in the catalog)

        Nothing is changed when any update fails.
        """
        marked = 0
        missing: list[str] = []
        with self._lock, self._conn:
            reset = self._conn.execute(
                "UPDATE books SET is_duplicate = 0, duplicate_of = NULL WHERE is_duplicate = 1"
            ).rowcount
            for book_id, canonical_id in marks:
                cursor = self._conn.execute(
                    "UPDATE books SET is_duplicate = 1, duplicate_of = ? WHERE id = ?",
                    (str(canonical_id), str(book_id)),
                )
                if cursor.rowcount > 0:
                    marked += 1
                else:
                    missing.append(str(book_id))
        return reset, marked, missing

    def list_duplicates(self) -> list[tuple[str, str]]:
        with self._lock:
            cursor = self._conn.execute(
                "SELECT id, duplicate_of FROM books WHERE is_duplicate = 1 ORDER BY rowid"
            )
            rows = cursor.fetchall()
        return [(row[0], row[1]) for row in rows]

    def append_audit_event(self, event: str, payload: dict[str, Any]) -> int:
        with self._lock:
            cursor = self._conn.execute(
                """
                INSERT INTO audit_events(event, payload, created_at)
                VALUES(?, ?, CURRENT_TIMESTAMP)
                """,
                (event, json.dumps(payload, sort_keys=True, default=str)),
            )
            self._conn.commit()
        return int(cursor.lastrowid)

    def list_audit_events(
        self,
        *,
        limit: int = 50,
        event: Optional[str] = None,
        since_id: Optional[int] = None,
        since: Optional[str] = None,
    ) -> list[dict[str, Any]]:
        limit = max(1, min(int(limit), 1000))
        clauses: list[str] = []
        params: list[Any] = []
        if event:
            clauses.append("event = ?")
            params.append(event)
        if since_id is not None:
            clauses.append("id > ?")
            params.append(since_id)
        if since:
            clauses.append("created_at > ?")
            params.append(since)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._lock:
            cursor = self._conn.execute(
                f"SELECT id, event, payload, created_at FROM audit_events {where} "
                "ORDER BY id DESC LIMIT ?",
                (*params, limit),
            )
            rows = cursor.fetchall()
        events = []
        for row in rows:
            try:
                payload = json.loads(row[2])
            except json.JSONDecodeError:
                payload = {}
            events.append(
                {"id": row[0], "event": row[1], "payload": payload, "created_at": row[3]}
            )
        return events
