"""Layer 0: raw transcripts with full-text search."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from azmem.database import DatabaseError, connect
from azmem.session import ReadFilter

_COLUMNS = "id, timestamp, content, source, session_id, sensitivity"


@dataclass(frozen=True)
class L0Entry:
    """One raw transcript as it was captured."""

    id: str
    timestamp: str
    content: str
    source: str
    session_id: str
    sensitivity: bool


@contextmanager
def _db_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _entry_from_row(row: tuple) -> L0Entry:
    entry_id, timestamp, content, source, session_id, sensitivity = row
    return L0Entry(
        id=entry_id,
        timestamp=timestamp,
        content=content,
        source=source,
        session_id=session_id,
        sensitivity=bool(sensitivity),
    )


class L0Store:
    """Append-only store of transcripts."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._conn = connect(path)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._path

    def __enter__(self) -> L0Store:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def append(self, entry: L0Entry) -> None:
        """Store a new transcript; raise :class:`DatabaseError` on conflict."""
        with _db_errors(), self._conn:
            self._conn.execute(
                f"INSERT INTO transcripts ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    entry.id,
                    entry.timestamp,
                    entry.content,
                    entry.source,
                    entry.session_id,
                    int(entry.sensitivity),
                ),
            )

    def search(self, query: str, limit: int) -> list[L0Entry]:
        """Full-text search over transcript contents, best matches first."""
        with _db_errors():
            rows = self._conn.execute(
                "SELECT t.id, t.timestamp, t.content, t.source, t.session_id, t.sensitivity "
                "FROM transcripts t "
                "JOIN transcripts_fts f ON f.rowid = t.rowid "
                "WHERE transcripts_fts MATCH ? "
                "ORDER BY rank "
                "LIMIT ?",
                (query, limit),
            ).fetchall()
        return [_entry_from_row(row) for row in rows]

    def list_session(
        self, session_id: str, read_filter: ReadFilter = ReadFilter.ALL
    ) -> list[L0Entry]:
        """Transcripts of one session in chronological order."""
        sql = f"SELECT {_COLUMNS} FROM transcripts WHERE session_id = ?"
        if read_filter is ReadFilter.EXCLUDE_SENSITIVE:
            sql += " AND sensitivity = 0"
        sql += " ORDER BY timestamp ASC"
        with _db_errors():
            rows = self._conn.execute(sql, (session_id,)).fetchall()
        return [_entry_from_row(row) for row in rows]

    def all_entries(self) -> list[L0Entry]:
        """Every transcript of every session, unfiltered, oldest first."""
        with _db_errors():
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM transcripts ORDER BY timestamp ASC"
            ).fetchall()
        return [_entry_from_row(row) for row in rows]

    def all_with_content(self) -> list[tuple[str, str]]:
        """``(id, content)`` pairs for every transcript, oldest first."""
        with _db_errors():
            rows = self._conn.execute(
                "SELECT id, content FROM transcripts ORDER BY timestamp ASC"
            ).fetchall()
        return [(entry_id, content) for entry_id, content in rows]

    def count(self) -> int:
        """Number of stored transcripts."""
        with _db_errors():
            (total,) = self._conn.execute("SELECT COUNT(*) FROM transcripts").fetchone()
        return int(total)