"""Layer 2: typed, versioned facts, either drafts or validated."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from azmem.database import DatabaseError, connect
from azmem.session import ReadFilter

_COLUMNS = (
    "id, version, fact_type, payload, block_id, sensitivity, created_at, validated_at"
)


@dataclass(frozen=True)
class Fact:
    """One version of a fact; a draft while ``validated_at`` is ``None``."""

    id: str
    version: int
    fact_type: str
    payload: str
    block_id: str | None
    sensitivity: bool
    created_at: str
    validated_at: str | None = None

    @property
    def is_draft(self) -> bool:
        """Whether this version still awaits validation."""
        return self.validated_at is None


@contextmanager
def _db_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _fact_from_row(row: tuple) -> Fact:
    fact_id, version, fact_type, payload, block_id, sensitivity, created_at, validated_at = row
    return Fact(
        id=fact_id,
        version=int(version),
        fact_type=fact_type,
        payload=payload,
        block_id=block_id,
        sensitivity=bool(sensitivity),
        created_at=created_at,
        validated_at=validated_at,
    )


def _sensitivity_clause(read_filter: ReadFilter, joiner: str) -> str:
    if read_filter is ReadFilter.EXCLUDE_SENSITIVE:
        return f" {joiner} sensitivity = 0"
    return ""


class L2Store:
    """Store of versioned facts and the transcripts they come from."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._conn = connect(path)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._path

    def __enter__(self) -> L2Store:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def _select(self, sql: str, params: tuple = ()) -> list[Fact]:
        with _db_errors():
            rows = self._conn.execute(sql, params).fetchall()
        return [_fact_from_row(row) for row in rows]

    def insert(self, fact: Fact, sources: Iterable[str] = ()) -> None:
        """Write a fact and its source transcript ids in one transaction."""
        with _db_errors(), self._conn:
            self._conn.execute(
                f"INSERT INTO l2_facts ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    fact.id,
                    fact.version,
                    fact.fact_type,
                    fact.payload,
                    fact.block_id,
                    int(fact.sensitivity),
                    fact.created_at,
                    fact.validated_at,
                ),
            )
            self._conn.executemany(
                "INSERT INTO l2_fact_sources (fact_id, version, transcript_id) "
                "VALUES (?, ?, ?)",
                ((fact.id, fact.version, transcript_id) for transcript_id in sources),
            )

    def validate(self, fact_id: str, version: int, now: str) -> None:
        """Mark a draft as validated at ``now``."""
        with _db_errors(), self._conn:
            self._conn.execute(
                "UPDATE l2_facts SET validated_at = ? WHERE id = ? AND version = ?",
                (now, fact_id, version),
            )

    def update_payload_and_validate(
        self, fact_id: str, version: int, new_payload: str, now: str
    ) -> None:
        """Replace a draft's payload and validate it, keeping its sources."""
        with _db_errors(), self._conn:
            self._conn.execute(
                "UPDATE l2_facts SET payload = ?, validated_at = ? "
                "WHERE id = ? AND version = ?",
                (new_payload, now, fact_id, version),
            )

    def delete(self, fact_id: str, version: int) -> None:
        """Remove one version of a fact; its sources go with it."""
        with _db_errors(), self._conn:
            self._conn.execute(
                "DELETE FROM l2_facts WHERE id = ? AND version = ?",
                (fact_id, version),
            )

    def list_drafts(self) -> list[Fact]:
        """Every unvalidated fact version, oldest first."""
        return self._select(
            f"SELECT {_COLUMNS} FROM l2_facts "
            "WHERE validated_at IS NULL ORDER BY created_at ASC"
        )

    def list_current(self, read_filter: ReadFilter = ReadFilter.ALL) -> list[Fact]:
        """The latest version of every fact, validated or not."""
        sql = f"SELECT {_COLUMNS} FROM l2_facts_current"
        sql += _sensitivity_clause(read_filter, "WHERE")
        sql += " ORDER BY fact_type, created_at"
        return self._select(sql)

    def list_validated_current(
        self, read_filter: ReadFilter = ReadFilter.ALL
    ) -> list[Fact]:
        """The latest version of every fact, kept only when validated."""
        return [fact for fact in self.list_current(read_filter) if not fact.is_draft]

    def list_by_type(
        self, fact_type: str, read_filter: ReadFilter = ReadFilter.ALL
    ) -> list[Fact]:
        """The latest version of every fact of one type."""
        sql = f"SELECT {_COLUMNS} FROM l2_facts_current WHERE fact_type = ?"
        sql += _sensitivity_clause(read_filter, "AND")
        sql += " ORDER BY created_at"
        return self._select(sql, (fact_type,))

    def get_versions(self, fact_id: str) -> list[Fact]:
        """Every version of one fact, in version order."""
        return self._select(
            f"SELECT {_COLUMNS} FROM l2_facts WHERE id = ? ORDER BY version ASC",
            (fact_id,),
        )

    def fact_sources(self, fact_id: str, version: int) -> list[str]:
        """Transcript ids behind one version of a fact."""
        with _db_errors():
            rows = self._conn.execute(
                "SELECT transcript_id FROM l2_fact_sources "
                "WHERE fact_id = ? AND version = ?",
                (fact_id, version),
            ).fetchall()
        return [transcript_id for (transcript_id,) in rows]

    def next_version(self, fact_id: str) -> int:
        """The version number that the next revision of ``fact_id`` should use."""
        try:
            row = self._conn.execute(
                "SELECT MAX(version) FROM l2_facts WHERE id = ?", (fact_id,)
            ).fetchone()
        except sqlite3.Error:
            row = None
        if row is None or row[0] is None:
            return 1
        return int(row[0]) + 1

    def all_facts(self) -> list[Fact]:
        """Every version of every fact, drafts included."""
        return self._select(
            f"SELECT {_COLUMNS} FROM l2_facts ORDER BY created_at ASC, id, version"
        )