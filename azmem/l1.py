"""Layer 1: thematic segmentations of a session's transcripts."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from azmem.database import DatabaseError, connect
from azmem.session import ReadFilter

_SEG_COLUMNS = "id, created_at, session_id, model, prompt_version, notes"
_BLOCK_COLUMNS = "id, segmentation_id, seq, topic, content, sensitivity"


@dataclass(frozen=True)
class Segmentation:
    """One segmentation run over a session."""

    id: str
    created_at: str
    session_id: str
    model: str
    prompt_version: str
    notes: str | None = None


@dataclass(frozen=True)
class Block:
    """A thematic block produced by a segmentation."""

    id: str
    segmentation_id: str
    seq: int
    topic: str | None
    content: str
    sensitivity: bool


@contextmanager
def _db_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _segmentation_from_row(row: tuple) -> Segmentation:
    seg_id, created_at, session_id, model, prompt_version, notes = row
    return Segmentation(
        id=seg_id,
        created_at=created_at,
        session_id=session_id,
        model=model,
        prompt_version=prompt_version,
        notes=notes,
    )


def _block_from_row(row: tuple) -> Block:
    block_id, segmentation_id, seq, topic, content, sensitivity = row
    return Block(
        id=block_id,
        segmentation_id=segmentation_id,
        seq=int(seq),
        topic=topic,
        content=content,
        sensitivity=bool(sensitivity),
    )


class L1Store:
    """Store of segmentations, their blocks and the transcripts behind them."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._conn = connect(path)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._path

    def __enter__(self) -> L1Store:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def record(
        self,
        segmentation: Segmentation,
        blocks: Iterable[Block],
        block_sources: Iterable[tuple[str, str]],
    ) -> None:
        """Write a segmentation, its blocks and ``(block_id, transcript_id)`` links atomically."""
        with _db_errors(), self._conn:
            self._conn.execute(
                f"INSERT INTO l1_segmentations ({_SEG_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    segmentation.id,
                    segmentation.created_at,
                    segmentation.session_id,
                    segmentation.model,
                    segmentation.prompt_version,
                    segmentation.notes,
                ),
            )
            self._conn.executemany(
                f"INSERT INTO l1_blocks ({_BLOCK_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    (b.id, b.segmentation_id, b.seq, b.topic, b.content, int(b.sensitivity))
                    for b in blocks
                ),
            )
            self._conn.executemany(
                "INSERT INTO l1_block_sources (block_id, transcript_id) VALUES (?, ?)",
                block_sources,
            )

    def list_segmentations(self, session_id: str) -> list[Segmentation]:
        """Segmentations of one session, newest first."""
        with _db_errors():
            rows = self._conn.execute(
                f"SELECT {_SEG_COLUMNS} FROM l1_segmentations "
                "WHERE session_id = ? ORDER BY created_at DESC",
                (session_id,),
            ).fetchall()
        return [_segmentation_from_row(row) for row in rows]

    def blocks(
        self, segmentation_id: str, read_filter: ReadFilter = ReadFilter.ALL
    ) -> list[Block]:
        """Blocks of one segmentation in sequence order."""
        sql = f"SELECT {_BLOCK_COLUMNS} FROM l1_blocks WHERE segmentation_id = ?"
        if read_filter is ReadFilter.EXCLUDE_SENSITIVE:
            sql += " AND sensitivity = 0"
        sql += " ORDER BY seq ASC"
        with _db_errors():
            rows = self._conn.execute(sql, (segmentation_id,)).fetchall()
        return [_block_from_row(row) for row in rows]

    def all_segmentations(self) -> list[Segmentation]:
        """Every segmentation of every session, oldest first."""
        with _db_errors():
            rows = self._conn.execute(
                f"SELECT {_SEG_COLUMNS} FROM l1_segmentations ORDER BY created_at ASC"
            ).fetchall()
        return [_segmentation_from_row(row) for row in rows]

    def all_blocks_with_content(self) -> list[tuple[str, str]]:
        """``(id, content)`` pairs for every block, unfiltered."""
        with _db_errors():
            rows = self._conn.execute(
                "SELECT id, content FROM l1_blocks ORDER BY segmentation_id, seq"
            ).fetchall()
        return [(block_id, content) for block_id, content in rows]

    def block_sources(self, block_id: str) -> list[str]:
        """Transcript ids that a block was built from."""
        with _db_errors():
            rows = self._conn.execute(
                "SELECT transcript_id FROM l1_block_sources WHERE block_id = ?",
                (block_id,),
            ).fetchall()
        return [transcript_id for (transcript_id,) in rows]