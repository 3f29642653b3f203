"""Opening the SQLite database and creating its schema."""

from __future__ import annotations

import os
import sqlite3
from pathlib import Path

_SCHEMA = """
CREATE TABLE IF NOT EXISTS transcripts (
    id          TEXT PRIMARY KEY,
    timestamp   TEXT NOT NULL,
    content     TEXT NOT NULL,
    source      TEXT NOT NULL,
    session_id  TEXT NOT NULL,
    sensitivity INTEGER NOT NULL DEFAULT 1
);
CREATE INDEX IF NOT EXISTS transcripts_session_idx ON transcripts(session_id);

CREATE VIRTUAL TABLE IF NOT EXISTS transcripts_fts USING fts5(
    content,
    content='transcripts',
    content_rowid='rowid',
    tokenize='unicode61 remove_diacritics 2'
);
CREATE TRIGGER IF NOT EXISTS transcripts_ai AFTER INSERT ON transcripts BEGIN
    INSERT INTO transcripts_fts(rowid, content) VALUES (new.rowid, new.content);
END;
CREATE TRIGGER IF NOT EXISTS transcripts_ad AFTER DELETE ON transcripts BEGIN
    INSERT INTO transcripts_fts(transcripts_fts, rowid, content)
    VALUES ('delete', old.rowid, old.content);
END;
CREATE TRIGGER IF NOT EXISTS transcripts_au AFTER UPDATE ON transcripts BEGIN
    INSERT INTO transcripts_fts(transcripts_fts, rowid, content)
    VALUES ('delete', old.rowid, old.content);
    INSERT INTO transcripts_fts(rowid, content) VALUES (new.rowid, new.content);
END;

CREATE TABLE IF NOT EXISTS l1_segmentations (
    id             TEXT PRIMARY KEY,
    created_at     TEXT NOT NULL,
    session_id     TEXT NOT NULL,
    model          TEXT NOT NULL,
    prompt_version TEXT NOT NULL,
    notes          TEXT
);
CREATE TABLE IF NOT EXISTS l1_blocks (
    id              TEXT PRIMARY KEY,
    segmentation_id TEXT NOT NULL REFERENCES l1_segmentations(id) ON DELETE CASCADE,
    seq             INTEGER NOT NULL,
    topic           TEXT,
    content         TEXT NOT NULL,
    sensitivity     INTEGER NOT NULL DEFAULT 1
);
CREATE TABLE IF NOT EXISTS l1_block_sources (
    block_id      TEXT NOT NULL REFERENCES l1_blocks(id) ON DELETE CASCADE,
    transcript_id TEXT NOT NULL REFERENCES transcripts(id),
    PRIMARY KEY (block_id, transcript_id)
);

CREATE TABLE IF NOT EXISTS l2_facts (
    id           TEXT NOT NULL,
    version      INTEGER NOT NULL,
    fact_type    TEXT NOT NULL,
    payload      TEXT NOT NULL,
    block_id     TEXT REFERENCES l1_blocks(id),
    sensitivity  INTEGER NOT NULL DEFAULT 1,
    created_at   TEXT NOT NULL,
    validated_at TEXT,
    PRIMARY KEY (id, version)
);
CREATE TABLE IF NOT EXISTS l2_fact_sources (
    fact_id       TEXT NOT NULL,
    version       INTEGER NOT NULL,
    transcript_id TEXT NOT NULL REFERENCES transcripts(id),
    PRIMARY KEY (fact_id, version, transcript_id),
    FOREIGN KEY (fact_id, version) REFERENCES l2_facts(id, version) ON DELETE CASCADE
);
CREATE VIEW IF NOT EXISTS l2_facts_current AS
    SELECT f.* FROM l2_facts f
    WHERE f.version = (SELECT MAX(g.version) FROM l2_facts g WHERE g.id = f.id);

CREATE TABLE IF NOT EXISTS l3_links (
    id         TEXT PRIMARY KEY,
    src_kind   TEXT NOT NULL,
    src_id     TEXT NOT NULL,
    dst_kind   TEXT NOT NULL,
    dst_id     TEXT NOT NULL,
    rel_type   TEXT NOT NULL,
    derived_by TEXT NOT NULL,
    metadata   TEXT,
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS l3_links_src_idx ON l3_links(src_kind, src_id);
CREATE INDEX IF NOT EXISTS l3_links_dst_idx ON l3_links(dst_kind, dst_id);
CREATE TABLE IF NOT EXISTS l3_pages (
    id          TEXT PRIMARY KEY,
    title       TEXT NOT NULL,
    description TEXT,
    is_active   INTEGER NOT NULL DEFAULT 0,
    created_at  TEXT NOT NULL,
    archived_at TEXT
);
"""


class DatabaseError(Exception):
    """Raised when the database cannot be opened or a statement fails."""


class NotFoundError(DatabaseError):
    """Raised when an operation targets a row that does not exist."""


def connect(path: str | os.PathLike[str]) -> sqlite3.Connection:
    """Open the database at ``path``, creating parent folders and the schema."""
    target = os.fspath(path)
    try:
        if target != ":memory:":
            Path(target).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(target)
    except (OSError, sqlite3.Error) as exc:
        raise DatabaseError(f"ouverture de {target}: {exc}") from exc
    try:
        conn.execute("PRAGMA foreign_keys = ON")
        if target != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        conn.executescript(_SCHEMA)
    except sqlite3.Error as exc:
        conn.close()
        raise DatabaseError(f"schéma: {exc}") from exc
    return conn