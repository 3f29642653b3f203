"""Layer 3: typed links between objects, and pages that group them."""

from __future__ import annotations

import os
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from azmem.database import DatabaseError, NotFoundError, connect

_LINK_COLUMNS = (
    "id, src_kind, src_id, dst_kind, dst_id, rel_type, derived_by, metadata, created_at"
)
_PAGE_COLUMNS = "id, title, description, is_active, created_at, archived_at"


@dataclass(frozen=True)
class Link:
    """A directed, typed relation between two objects of any layer."""

    id: str
    src_kind: str
    src_id: str
    dst_kind: str
    dst_id: str
    rel_type: str
    derived_by: str
    metadata: str | None
    created_at: str


@dataclass(frozen=True)
class Page:
    """A named page; at most one page is active at a time."""

    id: str
    title: str
    description: str | None
    is_active: bool
    created_at: str
    archived_at: str | None = None


@contextmanager
def _db_errors() -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as exc:
        raise DatabaseError(str(exc)) from exc


def _link_from_row(row: tuple) -> Link:
    (link_id, src_kind, src_id, dst_kind, dst_id,
     rel_type, derived_by, metadata, created_at) = row
    return Link(
        id=link_id,
        src_kind=src_kind,
        src_id=src_id,
        dst_kind=dst_kind,
        dst_id=dst_id,
        rel_type=rel_type,
        derived_by=derived_by,
        metadata=metadata,
        created_at=created_at,
    )


def _page_from_row(row: tuple) -> Page:
    page_id, title, description, is_active, created_at, archived_at = row
    return Page(
        id=page_id,
        title=title,
        description=description,
        is_active=bool(is_active),
        created_at=created_at,
        archived_at=archived_at,
    )


class L3Store:
    """Store of links and pages."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)
        self._conn = connect(path)

    @property
    def path(self) -> Path:
        """Location of the database file."""
        return self._path

    def __enter__(self) -> L3Store:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying connection."""
        self._conn.close()

    def _links(self, sql: str, params: tuple) -> list[Link]:
        with _db_errors():
            rows = self._conn.execute(sql, params).fetchall()
        return [_link_from_row(row) for row in rows]

    def add_link(self, link: Link) -> None:
        """Store a new link."""
        with _db_errors(), self._conn:
            self._conn.execute(
                f"INSERT INTO l3_links ({_LINK_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    link.id,
                    link.src_kind,
                    link.src_id,
                    link.dst_kind,
                    link.dst_id,
                    link.rel_type,
                    link.derived_by,
                    link.metadata,
                    link.created_at,
                ),
            )

    def remove_link(self, link_id: str) -> None:
        """Delete a link by id; unknown ids are ignored."""
        with _db_errors(), self._conn:
            self._conn.execute("DELETE FROM l3_links WHERE id = ?", (link_id,))

    def list_outgoing(self, src_kind: str, src_id: str) -> list[Link]:
        """Links leaving the given object, oldest first."""
        return self._links(
            f"SELECT {_LINK_COLUMNS} FROM l3_links "
            "WHERE src_kind = ? AND src_id = ? ORDER BY created_at",
            (src_kind, src_id),
        )

    def list_incoming(self, dst_kind: str, dst_id: str) -> list[Link]:
        """Links arriving at the given object, oldest first."""
        return self._links(
            f"SELECT {_LINK_COLUMNS} FROM l3_links "
            "WHERE dst_kind = ? AND dst_id = ? ORDER BY created_at",
            (dst_kind, dst_id),
        )

    def exists_derived(
        self, src_kind: str, src_id: str, rel_type: str, derived_by: str
    ) -> bool:
        """Whether a link with this source, relation and origin already exists."""
        with _db_errors():
            (total,) = self._conn.execute(
                "SELECT COUNT(*) FROM l3_links "
                "WHERE src_kind = ? AND src_id = ? AND rel_type = ? AND derived_by = ?",
                (src_kind, src_id, rel_type, derived_by),
            ).fetchone()
        return total > 0

    def add_page(self, page: Page) -> None:
        """Store a new page."""
        with _db_errors(), self._conn:
            self._conn.execute(
                f"INSERT INTO l3_pages ({_PAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
                (
                    page.id,
                    page.title,
                    page.description,
                    int(page.is_active),
                    page.created_at,
                    page.archived_at,
                ),
            )

    def activate_page(self, page_id: str) -> None:
        """Activate one page and deactivate all others, atomically.

        Raises :class:`NotFoundError`, leaving everything unchanged, when the
        page does not exist.
        """
        with _db_errors(), self._conn:
            self._conn.execute("UPDATE l3_pages SET is_active = 0")
            cursor = self._conn.execute(
                "UPDATE l3_pages SET is_active = 1, archived_at = NULL WHERE id = ?",
                (page_id,),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"page inconnue: {page_id}")

    def archive_page(self, page_id: str, now: str) -> None:
        """Deactivate a page and mark it archived at ``now``."""
        with _db_errors(), self._conn:
            self._conn.execute(
                "UPDATE l3_pages SET is_active = 0, archived_at = ? WHERE id = ?",
                (now, page_id),
            )

    def list_pages(self) -> list[Page]:
        """Every page, oldest first."""
        with _db_errors():
            rows = self._conn.execute(
                f"SELECT {_PAGE_COLUMNS} FROM l3_pages ORDER BY created_at ASC"
            ).fetchall()
        return [_page_from_row(row) for row in rows]

    def active_page(self) -> Page | None:
        """The active page, or ``None`` when there is none."""
        try:
            row = self._conn.execute(
                f"SELECT {_PAGE_COLUMNS} FROM l3_pages WHERE is_active = 1 LIMIT 1"
            ).fetchone()
        except sqlite3.Error:
            return None
        return None if row is None else _page_from_row(row)