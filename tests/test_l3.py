import pytest

from azmem.database import DatabaseError, NotFoundError
from azmem.l3 import L3Store, Link, Page


@pytest.fixture
def store(tmp_path):
    with L3Store(tmp_path / "l3.sqlite") as s:
        yield s


def make_link(link_id, src, dst, rel, derived_by="manual"):
    return Link(
        id=link_id,
        src_kind=src[0],
        src_id=src[1],
        dst_kind=dst[0],
        dst_id=dst[1],
        rel_type=rel,
        derived_by=derived_by,
        metadata=None,
        created_at="2026-05-26T10:00:00Z",
    )


def make_page(page_id, title, active):
    return Page(
        id=page_id,
        title=title,
        description=None,
        is_active=active,
        created_at="2026-05-26T10:00:00Z",
        archived_at=None,
    )


def test_add_and_list_outgoing(store):
    store.add_link(make_link("l1", ("fact", "f1"), ("page", "p1"), "belongs_to"))
    store.add_link(make_link("l2", ("fact", "f1"), ("block", "b1"), "derives_from"))
    out = store.list_outgoing("fact", "f1")
    assert len(out) == 2
    assert {link.id for link in out} == {"l1", "l2"}


def test_list_incoming(store):
    store.add_link(make_link("l1", ("fact", "f1"), ("page", "p1"), "belongs_to"))
    store.add_link(make_link("l2", ("fact", "f2"), ("page", "p1"), "belongs_to"))
    incoming = store.list_incoming("page", "p1")
    assert len(incoming) == 2
    assert all(link.dst_id == "p1" for link in incoming)


def test_link_roundtrip_keeps_fields(store):
    link = Link(
        id="l1",
        src_kind="fact",
        src_id="f1",
        dst_kind="page",
        dst_id="p1",
        rel_type="belongs_to",
        derived_by="manual",
        metadata='{"w":1}',
        created_at="2026-05-26T10:00:00Z",
    )
    store.add_link(link)
    assert store.list_outgoing("fact", "f1") == [link]


def test_remove_link(store):
    store.add_link(make_link("l1", ("fact", "f1"), ("page", "p1"), "belongs_to"))
    store.remove_link("l1")
    assert store.list_outgoing("fact", "f1") == []


def test_duplicate_link_id_errors(store):
    store.add_link(make_link("l1", ("fact", "f1"), ("page", "p1"), "belongs_to"))
    with pytest.raises(DatabaseError):
        store.add_link(make_link("l1", ("fact", "f2"), ("page", "p2"), "belongs_to"))


def test_only_one_active_page(store):
    store.add_page(make_page("a", "A", True))
    store.add_page(make_page("b", "B", False))
    store.activate_page("b")
    active = [p for p in store.list_pages() if p.is_active]
    assert len(active) == 1
    assert active[0].id == "b"
    assert store.active_page().id == "b"


def test_activate_unknown_page_errors(store):
    with pytest.raises(NotFoundError):
        store.activate_page("ghost")


def test_activate_unknown_page_leaves_state_unchanged(store):
    store.add_page(make_page("a", "A", True))
    with pytest.raises(NotFoundError):
        store.activate_page("ghost")
    assert store.active_page().id == "a"


def test_exists_derived_returns_true_after_insert(store):
    store.add_link(
        make_link(
            "l1",
            ("fact", "f1"),
            ("shopping_item", "x"),
            "derives_to",
            derived_by="rule:recipe-to-shopping",
        )
    )
    assert store.exists_derived("fact", "f1", "derives_to", "rule:recipe-to-shopping")
    assert not store.exists_derived("fact", "f1", "derives_to", "manual")


def test_archive_page_clears_active(store):
    store.add_page(make_page("a", "A", True))
    store.archive_page("a", "2026-05-26T11:00:00Z")
    pages = store.list_pages()
    assert not pages[0].is_active
    assert pages[0].archived_at == "2026-05-26T11:00:00Z"
    assert store.active_page() is None


def test_activate_clears_archived_at(store):
    store.add_page(make_page("a", "A", True))
    store.archive_page("a", "2026-05-26T11:00:00Z")
    store.activate_page("a")
    page = store.list_pages()[0]
    assert page.is_active
    assert page.archived_at is None


def test_active_page_none_when_empty(store):
    assert store.active_page() is None