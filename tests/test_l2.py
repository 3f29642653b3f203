import pytest

from azmem.database import DatabaseError
from azmem.l0 import L0Entry, L0Store
from azmem.l2 import Fact, L2Store
from azmem.session import ReadFilter


def fact(fact_id, version, fact_type, validated, created_at="2026-05-26T10:00:00Z"):
    return Fact(
        id=fact_id,
        version=version,
        fact_type=fact_type,
        payload='{"x":1}',
        block_id=None,
        sensitivity=True,
        created_at=created_at,
        validated_at="2026-05-26T10:01:00Z" if validated else None,
    )


def with_sensitivity(base, sensitivity):
    return Fact(
        id=base.id,
        version=base.version,
        fact_type=base.fact_type,
        payload=base.payload,
        block_id=base.block_id,
        sensitivity=sensitivity,
        created_at=base.created_at,
        validated_at=base.validated_at,
    )


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "l2.sqlite"


@pytest.fixture
def store(db_path):
    with L2Store(db_path) as s:
        yield s


def seed_transcript(path, transcript_id="t1"):
    with L0Store(path) as l0:
        l0.append(
            L0Entry(
                id=transcript_id,
                timestamp="2026-01-01T00:00:00Z",
                content="x",
                source="chat",
                session_id="S",
                sensitivity=True,
            )
        )


def test_insert_and_get_versions(store):
    store.insert(fact("f1", 1, "note", False), [])
    store.insert(fact("f1", 2, "note", False), [])
    versions = store.get_versions("f1")
    assert [v.version for v in versions] == [1, 2]


def test_next_version_starts_at_1(store):
    assert store.next_version("absent") == 1


def test_next_version_increments(store):
    store.insert(fact("f", 1, "note", True), [])
    store.insert(fact("f", 2, "note", True), [])
    assert store.next_version("f") == 3


def test_validate_marks_validated_at(store):
    store.insert(fact("f", 1, "note", False), [])
    assert len(store.list_drafts()) == 1
    store.validate("f", 1, "2026-05-26T11:00:00Z")
    assert store.list_drafts() == []
    current = store.list_current(ReadFilter.ALL)
    assert len(current) == 1
    assert current[0].validated_at == "2026-05-26T11:00:00Z"


def test_list_current_returns_max_version(store):
    store.insert(fact("f", 1, "note", True), [])
    store.insert(fact("f", 2, "note", True), [])
    current = store.list_current(ReadFilter.ALL)
    assert len(current) == 1
    assert current[0].version == 2


def test_list_current_respects_filter(store):
    store.insert(with_sensitivity(fact("a", 1, "note", True), True), [])
    store.insert(with_sensitivity(fact("b", 1, "note", True), False), [])
    assert len(store.list_current(ReadFilter.ALL)) == 2
    safe = store.list_current(ReadFilter.EXCLUDE_SENSITIVE)
    assert [f.id for f in safe] == ["b"]


def test_update_payload_preserves_sources_and_validates(db_path):
    seed_transcript(db_path)
    with L2Store(db_path) as store:
        store.insert(fact("f", 1, "note", False), ["t1"])
        store.update_payload_and_validate(
            "f", 1, '{"corrigé":true}', "2026-05-26T11:00:00Z"
        )
        assert store.fact_sources("f", 1) == ["t1"]
        versions = store.get_versions("f")
        assert len(versions) == 1
        assert versions[0].payload == '{"corrigé":true}'
        assert versions[0].validated_at == "2026-05-26T11:00:00Z"


def test_delete_draft_removes_sources_via_cascade(db_path):
    seed_transcript(db_path)
    with L2Store(db_path) as store:
        store.insert(fact("f", 1, "note", False), ["t1"])
        assert store.fact_sources("f", 1) == ["t1"]
        store.delete("f", 1)
        assert store.fact_sources("f", 1) == []
        assert store.get_versions("f") == []


def test_list_by_type_filters(store):
    store.insert(fact("a", 1, "note", True), [])
    store.insert(fact("b", 1, "event", True), [])
    store.insert(fact("c", 1, "note", True), [])
    assert len(store.list_by_type("note", ReadFilter.ALL)) == 2
    assert [f.id for f in store.list_by_type("event", ReadFilter.ALL)] == ["b"]


def test_list_by_type_excludes_sensitive(store):
    store.insert(with_sensitivity(fact("a", 1, "note", True), True), [])
    store.insert(with_sensitivity(fact("b", 1, "note", True), False), [])
    safe = store.list_by_type("note", ReadFilter.EXCLUDE_SENSITIVE)
    assert [f.id for f in safe] == ["b"]


def test_list_validated_current_drops_drafts(store):
    store.insert(fact("a", 1, "note", True), [])
    store.insert(fact("b", 1, "note", False), [])
    validated = store.list_validated_current(ReadFilter.ALL)
    assert [f.id for f in validated] == ["a"]


def test_all_facts_includes_every_version(store):
    store.insert(fact("b", 1, "note", False, "2026-05-26T09:00:00Z"), [])
    store.insert(fact("a", 1, "note", True), [])
    store.insert(fact("a", 2, "note", False), [])
    assert [(f.id, f.version) for f in store.all_facts()] == [
        ("b", 1),
        ("a", 1),
        ("a", 2),
    ]


def test_duplicate_version_raises(store):
    store.insert(fact("f", 1, "note", False), [])
    with pytest.raises(DatabaseError):
        store.insert(fact("f", 1, "note", False), [])


def test_unknown_source_transcript_rolls_back(store):
    with pytest.raises(DatabaseError):
        store.insert(fact("f", 1, "note", False), ["ghost"])
    assert store.get_versions("f") == []


def test_roundtrip_preserves_fields(store):
    original = Fact(
        id="f",
        version=1,
        fact_type="transaction",
        payload='{"amount":50}',
        block_id=None,
        sensitivity=False,
        created_at="2026-05-26T10:00:00Z",
        validated_at=None,
    )
    store.insert(original)
    assert store.get_versions("f") == [original]
    assert original.is_draft is True