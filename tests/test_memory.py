"""Tests for the JSON memory store."""

from __future__ import annotations

import json
import pytest
from pathlib import Path

from memoir.memory.models import Memory, StorageDocument, parse_timestamp
from memoir.memory.store import MemoryNotFoundError, MemoryStore


@pytest.fixture
def store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memories.json")


def _write_doc(path: Path, memories: list[dict]) -> None:
    path.write_text(
        json.dumps({"memories": memories, "version": "1.0.0", "last_updated": "2026-01-01T00:00:00.000Z"}),
        encoding="utf-8",
    )


class TestLoadSave:
    def test_missing_file_is_empty(self, store: MemoryStore):
        assert store.all() == []
        assert not store.path.exists()

    def test_corrupt_file_is_empty(self, store: MemoryStore):
        store.path.write_text("{not json", encoding="utf-8")
        assert store.all() == []

    def test_wrong_shape_is_empty(self, store: MemoryStore):
        store.path.write_text("[1, 2, 3]", encoding="utf-8")
        assert store.search() == []

    def test_document_shape(self, store: MemoryStore):
        store.create("hello", tags=["a"])
        data = json.loads(store.path.read_text(encoding="utf-8"))
        assert data["version"] == "1.0.0"
        assert data["last_updated"].endswith("Z")
        assert len(data["memories"]) == 1
        record = data["memories"][0]
        assert record["content"] == "hello"
        assert record["tags"] == ["a"]
        assert "session_id" not in record

    def test_creates_parent_directory(self, tmp_path: Path):
        store = MemoryStore(tmp_path / "nested" / "dir" / "memories.json")
        store.create("x")
        assert store.path.exists()

    def test_unicode_roundtrip(self, store: MemoryStore):
        store.create("用户偏好 TypeScript")
        assert "用户偏好" in store.path.read_text(encoding="utf-8")
        assert store.all()[0].content == "用户偏好 TypeScript"

    def test_missing_optional_fields_get_defaults(self, store: MemoryStore):
        _write_doc(store.path, [{"id": "m1", "content": "bare"}])
        memory = store.get("m1")
        assert memory.tags == []
        assert memory.context == ""
        assert memory.importance == "medium"
        assert memory.type == "other"
        assert memory.session_id is None

    def test_save_failure_propagates(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a dir", encoding="utf-8")
        store = MemoryStore(blocker / "memories.json")
        with pytest.raises(OSError):
            store.create("x")


class TestCreate:
    def test_defaults(self, store: MemoryStore):
        memory = store.create("User prefers TypeScript")
        assert memory.tags == []
        assert memory.context == ""
        assert memory.importance == "medium"
        assert memory.type == "other"
        assert memory.session_id is None
        assert memory.timestamp.endswith("Z")

    def test_all_fields(self, store: MemoryStore):
        memory = store.create(
            "Chose SQLite", tags=["db"], context="design review",
            session_id="s1", importance="high", type="decision",
        )
        stored = store.get(memory.id)
        assert stored == memory

    def test_ids_unique(self, store: MemoryStore):
        ids = {store.create(f"note {i}").id for i in range(20)}
        assert len(ids) == 20

    def test_empty_content_allowed(self, store: MemoryStore):
        memory = store.create("")
        assert store.get(memory.id).content == ""

    def test_appends_in_order(self, store: MemoryStore):
        a = store.create("first")
        b = store.create("second")
        assert [m.id for m in store.all()] == [a.id, b.id]


class TestSearch:
    def test_no_filters_most_recent_first(self, store: MemoryStore):
        a = store.create("first")
        b = store.create("second")
        results = store.search()
        assert [m.id for m in results] == [b.id, a.id]

    def test_sorted_by_timestamp_not_insertion(self, store: MemoryStore):
        _write_doc(store.path, [
            {"id": "new", "content": "x", "timestamp": "2026-03-01T00:00:00.000Z"},
            {"id": "old", "content": "x", "timestamp": "2025-03-01T00:00:00.000Z"},
            {"id": "mid", "content": "x", "timestamp": "2025-09-01T00:00:00.000Z"},
        ])
        assert [m.id for m in store.search()] == ["new", "mid", "old"]

    def test_query_case_insensitive(self, store: MemoryStore):
        memory = store.create("User prefers TypeScript")
        results = store.search(query="typescript")
        assert [m.id for m in results] == [memory.id]

    def test_query_matches_context_and_tags(self, store: MemoryStore):
        by_context = store.create("a", context="Mentioned during Standup")
        by_tag = store.create("b", tags=["StandupNotes"])
        store.create("c")
        ids = {m.id for m in store.search(query="standup")}
        assert ids == {by_context.id, by_tag.id}

    def test_tag_filter_matches_any(self, store: MemoryStore):
        memory = store.create("tagged", tags=["a", "b"])
        store.create("other", tags=["c"])
        results = store.search(tags=["b", "z"])
        assert [m.id for m in results] == [memory.id]

    def test_tag_filter_is_exact(self, store: MemoryStore):
        store.create("tagged", tags=["python"])
        assert store.search(tags=["py"]) == []

    def test_session_filter(self, store: MemoryStore):
        memory = store.create("x", session_id="s1")
        store.create("y", session_id="s2")
        store.create("z")
        assert [m.id for m in store.search(session_id="s1")] == [memory.id]

    def test_importance_and_query(self, store: MemoryStore):
        a = store.create("X prefers cats", tags=["pref"], importance="high")
        store.create("Y prefers dogs", tags=["pref"], importance="low")
        results = store.search(query="prefers", importance="high")
        assert [m.id for m in results] == [a.id]

    def test_type_filter(self, store: MemoryStore):
        fact = store.create("sky is blue", type="fact")
        store.create("use postgres", type="decision")
        assert [m.id for m in store.search(type="fact")] == [fact.id]

    def test_no_match_returns_empty(self, store: MemoryStore):
        store.create("something")
        assert store.search(query="nothing like it") == []

    def test_limit_returns_most_recent(self, store: MemoryStore):
        store.create("older match")
        newer = store.create("newer match")
        results = store.search(query="match", limit=1)
        assert [m.id for m in results] == [newer.id]

    def test_default_limit(self, store: MemoryStore):
        for i in range(15):
            store.create(f"note {i}")
        assert len(store.search()) == 10

    def test_limit_clamped(self, store: MemoryStore):
        for i in range(3):
            store.create(f"note {i}")
        assert len(store.search(limit=-5)) == 1
        assert len(store.search(limit=1000)) == 3
        assert len(store.search(limit=0)) == 3

    def test_fractional_limit_clamped_up(self, store: MemoryStore):
        store.create("older")
        newer = store.create("newer")
        assert [m.id for m in store.search(limit=0.5)] == [newer.id]
        assert len(store.search(limit=1.9)) == 1

    def test_empty_tag_filter_matches_nothing(self, store: MemoryStore):
        store.create("tagged", tags=["a"])
        store.create("untagged")
        assert store.search(tags=[]) == []

    def test_search_does_not_write(self, store: MemoryStore):
        store.create("x")
        before = store.path.read_text(encoding="utf-8")
        store.search(query="x")
        assert store.path.read_text(encoding="utf-8") == before


class TestUpdate:
    def test_partial_update_keeps_other_fields(self, store: MemoryStore):
        memory = store.create(
            "original", tags=["t1"], context="ctx",
            session_id="s1", importance="low", type="fact",
        )
        before, after = store.update(memory.id, importance="high")
        assert before == memory
        assert after.importance == "high"
        assert after.content == memory.content
        assert after.tags == memory.tags
        assert after.context == memory.context
        assert after.session_id == memory.session_id
        assert after.type == memory.type
        assert after.timestamp == memory.timestamp
        assert store.get(memory.id) == after

    def test_replaces_supplied_fields(self, store: MemoryStore):
        memory = store.create("old", tags=["a"])
        _, after = store.update(memory.id, content="new", tags=["b", "c"], context="c", type="preference")
        assert after.content == "new"
        assert after.tags == ["b", "c"]
        assert after.context == "c"
        assert after.type == "preference"

    def test_empty_values_are_applied(self, store: MemoryStore):
        memory = store.create("old", tags=["a"], context="ctx")
        _, after = store.update(memory.id, content="", tags=[], context="")
        assert after.content == ""
        assert after.tags == []
        assert after.context == ""

    def test_before_snapshot_is_independent(self, store: MemoryStore):
        memory = store.create("old", tags=["a"])
        before, after = store.update(memory.id, tags=["b"])
        assert before.tags == ["a"]
        assert after.tags == ["b"]

    def test_other_records_untouched(self, store: MemoryStore):
        a = store.create("a")
        b = store.create("b")
        store.update(a.id, content="changed")
        assert store.get(b.id) == b

    def test_not_found(self, store: MemoryStore):
        store.create("x")
        before = store.path.read_text(encoding="utf-8")
        with pytest.raises(MemoryNotFoundError) as exc:
            store.update("missing", content="y")
        assert exc.value.memory_id == "missing"
        assert "missing" in str(exc.value)
        assert store.path.read_text(encoding="utf-8") == before


class TestDelete:
    def test_delete_by_id(self, store: MemoryStore):
        a = store.create("a")
        b = store.create("b")
        removed = store.delete(a.id)
        assert removed.id == a.id
        assert [m.id for m in store.all()] == [b.id]

    def test_delete_missing(self, store: MemoryStore):
        store.create("a")
        before = store.all()
        with pytest.raises(MemoryNotFoundError):
            store.delete("nope")
        assert store.all() == before

    def test_preview_does_not_mutate(self, store: MemoryStore):
        store.create("temp note", tags=["tmp"])
        store.create("another temp", tags=["tmp"])
        before = store.path.read_text(encoding="utf-8")
        preview = store.preview_delete(tags=["tmp"])
        assert len(preview) == 2
        assert store.path.read_text(encoding="utf-8") == before

    def test_preview_count_matches_confirmed(self, store: MemoryStore):
        store.create("alpha", session_id="s1")
        store.create("alpha beta", session_id="s1")
        store.create("alpha", session_id="s2")
        store.create("gamma", session_id="s1")
        preview = store.preview_delete(query="ALPHA", session_id="s1")
        count = store.delete_matching(query="ALPHA", session_id="s1")
        assert count == len(preview) == 2
        assert {m.content for m in store.all()} == {"alpha", "gamma"}

    def test_bulk_ignores_importance_and_limit(self, store: MemoryStore):
        for i in range(12):
            store.create(f"bulk {i}", importance="high" if i % 2 else "low")
        assert len(store.preview_delete(query="bulk")) == 12
        assert store.delete_matching(query="bulk") == 12

    def test_bulk_without_filters_deletes_everything(self, store: MemoryStore):
        store.create("a")
        store.create("b")
        assert store.delete_matching() == 2
        assert store.all() == []

    def test_bulk_empty_tag_list_deletes_nothing(self, store: MemoryStore):
        store.create("a", tags=["x"])
        store.create("b")
        before = store.path.read_text(encoding="utf-8")
        assert store.preview_delete(tags=[]) == []
        assert store.delete_matching(tags=[]) == 0
        assert len(store.all()) == 2
        assert json.loads(store.path.read_text(encoding="utf-8"))["memories"] == json.loads(before)["memories"]

    def test_bulk_no_match(self, store: MemoryStore):
        store.create("a")
        assert store.delete_matching(tags=["none"]) == 0
        assert len(store.all()) == 1


class TestModels:
    def test_parse_timestamp_z_suffix(self):
        assert parse_timestamp("2026-02-18T09:30:00.123Z").tzinfo is not None

    def test_parse_timestamp_naive_is_utc(self):
        assert parse_timestamp("2026-02-18T09:30:00") == parse_timestamp("2026-02-18T09:30:00Z")

    def test_parse_timestamp_garbage_sorts_first(self):
        assert parse_timestamp("yesterday") < parse_timestamp("1999-01-01T00:00:00Z")

    def test_memory_dict_roundtrip_keeps_session(self):
        memory = Memory(id="m1", content="c", session_id="s1")
        assert Memory.from_dict(memory.to_dict()) == memory

    def test_document_defaults(self):
        doc = StorageDocument.from_dict({})
        assert doc.memories == []
        assert doc.version == "1.0.0"
