from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from vault_editor.errors import StoreIOError, StoreWriteConflict
from vault_editor.index import FileRecord, MetadataStore, TagCount
from vault_editor.index.store import SCHEMA_VERSION


def test_store_creates_schema_and_version(store: MetadataStore) -> None:
    conn = sqlite3.connect(str(store.path))
    try:
        version = conn.execute("PRAGMA user_version").fetchone()[0]
        tables = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
    finally:
        conn.close()

    assert version == SCHEMA_VERSION
    assert {"files", "tags", "file_tags", "backlinks"} <= tables


def test_reopen_keeps_data(vault: Path) -> None:
    db_path = vault / "markdown_data.db"
    with MetadataStore(db_path, base_dir=vault) as first:
        first.apply_scan(vault / "a.md", ["alpha"], [])

    with MetadataStore(db_path, base_dir=vault) as second:
        assert second.query_tags() == ["alpha"]


def test_newer_schema_is_refused(vault: Path) -> None:
    db_path = vault / "markdown_data.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA user_version = 99")
    conn.close()

    with pytest.raises(StoreIOError):
        MetadataStore(db_path, base_dir=vault)


def test_garbage_file_is_refused(vault: Path) -> None:
    db_path = vault / "markdown_data.db"
    db_path.write_bytes(b"this is not a database" * 100)

    with pytest.raises(StoreIOError):
        MetadataStore(db_path, base_dir=vault)


def test_paths_are_stored_relative_to_base(store: MetadataStore, vault: Path) -> None:
    file_id = store.upsert_file(vault / "notes" / "Daily Log.md")

    record = store.get_file(file_id)

    assert record == FileRecord(file_id, "notes/Daily Log.md", "Daily Log")
    assert store.absolute_path(record) == vault / "notes" / "Daily Log.md"


def test_upsert_is_idempotent(store: MetadataStore, vault: Path) -> None:
    first = store.upsert_file(vault / "a.md")
    second = store.upsert_file("a.md")

    assert first == second
    assert store.counts()["files"] == 1


def test_replace_file_tags_diffs_and_collects_orphans(
    store: MetadataStore, vault: Path
) -> None:
    file_id = store.upsert_file(vault / "a.md")
    store.replace_file_tags(file_id, ["#Project", "todo"])

    assert store.tags_for_file(file_id) == ["project", "todo"]

    store.replace_file_tags(file_id, ["project"])

    assert store.tags_for_file(file_id) == ["project"]
    assert store.query_tags() == ["project"]
    assert store.counts()["tags"] == 1


def test_tags_ordered_by_usage_then_name(store: MetadataStore, vault: Path) -> None:
    store.apply_scan(vault / "a.md", ["beta", "alpha"], [])
    store.apply_scan(vault / "b.md", ["beta", "gamma"], [])

    assert store.all_tags() == [
        TagCount("beta", 2),
        TagCount("alpha", 1),
        TagCount("gamma", 1),
    ]
    assert store.query_tags("MM") == ["gamma"]


def test_tag_filter_escapes_like_wildcards(store: MetadataStore, vault: Path) -> None:
    store.apply_scan(vault / "a.md", ["a_b", "axb"], [])

    assert store.query_tags("a_") == ["a_b"]


def test_files_with_tag(store: MetadataStore, vault: Path) -> None:
    store.apply_scan(vault / "zeta.md", ["shared"], [])
    store.apply_scan(vault / "alpha.md", ["shared"], [])
    store.apply_scan(vault / "other.md", ["solo"], [])

    names = [record.display_name for record in store.files_with_tag("#Shared")]

    assert names == ["alpha", "zeta"]


def test_backlinks_resolve_to_existing_file(store: MetadataStore, vault: Path) -> None:
    target_id = store.upsert_file(vault / "Target.md")
    source_id = store.apply_scan(vault / "source.md", [], ["target|alias"])

    assert [r.path for r in store.query_backlinks_to(target_id)] == ["source.md"]
    links = store.backlinks_from(source_id)
    assert [(link.target_name, link.dangling) for link in links] == [("target", False)]


def test_dangling_link_resolves_when_file_appears(
    store: MetadataStore, vault: Path
) -> None:
    source_id = store.apply_scan(vault / "source.md", [], ["Later Note#Heading"])
    assert store.backlinks_from(source_id)[0].dangling is True

    later_id = store.upsert_file(vault / "later note.md")

    assert store.backlinks_from(source_id)[0].resolved_file_id == later_id
    assert [r.id for r in store.query_backlinks_to(later_id)] == [source_id]


def test_removed_file_leaves_incoming_links_dangling(
    store: MetadataStore, vault: Path
) -> None:
    target_id = store.upsert_file(vault / "target.md")
    source_id = store.apply_scan(vault / "source.md", [], ["target"])

    assert store.remove_file(vault / "target.md") is True

    assert store.get_file(target_id) is None
    assert store.backlinks_from(source_id)[0].dangling is True
    assert store.remove_file(vault / "target.md") is False


def test_removed_file_drops_its_tags_and_outgoing_links(
    store: MetadataStore, vault: Path
) -> None:
    store.apply_scan(vault / "a.md", ["only"], ["b"])

    store.remove_file(vault / "a.md")

    assert store.counts() == {"files": 0, "tags": 0, "file_tags": 0, "backlinks": 0}


def test_rename_keeps_tags_and_rewires_links(store: MetadataStore, vault: Path) -> None:
    old_id = store.apply_scan(vault / "old.md", ["kept"], ["elsewhere"])
    to_old = store.apply_scan(vault / "a.md", [], ["old"])
    to_new = store.apply_scan(vault / "b.md", [], ["new"])

    renamed = store.rename_file(vault / "old.md", vault / "new.md")

    assert renamed == old_id
    assert store.find_file(vault / "old.md") is None
    assert store.find_file(vault / "new.md").display_name == "new"
    assert store.tags_for_file(old_id) == ["kept"]
    assert store.backlinks_from(old_id)[0].target_name == "elsewhere"
    assert store.backlinks_from(to_old)[0].dangling is True
    assert store.backlinks_from(to_new)[0].resolved_file_id == old_id


def test_rename_unknown_file_returns_none(store: MetadataStore, vault: Path) -> None:
    assert store.rename_file(vault / "missing.md", vault / "other.md") is None


def test_find_file_by_name_ignores_case_and_folder(
    store: MetadataStore, vault: Path
) -> None:
    file_id = store.upsert_file(vault / "projects" / "Roadmap.md")

    found = store.find_file_by_name("roadmap|the plan")

    assert found is not None and found.id == file_id
    assert store.find_file_by_name("nothing") is None


def test_search_files_matches_name_and_path(store: MetadataStore, vault: Path) -> None:
    store.upsert_file(vault / "projects" / "Roadmap.md")
    store.upsert_file(vault / "journal.md")

    assert [r.display_name for r in store.search_files("road")] == ["Roadmap"]
    assert [r.display_name for r in store.search_files("projects/")] == ["Roadmap"]
    assert len(store.search_files("")) == 2


def test_failed_transaction_rolls_back(store: MetadataStore, vault: Path) -> None:
    with pytest.raises(RuntimeError):
        with store.transaction("test"):
            store.upsert_file(vault / "a.md")
            raise RuntimeError("boom")

    assert store.counts()["files"] == 0


def test_second_writer_gets_write_conflict(store: MetadataStore, vault: Path) -> None:
    other = MetadataStore(store.path, base_dir=vault, busy_timeout_s=0.05)
    try:
        with store.transaction("hold"):
            with pytest.raises(StoreWriteConflict):
                other.upsert_file(vault / "a.md")
    finally:
        other.close()


def test_closed_store_raises(vault: Path) -> None:
    store = MetadataStore(vault / "markdown_data.db", base_dir=vault)
    store.close()

    with pytest.raises(StoreIOError):
        store.query_tags()


def test_write_to_read_only_index_raises_store_error(
    store: MetadataStore, vault: Path
) -> None:
    store.upsert_file(vault / "a.md")
    store._require_conn().execute("PRAGMA query_only = ON")

    with pytest.raises(StoreIOError):
        store.apply_scan(vault / "a.md", ["x"], [])
    with pytest.raises(StoreIOError):
        store.remove_file(vault / "a.md")

    assert store.tags_for_file(store.find_file(vault / "a.md").id) == []
    assert store._require_conn().in_transaction is False


def test_tag_candidates_rank_prefix_before_substring(
    store: MetadataStore, vault: Path
) -> None:
    store.apply_scan(vault / "a.md", ["project", "subproject", "projection"], [])
    store.apply_scan(vault / "b.md", ["projection", "subproject"], [])

    candidates = store.query_autocomplete_candidates("tag", "proj")

    assert [c.name for c in candidates] == ["projection", "project", "subproject"]
    assert candidates[0].insert_text == "#projection"
    assert candidates[0].usage == 2


def test_file_candidates_include_unresolved_targets(
    store: MetadataStore, vault: Path
) -> None:
    store.upsert_file(vault / "Meeting.md")
    store.apply_scan(vault / "a.md", [], ["Meeting", "Meetup ideas"])

    candidates = store.query_autocomplete_candidates("file", "Meet")

    assert [(c.name, c.usage, c.detail) for c in candidates] == [
        ("Meeting", 1, ""),
        ("Meetup ideas", 1, "unresolved"),
    ]
    assert candidates[0].text == "[[Meeting]]"


def test_candidates_respect_limit(store: MetadataStore, vault: Path) -> None:
    store.apply_scan(vault / "a.md", [f"tag{n}" for n in range(20)], [])

    assert len(store.query_autocomplete_candidates("tag", "tag", limit=5)) == 5


def test_unknown_candidate_kind(store: MetadataStore) -> None:
    with pytest.raises(ValueError):
        store.query_autocomplete_candidates("snippet", "")


def test_replacing_tags_twice_is_idempotent(store: MetadataStore, vault: Path) -> None:
    file_id = store.upsert_file(vault / "a.md")
    store.replace_file_tags(file_id, ["one", "two"])
    first = (store.counts(), store.all_tags(), store.tags_for_file(file_id))

    store.replace_file_tags(file_id, ["one", "two"])

    assert (store.counts(), store.all_tags(), store.tags_for_file(file_id)) == first


def test_dropped_tag_survives_while_another_file_uses_it(
    store: MetadataStore, vault: Path
) -> None:
    store.apply_scan(vault / "a.md", ["project"], [])
    other = store.apply_scan(vault / "b.md", ["project"], [])

    store.apply_scan(vault / "a.md", [], [])

    assert store.query_tags("pro") == ["project"]
    assert store.tags_for_file(other) == ["project"]
    assert [r.path for r in store.files_with_tag("project")] == ["b.md"]

    store.apply_scan(vault / "b.md", [], [])

    assert store.query_tags("pro") == []
