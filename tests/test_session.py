from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable

import pytest

from vault_editor.config import EditorConfig
from vault_editor.errors import EditorError, StoreWriteConflict, UnsavedChangesError
from vault_editor.index.store import MetadataStore
from vault_editor.session import FileTreePanel, ListPanel, Notification, Session


WriteNote = Callable[[str, str], Path]
Settle = Callable[[Session], int]


def command(session: Session, line: str):
    session.handle_key(":")
    session.type_text(line)
    return session.handle_key("enter")


def test_open_reads_file_and_indexes_it(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    note = write_note("note.md", "#alpha\r\nsee [[Beta]]")

    opened = session.open(note)

    assert opened == note
    assert session.buffer.text == "#alpha\nsee [[Beta]]"
    assert session.file_id is not None
    assert session.buffer.modified is False
    assert settle(session) == 1
    assert session.store.tags_for_file(session.file_id) == ["alpha"]


def test_open_missing_file_gives_empty_buffer(session: Session, vault: Path) -> None:
    session.open("fresh.md")

    assert session.path == vault / "fresh.md"
    assert session.buffer.text == ""
    assert not (vault / "fresh.md").exists()
    assert session.scan_pending is False


def test_open_directory_fails(session: Session, vault: Path) -> None:
    (vault / "folder").mkdir()

    with pytest.raises(EditorError):
        session.open("folder")


def test_stale_scan_is_discarded(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    note = write_note("note.md", "#old")
    session.open(note)
    first = session.generation()

    session.feed("i", "x", "escape")

    assert session.generation() > first
    assert settle(session) == 0
    assert session.store.query_tags() == []


def test_save_writes_and_rescans(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    note = write_note("note.md", "")
    session.open(note)
    session.type_text("i#fresh")
    session.handle_key("escape")

    message = session.save()

    assert message == '"note.md" 1L written'
    assert note.read_text(encoding="utf-8") == "#fresh"
    assert session.buffer.modified is False
    assert settle(session) == 1
    assert session.store.query_tags() == ["fresh"]


def test_write_command_notifies(session: Session, write_note: WriteNote) -> None:
    note = write_note("note.md", "body")
    session.open(note)
    session.feed("x")

    result = command(session, "w")

    assert result.status == "command_write"
    assert session.notifications[-1] == Notification("info", '"note.md" 1L written')
    assert note.read_text(encoding="utf-8") == "ody"
    assert session.mode == "normal"


def test_write_without_file_name(session: Session) -> None:
    result = command(session, "w")

    assert result.status == "command_error"
    assert result.message == "No file name"
    assert session.notifications[-1].level == "error"


def test_quit_refuses_unsaved_changes(session: Session, write_note: WriteNote) -> None:
    session.open(write_note("note.md", "body"))
    session.feed("x")

    result = command(session, "q")

    assert result.status == "command_error"
    assert "No write since last change" in result.message
    assert session.closed is False

    forced = command(session, "q!")

    assert forced.status == "command_quit_force"
    assert session.closed is True


def test_close_raises_for_modified_buffer(
    session: Session, write_note: WriteNote
) -> None:
    session.open(write_note("note.md", "body"))
    session.feed("x")

    with pytest.raises(UnsavedChangesError):
        session.close()


def test_write_quit_scans_before_closing(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    note = write_note("note.md", "")
    session.open(note)
    session.type_text("i#done")
    session.handle_key("escape")

    result = command(session, "wq")

    assert result.status == "command_wq"
    assert session.closed is True
    assert session.store.query_tags() == ["done"]
    assert settle(session) == 0


def test_close_discards_pending_scans(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    session.open(write_note("note.md", "#late"))

    session.close()

    assert settle(session) == 0
    assert session.store.query_tags() == []


def test_scan_failure_is_reported(
    config: EditorConfig, store: MetadataStore, write_note: WriteNote
) -> None:
    broken = replace(
        config, scanner_command=(sys.executable, "-c", "import sys; sys.exit(2)")
    )
    current = Session(broken, store)
    try:
        current.open(write_note("note.md", "#x"))
        current.worker.wait_idle(30.0)

        assert current.process_events() == 0
    finally:
        current.shutdown()

    assert current.notifications[-1].level == "warning"
    assert "nonzero_exit" in current.notifications[-1].message


def test_edit_refuses_to_drop_changes_unless_forced(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.open(write_note("a.md", "a"))
    write_note("b.md", "b")
    session.feed("x")

    with pytest.raises(UnsavedChangesError):
        session.open("b.md")

    refused = command(session, "e b.md")
    assert refused.status == "command_error"
    assert session.path == vault / "a.md"

    forced = command(session, "e !b.md")
    assert forced.status == "command_edit"
    assert session.path == vault / "b.md"
    assert session.buffer.text == "b"


def test_edit_needs_an_argument(session: Session) -> None:
    result = command(session, "e")

    assert result.message == "Argument required: edit"


def test_new_note_is_created_and_opened(session: Session, vault: Path) -> None:
    result = command(session, "new Ideas")

    assert result.status == "command_new"
    assert (vault / "Ideas.md").is_file()
    assert session.path == vault / "Ideas.md"
    assert session.notifications[-1].message == '"Ideas.md" created'


def test_rename_moves_file_and_index_entry(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.store.apply_scan(write_note("old.md", "#kept"), ["kept"], [])
    session.open("old.md")
    file_id = session.file_id

    result = command(session, "rename Better")

    assert result.status == "command_rename"
    assert not (vault / "old.md").exists()
    assert (vault / "Better.md").read_text(encoding="utf-8") == "#kept"
    assert session.path == vault / "Better.md"
    assert session.file_id == file_id
    assert session.store.find_file(vault / "Better.md").id == file_id
    assert session.store.tags_for_file(file_id) == ["kept"]


def test_rename_onto_existing_file_fails(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.open(write_note("a.md", ""))
    write_note("b.md", "")

    result = command(session, "rename b")

    assert result.status == "command_error"
    assert result.message == "File exists: b.md"
    assert session.path == vault / "a.md"


def test_find_lists_matching_notes(session: Session, vault: Path) -> None:
    session.store.upsert_file(vault / "projects" / "Roadmap.md")
    session.store.upsert_file(vault / "journal.md")

    result = command(session, "find road")

    assert result.status == "command_find"
    assert isinstance(session.panel, ListPanel)
    assert session.panel.kind == "search"
    assert session.panel.lines() == ["projects/Roadmap.md"]
    assert session.notifications[-1].message == "1 match"


def test_leader_search_prefills_command_line(session: Session) -> None:
    session.feed("\\", "f")

    assert session.mode == "command"
    assert session.context.extras["command_state"]["text"] == "find "


def test_unknown_command_notifies(session: Session) -> None:
    command(session, "frobnicate")

    assert session.notifications[-1] == Notification(
        "error", "Not an editor command: frobnicate"
    )


def test_tag_panel_navigation(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.store.apply_scan(write_note("a.md", "#alpha"), ["alpha"], [])
    session.store.apply_scan(write_note("b.md", "#alpha #beta"), ["alpha", "beta"], [])
    session.open("a.md")

    session.feed("\\", "o", "t")

    assert isinstance(session.panel, ListPanel)
    assert session.panel.lines() == ["#alpha (2)", "#beta (1)"]
    assert session.context.flags["panel_open"] is True

    session.feed("j")
    assert session.panel.index == 1
    assert session.buffer.cursor == (0, 0)
    session.feed("k", "enter")

    assert session.panel.kind == "tag_files"
    assert session.panel.lines() == ["a.md", "b.md"]

    session.feed("j", "enter")

    assert session.path == vault / "b.md"
    assert session.panel is None
    assert session.context.flags["panel_open"] is False


def test_escape_closes_panel(session: Session, write_note: WriteNote) -> None:
    session.store.apply_scan(write_note("a.md", "#alpha"), ["alpha"], [])

    session.feed("\\", "o", "t")
    session.feed("escape")

    assert session.panel is None


def test_backlink_panel(session: Session, write_note: WriteNote) -> None:
    session.store.apply_scan(write_note("a.md", "[[b]]"), [], ["b"])
    session.store.apply_scan(write_note("c.md", "[[B|bee]]"), [], ["B|bee"])
    session.open(write_note("b.md", ""))

    session.feed("\\", "o", "b")

    assert session.panel.title == "Backlinks: b"
    assert session.panel.lines() == ["a.md", "c.md"]
    assert session.notifications[-1].message == "2 backlinks"


def test_follow_link_and_history(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.open(write_note("a.md", "see [[Target]] and #topic"))
    session.buffer.move_cursor_to(0, 7)

    session.feed("enter")

    assert session.path == vault / "Target.md"
    assert (vault / "Target.md").exists()

    session.feed("ctrl+o")
    assert session.path == vault / "a.md"

    session.feed("tab")
    assert session.path == vault / "Target.md"

    session.feed("ctrl+i")
    assert session.notifications[-1].message == "No next file in history"


def test_follow_link_resolves_existing_note_by_name(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.store.upsert_file(write_note("deep/Target Note.md", "here"))
    session.open(write_note("a.md", "[[target note#part]]"))
    session.buffer.move_cursor_to(0, 3)

    session.feed("enter")

    assert session.path == vault / "deep" / "Target Note.md"
    assert session.buffer.text == "here"


def test_follow_tag_opens_tag_files(session: Session, write_note: WriteNote) -> None:
    session.store.apply_scan(write_note("b.md", "#topic"), ["topic"], [])
    session.open(write_note("a.md", "see #Topic"))
    session.buffer.move_cursor_to(0, 6)

    session.feed("enter")

    assert session.panel.kind == "tag_files"
    assert session.panel.lines() == ["b.md"]


def test_history_back_blocked_by_changes(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.open(write_note("a.md", "a"))
    session.open(write_note("b.md", "b"))
    session.feed("x")

    session.feed("ctrl+o")

    assert session.path == vault / "b.md"
    assert session.notifications[-1].level == "error"
    assert session.history == [vault / "a.md", vault / "b.md"]


@pytest.mark.parametrize(
    ("keys", "expected"),
    [
        (("o", "o", "t"), "2024-05-17.md"),
        (("o", "o", "y"), "2024-05-16.md"),
        (("o", "o", "T"), "2024-05-18.md"),
    ],
)
def test_daily_notes(
    session: Session, vault: Path, keys: tuple[str, ...], expected: str
) -> None:
    session.feed("\\", *keys)

    assert session.path == vault / "daily" / expected
    assert session.path.exists()


def test_daily_note_keeps_existing_content(
    session: Session, write_note: WriteNote
) -> None:
    write_note("daily/2024-05-17.md", "# Friday")

    session.feed("\\", "o", "o", "t")

    assert session.buffer.text == "# Friday"


def test_file_tree_paste_updates_index(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    (vault / "archive").mkdir()
    session.store.apply_scan(write_note("a.md", "#x"), ["x"], [])
    session.open("a.md")

    session.feed("\\", "t")

    assert isinstance(session.panel, FileTreePanel)
    assert session.context.flags["file_tree_open"] is True
    assert session.panel.lines() == ["> archive/", "  a.md"]

    session.feed("j", "x", "k", "p")

    assert (vault / "archive" / "a.md").exists()
    assert session.path == vault / "archive" / "a.md"
    assert session.store.find_file(vault / "archive" / "a.md") is not None
    assert session.store.find_file(vault / "a.md") is None
    assert session.notifications[-1].message == "Moved 1 file"


def test_file_tree_sort_keys(session: Session, write_note: WriteNote) -> None:
    write_note("a.md", "")

    session.feed("\\", "t", "s", "n")

    assert session.notifications[-1].message == "Sorted by name (descending)"

    session.feed("s", "t")

    assert session.notifications[-1].message == (
        "Sorted by modification time (ascending)"
    )


def test_tag_completion_while_typing(
    session: Session, write_note: WriteNote
) -> None:
    session.store.apply_scan(write_note("other.md", "#project"), ["project"], [])
    session.open(write_note("note.md", ""))

    session.feed("i", "#", "p")

    assert session.completion.is_open
    assert session.context.flags["completion_active"] is True

    session.feed("tab")

    assert session.buffer.text == "#project"
    assert not session.completion.is_open
    assert session.mode == "insert"

    session.feed("escape")
    assert session.mode == "normal"


def test_completion_escape_dismisses_before_leaving_insert(
    session: Session, write_note: WriteNote
) -> None:
    session.store.apply_scan(write_note("other.md", "#project"), ["project"], [])
    session.open(write_note("note.md", ""))
    session.feed("i", "#")

    session.feed("escape")

    assert not session.completion.is_open
    assert session.mode == "insert"


def test_template_insertion(session: Session, write_note: WriteNote) -> None:
    write_note("templates/meeting.md", "## Attendees\n- ")
    session.open(write_note("note.md", ""))

    session.feed("\\", "i")

    assert session.mode == "insert"
    assert [c.name for c in session.completion.state.candidates] == ["meeting"]

    session.feed("enter")

    assert session.buffer.text == "## Attendees\n- "


def test_template_without_templates_dir(session: Session) -> None:
    session.feed("\\", "i")

    assert session.notifications[-1].message == "No templates in templates"


def test_status_line(session: Session, write_note: WriteNote) -> None:
    assert session.status_line() == "-- NORMAL -- [No Name]  1:1"

    session.open(write_note("n.md", "abc"))
    session.feed("l", "x")

    assert session.status_line() == "-- NORMAL -- n.md [+]  1:2"


def test_scanned_note_feeds_tags_links_and_completion(
    session: Session, write_note: WriteNote, settle: Settle, vault: Path
) -> None:
    session.open(write_note("notes.md", "# Title\n#work [[Plan]]\n"))
    settle(session)

    assert session.store.query_tags() == ["work"]
    links = session.store.backlinks_from(session.file_id)
    assert [(link.target_name, link.dangling) for link in links] == [("Plan", True)]

    session.feed("G", "o", "#", "w")

    assert [c.name for c in session.completion.state.candidates] == ["work"]

    session.feed("escape", "escape")
    session.feed(":", "w", "enter")
    session.open(write_note("Plan.md", ""))

    links = session.store.backlinks_from(session.store.find_file(vault / "notes.md").id)
    assert links[0].resolved_file_id == session.file_id


def test_read_only_index_is_reported_not_raised(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    note = write_note("note.md", "#before")
    session.open(note)
    settle(session)
    session.store._require_conn().execute("PRAGMA query_only = ON")

    session.type_text("A #after")
    session.feed("escape", "escape")
    session.save()

    assert settle(session) == 0
    assert note.read_text(encoding="utf-8") == "#before #after"
    assert session.notifications[-1].level == "warning"
    assert "Index store unusable" in session.notifications[-1].message

    session.save(sync_scan=True)

    assert "Index store unusable" in session.notifications[-1].message


def test_read_only_index_still_opens_new_notes(
    session: Session, write_note: WriteNote
) -> None:
    session.store._require_conn().execute("PRAGMA query_only = ON")

    session.open(write_note("fresh.md", "text"))

    assert session.buffer.text == "text"
    assert session.file_id is None
    assert session.notifications[-1].level == "warning"


def test_completion_lookup_failure_closes_popup(
    session: Session, write_note: WriteNote, monkeypatch: pytest.MonkeyPatch
) -> None:
    session.open(write_note("note.md", ""))

    def broken(*args, **kwargs):
        raise EditorError("Index store unusable at db: disk I/O error")

    monkeypatch.setattr(session.store, "query_autocomplete_candidates", broken)
    session.type_text("i#pr")

    assert session.mode == "insert"
    assert session.buffer.text == "#pr"
    assert session.completion.is_open is False
    assert session.notifications[-1].level == "warning"


def test_scan_worker_queue_drains_between_saves(
    session: Session, write_note: WriteNote, settle: Settle
) -> None:
    session.open(write_note("note.md", ""))

    for round_no in range(5):
        session.type_text(f"A #t{round_no}")
        session.feed("escape", "escape")
        session.save()
        settle(session)
        assert session.worker.pending <= 1

    assert session.worker.pending == 0


class FlakyWrites:
    """Raise a write conflict for the first ``failures`` calls, then delegate."""

    def __init__(self, write, failures: int) -> None:
        self.write = write
        self.failures = failures
        self.calls = 0

    def __call__(self, *args):
        self.calls += 1
        if self.calls <= self.failures:
            raise StoreWriteConflict("write", "database is locked")
        return self.write(*args)


def test_upsert_retries_once_after_conflict(
    session: Session, write_note: WriteNote, monkeypatch: pytest.MonkeyPatch
) -> None:
    flaky = FlakyWrites(session.store.upsert_file, failures=1)
    monkeypatch.setattr(session.store, "upsert_file", flaky)

    session.open(write_note("note.md", "body"))

    assert flaky.calls == 2
    assert session.file_id is not None
    assert all(n.level != "warning" for n in session.notifications)


def test_upsert_reports_repeated_conflict(
    session: Session, write_note: WriteNote, monkeypatch: pytest.MonkeyPatch
) -> None:
    flaky = FlakyWrites(session.store.upsert_file, failures=2)
    monkeypatch.setattr(session.store, "upsert_file", flaky)

    session.open(write_note("note.md", "body"))

    assert flaky.calls == 2
    assert session.file_id is None
    assert session.notifications[-1].level == "warning"
    assert "database is locked" in session.notifications[-1].message


def test_rename_retries_once_after_conflict(
    session: Session, write_note: WriteNote, vault: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    session.store.apply_scan(write_note("old.md", "#kept"), ["kept"], [])
    session.open("old.md")
    file_id = session.file_id
    flaky = FlakyWrites(session.store.rename_file, failures=1)
    monkeypatch.setattr(session.store, "rename_file", flaky)

    result = command(session, "rename New")

    assert result.status == "command_rename"
    assert flaky.calls == 2
    assert session.file_id == file_id
    assert session.store.find_file(vault / "New.md").id == file_id


def test_tree_paste_retries_once_after_conflict(
    session: Session, write_note: WriteNote, vault: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (vault / "archive").mkdir()
    session.store.apply_scan(write_note("a.md", "#x"), ["x"], [])
    flaky = FlakyWrites(session.store.rename_file, failures=1)
    monkeypatch.setattr(session.store, "rename_file", flaky)

    session.feed("\\", "t", "j", "x", "k", "p")

    assert flaky.calls == 2
    assert session.store.find_file(vault / "archive" / "a.md") is not None
    assert session.store.find_file(vault / "a.md") is None


def test_file_tree_delete_drops_index_entry(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.store.apply_scan(write_note("a.md", "#gone"), ["gone"], [])

    session.feed("\\", "t", "j", "d")

    assert not (vault / "a.md").exists()
    assert session.store.find_file(vault / "a.md") is None
    assert session.store.query_tags() == []
    assert session.notifications[-1].message == "Deleted 1 file"


def test_file_tree_refuses_to_delete_directory(session: Session, vault: Path) -> None:
    (vault / "archive").mkdir()

    session.feed("\\", "t", "d")

    assert (vault / "archive").is_dir()
    assert session.notifications[-1] == Notification(
        "error", "Cannot delete directories"
    )


def test_file_tree_rename_prompt(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    session.store.apply_scan(write_note("a.md", "#kept"), ["kept"], [])
    file_id = session.store.find_file(vault / "a.md").id

    session.feed("\\", "t", "r")

    assert session.mode == "command"
    assert session.notifications[-1].message == "Rename to:"

    session.type_text("better")
    session.handle_key("enter")

    assert (vault / "better.md").exists()
    assert not (vault / "a.md").exists()
    assert session.store.find_file(vault / "better.md").id == file_id
    assert isinstance(session.panel, FileTreePanel)
    assert session.panel.selected.path == vault / "better.md"
    assert session.path is None


def test_file_tree_new_note_in_selected_directory(
    session: Session, vault: Path, settle: Settle
) -> None:
    (vault / "archive").mkdir()

    session.feed("\\", "t", "n")

    assert session.notifications[-1].message == "New file name:"

    session.type_text("Later")
    session.handle_key("enter")

    created = vault / "archive" / "Later.md"
    assert created.is_file()
    assert session.notifications[-1].message == "Created new file"
    assert session.store.find_file(created) is not None
    assert session.path is None
    settle(session)


def test_escaped_tree_prompt_does_not_leak_into_rename(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    write_note("a.md", "")
    session.open(write_note("b.md", ""))

    session.feed("\\", "t", "r", "escape")
    command(session, "rename c")

    assert (vault / "a.md").exists()
    assert (vault / "c.md").exists()
    assert session.path == vault / "c.md"


def test_file_tree_range_copy_and_escape(
    session: Session, write_note: WriteNote, vault: Path
) -> None:
    write_note("a.md", "")
    write_note("b.md", "")

    session.feed("\\", "t", "v", "j")

    assert session.context.flags["tree_visual"] is True
    assert session.panel.highlighted() == [0, 1]

    session.feed("escape")

    assert session.context.flags["tree_visual"] is False
    assert isinstance(session.panel, FileTreePanel)

    session.feed("v", "y")

    assert session.notifications[-1].message == "Copied b.md"
    assert session.context.flags["tree_visual"] is False


def test_file_tree_rename_refuses_ranges(session: Session, write_note: WriteNote) -> None:
    write_note("a.md", "")
    write_note("b.md", "")

    session.feed("\\", "t", "v", "j", "r")

    assert session.mode == "normal"
    assert session.notifications[-1] == Notification(
        "error", "Rename only for single file"
    )


def test_file_tree_resize_and_full_screen(session: Session) -> None:
    panels: list = []
    session.bus.subscribe("session.panel", panels.append)

    session.feed("\\", "t", ">", ">")

    assert session.notifications[-1].message == "File tree width 30%"
    assert panels[-1]["width_percent"] == 30

    session.feed("<", "f")

    assert session.notifications[-1].message == "Full-screen file tree"
    assert panels[-1]["width_percent"] == 25
    assert panels[-1]["full"] is True
