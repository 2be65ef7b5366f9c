"""
One editing session over a vault.

The session owns the buffer, the mode manager and the completion list, and
is the only place where the index is written: scan results produced on the
worker thread are handed back through ``process_events`` and applied on
the caller's loop, after a generation check throws away results for text
that has changed since the scan started.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Deque, Dict, Optional, TypeVar, Union

from vault_editor.actions.leader import EDITOR_COMMAND_EVENT, EditorCommand
from vault_editor.buffer import Buffer
from vault_editor.complete import CompletionController, CompletionEngine
from vault_editor.config import EditorConfig
from vault_editor.errors import EditorError, UnsavedChangesError
from vault_editor.index.extract import target_at
from vault_editor.index.scanner import ScanJob, ScannerBridge, ScanWorker
from vault_editor.index.store import MetadataStore, retry_on_conflict
from vault_editor.modes import CommandMode, KeyInput, ModeBus, ModeContext, ModeResult
from vault_editor.modes.mode_manager import ModeManager
from vault_editor.runtime import telemetry

from .file_tree import FileTreePanel
from .panels import ListPanel, file_panel, tag_panel

Panel = Union[ListPanel, FileTreePanel]

NOTIFY_EVENT = "session.notify"
PANEL_EVENT = "session.panel"
OPEN_EVENT = "session.open"
CLOSE_EVENT = "session.close"

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Notification:
    level: str
    message: str


def _note_filename(name: str) -> str:
    name = name.strip()
    return name if name.lower().endswith(".md") else f"{name}.md"


class Session:
    """Buffer, modes, index and scanner for one open note at a time."""

    def __init__(
        self,
        config: EditorConfig,
        store: MetadataStore,
        *,
        bridge: Optional[ScannerBridge] = None,
        worker: Optional[ScanWorker] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.config = config
        self.store = store
        self.bridge = bridge or ScannerBridge(config, store)
        self.worker = worker or ScanWorker(config)
        self._today = today
        self.logger = telemetry.get_logger("vault_editor.session")

        self.buffer = Buffer.from_text(
            "", name="session", undo_limit=config.undo_limit
        )
        self.bus = ModeBus()
        self.context = ModeContext(
            buffer=self.buffer, registers=self.buffer.registers, bus=self.bus
        )
        self.manager = ModeManager.with_default_modes(
            self.context,
            leader=config.leader,
            sequence_timeout_ms=config.sequence_timeout_ms,
        )
        self.engine = CompletionEngine(
            store,
            templates_dir=config.templates_path,
            limit=config.completion_limit,
        )
        self.completion = CompletionController(self.engine, self.context)
        self.context.extras["completion"] = self.completion
        self.context.extras["command_host"] = self

        self.path: Optional[Path] = None
        self.file_id: Optional[int] = None
        self.panel: Optional[Panel] = None
        self.closed = False
        self.notifications: Deque[Notification] = deque(maxlen=50)
        self.history: list[Path] = []
        self._history_index = -1
        self._generations: Dict[str, int] = {}
        self._jobs: Dict[str, ScanJob] = {}
        self._queued: list[EditorCommand] = []
        # set while the command line is prefilled by the file tree's r/n keys
        self._tree_prompt: Optional[tuple[str, Path]] = None
        self._seen_version = self.buffer.version

        self.bus.subscribe(EDITOR_COMMAND_EVENT, self._queue_command)
        self.bus.subscribe("mode.switch", self._on_mode_switch)

    # -- lifecycle --------------------------------------------------------

    def resolve(self, target: Union[str, Path]) -> Path:
        path = Path(target).expanduser()
        if not path.is_absolute():
            path = self.config.base_dir / path
        return path.resolve()

    def open(self, target: Union[str, Path], *, force: bool = False) -> Path:
        return self._open(target, force=force, record=True)

    def _open(self, target: Union[str, Path], *, force: bool, record: bool) -> Path:
        if self.buffer.modified and self.path is not None and not force:
            raise UnsavedChangesError(str(self.path))
        path = self.resolve(target)
        if path.is_dir():
            raise EditorError(f"Is a directory: {path}")
        try:
            text = path.read_text(encoding="utf-8") if path.exists() else ""
        except (OSError, UnicodeDecodeError) as exc:
            raise EditorError(f"Cannot read {path}: {exc}") from exc

        with telemetry.span(
            "session::open", component="session", metadata={"path": str(path)}
        ):
            self.manager.switch_mode("normal")
            self.close_panel()
            self.completion.close()
            self.buffer.reset(text.replace("\r\n", "\n"))
            self._seen_version = self.buffer.version
            self.path = path
            self.file_id = self._upsert(path)
            if path.exists():
                self._submit_scan(path)
            if record:
                self._push_history(path)
        telemetry.record_event("session.open", data={"path": str(path)})
        self.bus.emit(OPEN_EVENT, {"path": str(path), "file_id": self.file_id})
        return path

    def _upsert(self, path: Path) -> Optional[int]:
        return self._store_write("upsert_file", lambda: self.store.upsert_file(path))

    def _store_write(self, operation: str, write: Callable[[], T]) -> Optional[T]:
        """Run an index write; a failure is reported and editing goes on."""

        try:
            return retry_on_conflict(write, operation=operation)
        except EditorError as exc:
            self.notify(str(exc), level="warning")
            return None

    def save(self, *, sync_scan: bool = False) -> str:
        """Write the buffer and rescan; ``sync_scan`` waits for the index."""

        if self.path is None:
            raise EditorError("No file name")
        path = self.path
        text = "\n".join(self.buffer.lines)
        with telemetry.span(
            "session::save", component="session", metadata={"path": str(path)}
        ):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(text, encoding="utf-8")
            except OSError as exc:
                raise EditorError(f"Cannot write {path}: {exc}") from exc
            self.buffer.mark_saved()
            if sync_scan:
                self._invalidate(path)
                try:
                    self.file_id = self.bridge.sync(path)
                except EditorError as exc:
                    self.notify(str(exc), level="warning")
            else:
                self._submit_scan(path)
        telemetry.record_event(
            "session.save", data={"path": str(path), "sync": sync_scan}
        )
        return f'"{self._display(path)}" {self.buffer.line_count}L written'

    def close(self, *, force: bool = False) -> None:
        if self.buffer.modified and not force:
            raise UnsavedChangesError(str(self.path or "[No Name]"))
        self.worker.cancel_all()
        self._jobs.clear()
        for key in list(self._generations):
            self._generations[key] += 1
        self.closed = True
        telemetry.record_event("session.close", data={"path": str(self.path)})
        self.bus.emit(CLOSE_EVENT, {"path": str(self.path) if self.path else None})

    def shutdown(self) -> None:
        """Stop the worker thread; the store stays open for its owner."""

        self.worker.stop()

    # -- input ------------------------------------------------------------

    def handle_key(self, key: Union[KeyInput, str]) -> ModeResult:
        if isinstance(key, str):
            key = KeyInput.parse(key)
        result = self.manager.handle_key(key)
        self._drain_commands()
        self._after_input()
        if result.status == "command_error" and result.message:
            self.notify(result.message, level="error")
        elif result.status.startswith("command_") and result.message:
            self.notify(result.message)
        return result

    def feed(self, *tokens: str) -> list[ModeResult]:
        """Dispatch several key tokens in order (scripted input, tests)."""

        return [self.handle_key(token) for token in tokens]

    def type_text(self, text: str) -> list[ModeResult]:
        return [self.handle_key(KeyInput(key=ch, text=ch)) for ch in text]

    def process_events(self) -> int:
        """Apply finished scans and fire expired key timeouts.

        Returns how many scan results were applied.
        """

        applied = 0
        for outcome in self.worker.poll():
            current = self._generations.get(outcome.path)
            if outcome.generation != current:
                telemetry.record_event(
                    "scan.discarded",
                    level="debug",
                    data={"path": outcome.path, "generation": outcome.generation},
                )
                continue
            self._jobs.pop(outcome.path, None)
            if outcome.error is not None:
                if outcome.error.reason != "cancelled":
                    telemetry.record_event(
                        "scan.failed",
                        level="warning",
                        data={"path": outcome.path, "reason": outcome.error.reason},
                    )
                    self.notify(str(outcome.error), level="warning")
                continue
            if outcome.result is None:
                continue
            try:
                file_id = self.bridge.apply(outcome.result)
            except EditorError as exc:
                telemetry.record_event(
                    "scan.failed",
                    level="warning",
                    data={"path": outcome.path, "reason": type(exc).__name__},
                )
                self.notify(str(exc), level="warning")
                continue
            applied += 1
            if self.path is not None and str(self.path) == outcome.path:
                self.file_id = file_id

        if self.manager.has_pending_timeout():
            self.manager.process_timeouts()
            self._drain_commands()
            self._after_input()
        return applied

    def _after_input(self) -> None:
        if self.buffer.version != self._seen_version:
            self._seen_version = self.buffer.version
            if self.path is not None:
                self._invalidate(self.path)
            if self.context.flags.get("insert_active"):
                try:
                    self.completion.refresh()
                except EditorError as exc:
                    self.completion.close()
                    self.notify(str(exc), level="warning")

    def _on_mode_switch(self, payload: object) -> None:
        if not isinstance(payload, dict):
            return
        if payload.get("mode") != "insert":
            self.completion.close()
        if payload.get("mode") != "command":
            self._tree_prompt = None

    # -- scans ------------------------------------------------------------

    def _bump(self, path: Path) -> int:
        key = str(path)
        self._generations[key] = self._generations.get(key, 0) + 1
        return self._generations[key]

    def _invalidate(self, path: Path) -> None:
        """Make any in-flight scan of ``path`` stale and stop it."""

        self._bump(path)
        job = self._jobs.pop(str(path), None)
        if job is not None:
            job.cancel()

    def _submit_scan(self, path: Path) -> ScanJob:
        self._invalidate(path)
        job = self.worker.submit(path, self._generations[str(path)])
        self._jobs[str(path)] = job
        return job

    def generation(self, path: Optional[Path] = None) -> int:
        target = path or self.path
        return self._generations.get(str(target), 0) if target else 0

    @property
    def scan_pending(self) -> bool:
        return bool(self._jobs)

    # -- CommandHost ------------------------------------------------------

    def write(self, *, force: bool = False) -> str:
        del force
        return self.save()

    def quit(self, *, force: bool = False) -> str:
        self.close(force=force)
        return "closed"

    def write_quit(self) -> str:
        message = self.save(sync_scan=True)
        self.close()
        return message

    def edit(self, target: str) -> str:
        force = target.startswith("!")
        path = self.open(target.lstrip("!").strip(), force=force)
        return f'"{self._display(path)}"'

    def new_note(self, name: str) -> str:
        prompt = self._take_tree_prompt("new")
        if prompt is not None:
            return self._tree_new(prompt, name)
        path = self.resolve(_note_filename(name))
        self._create_if_missing(path)
        self.open(path)
        return f'"{self._display(path)}" created'

    def rename(self, name: str) -> str:
        prompt = self._take_tree_prompt("rename")
        if prompt is not None:
            return self._tree_rename(prompt, name)
        if self.path is None:
            raise EditorError("No file name")
        new = self._rename_path(self.path, name)
        return f'Renamed to "{self._display(new)}"'

    def _rename_path(self, old: Path, name: str) -> Path:
        new = old.parent / _note_filename(Path(name).name)
        if new.exists() and new != old:
            raise EditorError(f"File exists: {self._display(new)}")
        try:
            if old.exists():
                old.rename(new)
        except OSError as exc:
            raise EditorError(f"Cannot rename {old.name}: {exc}") from exc
        self._invalidate(old)
        file_id = self._store_write(
            "rename_file", lambda: self.store.rename_file(old, new)
        )
        if self.path == old:
            self.file_id = file_id if file_id is not None else self._upsert(new)
        elif file_id is None:
            self._upsert(new)
        self._moved(old, new)
        if new.exists():
            self._submit_scan(new)
        return new

    def find(self, query: str) -> str:
        results = self.store.search_files(query)
        title = f"Search: {query}" if query else "All notes"
        self.show_panel(file_panel(title, results, kind="search"))
        return f"{len(results)} match{'es' if len(results) != 1 else ''}"

    # -- editor commands --------------------------------------------------

    def _queue_command(self, payload: object) -> None:
        if isinstance(payload, EditorCommand):
            self._queued.append(payload)

    def _drain_commands(self) -> None:
        while self._queued:
            command = self._queued.pop(0)
            try:
                message = self.execute(command)
            except EditorError as exc:
                self.notify(str(exc), level="error")
                continue
            if message:
                self.notify(message)

    def execute(self, command: EditorCommand) -> Optional[str]:
        """Run one abstract command; returns a status message, if any."""

        with telemetry.span(
            "session::command",
            component="session",
            metadata={"command": command.value},
        ):
            handler = self._handlers().get(command)
            if handler is None:
                return None
            return handler()

    def _handlers(self) -> Dict[EditorCommand, Callable[[], Optional[str]]]:
        return {
            EditorCommand.OPEN_TAGS: self.open_tag_panel,
            EditorCommand.OPEN_BACKLINKS: self.open_backlink_panel,
            EditorCommand.SEARCH_FILES: self.start_search,
            EditorCommand.NOTE_TODAY: lambda: self.open_dated_note(0),
            EditorCommand.NOTE_YESTERDAY: lambda: self.open_dated_note(-1),
            EditorCommand.NOTE_TOMORROW: lambda: self.open_dated_note(1),
            EditorCommand.OPEN_FILE_TREE: self.open_file_tree,
            EditorCommand.INSERT_TEMPLATE: self.start_template,
            EditorCommand.FOLLOW_LINK: self.follow_link,
            EditorCommand.HISTORY_BACK: self.back,
            EditorCommand.HISTORY_FORWARD: self.forward,
            EditorCommand.PANEL_DOWN: lambda: self._panel_move(1),
            EditorCommand.PANEL_UP: lambda: self._panel_move(-1),
            EditorCommand.PANEL_OPEN: self.panel_open_selected,
            EditorCommand.PANEL_CLOSE: self.close_panel,
            EditorCommand.TREE_CUT: lambda: self._tree_call(FileTreePanel.cut),
            EditorCommand.TREE_COPY: lambda: self._tree_call(FileTreePanel.copy),
            EditorCommand.TREE_PASTE: self.tree_paste,
            EditorCommand.TREE_SORT_MTIME: lambda: self._tree_call(
                lambda tree: tree.sort_by("mtime")
            ),
            EditorCommand.TREE_SORT_NAME: lambda: self._tree_call(
                lambda tree: tree.sort_by("name")
            ),
            EditorCommand.TREE_DELETE: self.tree_delete,
            EditorCommand.TREE_RENAME: self.tree_prompt_rename,
            EditorCommand.TREE_NEW: self.tree_prompt_new,
            EditorCommand.TREE_VISUAL: self.tree_visual,
            EditorCommand.TREE_VISUAL_EXIT: self.tree_visual_exit,
            EditorCommand.TREE_SHRINK: lambda: self._tree_call(
                lambda tree: tree.resize(-1)
            ),
            EditorCommand.TREE_GROW: lambda: self._tree_call(
                lambda tree: tree.resize(1)
            ),
            EditorCommand.TREE_FULL: lambda: self._tree_call(
                FileTreePanel.toggle_full
            ),
        }

    def open_tag_panel(self) -> str:
        tags = self.store.all_tags()
        self.show_panel(tag_panel(tags))
        return f"{len(tags)} tags"

    def open_tag_files(self, tag: str) -> str:
        files = self.store.files_with_tag(tag)
        self.show_panel(file_panel(f"#{tag}", files, kind="tag_files"))
        return f"{len(files)} notes tagged #{tag}"

    def open_backlink_panel(self) -> str:
        if self.file_id is None:
            raise EditorError("Current note is not indexed")
        sources = self.store.query_backlinks_to(self.file_id)
        title = f"Backlinks: {self.path.stem if self.path else ''}"
        self.show_panel(file_panel(title, sources, kind="backlinks"))
        return f"{len(sources)} backlinks"

    def start_search(self) -> None:
        self.manager.switch_mode("command")
        mode = self.manager.get_mode("command")
        if isinstance(mode, CommandMode):
            mode.set_text("find ")

    def start_template(self) -> Optional[str]:
        self.manager.switch_mode("insert")
        if not self.completion.open_template():
            return f"No templates in {self._display(self.config.templates_path)}"
        return None

    def open_dated_note(self, offset_days: int) -> str:
        day = self._today() + timedelta(days=offset_days)
        path = self.resolve(day.strftime(self.config.daily_note_format))
        self._create_if_missing(path)
        self.open(path)
        return f'"{self._display(path)}"'

    def follow_link(self) -> Optional[str]:
        row, col = self.buffer.cursor
        found = target_at(self.buffer.line(row), col)
        if found is None:
            return None
        kind, value = found
        if kind == "tag":
            return self.open_tag_files(value)
        record = self.store.find_file_by_name(value)
        if record is not None:
            path = self.store.absolute_path(record)
        else:
            path = self.resolve(_note_filename(value))
            self._create_if_missing(path)
        self.open(path)
        return f'"{self._display(path)}"'

    def back(self) -> str:
        if self._history_index <= 0:
            return "No previous file in history"
        self._history_index -= 1
        try:
            self._open(self.history[self._history_index], force=False, record=False)
        except EditorError:
            self._history_index += 1
            raise
        return f'"{self._display(self.history[self._history_index])}"'

    def forward(self) -> str:
        if self._history_index >= len(self.history) - 1:
            return "No next file in history"
        self._history_index += 1
        try:
            self._open(self.history[self._history_index], force=False, record=False)
        except EditorError:
            self._history_index -= 1
            raise
        return f'"{self._display(self.history[self._history_index])}"'

    def _push_history(self, path: Path) -> None:
        if 0 <= self._history_index < len(self.history):
            if self.history[self._history_index] == path:
                return
        del self.history[self._history_index + 1 :]
        self.history.append(path)
        self._history_index = len(self.history) - 1

    # -- panels -----------------------------------------------------------

    def show_panel(self, panel: Panel) -> None:
        self.panel = panel
        self.context.set_flag("panel_open", True)
        self.context.set_flag("file_tree_open", isinstance(panel, FileTreePanel))
        self.context.set_flag("tree_visual", False)
        self._publish_panel()

    def close_panel(self) -> None:
        if self.panel is None:
            return
        self.panel = None
        self.context.set_flag("panel_open", False)
        self.context.set_flag("file_tree_open", False)
        self.context.set_flag("tree_visual", False)
        self._publish_panel()

    def open_file_tree(self) -> None:
        self.show_panel(FileTreePanel(self.config.base_dir))

    def _panel_move(self, delta: int) -> None:
        if self.panel is not None:
            self.panel.move(delta)
            self._publish_panel()

    def panel_open_selected(self) -> Optional[str]:
        panel = self.panel
        if isinstance(panel, FileTreePanel):
            entry = panel.selected
            if entry is None:
                return None
            if entry.is_dir:
                panel.toggle()
                self._publish_panel()
                return None
            self.open(entry.path)
            return f'"{self._display(entry.path)}"'
        if isinstance(panel, ListPanel):
            item = panel.selected
            if item is None:
                return None
            if item.kind == "tag":
                return self.open_tag_files(item.value)
            path = self.resolve(item.value)
            self.open(path)
            return f'"{self._display(path)}"'
        return None

    def _tree_call(
        self, call: Callable[[FileTreePanel], Optional[str]]
    ) -> Optional[str]:
        if not isinstance(self.panel, FileTreePanel):
            return None
        message = call(self.panel)
        self._sync_tree_flags()
        self._publish_panel()
        return message

    def tree_paste(self) -> Optional[str]:
        tree = self.panel
        if not isinstance(tree, FileTreePanel):
            return None
        ops = tree.paste()
        for op in ops:
            if op.mode == "cut":
                self._store_write(
                    "rename_file",
                    lambda op=op: self.store.rename_file(op.source, op.destination),
                )
                self._moved(op.source.resolve(), op.destination.resolve())
            self._submit_scan(op.destination.resolve())
        self._publish_panel()
        if not ops:
            return "Nothing to paste"
        verb = "Moved" if ops[0].mode == "cut" else "Copied"
        return f"{verb} {len(ops)} file{'s' if len(ops) != 1 else ''}"

    def tree_delete(self) -> Optional[str]:
        tree = self.panel
        if not isinstance(tree, FileTreePanel):
            return None
        try:
            deleted = tree.delete_selected()
        finally:
            self._sync_tree_flags()
        for path in deleted:
            self._invalidate(path)
            self._store_write(
                "remove_file", lambda path=path: self.store.remove_file(path)
            )
            if self.path == path:
                self.file_id = None
        self._publish_panel()
        return f"Deleted {len(deleted)} file{'s' if len(deleted) != 1 else ''}"

    def tree_prompt_rename(self) -> Optional[str]:
        tree = self.panel
        if not isinstance(tree, FileTreePanel):
            return None
        source = tree.rename_source()
        self._prompt_from_tree("rename", source, "rename ")
        return "Rename to:"

    def tree_prompt_new(self) -> Optional[str]:
        tree = self.panel
        if not isinstance(tree, FileTreePanel):
            return None
        self._prompt_from_tree("new", tree.target_directory(), "new ")
        return "New file name:"

    def tree_visual(self) -> Optional[str]:
        def toggle(tree: FileTreePanel) -> Optional[str]:
            if tree.visual_active:
                tree.end_visual()
                return None
            return tree.start_visual()

        return self._tree_call(toggle)

    def tree_visual_exit(self) -> Optional[str]:
        return self._tree_call(FileTreePanel.end_visual)

    def _prompt_from_tree(self, kind: str, target: Path, text: str) -> None:
        self.manager.switch_mode("command")
        self._tree_prompt = (kind, target)
        mode = self.manager.get_mode("command")
        if isinstance(mode, CommandMode):
            mode.set_text(text)

    def _take_tree_prompt(self, kind: str) -> Optional[Path]:
        prompt, self._tree_prompt = self._tree_prompt, None
        if prompt is None or prompt[0] != kind:
            return None
        return prompt[1]

    def _tree_rename(self, source: Path, name: str) -> str:
        new = self._rename_path(source, name)
        self._reselect_tree(new)
        return f'Renamed to "{self._display(new)}"'

    def _tree_new(self, directory: Path, name: str) -> str:
        path = directory / _note_filename(Path(name).name)
        if path.exists():
            raise EditorError(f"File exists: {self._display(path)}")
        self._create_if_missing(path)
        self._upsert(path)
        self._submit_scan(path)
        self._reselect_tree(path)
        return "Created new file"

    def _reselect_tree(self, path: Path) -> None:
        tree = self.panel
        if isinstance(tree, FileTreePanel):
            tree.refresh()
            tree.select_path(path)
            self._publish_panel()

    def _sync_tree_flags(self) -> None:
        tree = self.panel
        visual = isinstance(tree, FileTreePanel) and tree.visual_active
        self.context.set_flag("tree_visual", visual)

    def _publish_panel(self) -> None:
        panel = self.panel
        payload = None
        if panel is not None:
            payload = {
                "title": panel.title,
                "kind": panel.kind,
                "lines": panel.lines(),
                "index": panel.index,
            }
            if isinstance(panel, FileTreePanel):
                payload["highlight"] = panel.highlighted()
                payload["width_percent"] = panel.width_percent
                payload["full"] = panel.full
        self.bus.emit(PANEL_EVENT, payload)

    # -- helpers ----------------------------------------------------------

    def _moved(self, old: Path, new: Path) -> None:
        if self.path == old:
            self.path = new
        self.history = [new if entry == old else entry for entry in self.history]
        self._generations.pop(str(old), None)

    def _create_if_missing(self, path: Path) -> None:
        if path.exists():
            return
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch()
        except OSError as exc:
            raise EditorError(f"Cannot create {path}: {exc}") from exc

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self.config.base_dir).as_posix()
        except ValueError:
            return str(path)

    def notify(self, message: str, *, level: str = "info") -> None:
        note = Notification(level=level, message=message)
        self.notifications.append(note)
        method = getattr(self.logger, level if level != "warn" else "warning", None)
        if method is not None:
            method(message)
        self.bus.emit(NOTIFY_EVENT, note)

    @property
    def mode(self) -> Optional[str]:
        return self.manager.active_name

    def status_line(self) -> str:
        name = self._display(self.path) if self.path else "[No Name]"
        flag = " [+]" if self.buffer.modified else ""
        row, col = self.buffer.cursor
        mode = (self.mode or "").upper()
        return f"-- {mode} -- {name}{flag}  {row + 1}:{col + 1}"


__all__ = ["Session", "Notification", "NOTIFY_EVENT", "PANEL_EVENT"]
