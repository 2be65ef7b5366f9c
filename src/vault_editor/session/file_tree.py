"""
File-tree panel over the vault directory.

Directories come first, then Markdown notes; hidden entries are skipped.
Entries are sorted by name or modification time, and choosing the active
key again flips the direction. A range selection (``v``) widens cut, copy
and delete from the entry under the cursor to every note between the
anchor and the cursor. Paste moves or copies the clipboard into the
selected directory (or the directory of the selected note) and reports
what happened so the session can update the index.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

from vault_editor.errors import EditorError

SortKey = Literal["name", "mtime"]
ClipMode = Literal["cut", "copy"]

DEFAULT_WIDTH_PERCENT = 20
MIN_WIDTH_PERCENT = 10
MAX_WIDTH_PERCENT = 50
WIDTH_STEP = 5


@dataclass(frozen=True, slots=True)
class TreeEntry:
    path: Path
    depth: int
    is_dir: bool
    expanded: bool = False

    @property
    def label(self) -> str:
        if self.is_dir:
            marker = "v " if self.expanded else "> "
            return f"{'  ' * self.depth}{marker}{self.path.name}/"
        return f"{'  ' * self.depth}  {self.path.name}"


@dataclass(frozen=True, slots=True)
class PasteOp:
    mode: ClipMode
    source: Path
    destination: Path


def _unique_destination(directory: Path, name: str) -> Path:
    candidate = directory / name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


class FileTreePanel:
    kind = "file_tree"

    def __init__(self, root: Path, *, title: str = "Files") -> None:
        self.root = Path(root)
        self.title = title
        self.sort_key: SortKey = "name"
        self.ascending = True
        self.index = 0
        self.entries: list[TreeEntry] = []
        self._expanded: set[Path] = set()
        self._clipboard: list[Path] = []
        self._clip_mode: Optional[ClipMode] = None
        self.visual_anchor: Optional[int] = None
        self.width_percent = DEFAULT_WIDTH_PERCENT
        self.full = False
        self.refresh()

    # -- listing ----------------------------------------------------------

    def refresh(self) -> None:
        self._expanded = {path for path in self._expanded if path.is_dir()}
        entries: list[TreeEntry] = []
        self._walk(self.root, 0, entries)
        self.entries = entries
        if self.entries:
            self.index = max(0, min(self.index, len(self.entries) - 1))
        else:
            self.index = 0
        if self.visual_anchor is not None and not self.entries:
            self.visual_anchor = None

    def _walk(self, directory: Path, depth: int, out: list[TreeEntry]) -> None:
        try:
            children = [
                child
                for child in directory.iterdir()
                if not child.name.startswith(".")
                and (child.is_dir() or child.suffix.lower() == ".md")
            ]
        except OSError:
            return
        for child in self._sorted(children):
            if child.is_dir():
                expanded = child in self._expanded
                out.append(TreeEntry(child, depth, True, expanded))
                if expanded:
                    self._walk(child, depth + 1, out)
            else:
                out.append(TreeEntry(child, depth, False))

    def _sorted(self, paths: list[Path]) -> list[Path]:
        def sort_value(path: Path):
            if self.sort_key == "mtime":
                try:
                    return path.stat().st_mtime
                except OSError:
                    return 0.0
            return path.name.casefold()

        dirs = sorted(
            (p for p in paths if p.is_dir()), key=sort_value, reverse=not self.ascending
        )
        files = sorted(
            (p for p in paths if not p.is_dir()),
            key=sort_value,
            reverse=not self.ascending,
        )
        return dirs + files

    def lines(self) -> list[str]:
        return [entry.label for entry in self.entries]

    @property
    def selected(self) -> Optional[TreeEntry]:
        if not self.entries:
            return None
        return self.entries[self.index]

    @property
    def visual_active(self) -> bool:
        return self.visual_anchor is not None

    def start_visual(self) -> str:
        self.visual_anchor = self.index
        return "-- VISUAL --"

    def end_visual(self) -> None:
        self.visual_anchor = None

    def highlighted(self) -> list[int]:
        """Indexes covered by the range selection, or just the cursor."""

        if not self.entries:
            return []
        if self.visual_anchor is None:
            return [self.index]
        anchor = min(self.visual_anchor, len(self.entries) - 1)
        low, high = sorted((anchor, self.index))
        return list(range(low, high + 1))

    def selected_entries(self) -> list[TreeEntry]:
        return [self.entries[i] for i in self.highlighted()]

    def move(self, delta: int) -> None:
        if self.entries:
            self.index = max(0, min(len(self.entries) - 1, self.index + delta))

    def toggle(self) -> None:
        """Expand or collapse the selected directory."""

        entry = self.selected
        if entry is None or not entry.is_dir:
            return
        if entry.path in self._expanded:
            self._expanded.discard(entry.path)
        else:
            self._expanded.add(entry.path)
        self.refresh()

    def sort_by(self, key: SortKey) -> str:
        if self.sort_key == key:
            self.ascending = not self.ascending
        else:
            self.sort_key = key
            self.ascending = True
        self.refresh()
        direction = "ascending" if self.ascending else "descending"
        label = "modification time" if key == "mtime" else "name"
        return f"Sorted by {label} ({direction})"

    # -- clipboard --------------------------------------------------------

    @property
    def clipboard(self) -> tuple[Path, ...]:
        return tuple(self._clipboard)

    @property
    def clip_mode(self) -> Optional[ClipMode]:
        return self._clip_mode

    def cut(self) -> str:
        return self._collect("cut")

    def copy(self) -> str:
        return self._collect("copy")

    def _collect(self, mode: ClipMode) -> str:
        notes = [entry.path for entry in self.selected_entries() if not entry.is_dir]
        self.end_visual()
        if not notes:
            return "Select a note to cut or copy"
        self._clipboard = notes
        self._clip_mode = mode
        verb = "Cut" if mode == "cut" else "Copied"
        if len(notes) == 1:
            return f"{verb} {notes[0].name}"
        return f"{verb} {len(notes)} files"

    # -- file operations --------------------------------------------------

    def delete_selected(self) -> list[Path]:
        """Delete the selected notes; directories are refused as a whole."""

        entries = self.selected_entries()
        if not entries:
            raise EditorError("Nothing selected")
        if any(entry.is_dir for entry in entries):
            raise EditorError("Cannot delete directories")
        deleted: list[Path] = []
        try:
            for entry in entries:
                entry.path.unlink()
                deleted.append(entry.path)
        except OSError as exc:
            raise EditorError(f"Delete failed for {entry.path.name}: {exc}") from exc
        finally:
            self._clipboard = [p for p in self._clipboard if p not in deleted]
            self.end_visual()
            self.refresh()
        return deleted

    def rename_source(self) -> Path:
        """The single note a rename applies to."""

        entries = self.selected_entries()
        if len(entries) > 1:
            raise EditorError("Rename only for single file")
        if not entries:
            raise EditorError("Nothing selected")
        if entries[0].is_dir:
            raise EditorError("Cannot rename directories")
        return entries[0].path

    def select_path(self, path: Path) -> None:
        for position, entry in enumerate(self.entries):
            if entry.path == path:
                self.index = position
                return

    # -- layout -----------------------------------------------------------

    def resize(self, steps: int) -> str:
        width = self.width_percent + steps * WIDTH_STEP
        self.width_percent = max(MIN_WIDTH_PERCENT, min(MAX_WIDTH_PERCENT, width))
        return f"File tree width {self.width_percent}%"

    def toggle_full(self) -> str:
        self.full = not self.full
        return "Full-screen file tree" if self.full else "Split file tree"

    def target_directory(self) -> Path:
        entry = self.selected
        if entry is None:
            return self.root
        return entry.path if entry.is_dir else entry.path.parent

    def paste(self) -> list[PasteOp]:
        """Move or copy the clipboard into the target directory.

        A cut clipboard is emptied after one paste; a copy can be pasted
        again.
        """

        if not self._clipboard or self._clip_mode is None:
            return []
        directory = self.target_directory()
        mode = self._clip_mode
        ops: list[PasteOp] = []
        for source in self._clipboard:
            if not source.exists():
                raise EditorError(f"Nothing to paste: {source} no longer exists")
            if mode == "cut" and source.parent == directory:
                continue
            destination = _unique_destination(directory, source.name)
            try:
                if mode == "cut":
                    shutil.move(str(source), str(destination))
                else:
                    shutil.copy2(source, destination)
            except OSError as exc:
                raise EditorError(f"Paste failed for {source.name}: {exc}") from exc
            ops.append(PasteOp(mode, source, destination))
        if mode == "cut":
            self._clipboard = []
            self._clip_mode = None
        self.refresh()
        return ops


__all__ = ["FileTreePanel", "TreeEntry", "PasteOp"]
