"""High-level buffer façade combining document, state, registers, and undo."""

from __future__ import annotations

from contextlib import AbstractContextManager, contextmanager
from dataclasses import dataclass
from typing import ContextManager, Iterator, Optional, Sequence

from vault_editor.runtime import telemetry

from .document import BufferDocument
from .registers import RegisterBank
from .state import BufferState, Cursor, Selection
from .sync import BufferMirror
from .undo import DEFAULT_UNDO_LIMIT, UndoEntry, UndoTimeline
from .validation import clamp_cursor


@dataclass(slots=True)
class BufferView:
    version: int
    text: str
    cursor: Cursor
    selection: Optional[Selection]


@dataclass(slots=True)
class BufferDelta:
    version: int
    text: str
    cursor: Cursor
    selection: Optional[Selection]
    label: str


@dataclass(slots=True)
class _OpenGroup:
    label: str
    before_text: str
    cursor_before: Cursor
    depth: int = 1


class Buffer:
    def __init__(
        self,
        *,
        name: str = "default",
        document: Optional[BufferDocument] = None,
        state: Optional[BufferState] = None,
        registers: Optional[RegisterBank] = None,
        undo: Optional[UndoTimeline] = None,
        undo_limit: Optional[int] = DEFAULT_UNDO_LIMIT,
    ) -> None:
        self.name = name
        self.document = document or BufferDocument()
        self.state = state or BufferState()
        self.registers = registers or RegisterBank()
        self.undo_history = undo or UndoTimeline(limit=undo_limit)
        self._saved_text = self.document.text
        self._group: Optional[_OpenGroup] = None

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        name: str = "default",
        undo_limit: Optional[int] = DEFAULT_UNDO_LIMIT,
    ) -> "Buffer":
        return cls(
            name=name, document=BufferDocument.from_text(text), undo_limit=undo_limit
        )

    # -- reading ---------------------------------------------------------

    @property
    def text(self) -> str:
        return self.document.text

    @property
    def lines(self) -> Sequence[str]:
        return self.document.snapshot()

    @property
    def line_count(self) -> int:
        return self.document.line_count

    def line(self, row: int) -> str:
        row = max(0, min(row, self.document.line_count - 1))
        return self.document.get_line(row)

    @property
    def cursor(self) -> Cursor:
        return self.state.cursor

    @property
    def selection(self) -> Optional[Selection]:
        return self.state.selection

    @property
    def version(self) -> int:
        return self.document.version

    @property
    def modified(self) -> bool:
        return self.document.text != self._saved_text

    def mark_saved(self) -> None:
        self._saved_text = self.document.text

    def snapshot(self) -> BufferView:
        return BufferView(
            version=self.document.version,
            text=self.document.text,
            cursor=self.state.cursor,
            selection=self.state.selection,
        )

    def mirror(self, *, attributes: Optional[dict[str, str]] = None) -> BufferMirror:
        return BufferMirror(
            text=self.document.text,
            cursor=self.state.cursor,
            selection=self.state.selection,
            modified=self.modified,
            attributes=dict(attributes or {}),
        )

    def get_text_range(self, start: Cursor, end: Cursor) -> str:
        start = clamp_cursor(self.document, start)
        end = clamp_cursor(self.document, end)
        if start > end:
            start, end = end, start
        text = self.document.text
        return text[self.document.offset_of(*start) : self.document.offset_of(*end)]

    # -- editing ---------------------------------------------------------

    def replace_range(
        self, start: Cursor, end: Cursor, text: str, *, label: str
    ) -> BufferDelta:
        start = clamp_cursor(self.document, start)
        end = clamp_cursor(self.document, end)
        if start > end:
            start, end = end, start
        if start == end and not text:
            return self._delta(label)

        with Transaction(self, label) as tx:
            before_text = self.document.text
            cursor_before = self.state.cursor
            start_offset = self.document.offset_of(*start)
            end_offset = self.document.offset_of(*end)
            new_text = before_text[:start_offset] + text + before_text[end_offset:]
            self.document = self.document.with_text(new_text)
            self.state.set_cursor(*self.document.position_of(start_offset + len(text)))
            self.state.preferred_col = None
            self.state.last_change_tick = self.document.version
            tx.commit(before_text, new_text, cursor_before, self.state.cursor)

        return self._delta(label)

    def insert(self, position: Cursor, text: str) -> BufferDelta:
        return self.replace_range(position, position, text, label="insert")

    def insert_text(self, text: str) -> BufferDelta:
        return self.insert(self.state.cursor, text)

    def delete(self, start: Cursor, end: Cursor) -> BufferDelta:
        return self.replace_range(start, end, "", label="delete")

    def reset(self, text: str) -> None:
        """Load new content, dropping history and selection."""

        self.end_all_groups()
        self.document = BufferDocument.from_text(text, version=self.document.version + 1)
        self.state.set_cursor(0, 0)
        self.state.clear_selection()
        self.state.preferred_col = None
        self.undo_history.clear()
        self._saved_text = self.document.text

    # -- cursor ----------------------------------------------------------

    def move_cursor(self, d_row: int = 0, d_col: int = 0) -> Cursor:
        """Relative motion; leaving the first/last line is a no-op."""

        row, col = self.state.cursor
        target_row = row + d_row
        if not 0 <= target_row < self.document.line_count:
            if d_col == 0:
                return self.state.cursor
            target_row = row
        if d_row and not d_col:
            wanted = self.state.preferred_col if self.state.preferred_col is not None else col
            target = clamp_cursor(self.document, (target_row, wanted))
            self.state.preferred_col = wanted
        else:
            target = clamp_cursor(self.document, (target_row, col + d_col))
            self.state.preferred_col = None
        self.state.set_cursor(*target)
        return target

    def move_cursor_to(self, row: int, col: int) -> Cursor:
        target = clamp_cursor(self.document, (row, col))
        self.state.set_cursor(*target)
        self.state.preferred_col = None
        return target

    def set_selection(self, anchor: Cursor, active: Cursor) -> Selection:
        anchor = clamp_cursor(self.document, anchor)
        active = clamp_cursor(self.document, active)
        self.state.set_selection(anchor, active)
        return Selection(anchor, active)

    def clear_selection(self) -> None:
        self.state.clear_selection()

    # -- history ---------------------------------------------------------

    def undo(self) -> Optional[BufferDelta]:
        self.end_all_groups()
        entry = self.undo_history.undo()
        if entry is None:
            return None
        self._restore(entry.before_text, entry.cursor_before)
        return self._delta(f"undo:{entry.label}")

    def redo(self) -> Optional[BufferDelta]:
        self.end_all_groups()
        entry = self.undo_history.redo()
        if entry is None:
            return None
        self._restore(entry.after_text, entry.cursor_after)
        return self._delta(f"redo:{entry.label}")

    def begin_undo_group(self, label: str) -> None:
        if self._group is not None:
            self._group.depth += 1
            return
        self._group = _OpenGroup(
            label=label,
            before_text=self.document.text,
            cursor_before=self.state.cursor,
        )

    def end_undo_group(self) -> None:
        group = self._group
        if group is None:
            return
        group.depth -= 1
        if group.depth > 0:
            return
        self._group = None
        after_text = self.document.text
        if after_text == group.before_text:
            return
        self.undo_history.push(
            UndoEntry(
                label=group.label,
                before_text=group.before_text,
                after_text=after_text,
                cursor_before=group.cursor_before,
                cursor_after=self.state.cursor,
            )
        )

    def end_all_groups(self) -> None:
        if self._group is not None:
            self._group.depth = 1
            self.end_undo_group()

    @contextmanager
    def undo_group(self, label: str) -> Iterator[None]:
        self.begin_undo_group(label)
        try:
            yield
        finally:
            self.end_undo_group()

    @property
    def in_undo_group(self) -> bool:
        return self._group is not None

    def _record(self, entry: UndoEntry) -> None:
        if self._group is None:
            self.undo_history.push(entry)

    def _restore(self, text: str, cursor: Cursor) -> None:
        self.document = self.document.with_text(text)
        self.state.clear_selection()
        self.state.preferred_col = None
        self.state.set_cursor(*clamp_cursor(self.document, cursor))
        self.state.last_change_tick = self.document.version

    def _delta(self, label: str) -> BufferDelta:
        return BufferDelta(
            version=self.document.version,
            text=self.document.text,
            cursor=self.state.cursor,
            selection=self.state.selection,
            label=label,
        )


class Transaction(AbstractContextManager["Transaction"]):
    def __init__(self, buffer: Buffer, label: str) -> None:
        self.buffer = buffer
        self.label = label
        self._span_cm: Optional[ContextManager[object]] = None

    def __enter__(self) -> "Transaction":
        self._span_cm = telemetry.span(
            name=f"buffer::{self.label}",
            component=True,
            metadata={"buffer": self.buffer.name},
        )
        self._span_cm.__enter__()
        return self

    def commit(
        self,
        before_text: str,
        after_text: str,
        cursor_before: Cursor,
        cursor_after: Cursor,
    ) -> None:
        entry = UndoEntry(
            label=self.label,
            before_text=before_text,
            after_text=after_text,
            cursor_before=cursor_before,
            cursor_after=cursor_after,
        )
        self.buffer._record(entry)

    def __exit__(self, exc_type, exc, tb) -> bool:
        if self._span_cm is not None:
            self._span_cm.__exit__(exc_type, exc, tb)
        return False
