"""Undo/redo history as two stacks of immutable entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from vault_editor.runtime import telemetry

from .state import Cursor

DEFAULT_UNDO_LIMIT = 1000


@dataclass(frozen=True, slots=True)
class UndoEntry:
    label: str
    before_text: str
    after_text: str
    cursor_before: Cursor
    cursor_after: Cursor


class UndoTimeline:
    """Linear history: ``undo`` moves an entry to the redo stack and back.

    Any new entry clears the redo stack. With a ``limit`` the oldest entry is
    dropped once the history grows past it; ``None`` keeps everything.
    """

    def __init__(self, *, limit: Optional[int] = DEFAULT_UNDO_LIMIT) -> None:
        self._undo: List[UndoEntry] = []
        self._redo: List[UndoEntry] = []
        self._limit = limit

    def push(self, entry: UndoEntry) -> None:
        self._undo.append(entry)
        if self._limit is not None and len(self._undo) > self._limit:
            dropped = self._undo.pop(0)
            telemetry.record_event(
                "undo.trimmed",
                level="debug",
                data={"limit": self._limit, "label": dropped.label},
            )
        self._redo.clear()

    def can_undo(self) -> bool:
        return bool(self._undo)

    def can_redo(self) -> bool:
        return bool(self._redo)

    def undo(self) -> Optional[UndoEntry]:
        if not self._undo:
            return None
        entry = self._undo.pop()
        self._redo.append(entry)
        return entry

    def redo(self) -> Optional[UndoEntry]:
        if not self._redo:
            return None
        entry = self._redo.pop()
        self._undo.append(entry)
        return entry

    def clear(self) -> None:
        self._undo.clear()
        self._redo.clear()

    @property
    def depth(self) -> tuple[int, int]:
        return len(self._undo), len(self._redo)
