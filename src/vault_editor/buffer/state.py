"""Cursor, selection, and change tracking state for buffers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple

Cursor = Tuple[int, int]  # (row, column)


class Selection(NamedTuple):
    """Anchor/active pair; ``start``/``end`` give the normalized range."""

    anchor: Cursor
    active: Cursor

    @property
    def start(self) -> Cursor:
        return min(self.anchor, self.active)

    @property
    def end(self) -> Cursor:
        return max(self.anchor, self.active)


@dataclass(slots=True)
class BufferState:
    """Mutable cursor + selection info tied to a BufferDocument version."""

    cursor: Cursor = (0, 0)
    selection: Optional[Selection] = None
    active_register: str = '"'
    preferred_col: Optional[int] = None
    last_change_tick: int = 0

    def set_cursor(self, row: int, col: int) -> None:
        self.cursor = (row, col)

    def clear_selection(self) -> None:
        self.selection = None

    def set_selection(self, anchor: Cursor, active: Cursor) -> None:
        self.selection = Selection(anchor, active)

    def take_register(self) -> str:
        """Return the register chosen for the next command and reset it."""

        name = self.active_register or '"'
        self.active_register = '"'
        return name
