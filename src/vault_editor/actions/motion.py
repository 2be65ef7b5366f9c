"""Cursor motions shared by normal, visual and insert mode."""

from __future__ import annotations

from typing import Sequence

from vault_editor.buffer import Cursor
from vault_editor.keymaps import ResolutionMatch
from vault_editor.modes.base_mode import ModeContext, ModeResult

from .core import first_nonblank, max_col, refresh_selection


def _char_class(char: str) -> str:
    if char.isspace():
        return "space"
    if char.isalnum() or char == "_":
        return "word"
    return "punct"


def next_word_start(lines: Sequence[str], row: int, col: int) -> Cursor:
    line = lines[row]
    i = col
    if i < len(line) and not line[i].isspace():
        current = _char_class(line[i])
        while i < len(line) and _char_class(line[i]) == current:
            i += 1
    while i < len(line) and line[i].isspace():
        i += 1
    if i < len(line):
        return (row, i)
    for next_row in range(row + 1, len(lines)):
        candidate = lines[next_row]
        if not candidate.strip():
            if not candidate:
                return (next_row, 0)
            continue
        return (next_row, first_nonblank(candidate))
    return (row, max(0, len(line) - 1))


def previous_word_start(lines: Sequence[str], row: int, col: int) -> Cursor:
    current_row, limit = row, col
    while True:
        line = lines[current_row]
        i = min(limit, len(line)) - 1
        while i >= 0 and line[i].isspace():
            i -= 1
        if i >= 0:
            kind = _char_class(line[i])
            while i > 0 and _char_class(line[i - 1]) == kind:
                i -= 1
            return (current_row, i)
        if current_row == 0:
            return (0, 0)
        current_row -= 1
        limit = len(lines[current_row])
        if not lines[current_row]:
            return (current_row, 0)


def _move_to(context: ModeContext, row: int, col: int) -> ModeResult:
    buffer = context.buffer
    row = max(0, min(row, buffer.line_count - 1))
    buffer.move_cursor_to(row, min(col, max_col(context, buffer.line(row))))
    refresh_selection(context)
    return ModeResult(consumed=True, status="motion")


def _move_vertical(context: ModeContext, delta: int) -> ModeResult:
    buffer = context.buffer
    row, col = buffer.move_cursor(delta, 0)
    limit = max_col(context, buffer.line(row))
    if col > limit:
        # keep the preferred column for the next vertical move
        buffer.state.set_cursor(row, limit)
    refresh_selection(context)
    return ModeResult(consumed=True, status="motion")


def move_left(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    return _move_to(context, row, max(0, col - 1))


def move_right(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    return _move_to(context, row, col + 1)


def move_up(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return _move_vertical(context, -1)


def move_down(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return _move_vertical(context, 1)


def line_start(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, _ = context.buffer.cursor
    return _move_to(context, row, 0)


def line_end(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, _ = context.buffer.cursor
    return _move_to(context, row, len(context.buffer.line(row)))


def line_first_nonblank(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, _ = context.buffer.cursor
    return _move_to(context, row, first_nonblank(context.buffer.line(row)))


def word_forward(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    return _move_to(context, *next_word_start(context.buffer.lines, row, col))


def word_backward(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    return _move_to(context, *previous_word_start(context.buffer.lines, row, col))


def buffer_start(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return _move_to(context, 0, first_nonblank(context.buffer.line(0)))


def buffer_end(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    last = context.buffer.line_count - 1
    return _move_to(context, last, first_nonblank(context.buffer.line(last)))


__all__ = [
    "next_word_start",
    "previous_word_start",
    "move_left",
    "move_right",
    "move_up",
    "move_down",
    "line_start",
    "line_end",
    "line_first_nonblank",
    "word_forward",
    "word_backward",
    "buffer_start",
    "buffer_end",
]
