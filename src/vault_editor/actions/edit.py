"""Editing verbs: cut, yank, paste, undo, and insert-mode keys."""

from __future__ import annotations

from typing import Optional, Protocol

from vault_editor.keymaps import ResolutionMatch
from vault_editor.modes.base_mode import ModeContext, ModeResult

from .core import clamp_to_mode, delete_lines, first_nonblank

INDENT = "    "


class CompletionDriver(Protocol):
    """What insert-mode keys need from an open completion list."""

    def accept(self) -> bool: ...

    def move(self, delta: int) -> None: ...

    def dismiss(self) -> None: ...


def delete_char(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, col = buffer.cursor
    line = buffer.line(row)
    if col >= len(line):
        return ModeResult(consumed=True, status="noop")
    register = buffer.state.take_register()
    buffer.registers.yank_to(register, line[col])
    buffer.replace_range((row, col), (row, col + 1), "", label="delete_char")
    clamp_to_mode(context)
    return ModeResult(consumed=True, status="delete_char", message=register)


def delete_line(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, _ = buffer.cursor
    register = buffer.state.take_register()
    removed = delete_lines(buffer, row, row, label="delete_line")
    buffer.registers.yank_to(register, removed, register_type="line")
    return ModeResult(consumed=True, status="delete_line", message=register)


def yank_line(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, _ = buffer.cursor
    register = buffer.state.take_register()
    buffer.registers.yank_to(register, buffer.line(row), register_type="line")
    context.bus.emit("register.yank", {"register": register, "linewise": True})
    return ModeResult(consumed=True, status="yank_line", message=register)


def _paste(context: ModeContext, *, after: bool) -> ModeResult:
    buffer = context.buffer
    register = buffer.state.take_register()
    value = buffer.registers.get(register)
    if not value.text:
        return ModeResult(consumed=True, status="empty_register", message=register)

    row, col = buffer.cursor
    line = buffer.line(row)
    if value.linewise:
        if after:
            buffer.insert((row, len(line)), "\n" + value.text)
            target = row + 1
        else:
            buffer.insert((row, 0), value.text + "\n")
            target = row
        buffer.move_cursor_to(target, first_nonblank(buffer.line(target)))
    else:
        at = min(col + 1, len(line)) if after and line else col
        buffer.insert((row, at), value.text)
        end_row, end_col = buffer.cursor
        buffer.move_cursor_to(end_row, max(0, end_col - 1))
    clamp_to_mode(context)
    return ModeResult(consumed=True, status="paste", message=register)


def paste_after(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return _paste(context, after=True)


def paste_before(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return _paste(context, after=False)


def undo(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    if context.buffer.undo() is None:
        return ModeResult(
            consumed=True, status="undo_empty", message="Already at oldest change"
        )
    clamp_to_mode(context)
    return ModeResult(consumed=True, status="undo")


def redo(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    if context.buffer.redo() is None:
        return ModeResult(
            consumed=True, status="redo_empty", message="Already at newest change"
        )
    clamp_to_mode(context)
    return ModeResult(consumed=True, status="redo")


def select_register(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    """``"a`` style prefix: the register name is the last key of the binding."""

    name = match.binding.sequence.tokens[-1]
    context.buffer.state.active_register = name
    return ModeResult(consumed=True, status="register", message=name)


def insert_text(context: ModeContext, text: str) -> ModeResult:
    context.buffer.insert_text(text)
    return ModeResult(consumed=True, status="insert")


def insert_newline(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return insert_text(context, "\n")


def insert_indent(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return insert_text(context, INDENT)


def backspace(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, col = buffer.cursor
    if col > 0:
        buffer.replace_range((row, col - 1), (row, col), "", label="backspace")
    elif row > 0:
        buffer.replace_range(
            (row - 1, len(buffer.line(row - 1))), (row, 0), "", label="join_lines"
        )
    else:
        return ModeResult(consumed=True, status="noop")
    return ModeResult(consumed=True, status="insert")


def delete_forward(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, col = buffer.cursor
    line = buffer.line(row)
    if col < len(line):
        buffer.replace_range((row, col), (row, col + 1), "", label="delete_forward")
    elif row < buffer.line_count - 1:
        buffer.replace_range((row, col), (row + 1, 0), "", label="join_lines")
    else:
        return ModeResult(consumed=True, status="noop")
    buffer.move_cursor_to(row, col)
    return ModeResult(consumed=True, status="insert")


def _completion(context: ModeContext) -> Optional[CompletionDriver]:
    driver = context.extras.get("completion")
    if driver is None:
        return None
    return driver  # type: ignore[return-value]


def completion_accept(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    driver = _completion(context)
    if driver is None or not driver.accept():
        return ModeResult(consumed=False, status="completion_closed")
    return ModeResult(consumed=True, status="completion_accept")


def completion_next(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    driver = _completion(context)
    if driver is None:
        return ModeResult(consumed=False, status="completion_closed")
    driver.move(1)
    return ModeResult(consumed=True, status="completion_move")


def completion_previous(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    driver = _completion(context)
    if driver is None:
        return ModeResult(consumed=False, status="completion_closed")
    driver.move(-1)
    return ModeResult(consumed=True, status="completion_move")


def completion_dismiss(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    driver = _completion(context)
    if driver is None:
        return ModeResult(consumed=False, status="completion_closed")
    driver.dismiss()
    return ModeResult(consumed=True, status="completion_dismiss")


__all__ = [
    "INDENT",
    "CompletionDriver",
    "delete_char",
    "delete_line",
    "yank_line",
    "paste_after",
    "paste_before",
    "undo",
    "redo",
    "select_register",
    "insert_text",
    "insert_newline",
    "insert_indent",
    "backspace",
    "delete_forward",
    "completion_accept",
    "completion_next",
    "completion_previous",
    "completion_dismiss",
]
