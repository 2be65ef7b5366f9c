"""Core action implementations and helpers shared across modes."""

from __future__ import annotations

from typing import MutableMapping, cast

from vault_editor.buffer import Buffer, Cursor
from vault_editor.keymaps import ResolutionMatch
from vault_editor.modes.base_mode import ModeContext, ModeResult


def first_nonblank(line: str) -> int:
    return len(line) - len(line.lstrip(" \t")) if line.strip() else 0


def max_col(context: ModeContext, line: str) -> int:
    """Last reachable column: past the end only while typing."""

    if context.flags.get("insert_active", False):
        return len(line)
    return max(0, len(line) - 1)


def clamp_to_mode(context: ModeContext) -> Cursor:
    buffer = context.buffer
    row, col = buffer.cursor
    limit = max_col(context, buffer.line(row))
    if col > limit:
        buffer.state.set_cursor(row, limit)
    return buffer.cursor


def visual_state(context: ModeContext) -> MutableMapping[str, object]:
    state = cast(
        MutableMapping[str, object], context.extras.setdefault("visual_state", {})
    )
    if "anchor" not in state:
        state["anchor"] = context.buffer.cursor
    return state


def refresh_selection(context: ModeContext) -> None:
    """Stretch the visual selection to the cursor when visual mode is active."""

    if not context.flags.get("visual_active", False):
        return
    state = visual_state(context)
    anchor = cast(Cursor, state["anchor"])
    cursor = context.buffer.cursor
    context.buffer.set_selection(anchor, cursor)
    context.bus.emit(
        "visual.selection",
        {"anchor": anchor, "cursor": cursor, "block": bool(state.get("block"))},
    )


def delete_lines(buffer: Buffer, first: int, last: int, *, label: str) -> str:
    """Remove whole lines ``first..last`` and return them joined by newlines."""

    lines = buffer.lines
    last = min(last, len(lines) - 1)
    removed = "\n".join(lines[first : last + 1])
    if last + 1 < len(lines):
        start, end = (first, 0), (last + 1, 0)
    elif first > 0:
        start, end = (first - 1, len(lines[first - 1])), (last, len(lines[last]))
    else:
        start, end = (0, 0), (last, len(lines[last]))
    buffer.replace_range(start, end, "", label=label)
    row = min(first, buffer.line_count - 1)
    buffer.move_cursor_to(row, first_nonblank(buffer.line(row)))
    return removed


def enter_insert_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def insert_after(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    if context.buffer.line(row):
        context.buffer.move_cursor_to(row, col + 1)
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def insert_at_line_end(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, _ = context.buffer.cursor
    context.buffer.move_cursor_to(row, len(context.buffer.line(row)))
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def insert_at_line_start(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, _ = context.buffer.cursor
    context.buffer.move_cursor_to(row, first_nonblank(context.buffer.line(row)))
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def open_line_below(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, _ = buffer.cursor
    # the new line joins the insert session's undo group
    buffer.begin_undo_group("insert")
    buffer.insert((row, len(buffer.line(row))), "\n")
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def open_line_above(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    buffer = context.buffer
    row, _ = buffer.cursor
    buffer.begin_undo_group("insert")
    buffer.insert((row, 0), "\n")
    buffer.move_cursor_to(row, 0)
    return ModeResult(consumed=True, switch_to="insert", message="enter_insert")


def exit_insert_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    row, col = context.buffer.cursor
    if col > 0:
        context.buffer.move_cursor_to(row, col - 1)
    return ModeResult(consumed=True, switch_to="normal", message="exit_insert")


def exit_to_normal_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return ModeResult(consumed=True, switch_to="normal", message="exit_to_normal")


def enter_visual_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    state = visual_state(context)
    state["linewise"] = False
    state["block"] = False
    return ModeResult(consumed=True, switch_to="visual", message="enter_visual")


def enter_visual_line_mode(
    context: ModeContext, match: ResolutionMatch
) -> ModeResult:
    del match
    state = visual_state(context)
    state["linewise"] = True
    state["block"] = False
    return ModeResult(consumed=True, switch_to="visual", message="enter_visual_line")


def enter_visual_block_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    state = visual_state(context)
    state["linewise"] = False
    state["block"] = True
    return ModeResult(consumed=True, switch_to="visual", message="enter_visual_block")


def enter_command_mode(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    return ModeResult(consumed=True, switch_to="command", message="enter_command")


def cancel(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    del match
    context.buffer.state.active_register = '"'
    return ModeResult(consumed=True, status="cancel")


__all__ = [
    "first_nonblank",
    "max_col",
    "clamp_to_mode",
    "visual_state",
    "refresh_selection",
    "delete_lines",
    "enter_insert_mode",
    "insert_after",
    "insert_at_line_end",
    "insert_at_line_start",
    "open_line_below",
    "open_line_above",
    "exit_insert_mode",
    "exit_to_normal_mode",
    "enter_visual_block_mode",
    "enter_visual_mode",
    "enter_visual_line_mode",
    "enter_command_mode",
    "cancel",
]
