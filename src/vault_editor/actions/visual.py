"""Actions dedicated to Visual mode selection management.

Selections are inclusive: the character under the cursor belongs to the
selection. Line-wise selections (``V``) always cover whole lines. Block
selections (``ctrl+v``) cover the same columns on every selected row.
"""

from __future__ import annotations

from typing import Optional, Tuple, cast

from vault_editor.buffer import Cursor
from vault_editor.modes.base_mode import ModeContext, ModeResult
from vault_editor.modes.block_insert_mode import (
    backspace_in_block,
    block_insert_state,
    start_block_insert,
)

from .core import clamp_to_mode, delete_lines, refresh_selection, visual_state

SelectionSpan = Tuple[Cursor, Cursor, bool]
BlockBounds = Tuple[int, int, int, int]


def selection_span(context: ModeContext) -> Optional[SelectionSpan]:
    """Return ``(start, end_exclusive, linewise)`` for the active selection."""

    buffer = context.buffer
    selection = buffer.selection
    if selection is None:
        return None
    start, end = selection.start, selection.end
    linewise = bool(visual_state(context).get("linewise", False))
    if linewise:
        return (start[0], 0), (end[0], len(buffer.line(end[0]))), True
    end_row, end_col = end
    if end_col < len(buffer.line(end_row)):
        return start, (end_row, end_col + 1), False
    if end_row < buffer.line_count - 1:
        return start, (end_row + 1, 0), False
    return start, end, False


def _selected_text(context: ModeContext, span: SelectionSpan) -> str:
    start, end, linewise = span
    if linewise:
        return "\n".join(context.buffer.lines[start[0] : end[0] + 1])
    return context.buffer.get_text_range(start, end)


def yank_selection(context: ModeContext, match) -> ModeResult:
    del match
    if _is_block(context):
        return _yank_block(context)
    span = selection_span(context)
    if span is None:
        return ModeResult(consumed=False, status="no_selection")
    start, end, linewise = span
    text = _selected_text(context, span)
    register_name = context.buffer.state.take_register()
    context.buffer.registers.yank_to(
        register_name, text, register_type="line" if linewise else "character"
    )
    context.buffer.move_cursor_to(*start)
    context.bus.emit(
        "visual.yank",
        {"register": register_name, "text": text, "range": (start, end)},
    )
    return ModeResult(
        consumed=True, switch_to="normal", status="visual_yank", message=register_name
    )


def swap_anchor(context: ModeContext, match) -> ModeResult:
    del match
    state = visual_state(context)
    cursor = context.buffer.cursor
    anchor = cast(Cursor, state.get("anchor", cursor))
    state["anchor"] = cursor
    context.buffer.move_cursor_to(*anchor)
    context.buffer.set_selection(cursor, anchor)
    context.bus.emit(
        "visual.selection",
        {"anchor": cursor, "cursor": anchor, "swap": True},
    )
    return ModeResult(consumed=True, status="visual_swap")


def toggle_linewise(context: ModeContext, match) -> ModeResult:
    del match
    state = visual_state(context)
    state["linewise"] = not bool(state.get("linewise", False))
    state["block"] = False
    refresh_selection(context)
    return ModeResult(consumed=True, status="visual_linewise")


def delete_selection(context: ModeContext, match) -> ModeResult:
    del match
    if _is_block(context):
        text = _delete_block(context, label="visual_block_delete")
        return ModeResult(
            consumed=True, switch_to="normal", status="visual_delete", message=text
        )
    text = _delete_selection(context, label="visual_delete", keep_line=False)
    if text is None:
        return ModeResult(consumed=False, status="no_selection")
    return ModeResult(
        consumed=True,
        switch_to="normal",
        status="visual_delete",
        message=text,
    )


def change_selection(context: ModeContext, match) -> ModeResult:
    del match
    if _is_block(context):
        return _change_block(context)
    text = _delete_selection(context, label="visual_change", keep_line=True)
    if text is None:
        return ModeResult(consumed=False, status="no_selection")
    return ModeResult(
        consumed=True,
        switch_to="insert",
        status="visual_change",
        message=text,
    )


def _delete_selection(
    context: ModeContext, *, label: str, keep_line: bool
) -> str | None:
    span = selection_span(context)
    if span is None:
        return None
    start, end, linewise = span
    buffer = context.buffer
    text = _selected_text(context, span)
    register_name = buffer.state.take_register()
    buffer.registers.yank_to(
        register_name, text, register_type="line" if linewise else "character"
    )
    buffer.clear_selection()
    if linewise and not keep_line:
        delete_lines(buffer, start[0], end[0], label=label)
    else:
        buffer.replace_range(start, end, "", label=label)
        buffer.move_cursor_to(*start)
    if not keep_line:
        clamp_to_mode(context)
    visual_state(context)["anchor"] = buffer.cursor
    context.bus.emit(
        "visual.delete",
        {
            "label": label,
            "text": text,
            "register": register_name,
            "range": (start, end),
        },
    )
    return text


# -- block selections -----------------------------------------------------


def _is_block(context: ModeContext) -> bool:
    return bool(visual_state(context).get("block", False))


def block_bounds(context: ModeContext) -> Optional[BlockBounds]:
    """``(top, bottom, left, right)`` of the block; both columns inclusive."""

    if context.buffer.selection is None:
        return None
    anchor = cast(Cursor, visual_state(context)["anchor"])
    row, col = context.buffer.cursor
    return (
        min(anchor[0], row),
        max(anchor[0], row),
        min(anchor[1], col),
        max(anchor[1], col),
    )


def _block_text(context: ModeContext, bounds: BlockBounds) -> str:
    top, bottom, left, right = bounds
    lines = context.buffer.lines
    return "\n".join(lines[row][left : right + 1] for row in range(top, bottom + 1))


def _yank_block(context: ModeContext) -> ModeResult:
    bounds = block_bounds(context)
    if bounds is None:
        return ModeResult(consumed=False, status="no_selection")
    top, _, left, _ = bounds
    text = _block_text(context, bounds)
    register_name = context.buffer.state.take_register()
    context.buffer.registers.yank_to(register_name, text)
    context.buffer.move_cursor_to(top, left)
    context.bus.emit(
        "visual.yank",
        {"register": register_name, "text": text, "block": bounds},
    )
    return ModeResult(
        consumed=True, switch_to="normal", status="visual_yank", message=register_name
    )


def _delete_block(context: ModeContext, *, label: str) -> str:
    bounds = block_bounds(context)
    if bounds is None:
        return ""
    top, bottom, left, right = bounds
    buffer = context.buffer
    text = _block_text(context, bounds)
    register_name = buffer.state.take_register()
    buffer.registers.yank_to(register_name, text)
    buffer.clear_selection()
    with buffer.undo_group(label):
        for row in range(top, bottom + 1):
            line = buffer.line(row)
            if left < len(line):
                buffer.delete((row, left), (row, min(right + 1, len(line))))
    buffer.move_cursor_to(top, left)
    clamp_to_mode(context)
    visual_state(context)["anchor"] = buffer.cursor
    context.bus.emit(
        "visual.delete",
        {"label": label, "text": text, "register": register_name, "block": bounds},
    )
    return text


def _change_block(context: ModeContext) -> ModeResult:
    bounds = block_bounds(context)
    if bounds is None:
        return ModeResult(consumed=False, status="no_selection")
    top, bottom, left, _ = bounds
    # the block insert joins this group, so the change undoes in one step
    context.buffer.begin_undo_group("visual_block_change")
    text = _delete_block(context, label="visual_block_change")
    start_block_insert(context, top, bottom, left)
    return ModeResult(
        consumed=True, switch_to="block_insert", status="visual_change", message=text
    )


def toggle_block(context: ModeContext, match) -> ModeResult:
    del match
    state = visual_state(context)
    if state.get("block"):
        return ModeResult(consumed=True, switch_to="normal", message="exit_visual")
    state["block"] = True
    state["linewise"] = False
    refresh_selection(context)
    return ModeResult(consumed=True, status="visual_block")


def _start_block_insert(context: ModeContext, *, append: bool) -> ModeResult:
    bounds = block_bounds(context) if _is_block(context) else None
    if bounds is None:
        return ModeResult(consumed=False, status="no_block")
    top, bottom, left, right = bounds
    col = right + 1 if append else left
    start_block_insert(context, top, bottom, col)
    context.buffer.move_cursor_to(top, col)
    return ModeResult(consumed=True, switch_to="block_insert", message="block_insert")


def block_insert(context: ModeContext, match) -> ModeResult:
    del match
    return _start_block_insert(context, append=False)


def block_append(context: ModeContext, match) -> ModeResult:
    del match
    return _start_block_insert(context, append=True)


def block_backspace(context: ModeContext, match) -> ModeResult:
    del match
    block = block_insert_state(context)
    if block is None or not backspace_in_block(context.buffer, block):
        return ModeResult(consumed=True, status="noop")
    return ModeResult(consumed=True, status="block_backspace")


__all__ = [
    "selection_span",
    "yank_selection",
    "swap_anchor",
    "toggle_linewise",
    "delete_selection",
    "change_selection",
    "block_bounds",
    "toggle_block",
    "block_insert",
    "block_append",
    "block_backspace",
]
