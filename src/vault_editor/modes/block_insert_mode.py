"""Block insert: text typed once lands on every row of a visual block."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from vault_editor.buffer import Buffer

from .base_mode import KeyInput, ModeContext, ModeResult
from .keymap_helpers import KeymapMode, printable_text, update_flag

BLOCK_INSERT_KEY = "block_insert"


@dataclass(slots=True)
class BlockInsert:
    top: int
    bottom: int
    # column the insert started at; backspace never goes left of it
    origin: int
    col: int


def block_insert_state(context: ModeContext) -> Optional[BlockInsert]:
    value = context.extras.get(BLOCK_INSERT_KEY)
    return value if isinstance(value, BlockInsert) else None


def start_block_insert(context: ModeContext, top: int, bottom: int, col: int) -> None:
    context.extras[BLOCK_INSERT_KEY] = BlockInsert(top, bottom, col, col)


def insert_in_block(buffer: Buffer, block: BlockInsert, text: str) -> None:
    """Insert ``text`` at the block column of every row, padding short lines."""

    for row in range(block.top, block.bottom + 1):
        line = buffer.line(row)
        if len(line) < block.col:
            buffer.insert((row, len(line)), " " * (block.col - len(line)))
        buffer.insert((row, block.col), text)
    block.col += len(text)
    buffer.move_cursor_to(block.top, block.col)


def backspace_in_block(buffer: Buffer, block: BlockInsert) -> bool:
    if block.col <= block.origin:
        return False
    for row in range(block.top, block.bottom + 1):
        if len(buffer.line(row)) >= block.col:
            buffer.delete((row, block.col - 1), (row, block.col))
    block.col -= 1
    buffer.move_cursor_to(block.top, block.col)
    return True


class BlockInsertMode(KeymapMode):
    """Started by ``I``/``A`` on a visual block; the whole insert is one undo step."""

    name = "block_insert"

    def on_enter(self, previous: str | None) -> None:
        del previous
        update_flag(self.context, "block_insert_active", True)
        self.cancel_pending()
        buffer = self.context.buffer
        if not buffer.in_undo_group:
            buffer.begin_undo_group("block_insert")

    def on_exit(self, next_mode: str | None) -> None:
        super().on_exit(next_mode)
        update_flag(self.context, "block_insert_active", False)
        self.context.buffer.end_all_groups()
        block = self.context.extras.pop(BLOCK_INSERT_KEY, None)
        if isinstance(block, BlockInsert):
            self.context.buffer.move_cursor_to(block.top, max(0, block.col - 1))

    def handle_unbound(self, key: KeyInput) -> ModeResult:
        text = printable_text(key)
        block = block_insert_state(self.context)
        if text is None or block is None:
            return ModeResult(consumed=False, status="unhandled")
        insert_in_block(self.context.buffer, block, text)
        return ModeResult(consumed=True, status="block_insert")


__all__ = [
    "BlockInsert",
    "BlockInsertMode",
    "BLOCK_INSERT_KEY",
    "block_insert_state",
    "start_block_insert",
    "insert_in_block",
    "backspace_in_block",
]
