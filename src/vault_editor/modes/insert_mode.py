"""Insert mode: typed text goes straight into the buffer."""

from __future__ import annotations

from .base_mode import KeyInput, ModeResult
from .keymap_helpers import KeymapMode, printable_text, update_flag


class InsertMode(KeymapMode):
    """One insert session is one undo step.

    Named keys (Escape, Enter, Backspace, arrows, completion keys) resolve
    through the keymap; anything printable is inserted at the cursor.
    """

    name = "insert"

    def on_enter(self, previous: str | None) -> None:
        del previous
        update_flag(self.context, "insert_active", True)
        self.cancel_pending()
        buffer = self.context.buffer
        if not buffer.in_undo_group:
            buffer.begin_undo_group("insert")

    def on_exit(self, next_mode: str | None) -> None:
        super().on_exit(next_mode)
        update_flag(self.context, "insert_active", False)
        self.context.buffer.end_all_groups()

    def handle_unbound(self, key: KeyInput) -> ModeResult:
        text = printable_text(key)
        if text is None:
            return ModeResult(consumed=False, status="unhandled")
        self.context.buffer.insert_text(text)
        return ModeResult(consumed=True, status="insert")
