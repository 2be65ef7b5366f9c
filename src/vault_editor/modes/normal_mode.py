"""Normal mode: motions, operators, registers and leader sequences."""

from __future__ import annotations

from .base_mode import KeyInput, ModeResult
from .keymap_helpers import KeymapMode, update_flag


class NormalMode(KeymapMode):
    """Every normal-mode key goes through the keymap trie.

    Leader commands are ordinary multi-key bindings, so the pending sequence
    is cleared on a match, on timeout, or on an unregistered continuation.
    """

    name = "normal"

    def on_enter(self, previous: str | None) -> None:
        del previous
        update_flag(self.context, "normal_active", True)
        self.cancel_pending()
        buffer = self.context.buffer
        buffer.clear_selection()
        row, col = buffer.cursor
        limit = max(0, len(buffer.line(row)) - 1)
        if col > limit:
            buffer.move_cursor_to(row, limit)

    def on_exit(self, next_mode: str | None) -> None:
        super().on_exit(next_mode)
        update_flag(self.context, "normal_active", False)

    def handle_unbound(self, key: KeyInput) -> ModeResult:
        del key
        return ModeResult(consumed=False, status="unhandled")
