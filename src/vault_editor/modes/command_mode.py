"""Command-line mode with inline editing and keymap integration."""

from __future__ import annotations

from typing import List, MutableMapping, cast

from .base_mode import KeyInput, ModeContext, ModeResult
from .keymap_helpers import KeymapMode, normalize_key_name, printable_text, update_flag


class CommandMode(KeymapMode):
    name = "command"

    def __init__(
        self,
        context: ModeContext,
        *,
        default_pending_timeout_ms: int = 1000,
    ) -> None:
        super().__init__(
            context, default_pending_timeout_ms=default_pending_timeout_ms
        )
        self._typed: List[str] = []

    def on_enter(self, previous: str | None) -> None:
        del previous
        self._typed.clear()
        update_flag(self.context, "command_active", True)
        self.context.bus.emit("command.start", None)
        self._sync_command_state()

    def on_exit(self, next_mode: str | None) -> None:
        super().on_exit(next_mode)
        update_flag(self.context, "command_active", False)
        self.context.bus.emit("command.end", self.current_command)
        self._typed.clear()
        self._sync_command_state()

    @property
    def current_command(self) -> str:
        return "".join(self._typed)

    def set_text(self, text: str) -> None:
        """Prefill the command line, e.g. ``find `` for file search."""

        self._typed = list(text)
        self._sync_command_state()

    def handle_unbound(self, key: KeyInput) -> ModeResult:
        if normalize_key_name(key.key) == "backspace":
            if not self._typed:
                return ModeResult(
                    consumed=True, switch_to="normal", message="command_cancel"
                )
            self._typed.pop()
            self._sync_command_state()
            return ModeResult(consumed=True, status="editing")

        text = printable_text(key)
        if text:
            self._typed.append(text)
            self._sync_command_state()
            return ModeResult(consumed=True, status="editing")

        return ModeResult(consumed=False, status="miss", message="unhandled")

    def _command_state(self) -> MutableMapping[str, object]:
        return cast(
            MutableMapping[str, object],
            self.context.extras.setdefault("command_state", {}),
        )

    def _sync_command_state(self) -> None:
        state = self._command_state()
        state["text"] = self.current_command
        self.context.bus.emit("command.text", self.current_command)
