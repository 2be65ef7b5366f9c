"""Visual mode implementation built on the keymap resolver."""

from __future__ import annotations

from typing import MutableMapping, cast

from .keymap_helpers import KeymapMode, update_flag


class VisualMode(KeymapMode):
    """Character, line-wise (``V``) or block (``ctrl+v``) selection.

    The selection kind lives in ``extras["visual_state"]`` so the actions
    that enter the mode can set it before ``on_enter`` runs.
    """

    name = "visual"

    def on_enter(self, previous: str | None) -> None:
        del previous
        update_flag(self.context, "visual_active", True)
        self.cancel_pending()
        anchor = self.context.buffer.cursor
        state = self._visual_state()
        state["anchor"] = anchor
        state.setdefault("linewise", False)
        state.setdefault("block", False)
        self.context.buffer.set_selection(anchor, anchor)
        self.context.bus.emit(
            "visual.selection",
            {"anchor": anchor, "cursor": anchor, "block": state["block"]},
        )

    def on_exit(self, next_mode: str | None) -> None:
        super().on_exit(next_mode)
        update_flag(self.context, "visual_active", False)
        state = self._visual_state()
        for key in ("anchor", "linewise", "block"):
            state.pop(key, None)
        self.context.buffer.clear_selection()

    def _visual_state(self) -> MutableMapping[str, object]:
        return cast(
            MutableMapping[str, object],
            self.context.extras.setdefault("visual_state", {}),
        )
