"""Textual adapter that wires Session and bus events into UI callbacks."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from vault_editor.buffer import BufferMirror
from vault_editor.complete import COMPLETION_EVENT
from vault_editor.modes import KeyInput, ModeResult
from vault_editor.session import NOTIFY_EVENT, PANEL_EVENT, Notification, Session


def _noop(*_args, **_kwargs) -> None:  # pragma: no cover - default hook
    return None


@dataclass(slots=True)
class TextualUIHooks:
    """Callbacks invoked by the adapter to update Textual widgets."""

    update_buffer: Callable[[BufferMirror], None]
    update_status: Callable[[str], None] = _noop
    show_command: Callable[[str], None] = _noop
    show_completion: Callable[[Optional[dict]], None] = _noop
    show_panel: Callable[[Optional[dict]], None] = _noop
    notify: Callable[[Notification], None] = _noop
    handle_event: Callable[[str, object | None], None] = _noop
    log: Callable[[str], None] = _noop
    request_exit: Callable[[], None] = _noop


class TextualVimAdapter:
    """Bridges a Session to a Textual-friendly surface."""

    def __init__(self, session: Session, hooks: TextualUIHooks) -> None:
        self.session = session
        self.hooks = hooks
        self._subscribe_events()
        self._refresh_buffer()
        self._refresh_command_line()
        self.hooks.update_status(self.session.status_line())

    @property
    def manager(self):
        return self.session.manager

    def handle_textual_key(
        self,
        key: str,
        *,
        text: Optional[str] = None,
        modifiers: Iterable[str] = (),
    ) -> ModeResult:
        """Translate a Textual key event into a KeyInput and dispatch it."""

        normalized_modifiers = tuple(str(mod).lower() for mod in modifiers)
        self._log_state("key ->", key=key, text=text, mods=normalized_modifiers)
        result = self.session.handle_key(
            KeyInput(key=key, text=text, modifiers=normalized_modifiers)
        )
        self._after_mode_result(result)
        self._log_state(
            "result <-",
            consumed=result.consumed,
            status=result.status,
            message=result.message,
            switch_to=result.switch_to,
            timeout_ms=result.timeout_ms,
        )
        return result

    def process_events(self) -> int:
        """Forward expired key timers and finished scans to the session."""

        version = self.session.buffer.version
        applied = self.session.process_events()
        if applied:
            self._log_state("scan <-", applied=applied)
        if self.session.buffer.version != version:
            self._refresh_buffer()
        if applied or self.session.buffer.version != version:
            self.hooks.update_status(self.session.status_line())
        return applied

    def _after_mode_result(self, result: ModeResult) -> None:
        status = self.session.status_line()
        if result.message and result.status not in ("ok", "editing", "insert"):
            status = f"{status}  {result.message}"
        self.hooks.update_status(status)
        self._refresh_buffer()
        self._refresh_command_line()
        if self.session.closed:
            self.hooks.request_exit()

    def _subscribe_events(self) -> None:
        bus = self.session.bus
        for event in (
            "mode.switch",
            "visual.selection",
            "command.start",
            "command.end",
            "command.text",
            "command.error",
            "keymap.pending",
            "keymap.cleared",
        ):
            bus.subscribe(
                event, lambda payload, name=event: self._handle_event(name, payload)
            )
        bus.subscribe(COMPLETION_EVENT, self._on_completion)
        bus.subscribe(PANEL_EVENT, self._on_panel)
        bus.subscribe(NOTIFY_EVENT, self._on_notify)

    def _handle_event(self, name: str, payload: object | None) -> None:
        self._log_state("event ->", event=name, payload=payload)
        self.hooks.handle_event(name, payload)
        if name.startswith("command"):
            self._refresh_command_line()
        if name.startswith("visual"):
            self._refresh_buffer()

    def _on_completion(self, payload: object) -> None:
        data = payload if isinstance(payload, dict) else None
        self.hooks.show_completion(data if data and data.get("open") else None)

    def _on_panel(self, payload: object) -> None:
        self.hooks.show_panel(payload if isinstance(payload, dict) else None)

    def _on_notify(self, payload: object) -> None:
        if isinstance(payload, Notification):
            self._log_state("notify ->", level=payload.level, message=payload.message)
            self.hooks.notify(payload)

    def _refresh_buffer(self) -> None:
        path = self.session.path
        mirror = self.session.buffer.mirror(
            attributes={
                "path": str(path) if path else "",
                "mode": self.session.mode or "",
            }
        )
        self.hooks.update_buffer(mirror)

    def _refresh_command_line(self) -> None:
        state = self.session.context.extras.get("command_state")
        if isinstance(state, dict):
            text = str(state.get("text", ""))
        else:
            text = ""
        active = self.session.mode == "command"
        self.hooks.show_command(f":{text}" if active else "")

    def _log_state(self, prefix: str, **fields: object) -> None:
        snapshot = self._state_metadata()
        snapshot.update({k: v for k, v in fields.items() if v is not None})
        parts = [prefix]
        for key, value in snapshot.items():
            parts.append(f"{key}={value!r}")
        self.hooks.log(" ".join(parts))

    def _state_metadata(self) -> Dict[str, object]:
        buffer = self.session.buffer
        return {
            "mode": self.session.mode or "?",
            "cursor": buffer.state.cursor,
            "selection": buffer.state.selection,
            "pending_timeout": self.manager.has_pending_timeout(),
            "scan_pending": self.session.scan_pending,
            "buffer_version": buffer.version,
        }


__all__ = ["TextualVimAdapter", "TextualUIHooks"]
