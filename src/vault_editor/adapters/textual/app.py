"""Textual app hosting an editing session."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Tuple

try:  # pragma: no cover - imported only when the editor runs
    from rich.text import Text
    from textual import events
    from textual.app import App, ComposeResult
    from textual.containers import Horizontal
    from textual.widgets import Footer, Header, Static
except ModuleNotFoundError as exc:  # pragma: no cover - friendly error for missing dep
    raise RuntimeError(
        "Install the 'textual' package to use vault_editor.adapters.textual.app"
    ) from exc

from vault_editor.buffer import BufferMirror
from vault_editor.session import Notification, Session

from .controller import TextualUIHooks, TextualVimAdapter

PASSTHROUGH_KEYS = {"ctrl+c", "ctrl+q"}


@dataclass
class UIState:
    buffer_text: str = ""
    status_text: str = ""
    command_text: str = ""
    message: str = ""


def render_buffer(mirror: BufferMirror) -> Text:
    """Buffer text with the cursor cell reversed and the selection shaded."""

    lines = mirror.text.split("\n")
    row, col = mirror.cursor
    text = Text()
    selection = mirror.selection
    for index, line in enumerate(lines):
        start = len(text)
        text.append(line)
        if selection is not None:
            (s_row, s_col), (e_row, e_col) = selection.start, selection.end
            if s_row <= index <= e_row:
                first = s_col if index == s_row else 0
                last = e_col + 1 if index == e_row else len(line)
                text.stylize("on blue", start + first, start + max(first, last))
        if index == row:
            if col >= len(line):
                text.append(" ", style="reverse")
            else:
                text.stylize("reverse", start + col, start + col + 1)
        if index < len(lines) - 1:
            text.append("\n")
    return text


class VaultEditorApp(App[None]):
    """Buffer, side panel, completion list, status and command line."""

    CSS = """
	Screen {
		layout: vertical;
	}

	#main {
		height: 1fr;
	}

	#buffer-view {
		width: 1fr;
		border: round $accent;
		padding: 0 1;
		content-align: left top;
		overflow: auto;
	}

	#side-panel {
		width: 40;
		border: round $secondary;
		padding: 0 1;
	}

	#completion {
		height: auto;
		max-height: 8;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#status-line {
		height: 1;
		background: $surface-darken-1;
		padding: 0 1;
	}

	#command-line {
		height: 1;
		background: $surface-darken-2;
		padding: 0 1;
	}
	"""

    BINDINGS = [
        ("ctrl+c", "quit", "Quit"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self._state = UIState()
        self.adapter: TextualVimAdapter | None = None
        self._buffer_widget: Static | None = None
        self._panel_widget: Static | None = None
        self._completion_widget: Static | None = None
        self._status_widget: Static | None = None
        self._command_widget: Static | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="main"):
            self._buffer_widget = Static("", id="buffer-view")
            yield self._buffer_widget
            self._panel_widget = Static("", id="side-panel")
            yield self._panel_widget
        self._completion_widget = Static("", id="completion")
        self._status_widget = Static("", id="status-line")
        self._command_widget = Static("", id="command-line")
        yield self._completion_widget
        yield self._status_widget
        yield self._command_widget
        yield Footer()

    async def on_mount(self) -> None:
        if self._panel_widget:
            self._panel_widget.display = False
        if self._completion_widget:
            self._completion_widget.display = False
        hooks = TextualUIHooks(
            update_buffer=self._update_buffer,
            update_status=self._update_status,
            show_command=self._show_command,
            show_completion=self._show_completion,
            show_panel=self._show_panel,
            notify=self._notify,
            handle_event=self._handle_event,
            request_exit=self.exit,
        )
        self.adapter = TextualVimAdapter(self.session, hooks)
        self.title = "vault-editor"
        self.sub_title = str(self.session.path or "")
        self.set_interval(0.1, self._process_events)

    def _process_events(self) -> None:
        if self.adapter:
            self.adapter.process_events()

    async def on_key(self, event: events.Key) -> None:
        if not self.adapter:
            return
        normalized = self._normalize_key(event)
        if normalized is None:
            return
        key, text, modifiers = normalized
        self.adapter.handle_textual_key(key, text=text, modifiers=modifiers)
        event.stop()

    def _update_buffer(self, mirror: BufferMirror) -> None:
        self._state.buffer_text = mirror.text
        self.sub_title = mirror.attributes.get("path", "")
        if self._buffer_widget:
            self._buffer_widget.update(render_buffer(mirror))

    def _update_status(self, status: str) -> None:
        self._state.status_text = status
        if self._status_widget:
            self._status_widget.update(Text(status))

    def _show_command(self, command: str) -> None:
        self._state.command_text = command
        if self._command_widget:
            self._command_widget.update(Text(command or self._state.message))

    def _show_completion(self, payload: Optional[dict]) -> None:
        widget = self._completion_widget
        if widget is None:
            return
        if not payload:
            widget.display = False
            return
        text = Text()
        for index, item in enumerate(payload.get("items", [])):
            style = "reverse" if index == payload.get("index") else ""
            text.append(f" {item} \n", style=style)
        widget.update(text)
        widget.display = True

    def _show_panel(self, payload: Optional[dict]) -> None:
        widget = self._panel_widget
        if widget is None:
            return
        if not payload:
            widget.display = False
            if self._buffer_widget:
                self._buffer_widget.display = True
            return
        widget.border_title = payload.get("title", "")
        highlight = set(payload.get("highlight", ()))
        text = Text()
        for index, line in enumerate(payload.get("lines", [])):
            if index == payload.get("index"):
                style = "reverse"
            elif index in highlight:
                style = "underline"
            else:
                style = ""
            text.append(f"{line}\n", style=style)
        widget.update(text)
        full = bool(payload.get("full"))
        if "width_percent" in payload:
            widget.styles.width = "1fr" if full else f"{payload['width_percent']}%"
        else:
            widget.styles.width = 40
        if self._buffer_widget:
            self._buffer_widget.display = not full
        widget.display = True

    def _notify(self, note: Notification) -> None:
        self._state.message = note.message
        if self._command_widget and not self._state.command_text:
            style = "bold red" if note.level == "error" else ""
            self._command_widget.update(Text(note.message, style=style))

    def _handle_event(self, name: str, payload: Any | None) -> None:
        if name == "command.start":
            self._state.message = ""

    @staticmethod
    def _normalize_key(
        event: events.Key,
    ) -> Optional[Tuple[str, Optional[str], Tuple[str, ...]]]:
        key = event.key
        if key in PASSTHROUGH_KEYS:
            return None
        if event.is_printable and event.character:
            return (event.character, event.character, ())
        *modifiers, name = key.split("+")
        return (name, None, tuple(modifiers))


def run(session: Session) -> None:
    VaultEditorApp(session).run()


__all__ = ["VaultEditorApp", "render_buffer", "run"]
