"""Open completion list and the insert-mode driver that steers it."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from vault_editor.index.models import Candidate
from vault_editor.modes.base_mode import ModeContext

from .engine import CompletionEngine, CompletionRequest, detect_trigger, template_request

COMPLETION_FLAG = "completion_active"
COMPLETION_EVENT = "completion.update"


@dataclass
class CompletionState:
    request: Optional[CompletionRequest] = None
    candidates: list[Candidate] = field(default_factory=list)
    index: int = 0

    @property
    def is_open(self) -> bool:
        return self.request is not None and bool(self.candidates)

    @property
    def selected(self) -> Optional[Candidate]:
        if not self.is_open:
            return None
        return self.candidates[self.index]

    def move(self, delta: int) -> None:
        if self.candidates:
            self.index = (self.index + delta) % len(self.candidates)

    def clear(self) -> None:
        self.request = None
        self.candidates = []
        self.index = 0


class CompletionController:
    """Keeps the list in step with the buffer; accepts, moves and dismisses."""

    def __init__(self, engine: CompletionEngine, context: ModeContext) -> None:
        self.engine = engine
        self.context = context
        self.state = CompletionState()
        # (row, start_col, prefix) of the token just completed
        self._accepted: Optional[tuple[int, int, str]] = None

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    def refresh(self) -> None:
        """Re-detect the token at the cursor after an edit in insert mode."""

        if not self.context.flags.get("insert_active"):
            self.close()
            return
        buffer = self.context.buffer
        row, col = buffer.cursor
        line = buffer.line(row)
        request = self._continue_template(line, row, col) or detect_trigger(
            line, col, row=row
        )
        if request is None:
            self._accepted = None
            self.close()
            return
        if self._accepted == (request.row, request.start_col, request.prefix):
            self.close()
            return
        self._accepted = None
        self._show(request)

    def open_template(self) -> bool:
        row, col = self.context.buffer.cursor
        return self._show(template_request(row, col))

    def accept(self) -> bool:
        candidate = self.state.selected
        request = self.state.request
        if candidate is None or request is None:
            return False
        buffer = self.context.buffer
        resume_insert = buffer.in_undo_group
        buffer.end_all_groups()
        self.engine.apply(buffer, request, candidate)
        if resume_insert:
            buffer.begin_undo_group("insert")
        row, col = buffer.cursor
        after = detect_trigger(buffer.line(row), col, row=row)
        self._accepted = (after.row, after.start_col, after.prefix) if after else None
        self.close()
        return True

    def move(self, delta: int) -> None:
        self.state.move(delta)
        self._publish()

    def dismiss(self) -> None:
        self.close()

    def close(self) -> None:
        was_open = self.state.request is not None
        self.state.clear()
        self.context.set_flag(COMPLETION_FLAG, False)
        if was_open:
            self._publish()

    def _continue_template(
        self, line: str, row: int, col: int
    ) -> Optional[CompletionRequest]:
        current = self.state.request
        if current is None or current.kind != "template" or current.row != row:
            return None
        if col < current.start_col:
            return None
        typed = line[current.start_col : col]
        if any(ch.isspace() for ch in typed):
            return None
        return CompletionRequest("template", typed, row, current.start_col, col)

    def _show(self, request: CompletionRequest) -> bool:
        candidates = self.engine.suggest(request)
        if not candidates:
            self.close()
            return False
        previous = self.state.selected
        self.state.request = request
        self.state.candidates = candidates
        self.state.index = (
            candidates.index(previous) if previous in candidates else 0
        )
        self.context.set_flag(COMPLETION_FLAG, True)
        self._publish()
        return True

    def _publish(self) -> None:
        self.context.bus.emit(
            COMPLETION_EVENT,
            {
                "open": self.state.is_open,
                "kind": self.state.request.kind if self.state.request else None,
                "items": [candidate.name for candidate in self.state.candidates],
                "index": self.state.index,
            },
        )


__all__ = ["CompletionController", "CompletionState", "COMPLETION_EVENT"]
