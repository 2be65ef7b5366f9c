"""Validation helpers shared across buffer services."""

from __future__ import annotations

from vault_editor.errors import EditorError

from .document import BufferDocument
from .state import Cursor


class BufferBoundsError(EditorError):
    """Raised when a cursor lies outside the document."""

    def __init__(self, message: str, *, cursor: Cursor | None = None) -> None:
        super().__init__(message)
        self.cursor = cursor


def ensure_cursor(document: BufferDocument, cursor: Cursor) -> Cursor:
    row, col = cursor
    if row < 0 or row >= document.line_count:
        raise BufferBoundsError("Row out of range", cursor=cursor)
    line = document.get_line(row)
    if col < 0 or col > len(line):
        raise BufferBoundsError("Column out of range", cursor=cursor)
    return cursor


def clamp_cursor(document: BufferDocument, cursor: Cursor) -> Cursor:
    """Return ``cursor`` pulled back inside the document."""

    try:
        return ensure_cursor(document, cursor)
    except BufferBoundsError:
        row, col = cursor
        row = max(0, min(row, document.line_count - 1))
        col = max(0, min(col, len(document.get_line(row))))
        return (row, col)
