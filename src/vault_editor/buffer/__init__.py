"""Buffer abstractions and undo/redo data structures."""

from .buffer import Buffer, BufferDelta, BufferView, Transaction
from .document import BufferDocument
from .registers import DEFAULT_REGISTER, RegisterBank, RegisterValue
from .state import BufferState, Cursor, Selection
from .sync import BufferMirror
from .undo import DEFAULT_UNDO_LIMIT, UndoEntry, UndoTimeline
from .validation import BufferBoundsError, clamp_cursor, ensure_cursor

__all__ = [
    "BufferDocument",
    "BufferState",
    "Cursor",
    "Selection",
    "DEFAULT_REGISTER",
    "RegisterBank",
    "RegisterValue",
    "UndoTimeline",
    "DEFAULT_UNDO_LIMIT",
    "UndoEntry",
    "Buffer",
    "BufferDelta",
    "BufferView",
    "Transaction",
    "BufferMirror",
    "BufferBoundsError",
    "clamp_cursor",
    "ensure_cursor",
]
