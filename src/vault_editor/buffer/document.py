"""Core document data structures for editor buffers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence


@dataclass(frozen=True, slots=True)
class BufferDocument:
    """Immutable list-of-lines text storage.

    Every edit produces a new document with a bumped ``version`` so undo
    entries and host mirrors can hold on to old snapshots safely. A document
    always has at least one (possibly empty) line.
    """

    lines: tuple[str, ...] = field(default=("",))
    version: int = 0

    def __post_init__(self) -> None:
        if not self.lines:
            object.__setattr__(self, "lines", ("",))

    @classmethod
    def from_text(cls, text: str, *, version: int = 0) -> "BufferDocument":
        return cls(lines=tuple(text.split("\n")), version=version)

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def snapshot(self) -> Sequence[str]:
        """Return the current lines without exposing internal mutability."""

        return self.lines

    def with_text(self, text: str) -> "BufferDocument":
        """Return a new document holding ``text`` with a bumped version."""

        return BufferDocument.from_text(text, version=self.version + 1)

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def get_line(self, index: int) -> str:
        return self.lines[index]

    def offset_of(self, row: int, col: int) -> int:
        offset = 0
        for i in range(row):
            offset += len(self.lines[i]) + 1  # newline
        return offset + col

    def position_of(self, offset: int) -> tuple[int, int]:
        running = 0
        for row, line in enumerate(self.lines):
            line_len = len(line)
            if offset <= running + line_len:
                return (row, max(0, offset - running))
            running += line_len + 1
        return (len(self.lines) - 1, len(self.lines[-1]))
