"""Error kinds surfaced by the editor and its index."""

from __future__ import annotations

from typing import Optional


class EditorError(RuntimeError):
    """Root of every error the editor raises on purpose."""


class UnsavedChangesError(EditorError):
    """Closing a modified buffer without forcing it."""

    def __init__(self, path: str) -> None:
        super().__init__(f"No write since last change: {path} (add ! to override)")
        self.path = path


class ScanFailure(EditorError):
    """The external scanner failed; the index keeps its last good state."""

    def __init__(
        self,
        path: str,
        reason: str,
        *,
        returncode: Optional[int] = None,
        stderr: str = "",
    ) -> None:
        message = f"Scan failed for {path}: {reason}"
        if stderr.strip():
            message = f"{message} ({stderr.strip().splitlines()[-1]})"
        super().__init__(message)
        self.path = path
        self.reason = reason
        self.returncode = returncode
        self.stderr = stderr


class StoreIOError(EditorError):
    """The index database cannot be opened or failed its integrity check."""

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"Index store unusable at {path}: {detail}")
        self.path = path
        self.detail = detail


class StoreWriteConflict(EditorError):
    """Another session holds the index write lock."""

    def __init__(self, operation: str, detail: str = "") -> None:
        message = f"Index write conflict during {operation}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.operation = operation


__all__ = [
    "EditorError",
    "UnsavedChangesError",
    "ScanFailure",
    "StoreIOError",
    "StoreWriteConflict",
]
