"""Modal Markdown editor with a SQLite index of tags and backlinks."""

__all__ = [
    "adapters",
    "buffer",
    "actions",
    "modes",
    "keymaps",
    "runtime",
    "index",
    "complete",
    "session",
    "config",
    "errors",
    "cli",
]

__version__ = "0.1.0"
