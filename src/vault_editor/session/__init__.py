"""Editing session: one buffer, its note, and the vault index around it."""

from .controller import NOTIFY_EVENT, PANEL_EVENT, Notification, Session
from .file_tree import FileTreePanel, PasteOp, TreeEntry
from .panels import ListPanel, PanelItem, file_panel, tag_panel

__all__ = [
    "Session",
    "Notification",
    "NOTIFY_EVENT",
    "PANEL_EVENT",
    "FileTreePanel",
    "PasteOp",
    "TreeEntry",
    "ListPanel",
    "PanelItem",
    "file_panel",
    "tag_panel",
]
