"""Abstract editor commands raised by leader sequences and panel keys.

Actions here never touch the vault themselves: they publish an
``editor.command`` event carrying an ``EditorCommand`` and the session
decides what it means.
"""

from __future__ import annotations

from enum import Enum

from vault_editor.keymaps import ResolutionMatch
from vault_editor.modes.base_mode import ModeContext, ModeResult

EDITOR_COMMAND_EVENT = "editor.command"


class EditorCommand(str, Enum):
    OPEN_TAGS = "open_tags"
    OPEN_BACKLINKS = "open_backlinks"
    SEARCH_FILES = "search_files"
    NOTE_TODAY = "note_today"
    NOTE_YESTERDAY = "note_yesterday"
    NOTE_TOMORROW = "note_tomorrow"
    OPEN_FILE_TREE = "open_file_tree"
    INSERT_TEMPLATE = "insert_template"
    FOLLOW_LINK = "follow_link"
    HISTORY_BACK = "history_back"
    HISTORY_FORWARD = "history_forward"
    PANEL_DOWN = "panel_down"
    PANEL_UP = "panel_up"
    PANEL_OPEN = "panel_open"
    PANEL_CLOSE = "panel_close"
    TREE_CUT = "tree_cut"
    TREE_COPY = "tree_copy"
    TREE_PASTE = "tree_paste"
    TREE_SORT_MTIME = "tree_sort_mtime"
    TREE_SORT_NAME = "tree_sort_name"
    TREE_DELETE = "tree_delete"
    TREE_RENAME = "tree_rename"
    TREE_NEW = "tree_new"
    TREE_VISUAL = "tree_visual"
    TREE_VISUAL_EXIT = "tree_visual_exit"
    TREE_SHRINK = "tree_shrink"
    TREE_GROW = "tree_grow"
    TREE_FULL = "tree_full"


def dispatch_editor_command(context: ModeContext, match: ResolutionMatch) -> ModeResult:
    command = EditorCommand(match.action.metadata["command"])
    context.bus.emit(EDITOR_COMMAND_EVENT, command)
    return ModeResult(consumed=True, status="editor_command", message=command.value)


__all__ = ["EDITOR_COMMAND_EVENT", "EditorCommand", "dispatch_editor_command"]
