"""High-level editing verbs reused across modes."""

from .core import enter_insert_mode, exit_to_normal_mode
from .visual import (
    yank_selection,
    swap_anchor,
    toggle_linewise,
    delete_selection,
    change_selection,
)
from .command import CommandHost, submit_command_line
from .leader import EDITOR_COMMAND_EVENT, EditorCommand, dispatch_editor_command

__all__ = [
    "enter_insert_mode",
    "exit_to_normal_mode",
    "yank_selection",
    "swap_anchor",
    "toggle_linewise",
    "delete_selection",
    "change_selection",
    "CommandHost",
    "submit_command_line",
    "EDITOR_COMMAND_EVENT",
    "EditorCommand",
    "dispatch_editor_command",
]
