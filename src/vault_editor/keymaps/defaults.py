"""Built-in keymaps that seed each mode with sensible defaults."""

from __future__ import annotations

import string
from dataclasses import replace
from typing import Iterable, Mapping, Sequence

from vault_editor.actions import command as command_actions
from vault_editor.actions import core as core_actions
from vault_editor.actions import edit as edit_actions
from vault_editor.actions import motion as motion_actions
from vault_editor.actions import visual as visual_actions
from vault_editor.actions.leader import EditorCommand, dispatch_editor_command

from .models import ActionRef, Binding, KeySequence, KeyStroke, WhenClause
from .registry import KeymapRegistry

DEFAULT_LEADER = "\\"

PANEL_OPEN = WhenClause("panel_open")
FILE_TREE_OPEN = WhenClause("file_tree_open")
TREE_VISUAL = WhenClause("tree_visual")
COMPLETION_ACTIVE = WhenClause("completion_active")


def _action(action_id: str, handler, description: str) -> ActionRef:
    return ActionRef(id=action_id, handler=handler, description=description)


def _editor_action(command: EditorCommand, description: str) -> ActionRef:
    return ActionRef(
        id=f"editor.{command.value}",
        handler=dispatch_editor_command,
        description=description,
        metadata={"command": command.value},
    )


DEFAULT_ACTIONS: tuple[ActionRef, ...] = (
    _action("core.enter_insert", core_actions.enter_insert_mode, "Enter insert mode"),
    _action("core.insert_after", core_actions.insert_after, "Append after cursor"),
    _action("core.insert_line_end", core_actions.insert_at_line_end, "Append at EOL"),
    _action(
        "core.insert_line_start",
        core_actions.insert_at_line_start,
        "Insert before first non-blank",
    ),
    _action("core.open_below", core_actions.open_line_below, "Open a line below"),
    _action("core.open_above", core_actions.open_line_above, "Open a line above"),
    _action("core.exit_insert", core_actions.exit_insert_mode, "Leave insert mode"),
    _action("core.exit_to_normal", core_actions.exit_to_normal_mode, "Back to normal"),
    _action("core.enter_visual", core_actions.enter_visual_mode, "Enter visual mode"),
    _action(
        "core.enter_visual_line",
        core_actions.enter_visual_line_mode,
        "Enter line-wise visual mode",
    ),
    _action(
        "core.enter_visual_block",
        core_actions.enter_visual_block_mode,
        "Enter block visual mode",
    ),
    _action("core.enter_command", core_actions.enter_command_mode, "Command line"),
    _action("core.cancel", core_actions.cancel, "Cancel pending register"),
    _action("motion.left", motion_actions.move_left, "Cursor left"),
    _action("motion.right", motion_actions.move_right, "Cursor right"),
    _action("motion.up", motion_actions.move_up, "Cursor up"),
    _action("motion.down", motion_actions.move_down, "Cursor down"),
    _action("motion.line_start", motion_actions.line_start, "Start of line"),
    _action("motion.line_end", motion_actions.line_end, "End of line"),
    _action(
        "motion.first_nonblank",
        motion_actions.line_first_nonblank,
        "First non-blank character",
    ),
    _action("motion.word_forward", motion_actions.word_forward, "Next word"),
    _action("motion.word_backward", motion_actions.word_backward, "Previous word"),
    _action("motion.buffer_start", motion_actions.buffer_start, "First line"),
    _action("motion.buffer_end", motion_actions.buffer_end, "Last line"),
    _action("edit.delete_char", edit_actions.delete_char, "Cut character"),
    _action("edit.delete_line", edit_actions.delete_line, "Cut current line"),
    _action("edit.yank_line", edit_actions.yank_line, "Yank current line"),
    _action("edit.paste_after", edit_actions.paste_after, "Paste after cursor"),
    _action("edit.paste_before", edit_actions.paste_before, "Paste before cursor"),
    _action("edit.undo", edit_actions.undo, "Undo"),
    _action("edit.redo", edit_actions.redo, "Redo"),
    _action("edit.select_register", edit_actions.select_register, "Use register"),
    _action("edit.newline", edit_actions.insert_newline, "Insert newline"),
    _action("edit.backspace", edit_actions.backspace, "Delete before cursor"),
    _action("edit.delete_forward", edit_actions.delete_forward, "Delete under cursor"),
    _action("edit.indent", edit_actions.insert_indent, "Insert indentation"),
    _action("complete.accept", edit_actions.completion_accept, "Accept item"),
    _action("complete.next", edit_actions.completion_next, "Next item"),
    _action("complete.previous", edit_actions.completion_previous, "Previous item"),
    _action("complete.dismiss", edit_actions.completion_dismiss, "Close list"),
    _action("visual.yank_selection", visual_actions.yank_selection, "Yank selection"),
    _action("visual.swap_anchor", visual_actions.swap_anchor, "Swap selection anchor"),
    _action("visual.toggle_linewise", visual_actions.toggle_linewise, "Line-wise"),
    _action("visual.delete_selection", visual_actions.delete_selection, "Delete"),
    _action("visual.change_selection", visual_actions.change_selection, "Change"),
    _action("visual.toggle_block", visual_actions.toggle_block, "Block selection"),
    _action("visual.block_insert", visual_actions.block_insert, "Insert on every row"),
    _action("visual.block_append", visual_actions.block_append, "Append on every row"),
    _action(
        "visual.block_backspace",
        visual_actions.block_backspace,
        "Delete before the block column",
    ),
    _action(
        "command.submit_line",
        command_actions.submit_command_line,
        "Evaluate the active command line",
    ),
    _editor_action(EditorCommand.OPEN_TAGS, "Open the tag panel"),
    _editor_action(EditorCommand.OPEN_BACKLINKS, "Open the backlink panel"),
    _editor_action(EditorCommand.SEARCH_FILES, "Search files"),
    _editor_action(EditorCommand.NOTE_TODAY, "Open today's note"),
    _editor_action(EditorCommand.NOTE_YESTERDAY, "Open yesterday's note"),
    _editor_action(EditorCommand.NOTE_TOMORROW, "Open tomorrow's note"),
    _editor_action(EditorCommand.OPEN_FILE_TREE, "Open the file tree"),
    _editor_action(EditorCommand.INSERT_TEMPLATE, "Insert a template"),
    _editor_action(EditorCommand.FOLLOW_LINK, "Follow link or tag under cursor"),
    _editor_action(EditorCommand.HISTORY_BACK, "Previous file"),
    _editor_action(EditorCommand.HISTORY_FORWARD, "Next file"),
    _editor_action(EditorCommand.PANEL_DOWN, "Panel selection down"),
    _editor_action(EditorCommand.PANEL_UP, "Panel selection up"),
    _editor_action(EditorCommand.PANEL_OPEN, "Open panel entry"),
    _editor_action(EditorCommand.PANEL_CLOSE, "Close panel"),
    _editor_action(EditorCommand.TREE_CUT, "Cut file"),
    _editor_action(EditorCommand.TREE_COPY, "Copy file"),
    _editor_action(EditorCommand.TREE_PASTE, "Paste file"),
    _editor_action(EditorCommand.TREE_SORT_MTIME, "Sort by modification time"),
    _editor_action(EditorCommand.TREE_SORT_NAME, "Sort by name"),
    _editor_action(EditorCommand.TREE_DELETE, "Delete file"),
    _editor_action(EditorCommand.TREE_RENAME, "Rename file"),
    _editor_action(EditorCommand.TREE_NEW, "New file"),
    _editor_action(EditorCommand.TREE_VISUAL, "Select a range of files"),
    _editor_action(EditorCommand.TREE_VISUAL_EXIT, "Leave range selection"),
    _editor_action(EditorCommand.TREE_SHRINK, "Narrow the file tree"),
    _editor_action(EditorCommand.TREE_GROW, "Widen the file tree"),
    _editor_action(EditorCommand.TREE_FULL, "Toggle full-screen file tree"),
)


def _bind(
    binding_id: str,
    mode: str,
    keys: Sequence[str],
    action_id: str,
    *,
    when: tuple[WhenClause, ...] = (),
    priority: int = 0,
) -> Binding:
    return Binding(
        id=binding_id,
        mode=mode,
        sequence=KeySequence.from_strings(*keys),
        action_id=action_id,
        when=when,
        priority=priority,
    )


_MOTIONS: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("left", ("h",), "motion.left"),
    ("right", ("l",), "motion.right"),
    ("up", ("k",), "motion.up"),
    ("down", ("j",), "motion.down"),
    ("arrow_left", ("left",), "motion.left"),
    ("arrow_right", ("right",), "motion.right"),
    ("arrow_up", ("up",), "motion.up"),
    ("arrow_down", ("down",), "motion.down"),
    ("line_start", ("0",), "motion.line_start"),
    ("line_end", ("$",), "motion.line_end"),
    ("first_nonblank", ("^",), "motion.first_nonblank"),
    ("word_forward", ("w",), "motion.word_forward"),
    ("word_backward", ("b",), "motion.word_backward"),
    ("buffer_start", ("g", "g"), "motion.buffer_start"),
    ("buffer_end", ("G",), "motion.buffer_end"),
)

_NORMAL: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("enter_insert", ("i",), "core.enter_insert"),
    ("insert_after", ("a",), "core.insert_after"),
    ("insert_line_end", ("A",), "core.insert_line_end"),
    ("insert_line_start", ("I",), "core.insert_line_start"),
    ("open_below", ("o",), "core.open_below"),
    ("open_above", ("O",), "core.open_above"),
    ("enter_visual", ("v",), "core.enter_visual"),
    ("enter_visual_line", ("V",), "core.enter_visual_line"),
    ("enter_visual_block", ("ctrl+v",), "core.enter_visual_block"),
    ("enter_command", (":",), "core.enter_command"),
    ("cancel", ("escape",), "core.cancel"),
    ("delete_char", ("x",), "edit.delete_char"),
    ("delete_line", ("d", "d"), "edit.delete_line"),
    ("yank_line", ("y", "y"), "edit.yank_line"),
    ("paste_after", ("p",), "edit.paste_after"),
    ("paste_before", ("P",), "edit.paste_before"),
    ("undo", ("u",), "edit.undo"),
    ("redo", ("ctrl+r",), "edit.redo"),
    ("follow_link", ("enter",), "editor.follow_link"),
    ("history_back", ("ctrl+o",), "editor.history_back"),
    ("history_forward", ("ctrl+i",), "editor.history_forward"),
    ("history_forward_tab", ("tab",), "editor.history_forward"),
)

_LEADER: tuple[tuple[str, str, str], ...] = (
    ("tags", "ot", "editor.open_tags"),
    ("backlinks", "ob", "editor.open_backlinks"),
    ("search_files", "f", "editor.search_files"),
    ("note_today", "oot", "editor.note_today"),
    ("note_yesterday", "ooy", "editor.note_yesterday"),
    ("note_tomorrow", "ooT", "editor.note_tomorrow"),
    ("file_tree", "t", "editor.open_file_tree"),
    ("template", "i", "editor.insert_template"),
)

_PANEL: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("down", ("j",), "editor.panel_down"),
    ("up", ("k",), "editor.panel_up"),
    ("arrow_down", ("down",), "editor.panel_down"),
    ("arrow_up", ("up",), "editor.panel_up"),
    ("open", ("enter",), "editor.panel_open"),
    ("close", ("escape",), "editor.panel_close"),
)

_FILE_TREE: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("cut", ("x",), "editor.tree_cut"),
    ("copy", ("y",), "editor.tree_copy"),
    ("paste", ("p",), "editor.tree_paste"),
    ("sort_mtime", ("s", "t"), "editor.tree_sort_mtime"),
    ("sort_name", ("s", "n"), "editor.tree_sort_name"),
    ("delete", ("d",), "editor.tree_delete"),
    ("rename", ("r",), "editor.tree_rename"),
    ("new", ("n",), "editor.tree_new"),
    ("visual", ("v",), "editor.tree_visual"),
    ("shrink", ("<",), "editor.tree_shrink"),
    ("grow", (">",), "editor.tree_grow"),
    ("full", ("f",), "editor.tree_full"),
)

_INSERT: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("exit_escape", ("escape",), "core.exit_insert"),
    ("newline", ("enter",), "edit.newline"),
    ("backspace", ("backspace",), "edit.backspace"),
    ("delete", ("delete",), "edit.delete_forward"),
    ("indent", ("tab",), "edit.indent"),
    ("arrow_left", ("left",), "motion.left"),
    ("arrow_right", ("right",), "motion.right"),
    ("arrow_up", ("up",), "motion.up"),
    ("arrow_down", ("down",), "motion.down"),
    ("home", ("home",), "motion.line_start"),
    ("end", ("end",), "motion.line_end"),
)

_COMPLETION: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("accept_tab", ("tab",), "complete.accept"),
    ("accept_enter", ("enter",), "complete.accept"),
    ("next", ("ctrl+n",), "complete.next"),
    ("next_arrow", ("down",), "complete.next"),
    ("previous", ("ctrl+p",), "complete.previous"),
    ("previous_arrow", ("up",), "complete.previous"),
    ("dismiss", ("escape",), "complete.dismiss"),
)

_VISUAL: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("exit_escape", ("escape",), "core.exit_to_normal"),
    ("exit_v", ("v",), "core.exit_to_normal"),
    ("toggle_linewise", ("V",), "visual.toggle_linewise"),
    ("yank_selection", ("y",), "visual.yank_selection"),
    ("swap_anchor", ("o",), "visual.swap_anchor"),
    ("delete_selection", ("d",), "visual.delete_selection"),
    ("cut_selection", ("x",), "visual.delete_selection"),
    ("change_selection", ("c",), "visual.change_selection"),
    ("toggle_block", ("ctrl+v",), "visual.toggle_block"),
    ("block_insert", ("I",), "visual.block_insert"),
    ("block_append", ("A",), "visual.block_append"),
)

_BLOCK_INSERT: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("exit_escape", ("escape",), "core.exit_to_normal"),
    ("backspace", ("backspace",), "visual.block_backspace"),
)

_COMMAND: tuple[tuple[str, tuple[str, ...], str], ...] = (
    ("exit_escape", ("escape",), "core.exit_to_normal"),
    ("submit_enter", ("enter",), "command.submit_line"),
)


def build_default_bindings(leader: str = DEFAULT_LEADER) -> tuple[Binding, ...]:
    """Every built-in binding, with leader sequences rooted at ``leader``."""

    bindings: list[Binding] = []
    for name, keys, action_id in _NORMAL:
        bindings.append(_bind(f"normal.{name}", "normal", keys, action_id))
    for name, keys, action_id in _MOTIONS:
        bindings.append(_bind(f"normal.{name}", "normal", keys, action_id))
        bindings.append(_bind(f"visual.{name}", "visual", keys, action_id))
    for letter in string.ascii_lowercase:
        bindings.append(
            _bind(
                f"normal.register_{letter}",
                "normal",
                ('"', letter),
                "edit.select_register",
            )
        )
    for name, suffix, action_id in _LEADER:
        bindings.append(
            Binding(
                id=f"leader.{name}",
                mode="normal",
                sequence=KeySequence((KeyStroke(leader),)).append(
                    *(KeyStroke(char) for char in suffix)
                ),
                action_id=action_id,
                tags=("leader",),
            )
        )
    for name, keys, action_id in _PANEL:
        bindings.append(
            _bind(
                f"panel.{name}",
                "normal",
                keys,
                action_id,
                when=(PANEL_OPEN,),
                priority=10,
            )
        )
    for name, keys, action_id in _FILE_TREE:
        bindings.append(
            _bind(
                f"file_tree.{name}",
                "normal",
                keys,
                action_id,
                when=(FILE_TREE_OPEN,),
                priority=20,
            )
        )
    bindings.append(
        _bind(
            "file_tree.visual_exit",
            "normal",
            ("escape",),
            "editor.tree_visual_exit",
            when=(FILE_TREE_OPEN, TREE_VISUAL),
            priority=30,
        )
    )
    for name, keys, action_id in _INSERT:
        bindings.append(_bind(f"insert.{name}", "insert", keys, action_id))
    for name, keys, action_id in _COMPLETION:
        bindings.append(
            _bind(
                f"completion.{name}",
                "insert",
                keys,
                action_id,
                when=(COMPLETION_ACTIVE,),
                priority=10,
            )
        )
    for name, keys, action_id in _VISUAL:
        bindings.append(_bind(f"visual.{name}", "visual", keys, action_id))
    for name, keys, action_id in _BLOCK_INSERT:
        bindings.append(
            _bind(f"block_insert.{name}", "block_insert", keys, action_id)
        )
    for name, keys, action_id in _COMMAND:
        bindings.append(_bind(f"command.{name}", "command", keys, action_id))
    return tuple(bindings)


DEFAULT_BINDINGS: tuple[Binding, ...] = build_default_bindings()


def load_default_keymaps(
    registry: KeymapRegistry,
    *,
    replace: bool = False,
    leader: str = DEFAULT_LEADER,
    extra_bindings: Iterable[Binding] | None = None,
    default_sequence_timeout_ms: int | None = None,
    include_actions: Sequence[str] | None = None,
    exclude_actions: Sequence[str] | None = None,
    include_bindings: Sequence[str] | None = None,
    exclude_bindings: Sequence[str] | None = None,
    per_mode_overrides: Mapping[str, Iterable[Binding]] | None = None,
) -> None:
    """Register built-in actions and bindings for every mode."""

    allowed_actions = _build_filters(include_actions, exclude_actions)
    allowed_bindings = _build_filters(include_bindings, exclude_bindings)
    registered: set[str] = set()

    for action in DEFAULT_ACTIONS:
        if not _selected(action.id, allowed_actions):
            continue
        registry.register_action(action, replace=replace)
        registered.add(action.id)

    if leader == DEFAULT_LEADER:
        bindings = DEFAULT_BINDINGS
    else:
        bindings = build_default_bindings(leader)
    for binding in bindings:
        if not _selected(binding.id, allowed_bindings):
            continue
        if binding.action_id not in registered:
            continue
        registry.register_binding(
            _binding_with_timeout(binding, default_sequence_timeout_ms),
            replace=replace,
        )

    if extra_bindings:
        for binding in extra_bindings:
            registry.register_binding(binding, replace=replace)

    if per_mode_overrides:
        for mode, overrides in per_mode_overrides.items():
            for binding in overrides:
                if binding.mode != mode:
                    raise ValueError(
                        f"Override binding '{binding.id}' must target mode '{mode}'"
                    )
                registry.register_binding(binding, replace=True)


def _binding_with_timeout(binding: Binding, timeout_ms: int | None) -> Binding:
    if timeout_ms is None:
        return binding
    sequence = KeySequence(binding.sequence.strokes, timeout_ms=timeout_ms)
    return replace(binding, sequence=sequence)


def _build_filters(
    include: Sequence[str] | None, exclude: Sequence[str] | None
) -> tuple[set[str] | None, set[str]]:
    include_set = set(include) if include else None
    exclude_set = set(exclude or ())
    return include_set, exclude_set


def _selected(item_id: str, filters: tuple[set[str] | None, set[str]]) -> bool:
    include, exclude = filters
    if include is not None and item_id not in include:
        return False
    if item_id in exclude:
        return False
    return True


__all__ = [
    "load_default_keymaps",
    "build_default_bindings",
    "DEFAULT_ACTIONS",
    "DEFAULT_BINDINGS",
    "DEFAULT_LEADER",
]
