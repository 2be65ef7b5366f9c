from __future__ import annotations

from vault_editor.buffer import Buffer
from vault_editor.modes import KeyInput, ModeBus, ModeContext, ModeResult
from vault_editor.modes.mode_manager import ModeManager


def make_manager(text: str = "") -> ModeManager:
    buffer = Buffer.from_text(text)
    context = ModeContext(buffer=buffer, registers=buffer.registers, bus=ModeBus())
    return ModeManager.with_default_modes(context)


def feed(manager: ModeManager, *tokens: str) -> ModeResult:
    result = ModeResult(consumed=False)
    for token in tokens:
        if len(token) == 1:
            key = KeyInput(key=token, text=token)
        else:
            key = KeyInput.parse(token)
        result = manager.handle_key(key)
    return result


def test_manager_starts_in_normal_mode() -> None:
    manager = make_manager()

    assert manager.active_name == "normal"
    assert manager.context.flags["normal_active"] is True


def test_insert_session_is_one_undo_step() -> None:
    manager = make_manager()

    feed(manager, "i", "h", "i", "escape")
    assert manager.context.buffer.text == "hi"
    assert manager.context.buffer.cursor == (0, 1)
    assert manager.active_name == "normal"

    undo = feed(manager, "u")
    assert undo.status == "undo"
    assert manager.context.buffer.text == ""

    redo = feed(manager, "ctrl+r")
    assert redo.status == "redo"
    assert manager.context.buffer.text == "hi"


def test_undo_with_empty_history() -> None:
    manager = make_manager("text")

    result = feed(manager, "u")

    assert result.status == "undo_empty"
    assert result.message == "Already at oldest change"


def test_delete_line_then_paste_below() -> None:
    manager = make_manager("one\ntwo\nthree")

    feed(manager, "d", "d")
    assert manager.context.buffer.text == "two\nthree"
    assert manager.context.registers.get('"').linewise is True

    result = feed(manager, "p")
    assert result.status == "paste"
    assert manager.context.buffer.text == "two\none\nthree"
    assert manager.context.buffer.cursor == (1, 0)


def test_paste_from_empty_register() -> None:
    manager = make_manager("abc")

    result = feed(manager, "p")

    assert result.status == "empty_register"
    assert manager.context.buffer.text == "abc"


def test_named_register_yank() -> None:
    manager = make_manager("alpha\nbeta")

    register = feed(manager, '"', "a")
    yank = feed(manager, "y", "y")

    assert register.status == "register"
    assert yank.status == "yank_line"
    assert yank.message == "a"
    assert manager.context.registers.get("a").text == "alpha"
    assert manager.context.buffer.state.active_register == '"'


def test_escape_cancels_selected_register() -> None:
    manager = make_manager("alpha")

    feed(manager, '"', "b")
    result = feed(manager, "escape")

    assert result.status == "cancel"
    assert manager.context.buffer.state.active_register == '"'


def test_delete_char_clamps_cursor_at_line_end() -> None:
    manager = make_manager("ab")
    feed(manager, "l")

    result = feed(manager, "x")

    assert result.status == "delete_char"
    assert manager.context.buffer.text == "a"
    assert manager.context.buffer.cursor == (0, 0)
    assert manager.context.registers.get('"').text == "b"


def test_open_line_below_joins_insert_undo_step() -> None:
    manager = make_manager("one")

    feed(manager, "o", "t", "w", "o", "escape")
    assert manager.context.buffer.text == "one\ntwo"

    feed(manager, "u")
    assert manager.context.buffer.text == "one"


def test_append_at_line_end() -> None:
    manager = make_manager("ab")

    feed(manager, "A", "c", "escape")

    assert manager.context.buffer.text == "abc"
    assert manager.context.buffer.cursor == (0, 2)


def test_insert_backspace_joins_lines() -> None:
    manager = make_manager("a\nb")

    feed(manager, "j", "i", "backspace")

    assert manager.context.buffer.text == "ab"
    assert manager.context.buffer.cursor == (0, 1)


def test_insert_enter_and_tab() -> None:
    manager = make_manager("")

    feed(manager, "i", "a", "enter", "tab", "b")

    assert manager.context.buffer.text == "a\n    b"


def test_word_motions() -> None:
    manager = make_manager("foo bar_baz, qux")

    assert feed(manager, "w").status == "motion"
    assert manager.context.buffer.cursor == (0, 4)
    feed(manager, "w")
    assert manager.context.buffer.cursor == (0, 11)
    feed(manager, "w")
    assert manager.context.buffer.cursor == (0, 13)
    feed(manager, "b")
    assert manager.context.buffer.cursor == (0, 11)


def test_buffer_start_and_end_motions() -> None:
    manager = make_manager("one\n  two")

    feed(manager, "G")
    assert manager.context.buffer.cursor == (1, 2)

    feed(manager, "g", "g")
    assert manager.context.buffer.cursor == (0, 0)


def test_line_end_stays_on_last_character_in_normal_mode() -> None:
    manager = make_manager("abcd")

    feed(manager, "$")

    assert manager.context.buffer.cursor == (0, 3)


def test_visual_line_delete_removes_whole_lines() -> None:
    manager = make_manager("a\nb\nc")

    feed(manager, "j", "V")
    result = feed(manager, "d")

    assert result.status == "visual_delete"
    assert manager.active_name == "normal"
    assert manager.context.buffer.text == "a\nc"
    assert manager.context.registers.get('"').linewise is True
    assert manager.context.registers.get('"').text == "b"


def test_visual_selection_spans_lines() -> None:
    manager = make_manager("abc\ndef")

    feed(manager, "l", "v", "j", "y")

    assert manager.context.registers.get('"').text == "bc\nde"
    assert manager.context.buffer.cursor == (0, 1)
    assert manager.context.buffer.selection is None


def test_command_mode_round_trip() -> None:
    manager = make_manager("text")

    feed(manager, ":")
    assert manager.active_name == "command"
    assert manager.context.flags["command_active"] is True

    result = feed(manager, "e", "c", "h", "o", " ", "h", "i", "enter")

    assert result.status == "command_echo"
    assert result.message == "hi"
    assert manager.active_name == "normal"
    assert manager.context.flags["command_active"] is False


def test_mode_switch_event_reports_previous_mode() -> None:
    manager = make_manager()
    switches: list[object] = []
    manager.context.bus.subscribe("mode.switch", switches.append)

    feed(manager, "v", "escape")

    assert switches == [
        {"mode": "visual", "previous": "normal"},
        {"mode": "normal", "previous": "visual"},
    ]


def test_unbound_keys_change_nothing() -> None:
    cases = {
        "normal": ("z", "ctrl+k", "f5"),
        "insert": ("ctrl+k", "f5"),
        "visual": ("z", "f5"),
        "command": ("f5", "ctrl+k"),
    }
    for mode, keys in cases.items():
        manager = make_manager("some text\nmore")
        manager.switch_mode(mode)
        before = (manager.context.buffer.text, manager.context.buffer.cursor)

        for key in keys:
            result = feed(manager, key)
            assert result.consumed is False, (mode, key)

        assert manager.active_name == mode
        assert (manager.context.buffer.text, manager.context.buffer.cursor) == before


def test_block_yank_takes_same_columns_from_each_row() -> None:
    manager = make_manager("abcd\nefgh\nijkl")

    result = feed(manager, "l", "ctrl+v", "j", "l", "y")

    assert result.status == "visual_yank"
    assert manager.active_name == "normal"
    assert manager.context.registers.get('"').text == "bc\nfg"
    assert manager.context.buffer.cursor == (0, 1)


def test_block_delete_is_one_undo_step() -> None:
    manager = make_manager("abcd\nefgh\nijkl")

    feed(manager, "l", "ctrl+v", "j", "l", "d")

    assert manager.context.buffer.text == "ad\neh\nijkl"
    assert manager.context.registers.get('"').text == "bc\nfg"

    feed(manager, "u")
    assert manager.context.buffer.text == "abcd\nefgh\nijkl"


def test_block_insert_prefixes_every_row() -> None:
    manager = make_manager("one\ntwo\nthree")

    feed(manager, "ctrl+v", "j", "j", "I")
    assert manager.active_name == "block_insert"

    feed(manager, "-", " ", "escape")

    assert manager.active_name == "normal"
    assert manager.context.buffer.text == "- one\n- two\n- three"

    feed(manager, "u")
    assert manager.context.buffer.text == "one\ntwo\nthree"


def test_block_append_pads_short_lines() -> None:
    manager = make_manager("ab\nc\nabcd")

    feed(manager, "l", "ctrl+v", "j", "j", "A", "X", "escape")

    assert manager.context.buffer.text == "abX\nc X\nabXcd"


def test_block_backspace_stops_at_insert_column() -> None:
    manager = make_manager("one\ntwo")

    feed(manager, "ctrl+v", "j", "I", "x", "y", "backspace")
    assert manager.context.buffer.text == "xone\nxtwo"

    feed(manager, "backspace")
    result = feed(manager, "backspace")

    assert result.status == "noop"
    assert manager.context.buffer.text == "one\ntwo"


def test_block_change_replaces_columns() -> None:
    manager = make_manager("abcd\nefgh")

    feed(manager, "l", "ctrl+v", "j", "l", "c", "Z", "escape")

    assert manager.context.buffer.text == "aZd\neZh"

    feed(manager, "u")
    assert manager.context.buffer.text == "abcd\nefgh"


def test_block_toggle_leaves_visual_mode() -> None:
    manager = make_manager("abc")

    feed(manager, "ctrl+v")
    assert manager.active_name == "visual"

    feed(manager, "ctrl+v")
    assert manager.active_name == "normal"
    assert manager.context.buffer.selection is None
