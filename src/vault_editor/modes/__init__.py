"""Modal input interpreter: modes, dispatch, and the keymap-driven base."""

from .base_mode import KeyInput, Mode, ModeBus, ModeContext, ModeResult
from .keymap_helpers import KeymapMode
from .normal_mode import NormalMode
from .insert_mode import InsertMode
from .visual_mode import VisualMode
from .block_insert_mode import BlockInsertMode
from .command_mode import CommandMode

__all__ = [
    "KeyInput",
    "Mode",
    "ModeBus",
    "ModeContext",
    "ModeResult",
    "KeymapMode",
    "NormalMode",
    "InsertMode",
    "VisualMode",
    "BlockInsertMode",
    "CommandMode",
]
