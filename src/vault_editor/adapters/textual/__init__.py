"""Textual front end; ``app`` needs the textual package, the adapter does not."""

from .controller import TextualUIHooks, TextualVimAdapter

__all__ = ["TextualUIHooks", "TextualVimAdapter"]
