"""Autocomplete for tags, links, snippets and templates."""

from .engine import (
    DEFAULT_SNIPPETS,
    CompletionEngine,
    CompletionRequest,
    detect_trigger,
    template_request,
)
from .state import COMPLETION_EVENT, CompletionController, CompletionState

__all__ = [
    "DEFAULT_SNIPPETS",
    "CompletionEngine",
    "CompletionRequest",
    "detect_trigger",
    "template_request",
    "COMPLETION_EVENT",
    "CompletionController",
    "CompletionState",
]
