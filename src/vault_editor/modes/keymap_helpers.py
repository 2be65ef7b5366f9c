"""Helper utilities and the shared base for keymap-driven modes."""

from __future__ import annotations

from typing import List, Mapping, Optional

from vault_editor.keymaps import KeymapResolver, ResolutionMatch
from vault_editor.runtime import telemetry

from .base_mode import KeyInput, Mode, ModeContext, ModeResult

KEY_ALIASES = {
    "esc": "escape",
    "<esc>": "escape",
    "return": "enter",
    "<cr>": "enter",
    "bs": "backspace",
    "del": "delete",
    "space": " ",
    "<space>": " ",
}


def normalize_key_name(name: str) -> str:
    """Canonical key names: printable characters as-is, named keys lowercase."""

    if len(name) <= 1:
        return name
    lowered = name.lower()
    return KEY_ALIASES.get(lowered, lowered)


def key_to_token(key: KeyInput) -> str:
    name = normalize_key_name(key.key)
    modifiers = sorted({m.strip().lower() for m in key.modifiers if m.strip()})
    if len(name) == 1 and modifiers == ["shift"]:
        modifiers = []
    if modifiers:
        modifier = "+".join(modifiers)
        return f"{modifier}+{name}"
    return name


def printable_text(key: KeyInput) -> Optional[str]:
    """Text a key would type, or ``None`` for named and chorded keys."""

    if key.text is not None:
        return key.text if key.text.isprintable() and key.text else None
    if key.modifiers and any(m.lower() != "shift" for m in key.modifiers):
        return None
    if len(key.key) == 1 and key.key.isprintable():
        return key.key
    return None


def require_keymap_resolver(context: ModeContext) -> KeymapResolver:
    resolver = context.extras.get("keymap_resolver")
    if not isinstance(resolver, KeymapResolver):
        raise RuntimeError("ModeContext.extras missing 'keymap_resolver'")
    return resolver


def keymap_flag_context(context: ModeContext) -> Mapping[str, bool]:
    return context.flags


def update_flag(context: ModeContext, key: str, value: bool) -> None:
    context.set_flag(key, value)


class KeymapMode(Mode):
    """Mode that resolves every key through the keymap trie first.

    Keys that reach no binding are handed to ``handle_unbound``. A pending
    prefix followed by an unregistered key is dropped as a whole.
    """

    def __init__(
        self,
        context: ModeContext,
        *,
        default_pending_timeout_ms: int = 1000,
    ) -> None:
        super().__init__(context)
        self.logger = telemetry.get_logger(f"vault_editor.modes.{self.name}")
        self._resolver = require_keymap_resolver(context)
        self._flags = keymap_flag_context(context)
        self._pending: List[str] = []
        self._fallback: Optional[ResolutionMatch] = None
        self._default_timeout_ms = default_pending_timeout_ms

    @property
    def pending_tokens(self) -> tuple[str, ...]:
        return tuple(self._pending)

    def cancel_pending(self) -> None:
        self._pending.clear()
        self._fallback = None

    def on_exit(self, next_mode: str | None) -> None:
        del next_mode
        self.cancel_pending()

    def handle_key(self, key: KeyInput) -> ModeResult:
        token = key_to_token(key)
        self._pending.append(token)
        result = self._resolver.resolve(
            self.name, tuple(self._pending), context=self._flags
        )

        if result.status == "match" and result.match:
            self.cancel_pending()
            return self._execute_match(result.match)

        if result.status == "pending":
            self._fallback = result.fallback
            timeout_ms = result.timeout_ms or self._default_timeout_ms
            self.context.bus.emit(
                "keymap.pending",
                {"mode": self.name, "tokens": self.pending_tokens},
            )
            return ModeResult(
                consumed=True,
                status="pending",
                message="awaiting_sequence",
                timeout_ms=timeout_ms,
            )

        fallback = self._fallback
        had_prefix = len(self._pending) > 1
        self.cancel_pending()

        if fallback is not None:
            outcome = self._execute_match(fallback)
            if outcome.switch_to:
                return outcome
            return self.handle_key(key)

        if had_prefix:
            self.context.bus.emit("keymap.cleared", {"mode": self.name})
            return ModeResult(consumed=True, status="sequence_cleared")

        return self.handle_unbound(key)

    def handle_unbound(self, key: KeyInput) -> ModeResult:
        del key
        return ModeResult(consumed=False, status="unhandled")

    def handle_timeout(self) -> ModeResult:
        if not self._pending:
            return ModeResult(consumed=False, status="timeout")

        tokens = tuple(self._pending)
        self.cancel_pending()
        result = self._resolver.resolve(
            self.name, tokens, context=self._flags, final=True
        )
        if result.status == "match" and result.match:
            return self._execute_match(result.match)
        self.context.bus.emit("keymap.cleared", {"mode": self.name})
        return ModeResult(consumed=False, status="timeout", message="pending_timeout")

    def _execute_match(self, match: ResolutionMatch) -> ModeResult:
        with telemetry.span(
            "keymaps::execute",
            component="keymaps",
            metadata={"binding_id": match.binding.id, "action": match.action.id},
        ):
            outcome = match.action(self.context, match)

        if isinstance(outcome, ModeResult):
            return outcome
        return ModeResult(consumed=True)


__all__ = [
    "KeymapMode",
    "key_to_token",
    "normalize_key_name",
    "printable_text",
    "require_keymap_resolver",
    "keymap_flag_context",
    "update_flag",
]
