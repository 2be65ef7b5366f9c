"""Trie-based keymap resolution with telemetry instrumentation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Literal, Mapping, Optional, Sequence

from vault_editor.runtime.telemetry import span

from .models import ActionRef, Binding
from .registry import KeymapRegistry


@dataclass(slots=True)
class TrieNode:
    """Single trie node tracking bindings and child transitions."""

    bindings: list[str] = field(default_factory=list)
    children: Dict[str, "TrieNode"] = field(default_factory=dict)

    def child(self, token: str) -> "TrieNode":
        return self.children.setdefault(token, TrieNode())

    def next_tokens(self) -> tuple[str, ...]:
        return tuple(sorted(self.children.keys()))

    def descendants(self) -> Iterator["TrieNode"]:
        stack = list(self.children.values())
        while stack:
            current = stack.pop()
            yield current
            stack.extend(current.children.values())


@dataclass(slots=True)
class KeymapTrie:
    """Concrete trie built for a given mode."""

    mode: str
    root: TrieNode = field(default_factory=TrieNode)

    def add_binding(self, binding: Binding) -> None:
        node = self.root
        for token in binding.sequence.tokens:
            node = node.child(token)
        node.bindings.append(binding.id)


@dataclass(frozen=True, slots=True)
class ResolutionMatch:
    """Resolved binding paired with its action."""

    binding: Binding
    action: ActionRef


@dataclass(frozen=True, slots=True)
class ResolutionResult:
    """Outcome returned from the resolver.

    ``pending`` results may carry a ``fallback``: the binding that ends at the
    current prefix and should fire if no longer sequence completes in time.
    """

    status: Literal["match", "pending", "miss"]
    match: Optional[ResolutionMatch] = None
    consumed: int = 0
    next_expected: tuple[str, ...] = ()
    timeout_ms: Optional[int] = None
    fallback: Optional[ResolutionMatch] = None


class KeymapResolver:
    """Builds mode-specific tries and resolves sequences."""

    def __init__(
        self, registry: KeymapRegistry, *, logger_name: str | None = None
    ) -> None:
        self._registry = registry
        self._logger_name = logger_name
        self._cache: Dict[str, tuple[int, KeymapTrie]] = {}

    @property
    def registry(self) -> KeymapRegistry:
        return self._registry

    def resolve(
        self,
        mode: str,
        tokens: Sequence[str],
        *,
        context: Optional[Mapping[str, bool]] = None,
        final: bool = False,
    ) -> ResolutionResult:
        """Resolve ``tokens`` in ``mode``.

        With ``final=True`` (the pending window expired) the shortest usable
        binding at the prefix wins even when longer bindings exist below it.
        A binding that outranks every longer one, such as a panel key gated
        by a flag, resolves at once.
        """

        ctx = context or {}
        normalized = tuple(tokens)
        with span(
            "keymaps::resolve",
            logger_name=self._logger_name,
            component="keymaps",
            metadata={"mode": mode, "length": len(normalized)},
        ) as handle:
            trie = self._ensure_trie(mode)
            node = trie.root
            consumed = 0
            for token in normalized:
                child = node.children.get(token)
                if child is None:
                    handle.add_metadata("status", "miss")
                    return ResolutionResult(status="miss", consumed=consumed)
                node = child
                consumed += 1

            match = self._select_match(node, ctx)
            next_expected = self._usable_next_tokens(node, ctx)

            if match and (
                final
                or not next_expected
                or match.binding.priority > self._priority_below(node, ctx)
            ):
                handle.add_metadata("status", "match")
                handle.add_metadata("binding_id", match.binding.id)
                return ResolutionResult(
                    status="match",
                    match=match,
                    consumed=consumed,
                )

            if next_expected and not final:
                handle.add_metadata("status", "pending")
                timeout_ms = self._pending_timeout(node, ctx)
                if timeout_ms is not None:
                    handle.add_metadata("timeout_ms", timeout_ms)
                if match:
                    handle.add_metadata("fallback", match.binding.id)
                return ResolutionResult(
                    status="pending",
                    consumed=consumed,
                    next_expected=next_expected,
                    timeout_ms=timeout_ms,
                    fallback=match,
                )

            handle.add_metadata("status", "miss")
            return ResolutionResult(status="miss", consumed=consumed)

    def reset(self, mode: Optional[str] = None) -> None:
        if mode is None:
            self._cache.clear()
        else:
            self._cache.pop(mode, None)

    def _ensure_trie(self, mode: str) -> KeymapTrie:
        revision = self._registry.revision()
        cached = self._cache.get(mode)
        if cached and cached[0] == revision:
            return cached[1]

        trie = KeymapTrie(mode=mode)
        for binding in self._registry.iter_bindings(mode):
            trie.add_binding(binding)
        self._cache[mode] = (revision, trie)
        return trie

    def _select_match(
        self, node: TrieNode, context: Mapping[str, bool]
    ) -> Optional[ResolutionMatch]:
        if not node.bindings:
            return None

        matches: list[ResolutionMatch] = []
        for binding_id in node.bindings:
            binding = self._registry.get_binding(binding_id)
            if not binding.allows(context):
                continue
            action = self._registry.get_action(binding.action_id)
            matches.append(ResolutionMatch(binding=binding, action=action))

        if not matches:
            return None

        matches.sort(key=lambda m: (-m.binding.priority, m.binding.id))
        return matches[0]

    def _usable(self, node: TrieNode, context: Mapping[str, bool]) -> bool:
        return any(
            self._registry.get_binding(binding_id).allows(context)
            for binding_id in node.bindings
        )

    def _usable_next_tokens(
        self, node: TrieNode, context: Mapping[str, bool]
    ) -> tuple[str, ...]:
        usable = []
        for token, child in node.children.items():
            if self._usable(child, context) or any(
                self._usable(below, context) for below in child.descendants()
            ):
                usable.append(token)
        return tuple(sorted(usable))

    def _priority_below(self, node: TrieNode, context: Mapping[str, bool]) -> int:
        """Highest priority among usable bindings longer than ``node``."""

        priorities = [
            self._registry.get_binding(binding_id).priority
            for current in node.descendants()
            for binding_id in current.bindings
            if self._registry.get_binding(binding_id).allows(context)
        ]
        return max(priorities, default=0)

    def _pending_timeout(
        self, node: TrieNode, context: Mapping[str, bool]
    ) -> Optional[int]:
        timeouts: list[int] = []
        for current in node.descendants():
            for binding_id in current.bindings:
                binding = self._registry.get_binding(binding_id)
                if binding.allows(context):
                    timeouts.append(binding.sequence.timeout_ms)
        if not timeouts:
            return None
        return min(timeouts)


__all__ = [
    "KeymapResolver",
    "ResolutionResult",
    "ResolutionMatch",
]
