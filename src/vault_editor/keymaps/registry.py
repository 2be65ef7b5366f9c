"""Actions and bindings known to the editor.

Bindings are filed under a slot, ``(mode, key signature)``. Two bindings in
the same slot conflict unless their ``when`` clauses can never both hold;
the resolver reads the registry through ``iter_bindings`` and rebuilds its
trie whenever ``revision()`` moves.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from typing import (
    ContextManager,
    DefaultDict,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

from vault_editor.errors import EditorError
from vault_editor.runtime.telemetry import SpanHandle, span

from .models import ActionRef, Binding

Slot = Tuple[str, str]


class KeymapConflictError(EditorError):
    """A binding shares its slot with bindings whose contexts overlap."""

    def __init__(self, binding: Binding, conflicts: Iterable[Binding]):
        self.binding = binding
        self.conflicts = tuple(conflicts)
        names = ", ".join(other.id for other in self.conflicts)
        super().__init__(
            f"'{binding.id}' ({binding.mode}: {binding.key_signature}) "
            f"clashes with {names}"
        )


def _slot(binding: Binding) -> Slot:
    return (binding.mode, binding.key_signature)


class KeymapRegistry:
    def __init__(self, *, logger_name: str | None = None) -> None:
        self._actions: Dict[str, ActionRef] = {}
        self._bindings: Dict[str, Binding] = {}
        self._slots: DefaultDict[Slot, List[str]] = defaultdict(list)
        self._logger_name = logger_name
        self._revision = 0

    def revision(self) -> int:
        return self._revision

    def get_action(self, action_id: str) -> ActionRef:
        action = self._actions.get(action_id)
        if action is None:
            raise KeyError(f"Action '{action_id}' is not registered")
        return action

    def get_binding(self, binding_id: str) -> Binding:
        binding = self._bindings.get(binding_id)
        if binding is None:
            raise KeyError(f"Binding '{binding_id}' is not registered")
        return binding

    def register_action(self, action: ActionRef, *, replace: bool = False) -> ActionRef:
        if action.id in self._actions and not replace:
            raise ValueError(f"Action '{action.id}' already registered")
        self._actions[action.id] = action
        return action

    def register_binding(self, binding: Binding, *, replace: bool = False) -> Binding:
        """File ``binding`` under its slot.

        With ``replace=True`` any binding it conflicts with, and any earlier
        binding carrying the same id, is dropped first.
        """

        with self._span("register_binding", binding.id, mode=binding.mode) as handle:
            self._require_action(binding, handle)
            clashes = self.detect_conflicts(binding, ignore=(binding.id,))
            if binding.id in self._bindings and not replace:
                handle.fail("duplicate_id")
                raise ValueError(f"Binding id '{binding.id}' already registered")
            if clashes and not replace:
                handle.add_metadata("conflicts", ",".join(b.id for b in clashes))
                raise KeymapConflictError(binding, clashes)
            for stale in clashes:
                self._drop(stale.id)
            if binding.id in self._bindings:
                self._drop(binding.id)
            self._file(binding)
            return binding

    def unregister_binding(self, binding_id: str) -> Optional[Binding]:
        if binding_id not in self._bindings:
            return None
        return self._drop(binding_id)

    def update_binding(self, binding_id: str, **changes: object) -> Binding:
        with self._span("update_binding", binding_id) as handle:
            current = self._bindings.get(binding_id)
            if current is None:
                handle.fail("missing_binding")
                raise KeyError(f"Binding '{binding_id}' not found")
            updated = replace(current, **changes)
            self._require_action(updated, handle)
            clashes = self.detect_conflicts(updated, ignore=(binding_id,))
            if clashes:
                handle.add_metadata("conflicts", ",".join(b.id for b in clashes))
                raise KeymapConflictError(updated, clashes)
            self._drop(binding_id)
            self._file(updated)
            return updated

    def iter_bindings(self, mode: Optional[str] = None) -> Iterator[Binding]:
        for binding in list(self._bindings.values()):
            if mode is None or binding.mode == mode:
                yield binding

    def detect_conflicts(
        self, binding: Binding, *, ignore: Iterable[str] = ()
    ) -> list[Binding]:
        skip = set(ignore)
        return [
            self._bindings[other_id]
            for other_id in self._slots.get(_slot(binding), ())
            if other_id not in skip
            and _contexts_overlap(binding, self._bindings[other_id])
        ]

    def _require_action(self, binding: Binding, handle: SpanHandle) -> None:
        if binding.action_id not in self._actions:
            handle.add_metadata("missing_action", binding.action_id)
            raise KeyError(
                f"Binding '{binding.id}' references unknown action "
                f"'{binding.action_id}'"
            )

    def _file(self, binding: Binding) -> None:
        self._bindings[binding.id] = binding
        self._slots[_slot(binding)].append(binding.id)
        self._revision += 1

    def _drop(self, binding_id: str) -> Binding:
        binding = self._bindings.pop(binding_id)
        slot = _slot(binding)
        ids = self._slots.get(slot, [])
        if binding_id in ids:
            ids.remove(binding_id)
        if not ids:
            self._slots.pop(slot, None)
        self._revision += 1
        return binding

    def _span(
        self, operation: str, binding_id: str, **metadata: str
    ) -> ContextManager[SpanHandle]:
        return span(
            f"keymaps::{operation}",
            logger_name=self._logger_name,
            component="keymaps",
            metadata={"binding_id": binding_id, **metadata},
        )


def _contexts_overlap(left: Binding, right: Binding) -> bool:
    """Whether some flag context could satisfy both ``when`` clauses.

    An unconditional binding only overlaps another unconditional one, so a
    contextual binding can sit in the same slot as a plain fallback.
    """

    if not left.when and not right.when:
        return True
    if not left.when or not right.when:
        return False
    left_map, right_map = left.when_map, right.when_map
    shared = set(left_map) & set(right_map)
    if any(left_map[flag] != right_map[flag] for flag in shared):
        return False
    return left_map == right_map


__all__ = ["KeymapConflictError", "KeymapRegistry"]
