"""Register storage for yank, cut and paste."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal

RegisterType = Literal["character", "line"]

DEFAULT_REGISTER = '"'


@dataclass(frozen=True, slots=True)
class RegisterValue:
    text: str
    type: RegisterType = "character"

    @property
    def linewise(self) -> bool:
        return self.type == "line"


class RegisterBank:
    """Tracks the unnamed register plus labeled ``a``-``z`` registers.

    Writing any labeled register also updates the unnamed one, so a plain
    ``p`` pastes the latest yank regardless of its target.
    """

    def __init__(self) -> None:
        self._registers: Dict[str, RegisterValue] = {
            DEFAULT_REGISTER: RegisterValue(text="")
        }

    def get(self, name: str = DEFAULT_REGISTER) -> RegisterValue:
        return self._registers.get(_normalize(name), RegisterValue(text=""))

    def set(self, name: str, value: RegisterValue) -> None:
        key = _normalize(name)
        self._registers[key] = value
        if key != DEFAULT_REGISTER:
            self._registers[DEFAULT_REGISTER] = value

    def append(self, name: str, text: str) -> None:
        existing = self.get(name)
        combined = RegisterValue(text=existing.text + text, type=existing.type)
        self.set(name, combined)

    def yank_to(
        self, name: str, text: str, *, register_type: RegisterType = "character"
    ) -> None:
        self.set(name, RegisterValue(text=text, type=register_type))


def _normalize(name: str) -> str:
    if not name:
        return DEFAULT_REGISTER
    if len(name) == 1 and name.isalpha():
        return name.lower()
    return name
