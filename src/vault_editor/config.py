"""Editor configuration resolved from arguments and ``VAULT_EDITOR_*`` variables."""

from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from vault_editor.buffer.undo import DEFAULT_UNDO_LIMIT

ENV_PREFIX = "VAULT_EDITOR_"

DEFAULT_INDEX_FILENAME = "markdown_data.db"
DEFAULT_SCAN_TIMEOUT_S = 10.0
DEFAULT_SEQUENCE_TIMEOUT_MS = 1000
DEFAULT_COMPLETION_LIMIT = 10
DEFAULT_TEMPLATES_DIR = "templates"
DEFAULT_DAILY_NOTE_FORMAT = "daily/%Y-%m-%d.md"


def default_scanner_command() -> tuple[str, ...]:
    """Run the bundled reference scanner with the current interpreter."""

    return (sys.executable, "-m", "vault_editor.index.extract")


@dataclass(frozen=True, slots=True)
class EditorConfig:
    base_dir: Path
    index_filename: str = DEFAULT_INDEX_FILENAME
    scanner_command: tuple[str, ...] = field(default_factory=default_scanner_command)
    scan_timeout_s: float = DEFAULT_SCAN_TIMEOUT_S
    sequence_timeout_ms: int = DEFAULT_SEQUENCE_TIMEOUT_MS
    completion_limit: int = DEFAULT_COMPLETION_LIMIT
    templates_dir: str = DEFAULT_TEMPLATES_DIR
    daily_note_format: str = DEFAULT_DAILY_NOTE_FORMAT
    leader: str = "\\"
    # None keeps every undo entry.
    undo_limit: Optional[int] = DEFAULT_UNDO_LIMIT

    @property
    def index_path(self) -> Path:
        return self.base_dir / self.index_filename

    @property
    def templates_path(self) -> Path:
        return self.base_dir / self.templates_dir

    @classmethod
    def from_env(
        cls,
        base_dir: Optional[str | os.PathLike[str]] = None,
        *,
        environ: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "EditorConfig":
        """Build a config; ``base_dir`` wins over the environment, then cwd."""

        env = os.environ if environ is None else environ
        resolved = resolve_base_dir(base_dir, environ=env, cwd=cwd)
        scanner_raw = _get(env, "SCANNER")
        scanner = (
            tuple(shlex.split(scanner_raw)) if scanner_raw else default_scanner_command()
        )
        return cls(
            base_dir=resolved,
            index_filename=_get(env, "INDEX") or DEFAULT_INDEX_FILENAME,
            scanner_command=scanner,
            scan_timeout_s=_float(env, "SCAN_TIMEOUT", DEFAULT_SCAN_TIMEOUT_S),
            sequence_timeout_ms=_int(
                env, "SEQUENCE_TIMEOUT_MS", DEFAULT_SEQUENCE_TIMEOUT_MS
            ),
            completion_limit=_int(env, "COMPLETION_LIMIT", DEFAULT_COMPLETION_LIMIT),
            templates_dir=_get(env, "TEMPLATES_DIR") or DEFAULT_TEMPLATES_DIR,
            daily_note_format=_get(env, "DAILY_NOTE_FORMAT")
            or DEFAULT_DAILY_NOTE_FORMAT,
            leader=_get(env, "LEADER") or "\\",
            undo_limit=_undo_limit(env),
        )


def resolve_base_dir(
    explicit: Optional[str | os.PathLike[str]],
    *,
    environ: Optional[Mapping[str, str]] = None,
    cwd: Optional[Path] = None,
) -> Path:
    env = os.environ if environ is None else environ
    if explicit:
        return Path(explicit).expanduser().resolve()
    from_env = _get(env, "BASE_DIR")
    if from_env:
        return Path(from_env).expanduser().resolve()
    return (cwd or Path.cwd()).resolve()


def _get(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(f"{ENV_PREFIX}{name}")
    if value is None or not value.strip():
        return None
    return value.strip()


def _int(env: Mapping[str, str], name: str, fallback: int) -> int:
    value = _get(env, name)
    if value is None:
        return fallback
    try:
        parsed = int(value)
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


def _undo_limit(env: Mapping[str, str]) -> Optional[int]:
    """``0`` lifts the limit; anything unparsable or negative keeps the default."""

    value = _get(env, "UNDO_LIMIT")
    if value is None:
        return DEFAULT_UNDO_LIMIT
    try:
        parsed = int(value)
    except ValueError:
        return DEFAULT_UNDO_LIMIT
    if parsed == 0:
        return None
    return parsed if parsed > 0 else DEFAULT_UNDO_LIMIT


def _float(env: Mapping[str, str], name: str, fallback: float) -> float:
    value = _get(env, name)
    if value is None:
        return fallback
    try:
        parsed = float(value)
    except ValueError:
        return fallback
    return parsed if parsed > 0 else fallback


__all__ = ["EditorConfig", "resolve_base_dir", "default_scanner_command"]
