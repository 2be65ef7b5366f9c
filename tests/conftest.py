from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable, Iterator

import pytest

from vault_editor.config import EditorConfig
from vault_editor.index.store import MetadataStore
from vault_editor.session import Session

FIXED_TODAY = date(2024, 5, 17)


@pytest.fixture
def vault(tmp_path: Path) -> Path:
    root = (tmp_path / "vault").resolve()
    root.mkdir()
    return root


@pytest.fixture
def write_note(vault: Path) -> Callable[[str, str], Path]:
    def _write(relative: str, text: str) -> Path:
        path = vault / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config(vault: Path) -> EditorConfig:
    return EditorConfig(base_dir=vault, scan_timeout_s=30.0)


@pytest.fixture
def store(config: EditorConfig) -> Iterator[MetadataStore]:
    db = MetadataStore(config.index_path, base_dir=config.base_dir)
    yield db
    db.close()


@pytest.fixture
def session(config: EditorConfig, store: MetadataStore) -> Iterator[Session]:
    current = Session(config, store, today=lambda: FIXED_TODAY)
    yield current
    current.shutdown()


@pytest.fixture
def settle() -> Callable[[Session], int]:
    """Wait for queued scans and apply them."""

    def _settle(current: Session) -> int:
        current.worker.wait_idle(30.0)
        return current.process_events()

    return _settle
