from __future__ import annotations

import sys
from pathlib import Path

from vault_editor.config import EditorConfig, resolve_base_dir


def test_defaults(tmp_path: Path) -> None:
    config = EditorConfig.from_env(tmp_path, environ={})

    assert config.base_dir == tmp_path.resolve()
    assert config.index_path == tmp_path.resolve() / "markdown_data.db"
    assert config.templates_path == tmp_path.resolve() / "templates"
    assert config.scanner_command == (sys.executable, "-m", "vault_editor.index.extract")
    assert config.scan_timeout_s == 10.0
    assert config.sequence_timeout_ms == 1000
    assert config.completion_limit == 10
    assert config.leader == "\\"
    assert config.undo_limit == 1000


def test_environment_overrides(tmp_path: Path) -> None:
    environ = {
        "VAULT_EDITOR_SCANNER": "md-scan --json",
        "VAULT_EDITOR_INDEX": "index.db",
        "VAULT_EDITOR_SCAN_TIMEOUT": "2.5",
        "VAULT_EDITOR_SEQUENCE_TIMEOUT_MS": "400",
        "VAULT_EDITOR_COMPLETION_LIMIT": "3",
        "VAULT_EDITOR_TEMPLATES_DIR": "_tpl",
        "VAULT_EDITOR_DAILY_NOTE_FORMAT": "journal/%Y%m%d.md",
        "VAULT_EDITOR_LEADER": ",",
        "VAULT_EDITOR_UNDO_LIMIT": "50",
    }

    config = EditorConfig.from_env(tmp_path, environ=environ)

    assert config.scanner_command == ("md-scan", "--json")
    assert config.index_path.name == "index.db"
    assert config.scan_timeout_s == 2.5
    assert config.sequence_timeout_ms == 400
    assert config.completion_limit == 3
    assert config.templates_path.name == "_tpl"
    assert config.daily_note_format == "journal/%Y%m%d.md"
    assert config.leader == ","
    assert config.undo_limit == 50


def test_bad_numbers_fall_back(tmp_path: Path) -> None:
    environ = {
        "VAULT_EDITOR_SCAN_TIMEOUT": "soon",
        "VAULT_EDITOR_SEQUENCE_TIMEOUT_MS": "-5",
        "VAULT_EDITOR_COMPLETION_LIMIT": "0",
        "VAULT_EDITOR_UNDO_LIMIT": "lots",
    }

    config = EditorConfig.from_env(tmp_path, environ=environ)

    assert config.scan_timeout_s == 10.0
    assert config.sequence_timeout_ms == 1000
    assert config.completion_limit == 10
    assert config.undo_limit == 1000


def test_zero_undo_limit_means_unlimited(tmp_path: Path) -> None:
    config = EditorConfig.from_env(tmp_path, environ={"VAULT_EDITOR_UNDO_LIMIT": "0"})

    assert config.undo_limit is None


def test_base_dir_precedence(tmp_path: Path) -> None:
    explicit = tmp_path / "explicit"
    from_env = tmp_path / "env"
    cwd = tmp_path / "cwd"
    environ = {"VAULT_EDITOR_BASE_DIR": str(from_env)}

    assert resolve_base_dir(explicit, environ=environ, cwd=cwd) == explicit.resolve()
    assert resolve_base_dir(None, environ=environ, cwd=cwd) == from_env.resolve()
    assert resolve_base_dir(None, environ={}, cwd=cwd) == cwd.resolve()
    assert resolve_base_dir("", environ={"VAULT_EDITOR_BASE_DIR": "  "}, cwd=cwd) == (
        cwd.resolve()
    )
