"""``editor <file_path> [base_dir]``: open a note from a vault in the terminal."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from vault_editor.config import EditorConfig
from vault_editor.errors import EditorError, StoreIOError
from vault_editor.index.store import MetadataStore
from vault_editor.runtime import telemetry
from vault_editor.session import Session

EXIT_OK = 0
EXIT_FAILURE = 1

Runner = Callable[[Session], None]


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="editor", description="Modal Markdown editor with a vault index."
    )
    parser.add_argument("file_path", help="Note to open (created on first save)")
    parser.add_argument(
        "base_dir",
        nargs="?",
        default=None,
        help="Vault root (default: $VAULT_EDITOR_BASE_DIR, then the current directory)",
    )
    parser.add_argument(
        "--log-preset",
        choices=("development", "session", "silent"),
        default=None,
        help="telelog preset to use instead of the VAULT_EDITOR_LOG_* settings",
    )
    return parser.parse_args(argv)


def _default_runner(session: Session) -> None:
    from vault_editor.adapters.textual.app import run

    run(session)


def main(
    argv: Optional[Sequence[str]] = None, *, runner: Optional[Runner] = None
) -> int:
    args = _parse_args(argv)
    if args.log_preset:
        telemetry.configure(preset=args.log_preset)
    logger = telemetry.get_logger("vault_editor.cli")

    config = EditorConfig.from_env(args.base_dir)
    if not config.base_dir.is_dir():
        print(f"editor: base directory not found: {config.base_dir}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        store = MetadataStore(config.index_path, base_dir=config.base_dir)
    except StoreIOError as exc:
        logger.error(str(exc))
        print(f"editor: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    session = Session(config, store)
    try:
        try:
            session.open(Path(args.file_path).expanduser().resolve())
        except EditorError as exc:
            print(f"editor: {exc}", file=sys.stderr)
            return EXIT_FAILURE
        (runner or _default_runner)(session)
    finally:
        session.shutdown()
        store.close()
    return EXIT_OK


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run()
