"""Reference scanner: pull ``#tags`` and ``[[links]]`` out of a Markdown note.

Run as ``vault-scan <file_path> <base_dir>``; prints one JSON object
``{"path": ..., "tags": [...], "links": [...]}`` on stdout. The editor runs
whatever ``VAULT_EDITOR_SCANNER`` names with the same arguments, so any
program honouring that contract can replace this one.
"""

from __future__ import annotations

import json
import re
import sys
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .models import link_target, normalize_tag

WIKILINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:#[^\]|]+)?(?:\|[^\]]+)?\]\]")
TAG_PATTERN = re.compile(r"(?<![\w#&/])#([A-Za-z0-9_][\w/-]*)")
INLINE_CODE_PATTERN = re.compile(r"`[^`]*`")
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

EXIT_OK = 0
EXIT_USAGE = 64
EXIT_UNREADABLE = 2


def _prose_lines(lines: Iterable[str]) -> Iterable[str]:
    """Lines outside fenced code, with inline code blanked."""

    fence: Optional[str] = None
    for line in lines:
        match = FENCE_PATTERN.match(line)
        if match:
            marker = match.group(1)
            if fence is None:
                fence = marker
            elif fence == marker:
                fence = None
            continue
        if fence is None:
            yield INLINE_CODE_PATTERN.sub(lambda m: " " * len(m.group(0)), line)


def extract_tags(text: str) -> list[str]:
    """Tags in order of first appearance, normalized and de-duplicated."""

    seen: dict[str, None] = {}
    for line in _prose_lines(text.splitlines()):
        for match in TAG_PATTERN.finditer(line):
            tag = normalize_tag(match.group(1).rstrip("/-"))
            # digits alone read as issue numbers, not tags
            if tag and not tag.isdigit():
                seen.setdefault(tag, None)
    return list(seen)


def extract_links(text: str) -> list[str]:
    """Wikilink targets, without alias or section, in order of appearance."""

    seen: dict[str, None] = {}
    for line in _prose_lines(text.splitlines()):
        for match in WIKILINK_PATTERN.finditer(line):
            target = link_target(match.group(1))
            if target:
                seen.setdefault(target, None)
    return list(seen)


def scan_text(path: str, text: str) -> dict:
    return {"path": path, "tags": extract_tags(text), "links": extract_links(text)}


def target_at(line: str, col: int) -> Optional[tuple[str, str]]:
    """What sits under ``col``: ``("link", target)``, ``("tag", name)`` or None."""

    for match in WIKILINK_PATTERN.finditer(line):
        if match.start() <= col < match.end():
            return ("link", link_target(match.group(1)))
    for match in TAG_PATTERN.finditer(line):
        if match.start() <= col < match.end():
            return ("tag", normalize_tag(match.group(1)))
    return None


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if not args or len(args) > 2:
        print("usage: vault-scan <file_path> [base_dir]", file=sys.stderr)
        return EXIT_USAGE

    path = Path(args[0])
    if not path.is_absolute() and len(args) == 2:
        path = Path(args[1]) / path
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        print(f"vault-scan: cannot read {path}: {exc}", file=sys.stderr)
        return EXIT_UNREADABLE

    json.dump(scan_text(str(path), text), sys.stdout)
    sys.stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
