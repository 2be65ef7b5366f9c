"""Autocomplete: find the token being typed and rank what could finish it."""

from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from vault_editor.buffer import Buffer, BufferDelta
from vault_editor.index.models import Candidate, CandidateKind, rank_candidates
from vault_editor.index.store import MetadataStore
from vault_editor.runtime import telemetry

TAG_TRIGGER = re.compile(r"(?:^|(?<=[\s(\[,;]))#([\w/-]*)$")
SNIPPET_TRIGGER = re.compile(r"(?:^|(?<=[\s(\[,;]))@([\w-]*)$")

SnippetBody = Union[str, Callable[[], str]]


def _today() -> str:
    return date.today().isoformat()


DEFAULT_SNIPPETS: Dict[str, SnippetBody] = {
    "todo": "- [ ] ",
    "done": "- [x] ",
    "date": _today,
}


@dataclass(frozen=True, slots=True)
class CompletionRequest:
    """The partial token under the cursor.

    ``start_col`` is where the trigger (``[[``, ``#``, ``@``) begins and
    ``end_col`` is the cursor; applying a candidate replaces that span.
    """

    kind: CandidateKind
    prefix: str
    row: int
    start_col: int
    end_col: int


def detect_trigger(line: str, col: int, *, row: int = 0) -> Optional[CompletionRequest]:
    before = line[: max(0, min(col, len(line)))]
    end = len(before)

    opener = before.rfind("[[")
    if opener != -1:
        partial = before[opener + 2 :]
        if not any(mark in partial for mark in ("]", "|", "#")):
            return CompletionRequest("file", partial, row, opener, end)

    match = TAG_TRIGGER.search(before)
    if match:
        return CompletionRequest("tag", match.group(1), row, match.start(), end)

    match = SNIPPET_TRIGGER.search(before)
    if match:
        return CompletionRequest("snippet", match.group(1), row, match.start(), end)
    return None


def template_request(row: int, col: int) -> CompletionRequest:
    return CompletionRequest("template", "", row, col, col)


class CompletionEngine:
    """Sources candidates from the store, the snippet table and template files."""

    def __init__(
        self,
        store: MetadataStore,
        *,
        templates_dir: Optional[Path] = None,
        limit: int = 10,
        snippets: Optional[Dict[str, SnippetBody]] = None,
    ) -> None:
        self.store = store
        self.templates_dir = templates_dir
        self.limit = limit
        self._snippets: Dict[str, SnippetBody] = dict(
            DEFAULT_SNIPPETS if snippets is None else snippets
        )
        self._usage: Counter[tuple[str, str]] = Counter()
        self.logger = telemetry.get_logger("vault_editor.complete")

    def register_snippet(self, name: str, body: SnippetBody) -> None:
        if not name or not re.fullmatch(r"[\w-]+", name):
            raise ValueError(f"Invalid snippet name '{name}'")
        self._snippets[name] = body

    def snippet_names(self) -> list[str]:
        return sorted(self._snippets)

    def record_use(self, candidate: Candidate) -> None:
        self._usage[(candidate.kind, candidate.name)] += 1

    def suggest(self, request: CompletionRequest) -> list[Candidate]:
        if request.kind in ("tag", "file"):
            return self.store.query_autocomplete_candidates(
                request.kind, request.prefix, limit=self.limit
            )
        if request.kind == "snippet":
            found = [
                Candidate(
                    kind="snippet",
                    name=name,
                    usage=self._usage[("snippet", name)],
                )
                for name in self._snippets
            ]
            return rank_candidates(found, request.prefix, self.limit)
        if request.kind == "template":
            return rank_candidates(self._templates(), request.prefix, self.limit)
        raise ValueError(f"Unknown completion kind '{request.kind}'")

    def _templates(self) -> list[Candidate]:
        if self.templates_dir is None or not self.templates_dir.is_dir():
            return []
        return [
            Candidate(
                kind="template",
                name=path.stem,
                usage=self._usage[("template", path.stem)],
                detail=str(path),
            )
            for path in sorted(self.templates_dir.glob("*.md"))
            if path.is_file()
        ]

    def insertion_text(self, candidate: Candidate) -> str:
        if candidate.kind == "snippet":
            body = self._snippets.get(candidate.name, "")
            return body() if callable(body) else body
        if candidate.kind == "template":
            try:
                return Path(candidate.detail).read_text(encoding="utf-8")
            except OSError as exc:
                self.logger.warning(f"template unreadable: {candidate.detail}: {exc}")
                return ""
        return candidate.text

    def apply(
        self, buffer: Buffer, request: CompletionRequest, candidate: Candidate
    ) -> BufferDelta:
        """Replace the trigger and partial token with ``candidate``; one undo step."""

        text = self.insertion_text(candidate)
        end_col = request.end_col
        if candidate.kind == "file" and buffer.line(request.row)[end_col:].startswith(
            "]]"
        ):
            end_col += 2
        with buffer.undo_group("complete"):
            delta = buffer.replace_range(
                (request.row, request.start_col),
                (request.row, end_col),
                text,
                label=f"complete::{candidate.kind}",
            )
        self.record_use(candidate)
        telemetry.record_event(
            "completion.accept",
            level="debug",
            data={"kind": candidate.kind, "name": candidate.name},
        )
        return delta


__all__ = [
    "CompletionEngine",
    "CompletionRequest",
    "DEFAULT_SNIPPETS",
    "detect_trigger",
    "template_request",
]
