"""Records shared by the metadata store, the scanner, and autocomplete."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Iterable, Literal, Optional

CandidateKind = Literal["tag", "file", "snippet", "template"]


def normalize_tag(name: str) -> str:
    """Tag names are stored without ``#`` and lower-cased."""

    return name.strip().lstrip("#").strip().lower()


def link_target(raw: str) -> str:
    """Strip ``|alias`` and ``#section`` parts from a wikilink target."""

    return raw.split("|", 1)[0].split("#", 1)[0].strip()


def name_key(name: str) -> str:
    """Key used to match link targets against file names.

    ``Folder/My Note.md`` and ``my note`` share the key ``my note``.
    """

    base = PurePosixPath(name.replace("\\", "/")).name
    if base.lower().endswith(".md"):
        base = base[:-3]
    return base.strip().casefold()


@dataclass(frozen=True, slots=True)
class FileRecord:
    id: int
    path: str
    display_name: str


@dataclass(frozen=True, slots=True)
class TagCount:
    name: str
    count: int


@dataclass(frozen=True, slots=True)
class BacklinkRecord:
    source_file_id: int
    target_name: str
    resolved_file_id: Optional[int]

    @property
    def dangling(self) -> bool:
        return self.resolved_file_id is None


@dataclass(frozen=True, slots=True)
class ScanResult:
    """What the scanner reported for one file."""

    path: str
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Candidate:
    kind: CandidateKind
    name: str
    usage: int = 0
    insert_text: str = ""
    detail: str = field(default="", compare=False)

    @property
    def text(self) -> str:
        return self.insert_text or self.name


def rank_candidates(
    candidates: Iterable[Candidate], prefix: str, limit: int
) -> list[Candidate]:
    """Order completion candidates for display.

    Names starting with ``prefix`` exactly come first, then names containing
    it ignoring case; within each group higher usage wins, then the name.
    Anything else is dropped.
    """

    folded = prefix.casefold()
    exact: list[Candidate] = []
    loose: list[Candidate] = []
    seen: set[tuple[str, str]] = set()
    for candidate in candidates:
        key = (candidate.kind, candidate.name)
        if key in seen:
            continue
        seen.add(key)
        if candidate.name.startswith(prefix):
            exact.append(candidate)
        elif folded in candidate.name.casefold():
            loose.append(candidate)

    def order(item: Candidate) -> tuple[int, str, str]:
        return (-item.usage, item.name.casefold(), item.name)

    ranked = sorted(exact, key=order) + sorted(loose, key=order)
    return ranked[: max(0, limit)]


__all__ = [
    "CandidateKind",
    "normalize_tag",
    "link_target",
    "name_key",
    "FileRecord",
    "TagCount",
    "BacklinkRecord",
    "ScanResult",
    "Candidate",
    "rank_candidates",
]
