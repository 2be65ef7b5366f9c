"""Pick-list panels shown beside the buffer (tags, backlinks, search results)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Sequence

from vault_editor.index.models import FileRecord, TagCount

ItemKind = Literal["tag", "file"]


@dataclass(frozen=True, slots=True)
class PanelItem:
    label: str
    kind: ItemKind
    value: str


@dataclass
class ListPanel:
    title: str
    items: list[PanelItem] = field(default_factory=list)
    index: int = 0
    kind: str = "list"

    @property
    def selected(self) -> Optional[PanelItem]:
        if not self.items:
            return None
        return self.items[self.index]

    def move(self, delta: int) -> None:
        if self.items:
            self.index = max(0, min(len(self.items) - 1, self.index + delta))

    def lines(self) -> list[str]:
        return [item.label for item in self.items]


def tag_panel(tags: Sequence[TagCount], *, title: str = "Tags") -> ListPanel:
    items = [PanelItem(f"#{tag.name} ({tag.count})", "tag", tag.name) for tag in tags]
    return ListPanel(title=title, items=items, kind="tags")


def file_panel(
    title: str, files: Sequence[FileRecord], *, kind: str = "files"
) -> ListPanel:
    items = [PanelItem(record.path, "file", record.path) for record in files]
    return ListPanel(title=title, items=items, kind=kind)


__all__ = ["ListPanel", "PanelItem", "tag_panel", "file_panel"]
