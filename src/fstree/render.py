from __future__ import annotations

import stat
from dataclasses import dataclass
from typing import TYPE_CHECKING

from rich.text import Text

from .models import UNKNOWN_ID, ChangeKind

if TYPE_CHECKING:
    from .node import FileNode

PARENT_ROW_NAME = ".."
ATTRIBUTE_FORMAT = "{} {:>11} {:>10}  {}"
HEADER_COLUMNS = ("Permission", "UID:GID", "Size", "Filetree")

KIND_STYLES: dict[ChangeKind, str] = {
    ChangeKind.UNCHANGED: "white",
    ChangeKind.ADDED: "green",
    ChangeKind.REMOVED: "red",
    ChangeKind.MODIFIED: "yellow",
}


@dataclass(frozen=True)
class RenderOptions:
    show_attributes: bool = False
    hidden_kinds: frozenset[ChangeKind] = frozenset()

    def is_hidden(self, kind: ChangeKind) -> bool:
        return kind in self.hidden_kinds


DEFAULT_OPTIONS = RenderOptions()


@dataclass(frozen=True)
class Row:
    """One windowed row: columnar attributes plus the node it stands for."""

    permissions: str
    owner: str
    size: str
    name: str
    node: FileNode
    change_kind: ChangeKind

    @property
    def is_parent_reference(self) -> bool:
        return self.name == PARENT_ROW_NAME

    def plain(self, show_attributes: bool = False) -> str:
        if show_attributes:
            return ATTRIBUTE_FORMAT.format(
                self.permissions, self.owner, self.size, self.name
            )
        return self.name

    def to_text(self, show_attributes: bool = False) -> Text:
        style = KIND_STYLES[self.change_kind]
        if not show_attributes:
            return Text(self.name, style=style)
        attributes = ATTRIBUTE_FORMAT.format(
            self.permissions, self.owner, self.size, ""
        )
        return Text.assemble((attributes, "dim"), (self.name, style))


def permission_string(mode: int) -> str:
    """Return ``ls -l`` style permissions, e.g. ``drwxr-xr-x``."""
    return stat.filemode(mode)


def _id_text(value: int) -> str:
    return "N/A" if value == UNKNOWN_ID else str(value)


def owner_string(uid: int, gid: int) -> str:
    return f"{_id_text(uid)}:{_id_text(gid)}"


def size_string(size: int) -> str:
    return str(size)


def header_line() -> str:
    return ATTRIBUTE_FORMAT.format(*HEADER_COLUMNS)


def make_row(node: FileNode, name: str | None = None) -> Row:
    permissions, owner, size = node.attribute_columns()
    return Row(
        permissions=permissions,
        owner=owner,
        size=size,
        name=node.display_name if name is None else name,
        node=node,
        change_kind=node.change_kind,
    )
