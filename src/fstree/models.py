from __future__ import annotations

import stat
from dataclasses import dataclass, replace
from enum import Enum

UNKNOWN_ID = -1


class ChangeKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"

    def merge(self, other: ChangeKind) -> ChangeKind:
        """Fold a child's kind into a directory's kind.

        Only two unchanged operands stay unchanged. Anything else makes the
        directory modified: a directory is never itself added or removed
        because one of its children was.
        """
        if self is ChangeKind.UNCHANGED and other is ChangeKind.UNCHANGED:
            return ChangeKind.UNCHANGED
        return ChangeKind.MODIFIED

    @classmethod
    def parse(cls, text: str) -> ChangeKind:
        value = text.strip().lower()
        if value == "unmodified":
            return cls.UNCHANGED
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"unknown change kind: {text!r}") from None


class Action(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    COMPARE = "compare"


@dataclass(frozen=True)
class FileInfo:
    path: str
    link_target: str = ""
    fingerprint: int = 0
    size: int = 0
    mode: int = 0
    uid: int = UNKNOWN_ID
    gid: int = UNKNOWN_ID
    stat_error: OSError | None = None

    @classmethod
    def blank(cls, path: str) -> FileInfo:
        return cls(path=path)

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat.S_ISLNK(self.mode)

    def clone(self, **changes: object) -> FileInfo:
        return replace(self, **changes)

    def compare(self, other: FileInfo) -> ChangeKind:
        # size and path are informational only
        if (
            self.mode == other.mode
            and self.fingerprint == other.fingerprint
            and self.uid == other.uid
            and self.gid == other.gid
        ):
            return ChangeKind.UNCHANGED
        return ChangeKind.MODIFIED

    def __str__(self) -> str:
        return f"{self.path} {self.size} is_dir={self.is_dir}"


@dataclass(frozen=True)
class PathError:
    path: str
    action: Action
    error: Exception

    def __str__(self) -> str:
        return f"{self.action.value} {self.path}: {self.error}"
