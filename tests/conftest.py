from __future__ import annotations

import errno
import posixpath
import stat
from collections.abc import Iterable, Iterator

import pytest

from fstree.errors import InvalidPathError
from fstree.models import ChangeKind, FileInfo
from fstree.node import FileNode
from fstree.tree import FileTree

DIR_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644
LINK_MODE = stat.S_IFLNK | 0o777


def mk_info(
    path: str,
    *,
    mode: int = FILE_MODE,
    size: int = 0,
    fingerprint: int = 123,
    uid: int = 0,
    gid: int = 0,
    link_target: str = "",
) -> FileInfo:
    return FileInfo(
        path=path,
        link_target=link_target,
        fingerprint=fingerprint,
        size=size,
        mode=mode,
        uid=uid,
        gid=gid,
    )


class FakeFilesystem:
    """In-memory stand-in for the stat/scan collaborator."""

    def __init__(self, entries: dict[str, FileInfo] | None = None) -> None:
        self.entries = dict(entries or {})
        self.calls: list[str] = []

    def stat(self, path: str) -> FileInfo:
        self.calls.append(path)
        info = self.entries.get(path)
        if info is not None:
            return info
        return FileInfo(
            path=path,
            stat_error=FileNotFoundError(errno.ENOENT, "No such file", path),
        )

    def scan(self, path: str) -> Iterator[tuple[str, FileInfo]]:
        yield path, self.stat(path)
        for child in sorted(self.entries):
            if child != path and posixpath.dirname(child) == path:
                yield child, self.entries[child]


def mk_tree(
    paths: Iterable[str],
    *,
    filesystem: FakeFilesystem | None = None,
    **info_kwargs: object,
) -> FileTree:
    tree = FileTree(filesystem=filesystem or FakeFilesystem())
    for path in paths:
        tree.insert_path(path, mk_info(path, **info_kwargs))  # type: ignore[arg-type]
    return tree


def kinds_by_path(tree: FileTree) -> dict[str, ChangeKind]:
    kinds: dict[str, ChangeKind] = {}

    def record(node: FileNode) -> None:
        kinds[node.path] = node.change_kind

    tree.walk_child_first(record)
    return kinds


@pytest.fixture
def fake_fs() -> FakeFilesystem:
    return FakeFilesystem()


@pytest.fixture
def bin_tree() -> FileTree:
    return mk_tree(
        [
            "/bin/cat",
            "/bin/chmod",
            "/bin/chown",
            "/bin/cp",
            "/bin/date",
            "/bin/dd",
            "/bin/df",
            "/bin/dmesg",
            "/bin/echo",
        ]
    )


class PickyTree(FileTree):
    """Tree refusing to take any path ending in ``broken``."""

    def insert_path(self, path, info):
        if path.endswith("broken"):
            raise InvalidPathError(f"refusing {path}")
        return super().insert_path(path, info)
