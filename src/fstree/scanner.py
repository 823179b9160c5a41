from __future__ import annotations

import logging
from pathlib import Path

from .filesystem import DirectoryReader, LocalFilesystem
from .tree import FileTree

logger = logging.getLogger(__name__)


def mount(directory: Path | str) -> LocalFilesystem:
    """Expose ``directory`` as the root ``/`` of a tree."""
    root = Path(directory).expanduser().resolve()
    if not root.is_dir():
        raise FileNotFoundError(f"Directory not found: {root}")
    return LocalFilesystem(root)


def expand(tree: FileTree, path: str, reader: DirectoryReader | None = None) -> int:
    """Insert the immediate children of ``path`` into ``tree``.

    Returns the number of entries read, ``path`` itself included.
    """
    source = reader if reader is not None else tree.filesystem
    if not hasattr(source, "scan"):
        raise TypeError(f"{type(source).__name__} cannot list directories")
    count = 0
    for entry_path, info in source.scan(path):
        tree.insert_path(entry_path, info)
        count += 1
    return count


def read_tree(
    path: str = "/",
    reader: DirectoryReader | None = None,
    *,
    recursive: bool = False,
) -> FileTree:
    """Build a tree holding ``path`` and its children, cursor on ``path``.

    Only one level is read unless ``recursive`` is set; symlinked
    directories are never followed.
    """
    source = reader if reader is not None else LocalFilesystem()
    tree = FileTree(filesystem=source, name=path)
    pending = [path]
    read = 0
    while pending:
        current = pending.pop()
        for entry_path, info in source.scan(current):
            tree.insert_path(entry_path, info)
            read += 1
            if recursive and entry_path != current and info.is_dir:
                pending.append(entry_path)
    tree.set_cursor(path)
    logger.debug("Read %d entries under %s (tree size %d)", read, path, tree.size)
    return tree
