from __future__ import annotations

import re
from collections.abc import Collection

from .models import ChangeKind
from .node import FileNode
from .tree import FileTree


def filter_tree(
    tree: FileTree,
    pattern: str | re.Pattern[str] | None = None,
    hidden_kinds: Collection[ChangeKind] = frozenset(),
) -> FileTree:
    """Return a copy of ``tree`` holding only what a view should show.

    Nodes whose change kind is hidden are dropped along with their subtree.
    With a ``pattern``, a node survives when its path matches or when one of
    its descendants survives. The model tree itself is never touched.
    """
    view = tree.clone()

    if hidden_kinds:

        def drop_hidden(node: FileNode) -> None:
            if node.change_kind in hidden_kinds:
                view.remove_path(node.path)

        view.walk_parent_first(drop_hidden)

    if pattern is not None:
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern

        def drop_unmatched(node: FileNode) -> None:
            if node.children or regex.search(node.path):
                return
            view.remove_path(node.path)

        view.walk_child_first(drop_unmatched)

    return view
