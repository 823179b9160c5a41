from __future__ import annotations

from dataclasses import dataclass

from .models import ChangeKind, PathError
from .node import FileNode
from .tree import FileTree


@dataclass
class ChangeCounts:
    unchanged: int = 0
    added: int = 0
    removed: int = 0
    modified: int = 0

    @property
    def changed(self) -> int:
        return self.added + self.removed + self.modified

    def increment(self, kind: ChangeKind) -> None:
        field_name = kind.value
        setattr(self, field_name, getattr(self, field_name) + 1)


@dataclass(frozen=True)
class TreeComparison:
    tree: FileTree
    failed: list[PathError]
    removed: list[str]


def compare_trees(lower: FileTree, upper: FileTree) -> TreeComparison:
    """Diff ``upper`` against ``lower`` in both directions.

    Runs on a clone of ``lower``: ``compare_and_mark`` brings in additions
    and modifications from ``upper``, then ``mark_removals`` marks what
    ``upper`` no longer has. Neither input is changed.
    """
    marked = lower.clone()
    failed = marked.compare_and_mark(upper)
    removed = marked.mark_removals(upper)
    return TreeComparison(tree=marked, failed=failed, removed=removed)


def count_changes(tree: FileTree) -> ChangeCounts:
    counts = ChangeCounts()

    def tally(node: FileNode) -> None:
        counts.increment(node.change_kind)

    tree.walk_child_first(tally)
    return counts


def changed_paths(tree: FileTree, kind: ChangeKind) -> list[str]:
    paths: list[str] = []

    def collect(node: FileNode) -> None:
        if node.change_kind is kind:
            paths.append(node.path)

    tree.walk_parent_first(collect)
    return paths
