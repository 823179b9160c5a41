from __future__ import annotations

import weakref
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING, TypeAlias

from .errors import InvalidOperationError, InvalidPathError
from .models import ChangeKind, FileInfo
from .render import owner_string, permission_string, size_string

if TYPE_CHECKING:
    from .tree import FileTree

SEPARATOR = "/"
SYMLINK_ARROW = " → "

Visitor: TypeAlias = Callable[["FileNode"], None]
VisitEvaluator: TypeAlias = Callable[["FileNode"], bool]


def _validate_name(name: str) -> None:
    if not name or name in {".", ".."} or SEPARATOR in name:
        raise InvalidPathError(f"invalid node name: {name!r}")


class FileNode:
    """One filesystem entry in a :class:`~fstree.tree.FileTree`.

    Children are owned through ``children``; ``parent`` and ``tree`` are weak
    back-references, so the root is the only strong handle on the graph.
    """

    def __init__(
        self,
        name: str,
        info: FileInfo,
        parent: FileNode | None = None,
        tree: FileTree | None = None,
    ) -> None:
        if tree is None and parent is not None:
            tree = parent.tree
        self.name = name
        self.info = info
        self.change_kind = ChangeKind.UNCHANGED
        self.children: dict[str, FileNode] = {}
        self._parent = weakref.ref(parent) if parent is not None else None
        self._tree = weakref.ref(tree) if tree is not None else None
        self.path = self._build_path()

    def __repr__(self) -> str:
        return f"FileNode({self.path!r}, {self.change_kind.value})"

    @property
    def parent(self) -> FileNode | None:
        return self._parent() if self._parent is not None else None

    @property
    def tree(self) -> FileTree | None:
        return self._tree() if self._tree is not None else None

    @tree.setter
    def tree(self, tree: FileTree) -> None:
        self._tree = weakref.ref(tree)

    @property
    def is_root(self) -> bool:
        return self._parent is None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def is_dir(self) -> bool:
        return self.info.is_dir

    @property
    def display_name(self) -> str:
        if self.info.is_symlink and self.info.link_target:
            return f"{self.name}{SYMLINK_ARROW}{self.info.link_target}"
        return self.name

    def _build_path(self) -> str:
        parent = self.parent
        if parent is None:
            return SEPARATOR + self.name
        if parent.path == SEPARATOR:
            return SEPARATOR + self.name
        return parent.path + SEPARATOR + self.name

    def _adjust_size(self, delta: int) -> None:
        tree = self.tree
        if tree is not None:
            tree.size += delta

    def _is_attached(self) -> bool:
        parent = self.parent
        if parent is None:
            return self.is_root
        return parent.children.get(self.name) is self

    def sorted_children(self) -> list[FileNode]:
        return [self.children[name] for name in sorted(self.children)]

    def ancestors(self) -> Iterator[FileNode]:
        """Yield parents from the nearest up to (excluding) the root."""
        parent = self.parent
        while parent is not None and not parent.is_root:
            yield parent
            parent = parent.parent

    def attribute_columns(self) -> tuple[str, str, str]:
        info = self.info
        return (
            permission_string(info.mode),
            owner_string(info.uid, info.gid),
            size_string(info.size),
        )

    def add_child(self, name: str, info: FileInfo) -> FileNode:
        """Create a child, or replace the metadata of an existing one.

        An existing child keeps its subtree; only a new child grows the tree.
        """
        existing = self.children.get(name)
        if existing is not None:
            existing.info = info
            return existing
        _validate_name(name)
        child = FileNode(name, info, parent=self)
        self.children[name] = child
        self._adjust_size(1)
        return child

    def remove(self) -> None:
        if self.is_root:
            raise InvalidOperationError("cannot remove the tree root")

        # pre-order collection, unlinked in reverse so descendants go first
        pending = [self]
        ordered: list[FileNode] = []
        while pending:
            node = pending.pop()
            ordered.append(node)
            pending.extend(node.children.values())

        for node in reversed(ordered):
            parent = node.parent
            if parent is not None and parent.children.get(node.name) is node:
                del parent.children[node.name]
            self._adjust_size(-1)

    def walk_child_first(
        self, visit: Visitor, should_visit: VisitEvaluator | None = None
    ) -> None:
        """Depth-first walk visiting children (sorted by name) before parents.

        The root is never visited. When ``should_visit`` returns ``False`` for
        a node, neither that node nor any of its descendants is visited.
        """
        stack: list[tuple[FileNode, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded:
                if not node.is_root and node._is_attached():
                    visit(node)
                continue
            if not node.is_root and should_visit is not None:
                if not should_visit(node):
                    continue
            stack.append((node, True))
            for child in reversed(node.sorted_children()):
                stack.append((child, False))

    def walk_parent_first(
        self, visit: Visitor, should_visit: VisitEvaluator | None = None
    ) -> None:
        """Depth-first walk visiting a node before descending into it.

        A visitor may remove the node it is given; the walk then skips the
        removed subtree.
        """
        stack: list[FileNode] = [self]
        while stack:
            node = stack.pop()
            if not node.is_root:
                if not node._is_attached():
                    continue
                if should_visit is not None and not should_visit(node):
                    continue
                visit(node)
                if not node._is_attached():
                    continue
            stack.extend(reversed(node.sorted_children()))

    def assign_change_kind(self, kind: ChangeKind) -> None:
        self.change_kind = kind
        if kind is not ChangeKind.REMOVED:
            return
        # a removed directory takes its whole subtree with it
        pending = list(self.children.values())
        while pending:
            node = pending.pop()
            node.change_kind = kind
            pending.extend(node.children.values())

    def derive_change_kind(self, base: ChangeKind) -> ChangeKind:
        """Assign ``base`` folded with every child's current kind."""
        kind = base
        for child in self.children.values():
            kind = kind.merge(child.change_kind)
        self.assign_change_kind(kind)
        return kind

    def compare(self, other: FileNode | None) -> ChangeKind:
        return compare_nodes(self, other)

    def clone(
        self, new_parent: FileNode | None, tree: FileTree | None = None
    ) -> FileNode:
        """Deep-copy this subtree under ``new_parent``.

        Names, metadata and change kinds are preserved as they are. The copy
        is not linked into ``new_parent.children``; the caller attaches it.
        """
        if tree is None and new_parent is not None:
            tree = new_parent.tree
        copy = FileNode(self.name, self.info, parent=new_parent, tree=tree)
        copy.change_kind = self.change_kind
        pending = [(self, copy)]
        while pending:
            source, target = pending.pop()
            for name, child in source.children.items():
                duplicate = FileNode(name, child.info, parent=target, tree=tree)
                duplicate.change_kind = child.change_kind
                target.children[name] = duplicate
                pending.append((child, duplicate))
        return copy


def compare_nodes(node: FileNode | None, other: FileNode | None) -> ChangeKind:
    """Compare two optional nodes standing at the same path.

    A missing side yields ``ADDED``/``REMOVED``. Nodes with different names
    cannot stand at the same path, so that case raises ``ValueError``.
    """
    if node is None and other is None:
        return ChangeKind.UNCHANGED
    if node is None:
        return ChangeKind.ADDED
    if other is None:
        return ChangeKind.REMOVED
    if node.name != other.name:
        raise ValueError(
            f"comparing mismatched nodes: {node.path!r} vs {other.path!r}"
        )
    return node.info.compare(other.info)
