from __future__ import annotations

import logging
import posixpath
import uuid
from collections.abc import Sequence
from dataclasses import dataclass

from .errors import InvalidPathError, NotFoundError, StructuralError, TreeError
from .filesystem import Filesystem, LocalFilesystem
from .models import Action, ChangeKind, FileInfo, PathError
from .node import SEPARATOR, FileNode, VisitEvaluator, Visitor
from .render import DEFAULT_OPTIONS, PARENT_ROW_NAME, RenderOptions, Row, make_row

logger = logging.getLogger(__name__)


def split_path(path: str) -> list[str]:
    """Normalise ``path`` and return its components below the root.

    ``./a/b`` is read as ``/a/b``; paths that stay relative after
    normalisation (``.``, ``..``, ``../a``) cannot be placed in the tree.
    """
    cleaned = posixpath.normpath(path) if path else "."
    if cleaned in {".", ".."} or cleaned.startswith("../"):
        raise InvalidPathError(f"cannot add relative path {path!r}")
    return [part for part in cleaned.split(SEPARATOR) if part]


@dataclass
class _CompareMark:
    node: FileNode
    info: FileInfo
    tentative: ChangeKind = ChangeKind.UNCHANGED
    final: ChangeKind | None = None


class FileTree:
    """A set of files, directories and their relations.

    ``cursor`` is the current directory used for windowed rendering.
    ``size`` counts every node except the root.
    """

    def __init__(self, filesystem: Filesystem | None = None, name: str = "") -> None:
        self.name = name
        self.id = uuid.uuid4()
        self.size = 0
        self.filesystem: Filesystem = (
            filesystem if filesystem is not None else LocalFilesystem()
        )
        self.root = FileNode("", FileInfo.blank(SEPARATOR), tree=self)
        self.cursor = self.root

    def __repr__(self) -> str:
        return f"FileTree(name={self.name!r}, size={self.size}, cursor={self.cursor_path!r})"

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.find_node(path) is not None

    @property
    def cursor_path(self) -> str:
        return self.cursor.path

    # ------------------------------------------------------------------
    # Path addressing
    # ------------------------------------------------------------------

    def get_node(self, path: str) -> FileNode:
        node = self.root
        for name in split_path(path):
            child = node.children.get(name)
            if child is None:
                raise NotFoundError(f"path does not exist: {path}")
            node = child
        return node

    def find_node(self, path: str) -> FileNode | None:
        try:
            return self.get_node(path)
        except NotFoundError:
            return None

    def _stat_intermediate(self, path: str) -> FileInfo:
        try:
            info = self.filesystem.stat(path)
        except OSError as exc:
            info = FileInfo(path=path, stat_error=exc)
        if info.stat_error is not None:
            logger.debug("stat failed for %s: %s", path, info.stat_error)
        return info

    def insert_path(self, path: str, info: FileInfo) -> tuple[FileNode, list[FileNode]]:
        """Add (or update) the node at ``path``.

        Missing intermediate directories are created with metadata from the
        filesystem collaborator. Returns the node at ``path`` and the nodes
        created on the way, root-to-leaf.
        """
        names = split_path(path)
        if not names:
            self.root.info = info
            return self.root, []

        node = self.root
        created: list[FileNode] = []
        current = ""
        last = len(names) - 1
        for idx, name in enumerate(names):
            current += SEPARATOR + name
            child = node.children.get(name)
            if idx == last:
                node = node.add_child(name, info)
                if child is None:
                    created.append(node)
            elif child is not None:
                node = child
            else:
                node = node.add_child(name, self._stat_intermediate(current))
                created.append(node)
        return node, created

    def remove_path(self, path: str) -> None:
        node = self.get_node(path)
        node.remove()
        cursor = self.cursor.path
        if cursor == node.path or cursor.startswith(node.path + SEPARATOR):
            self.cursor = node.parent or self.root

    def set_cursor(self, path: str) -> None:
        if path == SEPARATOR:
            self.cursor = self.root
        else:
            self.cursor = self.get_node(path)

    # ------------------------------------------------------------------
    # Windowed rendering
    # ------------------------------------------------------------------

    def _visible_children(self, options: RenderOptions) -> list[FileNode]:
        children = self.cursor.sorted_children()
        if not options.hidden_kinds:
            return children
        return [node for node in children if not options.is_hidden(node.change_kind)]

    def visible_count(self, options: RenderOptions | None = None) -> int:
        options = options or DEFAULT_OPTIONS
        if options.hidden_kinds:
            count = len(self._visible_children(options))
        else:
            count = len(self.cursor.children)
        if not self.cursor.is_root:
            # ".." parent reference
            count += 1
        return count

    def node_at(self, index: int, options: RenderOptions | None = None) -> FileNode | None:
        rows = self.render_window(index, index + 1, options)
        return rows[0].node if rows else None

    def render_window(
        self, start: int, stop: int, options: RenderOptions | None = None
    ) -> list[Row]:
        """Return rows ``[start, stop)`` of the cursor listing, clamped.

        Row 0 under a non-root cursor is the ``..`` parent reference; the
        remaining rows are the cursor's children sorted by name.
        """
        options = options or DEFAULT_OPTIONS
        start = max(start, 0)
        stop = min(stop, self.visible_count(options))
        if start >= stop:
            return []

        rows: list[Row] = []
        offset = 0
        parent = self.cursor.parent
        if parent is not None:
            offset = 1
            if start == 0:
                rows.append(make_row(parent, name=PARENT_ROW_NAME))
        children = self._visible_children(options)
        for child in children[max(start - offset, 0) : stop - offset]:
            rows.append(make_row(child))
        return rows

    def render_text(
        self, start: int, stop: int, options: RenderOptions | None = None
    ) -> str:
        options = options or DEFAULT_OPTIONS
        rows = self.render_window(start, stop, options)
        return "".join(row.plain(options.show_attributes) + "\n" for row in rows)

    def to_text(self, options: RenderOptions | None = None) -> str:
        return self.render_text(0, self.visible_count(options), options)

    # ------------------------------------------------------------------
    # Traversal and copies
    # ------------------------------------------------------------------

    def walk_child_first(
        self, visit: Visitor, should_visit: VisitEvaluator | None = None
    ) -> None:
        self.root.walk_child_first(visit, should_visit)

    def walk_parent_first(
        self, visit: Visitor, should_visit: VisitEvaluator | None = None
    ) -> None:
        self.root.walk_parent_first(visit, should_visit)

    def clone(self) -> FileTree:
        tree = FileTree(filesystem=self.filesystem, name=self.name)
        tree.root = self.root.clone(None, tree=tree)
        tree.size = self.size
        try:
            tree.set_cursor(self.cursor.path)
        except TreeError as exc:
            raise StructuralError(
                f"cursor {self.cursor.path!r} lost while cloning"
            ) from exc
        return tree

    # ------------------------------------------------------------------
    # Combining trees
    # ------------------------------------------------------------------

    def stack(self, upper: FileTree) -> list[PathError]:
        """Overlay ``upper`` onto this tree; later entries win.

        Entries that cannot be inserted are returned instead of aborting.
        """
        failed: list[PathError] = []

        def graft(node: FileNode) -> None:
            try:
                self.insert_path(node.path, node.info)
            except TreeError as exc:
                logger.debug("could not stack %s: %s", node.path, exc)
                failed.append(PathError(node.path, Action.ADD, exc))

        upper.walk_child_first(graft)
        return failed

    def compare_and_mark(self, other: FileTree) -> list[PathError]:
        """Mark this tree with the changes found in ``other``.

        Paths only in ``other`` are inserted and marked ``ADDED`` (with any
        new ancestors); shared paths are compared and directories derive
        their kind from their children. ``other``'s metadata is copied onto
        every visited node. Paths missing from ``other`` are left alone; see
        :meth:`mark_removals`.
        """
        marks: list[_CompareMark] = []
        failed: list[PathError] = []

        def graft(upper_node: FileNode) -> None:
            lower_node = self.find_node(upper_node.path)
            if lower_node is None:
                try:
                    _, created = self.insert_path(upper_node.path, upper_node.info)
                except TreeError as exc:
                    logger.debug("could not add %s: %s", upper_node.path, exc)
                    failed.append(PathError(upper_node.path, Action.ADD, exc))
                    return
                for new_node in reversed(created):
                    source = other.find_node(new_node.path)
                    info = source.info if source is not None else new_node.info
                    marks.append(
                        _CompareMark(new_node, info, final=ChangeKind.ADDED)
                    )
                return
            tentative = lower_node.compare(upper_node)
            marks.append(_CompareMark(lower_node, upper_node.info, tentative=tentative))

        # leaves first, so directories derive from already-marked children
        other.walk_child_first(graft)

        for mark in marks:
            if mark.final is not None:
                mark.node.assign_change_kind(mark.final)
            elif mark.node.change_kind is ChangeKind.UNCHANGED:
                mark.node.derive_change_kind(mark.tentative)
            mark.node.info = mark.info
        return failed

    def mark_removed(self, path: str) -> None:
        self.get_node(path).assign_change_kind(ChangeKind.REMOVED)

    def mark_removals(self, other: FileTree) -> list[str]:
        """Mark every path absent from ``other`` as ``REMOVED``.

        Only the topmost missing node of a subtree is reported; its
        descendants follow through the cascade. Unchanged ancestors of a
        removed node become ``MODIFIED``.
        """
        removed: list[FileNode] = []

        def check(node: FileNode) -> None:
            if other.find_node(node.path) is None:
                node.assign_change_kind(ChangeKind.REMOVED)
                removed.append(node)

        self.walk_parent_first(
            check, lambda node: node.change_kind is not ChangeKind.REMOVED
        )
        for node in removed:
            for ancestor in node.ancestors():
                if ancestor.change_kind is ChangeKind.UNCHANGED:
                    ancestor.assign_change_kind(ChangeKind.MODIFIED)
        return [node.path for node in removed]


def fold_range(
    trees: Sequence[FileTree], start: int, stop: int
) -> tuple[FileTree, list[PathError]]:
    """Clone ``trees[start]`` and stack ``trees[start + 1 .. stop]`` onto it."""
    if not 0 <= start <= stop < len(trees):
        raise StructuralError(
            f"invalid tree range [{start}, {stop}] for {len(trees)} trees"
        )
    tree = trees[start].clone()
    failed: list[PathError] = []
    for idx in range(start + 1, stop + 1):
        try:
            failed.extend(tree.stack(trees[idx]))
        except Exception:
            logger.error("could not stack tree range at index %d", idx)
            raise
    return tree, failed
