from __future__ import annotations


class TreeError(Exception):
    """Base class for failures raised by the tree engine."""


class InvalidPathError(TreeError, ValueError):
    """Path is relative or cannot be resolved to an absolute form."""


class NotFoundError(TreeError, LookupError):
    """No node exists at the requested path."""


class InvalidOperationError(TreeError):
    """Operation is not allowed on the target node (e.g. removing the root)."""


class StructuralError(TreeError):
    """Whole-tree operation (clone, fold) cannot proceed."""
