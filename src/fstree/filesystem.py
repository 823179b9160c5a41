from __future__ import annotations

import logging
import os
import posixpath
import stat
import unicodedata
from collections.abc import Iterator
from pathlib import Path
from typing import Protocol

from .models import FileInfo

logger = logging.getLogger(__name__)


class Filesystem(Protocol):
    """Metadata source consulted when a tree materialises a missing directory.

    ``stat`` must not raise: failures are reported through ``stat_error``.
    """

    def stat(self, path: str) -> FileInfo: ...


class DirectoryReader(Filesystem, Protocol):
    """Filesystem that can also list a directory one level deep."""

    def scan(self, path: str) -> Iterator[tuple[str, FileInfo]]: ...


def normalize_name(value: str) -> str:
    """Return NFC text with undecodable bytes replaced.

    Paths may carry lone surrogates from ``os.fsdecode``; those cannot be
    rendered, so they become replacement characters.
    """
    safe = value.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return unicodedata.normalize("NFC", safe)


def info_from_stat(
    path: str,
    st: os.stat_result | None,
    error: OSError | None = None,
    link_target: str = "",
) -> FileInfo:
    if st is None:
        return FileInfo(path=path, link_target=link_target, stat_error=error)
    return FileInfo(
        path=path,
        link_target=link_target,
        size=st.st_size,
        mode=st.st_mode,
        uid=getattr(st, "st_uid", -1),
        gid=getattr(st, "st_gid", -1),
        stat_error=error,
    )


class LocalFilesystem:
    """Local disk mounted at ``base``: tree path ``/x`` is ``<base>/x``."""

    def __init__(self, base: Path | str = "/") -> None:
        self.base = Path(base).expanduser()
        # on-disk path of every scanned entry; names may be rewritten by normalize_name
        self._on_disk: dict[str, Path] = {}

    def real_path(self, tree_path: str) -> Path:
        normalized = posixpath.normpath(tree_path)
        known = self._on_disk.get(normalized)
        if known is not None:
            return known
        relative = normalized.lstrip("/")
        if relative in {"", "."}:
            return self.base
        return self.base / relative

    def stat(self, path: str) -> FileInfo:
        return self._stat_real(self.real_path(path), path)

    def _stat_real(self, real: Path, path: str) -> FileInfo:
        try:
            st = real.lstat()
        except OSError as exc:
            return info_from_stat(path, None, error=exc)
        link_target = ""
        if stat.S_ISLNK(st.st_mode):
            try:
                link_target = normalize_name(os.readlink(real))
            except OSError as exc:
                return info_from_stat(path, st, error=exc)
        return info_from_stat(path, st, link_target=link_target)

    def scan(self, path: str) -> Iterator[tuple[str, FileInfo]]:
        """Yield ``path`` itself, then its immediate children sorted by name."""
        info = self.stat(path)
        yield path, info
        if not info.is_dir:
            return
        real = self.real_path(path)
        try:
            with os.scandir(real) as entries:
                names = sorted(entry.name for entry in entries)
        except OSError as exc:
            logger.debug("Cannot list %s: %s", real, exc)
            return
        prefix = path.rstrip("/")
        for name in names:
            child = f"{prefix}/{normalize_name(name)}"
            on_disk = real / name
            self._on_disk[child] = on_disk
            yield child, self._stat_real(on_disk, child)
