# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Filesystem access for sym-python.

Every probe and mutation the linker performs goes through a Filesystem,
so traversal and decisions can run against an in-memory tree in tests.
OSFilesystem is the real thing.
"""

from __future__ import annotations

import errno
import os
import stat
from typing import Optional, Protocol

from sym_python.types import EntryKind


class Filesystem(Protocol):
    """Probes and mutations used by the linker."""

    def kind(self, path: str) -> Optional[EntryKind]:
        """Kind of node at path without following links, None if missing."""

    def exists(self, path: str) -> bool:
        """True if path exists, following links."""

    def is_dir(self, path: str) -> bool:
        """True if path is a directory, following links."""

    def readlink(self, path: str) -> str: ...

    def listdir(self, path: str) -> list[str]: ...

    def mode(self, path: str) -> int:
        """Permission bits of path (not following links)."""

    def makedirs(self, path: str, mode: int) -> None: ...

    def symlink(self, source: str, path: str) -> None: ...

    def unlink(self, path: str) -> None: ...


class OSFilesystem:
    """Filesystem backed by the os module."""

    def kind(self, path: str) -> Optional[EntryKind]:
        try:
            st = os.lstat(path)
        except OSError as e:
            # A path below a regular file reports ENOTDIR: it does not exist.
            if e.errno in (errno.ENOENT, errno.ENOTDIR):
                return None
            raise
        return _kind_from_mode(st.st_mode)

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_dir(self, path: str) -> bool:
        return os.path.isdir(path)

    def readlink(self, path: str) -> str:
        return os.readlink(path)

    def listdir(self, path: str) -> list[str]:
        return os.listdir(path)

    def mode(self, path: str) -> int:
        return stat.S_IMODE(os.lstat(path).st_mode)

    def makedirs(self, path: str, mode: int) -> None:
        os.makedirs(path, mode)

    def symlink(self, source: str, path: str) -> None:
        os.symlink(source, path)

    def unlink(self, path: str) -> None:
        # Refuse to unlink directories, symlinks only reach here.
        st = os.lstat(path)
        if stat.S_ISDIR(st.st_mode):
            raise OSError(errno.EISDIR, "Is a directory", path)
        os.unlink(path)


def _kind_from_mode(st_mode: int) -> EntryKind:
    if stat.S_ISLNK(st_mode):
        return EntryKind.LINK
    if stat.S_ISDIR(st_mode):
        return EntryKind.DIR
    if stat.S_ISREG(st_mode):
        return EntryKind.FILE
    return EntryKind.OTHER
