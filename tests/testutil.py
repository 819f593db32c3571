"""
Utilities shared by sym tests.

MemoryFilesystem implements the sym_python.fs.Filesystem interface over a
dict, so traversal and decision logic can be exercised without touching
disk. It records every mutation and can be told to fail specific calls.
"""

import errno
import os

from sym_python.types import EntryKind


class MemoryFilesystem:
    """In-memory tree of dirs, files and symlinks keyed by absolute path."""

    def __init__(self):
        self.nodes = {"/": (EntryKind.DIR, 0o755, None)}
        self.mutations = []
        self.failures = {}

    # -- population ---------------------------------------------------------

    def add_dir(self, path, mode=0o755):
        path = os.path.normpath(path)
        parent = os.path.dirname(path)
        if parent not in self.nodes:
            self.add_dir(parent)
        self.nodes[path] = (EntryKind.DIR, mode, None)

    def add_file(self, path, mode=0o644):
        path = os.path.normpath(path)
        self.add_dir(os.path.dirname(path))
        self.nodes[path] = (EntryKind.FILE, mode, None)

    def add_link(self, path, dest):
        path = os.path.normpath(path)
        self.add_dir(os.path.dirname(path))
        self.nodes[path] = (EntryKind.LINK, 0o777, dest)

    def fail(self, operation, path, err=errno.EACCES):
        """Make the next call of operation on path raise OSError(err)."""
        self.failures[(operation, os.path.normpath(path))] = err

    def snapshot(self):
        return dict(self.nodes)

    # -- Filesystem interface -----------------------------------------------

    def kind(self, path):
        self._maybe_fail("kind", path)
        node = self.nodes.get(os.path.normpath(path))
        return node[0] if node else None

    def exists(self, path):
        return self._follow(path) is not None

    def is_dir(self, path):
        node = self._follow(path)
        return node is not None and node[0] is EntryKind.DIR

    def readlink(self, path):
        self._maybe_fail("readlink", path)
        node = self.nodes.get(os.path.normpath(path))
        if node is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if node[0] is not EntryKind.LINK:
            raise OSError(errno.EINVAL, "Invalid argument", path)
        return node[2]

    def listdir(self, path):
        self._maybe_fail("listdir", path)
        path = os.path.normpath(path)
        if not self.is_dir(path):
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        return [
            os.path.basename(p)
            for p in self.nodes
            if p != "/" and os.path.dirname(p) == path
        ]

    def mode(self, path):
        return self.nodes[os.path.normpath(path)][1]

    def makedirs(self, path, mode):
        self._maybe_fail("makedirs", path)
        path = os.path.normpath(path)
        if path in self.nodes:
            raise FileExistsError(errno.EEXIST, "File exists", path)
        parent = os.path.dirname(path)
        if parent not in self.nodes:
            self.makedirs(parent, 0o777)
        elif self.nodes[parent][0] is not EntryKind.DIR:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", path)
        self.nodes[path] = (EntryKind.DIR, mode, None)
        self.mutations.append(("makedirs", path, mode))

    def symlink(self, source, path):
        self._maybe_fail("symlink", path)
        path = os.path.normpath(path)
        if path in self.nodes:
            raise FileExistsError(errno.EEXIST, "File exists", path)
        if not self.is_dir(os.path.dirname(path)):
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        self.nodes[path] = (EntryKind.LINK, 0o777, source)
        self.mutations.append(("symlink", source, path))

    def unlink(self, path):
        self._maybe_fail("unlink", path)
        path = os.path.normpath(path)
        node = self.nodes.get(path)
        if node is None:
            raise FileNotFoundError(errno.ENOENT, "No such file or directory", path)
        if node[0] is EntryKind.DIR:
            raise IsADirectoryError(errno.EISDIR, "Is a directory", path)
        del self.nodes[path]
        self.mutations.append(("unlink", path))

    # -- internals ----------------------------------------------------------

    def _follow(self, path, depth=0):
        node = self.nodes.get(os.path.normpath(path))
        if node is not None and node[0] is EntryKind.LINK and depth < 40:
            dest = node[2]
            if not os.path.isabs(dest):
                dest = os.path.join(os.path.dirname(path), dest)
            return self._follow(dest, depth + 1)
        return node

    def _maybe_fail(self, operation, path):
        err = self.failures.pop((operation, os.path.normpath(path)), None)
        if err is not None:
            raise OSError(err, os.strerror(err), path)


def vim_memory_fs():
    """The /src/vim package and an empty /home/u target."""
    fs = MemoryFilesystem()
    fs.add_file("/src/vim/.vimrc")
    fs.add_file("/src/vim/colors/foo.vim")
    fs.add_dir("/home/u")
    return fs
