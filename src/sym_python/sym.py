# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Core sym operations - manage farms of symbolic links.

This module provides the public API for linking and unlinking packages,
the package walk, the per-entry decision functions, and the internal
_Linker class that applies the decisions.

Every file of a package becomes a symlink at the same relative location
under the target directory, pointing at the absolute source path.
Directories are mirrored as real directories and never linked whole.
"""

from __future__ import annotations

import dataclasses
import os
from typing import Container, Iterator, Mapping, Optional, Sequence

from sym_python.fs import Filesystem, OSFilesystem
from sym_python.types import (
    EntryKind,
    Operation,
    SymConfig,
    SymConflictError,
    SymError,
    SymIOError,
    SymNotFoundError,
    SymPackageError,
    SymProgrammingError,
    SymRelinkError,
    SymResult,
    Task,
    TaskAction,
    TaskType,
    TreeEntry,
)
from sym_python.util import debug, parent, tildify

PARENT_DIR_MODE = 0o755


# =============================================================================
# Public API
# =============================================================================


def link(
    *package_names: str,
    config: SymConfig | None = None,
    fs: Filesystem | None = None,
    **kwargs,
) -> SymResult:
    """Link packages into the target directory.

    Args:
        *package_names: Names of packages to link (in sym dir)
        config: Optional SymConfig for configuration
        fs: Filesystem to operate on (defaults to the real one)
        **kwargs: Override config fields (dir, target, simulate, verbose)

    Returns:
        SymResult with the tasks performed (or planned, when simulating)
    """
    cfg = _make_config(config, delete=False, relink=False, **kwargs)
    return process_packages(cfg, package_names, fs=fs)


def unlink(
    *package_names: str,
    config: SymConfig | None = None,
    fs: Filesystem | None = None,
    **kwargs,
) -> SymResult:
    """Remove the links a package would have created.

    Only symlinks pointing exactly at the package's files are removed.
    Directories are left in place.
    """
    cfg = _make_config(config, delete=True, relink=False, **kwargs)
    return process_packages(cfg, package_names, fs=fs)


def relink(
    *package_names: str,
    config: SymConfig | None = None,
    fs: Filesystem | None = None,
    **kwargs,
) -> SymResult:
    """Unlink then link packages.

    Useful after adding or removing files in a package.
    """
    cfg = _make_config(config, delete=False, relink=True, **kwargs)
    return process_packages(cfg, package_names, fs=fs)


def process_package(
    config: SymConfig, package: str, fs: Filesystem | None = None
) -> SymResult:
    """Link, unlink or relink a single package according to config.

    Raises the SymError of the failing step unchanged.
    """
    linker = _Linker(resolve_config(config), fs)
    linker.process_package(package)
    return linker.result()


def process_packages(
    config: SymConfig,
    packages: Sequence[str] | None = None,
    fs: Filesystem | None = None,
) -> SymResult:
    """Process packages in order, stopping at the first failure.

    Args:
        config: Configuration; its packages are used if none are given
        packages: Package names overriding config.packages

    Raises:
        SymPackageError: naming the package whose processing failed
    """
    cfg = resolve_config(config)
    names = list(packages) if packages else list(cfg.packages)
    linker = _Linker(cfg, fs)
    for package in names:
        try:
            linker.process_package(package)
        except SymProgrammingError:
            raise
        except SymError as e:
            raise SymPackageError(package, e) from e
    return linker.result()


def resolve_config(config: SymConfig) -> SymConfig:
    """Make dir and target absolute (target defaults to parent of dir)."""
    sym_dir = os.path.abspath(config.dir)
    target = config.target
    if target is None:
        target = parent(sym_dir) or "/"
    target = os.path.abspath(target)
    if sym_dir == config.dir and target == config.target:
        return config
    return dataclasses.replace(config, dir=sym_dir, target=target)


def _make_config(config: SymConfig | None, **kwargs) -> SymConfig:
    """Create a SymConfig from optional base config and overrides."""
    if config is None:
        return SymConfig(
            dir=kwargs.pop("dir", "."),
            target=kwargs.pop("target", None),
            verbose=kwargs.pop("verbose", 0),
            simulate=kwargs.pop("simulate", False),
            delete=kwargs.pop("delete", False),
            relink=kwargs.pop("relink", False),
            packages=tuple(kwargs.pop("packages", ())),
            **kwargs,
        )
    else:
        return dataclasses.replace(config, **kwargs)


# =============================================================================
# Traversal
# =============================================================================


def walk_package(
    fs: Filesystem, package_root: str, rel_dir: str = ""
) -> Iterator[TreeEntry]:
    """Yield every node below package_root, depth-first and pre-order.

    Names are visited in ascending order. The package root itself is not
    yielded. Symlinks are yielded as LINK entries and never descended.
    A directory is yielded before its children are listed, so a consumer
    can create its counterpart first.
    """
    dir_path = os.path.join(package_root, rel_dir) if rel_dir else package_root
    try:
        listing = fs.listdir(dir_path)
    except OSError as e:
        raise SymIOError(
            f"cannot read directory: {dir_path} ({e.strerror})",
            path=dir_path,
            rel_path=rel_dir or ".",
            errno=e.errno,
        ) from e

    for node in sorted(listing):
        rel_path = os.path.join(rel_dir, node) if rel_dir else node
        path = os.path.join(package_root, rel_path)
        kind = _probe_kind(fs, path, rel_path)
        if kind is None:
            # Vanished between listdir and lstat
            continue
        if kind is EntryKind.DIR:
            entry = TreeEntry(path, rel_path, kind, _probe_mode(fs, path, rel_path))
            yield entry
            yield from walk_package(fs, package_root, rel_path)
        else:
            yield TreeEntry(path, rel_path, kind, 0)


# =============================================================================
# Per-entry decisions
#
# These only probe the filesystem. They return the tasks to apply or
# raise SymConflictError; the linker applies the tasks.
# =============================================================================


def decide_dir(
    fs: Filesystem,
    entry: TreeEntry,
    target_path: str,
    planned_dirs: Container[str] = frozenset(),
) -> list[Task]:
    """Decide how to mirror a package directory at target_path."""
    if target_path in planned_dirs:
        return [
            Task(TaskAction.SKIP, TaskType.DIR, target_path, reason="already planned")
        ]

    kind = _probe_kind(fs, target_path, entry.rel_path)
    if kind is None:
        return [Task(TaskAction.CREATE, TaskType.DIR, target_path, mode=entry.mode)]

    if fs.is_dir(target_path):
        return [
            Task(TaskAction.SKIP, TaskType.DIR, target_path, reason="already exists")
        ]

    raise SymConflictError(
        f"target {target_path} already exists and is not a directory",
        path=target_path,
        rel_path=entry.rel_path,
    )


def decide_link(
    fs: Filesystem,
    source_path: str,
    target_path: str,
    rel_path: Optional[str] = None,
    planned_dirs: Container[str] = frozenset(),
    link_task_for: Optional[Mapping[str, Task]] = None,
) -> list[Task]:
    """Decide how to link target_path to source_path.

    An existing link to source_path is left alone, anything else already
    at target_path is a conflict. Links already created or removed earlier
    in the run (link_task_for) take precedence over the filesystem.
    """
    kind, existing = _probe_link(fs, target_path, rel_path, link_task_for)

    if kind is EntryKind.LINK:
        if existing == source_path:
            return [
                Task(
                    TaskAction.SKIP,
                    TaskType.LINK,
                    target_path,
                    source=source_path,
                    reason=f"already points to {source_path}",
                )
            ]
        raise SymConflictError(
            f"target {target_path} already exists and points to {existing} "
            f"(not {source_path})",
            path=target_path,
            rel_path=rel_path,
            existing=existing,
            expected=source_path,
        )

    if kind is not None:
        raise SymConflictError(
            f"target {target_path} already exists and is not a symlink",
            path=target_path,
            rel_path=rel_path,
            expected=source_path,
        )

    tasks = []
    target_dir = os.path.dirname(target_path)
    if target_dir not in planned_dirs and not fs.exists(target_dir):
        tasks.append(
            Task(TaskAction.CREATE, TaskType.DIR, target_dir, mode=PARENT_DIR_MODE)
        )
    tasks.append(
        Task(TaskAction.CREATE, TaskType.LINK, target_path, source=source_path)
    )
    return tasks


def decide_unlink(
    fs: Filesystem,
    source_path: str,
    target_path: str,
    rel_path: Optional[str] = None,
    link_task_for: Optional[Mapping[str, Task]] = None,
) -> Task:
    """Decide whether target_path is our link to source_path and must go.

    Missing targets, real files and links pointing anywhere else are
    tolerated and left untouched.
    """
    kind, existing = _probe_link(fs, target_path, rel_path, link_task_for)

    if kind is None:
        return Task(
            TaskAction.SKIP, TaskType.LINK, target_path, reason="does not exist"
        )

    if kind is not EntryKind.LINK:
        return Task(
            TaskAction.SKIP, TaskType.LINK, target_path, reason="is not a symlink"
        )

    if existing != source_path:
        return Task(
            TaskAction.SKIP,
            TaskType.LINK,
            target_path,
            source=existing,
            reason=f"points to {existing} (not {source_path}), leaving alone",
        )

    return Task(TaskAction.REMOVE, TaskType.LINK, target_path, source=source_path)


def _probe_link(
    fs: Filesystem,
    path: str,
    rel_path: Optional[str],
    link_task_for: Optional[Mapping[str, Task]] = None,
) -> tuple[Optional[EntryKind], Optional[str]]:
    """Return the kind of a current or planned node and its link destination."""
    task = link_task_for.get(path) if link_task_for else None
    if task is not None:
        if task.action is TaskAction.REMOVE:
            return None, None
        return EntryKind.LINK, task.source

    kind = _probe_kind(fs, path, rel_path)
    if kind is EntryKind.LINK:
        return kind, _probe_readlink(fs, path, rel_path)
    return kind, None


def _probe_kind(
    fs: Filesystem, path: str, rel_path: Optional[str]
) -> Optional[EntryKind]:
    try:
        return fs.kind(path)
    except OSError as e:
        raise SymIOError(
            f"Could not stat {path} ({e})", path=path, rel_path=rel_path, errno=e.errno
        ) from e


def _probe_readlink(fs: Filesystem, path: str, rel_path: Optional[str]) -> str:
    try:
        return fs.readlink(path)
    except OSError as e:
        raise SymIOError(
            f"Could not read link: {path} ({e})",
            path=path,
            rel_path=rel_path,
            errno=e.errno,
        ) from e


def _probe_mode(fs: Filesystem, path: str, rel_path: Optional[str]) -> int:
    try:
        return fs.mode(path)
    except OSError as e:
        raise SymIOError(
            f"Could not stat {path} ({e})", path=path, rel_path=rel_path, errno=e.errno
        ) from e


# =============================================================================
# Internal Linker class
# =============================================================================


class _Linker:
    """
    Internal class that walks packages and applies link/unlink decisions.

    Used by the module-level functions and by the CLI. Decisions are
    applied as soon as they are made, so a failure leaves everything
    processed before it in its new state.
    """

    def __init__(self, config: SymConfig, fs: Filesystem | None = None):
        self.c = config
        self.fs = fs if fs is not None else OSFilesystem()

        # State
        self.tasks: list[Task] = []
        self.packages: list[str] = []
        self.dir_task_for: dict[str, Task] = {}
        self.link_task_for: dict[str, Task] = {}

    def result(self) -> SymResult:
        return SymResult(tasks=list(self.tasks), packages=list(self.packages))

    def process_package(self, package: str) -> None:
        """Dispatch on the configured operation."""
        pkg_path = self._package_root(package)

        match self.c.operation:
            case Operation.RELINK:
                try:
                    self.unlink_package(package, pkg_path)
                except SymProgrammingError:
                    raise
                except SymError as e:
                    raise SymRelinkError(e) from e
                self.link_package(package, pkg_path)
            case Operation.UNLINK:
                self.unlink_package(package, pkg_path)
            case Operation.LINK:
                self.link_package(package, pkg_path)
            case _:
                raise SymProgrammingError(f"bad operation: {self.c.operation}")

        self.packages.append(package)

    def link_package(self, package: str, pkg_path: str) -> None:
        """Mirror the package tree into the target as directories and links."""
        debug(self.c.verbose, 2, 0, f"Linking package {package}...")

        for entry in walk_package(self.fs, pkg_path):
            target_path = os.path.join(self.c.target, entry.rel_path)
            debug(self.c.verbose, 3, 1, f"Visiting {tildify(entry.path)}")

            if entry.is_dir:
                tasks = decide_dir(self.fs, entry, target_path, self.dir_task_for)
            else:
                tasks = decide_link(
                    self.fs,
                    entry.path,
                    target_path,
                    entry.rel_path,
                    self.dir_task_for,
                    self.link_task_for,
                )
            for task in tasks:
                self._process_task(task, entry.rel_path)

        debug(self.c.verbose, 2, 0, f"Linking package {package}... done")

    def unlink_package(self, package: str, pkg_path: str) -> None:
        """Remove the target links that point at this package's files."""
        debug(self.c.verbose, 2, 0, f"Unlinking package {package}...")

        for entry in walk_package(self.fs, pkg_path):
            debug(self.c.verbose, 3, 1, f"Visiting {tildify(entry.path)}")
            if entry.is_dir:
                continue
            target_path = os.path.join(self.c.target, entry.rel_path)
            task = decide_unlink(
                self.fs, entry.path, target_path, entry.rel_path, self.link_task_for
            )
            self._process_task(task, entry.rel_path)

        debug(self.c.verbose, 2, 0, f"Unlinking package {package}... done")

    def _package_root(self, package: str) -> str:
        pkg_path = os.path.normpath(os.path.join(self.c.dir, package))
        if not self.fs.exists(pkg_path):
            raise SymNotFoundError(
                f"package directory does not exist: {pkg_path}", path=pkg_path
            )
        if not self.fs.is_dir(pkg_path):
            raise SymNotFoundError(
                f"package path is not a directory: {pkg_path}", path=pkg_path
            )
        return pkg_path

    def _process_task(self, task: Task, rel_path: str) -> None:
        """Report a single task and, unless simulating, perform it."""
        verbose = self.c.verbose
        match (task.action, task.type):
            case (TaskAction.SKIP, _):
                debug(verbose, 2, 1, f"--- Skipping {task.path}: {task.reason}")
                return

            case (TaskAction.CREATE, TaskType.DIR):
                debug(verbose, 1, 0, f"MKDIR: {task.path}")
                self.dir_task_for[task.path] = task
                self.tasks.append(task)
                if self.c.simulate:
                    return
                try:
                    self.fs.makedirs(task.path, task.mode)
                except OSError as e:
                    raise SymIOError(
                        f"failed to create directory {task.path} ({e})",
                        path=task.path,
                        rel_path=rel_path,
                        errno=e.errno,
                    ) from e

            case (TaskAction.CREATE, TaskType.LINK):
                debug(verbose, 1, 0, f"LINK: {task.path} => {task.source}")
                self.link_task_for[task.path] = task
                self.tasks.append(task)
                if self.c.simulate:
                    return
                try:
                    self.fs.symlink(task.source, task.path)
                except OSError as e:
                    raise SymIOError(
                        f"failed to create symlink {task.path} -> {task.source} ({e})",
                        path=task.path,
                        rel_path=rel_path,
                        errno=e.errno,
                    ) from e

            case (TaskAction.REMOVE, TaskType.LINK):
                debug(verbose, 1, 0, f"UNLINK: {task.path}")
                self.link_task_for[task.path] = task
                self.tasks.append(task)
                if self.c.simulate:
                    return
                try:
                    self.fs.unlink(task.path)
                except OSError as e:
                    raise SymIOError(
                        f"failed to remove symlink {task.path} ({e})",
                        path=task.path,
                        rel_path=rel_path,
                        errno=e.errno,
                    ) from e

            case _:
                raise SymProgrammingError(
                    f"bad task: {task.action.value} {task.type.value}"
                )
