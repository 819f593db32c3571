# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Type definitions for sym-python.

This module contains enums, dataclasses and exceptions that define the
core data structures used throughout sym-python.
"""

from __future__ import annotations

import errno as errno_module
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EntryKind(Enum):
    """Kinds of filesystem nodes, as seen by lstat (links are not followed)."""

    DIR = "dir"
    FILE = "file"
    LINK = "link"
    OTHER = "other"


class TaskAction(Enum):
    """Actions that can be performed on filesystem nodes."""

    CREATE = "create"
    REMOVE = "remove"
    SKIP = "skip"


class TaskType(Enum):
    """Types of filesystem nodes that tasks operate on."""

    LINK = "link"
    DIR = "dir"


class Operation(Enum):
    """High-level sym operations."""

    LINK = "link"
    UNLINK = "unlink"
    RELINK = "relink"


@dataclass(slots=True)
class Task:
    """
    A decided filesystem operation.

    Tasks are produced by the per-entry decision functions and applied
    right away by the linker, one at a time.
    """

    action: TaskAction
    type: TaskType
    path: str
    source: Optional[str] = None  # For links: the symlink destination
    mode: Optional[int] = None  # For dirs: permission bits
    reason: Optional[str] = None  # For skips: why nothing happens


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """A node found while walking a package."""

    path: str
    rel_path: str
    kind: EntryKind
    mode: int = 0o755

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIR


@dataclass(frozen=True)
class SymConfig:
    """
    Configuration for a sym invocation.

    Attributes:
        dir: The sym directory containing packages
        target: The target directory where symlinks are created
            (None means the parent of dir)
        verbose: Verbosity level (0-3); True counts as 1
        simulate: If True, don't make filesystem changes
        delete: Unlink packages instead of linking them
        relink: Unlink then link packages (takes precedence over delete)
        packages: Package names to process, in order
    """

    dir: str = "."
    target: Optional[str] = None
    verbose: int = 0
    simulate: bool = False
    delete: bool = False
    relink: bool = False
    packages: tuple[str, ...] = ()

    @property
    def operation(self) -> Operation:
        if self.relink:
            return Operation.RELINK
        if self.delete:
            return Operation.UNLINK
        return Operation.LINK


@dataclass
class SymResult:
    """Outcome of processing one or more packages."""

    tasks: list[Task] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)

    @property
    def links_created(self) -> list[str]:
        return [
            t.path
            for t in self.tasks
            if t.action is TaskAction.CREATE and t.type is TaskType.LINK
        ]

    @property
    def links_removed(self) -> list[str]:
        return [
            t.path
            for t in self.tasks
            if t.action is TaskAction.REMOVE and t.type is TaskType.LINK
        ]

    @property
    def dirs_created(self) -> list[str]:
        return [
            t.path
            for t in self.tasks
            if t.action is TaskAction.CREATE and t.type is TaskType.DIR
        ]


# =============================================================================
# Exceptions
# =============================================================================


class SymError(Exception):
    """
    Base class for operational errors.

    errno is used as the process exit status by the CLI.
    rel_path, when set, is the package-relative path being processed.
    """

    def __init__(
        self, message: str, errno: int = 1, rel_path: Optional[str] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.errno = errno
        self.rel_path = rel_path


class SymNotFoundError(SymError):
    """A package directory does not exist."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message, errno=errno_module.ENOENT)
        self.path = path


class SymConflictError(SymError):
    """A target path is occupied by something we did not create."""

    def __init__(
        self,
        message: str,
        path: str,
        rel_path: Optional[str] = None,
        existing: Optional[str] = None,
        expected: Optional[str] = None,
    ) -> None:
        super().__init__(message, rel_path=rel_path)
        self.path = path
        self.existing = existing
        self.expected = expected


class SymIOError(SymError):
    """A filesystem call failed while creating or removing a node."""

    def __init__(
        self, message: str, path: str, rel_path: Optional[str] = None, errno: int = 1
    ) -> None:
        super().__init__(message, errno=errno or 1, rel_path=rel_path)
        self.path = path


class SymPackageError(SymError):
    """Wraps the error that stopped processing of a package."""

    def __init__(self, package: str, cause: SymError) -> None:
        super().__init__(
            f"error processing package '{package}': {cause.message}",
            errno=cause.errno,
            rel_path=cause.rel_path,
        )
        self.package = package
        self.cause = cause


class SymRelinkError(SymError):
    """The unlink phase of a relink failed; the link phase was not run."""

    phase = Operation.UNLINK

    def __init__(self, cause: SymError) -> None:
        super().__init__(
            f"failed to unlink during relink: {cause.message}",
            errno=cause.errno,
            rel_path=cause.rel_path,
        )
        self.cause = cause


class SymProgrammingError(SymError):
    """Internal inconsistency; this is a bug."""


class SymCLIError(SymError):
    """Bad command line or rc file."""
