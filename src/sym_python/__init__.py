# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
sym-python - a symlink farm manager

Links every file of a package directory into a target directory,
mirroring the package's directory layout, and removes those links again.

Basic usage::

    from sym_python import link, unlink, relink

    # Link packages
    result = link("vim", "zsh", dir="/home/user/dotfiles", target="/home/user")
    print("Created:", result.links_created)

    # Unlink packages
    unlink("vim", dir="/home/user/dotfiles", target="/home/user")

    # Relink (unlink + link) after adding files to a package
    relink("zsh", dir="/home/user/dotfiles", target="/home/user")

With configuration reuse::

    from sym_python import SymConfig, process_packages

    config = SymConfig(dir="/srv/dotfiles", target="/home/user",
                       packages=("vim", "zsh"))
    process_packages(config)

Simulation mode::

    result = link("vim", dir="./dotfiles", simulate=True)
    print("Would perform:", result.tasks)

Conflicts::

    try:
        link("vim", dir="./dotfiles")
    except SymPackageError as e:
        if isinstance(e.cause, SymConflictError):
            print(e.cause.path, "is in the way")
"""

from sym_python.sym import (
    link,
    unlink,
    relink,
    process_package,
    process_packages,
    resolve_config,
    walk_package,
)
from sym_python.fs import Filesystem, OSFilesystem
from sym_python.types import (
    SymConfig,
    SymResult,
    Task,
    TaskAction,
    TaskType,
    TreeEntry,
    EntryKind,
    Operation,
    SymError,
    SymNotFoundError,
    SymConflictError,
    SymIOError,
    SymPackageError,
    SymRelinkError,
    SymProgrammingError,
    SymCLIError,
)
from sym_python.util import VERSION as __version__

# CLI entry point
from sym_python.cli import main

__all__ = [
    "link",
    "unlink",
    "relink",
    "process_package",
    "process_packages",
    "resolve_config",
    "walk_package",
    "Filesystem",
    "OSFilesystem",
    "SymConfig",
    "SymResult",
    "Task",
    "TaskAction",
    "TaskType",
    "TreeEntry",
    "EntryKind",
    "Operation",
    "SymError",
    "SymNotFoundError",
    "SymConflictError",
    "SymIOError",
    "SymPackageError",
    "SymRelinkError",
    "SymProgrammingError",
    "SymCLIError",
    "__version__",
    "main",
]
