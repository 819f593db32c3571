# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Utility functions for sym-python.

This module contains general-purpose utilities used throughout sym-python:
verbose reporting and path display helpers.
"""

from __future__ import annotations

import os
import sys

VERSION = "1.0.0"
PROGRAM_NAME = "sym"


def debug(verbosity: int, level: int, *args) -> None:
    """
    Log to STDERR if the given verbosity reaches level.

    Verbosity rules:
        0: errors only
        >= 1: print operations: LINK/UNLINK/MKDIR
        >= 2: print decisions that change nothing (skips), package starts
        >= 3: print trace detail: every visited entry

    Supports two calling conventions:
        debug(verbosity, level, msg)
        debug(verbosity, level, indent_level, msg)
    """
    if len(args) >= 2 and isinstance(args[0], int):
        indent_level = args[0]
        msg = args[1]
    elif len(args) >= 1:
        indent_level = 0
        msg = args[0]
    else:
        return

    if int(verbosity) >= level:
        indent = "    " * indent_level
        print(f"{indent}{msg}", file=sys.stderr)


def tildify(path: str) -> str:
    """Replace a leading $HOME with ~ for readability."""
    home = os.environ.get("HOME", "")
    if not home or home == "/":
        return path
    if path == home:
        return "~"
    if path.startswith(home + "/"):
        return "~/" + path[len(home) + 1 :]
    return path


def parent(path: str) -> str:
    """
    Find the parent of the given path.

    Trailing slashes are ignored, so parent("/a/b/") is "/a".
    """
    stripped = path.rstrip("/")
    if not stripped:
        return "/" if path.startswith("/") else ""
    return os.path.dirname(stripped)
