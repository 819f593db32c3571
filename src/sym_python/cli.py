# Sym-Python - symlink farm manager
# Copyright (C) 2025 The sym-python authors
# SPDX-License-Identifier: GPL-3.0-or-later

"""
Command-line interface for sym-python.

This module contains the CLI functions including argument parsing,
rc file handling, and the main entry point.
"""

from __future__ import annotations

import os
import re
import shlex
import sys
import traceback
from typing import Sequence

from sym_python.sym import process_packages
from sym_python.types import (
    SymCLIError,
    SymConfig,
    SymError,
    SymProgrammingError,
)
from sym_python.util import PROGRAM_NAME, VERSION, debug, parent

RC_FILE = ".symrc"
DIR_ENV_VAR = "SYM_DIR"


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for sym command."""
    try:
        _main(sys.argv[1:] if argv is None else list(argv))
    except SymProgrammingError as e:
        _report_internal_error(e)
    except SymCLIError as e:
        print(e.message, file=sys.stderr)
        sys.exit(e.errno)
    except SymError as e:
        print(f"{PROGRAM_NAME}: ERROR: {e.message}", file=sys.stderr)
        sys.exit(e.errno)


def _report_internal_error(e: SymError) -> None:
    print(
        f"\n{PROGRAM_NAME}: INTERNAL ERROR: {e.message}\n{traceback.format_exc()}",
        file=sys.stderr,
    )
    print(
        "This _is_ a bug. Please submit a bug report so we can fix it! :-)",
        file=sys.stderr,
    )
    sys.exit(e.errno)


def _main(argv: list[str]) -> None:
    """Main implementation (can raise SymError)."""
    options, packages = process_options(argv)

    config = SymConfig(
        dir=options["dir"],
        target=options["target"],
        verbose=options.get("verbose", 0),
        simulate=options.get("simulate", False),
        delete=options.get("delete", False),
        relink=options.get("relink", False),
        packages=tuple(packages),
    )

    debug(config.verbose, 1, 0, f"Sym dir: {config.dir}")
    debug(config.verbose, 1, 0, f"Target dir: {config.target}")

    process_packages(config)

    if config.simulate:
        print(
            "WARNING: in simulation mode so not modifying filesystem.",
            file=sys.stderr,
        )


def process_options(argv: Sequence[str]) -> tuple[dict, list[str]]:
    """Parse and process command line and rc file options.

    Returns: (options, packages)
    """
    cli_options, packages = parse_cli_options(argv)
    rc_options = get_config_file_options(cli_options.get("config"))

    # Merge rc file and command line options, command line wins
    options = dict(rc_options)
    options.update(cli_options)

    sanitize_path_options(options)
    check_packages(packages)

    return (options, packages)


def _parse_bundled_options(chars: str, options: dict) -> tuple[bool, bool]:
    """Parse bundled short options like -nvD.

    Returns (should_show_help, should_show_version).
    """
    should_show_help = False
    should_show_version = False

    i = 0
    while i < len(chars):
        char = chars[i]
        rest = chars[i + 1 :]

        match char:
            case "n":
                options["simulate"] = True
            case "v" if (m := re.match(r"\d+", rest)):
                options["verbose"] = int(m.group())
                i += len(m.group())
            case "v":
                options["verbose"] = options.get("verbose", 0) + 1
            case "D":
                options["delete"] = True
            case "R":
                options["relink"] = True
            case "h":
                should_show_help = True
            case "V":
                should_show_version = True
            case "d" | "t" if rest:
                options["dir" if char == "d" else "target"] = rest
                i += len(rest)
            case "d" | "t":
                show_usage_and_exit(f"Option {char} requires an argument")
            case _:
                show_usage_and_exit(f"Unknown option: {char}")
        i += 1

    return should_show_help, should_show_version


def parse_cli_options(args: Sequence[str]) -> tuple[dict, list[str]]:
    """Parse command line options.

    Mode flags (-D, -R) apply to every package, wherever they appear.

    Returns: (options, packages)
    """
    options: dict = {}
    packages: list[str] = []

    i = 0
    while i < len(args):
        arg = args[i]

        # Handle options with values
        if arg in ("-d", "--dir") and i + 1 < len(args):
            i += 1
            options["dir"] = args[i]
        elif arg.startswith("--dir="):
            options["dir"] = arg[6:]

        elif arg in ("-t", "--target") and i + 1 < len(args):
            i += 1
            options["target"] = args[i]
        elif arg.startswith("--target="):
            options["target"] = arg[9:]

        elif arg == "--config" and i + 1 < len(args):
            i += 1
            options["config"] = args[i]
        elif arg.startswith("--config="):
            options["config"] = arg[9:]

        # Verbose option with optional value
        elif arg == "--verbose":
            options["verbose"] = options.get("verbose", 0) + 1
        elif arg.startswith("--verbose="):
            try:
                options["verbose"] = int(arg[10:])
            except ValueError:
                show_usage_and_exit(f"Invalid verbosity level: {arg[10:]}")

        # Boolean flags
        elif arg in ("--no", "--simulate"):
            options["simulate"] = True
        elif arg == "--delete":
            options["delete"] = True
        elif arg in ("--relink", "--resym"):
            options["relink"] = True

        # Help and version
        elif arg == "--help":
            show_usage_and_exit()
        elif arg == "--version":
            show_version_and_exit()

        elif arg == "--":
            packages.extend(args[i + 1 :])
            break

        # Package argument (including "-" which is a valid package name)
        elif not arg.startswith("-") or arg == "-":
            packages.append(arg)

        elif arg.startswith("--"):
            opt_name = arg[2:].split("=", 1)[0]
            show_usage_and_exit(f"Unknown option: {opt_name}")

        else:
            # Bundled short options: -xyz is parsed as -x -y -z
            should_show_help, should_show_version = _parse_bundled_options(
                arg[1:], options
            )
            if should_show_help:
                show_usage_and_exit()
            if should_show_version:
                show_version_and_exit()

        i += 1

    return (options, packages)


def sanitize_path_options(options: dict) -> None:
    """Validate dir and target options, make them absolute and set defaults."""
    if "dir" not in options:
        options["dir"] = os.environ.get(DIR_ENV_VAR) or os.getcwd()

    if not os.path.isdir(options["dir"]):
        raise SymCLIError(
            f"{PROGRAM_NAME}: --dir value '{options['dir']}' is not a valid directory"
        )
    options["dir"] = os.path.abspath(options["dir"])

    if "target" in options:
        if not os.path.isdir(options["target"]):
            raise SymCLIError(
                f"{PROGRAM_NAME}: --target value '{options['target']}' "
                f"is not a valid directory"
            )
        options["target"] = os.path.abspath(options["target"])
    else:
        options["target"] = parent(options["dir"]) or "/"


def check_packages(packages: Sequence[str]) -> None:
    """Validate package names."""
    if not packages:
        show_usage_and_exit(f"{PROGRAM_NAME}: No packages specified\n")

    for package in packages:
        package = package.rstrip("/")
        if not package or "/" in package:
            raise SymCLIError(
                f"{PROGRAM_NAME}: Slashes are not permitted in package names"
            )


def get_config_file_options(config_path: str | None = None) -> dict:
    """Read default options from rc files.

    Without config_path, ~/.symrc and ./.symrc are read if present (later
    files win). With config_path, only that file is read and it must exist.
    Package names in rc files are ignored.
    """
    if config_path is not None:
        candidate_paths = [expand_filepath(config_path, "--config option")]
    else:
        candidate_paths = [RC_FILE]
        home = os.environ.get("HOME")
        if home:
            candidate_paths.insert(0, os.path.join(home, RC_FILE))

    defaults: list[str] = []
    for file_path in candidate_paths:
        try:
            with open(file_path, "r") as f:
                for line in f:
                    line = line.rstrip("\n\r")
                    if line.lstrip().startswith("#"):
                        continue
                    try:
                        defaults.extend(shlex.split(line))
                    except ValueError:
                        defaults.extend(line.split())
        except (FileNotFoundError, PermissionError):
            if config_path is not None:
                raise SymCLIError(f"Could not open {file_path} for reading")
            continue  # Skip missing or unreadable files
        except IsADirectoryError:
            raise SymCLIError(f"Could not open {file_path} for reading")

    rc_options, _ = parse_cli_options(defaults)
    rc_options.pop("config", None)

    if "target" in rc_options:
        rc_options["target"] = expand_filepath(rc_options["target"], "--target option")
    if "dir" in rc_options:
        rc_options["dir"] = expand_filepath(rc_options["dir"], "--dir option")

    return rc_options


def expand_filepath(path: str, source: str) -> str:
    """Expand environment variables and tilde in file paths."""
    path = expand_environment_variables(path, source)
    path = expand_tilde_to_homedir(path)
    return path


def expand_environment_variables(path: str, source: str) -> str:
    """Expand environment variables in path.

    Replace non-escaped $VAR and ${VAR} with os.environ[VAR].
    """

    def replace_var(match):
        var = match.group(1)
        try:
            return os.environ[var]
        except KeyError:
            raise SymCLIError(
                f"{source} references undefined environment variable ${var}; aborting!"
            )

    path = re.sub(r"(?<!\\)\$\{([^}]+)}", replace_var, path)
    path = re.sub(r"(?<!\\)\$(\w+)", replace_var, path)
    path = path.replace("\\$", "$")

    return path


def expand_tilde_to_homedir(path: str) -> str:
    """Expand a leading ~ or ~/ to $HOME. Other forms are left as they are."""
    if "\\~" in path:
        return path.replace("\\~", "~")

    home = os.environ.get("HOME")
    if not home or not (path == "~" or path.startswith("~/")):
        return path
    return home + path[1:]


def show_usage_and_exit(msg: str | None = None, exit_code: int | None = None) -> None:
    """Print program usage message and exit."""
    if msg:
        print(msg, file=sys.stderr)

    print(f"""{PROGRAM_NAME} (sym-python) version {VERSION}

A symlink farm manager for dotfiles and packages.

SYNOPSIS:

    {PROGRAM_NAME} [OPTION ...] PACKAGE ...

OPTIONS:

    -d DIR, --dir=DIR     Set sym dir to DIR (default is ${DIR_ENV_VAR} or current dir)
    -t DIR, --target=DIR  Set target to DIR (default is parent of sym dir)

    -D, --delete          Unlink the given packages
    -R, --relink          Relink (like sym -D followed by sym)
    --config=FILE         Read default options from FILE instead of
                          ~/{RC_FILE} and ./{RC_FILE}

    -n, --no, --simulate  Do not actually make any filesystem changes
    -v, --verbose[=N]     Increase verbosity (levels are from 0 to 3;
                            -v or --verbose adds 1; --verbose=N sets level)
    -V, --version         Show sym version number
    -h, --help            Show this help""")

    if exit_code is not None:
        sys.exit(exit_code)
    elif msg:
        sys.exit(1)
    else:
        sys.exit(0)


def show_version_and_exit() -> None:
    """Print version and exit."""
    print(f"{PROGRAM_NAME} (sym-python) version {VERSION}")
    sys.exit(0)


if __name__ == "__main__":
    main()
