"""
Pytest configuration for sym tests.

Provides a throwaway sym dir / target dir pair, helpers to populate both,
filesystem snapshots and the check_* assertion helpers.
"""

import os
import subprocess
import sys

import pytest

SRC_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")


class SymTestEnv:
    """Test environment for running sym operations."""

    def __init__(self, tmpdir):
        self.tmpdir = str(tmpdir)
        self.sym_dir = os.path.join(self.tmpdir, "sym")
        self.target_dir = os.path.join(self.tmpdir, "target")
        os.makedirs(self.sym_dir)
        os.makedirs(self.target_dir)

    def create_package(self, name, files):
        """
        Create a package in the sym directory.

        files: dict mapping relative paths to content (or None for directories)
        """
        pkg_dir = os.path.join(self.sym_dir, name)
        os.makedirs(pkg_dir, exist_ok=True)

        for path, content in files.items():
            full_path = os.path.join(pkg_dir, path)
            if content is None:
                os.makedirs(full_path, exist_ok=True)
            else:
                os.makedirs(os.path.dirname(full_path), exist_ok=True)
                with open(full_path, "w") as f:
                    f.write(content)
        return pkg_dir

    def source(self, package, path):
        """Absolute path of a file inside a package."""
        return os.path.join(self.sym_dir, package, path)

    def target(self, path):
        return os.path.join(self.target_dir, path)

    def create_target_file(self, path, content):
        """Create a file in the target directory."""
        full_path = self.target(path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        with open(full_path, "w") as f:
            f.write(content)

    def create_target_dir(self, path):
        """Create a directory in the target directory."""
        os.makedirs(self.target(path), exist_ok=True)

    def create_target_link(self, path, dest):
        """Create a symlink in the target directory."""
        full_path = self.target(path)
        os.makedirs(os.path.dirname(full_path), exist_ok=True)
        os.symlink(dest, full_path)

    def get_filesystem_state(self):
        """
        Get a snapshot of the target directory state.

        Returns a dict mapping paths to tuples:
        - ('dir', mode) for directories
        - ('file', content, mode) for files
        - ('link', target) for symlinks
        """
        state = {}
        for root, dirs, files in os.walk(self.target_dir, followlinks=False):
            rel_root = os.path.relpath(root, self.target_dir)
            if rel_root == ".":
                rel_root = ""

            for name in sorted(dirs) + sorted(files):
                path = os.path.join(rel_root, name) if rel_root else name
                full_path = os.path.join(root, name)
                st = os.lstat(full_path)
                if os.path.islink(full_path):
                    state[path] = ("link", os.readlink(full_path))
                elif os.path.isdir(full_path):
                    state[path] = ("dir", st.st_mode)
                else:
                    with open(full_path, "r") as fh:
                        state[path] = ("file", fh.read(), st.st_mode)

        return state

    def run_sym(self, args, env=None, cwd=None):
        """Run the sym CLI in a subprocess and return (returncode, stdout, stderr)."""
        cmd = [sys.executable, "-m", "sym_python.cli"] + list(args)

        run_env = os.environ.copy()
        run_env["HOME"] = self.tmpdir
        run_env["PYTHONPATH"] = os.pathsep.join(
            p for p in (SRC_DIR, run_env.get("PYTHONPATH")) if p
        )
        run_env.pop("SYM_DIR", None)
        if env:
            run_env.update(env)

        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd or self.sym_dir,
            env=run_env,
        )
        return (
            proc.returncode,
            proc.stdout.decode("utf-8", errors="replace"),
            proc.stderr.decode("utf-8", errors="replace"),
        )


@pytest.fixture
def sym_env(tmp_path, monkeypatch):
    """Create a fresh sym test environment isolated from the user's rc files."""
    env = SymTestEnv(tmp_path)
    monkeypatch.setenv("HOME", env.tmpdir)
    monkeypatch.delenv("SYM_DIR", raising=False)
    return env


@pytest.fixture
def vim_env(sym_env):
    """The vim package: a dotfile plus a file in a subdirectory."""
    sym_env.create_package("vim", {".vimrc": "set nocompatible\n", "colors/foo.vim": "hi\n"})
    return sym_env


# ============================================================================
# Shared assertion helpers
# ============================================================================


def check_link(env, path, expected_target):
    """Check that path is a symlink pointing to expected_target."""
    full_path = env.target(path)
    assert os.path.islink(full_path), f"{path} should be a symlink"
    actual = os.readlink(full_path)
    assert actual == expected_target, f"{path}: expected {expected_target}, got {actual}"


def check_dir(env, path):
    """Check that path is a real directory (not a symlink)."""
    full_path = env.target(path)
    assert os.path.isdir(full_path), f"{path} should be a directory"
    assert not os.path.islink(full_path), f"{path} should not be a symlink"


def check_not_exists(env, path):
    """Check that path does not exist (including broken symlinks)."""
    full_path = env.target(path)
    assert not os.path.exists(full_path) and not os.path.islink(full_path), (
        f"{path} should not exist"
    )


def check_file(env, path, content=None):
    """Check that path is a regular file (not a symlink)."""
    full_path = env.target(path)
    assert os.path.isfile(full_path), f"{path} should be a file"
    assert not os.path.islink(full_path), f"{path} should not be a symlink"
    if content is not None:
        with open(full_path) as f:
            assert f.read() == content, f"{path} content changed"
