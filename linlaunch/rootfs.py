"""Foreign root helpers — find the linker and libraries inside a rootfs.

A binary taken from another distribution's root filesystem usually cannot be
executed directly: its ELF interpreter path and library directories point at
the host's layout. These helpers locate the root's own dynamic linker,
assemble a ``--library-path`` from the root's library directories and build
a clean environment, so the binary can be started with
``Launcher.launch_via_linker``.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path
from typing import Mapping

import structlog

from linlaunch.config import settings
from linlaunch.exceptions import BinaryNotFoundError, LinkerNotFoundError, RootfsError
from linlaunch.launcher import Launcher, default_launcher
from linlaunch.types import FAILED

logger = structlog.get_logger()

# Checked in order; the first hit wins
_LINKER_CANDIDATES = [
    "lib64/ld-linux-x86-64.so.2",
    "lib/ld-linux-x86-64.so.2",
    "lib/ld-linux-aarch64.so.1",
    "lib64/ld-linux-aarch64.so.1",
    "lib/aarch64-linux-gnu/ld-linux-aarch64.so.1",
    "lib/x86_64-linux-gnu/ld-linux-x86-64.so.2",
    "lib/ld-linux-armhf.so.3",
    "lib/arm-linux-gnueabihf/ld-linux-armhf.so.3",
]

_LIBRARY_DIRS = [
    "lib",
    "lib64",
    "usr/lib",
    "usr/lib64",
    "lib/aarch64-linux-gnu",
    "lib/x86_64-linux-gnu",
    "lib/arm-linux-gnueabihf",
    "usr/lib/aarch64-linux-gnu",
    "usr/lib/x86_64-linux-gnu",
    "usr/lib/arm-linux-gnueabihf",
]

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


def _make_executable(path: Path) -> None:
    try:
        mode = path.stat().st_mode
        if mode & _EXEC_BITS != _EXEC_BITS:
            os.chmod(path, mode | _EXEC_BITS)
    except OSError as e:
        logger.warning("linker_chmod_failed", path=str(path), error=str(e))


def find_dynamic_linker(rootfs: Path) -> Path | None:
    """Return the root's dynamic linker, made executable, or None."""
    for relative in _LINKER_CANDIDATES:
        linker = rootfs / relative
        if linker.exists():
            _make_executable(linker)
            logger.info("linker_found", path=str(linker.absolute()))
            return linker
    return None


def require_dynamic_linker(rootfs: Path) -> Path:
    linker = find_dynamic_linker(rootfs)
    if linker is None:
        raise LinkerNotFoundError(f"No dynamic linker found in {rootfs}")
    return linker


def require_binary(rootfs: Path, relative: str) -> Path:
    binary = rootfs / relative
    if not binary.exists():
        raise BinaryNotFoundError(f"{relative} not found: {binary.absolute()}")
    return binary


def build_library_path(rootfs: Path) -> str:
    """Colon-separated absolute paths of the library directories that exist."""
    dirs = (rootfs / d for d in _LIBRARY_DIRS)
    return ":".join(str(d.absolute()) for d in dirs if d.is_dir())


def build_environment(
    custom_env: Mapping[str, str] | None,
    working_dir: str,
    library_path: str,
) -> list[str]:
    """KEY=VALUE entries for a login-like shell inside the root.

    ``custom_env`` overrides the defaults.
    """
    env = {
        "PATH": settings.default_path,
        "HOME": "/home",
        "TERM": "xterm-256color",
        "COLORTERM": "truecolor",
        "LANG": "C.UTF-8",
        "LC_ALL": "C.UTF-8",
        "PWD": working_dir,
        "SHELL": "/bin/bash",
        "USER": "root",
        "LOGNAME": "root",
        "LD_LIBRARY_PATH": library_path,
        "TMPDIR": "/tmp",
    }
    env.update(custom_env or {})
    return [f"{key}={value}" for key, value in env.items()]


def launch_bash(
    rootfs: Path,
    working_dir: str | None = None,
    environment: Mapping[str, str] | None = None,
    command: str | None = None,
    launcher: Launcher | None = None,
) -> int:
    """Start an interactive bash from ``rootfs`` through the root's linker.

    Returns the child PID, or FAILED if bash or the linker is missing.
    """
    launcher = launcher or default_launcher
    working_dir = working_dir or settings.default_working_dir
    rootfs = Path(rootfs)

    try:
        bash = require_binary(rootfs, "bin/bash")
        linker = require_dynamic_linker(rootfs)
    except RootfsError as e:
        logger.error("launch_bash_failed", rootfs=str(rootfs), error=str(e))
        return FAILED

    library_path = build_library_path(rootfs)
    envp = build_environment(environment, working_dir, library_path)

    args = ["-i"]
    if command is not None:
        args += ["-c", command]

    logger.info(
        "launch_bash",
        linker=str(linker.absolute()),
        binary=str(bash.absolute()),
        library_path=library_path,
        args=args,
    )
    return launcher.launch_via_linker(
        str(linker.absolute()),
        library_path,
        str(bash.absolute()),
        args,
        envp,
    )
