"""Core types shared by the spawner, supervisor and signal dispatcher."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Union

import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger()

# ── Sentinels ────────────────────────────────────────────────────────────────

FAILED = -1
LIBRARY_PATH_FLAG = "--library-path"


# ── Launch requests ──────────────────────────────────────────────────────────


class LaunchRequest(BaseModel):
    """Snapshot of what to execute: binary, argument vector, environment.

    Sequences are stored as tuples so later changes to the caller's lists
    never reach the child.
    """

    model_config = ConfigDict(frozen=True)

    binary_path: str
    argv: tuple[str, ...] = ()
    envp: tuple[str, ...] = ()

    @property
    def exec_path(self) -> str:
        return self.binary_path

    @property
    def effective_argv(self) -> tuple[str, ...]:
        return self.argv

    def environ(self) -> dict[str, str]:
        """Turn the KEY=VALUE entries into the mapping os.execve expects.

        The first occurrence of a key wins. Malformed entries are dropped.
        """
        env: dict[str, str] = {}
        for entry in self.envp:
            key, sep, value = entry.partition("=")
            if not sep or not key:
                logger.warning("env_entry_dropped", entry=entry)
                continue
            if key in env:
                logger.warning("env_duplicate_dropped", key=key, value=value)
                continue
            env[key] = value
        return env


class LinkerLaunchRequest(LaunchRequest):
    """Launch through an explicit dynamic linker with its own search path.

    ``argv`` holds the extra arguments that follow the binary path.
    """

    linker_path: str
    library_path: str

    @property
    def exec_path(self) -> str:
        return self.linker_path

    @property
    def effective_argv(self) -> tuple[str, ...]:
        return (
            self.linker_path,
            LIBRARY_PATH_FLAG,
            self.library_path,
            self.binary_path,
            *self.argv,
        )


# ── Termination results ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class Exited:
    """The process ran to completion and reported ``code``."""

    code: int


@dataclass(frozen=True)
class Killed:
    """The process was terminated by an uncaught signal."""

    signal: int

    @property
    def code(self) -> int:
        return 128 + self.signal


TerminationResult = Union[Exited, Killed]


def decode_wait_status(status: int) -> TerminationResult | None:
    """Translate an ``os.waitpid`` status word. None if not terminal."""
    if os.WIFEXITED(status):
        return Exited(os.WEXITSTATUS(status) & 0xFF)
    if os.WIFSIGNALED(status):
        return Killed(os.WTERMSIG(status))
    return None
