"""Shared test fixtures — a private Launcher and a stand-in dynamic linker."""

from __future__ import annotations

import signal
from pathlib import Path

import pytest
import structlog

from linlaunch.launcher import Launcher

EXEC_FAILED = 127


def write_recording_linker(path: Path, record: Path) -> Path:
    """A shell script that writes its argument vector, one per line, to ``record``.

    The kernel runs scripts with the script path as $0, so when it is used as
    the linker, $0 is the linker path the launcher passed to execve.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"#!/bin/sh\nprintf '%s\\n' \"$0\" \"$@\" > {record}\n")
    path.chmod(0o755)
    return path


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def launcher():
    """Launcher that cleans up any child a test left running."""
    ln = Launcher(enforce_ownership=True, exec_failure_exit_code=EXEC_FAILED)
    yield ln
    for pid in ln.running():
        ln.signal(pid, signal.SIGKILL)
        ln.wait_for(pid)


@pytest.fixture
def recording_linker(tmp_path):
    record = tmp_path / "argv.txt"
    linker = write_recording_linker(tmp_path / "ld-fake.so", record)
    return linker, record
