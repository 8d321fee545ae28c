"""Tests for the spawner — direct and linker-indirected launches."""

from __future__ import annotations

import asyncio
import errno
import os
import signal
import sys
import threading
import time

import pytest

from linlaunch.types import FAILED

from tests.conftest import EXEC_FAILED


# ── Direct launch ──────────────────────────────────────────────


def test_launch_true(launcher):
    pid = launcher.launch("/bin/true", ["true"], ["PATH=/bin"])
    assert pid > 0
    assert launcher.wait_for(pid) == 0


def test_launch_false(launcher):
    pid = launcher.launch("/bin/false", ["false"], [])
    assert pid > 0
    assert launcher.wait_for(pid) == 1


def test_launch_reports_actual_exit_status(launcher):
    pid = launcher.launch("/bin/sh", ["sh", "-c", "exit 42"], [])
    assert launcher.wait_for(pid) == 42


def test_launch_registers_child(launcher):
    pid = launcher.launch("/bin/true", ["true"], [])
    assert pid in launcher.running()
    launcher.wait_for(pid)
    assert pid not in launcher.running()


def test_environment_is_replaced_not_merged(launcher, monkeypatch):
    """The child sees envp and nothing from the parent's environment."""
    monkeypatch.setenv("LINLAUNCH_PARENT_ONLY", "leaked")
    script = '[ "$FOO" = bar ] && [ -z "$LINLAUNCH_PARENT_ONLY" ]'
    pid = launcher.launch("/bin/sh", ["sh", "-c", script], ["FOO=bar"])
    assert launcher.wait_for(pid) == 0


def test_argv_zero_is_passed_through(launcher):
    pid = launcher.launch("/bin/sh", ["custom-name", "-c", '[ "$0" = custom-name ]'], [])
    assert launcher.wait_for(pid) == 0


# ── Image replacement failures stay in the child ──────────────


def test_missing_binary_still_returns_pid(launcher, tmp_path):
    pid = launcher.launch(str(tmp_path / "does-not-exist"), ["nope"], [])
    assert pid > 0
    code = launcher.wait_for(pid)
    assert code == EXEC_FAILED
    assert code != 0


def test_non_executable_file_fails_in_child(launcher, tmp_path):
    target = tmp_path / "plain.txt"
    target.write_text("not a program\n")
    target.chmod(0o644)
    pid = launcher.launch(str(target), ["plain"], [])
    assert pid > 0
    assert launcher.wait_for(pid) == EXEC_FAILED


def test_empty_argv_fails_in_child(launcher):
    pid = launcher.launch("/bin/true", [], [])
    assert pid > 0
    assert launcher.wait_for(pid) == EXEC_FAILED


def test_parent_continues_after_child_exec_failure(launcher, tmp_path):
    bad = launcher.launch(str(tmp_path / "missing"), ["missing"], [])
    good = launcher.launch("/bin/true", ["true"], [])
    assert launcher.wait_for(bad) == EXEC_FAILED
    assert launcher.wait_for(good) == 0


# ── Process creation failure ──────────────────────────────────


def test_fork_failure_returns_sentinel(launcher, monkeypatch):
    def _fail():
        raise OSError(errno.EAGAIN, "Resource temporarily unavailable")

    monkeypatch.setattr(os, "fork", _fail)
    assert launcher.launch("/bin/true", ["true"], []) == FAILED
    assert launcher.running() == []


def test_fork_failure_via_linker_returns_sentinel(launcher, monkeypatch):
    def _fail():
        raise OSError(errno.ENOMEM, "Cannot allocate memory")

    monkeypatch.setattr(os, "fork", _fail)
    pid = launcher.launch_via_linker("/ld", "/lib", "/bin/true", [], [])
    assert pid == FAILED


# ── Linker indirection ─────────────────────────────────────────


def test_linker_sees_synthesized_argv(launcher, recording_linker):
    linker, record = recording_linker
    pid = launcher.launch_via_linker(
        str(linker), "/root/lib:/root/usr/lib", "/root/bin/bash", ["-c", "echo a b"], [],
    )
    assert pid > 0
    assert launcher.wait_for(pid) == 0
    assert record.read_text().splitlines() == [
        str(linker), "--library-path", "/root/lib:/root/usr/lib",
        "/root/bin/bash", "-c", "echo a b",
    ]


def test_linker_with_no_extra_args(launcher, recording_linker):
    linker, record = recording_linker
    pid = launcher.launch_via_linker(str(linker), "/lib", "/bin/prog", [], [])
    assert launcher.wait_for(pid) == 0
    assert record.read_text().splitlines() == [
        str(linker), "--library-path", "/lib", "/bin/prog",
    ]


def test_missing_linker_fails_in_child(launcher, tmp_path):
    pid = launcher.launch_via_linker(
        str(tmp_path / "ld-missing.so"), "/lib", "/bin/true", [], [],
    )
    assert pid > 0
    assert launcher.wait_for(pid) == EXEC_FAILED


# ── Spawning alongside other threads ──────────────────────────


def _structlog_output_lock():
    output = pytest.importorskip("structlog._output")
    get_lock = getattr(output, "_get_lock_for_file", None)
    if get_lock is None:
        pytest.skip("structlog has no per-file output lock")
    return get_lock(sys.stdout)


def _wait_terminal(pid: int, timeout: float = 5.0):
    """Poll until ``pid`` is terminal without reaping it."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        info = os.waitid(os.P_PID, pid, os.WEXITED | os.WNOHANG | os.WNOWAIT)
        if info is not None:
            return info
        time.sleep(0.01)
    return None


def test_exec_failure_exits_while_log_lock_held_at_fork(launcher, tmp_path, monkeypatch):
    """Another thread holding the log output lock during fork must not stall the child."""
    lock = _structlog_output_lock()
    real_fork = os.fork
    holding = threading.Event()
    release = threading.Event()

    def _hold():
        with lock:
            holding.set()
            release.wait(timeout=10)

    def _fork_while_held():
        holder = threading.Thread(target=_hold)
        holder.start()
        holding.wait(timeout=5)
        pid = real_fork()
        if pid != 0:
            release.set()
            holder.join(timeout=5)
        return pid

    monkeypatch.setattr(os, "fork", _fork_while_held)
    pid = launcher.launch(str(tmp_path / "missing"), ["missing"], [])
    assert pid > 0
    assert _wait_terminal(pid) is not None, "child did not exit after failed execve"
    assert launcher.wait_for(pid) == EXEC_FAILED


async def test_launch_from_thread_while_async_wait_pending(launcher, tmp_path):
    sleeper = launcher.launch("/bin/sleep", ["sleep", "30"], [])
    pending = asyncio.create_task(launcher.wait_for_async(sleeper))
    await asyncio.sleep(0.05)

    ok = await asyncio.to_thread(launcher.launch, "/bin/true", ["true"], [])
    bad = await asyncio.to_thread(launcher.launch, str(tmp_path / "missing"), ["missing"], [])
    assert ok > 0 and bad > 0
    assert await asyncio.wait_for(launcher.wait_for_async(ok), timeout=10) == 0
    assert await asyncio.wait_for(launcher.wait_for_async(bad), timeout=10) == EXEC_FAILED

    assert not pending.done()
    assert launcher.signal(sleeper, signal.SIGKILL)
    assert await asyncio.wait_for(pending, timeout=10) == 128 + signal.SIGKILL
