"""Spawner — create a child process and replace its image with a binary.

No shell is involved: the child calls execve() on the target directly, or
on a dynamic linker that is told where to find the target's libraries.

Usage:
    spawner = Spawner(ProcessTable())
    pid = spawner.launch("/bin/true", ["true"], ["PATH=/bin"])
    pid = spawner.launch_via_linker(
        "/rootfs/lib/ld-linux-aarch64.so.1", "/rootfs/lib:/rootfs/usr/lib",
        "/rootfs/bin/bash", ["-i"], envp,
    )
"""

from __future__ import annotations

import os
import sys
from typing import NoReturn, Sequence

import structlog

from linlaunch.config import settings
from linlaunch.process.table import ProcessTable
from linlaunch.types import FAILED, LaunchRequest, LinkerLaunchRequest

logger = structlog.get_logger()


class Spawner:
    """Fork/exec front end. Every successful spawn is recorded in the table."""

    def __init__(
        self,
        table: ProcessTable,
        exec_failure_exit_code: int | None = None,
    ) -> None:
        self._table = table
        if exec_failure_exit_code is None:
            exec_failure_exit_code = settings.exec_failure_exit_code
        self._exec_failure_exit_code = exec_failure_exit_code

    def launch(
        self,
        binary_path: str,
        argv: Sequence[str],
        envp: Sequence[str],
    ) -> int:
        """Run ``binary_path`` with ``argv`` (including argv[0]) and exactly ``envp``.

        Returns the child PID, or FAILED if no process could be created.
        """
        request = LaunchRequest(
            binary_path=binary_path, argv=tuple(argv), envp=tuple(envp)
        )
        logger.info("launch_binary", binary=request.binary_path)
        return self._spawn(request)

    def launch_via_linker(
        self,
        linker_path: str,
        library_path: str,
        binary_path: str,
        argv: Sequence[str],
        envp: Sequence[str],
    ) -> int:
        """Run ``binary_path`` through ``linker_path --library-path library_path``.

        ``argv`` are the arguments after the binary path; the child's argument
        vector is built from the linker path, not from argv[0].
        """
        request = LinkerLaunchRequest(
            linker_path=linker_path,
            library_path=library_path,
            binary_path=binary_path,
            argv=tuple(argv),
            envp=tuple(envp),
        )
        logger.info(
            "launch_with_linker",
            linker=request.linker_path,
            library_path=request.library_path,
            binary=request.binary_path,
        )
        return self._spawn(request)

    def _spawn(self, request: LaunchRequest) -> int:
        path = request.exec_path
        argv = list(request.effective_argv)
        env = request.environ()
        logger.info("launch_args", argv=argv)

        # Buffered output would otherwise be written twice, once per process
        sys.stdout.flush()
        sys.stderr.flush()

        try:
            pid = os.fork()
        except OSError as e:
            logger.error("fork_failed", path=path, error=str(e))
            return FAILED

        if pid == 0:
            self._exec_child(path, argv, env)

        logger.info("child_spawned", pid=pid, parent_pid=os.getpid())
        self._table.register(pid)
        return pid

    def _exec_child(self, path: str, argv: list[str], env: dict[str, str]) -> NoReturn:
        """Runs in the child. Only returns control to the OS.

        Locks held by other parent threads at fork time (structlog's output
        lock among them) stay held forever here, so the failure is reported
        on the raw stderr descriptor.
        """
        try:
            os.execve(path, argv, env)
        except (OSError, ValueError) as e:
            message = f"execve_failed path={path!r} error={e}\n"
            try:
                os.write(2, message.encode("utf-8", errors="replace"))
            except OSError:
                pass
        finally:
            os._exit(self._exec_failure_exit_code)
