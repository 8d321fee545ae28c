"""Launcher — one ProcessTable shared by spawner, supervisor and dispatcher.

The module-level functions act on ``default_launcher``:

    from linlaunch import launch, wait_for, signal

    pid = launch("/bin/sleep", ["sleep", "60"], [])
    signal(pid, 9)
    wait_for(pid)  # 137
"""

from __future__ import annotations

from typing import Sequence

from linlaunch.config import settings
from linlaunch.process.signals import SignalDispatcher
from linlaunch.process.spawner import Spawner
from linlaunch.process.supervisor import Supervisor
from linlaunch.process.table import ProcessTable
from linlaunch.types import TerminationResult


class Launcher:
    """Spawn, wait on and signal direct children."""

    def __init__(
        self,
        enforce_ownership: bool | None = None,
        exec_failure_exit_code: int | None = None,
    ) -> None:
        if enforce_ownership is None:
            enforce_ownership = settings.enforce_ownership
        self.table = ProcessTable()
        self.spawner = Spawner(self.table, exec_failure_exit_code)
        self.supervisor = Supervisor(self.table, enforce_ownership)
        self.dispatcher = SignalDispatcher(self.table, enforce_ownership)

    def launch(self, binary_path: str, argv: Sequence[str], envp: Sequence[str]) -> int:
        return self.spawner.launch(binary_path, argv, envp)

    def launch_via_linker(
        self,
        linker_path: str,
        library_path: str,
        binary_path: str,
        argv: Sequence[str],
        envp: Sequence[str],
    ) -> int:
        return self.spawner.launch_via_linker(
            linker_path, library_path, binary_path, argv, envp
        )

    def wait(self, pid: int) -> TerminationResult | None:
        return self.supervisor.wait(pid)

    def wait_for(self, pid: int) -> int:
        return self.supervisor.wait_for(pid)

    async def wait_for_async(self, pid: int) -> int:
        return await self.supervisor.wait_for_async(pid)

    def signal(self, pid: int, signal_number: int | None = None) -> bool:
        if signal_number is None:
            signal_number = settings.default_signal
        return self.dispatcher.signal(pid, signal_number)

    def running(self) -> list[int]:
        """PIDs spawned here and not yet reaped."""
        return self.table.pids()


default_launcher = Launcher()


def launch(binary_path: str, argv: Sequence[str], envp: Sequence[str]) -> int:
    return default_launcher.launch(binary_path, argv, envp)


def launch_via_linker(
    linker_path: str,
    library_path: str,
    binary_path: str,
    argv: Sequence[str],
    envp: Sequence[str],
) -> int:
    return default_launcher.launch_via_linker(
        linker_path, library_path, binary_path, argv, envp
    )


def wait_for(pid: int) -> int:
    return default_launcher.wait_for(pid)


def signal(pid: int, signal_number: int | None = None) -> bool:
    return default_launcher.signal(pid, signal_number)
