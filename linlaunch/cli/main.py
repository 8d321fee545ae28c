"""linlaunch CLI — run a binary without a shell and report how it ended.

`linlaunch run /bin/ls -- -l` launches directly.
`linlaunch run --linker ROOT/lib/ld-linux-aarch64.so.1 --library-path ROOT/lib ROOT/bin/ls`
goes through an explicit dynamic linker.
`linlaunch bash ROOT` starts bash from a foreign root filesystem.
"""

from __future__ import annotations

import os
import signal as signals
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from linlaunch.config import settings
from linlaunch.launcher import Launcher
from linlaunch.log import configure_logging
from linlaunch.rootfs import launch_bash
from linlaunch.types import FAILED, Killed

console = Console()

app = typer.Typer(
    name="linlaunch",
    help="linlaunch -- start executables directly via execve and supervise them.",
    no_args_is_help=True,
)

_PASSTHROUGH = {"allow_interspersed_args": False, "ignore_unknown_options": True}


@app.callback()
def main(
    log_level: str = typer.Option(settings.log_level, "--log-level", help="Log level for stderr diagnostics"),
):
    """Start executables directly via execve and supervise them."""
    configure_logging(log_level)


def _parse_env(entries: List[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"expected KEY=VALUE, got '{entry}'", param_hint="--env")
        env[key] = value
    return env


def _supervise(launcher: Launcher, pid: int) -> int:
    """Wait for ``pid``; Ctrl+C sends SIGTERM, a second Ctrl+C sends SIGKILL."""
    try:
        result = launcher.wait(pid)
    except KeyboardInterrupt:
        console.print(f"\n[yellow]Interrupted, sending SIGTERM to {pid}[/yellow]")
        launcher.signal(pid, signals.SIGTERM)
        try:
            result = launcher.wait(pid)
        except KeyboardInterrupt:
            console.print(f"\n[red]Interrupted again, sending SIGKILL to {pid}[/red]")
            launcher.signal(pid, signals.SIGKILL)
            result = launcher.wait(pid)

    if result is None:
        console.print(f"[red]Could not wait for process {pid}[/red]")
        return 1
    if isinstance(result, Killed):
        console.print(f"[red]Process {pid} killed by signal {result.signal}[/red]")
    elif result.code == 0:
        console.print(f"[green]Process {pid} exited with code 0[/green]")
    else:
        console.print(f"[yellow]Process {pid} exited with code {result.code}[/yellow]")
    return result.code


@app.command("run", context_settings=_PASSTHROUGH)
def run(
    binary: str = typer.Argument(help="Path to the executable"),
    args: Optional[List[str]] = typer.Argument(None, help="Arguments passed to the executable"),
    env: List[str] = typer.Option([], "--env", "-e", help="KEY=VALUE environment entry (repeatable)"),
    inherit_env: bool = typer.Option(False, "--inherit-env", help="Start from the current environment"),
    linker: Optional[str] = typer.Option(None, "--linker", help="Dynamic linker to launch through"),
    library_path: Optional[str] = typer.Option(None, "--library-path", help="Library search path for --linker"),
):
    """Launch BINARY with ARGS, wait for it and exit with its code."""
    extra = list(args or [])
    envp = [f"{k}={v}" for k, v in os.environ.items()] if inherit_env else []
    envp += [f"{k}={v}" for k, v in _parse_env(env).items()]

    launcher = Launcher()
    if linker:
        if not library_path:
            raise typer.BadParameter("--library-path is required with --linker", param_hint="--library-path")
        pid = launcher.launch_via_linker(linker, library_path, binary, extra, envp)
    else:
        pid = launcher.launch(binary, [binary, *extra], envp)

    if pid == FAILED:
        console.print(f"[red]Failed to create a process for {binary}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]Started {binary} as pid {pid}[/dim]")
    raise typer.Exit(_supervise(launcher, pid))


@app.command("bash")
def bash(
    rootfs: Path = typer.Argument(help="Root filesystem containing bin/bash and a dynamic linker"),
    command: Optional[str] = typer.Option(None, "--command", "-c", help="Command for bash -c"),
    workdir: str = typer.Option(settings.default_working_dir, "--workdir", "-w", help="PWD inside the root"),
    env: List[str] = typer.Option([], "--env", "-e", help="KEY=VALUE environment override (repeatable)"),
):
    """Start bash from a foreign root filesystem and wait for it."""
    launcher = Launcher()
    pid = launch_bash(
        rootfs,
        working_dir=workdir,
        environment=_parse_env(env),
        command=command,
        launcher=launcher,
    )
    if pid == FAILED:
        console.print(f"[red]Could not launch bash from {rootfs}[/red]")
        raise typer.Exit(1)

    raise typer.Exit(_supervise(launcher, pid))


@app.command("version")
def version_cmd():
    """Show linlaunch version."""
    from linlaunch import __version__
    console.print(f"linlaunch v{__version__}")
