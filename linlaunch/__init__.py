"""linlaunch — start foreign-root executables without a shell, then supervise them."""

from importlib.metadata import version, PackageNotFoundError

from linlaunch.launcher import (
    Launcher,
    default_launcher,
    launch,
    launch_via_linker,
    signal,
    wait_for,
)
from linlaunch.types import FAILED, Exited, Killed, TerminationResult

try:
    __version__ = version("linlaunch")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development

__all__ = [
    "FAILED",
    "Exited",
    "Killed",
    "Launcher",
    "TerminationResult",
    "default_launcher",
    "launch",
    "launch_via_linker",
    "signal",
    "wait_for",
]
