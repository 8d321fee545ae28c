"""Process primitives — spawn, supervise and signal direct children.

This package provides:
- ProcessTable: which PIDs a launcher owns and which are being waited on
- Spawner: fork + execve, directly or through a dynamic linker
- Supervisor: block until a child terminates, normalize its status
- SignalDispatcher: deliver a signal to an owned child
"""
