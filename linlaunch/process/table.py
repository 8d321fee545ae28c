"""ProcessTable — the set of children a launcher has spawned and not reaped.

Wait and signal calls consult it before touching the OS, so a PID that was
never ours, or that has already been reaped, is rejected instead of hitting
whatever process now carries that number.

The final reap and every signal delivery happen while ``lock`` is held, so a
PID the table still owns is always either running or an unreaped zombie.
"""

from __future__ import annotations

import threading


class ProcessTable:
    """Thread-safe ownership registry for spawned PIDs."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._live: set[int] = set()
        self._waiting: set[int] = set()

    def register(self, pid: int) -> None:
        with self.lock:
            self._live.add(pid)

    def owns(self, pid: int) -> bool:
        with self.lock:
            return pid in self._live

    def is_waiting(self, pid: int) -> bool:
        with self.lock:
            return pid in self._waiting

    def claim_wait(self, pid: int) -> bool:
        """Reserve ``pid`` for a single waiter. False if unknown or taken."""
        with self.lock:
            if pid not in self._live or pid in self._waiting:
                return False
            self._waiting.add(pid)
            return True

    def release_wait(self, pid: int, reaped: bool) -> None:
        with self.lock:
            self._waiting.discard(pid)
            if reaped:
                self._live.discard(pid)

    def pids(self) -> list[int]:
        with self.lock:
            return sorted(self._live)

    def __len__(self) -> int:
        with self.lock:
            return len(self._live)
