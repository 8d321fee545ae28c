"""SignalDispatcher — fire-and-forget signal delivery to a spawned child."""

from __future__ import annotations

import os

import structlog

from linlaunch.process.table import ProcessTable

logger = structlog.get_logger()


class SignalDispatcher:
    def __init__(self, table: ProcessTable, enforce_ownership: bool = True) -> None:
        self._table = table
        self._enforce = enforce_ownership

    def signal(self, pid: int, signal_number: int) -> bool:
        """Submit ``signal_number`` to ``pid``. True once the OS accepted it."""
        if pid <= 0:
            logger.error("signal_rejected", pid=pid, reason="invalid pid")
            return False

        rejected = False
        error = None
        # Held across the check and the kill so a concurrent reap cannot
        # slip in between them.
        with self._table.lock:
            if self._enforce and not self._table.owns(pid):
                rejected = True
            else:
                try:
                    os.kill(pid, int(signal_number))
                except (OSError, ValueError, OverflowError) as e:
                    error = str(e)

        if rejected:
            logger.error("signal_rejected", pid=pid, reason="not an unreaped child of this launcher")
            return False
        if error is not None:
            logger.error("kill_failed", pid=pid, signal=int(signal_number), error=error)
            return False

        logger.info("signal_sent", pid=pid, signal=int(signal_number))
        return True
