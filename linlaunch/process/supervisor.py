"""Supervisor — wait for a spawned child and normalize how it ended."""

from __future__ import annotations

import asyncio
import os

import structlog

from linlaunch.process.table import ProcessTable
from linlaunch.types import FAILED, Killed, TerminationResult, decode_wait_status

logger = structlog.get_logger()


class Supervisor:
    """Blocking wait over the children recorded in a ProcessTable.

    Each PID is reaped at most once. A second waiter, or a waiter for a PID
    the table does not know, is turned away with FAILED instead of blocking.

    Waiting happens in two steps: block in waitid(WNOWAIT) until the child
    is terminal, leaving it a zombie, then reap it and drop it from the
    table under the table lock. Signal delivery takes the same lock.
    """

    def __init__(self, table: ProcessTable, enforce_ownership: bool = True) -> None:
        self._table = table
        self._enforce = enforce_ownership

    def wait(self, pid: int) -> TerminationResult | None:
        """Block until ``pid`` terminates. None if the wait is refused or fails."""
        if pid <= 0:
            logger.error("wait_rejected", pid=pid, reason="invalid pid")
            return None
        if self._enforce and not self._table.claim_wait(pid):
            logger.error("wait_rejected", pid=pid, reason="not an unreaped child of this launcher")
            return None

        reaped = False
        try:
            try:
                os.waitid(os.P_PID, pid, os.WEXITED | os.WNOWAIT)
                with self._table.lock:
                    _, status = os.waitpid(pid, 0)
                    reaped = True
                    if self._enforce:
                        self._table.release_wait(pid, reaped=True)
            except ChildProcessError as e:
                # ECHILD: nothing left to reap under this pid
                reaped = True
                logger.error("waitpid_failed", pid=pid, error=str(e))
                return None
            except OSError as e:
                logger.error("waitpid_failed", pid=pid, error=str(e))
                return None

            result = decode_wait_status(status)
            if result is None:
                logger.error("waitpid_unexpected_status", pid=pid, status=status)
                return None

            if isinstance(result, Killed):
                logger.info("process_killed", pid=pid, signal=result.signal)
            else:
                logger.info("process_exited", pid=pid, exit_code=result.code)
            return result
        finally:
            if self._enforce:
                self._table.release_wait(pid, reaped=reaped)

    def wait_for(self, pid: int) -> int:
        """Exit code, 128 + signal for a killed child, or FAILED."""
        result = self.wait(pid)
        if result is None:
            return FAILED
        return result.code

    async def wait_for_async(self, pid: int) -> int:
        """Run the blocking wait in a worker thread."""
        return await asyncio.to_thread(self.wait_for, pid)
