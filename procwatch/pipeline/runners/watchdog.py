# procwatch/pipeline/runners/watchdog.py
"""
Kills a forked process that runs longer than its timeout.

A watchdog belongs to exactly one process. Its timer thread waits on a
cancellation event with the timeout; whichever happens first decides the
outcome:

- `stop()` is called after the process exited -> DISARMED, nothing is killed.
- the wait times out while still ARMED -> EXPIRED, the process tree is killed,
  unless the process has already exited, in which case -> DISARMED.

Both transitions happen under one lock, so exactly one of them wins and a
kill always completes before `stop()` returns.
"""

from __future__ import annotations

import enum
import os
import signal
import subprocess
import threading
from typing import Optional

from procwatch.utils.logging import get_logger

log = get_logger(__name__)


class WatchdogState(str, enum.Enum):
    IDLE = "idle"
    ARMED = "armed"
    EXPIRED = "expired"
    DISARMED = "disarmed"


def kill_process_tree(process: subprocess.Popen) -> bool:
    """
    Forcibly kills `process` and, best effort, the session it leads.

    Returns:
        True if a kill was sent, False if the process had already exited.
    """
    if process.poll() is not None:
        return False
    if os.name == "nt":
        subprocess.call(
            ["taskkill", "/PID", str(process.pid), "/T", "/F"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return True
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except OSError:
        # Not a group leader (or already gone); fall back to the process itself.
        try:
            process.kill()
        except ProcessLookupError:
            return False
    return True


class Watchdog:
    """
    Cancellable timer for one process.

    Args:
        timeout_ms: Milliseconds the process may run before it is killed.
    """

    def __init__(self, timeout_ms: int) -> None:
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        self.timeout_ms = timeout_ms
        self.state = WatchdogState.IDLE
        self.killed = False
        self._lock = threading.Lock()
        self._cancelled = threading.Event()
        self._process: Optional[subprocess.Popen] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def timed_out(self) -> bool:
        return self.state is WatchdogState.EXPIRED

    def start(self, process: subprocess.Popen) -> None:
        """Arms the timer for `process`. A watchdog can only be started once."""
        with self._lock:
            if self.state is not WatchdogState.IDLE:
                raise RuntimeError(f"Watchdog cannot be started from state {self.state.value}")
            self._process = process
            self.state = WatchdogState.ARMED
        self._thread = threading.Thread(
            target=self._run, name=f"procwatch-watchdog-{process.pid}", daemon=True
        )
        self._thread.start()
        log.debug("Watchdog armed for pid %s (%d ms)", process.pid, self.timeout_ms)

    def _run(self) -> None:
        if self._cancelled.wait(self.timeout_ms / 1000.0):
            return
        with self._lock:
            if self.state is not WatchdogState.ARMED:
                return
            if self._process.poll() is not None:
                # Exited before stop() was called: nothing to kill.
                self.state = WatchdogState.DISARMED
                return
            self.state = WatchdogState.EXPIRED
            self.killed = kill_process_tree(self._process)
        log.debug("Watchdog expired for pid %s (killed=%s)", self._process.pid, self.killed)

    def stop(self) -> None:
        """Disarms the watchdog if it has not fired, and joins the timer thread."""
        with self._lock:
            if self.state in (WatchdogState.ARMED, WatchdogState.IDLE):
                self.state = WatchdogState.DISARMED
        self._cancelled.set()
        if self._thread is not None:
            self._thread.join()
