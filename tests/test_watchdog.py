import subprocess
import sys
import time

import pytest

from procwatch.pipeline.runners.watchdog import Watchdog, WatchdogState, kill_process_tree


def _spawn(code: str) -> subprocess.Popen:
    return subprocess.Popen([sys.executable, "-c", code], start_new_session=True)


def test_watchdog_expires_and_kills():
    process = _spawn("import time; time.sleep(30)")
    watchdog = Watchdog(100)
    started = time.monotonic()
    watchdog.start(process)

    process.wait(timeout=10)
    watchdog.stop()

    assert time.monotonic() - started < 10
    assert watchdog.state is WatchdogState.EXPIRED
    assert watchdog.timed_out is True
    assert watchdog.killed is True
    assert process.returncode != 0


def test_watchdog_disarmed_when_process_exits_first():
    process = _spawn("pass")
    watchdog = Watchdog(10_000)
    watchdog.start(process)

    assert process.wait(timeout=10) == 0
    started = time.monotonic()
    watchdog.stop()

    # stop() cancels the timer instead of waiting for it
    assert time.monotonic() - started < 5
    assert watchdog.state is WatchdogState.DISARMED
    assert watchdog.timed_out is False
    assert watchdog.killed is False


def test_watchdog_cannot_be_reused():
    process = _spawn("pass")
    watchdog = Watchdog(5_000)
    watchdog.start(process)
    process.wait(timeout=10)
    watchdog.stop()

    with pytest.raises(RuntimeError):
        watchdog.start(process)


def test_stop_without_start_leaves_no_timer():
    watchdog = Watchdog(50)
    watchdog.stop()
    time.sleep(0.1)
    assert watchdog.state is WatchdogState.DISARMED
    assert watchdog.killed is False


def test_invalid_timeout_rejected():
    with pytest.raises(ValueError):
        Watchdog(0)


def test_kill_process_tree_ignores_finished_process():
    process = _spawn("pass")
    process.wait(timeout=10)
    assert kill_process_tree(process) is False


def test_watchdog_disarms_when_process_exited_before_stop():
    process = _spawn("pass")
    process.wait(timeout=10)
    watchdog = Watchdog(50)
    watchdog.start(process)
    time.sleep(0.3)

    assert watchdog.state is WatchdogState.DISARMED
    watchdog.stop()
    assert watchdog.timed_out is False
    assert watchdog.killed is False
