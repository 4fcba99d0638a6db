import logging
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

TESTS_DIR = Path(__file__).resolve().parent


@pytest.fixture
def cli_runner():
    """Reusable Typer CLI runner with stderr merged into stdout for assertions."""
    return CliRunner()


@pytest.fixture
def tests_dir():
    """Directory holding `sample_entry_points`, for use as a classpath entry."""
    return TESTS_DIR


@pytest.fixture
def python_cmd():
    """Builds an external command that runs a Python snippet in a child interpreter."""
    def _cmd(code: str):
        return [sys.executable, "-c", code]
    return _cmd


@pytest.fixture(autouse=True)
def _reset_procwatch_logger():
    """setup_logger() stops propagation; restore it so caplog sees records."""
    yield
    log = logging.getLogger("procwatch")
    for handler in list(log.handlers):
        handler.close()
    log.handlers.clear()
    log.propagate = True
    log.setLevel(logging.NOTSET)
