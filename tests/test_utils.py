import io
import logging
import sys

import pytest

from procwatch.errors import ConfigurationError
from procwatch.utils.config import get_bool, load_config, section
from procwatch.utils.logging import get_logger, setup_logger
from procwatch.utils.paths import resolve_path, run_log_path


def test_load_config_reads_yaml(tmp_path):
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(
        "exec:\n"
        "  entry_point: tools:main\n"
        "  args:\n"
        "    - one\n"
        "  fork: true\n"
    )

    data = load_config(cfg_path)
    assert data["exec"]["entry_point"] == "tools:main"
    assert data["exec"]["args"] == ["one"]
    assert data["exec"]["fork"] is True


def test_load_config_empty_file(tmp_path):
    cfg_path = tmp_path / "empty.yaml"
    cfg_path.write_text("")
    assert load_config(cfg_path) == {}


def test_load_config_rejects_non_mapping(tmp_path):
    cfg_path = tmp_path / "list.yaml"
    cfg_path.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError):
        load_config(cfg_path)


def test_section_and_get_bool():
    cfg = {"exec": {"fork": "on", "append": False}}
    block = section(cfg, "exec")
    assert get_bool(block, "fork") is True
    assert get_bool(block, "append", True) is False
    assert get_bool(block, "missing", True) is True
    assert section(cfg, "unpack") == {}
    with pytest.raises(ConfigurationError):
        section({"exec": ["not", "a", "mapping"]}, "exec")


def test_resolve_path(tmp_path):
    assert resolve_path(tmp_path, None) is None
    assert resolve_path(tmp_path, "out/x.txt") == tmp_path / "out" / "x.txt"
    assert resolve_path(tmp_path, str(tmp_path / "abs")) == tmp_path / "abs"


def test_run_log_path(tmp_path):
    path = run_log_path(tmp_path, "exec")
    assert path.parent == tmp_path / "run_logs"
    assert path.parent.is_dir()
    assert path.name.endswith("__exec.log")


def test_setup_logger_creates_file(tmp_path):
    log_path = tmp_path / "procwatch.log"
    logger = setup_logger(logfile=log_path, verbose=True)
    child = get_logger("procwatch.tests")

    child.debug("debug message")
    child.info("info message")

    for handler in logger.handlers:
        flush = getattr(handler, "flush", None)
        if callable(flush):
            flush()

    assert logger.level == logging.DEBUG
    assert log_path.is_file()
    contents = log_path.read_text()
    assert "info message" in contents
    assert "debug message" in contents


def test_console_handler_ignores_later_stream_swaps(monkeypatch, capsys):
    logger = setup_logger()
    swapped = io.StringIO()
    monkeypatch.setattr(sys, "stdout", swapped)
    monkeypatch.setattr(sys, "stderr", swapped)

    logger.warning("host record")
    monkeypatch.undo()

    assert swapped.getvalue() == ""
    assert "host record" in capsys.readouterr().err
