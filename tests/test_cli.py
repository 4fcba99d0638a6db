import gzip
import sys
from pathlib import Path

import yaml

from procwatch.cli import app


def _write_exec_config(base_dir: Path, code: str, **extra) -> Path:
    """Writes a run configuration with an `exec` block that runs `code` in a child interpreter."""
    cfg = {
        "run": {"output_dir": "outputs", "properties": {"seeded": "yes"}},
        "exec": {
            "command": [sys.executable, "-c", code],
            "fork": True,
            "output_property": "out",
            "result_property": "rc",
            **extra,
        },
    }
    cfg_path = base_dir / "exec_config.yaml"
    cfg_path.write_text(yaml.safe_dump(cfg))
    return cfg_path


def test_cli_help_lists_commands(cli_runner):
    result = cli_runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Usage" in result.output
    assert "run" in result.output
    assert "tasks" in result.output


def test_cli_tasks_lists_steps(cli_runner):
    result = cli_runner.invoke(app, ["tasks"])
    assert result.exit_code == 0
    assert "exec" in result.output
    assert "unpack" in result.output


def test_cli_run_exec_prints_properties(cli_runner, tmp_path):
    cfg_path = _write_exec_config(tmp_path, "print('from child')")

    result = cli_runner.invoke(app, ["run", "exec", str(cfg_path)])
    assert result.exit_code == 0, result.output
    assert "from child" in result.output
    assert "seeded" in result.output

    run_logs = tmp_path / "outputs" / "run_logs"
    assert run_logs.is_dir()
    assert any(p.name.endswith("__exec.log") for p in run_logs.iterdir())


def test_cli_run_recovered_failure_exits_zero(cli_runner, tmp_path):
    cfg_path = _write_exec_config(tmp_path, "import sys; sys.exit(3)")
    result = cli_runner.invoke(app, ["run", "exec", str(cfg_path)])
    assert result.exit_code == 0, result.output


def test_cli_run_fatal_failure_exits_nonzero(cli_runner, tmp_path):
    cfg_path = _write_exec_config(tmp_path, "import sys; sys.exit(3)", fail_on_error=True)
    log_path = tmp_path / "explicit.log"

    result = cli_runner.invoke(app, ["--log-file", str(log_path), "run", "exec", str(cfg_path)])

    assert result.exit_code == 1
    assert "Process returned: 3" in log_path.read_text()


def test_cli_run_configuration_error_exits_nonzero(cli_runner, tmp_path):
    cfg = {"exec": {"entry_point": "pkg:main", "artifact": "tool.py", "fork": True}}
    cfg_path = tmp_path / "bad.yaml"
    cfg_path.write_text(yaml.safe_dump(cfg))

    result = cli_runner.invoke(app, ["run", "exec", str(cfg_path)])
    assert result.exit_code == 1


def test_cli_run_unpack(cli_runner, tmp_path):
    (tmp_path / "data.txt.gz").write_bytes(gzip.compress(b"rows\n"))
    cfg_path = tmp_path / "unpack.yaml"
    cfg_path.write_text(yaml.safe_dump({"unpack": {"format": "gzip", "src": "data.txt.gz"}}))

    result = cli_runner.invoke(app, ["run", "unpack", str(cfg_path)])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "data.txt").read_bytes() == b"rows\n"


def test_cli_run_unknown_step_errors(cli_runner, tmp_path):
    cfg_path = _write_exec_config(tmp_path, "pass")
    result = cli_runner.invoke(app, ["run", "nonexistent_step", str(cfg_path)])
    assert result.exit_code != 0
    assert "invalid value" in result.output.lower()
