# procwatch/cli.py
"""
Command-line interface for procwatch, powered by Typer.
"""

import typer
from pathlib import Path
from typing import Optional
import enum

from rich.console import Console
from rich.table import Table

from procwatch.pipeline.properties import PropertyStore
from procwatch.pipeline.tasks import TASK_REGISTRY
from procwatch.utils.config import load_config, section
from procwatch.utils.logging import setup_logger, get_logger
from procwatch.utils.paths import resolve_path, run_log_path

app = typer.Typer(
    no_args_is_help=True,
    help="procwatch: run commands and entry points under a watchdog.",
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()

# A shared dictionary to store global state from the callback
state = {}


class RunStep(str, enum.Enum):
    """Enum for available task steps."""

    exec = "exec"
    unpack = "unpack"


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable verbose (DEBUG) logging."
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Path to a file for logging. Defaults to run.output_dir/run_logs/<date_time>__<step>.log",
    ),
):
    """
    Main callback to set up logging and global state.
    """
    state["verbose"] = verbose
    state["log_file"] = log_file

    setup_logger(logfile=log_file, verbose=verbose)
    log = get_logger(__name__)
    log.debug("CLI context initialized. verbose=%s", verbose)


def _print_properties(properties: PropertyStore) -> None:
    values = properties.as_dict()
    if not values:
        return
    table = Table(title="Properties")
    table.add_column("Name")
    table.add_column("Value")
    for name, value in sorted(values.items()):
        table.add_row(name, value)
    console.print(table)


@app.command()
def run(
    ctx: typer.Context,
    step: RunStep = typer.Argument(..., help="The task step to execute."),
    config_path: Path = typer.Argument(
        ...,
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
        resolve_path=True,
        help="Path to the run configuration file.",
    ),
):
    """
    Execute a task described in a run configuration file.
    """
    log = get_logger(__name__)
    log.info("Executing 'run' command for step: '%s'", step.value)

    try:
        cfg = load_config(config_path)
        base_dir = config_path.parent

        if state.get("log_file") is None:
            output_dir = resolve_path(base_dir, section(cfg, "run").get("output_dir")) or base_dir
            default_log = run_log_path(output_dir, step.value)
            state["log_file"] = default_log
            # Reconfigure logger to add file handler now that we have a path
            setup_logger(logfile=default_log, verbose=state.get("verbose", False))

        task_cls = TASK_REGISTRY.get(step.value)
        if task_cls is None:
            log.error("Task '%s' is not available in this build.", step.value)
            raise typer.Exit(code=1)

        properties = PropertyStore(section(cfg, "run").get("properties") or {})
        status = task_cls().exec(cfg, properties=properties, base_dir=base_dir)
        _print_properties(properties)

    except typer.Exit:
        raise
    except Exception as e:
        log.exception("Failed to execute task '%s': %s", step.value, e)
        raise typer.Exit(code=1)

    if status != 0:
        raise typer.Exit(code=status)


@app.command()
def tasks():
    """
    List the available task steps.
    """
    for name, task_cls in sorted(TASK_REGISTRY.items()):
        doc = (task_cls.__doc__ or "").strip().splitlines()
        console.print(f"{name:<8} {doc[0] if doc else ''}")


if __name__ == "__main__":
    app()
