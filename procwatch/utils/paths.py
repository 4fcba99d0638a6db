# procwatch/utils/paths.py
"""
Path helpers for run configurations and run logs.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .logging import get_logger

log = get_logger(__name__)


def resolve_path(base_dir: Path, value: Optional[Union[str, Path]]) -> Optional[Path]:
    """
    Resolves a configured path against the configuration's base directory.

    Absolute paths are returned unchanged; None stays None.
    """
    if value in (None, ""):
        return None
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = Path(base_dir) / path
    return path


def run_log_path(output_dir: Path, step: str) -> Path:
    """
    Returns a fresh log file path for one run of `step`, creating its directory.

    Layout: <output_dir>/run_logs/<date_time>__<step>.log
    """
    log_dir = Path(output_dir) / "run_logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    path = log_dir / f"{stamp}__{step}.log"
    log.debug("Run log path: %s", path)
    return path
