from __future__ import annotations

import gzip
import shutil
from pathlib import Path

from procwatch.errors import ExecutionError
from .base import UnpackPlugin


class GunzipPlugin(UnpackPlugin):
    """Expands gzip-compressed files."""

    name = "gzip"

    def default_extension(self) -> str:
        return ".gz"

    def extract(self, source: Path, destination: Path) -> None:
        try:
            with gzip.open(source, "rb") as src, open(destination, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (OSError, EOFError) as exc:
            raise ExecutionError(f"Problem expanding gzip {source}: {exc}") from exc
