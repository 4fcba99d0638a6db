from __future__ import annotations

import bz2
import shutil
from pathlib import Path

from procwatch.errors import ExecutionError
from .base import UnpackPlugin


class Bunzip2Plugin(UnpackPlugin):
    """Expands bzip2-compressed files."""

    name = "bzip2"

    def default_extension(self) -> str:
        return ".bz2"

    def extract(self, source: Path, destination: Path) -> None:
        try:
            with bz2.open(source, "rb") as src, open(destination, "wb") as dst:
                shutil.copyfileobj(src, dst)
        except (OSError, EOFError) as exc:
            raise ExecutionError(f"Problem expanding bzip2 {source}: {exc}") from exc
