"""
Base interface for unpack plugins.

A plugin knows one compressed single-file format: the extension it
conventionally carries and how to expand a source file into a destination
file. Destination naming and validation are shared here so every format
behaves the same way.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Optional

from procwatch.errors import ConfigurationError
from procwatch.utils.logging import get_logger

log = get_logger(__name__)


class UnpackPlugin(abc.ABC):
    """Abstract base class for single-file decompressors."""

    name: str = "base"

    @abc.abstractmethod
    def default_extension(self) -> str:
        """Extension stripped from the source name, e.g. '.gz'."""
        raise NotImplementedError

    @abc.abstractmethod
    def extract(self, source: Path, destination: Path) -> None:
        """Expand `source` into the file `destination`."""
        raise NotImplementedError

    # ---- Shared behaviour ----
    def resolve_destination(self, source: Optional[Path], destination: Optional[Path]) -> Path:
        """
        Validate the source and work out the file to write.

        - The source must be given, exist and not be a directory.
        - Without a destination, the source's directory is used.
        - A directory destination receives the source name with the default
          extension removed (case-insensitively), or the unchanged name when
          it does not carry that extension.
        """
        if source is None:
            raise ConfigurationError("No source specified")
        source = Path(source)
        if not source.exists():
            raise ConfigurationError(f"Source {source} doesn't exist")
        if source.is_dir():
            raise ConfigurationError(f"Cannot expand a directory: {source}")

        dest = Path(destination) if destination is not None else source.parent
        if not dest.is_dir():
            return dest

        name = source.name
        ext = self.default_extension()
        if ext and len(name) > len(ext) and name.lower().endswith(ext.lower()):
            return dest / name[: -len(ext)]
        return dest / name

    def unpack(self, source: Optional[Path], destination: Optional[Path] = None) -> Path:
        """
        Validate, then extract unless the destination is already newer.

        Returns:
            The path of the expanded file.
        """
        target = self.resolve_destination(source, destination)
        source = Path(source)
        if target.exists() and target.stat().st_mtime >= source.stat().st_mtime:
            log.debug("%s is up to date; skipping %s", target, source)
            return target
        log.info("Expanding %s to %s", source, target)
        target.parent.mkdir(parents=True, exist_ok=True)
        self.extract(source, target)
        return target
