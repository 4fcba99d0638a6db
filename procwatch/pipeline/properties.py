# procwatch/pipeline/properties.py
"""
Named values shared between an invocation and its caller.

`PropertyStore` holds the named outputs a run publishes (captured stream
text, result codes). Values are write-once: the first publication wins and
later ones are ignored, so a property set by an earlier step is never
silently replaced.

The system property table is process-wide state read by code invoked through
an entry point (`get_system_property`). Same-runtime invocations install
their properties with `system_property_overlay`, which restores the previous
table on every exit path. Because the table is shared by the whole process,
overlays must not be installed concurrently from different threads; the
same-runtime invoker serializes them with `SAME_RUNTIME_LOCK`.
"""

from __future__ import annotations

import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Mapping, Optional, Sequence

from procwatch.utils.logging import get_logger

log = get_logger(__name__)

SAME_RUNTIME_LOCK = threading.RLock()

_system_properties: Dict[str, str] = {}


class PropertyStore:
    """Write-once mapping of published names to text values."""

    def __init__(self, initial: Optional[Mapping[str, str]] = None) -> None:
        self._values: Dict[str, str] = {}
        self._lock = threading.Lock()
        for name, value in (initial or {}).items():
            self._values[str(name)] = str(value)

    def publish(self, name: str, value: str) -> bool:
        """
        Sets `name` unless it already has a value.

        Returns:
            True if the value was stored, False if an earlier value was kept.
        """
        with self._lock:
            if name in self._values:
                log.debug("Override ignored for property '%s'", name)
                return False
            self._values[name] = str(value)
        log.debug("Published property '%s'", name)
        return True

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        with self._lock:
            return self._values.get(name, default)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._values

    def as_dict(self) -> Dict[str, str]:
        with self._lock:
            return dict(self._values)


def get_system_property(name: str, default: Optional[str] = None) -> Optional[str]:
    """Reads a system property installed for the currently running entry point."""
    return _system_properties.get(name, default)


def system_properties() -> Dict[str, str]:
    """Returns a copy of the current system property table."""
    return dict(_system_properties)


def install_system_properties(properties: Mapping[str, str]) -> None:
    """Permanently adds properties to the table. Used inside forked children."""
    _system_properties.update({str(k): str(v) for k, v in properties.items()})


@contextmanager
def system_property_overlay(properties: Mapping[str, str]) -> Iterator[None]:
    """Installs `properties` for the duration of the block, then restores the table."""
    snapshot = dict(_system_properties)
    _system_properties.update({str(k): str(v) for k, v in properties.items()})
    try:
        yield
    finally:
        _system_properties.clear()
        _system_properties.update(snapshot)


@contextmanager
def module_path_overlay(entries: Sequence[Path]) -> Iterator[None]:
    """Prepends `entries` to ``sys.path`` for the duration of the block."""
    saved = list(sys.path)
    sys.path[:0] = [str(p) for p in entries]
    try:
        yield
    finally:
        sys.path[:] = saved
