from __future__ import annotations

from typing import Dict, Type

from procwatch.errors import ConfigurationError
from .base import UnpackPlugin
from .bunzip2 import Bunzip2Plugin
from .gunzip import GunzipPlugin

UNPACK_PLUGINS: Dict[str, Type[UnpackPlugin]] = {
    "gzip": GunzipPlugin,
    "gunzip": GunzipPlugin,
    "gz": GunzipPlugin,
    "bzip2": Bunzip2Plugin,
    "bunzip2": Bunzip2Plugin,
    "bz2": Bunzip2Plugin,
}


def load_unpack_plugin(name: str) -> UnpackPlugin:
    key = (name or "").strip().lower()
    plugin_cls = UNPACK_PLUGINS.get(key)
    if plugin_cls is None:
        raise ConfigurationError(f"Unknown unpack format: {name}")
    return plugin_cls()
