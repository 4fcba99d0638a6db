"""
Resolution of ``module:function`` entry point names.
"""

from __future__ import annotations

import importlib
from typing import Callable

from procwatch.errors import ExecutionError

DEFAULT_FUNCTION = "main"


def split_entry_point(name: str):
    module_name, _, attr_path = name.strip().partition(":")
    return module_name, attr_path or DEFAULT_FUNCTION


def resolve_entry_point(name: str) -> Callable:
    """
    Imports the module named by `name` and returns the callable it points at.

    ``"pkg.mod:func"`` resolves ``func`` (dotted attribute paths are allowed);
    ``"pkg.mod"`` resolves ``pkg.mod.main``.

    Raises:
        ExecutionError: if the module cannot be imported or the attribute is
            missing or not callable.
    """
    module_name, attr_path = split_entry_point(name)
    if not module_name:
        raise ExecutionError(f"Invalid entry point: {name!r}")
    try:
        target = importlib.import_module(module_name)
    except ImportError as exc:
        raise ExecutionError(f"Could not import entry point module '{module_name}': {exc}") from exc

    for attr in attr_path.split("."):
        try:
            target = getattr(target, attr)
        except AttributeError as exc:
            raise ExecutionError(f"Entry point '{name}' not found: {exc}") from exc
    if not callable(target):
        raise ExecutionError(f"Entry point '{name}' is not callable")
    return target
