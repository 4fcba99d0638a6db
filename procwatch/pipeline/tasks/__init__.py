"""
Task registry.

This module exposes concrete task classes so the CLI can discover them without
each consumer having to know the individual module paths.
"""

from __future__ import annotations

from typing import Dict, Type

from .base import Task
from .execute import ExecTask
from .unpack import UnpackTask

__all__ = [
    "ExecTask",
    "UnpackTask",
    "TASK_REGISTRY",
]

TASK_REGISTRY: Dict[str, Type[Task]] = {
    "exec": ExecTask,
    "unpack": UnpackTask,
}
