# procwatch/pipeline/tasks/base.py
"""
Defines the abstract base class for tasks and the context for their execution.
"""

import abc
from pathlib import Path
from dataclasses import dataclass
from typing import Tuple, Dict, Any, Optional

from procwatch.pipeline.properties import PropertyStore
from procwatch.utils.config import section
from procwatch.utils.logging import get_logger
from procwatch.utils.paths import resolve_path


@dataclass
class TaskContext:
    """
    Execution context for a task: where relative paths point and where
    published values go.
    """
    properties: PropertyStore
    base_dir: Path
    output_dir: Path


class Task(abc.ABC):
    """
    An abstract base class for a runnable task.
    """
    name: str = "base_task"

    def exec(
        self,
        cfg: Dict[str, Any],
        properties: Optional[PropertyStore] = None,
        base_dir: Optional[Path] = None,
    ) -> int:
        """
        Orchestrates the full lifecycle of a task execution.

        Args:
            cfg: The loaded run configuration.
            properties: Store for published values. A new one seeded from
                `run.properties` is created when omitted.
            base_dir: Directory relative paths are resolved against,
                normally the directory of the configuration file.

        Returns:
            The status the caller's control flow should see (0 on success or
            recovered failure).
        """
        log = get_logger(__name__)
        run_cfg = section(cfg, "run")
        base_dir = Path(base_dir if base_dir is not None else Path.cwd()).resolve()
        output_dir = resolve_path(base_dir, run_cfg.get("output_dir")) or base_dir

        if properties is None:
            properties = PropertyStore(run_cfg.get("properties") or {})

        ctx = TaskContext(properties=properties, base_dir=base_dir, output_dir=output_dir)
        log.info("Executing task '%s' (base directory: %s)", self.name, base_dir)

        inputs, params = self.prepare(cfg)
        status = self.run(ctx, inputs, params)

        log.info("Task '%s' finished with status %d.", self.name, status)
        return status

    @abc.abstractmethod
    def prepare(self, cfg: Dict[str, Any]) -> Tuple[Any, Any]:
        """
        Prepare inputs and parameters for the task from the configuration.

        Returns:
            A tuple of (inputs, params).
        """
        raise NotImplementedError

    @abc.abstractmethod
    def run(self, ctx: TaskContext, inputs: Any, params: Any) -> int:
        """
        Perform the task's work.

        Returns:
            The task status.
        """
        raise NotImplementedError
